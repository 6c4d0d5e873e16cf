import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Agent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("bungie_id", models.CharField(max_length=64, unique=True)),
                ("agent_name", models.CharField(max_length=120)),
                ("species", models.CharField(choices=[("HUMAN", "human"), ("EXO", "exo"), ("AWOKEN", "awoken")], default="HUMAN", max_length=10)),
                ("role", models.CharField(choices=[("AGENT", "agent"), ("SPECIALIST", "specialist"), ("FOUNDER", "founder")], default="AGENT", max_length=20)),
                ("clearance_level", models.PositiveSmallIntegerField(default=1)),
                ("roles", models.JSONField(blank=True, default=list)),
                ("current_timeline_id", models.CharField(blank=True, max_length=64, null=True)),
                ("current_timeline_entry_id", models.CharField(blank=True, max_length=64, null=True)),
                ("localization_synced_at", models.DateTimeField(blank=True, null=True)),
                ("last_activity_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="Badge",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("badge_id", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("rarity", models.CharField(choices=[("COMMON", "common"), ("RARE", "rare"), ("EPIC", "epic"), ("LEGENDARY", "legendary")], default="COMMON", max_length=16)),
                ("icon", models.CharField(blank=True, max_length=255)),
                ("obtainable", models.BooleanField(default=True)),
                ("linked_tier", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("linked_timeline", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["badge_id"],
            },
        ),
        migrations.CreateModel(
            name="Emblem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("emblem_id", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("code", models.CharField(blank=True, max_length=32)),
                ("rarity", models.CharField(choices=[("COMMON", "common"), ("UNCOMMON", "uncommon"), ("RARE", "rare"), ("LEGENDARY", "legendary"), ("EXOTIC", "exotic")], default="COMMON", max_length=16)),
                ("status", models.CharField(choices=[("AVAILABLE", "available"), ("UNAVAILABLE", "unavailable"), ("REVOKED", "revoked"), ("REJECTED", "rejected")], default="UNAVAILABLE", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["emblem_id"],
            },
        ),
        migrations.CreateModel(
            name="Lore",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("lore_id", models.CharField(max_length=64, unique=True)),
                ("title", models.CharField(max_length=200)),
                ("summary", models.TextField(blank=True)),
                ("category", models.CharField(choices=[("HISTORY", "history"), ("CHARACTER", "character"), ("LOCATION", "location"), ("EVENT", "event"), ("ARTIFACT", "artifact"), ("FACTION", "faction"), ("TECHNOLOGY", "technology"), ("OTHER", "other")], default="OTHER", max_length=16)),
                ("status", models.CharField(choices=[("DRAFT", "draft"), ("PUBLISHED", "published"), ("ARCHIVED", "archived")], default="DRAFT", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["lore_id"],
            },
        ),
        migrations.CreateModel(
            name="Timeline",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timeline_id", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("tier", models.PositiveSmallIntegerField(default=1)),
                ("is_shared", models.BooleanField(default=False)),
                ("status", models.CharField(choices=[("DRAFT", "draft"), ("OPEN", "open"), ("PROGRESS", "progress"), ("ARCHIVED", "archived"), ("CLOSED", "closed"), ("STABILIZED", "stabilized"), ("DELETED", "deleted")], db_index=True, default="DRAFT", max_length=16)),
                ("code", models.JSONField(blank=True, default=dict)),
                ("emblem_ids", models.JSONField(blank=True, default=list)),
                ("access_code", models.CharField(db_index=True, max_length=120)),
                ("security_protocol", models.JSONField(blank=True, default=dict)),
                ("entries", models.JSONField(blank=True, default=list)),
                ("rewards", models.JSONField(blank=True, default=dict)),
                ("winner_type", models.CharField(blank=True, choices=[("AGENT", "agent"), ("TEAM", "team")], max_length=8)),
                ("winner_agent_id", models.CharField(blank=True, max_length=64)),
                ("winner_team_id", models.CharField(blank=True, max_length=64)),
                ("stabilized_at", models.DateTimeField(blank=True, null=True)),
                ("activity_metrics", models.JSONField(blank=True, default=dict)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "tier"], name="timeline_status_tier_idx")],
            },
        ),
        migrations.CreateModel(
            name="AgentBadge",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("obtained_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("agent", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="badges", to="protocol.agent")),
                ("badge", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="holders", to="protocol.badge")),
            ],
            options={
                "ordering": ["obtained_at"],
                "unique_together": {("agent", "badge")},
            },
        ),
        migrations.CreateModel(
            name="LoreUnlock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("unlocked_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("agent", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lore_unlocks", to="protocol.agent")),
                ("lore", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="unlocks", to="protocol.lore")),
            ],
            options={
                "ordering": ["-unlocked_at"],
                "unique_together": {("lore", "agent")},
            },
        ),
        migrations.CreateModel(
            name="AgentTimelineProgress",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(blank=True, max_length=200)),
                ("current_entry_id", models.CharField(blank=True, max_length=64, null=True)),
                ("fragments_found", models.JSONField(blank=True, default=list)),
                ("keys_found", models.JSONField(blank=True, default=list)),
                ("entries_resolved", models.JSONField(blank=True, default=list)),
                ("completed", models.BooleanField(default=False)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("accessed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("last_updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("agent", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="timeline_progress", to="protocol.agent")),
                ("timeline", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="agent_progress", to="protocol.timeline", to_field="timeline_id")),
            ],
            options={
                "ordering": ["accessed_at"],
                "unique_together": {("agent", "timeline")},
            },
        ),
        migrations.CreateModel(
            name="TimelineParticipant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("team_id", models.CharField(blank=True, max_length=64)),
                ("progress", models.PositiveSmallIntegerField(default=0)),
                ("fragments_found", models.JSONField(blank=True, default=list)),
                ("keys_found", models.JSONField(blank=True, default=list)),
                ("last_activity_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("completed", models.BooleanField(db_index=True, default=False)),
                ("agent", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="participations", to="protocol.agent")),
                ("timeline", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="participants", to="protocol.timeline", to_field="timeline_id")),
            ],
            options={
                "ordering": ["-progress", "last_activity_at"],
                "unique_together": {("timeline", "agent")},
            },
        ),
    ]
