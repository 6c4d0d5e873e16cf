"""Data models for the Protocol timeline engine."""
from __future__ import annotations

from django.db import models
from django.utils import timezone


class Agent(models.Model):
    """A platform user, identified by their Bungie account id."""

    ROLE_AGENT = "AGENT"
    ROLE_SPECIALIST = "SPECIALIST"
    ROLE_FOUNDER = "FOUNDER"

    ROLE_CHOICES = [
        (ROLE_AGENT, "agent"),
        (ROLE_SPECIALIST, "specialist"),
        (ROLE_FOUNDER, "founder"),
    ]

    SPECIES_HUMAN = "HUMAN"
    SPECIES_EXO = "EXO"
    SPECIES_AWOKEN = "AWOKEN"

    SPECIES_CHOICES = [
        (SPECIES_HUMAN, "human"),
        (SPECIES_EXO, "exo"),
        (SPECIES_AWOKEN, "awoken"),
    ]

    bungie_id = models.CharField(max_length=64, unique=True)
    agent_name = models.CharField(max_length=120)
    species = models.CharField(max_length=10, choices=SPECIES_CHOICES, default=SPECIES_HUMAN)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_AGENT)
    clearance_level = models.PositiveSmallIntegerField(default=1)
    roles = models.JSONField(default=list, blank=True)
    current_timeline_id = models.CharField(max_length=64, null=True, blank=True)
    current_timeline_entry_id = models.CharField(max_length=64, null=True, blank=True)
    localization_synced_at = models.DateTimeField(null=True, blank=True)
    last_activity_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.agent_name

    def is_founder(self) -> bool:
        return self.role == self.ROLE_FOUNDER

    @property
    def timeline_localization(self) -> dict[str, object]:
        return {
            "current_timeline_id": self.current_timeline_id,
            "current_timeline_entry_id": self.current_timeline_entry_id,
            "last_synced_at": self.localization_synced_at.isoformat() if self.localization_synced_at else None,
        }


class Emblem(models.Model):
    """Cosmetic asset whose code seeds a timeline's hidden target code."""

    RARITY_CHOICES = [
        ("COMMON", "common"),
        ("UNCOMMON", "uncommon"),
        ("RARE", "rare"),
        ("LEGENDARY", "legendary"),
        ("EXOTIC", "exotic"),
    ]

    STATUS_CHOICES = [
        ("AVAILABLE", "available"),
        ("UNAVAILABLE", "unavailable"),
        ("REVOKED", "revoked"),
        ("REJECTED", "rejected"),
    ]

    emblem_id = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    code = models.CharField(max_length=32, blank=True)
    rarity = models.CharField(max_length=16, choices=RARITY_CHOICES, default="COMMON")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="UNAVAILABLE")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["emblem_id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class Badge(models.Model):
    """Collectible badge granted to agents, looked up by its business id."""

    RARITY_CHOICES = [
        ("COMMON", "common"),
        ("RARE", "rare"),
        ("EPIC", "epic"),
        ("LEGENDARY", "legendary"),
    ]

    badge_id = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    rarity = models.CharField(max_length=16, choices=RARITY_CHOICES, default="COMMON")
    icon = models.CharField(max_length=255, blank=True)
    obtainable = models.BooleanField(default=True)
    linked_tier = models.PositiveSmallIntegerField(null=True, blank=True)
    linked_timeline = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["badge_id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class AgentBadge(models.Model):
    """A badge held by an agent; at most one row per (agent, badge)."""

    agent = models.ForeignKey(Agent, on_delete=models.CASCADE, related_name="badges")
    badge = models.ForeignKey(Badge, on_delete=models.CASCADE, related_name="holders")
    obtained_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("agent", "badge")
        ordering = ["obtained_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.agent.agent_name} :: {self.badge.name}"


class Lore(models.Model):
    """Lore record that timeline entries can unlock for an agent."""

    CATEGORY_CHOICES = [
        ("HISTORY", "history"),
        ("CHARACTER", "character"),
        ("LOCATION", "location"),
        ("EVENT", "event"),
        ("ARTIFACT", "artifact"),
        ("FACTION", "faction"),
        ("TECHNOLOGY", "technology"),
        ("OTHER", "other"),
    ]

    STATUS_CHOICES = [
        ("DRAFT", "draft"),
        ("PUBLISHED", "published"),
        ("ARCHIVED", "archived"),
    ]

    lore_id = models.CharField(max_length=64, unique=True)
    title = models.CharField(max_length=200)
    summary = models.TextField(blank=True)
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES, default="OTHER")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="DRAFT")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["lore_id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.title


class LoreUnlock(models.Model):
    """Append-only record of a lore entry unlocked by an agent."""

    lore = models.ForeignKey(Lore, on_delete=models.CASCADE, related_name="unlocks")
    agent = models.ForeignKey(Agent, on_delete=models.CASCADE, related_name="lore_unlocks")
    unlocked_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("lore", "agent")
        ordering = ["-unlocked_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.lore.lore_id} -> {self.agent.agent_name}"


class Timeline(models.Model):
    """ARG-style puzzle container with a hidden target code and an entry tree."""

    STATUS_DRAFT = "DRAFT"
    STATUS_OPEN = "OPEN"
    STATUS_PROGRESS = "PROGRESS"
    STATUS_ARCHIVED = "ARCHIVED"
    STATUS_CLOSED = "CLOSED"
    STATUS_STABILIZED = "STABILIZED"
    STATUS_DELETED = "DELETED"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "draft"),
        (STATUS_OPEN, "open"),
        (STATUS_PROGRESS, "progress"),
        (STATUS_ARCHIVED, "archived"),
        (STATUS_CLOSED, "closed"),
        (STATUS_STABILIZED, "stabilized"),
        (STATUS_DELETED, "deleted"),
    ]

    WINNER_AGENT = "AGENT"
    WINNER_TEAM = "TEAM"

    WINNER_CHOICES = [
        (WINNER_AGENT, "agent"),
        (WINNER_TEAM, "team"),
    ]

    timeline_id = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    tier = models.PositiveSmallIntegerField(default=1)
    is_shared = models.BooleanField(default=False)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    code = models.JSONField(default=dict, blank=True)
    emblem_ids = models.JSONField(default=list, blank=True)
    access_code = models.CharField(max_length=120, db_index=True)
    security_protocol = models.JSONField(default=dict, blank=True)
    entries = models.JSONField(default=list, blank=True)
    rewards = models.JSONField(default=dict, blank=True)
    winner_type = models.CharField(max_length=8, choices=WINNER_CHOICES, blank=True)
    winner_agent_id = models.CharField(max_length=64, blank=True)
    winner_team_id = models.CharField(max_length=64, blank=True)
    stabilized_at = models.DateTimeField(null=True, blank=True)
    activity_metrics = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "tier"], name="timeline_status_tier_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.timeline_id} ({self.status})"

    @property
    def state_flags(self) -> dict[str, bool]:
        """One-hot boolean view of ``status``, derived on every read."""
        return {
            "is_draft": self.status == self.STATUS_DRAFT,
            "is_open": self.status == self.STATUS_OPEN,
            "is_progress": self.status == self.STATUS_PROGRESS,
            "is_archived": self.status == self.STATUS_ARCHIVED,
            "is_closed": self.status == self.STATUS_CLOSED,
            "is_stabilized": self.status == self.STATUS_STABILIZED,
            "is_deleted": self.status == self.STATUS_DELETED,
        }

    @property
    def code_format(self) -> str:
        return (self.code or {}).get("format") or "AAA-BBB-CCC"

    @property
    def pattern(self) -> dict[str, dict[str, str]]:
        return (self.code or {}).get("pattern") or {}

    @property
    def target_code(self) -> list[str]:
        return list((self.code or {}).get("target_code") or [])

    @property
    def stabilization(self) -> dict[str, object] | None:
        if self.stabilized_at is None:
            return None
        return {
            "winner_type": self.winner_type,
            "winner_agent_id": self.winner_agent_id,
            "winner_team_id": self.winner_team_id,
            "completed_at": self.stabilized_at.isoformat(),
        }


class AgentTimelineProgress(models.Model):
    """Per-agent progress inside one timeline (fragments, keys, resolved entries)."""

    agent = models.ForeignKey(Agent, on_delete=models.CASCADE, related_name="timeline_progress")
    timeline = models.ForeignKey(
        Timeline,
        to_field="timeline_id",
        on_delete=models.CASCADE,
        related_name="agent_progress",
    )
    title = models.CharField(max_length=200, blank=True)
    current_entry_id = models.CharField(max_length=64, null=True, blank=True)
    fragments_found = models.JSONField(default=list, blank=True)
    keys_found = models.JSONField(default=list, blank=True)
    entries_resolved = models.JSONField(default=list, blank=True)
    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    accessed_at = models.DateTimeField(default=timezone.now)
    last_updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("agent", "timeline")
        ordering = ["accessed_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.agent_id} @ {self.timeline_id}"

    @property
    def fragments_collected(self) -> int:
        return len(self.fragments_found or [])

    def as_dict(self) -> dict[str, object]:
        return {
            "timeline_id": self.timeline_id,
            "title": self.title,
            "current_entry_id": self.current_entry_id,
            "fragments_found": list(self.fragments_found or []),
            "fragments_collected": self.fragments_collected,
            "keys_found": list(self.keys_found or []),
            "entries_resolved": list(self.entries_resolved or []),
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "accessed_at": self.accessed_at.isoformat() if self.accessed_at else None,
        }


class TimelineParticipant(models.Model):
    """Denormalized mirror of an agent's progress for leaderboards and admin views."""

    timeline = models.ForeignKey(
        Timeline,
        to_field="timeline_id",
        on_delete=models.CASCADE,
        related_name="participants",
    )
    agent = models.ForeignKey(Agent, on_delete=models.CASCADE, related_name="participations")
    team_id = models.CharField(max_length=64, blank=True)
    progress = models.PositiveSmallIntegerField(default=0)
    fragments_found = models.JSONField(default=list, blank=True)
    keys_found = models.JSONField(default=list, blank=True)
    last_activity_at = models.DateTimeField(default=timezone.now)
    completed = models.BooleanField(default=False, db_index=True)

    class Meta:
        unique_together = ("timeline", "agent")
        ordering = ["-progress", "last_activity_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.agent_id} in {self.timeline_id} ({self.progress}%)"

    @property
    def fragments_collected(self) -> int:
        return len(self.fragments_found or [])

    def as_dict(self) -> dict[str, object]:
        return {
            "agent_id": self.agent_id,
            "team_id": self.team_id,
            "progress": self.progress,
            "fragments_found": list(self.fragments_found or []),
            "fragments_collected": self.fragments_collected,
            "keys_found": list(self.keys_found or []),
            "last_activity_at": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "completed": self.completed,
        }
