from __future__ import annotations

import logging
import secrets
from typing import Any, Iterable, Mapping

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from protocol.models import Agent, AgentTimelineProgress, Emblem, Timeline
from protocol.services import codes
from protocol.services.entries import TimelineValidationError, parse_entries

logger = logging.getLogger(__name__)

__all__ = [
    "TimelineValidationError",
    "create_timeline",
    "delete_timeline",
    "generate_timeline_id",
    "get_agent_progress",
    "get_timeline",
    "list_open_timelines",
    "list_timelines",
    "serialize_timeline",
    "set_status",
    "update_timeline",
]

STATUSES = tuple(value for value, _ in Timeline.STATUS_CHOICES)
TIMELINE_ID_MAX_LENGTH = 50
NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000

SECURITY_DEFAULTS: dict[str, Any] = {
    "clearance_level": "1",
    "access_mode": "PUBLIC",
    "requires_auth": False,
    "auto_lock_on_breach": False,
    "max_attempts": 3,
    "lock_duration": 60,
}
ACCESS_MODES = ("PUBLIC", "RESTRICTED", "CLASSIFIED")

REWARD_FLAGS = ("archives_entry", "index_access", "special_fragment", "irl_object")

IMMUTABLE_FIELDS = ("timeline_id", "code")


def generate_timeline_id(prefix: str | None = None) -> str:
    """Return ``PREFIX-YYYYMMDD-xxxxxx`` with three random bytes as hex."""
    prefix = prefix or getattr(settings, "PROTOCOL_TIMELINE_ID_PREFIX", "TL")
    return f"{prefix}-{timezone.now().strftime('%Y%m%d')}-{secrets.token_hex(3)}"


def _failure(message: str, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": False, "message": message}
    payload.update(extra)
    return payload


def _invalid(errors: Iterable[str]) -> dict[str, Any]:
    return _failure("Invalid timeline data", errors=list(errors))


def _clean_rewards(raw: Any, errors: list[str]) -> dict[str, Any]:
    if raw in (None, ""):
        return {}
    if not isinstance(raw, Mapping):
        errors.append("rewards must be an object")
        return {}
    rewards: dict[str, Any] = {}
    for key in ("discord_role_id", "badge"):
        value = raw.get(key)
        if value in (None, ""):
            continue
        if not isinstance(value, str):
            errors.append(f"rewards.{key} must be a string")
            continue
        rewards[key] = value.strip()
    emblem = raw.get("emblem")
    if emblem not in (None, ""):
        if not isinstance(emblem, list) or not all(isinstance(item, str) for item in emblem):
            errors.append("rewards.emblem must be a list of strings")
        else:
            rewards["emblem"] = list(emblem)
    for flag in REWARD_FLAGS:
        if flag in raw:
            if not isinstance(raw[flag], bool):
                errors.append(f"rewards.{flag} must be a boolean")
            else:
                rewards[flag] = raw[flag]
    return rewards


def _clean_security(raw: Any, errors: list[str], base: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Overlay ``raw`` on ``base`` (the stored protocol) or on the defaults."""
    security = dict(SECURITY_DEFAULTS)
    security.update(base or {})
    if raw in (None, ""):
        return security
    if not isinstance(raw, Mapping):
        errors.append("security_protocol must be an object")
        return security
    for key, value in raw.items():
        if key == "access_code":
            continue
        security[key] = value
    mode = str(security.get("access_mode") or "PUBLIC").upper()
    if mode not in ACCESS_MODES:
        errors.append(f"security_protocol.access_mode must be one of {', '.join(ACCESS_MODES)}")
    security["access_mode"] = mode
    clearance = str(security.get("clearance_level") or "1")
    if clearance not in {"1", "2", "3", "4", "5"}:
        errors.append("security_protocol.clearance_level must be between 1 and 5")
    security["clearance_level"] = clearance
    return security


def _clean_code(raw: Any, errors: list[str]) -> dict[str, Any]:
    if raw in (None, ""):
        return {}
    if not isinstance(raw, Mapping):
        errors.append("code must be an object")
        return {}
    target = raw.get("target_code") or []
    if not isinstance(target, list) or not all(isinstance(group, str) for group in target):
        errors.append("code.target_code must be a list of strings")
        return {}
    fmt = raw.get("format") or codes.code_format(target)
    if fmt not in (codes.FORMAT_STANDARD, codes.FORMAT_EXTENDED):
        errors.append(f"code.format must be {codes.FORMAT_STANDARD} or {codes.FORMAT_EXTENDED}")
    return {
        "format": fmt,
        "target_code": list(target),
        "pattern": raw.get("pattern") or codes.generate_pattern(target),
    }


def _clean_payload(
    data: Mapping[str, Any],
    *,
    partial: bool,
    security_base: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Validate a create/update payload into model field values.

    With ``partial`` only the keys present in ``data`` are validated and
    returned, and a ``security_protocol`` is merged over ``security_base``.
    Raises ``TimelineValidationError`` listing every problem.
    """
    if not isinstance(data, Mapping):
        raise TimelineValidationError(["payload must be an object"])
    errors: list[str] = []
    cleaned: dict[str, Any] = {}

    def present(key: str) -> bool:
        return not partial or key in data

    if "timeline_id" in data and data["timeline_id"] not in (None, ""):
        timeline_id = str(data["timeline_id"]).strip()
        if len(timeline_id) > TIMELINE_ID_MAX_LENGTH:
            errors.append(f"timeline_id cannot exceed {TIMELINE_ID_MAX_LENGTH} characters")
        cleaned["timeline_id"] = timeline_id

    if present("name"):
        name = str(data.get("name") or "").strip()
        if not name:
            errors.append("Name is required")
        elif len(name) > NAME_MAX_LENGTH:
            errors.append(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
        cleaned["name"] = name

    if present("description"):
        description = str(data.get("description") or "")
        if len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(f"description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
        cleaned["description"] = description

    if present("tier"):
        tier = data.get("tier", 1)
        if tier is None:
            tier = 1
        if isinstance(tier, bool) or not isinstance(tier, int) or not 1 <= tier <= 5:
            errors.append("tier must be an integer between 1 and 5")
        else:
            cleaned["tier"] = tier

    if present("is_shared"):
        is_shared = data.get("is_shared", False)
        if not isinstance(is_shared, bool):
            errors.append("is_shared must be a boolean")
        else:
            cleaned["is_shared"] = is_shared

    if present("status"):
        status = str(data.get("status") or Timeline.STATUS_DRAFT).strip().upper()
        if status not in STATUSES:
            errors.append(f"status must be one of {', '.join(STATUSES)}")
        else:
            cleaned["status"] = status

    if present("emblem_ids"):
        emblem_ids = data.get("emblem_ids") or []
        if not isinstance(emblem_ids, list) or not all(isinstance(item, str) for item in emblem_ids):
            errors.append("emblem_ids must be a list of strings")
        else:
            cleaned["emblem_ids"] = [item.strip() for item in emblem_ids if item.strip()]

    security_raw = data.get("security_protocol")
    access_code = data.get("access_code")
    if access_code in (None, "") and isinstance(security_raw, Mapping):
        access_code = security_raw.get("access_code")
    if access_code not in (None, "") or not partial or "access_code" in data:
        access_code = str(access_code or "").strip()
        if not access_code:
            errors.append("access_code is required")
        cleaned["access_code"] = access_code
    if present("security_protocol"):
        cleaned["security_protocol"] = _clean_security(security_raw, errors, security_base)

    if present("entries"):
        try:
            cleaned["entries"] = [entry.to_dict() for entry in parse_entries(data.get("entries"))]
        except TimelineValidationError as exc:
            errors.extend(exc.errors)

    if present("rewards"):
        cleaned["rewards"] = _clean_rewards(data.get("rewards"), errors)

    if present("metadata"):
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            errors.append("metadata must be an object")
        else:
            cleaned["metadata"] = dict(metadata)

    if not partial and "code" in data:
        cleaned["code"] = _clean_code(data.get("code"), errors)

    if errors:
        raise TimelineValidationError(errors)
    return cleaned


def _missing_emblems(emblem_ids: list[str]) -> list[str]:
    found = set(Emblem.objects.filter(emblem_id__in=emblem_ids).values_list("emblem_id", flat=True))
    return [emblem_id for emblem_id in emblem_ids if emblem_id not in found]


def _code_from_emblem(emblem_id: str) -> dict[str, Any] | None:
    emblem = Emblem.objects.filter(emblem_id=emblem_id).first()
    if emblem is None or not emblem.code:
        return None
    target_code = codes.split_emblem_code(emblem.code)
    return {
        "format": codes.code_format(target_code),
        "target_code": target_code,
        "pattern": codes.generate_pattern(target_code),
    }


def serialize_timeline(timeline: Timeline) -> dict[str, Any]:
    security = dict(timeline.security_protocol or {})
    security["access_code"] = timeline.access_code
    return {
        "timeline_id": timeline.timeline_id,
        "name": timeline.name,
        "description": timeline.description,
        "tier": timeline.tier,
        "is_shared": timeline.is_shared,
        "status": timeline.status,
        "state_flags": timeline.state_flags,
        "code": {
            "format": timeline.code_format,
            "pattern": timeline.pattern,
            "target_code": timeline.target_code,
        },
        "emblem_ids": list(timeline.emblem_ids or []),
        "security_protocol": security,
        "entries": list(timeline.entries or []),
        "rewards": dict(timeline.rewards or {}),
        "stabilization": timeline.stabilization,
        "activity_metrics": dict(timeline.activity_metrics or {}),
        "metadata": dict(timeline.metadata or {}),
        "participants": [participant.as_dict() for participant in timeline.participants.all()],
        "created_at": timeline.created_at.isoformat() if timeline.created_at else None,
        "updated_at": timeline.updated_at.isoformat() if timeline.updated_at else None,
    }


def timeline_summary(timeline: Timeline) -> dict[str, Any]:
    return {
        "timeline_id": timeline.timeline_id,
        "name": timeline.name,
        "description": timeline.description,
        "tier": timeline.tier,
        "code_format": timeline.code_format,
    }


def create_timeline(data: Mapping[str, Any]) -> dict[str, Any]:
    try:
        cleaned = _clean_payload(data, partial=False)
    except TimelineValidationError as exc:
        return _invalid(exc.errors)

    timeline_id = cleaned.pop("timeline_id", None) or generate_timeline_id()
    if Timeline.objects.filter(timeline_id=timeline_id).exists():
        return _failure("Timeline already exists", errors=[f"timeline_id {timeline_id} is already in use"])

    emblem_ids = cleaned.get("emblem_ids") or []
    if emblem_ids:
        missing = _missing_emblems(emblem_ids)
        if missing:
            return _failure(f"Emblems not found: {', '.join(missing)}", missing=missing)
        derived = _code_from_emblem(emblem_ids[0])
        if derived is not None:
            cleaned["code"] = derived

    with transaction.atomic():
        timeline = Timeline.objects.create(timeline_id=timeline_id, **cleaned)
    logger.info("Created timeline %s (%s)", timeline.timeline_id, timeline.status)
    return {"success": True, "timeline": serialize_timeline(timeline)}


def get_timeline(timeline_id: str) -> dict[str, Any]:
    timeline = Timeline.objects.filter(timeline_id=timeline_id).first()
    if timeline is None:
        return _failure("Timeline not found")
    return {"success": True, "timeline": serialize_timeline(timeline)}


def list_timelines() -> dict[str, Any]:
    timelines = [serialize_timeline(timeline) for timeline in Timeline.objects.prefetch_related("participants")]
    return {"success": True, "timelines": timelines, "count": len(timelines)}


def update_timeline(timeline_id: str, data: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        return _invalid(["payload must be an object"])
    errors = [
        f"{field} cannot be changed"
        for field in IMMUTABLE_FIELDS
        if field in data and not (field == "timeline_id" and data[field] == timeline_id)
    ]
    if errors:
        return _invalid(errors)

    with transaction.atomic():
        timeline = Timeline.objects.select_for_update().filter(timeline_id=timeline_id).first()
        if timeline is None:
            return _failure("Timeline not found")
        try:
            cleaned = _clean_payload(data, partial=True, security_base=timeline.security_protocol)
        except TimelineValidationError as exc:
            return _invalid(exc.errors)
        cleaned.pop("timeline_id", None)

        if cleaned.get("emblem_ids"):
            missing = _missing_emblems(cleaned["emblem_ids"])
            if missing:
                return _failure(f"Emblems not found: {', '.join(missing)}", missing=missing)

        for field, value in cleaned.items():
            setattr(timeline, field, value)
        timeline.save()
    logger.info("Updated timeline %s (%s)", timeline_id, ", ".join(sorted(cleaned)) or "no changes")
    return {"success": True, "timeline": serialize_timeline(timeline)}


def set_status(timeline_id: str, status: str) -> dict[str, Any]:
    return update_timeline(timeline_id, {"status": status})


def delete_timeline(timeline_id: str) -> dict[str, Any]:
    deleted, _ = Timeline.objects.filter(timeline_id=timeline_id).delete()
    if not deleted:
        return _failure("Timeline not found")
    logger.info("Deleted timeline %s", timeline_id)
    return {"success": True, "message": "Timeline successfully deleted"}


def list_open_timelines() -> dict[str, Any]:
    timelines = [
        timeline_summary(timeline)
        for timeline in Timeline.objects.filter(status=Timeline.STATUS_OPEN).order_by("tier", "created_at")
    ]
    return {"success": True, "timelines": timelines, "count": len(timelines)}


def get_agent_progress(agent_id: int, timeline_id: str) -> dict[str, Any]:
    timeline = Timeline.objects.filter(timeline_id=timeline_id).first()
    if timeline is None:
        return _failure("Timeline not found")
    if not Agent.objects.filter(pk=agent_id).exists():
        return _failure("Agent not found")
    progress = AgentTimelineProgress.objects.filter(agent_id=agent_id, timeline_id=timeline_id).first()
    if progress is None:
        return _failure("You do not have access to this timeline")

    summary = timeline_summary(timeline)
    summary.pop("code_format")
    summary.update({"status": timeline.status, "emblem_ids": list(timeline.emblem_ids or [])})
    return {
        "success": True,
        "timeline": summary,
        "progress": progress.as_dict(),
        "emblem_progress": codes.reveal_progress(timeline.pattern, timeline.target_code, progress.fragments_found),
    }
