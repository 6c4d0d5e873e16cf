from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Sequence

TYPE_ENIGMA = "ENIGMA"
TYPE_FIREWALL = "FIREWALL"
TYPE_DATA_NODE = "DATA_NODE"
ENTRY_TYPES = (TYPE_ENIGMA, TYPE_FIREWALL, TYPE_DATA_NODE)

REWARD_FRAGMENT = "FRAGMENT"
REWARD_INDEX = "INDEX"
REWARD_NONE = "NONE"
ENTRY_REWARDS = (REWARD_FRAGMENT, REWARD_INDEX, REWARD_NONE)

STATUS_ACTIVE = "ACTIVE"
STATUS_LOCKED = "LOCKED"
STATUS_SOLVED = "SOLVED"
ENTRY_STATUSES = (STATUS_ACTIVE, STATUS_LOCKED, STATUS_SOLVED)

DIALOG_KINDS = ("intro", "success", "failure")

NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000


class TimelineValidationError(ValueError):
    """Raised while parsing timeline payloads; carries every problem found."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def _enum(value: Any, allowed: Sequence[str], default: str, label: str, errors: list[str]) -> str:
    if value in (None, ""):
        return default
    normalized = str(value).strip().upper()
    if normalized not in allowed:
        errors.append(f"{label} must be one of {', '.join(allowed)}")
        return default
    return normalized


def _string_list(value: Any, label: str, errors: list[str]) -> tuple[str, ...]:
    if value in (None, ""):
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        errors.append(f"{label} must be a list of strings")
        return ()
    return tuple(value)


@dataclass(frozen=True)
class Entry:
    """One puzzle node of a timeline; ``sub_entries`` nest without limit."""

    entry_id: str
    name: str
    access_code: str = ""
    description: str = ""
    type: str = TYPE_ENIGMA
    content: str = ""
    solution: str | None = None
    linked_fragment: tuple[str, ...] = ()
    linked_lore: tuple[str, ...] = ()
    grant_keys: tuple[str, ...] = ()
    required_keys: tuple[str, ...] = ()
    reward: str = REWARD_NONE
    status: str = STATUS_ACTIVE
    dialogs: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    sub_entries: tuple["Entry", ...] = ()

    @property
    def requires_solution(self) -> bool:
        return bool((self.solution or "").strip())

    def accepts(self, attempt: str) -> bool:
        """Entries without a solution accept any input."""
        if not self.requires_solution:
            return True
        return (attempt or "").strip().upper() == (self.solution or "").strip().upper()

    def summary(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "content": self.content,
            "requires_solution": self.requires_solution,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], path: str = "entries") -> "Entry":
        if not isinstance(raw, Mapping):
            raise TimelineValidationError([f"{path} must be an object"])
        errors: list[str] = []
        entry_id = str(raw.get("entry_id") or "").strip()
        if not entry_id:
            errors.append(f"{path}.entry_id is required")
        name = str(raw.get("name") or "").strip()
        if not name:
            errors.append(f"{path}.name is required")
        elif len(name) > NAME_MAX_LENGTH:
            errors.append(f"{path}.name cannot exceed {NAME_MAX_LENGTH} characters")
        description = str(raw.get("description") or "")
        if len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(f"{path}.description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")

        dialogs_raw = raw.get("dialogs") or {}
        dialogs: dict[str, tuple[str, ...]] = {}
        if not isinstance(dialogs_raw, Mapping):
            errors.append(f"{path}.dialogs must be an object")
        else:
            for kind in DIALOG_KINDS:
                dialogs[kind] = _string_list(dialogs_raw.get(kind), f"{path}.dialogs.{kind}", errors)

        children: list[Entry] = []
        sub_raw = raw.get("sub_entries") or []
        if not isinstance(sub_raw, (list, tuple)):
            errors.append(f"{path}.sub_entries must be a list")
        else:
            for index, child in enumerate(sub_raw):
                try:
                    children.append(cls.from_dict(child, f"{path}.sub_entries[{index}]"))
                except TimelineValidationError as exc:
                    errors.extend(exc.errors)

        solution = raw.get("solution")
        entry = cls(
            entry_id=entry_id,
            name=name,
            access_code=str(raw.get("access_code") or "").strip(),
            description=description,
            type=_enum(raw.get("type"), ENTRY_TYPES, TYPE_ENIGMA, f"{path}.type", errors),
            content=str(raw.get("content") or ""),
            solution=str(solution) if solution not in (None, "") else None,
            linked_fragment=_string_list(raw.get("linked_fragment"), f"{path}.linked_fragment", errors),
            linked_lore=_string_list(raw.get("linked_lore"), f"{path}.linked_lore", errors),
            grant_keys=_string_list(raw.get("grant_keys"), f"{path}.grant_keys", errors),
            required_keys=_string_list(raw.get("required_keys"), f"{path}.required_keys", errors),
            reward=_enum(raw.get("reward"), ENTRY_REWARDS, REWARD_NONE, f"{path}.reward", errors),
            status=_enum(raw.get("status"), ENTRY_STATUSES, STATUS_ACTIVE, f"{path}.status", errors),
            dialogs=dialogs,
            sub_entries=tuple(children),
        )
        if errors:
            raise TimelineValidationError(errors)
        return entry

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "content": self.content,
            "access_code": self.access_code,
            "solution": self.solution,
            "linked_fragment": list(self.linked_fragment),
            "linked_lore": list(self.linked_lore),
            "grant_keys": list(self.grant_keys),
            "required_keys": list(self.required_keys),
            "reward": self.reward,
            "status": self.status,
            "dialogs": {kind: list(self.dialogs.get(kind, ())) for kind in DIALOG_KINDS},
            "sub_entries": [child.to_dict() for child in self.sub_entries],
        }


def iter_entries(entries: Iterable[Entry]) -> Iterator[Entry]:
    """Depth-first pre-order walk over an entry forest."""
    stack = list(reversed(list(entries)))
    while stack:
        entry = stack.pop()
        yield entry
        stack.extend(reversed(entry.sub_entries))


def parse_entries(raw: Any) -> list[Entry]:
    if raw in (None, ""):
        return []
    if not isinstance(raw, (list, tuple)):
        raise TimelineValidationError(["entries must be a list"])
    errors: list[str] = []
    parsed: list[Entry] = []
    for index, item in enumerate(raw):
        try:
            parsed.append(Entry.from_dict(item, f"entries[{index}]"))
        except TimelineValidationError as exc:
            errors.extend(exc.errors)
    if errors:
        raise TimelineValidationError(errors)

    seen: set[str] = set()
    duplicates: list[str] = []
    for entry in iter_entries(parsed):
        if entry.entry_id in seen and entry.entry_id not in duplicates:
            duplicates.append(entry.entry_id)
        seen.add(entry.entry_id)
    if duplicates:
        raise TimelineValidationError([f"Duplicate entry_id: {', '.join(duplicates)}"])
    return parsed


def find_by_access_code(entries: Iterable[Entry], code: str | None) -> Entry | None:
    needle = (code or "").strip().upper()
    if not needle:
        return None
    for entry in iter_entries(entries):
        if entry.access_code.strip().upper() == needle:
            return entry
    return None


def find_by_id(entries: Iterable[Entry], entry_id: str | None) -> Entry | None:
    if not entry_id:
        return None
    for entry in iter_entries(entries):
        if entry.entry_id == entry_id:
            return entry
    return None
