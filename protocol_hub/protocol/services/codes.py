"""Target code patterns and fragment reveal for timelines.

A timeline hides a code made of three or four groups of three characters
(``ABC-DEF-GHI``). Each character is a fragment keyed by the first letter of
its section and its position (``A1``..``A3``, ``B1``..``B3``, ...). Agents
collect fragment keys by resolving entries; the helpers below rebuild the
partially revealed code from whatever keys an agent holds.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

SECTIONS = ("AAA", "BBB", "CCC", "DDD")
GROUP_SIZE = 3
HIDDEN = "?"

FORMAT_STANDARD = "AAA-BBB-CCC"
FORMAT_EXTENDED = "AAA-BBB-CCC-DDD"


def split_emblem_code(code: str | None) -> list[str]:
    """Turn an emblem code into its ordered groups.

    Dashed codes are split on the dash; a dash-free code is chunked into groups
    of three characters.
    """
    raw = (code or "").strip()
    if not raw:
        return []
    if "-" in raw:
        return [part for part in raw.split("-") if part]
    return [raw[i:i + GROUP_SIZE] for i in range(0, len(raw), GROUP_SIZE)]


def code_format(target_code: Sequence[str]) -> str:
    return FORMAT_EXTENDED if len(target_code) == 4 else FORMAT_STANDARD


def generate_pattern(target_code: Sequence[str]) -> dict[str, dict[str, str]]:
    """Map each three-character group to its section of fragment keys.

    Groups that are not exactly three characters long, and anything past the
    fourth group, are skipped.
    """
    pattern: dict[str, dict[str, str]] = {}
    for index, group in enumerate(target_code):
        if index >= len(SECTIONS):
            break
        if len(group) != GROUP_SIZE:
            continue
        section = SECTIONS[index]
        letter = section[0]
        pattern[section] = {f"{letter}{pos + 1}": char for pos, char in enumerate(group)}
    return pattern


def count_fragments(pattern: Mapping[str, Mapping[str, str]]) -> int:
    return sum(len(pattern[section]) for section in SECTIONS if pattern.get(section))


def count_collected(pattern: Mapping[str, Mapping[str, str]], fragments_found: Iterable[str]) -> int:
    """Count held keys that belong to ``pattern``; stray keys are ignored."""
    found = set(fragments_found or [])
    return sum(
        1
        for section in SECTIONS
        for key in (pattern.get(section) or {})
        if key in found
    )


def completion_percent(found: int, total: int) -> int:
    """Whole percentage with halves rounded up, 0 when there is nothing to find."""
    if total <= 0:
        return 0
    ratio = Decimal(found) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def reveal_progress(
    pattern: Mapping[str, Mapping[str, str]],
    target_code: Sequence[str],
    fragments_found: Iterable[str],
) -> dict[str, object]:
    found = set(fragments_found or [])
    revealed: dict[str, dict[str, str]] = {}
    display_parts: list[str] = []
    collected = 0
    total = 0

    for section in SECTIONS:
        section_pattern = pattern.get(section)
        if not section_pattern:
            continue
        revealed[section] = {}
        chars: list[str] = []
        for key, char in section_pattern.items():
            total += 1
            if key in found:
                collected += 1
                revealed[section][key] = char
                chars.append(char)
            else:
                revealed[section][key] = HIDDEN
                chars.append(HIDDEN)
        display_parts.append("-".join(chars))

    can_claim = total > 0 and collected == total
    result: dict[str, object] = {
        "format": code_format(target_code),
        "pattern": revealed,
        "display_code": " | ".join(display_parts),
        "collected": collected,
        "total": total,
        "progress": completion_percent(collected, total),
        "can_claim": can_claim,
    }
    if can_claim:
        result["full_code"] = "-".join(target_code)
    return result
