"""Merge extractor output into a venture's knowledge graph.

Section policy:
- core_inputs, refinements, validation_evidence: overwrite field by field,
  but only with non-null values.
- market_data: scalars as above; competitors appended when their
  case-insensitive name is new.
- red_flags: appended when their (type, message) pair is new.
- should_reset: discards everything and returns the empty graph.

Nothing here mutates its inputs.
"""

import copy
import logging

from .state import create_empty_knowledge_graph

logger = logging.getLogger("copilot.merge")

_OVERWRITE_SECTIONS = ("core_inputs", "refinements", "validation_evidence")


def competitor_key(competitor: dict) -> str:
    return competitor["name"].lower()


def red_flag_key(flag: dict) -> tuple[str, str]:
    return (flag["type"], flag["message"])


def _has_identity(entity, fields: tuple[str, ...]) -> bool:
    if not isinstance(entity, dict):
        return False
    return all(isinstance(entity.get(f), str) and entity[f].strip() for f in fields)


def _overwrite_present(target: dict, updates: dict | None) -> None:
    if not isinstance(updates, dict):
        return
    for key, value in updates.items():
        if value is not None:
            target[key] = value


def _without_nulls(entity: dict) -> dict:
    return {k: v for k, v in entity.items() if v is not None}


def _append_competitors(existing: list, incoming: list | None) -> list:
    seen = {competitor_key(c) for c in existing if _has_identity(c, ("name",))}
    merged = list(existing)
    for competitor in incoming or []:
        if not _has_identity(competitor, ("name",)):
            logger.debug("Skipped competitor without a name: %r", competitor)
            continue
        key = competitor_key(competitor)
        if key in seen:
            continue
        seen.add(key)
        merged.append(_without_nulls(competitor))
    return merged


def _next_flag_number(flags: list) -> int:
    highest = 0
    for flag in flags:
        fid = str(flag.get("id", ""))
        if fid.startswith("RF") and fid[2:].isdigit():
            highest = max(highest, int(fid[2:]))
    return highest + 1


def _append_red_flags(existing: list, incoming: list | None) -> list:
    seen = {red_flag_key(f) for f in existing if _has_identity(f, ("type", "message"))}
    merged = list(existing)
    counter = _next_flag_number(existing)
    for flag in incoming or []:
        if not _has_identity(flag, ("type", "message")):
            logger.debug("Skipped red flag without type/message: %r", flag)
            continue
        key = red_flag_key(flag)
        if key in seen:
            continue
        seen.add(key)
        new_flag = _without_nulls(flag)
        if not new_flag.get("id"):
            new_flag["id"] = f"RF{counter}"
            counter += 1
        merged.append(new_flag)
    return merged


def merge_extraction(current: dict, extracted: dict | None) -> dict:
    """Return a new graph with `extracted` folded into `current`.

    `extracted is None` means extraction failed upstream; the graph comes
    back unchanged.
    """
    if extracted is None:
        return current

    if extracted.get("should_reset") is True:
        logger.info("Reset requested, knowledge graph cleared")
        return create_empty_knowledge_graph()

    result = copy.deepcopy(current)

    for section in _OVERWRITE_SECTIONS:
        result.setdefault(section, {})
        _overwrite_present(result[section], extracted.get(section))

    market_updates = extracted.get("market_data")
    market = result.setdefault("market_data", {"competitors": []})
    market.setdefault("competitors", [])
    if isinstance(market_updates, dict):
        scalars = {k: v for k, v in market_updates.items() if k != "competitors"}
        _overwrite_present(market, scalars)
        before = len(market["competitors"])
        market["competitors"] = _append_competitors(market["competitors"], market_updates.get("competitors"))
        if len(market["competitors"]) > before:
            logger.debug("Appended %d competitor(s)", len(market["competitors"]) - before)

    result["red_flags"] = _append_red_flags(result.get("red_flags") or [], extracted.get("red_flags"))
    return result


def diff_knowledge_graph(before: dict, after: dict) -> dict:
    """Fields that changed between two graphs, shaped like the graph itself.

    Lists only report newly appended entries. A full reset is reported as
    {"reset": True}.
    """
    if after == create_empty_knowledge_graph() and before != after:
        return {"reset": True}

    changes = {}
    for section in (*_OVERWRITE_SECTIONS, "market_data", "outputs"):
        old = before.get(section) or {}
        new = after.get(section) or {}
        section_changes = {
            key: value
            for key, value in new.items()
            if key != "competitors" and old.get(key) != value
        }
        if section == "market_data":
            old_keys = {competitor_key(c) for c in old.get("competitors") or []}
            added = [c for c in new.get("competitors") or [] if competitor_key(c) not in old_keys]
            if added:
                section_changes["competitors"] = added
        if section_changes:
            changes[section] = section_changes

    old_flags = {red_flag_key(f) for f in before.get("red_flags") or []}
    added_flags = [f for f in after.get("red_flags") or [] if red_flag_key(f) not in old_flags]
    if added_flags:
        changes["red_flags"] = added_flags
    return changes
