import logging

from . import config
from .state import ANALYSIS, DISCOVERY, REPORT_READY

logger = logging.getLogger("copilot.stages")


def was_reset(extracted: dict | None) -> bool:
    """True when the merge for this extraction wiped the graph."""
    return bool(extracted) and extracted.get("should_reset") is True


def resolve_stage(previous_stage: str, extracted: dict | None, merged_kg: dict, completion: int) -> str:
    """Pick the next stage. Checks run in priority order; the first match wins.

    1. An extractor suggestion that differs from the current stage (may move backward).
    2. A full reset sends any later stage back to discovery.
    3. A suggestion equal to the current stage holds it there.
    4. Discovery advances to analysis once completion reaches the threshold.
    5. Otherwise the stage stays put.
    """
    suggested = (extracted or {}).get("suggested_stage")
    if suggested and suggested != previous_stage:
        logger.info("Stage %s -> %s (extractor suggestion)", previous_stage, suggested)
        return suggested

    reset = was_reset(extracted) and not merged_kg.get("core_inputs")
    if reset and previous_stage != DISCOVERY:
        logger.info("Stage %s -> %s (reset)", previous_stage, DISCOVERY)
        return DISCOVERY

    if suggested:
        return previous_stage

    if previous_stage == DISCOVERY and completion >= config.ANALYSIS_THRESHOLD:
        logger.info("Stage %s -> %s (completion %d%%)", previous_stage, ANALYSIS, completion)
        return ANALYSIS

    return previous_stage


def is_report_transition(previous_stage: str, next_stage: str) -> bool:
    return previous_stage != REPORT_READY and next_stage == REPORT_READY
