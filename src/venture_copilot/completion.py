import math

from .state import CORE_INPUT_FIELDS

CORE_WEIGHT = 60
ANALYSIS_WEIGHT = 40


def get_field_completion(kg: dict) -> dict:
    """Map each core input field to whether it is filled."""
    core = kg.get("core_inputs") or {}
    return {field: bool(core.get(field)) for field in CORE_INPUT_FIELDS}


def get_missing_fields(kg: dict) -> list[str]:
    return [field for field, filled in get_field_completion(kg).items() if not filled]


def _analysis_signals(kg: dict) -> list[bool]:
    market = kg.get("market_data") or {}
    evidence = kg.get("validation_evidence") or {}
    refinements = kg.get("refinements") or {}
    return [
        len(market.get("competitors") or []) > 0,
        bool(evidence.get("interviews_conducted") or evidence.get("findings")),
        bool(market.get("tam") or market.get("sam")),
        bool(refinements.get("additional_context") or refinements.get("differentiation_clarified")),
    ]


def get_completion_percentage(kg: dict) -> int:
    """Score 0-100: 60% from core inputs, 40% from analysis depth.

    Rounded half-up, so the score is stable regardless of float formatting.
    """
    core = get_field_completion(kg)
    core_score = sum(core.values()) * CORE_WEIGHT / len(core)

    signals = _analysis_signals(kg)
    analysis_score = sum(signals) * ANALYSIS_WEIGHT / len(signals)

    return int(math.floor(core_score + analysis_score + 0.5))
