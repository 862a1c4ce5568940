import json
import logging

from .state import (
    BREAKDOWN_DIMENSIONS,
    COMPETITOR_OPTIONAL_FIELDS,
    COMPETITOR_TYPES,
    CONTEXT_TYPES,
    CORE_INPUT_FIELDS,
    MARKET_SCALAR_FIELDS,
    PITCH_DECK_SLIDES,
    REFINEMENT_FIELDS,
    REPORT_LIST_FIELDS,
    SEVERITIES,
    STAGES,
    VALIDATION_EVIDENCE_FIELDS,
    VERDICTS,
)

logger = logging.getLogger("copilot.tools")


def _nullable(schema: dict) -> dict:
    return {"anyOf": [schema, {"type": "null"}]}


_STRING = {"type": "string"}
_SLIDE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": _STRING,
        "bullets": {"type": "array", "items": _STRING},
        "source": {"type": "string", "description": "Which fact in the knowledge graph backs this slide"},
    },
    "required": ["title", "bullets", "source"],
}

EXTRACTION_TOOL = {
    "name": "record_extraction",
    "description": (
        "Record business facts stated in the user's latest message. "
        "Use null for anything the user did not state. Never repeat facts already in the knowledge state unless the user changed them."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "core_inputs": _nullable({
                "type": "object",
                "properties": {
                    "context_type": _nullable({"type": "string", "enum": list(CONTEXT_TYPES)}),
                    "business_idea": _nullable(_STRING),
                    "target_customer": _nullable(_STRING),
                    "problem_statement": _nullable(_STRING),
                    "solution_differentiation": _nullable(_STRING),
                    "location": _nullable(_STRING),
                },
            }),
            "refinements": _nullable({
                "type": "object",
                "properties": {field: _nullable(_STRING) for field in REFINEMENT_FIELDS},
            }),
            "validation_evidence": _nullable({
                "type": "object",
                "properties": {
                    "interviews_conducted": _nullable({"type": "boolean"}),
                    "interview_count": _nullable({"type": "integer"}),
                    "findings": _nullable(_STRING),
                    "surveys": _nullable({"type": "boolean"}),
                    "pre_orders": _nullable({"type": "boolean"}),
                    "beta_testers": _nullable({"type": "integer"}),
                },
            }),
            "market_data": _nullable({
                "type": "object",
                "properties": {
                    "tam": _nullable(_STRING),
                    "sam": _nullable(_STRING),
                    "som": _nullable(_STRING),
                    "competitors": _nullable({
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": _STRING,
                                "type": {"type": "string", "enum": list(COMPETITOR_TYPES)},
                                "description": _nullable(_STRING),
                            },
                            "required": ["name", "type"],
                        },
                    }),
                },
            }),
            "red_flags": _nullable({
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": _STRING,
                        "type": {"type": "string", "description": "Regulatory, Technical, Financial, ..."},
                        "message": _STRING,
                        "severity": {"type": "string", "enum": list(SEVERITIES)},
                        "suggestion": _nullable(_STRING),
                    },
                    "required": ["type", "message", "severity"],
                },
            }),
            "suggested_stage": _nullable({"type": "string", "enum": list(STAGES)}),
            "should_reset": _nullable({"type": "boolean", "description": "True only if the user wants to start over"}),
        },
    },
}

REPORT_TOOL = {
    "name": "submit_report",
    "description": "Submit the final validation report and the six-slide pitch deck outline.",
    "input_schema": {
        "type": "object",
        "properties": {
            "validation": {
                "type": "object",
                "properties": {
                    "score": {"type": "number", "minimum": 0, "maximum": 100},
                    "breakdown": {
                        "type": "object",
                        "properties": {dim: {"type": "number"} for dim in BREAKDOWN_DIMENSIONS},
                        "required": list(BREAKDOWN_DIMENSIONS),
                    },
                    "verdict": {"type": "string", "enum": list(VERDICTS)},
                    **{field: {"type": "array", "items": _STRING} for field in REPORT_LIST_FIELDS},
                },
                "required": ["score", "breakdown", "verdict", *REPORT_LIST_FIELDS],
            },
            "pitch_deck": {
                "type": "object",
                "properties": {slide: _SLIDE_SCHEMA for slide in PITCH_DECK_SLIDES},
                "required": list(PITCH_DECK_SLIDES),
            },
        },
        "required": ["validation", "pitch_deck"],
    },
}


# --- Reading tool payloads off a response ---

def read_tool_payload(response, tool_name: str):
    """Return the input of the named tool_use block, or JSON parsed from text.

    Raises ValueError when the response carries neither.
    """
    text = ""
    for block in response.content:
        if block.type == "tool_use" and block.name == tool_name:
            return block.input
        if block.type == "text":
            text += block.text

    raw = text.strip()
    # Handle potential markdown code fence
    if raw.startswith("```"):
        raw = raw.split("\n", 1)[1].rsplit("```", 1)[0].strip()
    if not raw:
        raise ValueError(f"No {tool_name} call or JSON text in response")
    return json.loads(raw)


# --- Sanitising extractor output ---

def _text(value):
    if isinstance(value, str) and value.strip():
        return value
    return None


def _choice(value, allowed):
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return None


def _typed(value, expected):
    if expected is bool:
        return value if isinstance(value, bool) else None
    if expected is int:
        if isinstance(value, bool):
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return value if isinstance(value, int) and value >= 0 else None
    return _text(value)


def _clean_section(raw, cleaners: dict) -> dict | None:
    if not isinstance(raw, dict):
        return None
    section = {}
    for field, clean in cleaners.items():
        if field in raw:
            value = clean(raw[field])
            if value is not None:
                section[field] = value
            elif raw[field] is not None:
                logger.debug("Dropped malformed %s=%r", field, raw[field])
    return section


def _clean_competitor(raw) -> dict | None:
    if not isinstance(raw, dict):
        return None
    name = _text(raw.get("name"))
    ctype = _choice(raw.get("type"), COMPETITOR_TYPES)
    if name is None or ctype is None:
        logger.debug("Dropped malformed competitor %r", raw)
        return None
    competitor = {"name": name.strip(), "type": ctype}
    for field in COMPETITOR_OPTIONAL_FIELDS:
        value = _text(raw.get(field))
        if value is not None:
            competitor[field] = value
    return competitor


def _clean_red_flag(raw) -> dict | None:
    if not isinstance(raw, dict):
        return None
    flag_type = _text(raw.get("type"))
    message = _text(raw.get("message"))
    severity = _choice(raw.get("severity"), SEVERITIES)
    if flag_type is None or message is None or severity is None:
        logger.debug("Dropped malformed red flag %r", raw)
        return None
    flag = {"type": flag_type, "message": message, "severity": severity}
    if _text(raw.get("id")):
        flag["id"] = raw["id"]
    if _text(raw.get("suggestion")):
        flag["suggestion"] = raw["suggestion"]
    return flag


def normalize_extraction(raw) -> dict | None:
    """Sanitise extractor output into an ExtractedFacts dict.

    Values of the wrong type, unknown enum members, blank strings and list
    entries missing their identity fields are treated as absent. Returns None
    only when the payload is not an object at all.
    """
    if not isinstance(raw, dict):
        return None

    core_cleaners = {field: _text for field in CORE_INPUT_FIELDS}
    core_cleaners["context_type"] = lambda v: _choice(v, CONTEXT_TYPES)

    extracted = {}
    sections = {
        "core_inputs": core_cleaners,
        "refinements": {field: _text for field in REFINEMENT_FIELDS},
        "validation_evidence": {
            field: (lambda v, t=expected: _typed(v, t))
            for field, expected in VALIDATION_EVIDENCE_FIELDS.items()
        },
        "market_data": {field: _text for field in MARKET_SCALAR_FIELDS},
    }
    for name, cleaners in sections.items():
        section = _clean_section(raw.get(name), cleaners)
        if section is not None:
            extracted[name] = section

    market = raw.get("market_data")
    if isinstance(market, dict) and isinstance(market.get("competitors"), list):
        competitors = [c for c in map(_clean_competitor, market["competitors"]) if c]
        extracted.setdefault("market_data", {})["competitors"] = competitors

    if isinstance(raw.get("red_flags"), list):
        extracted["red_flags"] = [f for f in map(_clean_red_flag, raw["red_flags"]) if f]

    stage = _choice(raw.get("suggested_stage"), STAGES)
    if stage is not None:
        extracted["suggested_stage"] = stage
    if isinstance(raw.get("should_reset"), bool):
        extracted["should_reset"] = raw["should_reset"]

    return extracted


# --- Validating report output ---

def _number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def _clean_slide(raw) -> dict | None:
    if not isinstance(raw, dict) or not _text(raw.get("title")):
        return None
    return {
        "title": raw["title"],
        "bullets": _string_list(raw.get("bullets")),
        "source": raw.get("source") if isinstance(raw.get("source"), str) else "",
    }


def normalize_report(raw) -> dict | None:
    """Validate a submit_report payload. Returns None if any required part is unusable."""
    if not isinstance(raw, dict):
        return None
    validation = raw.get("validation")
    pitch_deck = raw.get("pitch_deck")
    if not isinstance(validation, dict) or not isinstance(pitch_deck, dict):
        return None

    score = _number(validation.get("score"))
    if score is None or not 0 <= score <= 100:
        return None
    verdict = _choice(validation.get("verdict"), VERDICTS)
    if verdict is None:
        return None
    raw_breakdown = validation.get("breakdown")
    if not isinstance(raw_breakdown, dict):
        return None
    breakdown = {}
    for dim in BREAKDOWN_DIMENSIONS:
        value = _number(raw_breakdown.get(dim))
        if value is None:
            return None
        breakdown[dim] = value

    slides = {}
    for slide in PITCH_DECK_SLIDES:
        cleaned = _clean_slide(pitch_deck.get(slide))
        if cleaned is None:
            return None
        slides[slide] = cleaned

    report_validation = {
        "score": round(score),
        "breakdown": breakdown,
        "verdict": verdict,
    }
    for field in REPORT_LIST_FIELDS:
        report_validation[field] = _string_list(validation.get(field))
    return {"validation": report_validation, "pitch_deck": slides}
