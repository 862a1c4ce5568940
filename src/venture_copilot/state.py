"""Knowledge graph and venture shapes.

Everything here is a plain JSON-compatible dict. Optional scalar fields are
represented by key presence: a missing key means "not known yet".
"""

import copy
import uuid
from datetime import datetime, timezone

DISCOVERY = "discovery"
ANALYSIS = "analysis"
REPORT_READY = "report_ready"
STAGES = (DISCOVERY, ANALYSIS, REPORT_READY)

CONTEXT_TYPES = ("new_idea", "existing_business", "new_product", "pivot")
COMPETITOR_TYPES = ("global", "regional", "local")
SEVERITIES = ("low", "medium", "high")
VERDICTS = ("strong_fit", "moderate_fit", "weak_fit", "no_fit")

CORE_INPUT_FIELDS = (
    "context_type",
    "business_idea",
    "target_customer",
    "problem_statement",
    "solution_differentiation",
    "location",
)
REFINEMENT_FIELDS = (
    "target_narrowed",
    "differentiation_clarified",
    "additional_context",
    "founder_market_fit",
)
# field -> expected type; bools never count as ints
VALIDATION_EVIDENCE_FIELDS = {
    "interviews_conducted": bool,
    "interview_count": int,
    "findings": str,
    "surveys": bool,
    "pre_orders": bool,
    "beta_testers": int,
}
MARKET_SCALAR_FIELDS = ("tam", "sam", "som", "global_market_size", "global_growth_rate")
COMPETITOR_OPTIONAL_FIELDS = ("description", "funding", "scale", "weakness")

BREAKDOWN_DIMENSIONS = (
    "problem_clarity",
    "solution_fit",
    "market_opportunity",
    "competitive_advantage",
)
REPORT_LIST_FIELDS = ("strengths", "weaknesses", "risks", "recommendations")
PITCH_DECK_SLIDES = (
    "problem_slide",
    "solution_slide",
    "market_slide",
    "competition_slide",
    "why_now_slide",
    "target_customer_slide",
)


def create_empty_knowledge_graph() -> dict:
    """Canonical empty graph. Every reset returns exactly this shape."""
    return {
        "core_inputs": {},
        "refinements": {},
        "validation_evidence": {},
        "market_data": {
            "competitors": [],
        },
        "red_flags": [],
        "outputs": {},
    }


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_venture(venture_id: str | None = None) -> dict:
    timestamp = now_iso()
    return {
        "id": venture_id or str(uuid.uuid4()),
        "stage": DISCOVERY,
        "knowledge_graph": create_empty_knowledge_graph(),
        "created_at": timestamp,
        "updated_at": timestamp,
    }


def normalize_knowledge_graph(saved: dict | None) -> dict:
    """Overlay a saved graph onto the current canonical shape.

    Keeps data written by older versions loadable: missing sections are
    filled with defaults, unknown sections are carried through untouched.
    """
    graph = create_empty_knowledge_graph()
    if not saved:
        return graph
    for section, value in saved.items():
        if section == "market_data" and isinstance(value, dict):
            market = dict(value)
            market["competitors"] = list(market.get("competitors") or [])
            graph["market_data"] = market
        elif section == "red_flags":
            graph["red_flags"] = list(value or [])
        elif section in graph and isinstance(graph[section], dict):
            graph[section] = dict(value or {})
        else:
            graph[section] = copy.deepcopy(value)
    return graph


def normalize_venture(saved: dict) -> dict:
    venture = create_venture(saved.get("id"))
    for key, value in saved.items():
        if key == "knowledge_graph":
            venture["knowledge_graph"] = normalize_knowledge_graph(value)
        elif key == "stage":
            venture["stage"] = value if value in STAGES else DISCOVERY
        else:
            venture[key] = value
    return venture
