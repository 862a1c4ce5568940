"""Root conftest: canonical venture / graph builders and shared fixtures."""

import pytest

from venture_copilot.state import create_empty_knowledge_graph, create_venture

FULL_CORE_INPUTS = {
    "context_type": "new_idea",
    "business_idea": "coffee subscription box",
    "target_customer": "remote workers in Bangalore",
    "problem_statement": "good specialty coffee is hard to find at home",
    "solution_differentiation": "single-origin beans roasted weekly",
    "location": "Bangalore",
}


def _fresh_graph(**sections) -> dict:
    """Build a graph with the canonical shape, overriding whole sections."""
    graph = create_empty_knowledge_graph()
    graph.update(sections)
    return graph


def _full_core_graph(**sections) -> dict:
    """Graph with all six core inputs filled and nothing else."""
    return _fresh_graph(core_inputs=dict(FULL_CORE_INPUTS), **sections)


def _fresh_venture(stage="discovery", graph=None, venture_id="venture-1") -> dict:
    venture = create_venture(venture_id)
    venture["stage"] = stage
    if graph is not None:
        venture["knowledge_graph"] = graph
    return venture


def _competitor(name, ctype="global", **extra) -> dict:
    return {"name": name, "type": ctype, **extra}


def _red_flag(message, flag_type="Financial", severity="high", **extra) -> dict:
    return {"type": flag_type, "message": message, "severity": severity, **extra}


def _report_payload(score=72, verdict="moderate_fit") -> dict:
    slides = {
        slide: {"title": slide.replace("_", " ").title(), "bullets": ["point one", "point two"], "source": "core_inputs"}
        for slide in (
            "problem_slide", "solution_slide", "market_slide",
            "competition_slide", "why_now_slide", "target_customer_slide",
        )
    }
    return {
        "validation": {
            "score": score,
            "breakdown": {
                "problem_clarity": 80,
                "solution_fit": 70,
                "market_opportunity": 65,
                "competitive_advantage": 60,
            },
            "verdict": verdict,
            "strengths": ["Clear customer segment"],
            "weaknesses": ["No pricing yet"],
            "risks": ["Import duties on beans"],
            "recommendations": ["Run 20 customer interviews"],
        },
        "pitch_deck": slides,
    }


@pytest.fixture
def empty_graph():
    return _fresh_graph()


@pytest.fixture
def full_core_graph():
    return _full_core_graph()


@pytest.fixture
def report_payload():
    return _report_payload()
