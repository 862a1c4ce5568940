"""Unit tests for venture_copilot.report — report generation, attach-once, markdown."""

from unittest.mock import MagicMock

import pytest

from tests.conftest import _fresh_venture, _full_core_graph, _red_flag, _report_payload
from tests.unit.conftest import _make_anthropic_response, _report_response
from venture_copilot.report import (
    ReportGenerationError,
    ensure_report,
    generate_report,
    render_report_markdown,
)


@pytest.fixture
def report_client():
    client = MagicMock()
    client.messages.create.return_value = _report_response(_report_payload())
    return client


# ===================================================================
# generate_report
# ===================================================================


class TestGenerateReport:
    def test_returns_validation_and_deck(self, report_client, full_core_graph):
        report = generate_report(report_client, full_core_graph)
        assert report["validation"]["score"] == 72
        assert len(report["pitch_deck"]) == 6

    def test_forces_submit_report_tool(self, report_client, full_core_graph):
        generate_report(report_client, full_core_graph)
        kwargs = report_client.messages.create.call_args.kwargs
        assert kwargs["tool_choice"] == {"type": "tool", "name": "submit_report"}
        assert kwargs["tools"][0]["name"] == "submit_report"
        assert "coffee subscription box" in kwargs["messages"][0]["content"]

    def test_api_error_wrapped(self, full_core_graph):
        client = MagicMock()
        client.messages.create.side_effect = RuntimeError("overloaded")
        with pytest.raises(ReportGenerationError, match="overloaded"):
            generate_report(client, full_core_graph)

    def test_invalid_payload_raises(self, full_core_graph):
        client = MagicMock()
        client.messages.create.return_value = _report_response(_report_payload(score=140))
        with pytest.raises(ReportGenerationError):
            generate_report(client, full_core_graph)

    def test_unparseable_text_raises(self, full_core_graph):
        client = MagicMock()
        client.messages.create.return_value = _make_anthropic_response("Sorry, I cannot do that.")
        with pytest.raises(ReportGenerationError):
            generate_report(client, full_core_graph)


# ===================================================================
# ensure_report
# ===================================================================


class TestEnsureReport:
    def test_attaches_report_in_report_ready(self, report_client):
        venture = _fresh_venture("report_ready", _full_core_graph())
        assert ensure_report(report_client, venture) is True
        outputs = venture["knowledge_graph"]["outputs"]
        assert outputs["validation"]["verdict"] == "moderate_fit"
        assert set(outputs["pitch_deck"]) == set(_report_payload()["pitch_deck"])

    @pytest.mark.parametrize("stage", ["discovery", "analysis"])
    def test_noop_outside_report_ready(self, report_client, stage):
        venture = _fresh_venture(stage, _full_core_graph())
        assert ensure_report(report_client, venture) is False
        report_client.messages.create.assert_not_called()
        assert venture["knowledge_graph"]["outputs"] == {}

    def test_existing_report_not_regenerated(self, report_client):
        graph = _full_core_graph(outputs={"validation": {"score": 40}})
        venture = _fresh_venture("report_ready", graph)
        assert ensure_report(report_client, venture) is False
        report_client.messages.create.assert_not_called()
        assert venture["knowledge_graph"]["outputs"]["validation"] == {"score": 40}

    def test_failure_leaves_outputs_untouched(self):
        client = MagicMock()
        client.messages.create.side_effect = RuntimeError("timeout")
        venture = _fresh_venture("report_ready", _full_core_graph())
        assert ensure_report(client, venture) is False
        assert venture["knowledge_graph"]["outputs"] == {}
        assert venture["stage"] == "report_ready"

    def test_second_call_after_failure_attaches(self, report_client):
        report_client.messages.create.side_effect = [
            RuntimeError("timeout"),
            _report_response(_report_payload(score=55, verdict="weak_fit")),
        ]
        venture = _fresh_venture("report_ready", _full_core_graph())
        assert ensure_report(report_client, venture) is False
        assert ensure_report(report_client, venture) is True
        assert venture["knowledge_graph"]["outputs"]["validation"]["score"] == 55


# ===================================================================
# render_report_markdown
# ===================================================================


class TestRenderReportMarkdown:
    def test_missing_report_is_warning(self):
        assert render_report_markdown(_fresh_venture()).startswith("WARNING")

    def test_full_render(self, report_client):
        graph = _full_core_graph(red_flags=[
            _red_flag("Import duties", "Regulatory", "medium", id="RF1", suggestion="Source locally"),
        ])
        venture = _fresh_venture("report_ready", graph)
        ensure_report(report_client, venture)

        md = render_report_markdown(venture)
        assert md.startswith("# Validation Report: coffee subscription box")
        assert "**Score: 72/100" in md
        assert "Moderate Fit" in md
        assert "| Problem Clarity | 80 |" in md
        assert "- Run 20 customer interviews" in md
        assert "**[MEDIUM] Regulatory:** Import duties _Suggestion: Source locally_" in md
        assert "### Why Now Slide" in md

    def test_no_red_flags_placeholder(self, report_client):
        venture = _fresh_venture("report_ready", _full_core_graph())
        ensure_report(report_client, venture)
        assert "_No red flags raised_" in render_report_markdown(venture)
