"""Unit-level conftest: mocks for the Anthropic client, store and locks."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from venture_copilot.locks import VentureLocks
from venture_copilot.persistence import VentureStore


# ---------------------------------------------------------------------------
# Anthropic mock helpers
# ---------------------------------------------------------------------------


def _make_anthropic_response(text="", tool_calls=None):
    """Factory for Anthropic API message responses.

    Args:
        text: Text content for the response.
        tool_calls: List of (name, input_dict, id) tuples for tool_use blocks.
    """
    content = []
    if text:
        content.append(SimpleNamespace(type="text", text=text))
    for name, input_dict, tool_id in (tool_calls or []):
        content.append(
            SimpleNamespace(type="tool_use", name=name, input=input_dict, id=tool_id)
        )
    return SimpleNamespace(
        content=content,
        usage=SimpleNamespace(input_tokens=100, output_tokens=50),
        stop_reason="end_turn" if not tool_calls else "tool_use",
    )


def _extraction_response(payload):
    """Extractor response carrying a record_extraction tool call."""
    return _make_anthropic_response(tool_calls=[("record_extraction", payload, "tool_extract")])


def _report_response(payload):
    """Report response carrying a submit_report tool call."""
    return _make_anthropic_response(tool_calls=[("submit_report", payload, "tool_report")])


def _make_stream(chunks, error=None):
    """Context manager mimicking client.messages.stream(...)."""

    def text_stream():
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error

    stream = MagicMock()
    stream.__enter__.return_value = SimpleNamespace(text_stream=text_stream())
    stream.__exit__.return_value = False
    return stream


@pytest.fixture
def mock_anthropic_client():
    """Mock Anthropic client with configurable responses."""
    client = MagicMock()
    client.messages.create.return_value = _extraction_response({})
    client.messages.stream.return_value = _make_stream(["Default response"])
    return client


@pytest.fixture
def patched_client(mock_anthropic_client):
    """Mock client patched into venture_copilot.orchestrator.client."""
    with patch("venture_copilot.orchestrator.client", mock_anthropic_client):
        yield mock_anthropic_client


# ---------------------------------------------------------------------------
# Store + locks
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path):
    """Real VentureStore rooted in a temporary workspace."""
    venture_store = VentureStore(tmp_path / "workspace")
    venture_store.ensure_workspace_exists()
    return venture_store


@pytest.fixture
def locks():
    return VentureLocks()
