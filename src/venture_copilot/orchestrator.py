import copy
import json
import logging
from urllib.parse import quote

from anthropic import Anthropic, APIConnectionError, InternalServerError, RateLimitError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from . import config
from .completion import get_completion_percentage, get_missing_fields
from .locks import VentureLocks
from .merge import diff_knowledge_graph, merge_extraction
from .persistence import VentureStore
from .prompts import CONSULTANT_PROMPT, EXTRACTOR_PROMPT, EXTRACTOR_SYSTEM
from .report import ensure_report, render_report_markdown
from .stages import is_report_transition, resolve_stage
from .state import REPORT_READY, now_iso
from .tools import EXTRACTION_TOOL, normalize_extraction, read_tool_payload

logger = logging.getLogger("copilot.orchestrator")

# Created on first use; tests patch this attribute.
client = None

# Longest history sent to the consultant
MAX_HISTORY_MESSAGES = 40

WEB_SEARCH_TOOL = {
    "type": "web_search_20250305",
    "name": "web_search",
    "max_uses": config.WEB_SEARCH_MAX_USES,
}


def _get_client():
    global client
    if client is None:
        client = Anthropic()
    return client


@retry(
    wait=wait_exponential(multiplier=1, min=2, max=30),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type((RateLimitError, InternalServerError, APIConnectionError)),
    reraise=True,
)
def _create_extraction(**kwargs):
    """Extractor call with retry/backoff on rate limits and server errors."""
    return _get_client().messages.create(**kwargs)


def extract_facts(venture: dict, messages: list, user_message: str) -> dict | None:
    """Ask the extractor for facts in the latest message.

    Returns a sanitised ExtractedFacts dict, or None when extraction failed
    for any reason. Failure is never surfaced to the user.
    """
    recent = messages[-config.RECENT_MESSAGE_WINDOW:]
    recent_text = "\n".join(f"{m['role']}: {m['content']}" for m in recent)

    prompt = EXTRACTOR_PROMPT.format(
        knowledge_graph=json.dumps(venture["knowledge_graph"], indent=2),
        stage=venture["stage"],
        recent_messages=recent_text or "(No earlier messages)",
        user_message=user_message,
    )

    try:
        response = _create_extraction(
            model=config.EXTRACTOR_MODEL,
            max_tokens=config.EXTRACTOR_MAX_TOKENS,
            system=EXTRACTOR_SYSTEM,
            messages=[{"role": "user", "content": prompt}],
            tools=[EXTRACTION_TOOL],
            tool_choice={"type": "tool", "name": EXTRACTION_TOOL["name"]},
        )
        logger.debug(
            "API usage - input_tokens: %d, output_tokens: %d, stop_reason: %s",
            response.usage.input_tokens, response.usage.output_tokens, response.stop_reason,
        )
        raw = read_tool_payload(response, EXTRACTION_TOOL["name"])
    except Exception as e:
        logger.warning("Extraction failed (non-fatal): %s", e)
        return None

    extracted = normalize_extraction(raw)
    if extracted is None:
        logger.warning("Extraction payload was not an object: %r", raw)
    else:
        logger.info("Extracted: %s", json.dumps(extracted))
    return extracted


def process_turn(venture: dict, messages: list, user_message: str) -> dict:
    """Run one turn of the engine on a copy of `venture`.

    extract -> merge -> score -> resolve stage -> report trigger.
    Nothing is persisted here; the returned result carries the new venture.
    """
    working = copy.deepcopy(venture)
    previous_stage = working["stage"]
    previous_kg = working["knowledge_graph"]

    extracted = extract_facts(working, messages, user_message)
    merged_kg = merge_extraction(previous_kg, extracted)
    if merged_kg is previous_kg:
        merged_kg = copy.deepcopy(previous_kg)

    completion = get_completion_percentage(merged_kg)
    next_stage = resolve_stage(previous_stage, extracted, merged_kg, completion)

    working["knowledge_graph"] = merged_kg
    working["stage"] = next_stage

    report_triggered = is_report_transition(previous_stage, next_stage)
    if report_triggered:
        logger.info("Venture %s entered report_ready — requesting report", working["id"])
    report_attached = False
    if next_stage == REPORT_READY:
        # Also retries a report that failed on an earlier turn
        try:
            report_client = _get_client()
        except Exception as e:
            logger.warning("Report client unavailable for venture %s: %s", working["id"], e)
        else:
            report_attached = ensure_report(report_client, working)

    working["updated_at"] = now_iso()
    return {
        "venture": working,
        "previous_stage": previous_stage,
        "stage": next_stage,
        "completion": completion,
        "extracted": extracted,
        "changes": diff_knowledge_graph(previous_kg, merged_kg),
        "report_triggered": report_triggered,
        "report_attached": report_attached,
    }


def run_turn(store: VentureStore, locks: VentureLocks, venture_id: str, user_message: str) -> dict:
    """Process one user message for a venture and commit the result.

    Turns for the same venture are serialised through `locks`. The store is
    written once, after the whole turn succeeded.
    """
    with locks.hold(venture_id):
        venture, messages = store.load(venture_id)
        logger.info("=== Venture %s turn %d start ===", venture_id, len(messages) // 2 + 1)

        result = process_turn(venture, messages, user_message)

        messages = messages + [{"role": "user", "content": user_message, "created_at": now_iso()}]
        store.save(result["venture"], messages)
        if result["report_attached"]:
            store.save_artifact(venture_id, "validation_report.md", render_report_markdown(result["venture"]))

    result["messages"] = messages
    logger.info(
        "Turn committed: stage=%s completion=%d%% changes=%s",
        result["stage"], result["completion"], list(result["changes"]),
    )
    return result


def _history_for_consultant(messages: list) -> list:
    history = [{"role": m["role"], "content": m["content"]} for m in messages]
    if len(history) > MAX_HISTORY_MESSAGES:
        history = history[-MAX_HISTORY_MESSAGES:]
    # The API expects the conversation to open with a user turn
    while history and history[0]["role"] != "user":
        history.pop(0)
    return history


def _format_red_flags(kg: dict) -> str:
    flags = kg.get("red_flags") or []
    if not flags:
        return "No major flags yet."
    return "\n".join(f"⚠️ DISCUSS THIS: {f['message']}" for f in flags)


def build_consultant_prompt(venture: dict) -> str:
    kg = venture["knowledge_graph"]
    missing = get_missing_fields(kg)
    return CONSULTANT_PROMPT.format(
        stage=venture["stage"],
        completion=get_completion_percentage(kg),
        missing_fields=", ".join(missing) if missing else "none",
        knowledge_graph=json.dumps(kg, indent=2),
        red_flags=_format_red_flags(kg),
    )


def stream_consultant_reply(venture: dict, messages: list):
    """Yield the consultant's reply text as it streams."""
    kwargs = {
        "model": config.MODEL_NAME,
        "max_tokens": config.CONSULTANT_MAX_TOKENS,
        "system": build_consultant_prompt(venture),
        "messages": _history_for_consultant(messages),
    }
    if config.ENABLE_WEB_SEARCH:
        kwargs["tools"] = [WEB_SEARCH_TOOL]

    produced = False
    try:
        with _get_client().messages.stream(**kwargs) as stream:
            for text in stream.text_stream:
                if text:
                    produced = True
                    yield text
    except Exception as e:
        logger.warning("Consultant stream failed: %s", e)
        if produced:
            yield "\n\n---\n⚠️ I encountered an error mid-response. What I've shared above is still valid. Please send your next message and I'll continue."
        else:
            yield "I hit a temporary issue processing your message. Your progress is saved — please try again."


def stream_and_record_reply(store: VentureStore, locks: VentureLocks, result: dict):
    """Stream the reply for a committed turn, then store it as the assistant message."""
    venture = result["venture"]
    chunks = []
    for text in stream_consultant_reply(venture, result["messages"]):
        chunks.append(text)
        yield text

    reply = "".join(chunks)
    if reply.strip():
        with locks.hold(venture["id"]):
            store.append_message(venture["id"], {"role": "assistant", "content": reply, "created_at": now_iso()})


def build_turn_metadata(result: dict) -> dict:
    """Response metadata for the client: stage token, completion, changed fields."""
    headers = {
        "X-Stage": result["stage"],
        "X-Completion": str(result["completion"]),
    }
    updates = dict(result["changes"])
    outputs = result["venture"]["knowledge_graph"].get("outputs") or {}
    if outputs.get("validation"):
        updates["outputs"] = outputs
    if updates:
        headers["X-Extraction"] = quote(json.dumps(updates), safe="")
    return headers
