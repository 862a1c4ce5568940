"""Validation report and pitch deck generation for ventures entering report_ready."""

import json
import logging

from . import config
from .prompts import REPORT_PROMPT, REPORT_SYSTEM
from .state import BREAKDOWN_DIMENSIONS, PITCH_DECK_SLIDES, REPORT_READY
from .tools import REPORT_TOOL, normalize_report, read_tool_payload

logger = logging.getLogger("copilot.report")


class ReportGenerationError(Exception):
    """The report collaborator failed or returned an unusable report."""


def generate_report(client, kg: dict) -> dict:
    """One request to the report model. Returns {"validation", "pitch_deck"}."""
    try:
        response = client.messages.create(
            model=config.REPORT_MODEL,
            max_tokens=config.REPORT_MAX_TOKENS,
            system=REPORT_SYSTEM,
            messages=[{
                "role": "user",
                "content": REPORT_PROMPT.format(knowledge_graph=json.dumps(kg, indent=2)),
            }],
            tools=[REPORT_TOOL],
            tool_choice={"type": "tool", "name": REPORT_TOOL["name"]},
        )
        logger.debug(
            "API usage - input_tokens: %d, output_tokens: %d, stop_reason: %s",
            response.usage.input_tokens, response.usage.output_tokens, response.stop_reason,
        )
        payload = read_tool_payload(response, REPORT_TOOL["name"])
    except Exception as e:
        raise ReportGenerationError(str(e)) from e

    report = normalize_report(payload)
    if report is None:
        raise ReportGenerationError("Report payload failed validation")
    return report


def ensure_report(client, venture: dict) -> bool:
    """Attach a report to a report_ready venture that does not have one yet.

    Safe to call on every turn: a venture outside report_ready, or one that
    already has a validation output, is left alone. Updates `venture` in
    place and returns True only when a new report was attached. Failures
    are logged and leave outputs untouched; there is no retry here.
    """
    if venture["stage"] != REPORT_READY:
        return False
    outputs = venture["knowledge_graph"].setdefault("outputs", {})
    if outputs.get("validation"):
        return False

    try:
        report = generate_report(client, venture["knowledge_graph"])
    except ReportGenerationError as e:
        logger.warning("Report generation failed for venture %s: %s", venture["id"], e)
        return False

    outputs["validation"] = report["validation"]
    outputs["pitch_deck"] = report["pitch_deck"]
    logger.info(
        "Report attached to venture %s: score=%s verdict=%s",
        venture["id"], report["validation"]["score"], report["validation"]["verdict"],
    )
    return True


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def render_report_markdown(venture: dict) -> str:
    """Render the validation report + pitch deck outline as a markdown document."""
    kg = venture["knowledge_graph"]
    outputs = kg.get("outputs") or {}
    validation = outputs.get("validation")
    if not validation:
        return "WARNING: No validation report yet. The report is still being generated."

    core = kg.get("core_inputs") or {}
    verdict = validation["verdict"].replace("_", " ").title()
    breakdown_rows = "".join(
        f"| {dim.replace('_', ' ').title()} | {validation['breakdown'][dim]} |\n"
        for dim in BREAKDOWN_DIMENSIONS
    )

    flags = kg.get("red_flags") or []
    flag_text = "\n".join(
        f"- **[{f['severity'].upper()}] {f['type']}:** {f['message']}"
        + (f" _Suggestion: {f['suggestion']}_" if f.get("suggestion") else "")
        for f in flags
    )

    slides_text = ""
    for slide_key in PITCH_DECK_SLIDES:
        slide = (outputs.get("pitch_deck") or {}).get(slide_key)
        if not slide:
            continue
        slides_text += f"### {slide['title']}\n{_bullets(slide['bullets'])}\n\n_Source: {slide['source'] or 'n/a'}_\n\n"

    return f"""# Validation Report: {core.get('business_idea', '_Unnamed venture_')}

**Score: {validation['score']}/100 — {verdict}**

| Dimension | Score |
|-----------|-------|
{breakdown_rows}
## Strengths
{_bullets(validation['strengths']) or '_None listed_'}

## Weaknesses
{_bullets(validation['weaknesses']) or '_None listed_'}

## Risks
{_bullets(validation['risks']) or '_None listed_'}

## Recommendations
{_bullets(validation['recommendations']) or '_None listed_'}

## Red Flags
{flag_text or '_No red flags raised_'}

## Pitch Deck Outline

{slides_text or '_Not generated_'}"""
