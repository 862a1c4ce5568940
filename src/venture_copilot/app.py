"""Terminal chat: python -m venture_copilot.app [venture_id]"""

import logging
import sys

from .locks import VentureLocks
from .logging_config import setup_logging
from .orchestrator import run_turn, stream_and_record_reply
from .persistence import VentureNotFoundError, VentureStore

logger = logging.getLogger("copilot.app")

STAGE_LABELS = {
    "discovery": "Discovery",
    "analysis": "Analysis",
    "report_ready": "Report Ready",
}

WELCOME = (
    "Tell me about the business you want to validate — a new idea, an existing business, "
    "a new product, or a pivot. Type 'quit' to leave."
)


def open_venture(store: VentureStore, venture_id: str | None) -> str:
    if venture_id:
        store.load(venture_id)
        return venture_id
    return store.create_venture()["id"]


def main(argv=None) -> int:
    setup_logging()
    argv = sys.argv[1:] if argv is None else argv

    store = VentureStore()
    store.ensure_workspace_exists()
    locks = VentureLocks()

    try:
        venture_id = open_venture(store, argv[0] if argv else None)
    except (VentureNotFoundError, ValueError):
        print(f"No venture found with id {argv[0]}")
        return 1

    print(f"Venture {venture_id}")
    print(WELCOME)

    while True:
        try:
            user_input = input("\nyou> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit"):
            break

        result = run_turn(store, locks, venture_id, user_input)
        print("\ncopilot> ", end="", flush=True)
        for text in stream_and_record_reply(store, locks, result):
            print(text, end="", flush=True)
        print(f"\n\n[{STAGE_LABELS[result['stage']]} | {result['completion']}% complete]")
        if result["report_attached"]:
            print(f"Validation report saved to {store.venture_dir(venture_id) / 'artifacts' / 'validation_report.md'}")
        elif result["stage"] == "report_ready" and not result["venture"]["knowledge_graph"]["outputs"].get("validation"):
            print("Your report is still generating. Send another message to retry.")

    logger.info("Session for venture %s closed", venture_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
