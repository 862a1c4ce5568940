import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

MODEL_NAME = os.getenv("COPILOT_MODEL", "claude-sonnet-4-5")
EXTRACTOR_MODEL = os.getenv("COPILOT_EXTRACTOR_MODEL", "claude-haiku-4-5")
REPORT_MODEL = os.getenv("COPILOT_REPORT_MODEL", MODEL_NAME)

EXTRACTOR_MAX_TOKENS = 2000
CONSULTANT_MAX_TOKENS = 4096
REPORT_MAX_TOKENS = 8096

# Completion score at which discovery auto-advances to analysis
ANALYSIS_THRESHOLD = int(os.getenv("COPILOT_ANALYSIS_THRESHOLD", "80"))

# Messages of conversation the extractor sees besides the latest one
RECENT_MESSAGE_WINDOW = 3

ENABLE_WEB_SEARCH = os.getenv("COPILOT_WEB_SEARCH", "1").lower() not in ("0", "false", "no")
WEB_SEARCH_MAX_USES = 3

WORKSPACE_DIR = Path(os.getenv("COPILOT_WORKSPACE", Path.home() / "Documents" / "venture-workspace"))
LOG_DIR = Path(os.getenv("COPILOT_LOG_DIR", WORKSPACE_DIR))
LOG_LEVEL = os.getenv("COPILOT_LOG_LEVEL", "DEBUG").upper()
