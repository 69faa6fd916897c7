import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=True)


def _env_bool(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name) or default).strip())
    except ValueError:
        return default


# Provider selection: openai | anthropic | gemini
LLM_PROVIDER = str(os.getenv("LLM_PROVIDER") or "openai").strip().lower()

OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
OPENAI_MODEL = str(os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()
ANTHROPIC_API_KEY = str(os.getenv("ANTHROPIC_API_KEY") or "").strip()
ANTHROPIC_MODEL = str(os.getenv("ANTHROPIC_MODEL") or "claude-3-5-sonnet-20240620").strip()
GEMINI_API_KEY = str(os.getenv("GEMINI_API_KEY") or "").strip()
GEMINI_MODEL = str(os.getenv("GEMINI_MODEL") or "gemini-1.5-pro").strip()

# Ledger backend; local in-process ledger when unset
SUPABASE_URL = str(os.getenv("SUPABASE_URL") or "").strip().rstrip("/")
SUPABASE_KEY = str(os.getenv("SUPABASE_KEY") or "").strip()
LOCAL_CREDITS = _env_int("LOCAL_CREDITS", 10)

CONTEXT_WINDOW_MS = _env_int("CONTEXT_WINDOW_MS", 90_000)
QUESTION_TTL_MS = _env_int("QUESTION_TTL_MS", 120_000)
HINT_DEBOUNCE_MS = _env_int("HINT_DEBOUNCE_MS", 2_000)
SESSION_MEMORY_SIZE = _env_int("SESSION_MEMORY_SIZE", 5)
SESSION_HISTORY_LIMIT = _env_int("SESSION_HISTORY_LIMIT", 10)
CONSOLE_DEBOUNCE_MS = _env_int("CONSOLE_DEBOUNCE_MS", 200)
CANCEL_HINTS_ON_STOP = _env_bool("CANCEL_HINTS_ON_STOP")

RELAY_BUS_ENABLED = _env_bool("RELAY_BUS_ENABLED")
REDIS_URL = str(os.getenv("REDIS_URL") or "").strip()

PAUSED_SESSION_STORE_PATH = Path(
    os.getenv("PAUSED_SESSION_STORE_PATH") or (_BACKEND_ROOT / "data" / "paused_sessions.json")
)

QA_MODE = _env_bool("QA_MODE")
LOG_LEVEL = str(os.getenv("LOG_LEVEL") or "INFO").strip().upper()

CORS_ALLOW_ORIGINS = [
    item.strip()
    for item in str(os.getenv("CORS_ALLOW_ORIGINS") or "").split(",")
    if item.strip()
]
