"""Configuration constants, paths, and the injectable Settings value."""

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError

# ---------------------------------------------------------------------------
# Load .env if present
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent.parent
_env_path = BASE_DIR / ".env"
if _env_path.exists():
    for _line in _env_path.read_text().splitlines():
        _line = _line.strip()
        if _line and not _line.startswith("#") and "=" in _line:
            _k, _, _v = _line.partition("=")
            os.environ.setdefault(_k.strip(), _v.strip().strip("\"'"))

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
DB_PATH = BASE_DIR / "policy_match.db"

# ---------------------------------------------------------------------------
# LLM Settings
# ---------------------------------------------------------------------------
LLM_API_URL = "https://api.groq.com/openai/v1/chat/completions"
LLM_TIMEOUT_SECONDS = 120.0
LLM_MAX_ATTEMPTS = 2
EXTRACTION_MAX_TOKENS = 8192
COMPLIANCE_MAX_TOKENS = 1024

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
DEFAULT_ORIGIN = "http://localhost"

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    groq_api_key: str
    llm_model: str
    tika_url: str
    llm_api_url: str = LLM_API_URL
    db_path: Path = DB_PATH
    origin: str = DEFAULT_ORIGIN
    llm_timeout_seconds: float = LLM_TIMEOUT_SECONDS
    llm_max_attempts: int = LLM_MAX_ATTEMPTS
    extraction_max_tokens: int = EXTRACTION_MAX_TOKENS
    compliance_max_tokens: int = COMPLIANCE_MAX_TOKENS
    # Document text is sent to the model as extracted unless this is set.
    normalize_documents: bool = False
    # Force is_compliant=False whenever the model reports violations.
    reconcile_verdicts: bool = False


def _flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def load_settings() -> Settings:
    """Build Settings from the environment.

    Raises ConfigurationError naming every required variable that is unset.
    """
    missing = [
        name for name in ("GROQ_API_KEY", "LLM_MODEL", "TIKA_URL")
        if not os.environ.get(name)
    ]
    if missing:
        raise ConfigurationError(
            f"missing required environment variables: {', '.join(missing)}"
        )

    try:
        return Settings(
            groq_api_key=os.environ["GROQ_API_KEY"],
            llm_model=os.environ["LLM_MODEL"],
            tika_url=os.environ["TIKA_URL"].rstrip("/"),
            llm_api_url=os.environ.get("LLM_API_URL", LLM_API_URL),
            db_path=Path(os.environ.get("DB_PATH", str(DB_PATH))),
            origin=os.environ.get("ORIGIN") or DEFAULT_ORIGIN,
            llm_timeout_seconds=float(
                os.environ.get("LLM_TIMEOUT_SECONDS", LLM_TIMEOUT_SECONDS)
            ),
            llm_max_attempts=int(os.environ.get("LLM_MAX_ATTEMPTS", LLM_MAX_ATTEMPTS)),
            extraction_max_tokens=int(
                os.environ.get("EXTRACTION_MAX_TOKENS", EXTRACTION_MAX_TOKENS)
            ),
            compliance_max_tokens=int(
                os.environ.get("COMPLIANCE_MAX_TOKENS", COMPLIANCE_MAX_TOKENS)
            ),
            normalize_documents=_flag("NORMALIZE_DOCUMENTS"),
            reconcile_verdicts=_flag("RECONCILE_VERDICTS"),
        )
    except ValueError as e:
        raise ConfigurationError(f"invalid numeric setting: {e}") from e
