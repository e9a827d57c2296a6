# config.py: settings for the episode search service
from __future__ import annotations
import logging
import os
import pathlib
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

APP_ENV = os.getenv("APP_ENV", "production").strip().lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if APP_ENV == "development" else "INFO").upper()


def load_api_key(path="apikey.txt") -> str | None:
    """Index API key: INDEX_API_KEY wins, then a local apikey.txt if one exists."""
    key = os.getenv("INDEX_API_KEY", "").strip()
    if key:
        return key
    p = pathlib.Path(path)
    if not p.exists():
        return None
    return p.read_text(encoding="utf-8").strip() or None


def _float_env(name: str, default: float | None) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return float(raw)


# ---------- External index ----------
INDEX_ENDPOINT = os.getenv("INDEX_ENDPOINT", "").strip().rstrip("/")
INDEX_NAME = os.getenv("INDEX_NAME", "episodes")
INDEX_API_KEY = load_api_key()
INDEX_USERNAME = os.getenv("INDEX_USERNAME") or None
INDEX_PASSWORD = os.getenv("INDEX_PASSWORD") or None
INDEX_TIMEOUT = _float_env("INDEX_TIMEOUT", None)  # None = no client-side timeout

# ---------- Captions ----------
CAPTION_TIMEOUT = _float_env("CAPTION_TIMEOUT", 10.0)

# ---------- Result cache ----------
PROD_CACHE_TTL = 60 * 60   # 1 hour
DEV_CACHE_TTL = 5 * 60     # 5 minutes
CACHE_TTL = _float_env("SEARCH_CACHE_TTL", DEV_CACHE_TTL if APP_ENV == "development" else PROD_CACHE_TTL)
CACHE_SWEEP_INTERVAL = _float_env("CACHE_SWEEP_INTERVAL", 30 * 60)

# ---------- Tunables ----------
MIN_SHOULD_MATCH = os.getenv("MIN_SHOULD_MATCH", "75%")
MIN_WORD_OVERLAP = _float_env("MIN_WORD_OVERLAP", 0.5)
RESULT_SIZE = int(os.getenv("RESULT_SIZE", "50"))
FRAGMENT_SIZE = int(os.getenv("FRAGMENT_SIZE", "200"))


@dataclass(frozen=True)
class SearchSettings:
    min_should_match: str = MIN_SHOULD_MATCH
    min_word_overlap: float = MIN_WORD_OVERLAP
    result_size: int = RESULT_SIZE
    fragment_size: int = FRAGMENT_SIZE
    caption_timeout: float = CAPTION_TIMEOUT
    detail_transcript_fragments: int = 20
    detail_description_fragments: int = 5
    server_timeout: str = "5s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level)
