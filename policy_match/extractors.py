"""Raw document -> plain text via an Apache Tika server, and filename helpers."""

import logging
from pathlib import PurePath
from typing import BinaryIO, Optional

import requests

from .config import Settings
from .errors import TextExtractionError

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tika text extraction
# ---------------------------------------------------------------------------

class TikaClient:
    """Thin client for the Tika server's /tika endpoint."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None,
                 timeout: float = 60.0):
        self.base_url = settings.tika_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def extract_text(self, f: BinaryIO) -> str:
        """Return the plain text Tika extracts from the file."""
        resp = self._put("/tika", f, accept="text/plain")
        resp.encoding = resp.encoding or "utf-8"
        text = resp.text
        log.info("extract_text :: extracted %d characters", len(text))
        return text

    def _put(self, path: str, f: BinaryIO, accept: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.put(url, data=f, headers={"Accept": accept}, timeout=self.timeout)
        except requests.RequestException as e:
            raise TextExtractionError(f"tika :: error calling {url}: {e}") from e
        if resp.status_code != 200:
            raise TextExtractionError(f"tika :: {url} returned [{resp.status_code}]: {resp.text}")
        return resp


# ---------------------------------------------------------------------------
# Filenames
# ---------------------------------------------------------------------------

def sanitize_filename(filename: str) -> tuple[str, str]:
    """Split off the extension and return (lowercased_snake_name, extension)."""
    name = PurePath(filename or "").name
    path = PurePath(name)
    ext = path.suffix
    stem = name[: len(name) - len(ext)] if ext else name
    stem = stem.strip().lower().replace(" ", "_")
    return stem, ext
