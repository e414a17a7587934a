"""Deterministic cleanup of text returned by the document converter."""

import re

_BLANK_LINES_RE = re.compile(r"\n{2,}")
_MULTI_SPACE_RE = re.compile(r" {2,}")


def normalize_text(raw: str) -> str:
    """Normalize line endings, per-line whitespace, blank lines and spaces.

    The steps run in a fixed order and the whole sequence is idempotent:
    normalize_text(normalize_text(x)) == normalize_text(x).
    """
    text = raw.replace("\r\n", "\n")
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return _MULTI_SPACE_RE.sub(" ", text)
