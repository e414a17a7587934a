"""Process-wide logging setup."""

import logging
import os
import sys

_NOISY = ("urllib3", "urllib3.connectionpool", "requests", "multipart")


def setup_logging(default_level: str = "INFO") -> None:
    """Configure the root logger once, at process start.

    The level comes from POLICY_MATCH_LOG_LEVEL (default INFO). HTTP client
    chatter is kept at WARNING.
    """
    lvl_name = os.getenv("POLICY_MATCH_LOG_LEVEL", default_level).upper()
    lvl = getattr(logging, lvl_name, logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)
