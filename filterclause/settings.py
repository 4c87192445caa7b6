# filterclause/settings.py
# Process-level defaults, read from the environment (and an optional .env file).

from __future__ import annotations
import os, logging

from dotenv import load_dotenv

load_dotenv()

# ---- Config ----------------------------------------------------------------

CONFIG_FILE = os.getenv("FILTERCLAUSE_CONFIG_FILE", "config/filters.yaml")
PARAM_PREFIX = os.getenv("FILTERCLAUSE_PARAM_PREFIX", "p")
PARAMSTYLE = os.getenv("FILTERCLAUSE_PARAMSTYLE", "named")  # 'named' -> :p1, 'pyformat' -> %(p1)s
LOG_LEVEL = os.getenv("FILTERCLAUSE_LOG_LEVEL", "WARNING").upper()

if not PARAM_PREFIX.isidentifier():
    # placeholders are emitted as :<prefix><n>; fail fast on something unusable
    raise RuntimeError(f"FILTERCLAUSE_PARAM_PREFIX must be an identifier, got {PARAM_PREFIX!r}")


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger. Applications that already
    configure logging don't need to call this.
    """
    log = logging.getLogger("filterclause")
    log.setLevel(level or LOG_LEVEL)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        log.addHandler(handler)
    return log
