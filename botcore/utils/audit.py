import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# Debug flag: enable when running tests or when env var BOTCORE_DEBUG is set
DEBUG = bool(os.getenv('BOTCORE_DEBUG')) or ('unittest' in sys.modules) or ('PYTEST_CURRENT_TEST' in os.environ)

# Maintain per-session filename base so all writes go to the same timestamped file
_SESSION_FILE_BASE: Dict[str, str] = {}


def _log_dir() -> str:
    override = os.getenv('BOTCORE_LOG_DIR')
    if override:
        return os.path.abspath(override)
    # ../../logs/sessions relative to this file
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "logs", "sessions"))


def _file_base_for(log_id: str) -> str:
    """Return a stable '<timestamp>_<log_id>' base for this process."""
    if log_id in _SESSION_FILE_BASE:
        return _SESSION_FILE_BASE[log_id]
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    base = f"{ts}_{log_id}"
    _SESSION_FILE_BASE[log_id] = base
    return base


def audit_write(log_id: str | None, record: Dict[str, Any]) -> None:
    """Append a structured JSON line to the per-session log.

    No-op without a log_id. Stored under logs/sessions/<timestamp>_<log_id>.log.
    """
    if not log_id:
        return
    base_dir = _log_dir()
    record = dict(record)
    record.setdefault("ts", datetime.now(timezone.utc).isoformat())
    record.setdefault("log_id", log_id)
    log_path = os.path.join(base_dir, f"{_file_base_for(log_id)}.log")
    try:
        os.makedirs(base_dir, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError:
        # Diagnostics are best-effort; a full disk must not stop the bot.
        pass


def _dbg(log_id: str | None, *args, **kwargs) -> None:
    """Debug helper: prints when DEBUG, writes {"type":"debug"} to the session log when log_id is set."""
    if DEBUG:
        print(*args, **kwargs)
    if log_id:
        audit_write(log_id, {"type": "debug", "msg": " ".join(str(a) for a in args)})


def forget(log_id: str | None) -> None:
    """Drop the cached file base of a finished session; a later write starts a new file."""
    if log_id:
        _SESSION_FILE_BASE.pop(log_id, None)
