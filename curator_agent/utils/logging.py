from __future__ import annotations
import json, sys, threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class RunLogger:
    """
    JSON-lines event logger shared by the coordinator and every source agent.
    WARN/ERROR lines are echoed to stderr; all lines go to the log file when a
    directory is configured.
    """

    def __init__(self, log_dir: Optional[Path] = None, echo_info: bool = False):
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_path = None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_path = self.log_dir / "curator_agent.log"
        self.echo_info = echo_info
        self._lock = threading.Lock()

    def _ts(self) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    def info(self, msg: str, **kv):
        line = {"ts": self._ts(), "level": "INFO", "msg": msg, **kv}
        self._write(line)

    def warn(self, msg: str, **kv):
        line = {"ts": self._ts(), "level": "WARN", "msg": msg, **kv}
        self._write(line)

    def error(self, msg: str, **kv):
        line = {"ts": self._ts(), "level": "ERROR", "msg": msg, **kv}
        self._write(line)

    def _write(self, line: dict):
        txt = json.dumps(line, ensure_ascii=False, default=str)
        with self._lock:
            if self.log_path is not None:
                with self.log_path.open("a", encoding="utf-8") as f:
                    f.write(txt + "\n")
            # Also echo important lines to console
            if line["level"] in {"ERROR", "WARN"} or self.echo_info:
                print(txt, file=sys.stderr)


_default: RunLogger | None = None


def get_logger() -> RunLogger:
    """Process default logger (stderr only) used when none is injected."""
    global _default
    if _default is None:
        _default = RunLogger()
    return _default
