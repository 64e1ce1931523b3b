from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


class EventLog:
    """
    JSON-lines trace of RPC traffic.
    Each entry is appended to <base_dir>/rpc-YYYYMMDD.log; a disabled log is a no-op.
    """

    def __init__(self, *, base_dir: Optional[Path] = None, enabled: bool = True, prefix: str = "rpc") -> None:
        self.enabled = enabled
        self.prefix = prefix
        self.base_dir = base_dir or Path("logs")
        if self.enabled:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def path_for(self, when: datetime) -> Path:
        return self.base_dir / f"{self.prefix}-{when.strftime('%Y%m%d')}.log"

    def log(self, event: str, payload: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        now = datetime.now(timezone.utc)
        entry = {
            "ts": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "event": event,
        }
        entry.update(payload)
        line = json.dumps(entry, ensure_ascii=False, default=str)
        try:
            with self._lock, self.path_for(now).open("a", encoding="utf-8") as fp:
                fp.write(line + "\n")
        except OSError as exc:
            # Tracing must not break the request it traces.
            log.warning("event log write failed: %s", exc)
