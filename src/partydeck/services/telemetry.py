from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)


@dataclass
class TelemetryService:
    """Append-only JSONL record of game milestones (game-started, card-rerolled, ...)."""

    path: Path
    enabled: bool = True

    def track(self, event_name: str, payload: Mapping[str, object] | None = None) -> None:
        if not self.enabled:
            return
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "event": event_name,
            "payload": dict(payload or {}),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")
        except OSError:
            # Tracking must never break a game.
            logger.warning("Failed to track event %s", event_name, exc_info=True)
