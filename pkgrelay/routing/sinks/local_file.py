"""Local file sink: writes each notification to its own JSON file.

Layout: {base_path}/{sha256-of-message}.json

Messages are serialized to canonical JSON, so publishing the same message
twice (e.g. on bus redelivery) rewrites the same file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pkgrelay.core.hasher import canonical_json_bytes, sha256_hex
from pkgrelay.models.events import NotificationMessage

logger = logging.getLogger(__name__)


class LocalFileSink:
    """Writes notifications to local JSON files.

    Parameters
    ----------
    base_path:
        Directory for message files.  Defaults to ``.pkgrelay/notifications``.
    """

    def __init__(self, base_path: Path | str | None = None) -> None:
        self._base = Path(base_path) if base_path else Path(".pkgrelay/notifications")
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def sink_name(self) -> str:
        return "local_file"

    def publish(self, message: NotificationMessage) -> None:
        data = canonical_json_bytes(message.model_dump(mode="json"))
        target = self._base / f"{sha256_hex(data)}.json"
        target.write_bytes(data)
        logger.debug("LocalFileSink: wrote %s", target)

    def list_messages(self) -> list[Path]:
        return sorted(self._base.glob("*.json"))

    def read_message(self, path: Path) -> NotificationMessage:
        """Read and parse a single message file."""
        return NotificationMessage.model_validate(json.loads(path.read_bytes()))
