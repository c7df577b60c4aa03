"""Local JSON file holding the last used camera facing mode per client."""

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path

from beztern.domain.capture import FacingMode
from beztern.services.camera import PreferenceStore

logger = logging.getLogger(__name__)

DEFAULT_CLIENT = "default"


@dataclass
class JsonPreferenceStore(PreferenceStore):
    """Camera preferences persisted in one file, one entry per client id."""

    path: Path
    client_id: str = DEFAULT_CLIENT

    def for_client(self, client_id: str) -> "JsonPreferenceStore":
        return replace(self, client_id=client_id)

    def load_facing_mode(self) -> FacingMode | None:
        raw = self._read().get(self.client_id)
        try:
            return FacingMode(raw) if raw else None
        except ValueError:
            logger.warning(
                "Ignoring unknown camera preference",
                extra={"value": raw, "client_id": self.client_id},
            )
            return None

    def save_facing_mode(self, facing_mode: FacingMode) -> None:
        data = self._read()
        data[self.client_id] = facing_mode.value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def _read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}
