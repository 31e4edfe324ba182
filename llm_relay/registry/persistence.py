"""
Routing table persistence.

Stores the RoutingConfigDocument as pretty-printed JSON. Writes go to a
temporary file in the same directory followed by os.replace, so a reader of
the file (or a crash mid-write) never observes a half-written table.
"""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from llm_relay.registry.models import RegistryError, RoutingConfigDocument

logger = logging.getLogger(__name__)


class RoutingConfigError(RegistryError):
    """Raised when the persisted routing table cannot be read or written."""


class RoutingConfigRepository:
    """
    File-backed storage for the routing table.

    Attributes:
        path: Location of the JSON document
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> RoutingConfigDocument | None:
        """
        Read and validate the persisted document.

        Returns:
            The document, or None when no file has been written yet.

        Raises:
            RoutingConfigError: If the file is unreadable or invalid.
        """
        if not self.exists():
            return None

        try:
            raw = self.path.read_text(encoding="utf-8")
            return RoutingConfigDocument.model_validate_json(raw)
        except (OSError, ValidationError) as e:
            raise RoutingConfigError(
                f"Invalid routing config at {self.path}: {e}"
            ) from e

    def save(self, document: RoutingConfigDocument) -> None:
        """
        Atomically write the document.

        Raises:
            RoutingConfigError: If the file cannot be written. The previous
                file, if any, is left untouched.
        """
        payload = document.model_dump_json(indent=2)
        tmp_name: str | None = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise RoutingConfigError(
                f"Failed to write routing config to {self.path}: {e}"
            ) from e

        logger.info(
            f"Routing config saved: path={self.path}, "
            f"providers={len(document.providers)}"
        )
