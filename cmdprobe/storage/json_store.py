"""JSON document persistence under the cmdprobe data directory."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from cmdprobe.core.exceptions import StorageError
from cmdprobe.core.logging import get_logger
from cmdprobe.models.operation import DiscoveryResults

logger = get_logger(__name__)


class JsonDocumentStore:
    """Reads and writes whole JSON documents in one directory.

    Writes go to a temporary file in the same directory followed by
    ``os.replace`` so readers never observe a half-written document.

    Parameters
    ----------
    data_dir : str | Path
        Directory holding the documents; created on first write
    discovery_file : str
        File name of the persisted discovery snapshot
    """

    def __init__(self, data_dir: str | Path, discovery_file: str = "discovery.json") -> None:
        self.data_dir = Path(data_dir)
        self.discovery_file = discovery_file

    def path_for(self, name: str) -> Path:
        return self.data_dir / name

    def read(self, name: str) -> Any:
        """Load a document, returning None when it does not exist.

        Raises
        ------
        StorageError
            If the file exists but is not valid JSON
        """
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(str(path), f"invalid JSON: {e}") from e
        except OSError as e:
            raise StorageError(str(path), str(e)) from e

    def write(self, name: str, document: Any) -> Path:
        """Atomically write ``document`` as indented JSON."""
        path = self.path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, default=str)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(str(path), str(e)) from e
        logger.debug("Wrote {path}", path=path)
        return path

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def save_discovery(self, results: DiscoveryResults) -> Path:
        """Persist a discovery snapshot."""
        return self.write(self.discovery_file, results.to_document())

    def load_discovery(self) -> DiscoveryResults | None:
        """Load the last discovery snapshot, None if none was saved."""
        document = self.read(self.discovery_file)
        if document is None:
            return None
        try:
            return DiscoveryResults.model_validate(document)
        except PydanticValidationError as e:
            raise StorageError(str(self.path_for(self.discovery_file)), str(e)) from e
