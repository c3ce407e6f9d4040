"""
JSON File Storage

The local durable record: a single JSON document holding the application
state under "state" and the access code under "accessCode".

Writes go to a temporary file in the same directory which then replaces
the record, so a crash mid-write leaves the previous record intact.

Each access code keeps its own record (see state_file_for), so switching
codes on a device never mixes two users' data.
"""

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from wealth_snapshot.config import get_settings
from wealth_snapshot.exceptions import CorruptStateError, StorageError
from wealth_snapshot.models.wealth import AppState
from wealth_snapshot.services.storage.interface import LocalStateStorageInterface


STATE_KEY = "state"
ACCESS_CODE_KEY = "accessCode"


def state_file_for(access_code: str, base: Optional[Path] = None) -> Path:
    """
    Record for one access code, next to the configured state file.

    The code is hashed so it never appears in the file name.
    """
    base = Path(base) if base is not None else get_settings().app.state_file
    digest = hashlib.sha256(access_code.encode("utf-8")).hexdigest()[:16]
    return base.with_name(f"{base.stem}.{digest}{base.suffix}")


class JsonFileStateStorage(LocalStateStorageInterface):
    """
    File-backed implementation of local state storage.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path is not None else get_settings().app.state_file

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, Any]:
        """Read the whole JSON document; {} if the file does not exist."""
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptStateError(f"State file is not valid JSON: {e}")

        if not isinstance(document, dict):
            raise CorruptStateError("State file does not hold a JSON object")
        return document

    def _write_document(self, document: dict[str, Any]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    def _read_for_update(self) -> dict[str, Any]:
        """Current document, or {} if it is corrupt (it is about to be overwritten)."""
        try:
            return self._read_document()
        except CorruptStateError:
            return {}

    def load(self) -> Optional[AppState]:
        document = self._read_document()
        payload = document.get(STATE_KEY)
        if payload is None:
            return None
        try:
            return AppState.from_wire(payload)
        except ValidationError as e:
            raise CorruptStateError(f"Persisted state is malformed: {e}")

    def save(self, state: AppState) -> None:
        document = self._read_for_update()
        document[STATE_KEY] = state.to_wire()
        self._write_document(document)

    def load_access_code(self) -> Optional[str]:
        try:
            document = self._read_document()
        except CorruptStateError:
            return None
        code = document.get(ACCESS_CODE_KEY)
        return code if isinstance(code, str) and code else None

    def save_access_code(self, access_code: str) -> None:
        document = self._read_for_update()
        document[ACCESS_CODE_KEY] = access_code
        self._write_document(document)

    def clear(self) -> None:
        document = self._read_for_update()
        document.pop(STATE_KEY, None)
        self._write_document(document)
