"""File-backed persistence for pipeline state.

Provides two stores, both loaded fully into memory at construction and
written through on every change:

- PersistedSet: a JSON array of handled identifiers (report ids, notified ids)
- CursorStore: a single integer, the last event id seen by the poller

Writes go to a temporary file in the same directory which is then renamed
over the target, so a crash mid-write leaves the previous contents intact.
A store file is single-writer; two processes must not share one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Generic, TypeVar

import logfire

from autolabel.core.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Iterator

K = TypeVar("K", str, int)


def _write_atomic(path: Path, content: str) -> None:
    """Replace a file's contents via temp file and rename.

    Raises:
        StoreError: If the file could not be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        msg = f"Failed to write {path}: {e}"
        raise StoreError(msg, details={"path": str(path)}) from e


class PersistedSet(Generic[K]):
    """Durable set of identifiers.

    Status lifecycle of an identifier:
        absent -> present (never removed)

    Example:
        notified: PersistedSet[str] = PersistedSet(Path("/data/notified_reports.json"), str)
        if not notified.contains("42"):
            notified.add("42")
    """

    def __init__(self, path: Path, item_type: type[K]) -> None:
        """Load the set from disk.

        A missing file is an empty set. An unreadable or malformed file is
        logged and also treated as empty.

        Args:
            path: JSON file holding the set as an array
            item_type: Element type (str or int); loaded values are coerced
        """
        self.path = path
        self.item_type = item_type
        self._items: set[K] = set()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logfire.debug("No persisted set found, starting empty", path=str(self.path))
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                msg = f"expected a JSON array, got {type(data).__name__}"
                raise TypeError(msg)
            self._items = {self.item_type(item) for item in data}
        except (OSError, TypeError, ValueError) as e:
            logfire.error("Failed to load persisted set", path=str(self.path), error=str(e))
            self._items = set()
            return
        logfire.info("Loaded persisted set", path=str(self.path), size=len(self._items))

    def contains(self, item: K) -> bool:
        """Check whether an identifier was recorded."""
        return self.item_type(item) in self._items

    def add(self, item: K) -> None:
        """Record an identifier and rewrite the file.

        Adding an identifier that is already present writes nothing.

        Raises:
            StoreError: If the file could not be written; the identifier is
                still recorded in memory
        """
        value = self.item_type(item)
        if value in self._items:
            return
        self._items.add(value)
        _write_atomic(self.path, json.dumps(sorted(self._items)))

    def __contains__(self, item: object) -> bool:
        try:
            return self.contains(item)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[K]:
        return iter(sorted(self._items))


class CursorStore:
    """Durable event-id cursor."""

    def __init__(self, path: Path) -> None:
        """Load the cursor from disk; missing or malformed means unset.

        Args:
            path: Text file holding the cursor
        """
        self.path = path
        self._value: int | None = None
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logfire.info("No cursor file found, starting fresh", path=str(self.path))
            return
        try:
            text = self.path.read_text(encoding="utf-8").strip()
            self._value = int(text) if text else None
        except (OSError, ValueError) as e:
            logfire.error("Failed to load cursor", path=str(self.path), error=str(e))
            self._value = None
            return
        logfire.info("Loaded cursor", cursor=self._value)

    def get(self) -> int | None:
        """Get the last seen event id, or None before the baseline."""
        return self._value

    def set(self, value: int) -> None:
        """Move the cursor and rewrite the file.

        Raises:
            StoreError: If the file could not be written; the in-memory
                cursor is still moved
        """
        if value == self._value:
            return
        self._value = value
        _write_atomic(self.path, str(value))
