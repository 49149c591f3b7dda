"""Timestamped backup sets for dotlink."""

from __future__ import annotations

import logging
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Callable

from tomli_w import dump as toml_dump

from .errors import BackupIOError, NoBackupFound
from .filesystem import backup_path, exists, remove_path
from .models import BackupEntry

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
INDEX_FILENAME = ".dotlink-index.toml"

logger = logging.getLogger(__name__)


class BackupSetHandle:
    """A single backup set directory and its index."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def timestamp(self) -> str:
        return self.path.name

    @property
    def index_path(self) -> Path:
        return self.path / INDEX_FILENAME

    def store(self, original: Path) -> BackupEntry:
        """Back up ``original`` into this set and record it in the index."""

        entries = self.entries()
        for entry in entries:
            if entry.original_path == original:
                # A target is backed up once per run.
                return entry

        name = self._unique_name(original.name, {entry.stored_path.name for entry in entries})
        try:
            stored = backup_path(original, self.path, name)
            if stored is None:
                raise BackupIOError(f"Cannot back up '{original}': path does not exist")
            entry = BackupEntry(timestamp=self.timestamp, original_path=original, stored_path=stored)
            self._save([*entries, entry])
        except BackupIOError:
            self._discard(self.path / name, keep_set=bool(entries))
            raise
        logger.info("Backed up: %s -> %s", original, stored)
        return entry

    def entries(self) -> tuple[BackupEntry, ...]:
        """Return the entries recorded in this set, in backup order."""

        if not self.index_path.exists():
            return self._entries_without_index()

        with self.index_path.open("rb") as handle:
            data = tomllib.load(handle)

        return tuple(
            BackupEntry(
                timestamp=self.timestamp,
                original_path=Path(item["original_path"]),
                stored_path=self.path / item["stored_name"],
            )
            for item in data.get("entries", [])
        )

    def _entries_without_index(self) -> tuple[BackupEntry, ...]:
        if not self.path.is_dir():
            return ()
        return tuple(
            BackupEntry(timestamp=self.timestamp, original_path=None, stored_path=child)
            for child in sorted(self.path.iterdir())
            if child.name != INDEX_FILENAME
        )

    def _discard(self, partial: Path, *, keep_set: bool) -> None:
        """Drop a half-written copy and, for an otherwise empty set, the set itself."""

        try:
            remove_path(partial)
            if not keep_set and self.path.is_dir():
                remove_path(self.path)
        except OSError as exc:
            logger.warning("Could not clean up '%s' after a failed backup: %s", partial, exc)

    def _save(self, entries: list[BackupEntry]) -> None:
        payload = {
            "timestamp": self.timestamp,
            "entries": [
                {"original_path": str(entry.original_path), "stored_name": entry.stored_path.name}
                for entry in entries
            ],
        }
        try:
            with self.index_path.open("wb") as handle:
                toml_dump(payload, handle)
        except OSError as exc:
            raise BackupIOError(f"Cannot write backup index '{self.index_path}': {exc}") from exc

    @staticmethod
    def _unique_name(name: str, taken: set[str]) -> str:
        candidate = name
        counter = 1
        while candidate in taken or candidate == INDEX_FILENAME:
            counter += 1
            candidate = f"{name}.{counter}"
        return candidate

    def __eq__(self, other: object) -> bool:
        return isinstance(other, BackupSetHandle) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)

    def __repr__(self) -> str:
        return f"BackupSetHandle({str(self.path)!r})"


class BackupLedger:
    """Append-only history of backup sets under ``root``.

    ``record_backup`` only reserves a set name. The directory appears with the
    first stored entry, so a run that backs nothing up (or fails on its first
    backup) leaves no directory behind.
    """

    def __init__(self, root: Path, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.root = root
        self._clock = clock
        self._current: BackupSetHandle | None = None

    @property
    def current(self) -> BackupSetHandle | None:
        return self._current

    def record_backup(self) -> BackupSetHandle:
        if self._current is not None:
            return self._current

        stamp = self._clock().strftime(TIMESTAMP_FORMAT)
        candidate = self.root / stamp
        counter = 0
        while exists(candidate):
            counter += 1
            candidate = self.root / f"{stamp}_{counter:02d}"

        logger.info("Reserved backup set %s", candidate)
        self._current = BackupSetHandle(candidate)
        return self._current

    def list_backup_sets(self) -> tuple[BackupSetHandle, ...]:
        if not self.root.is_dir():
            return ()
        return tuple(
            BackupSetHandle(child)
            for child in sorted(self.root.iterdir())
            if child.is_dir() and any(child.iterdir())
        )

    def most_recent(self) -> BackupSetHandle:
        sets = self.list_backup_sets()
        if not sets:
            raise NoBackupFound(f"No backups found in '{self.root}'")
        return sets[-1]
