"""Shared models and enums for dotlink."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class EntryType(str, Enum):
    """Kinds of paths dotlink can back up."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class RunMode(str, Enum):
    """What a single invocation does."""

    APPLY = "apply"
    DRY_RUN = "dry_run"
    ROLLBACK = "rollback"


@dataclass(frozen=True, slots=True)
class LinkSpec:
    """One desired symlink: ``target`` should point at ``source``."""

    source: Path
    target: Path


@dataclass(frozen=True, slots=True)
class BackupEntry:
    """Snapshot of what occupied ``original_path`` before it was replaced.

    ``original_path`` is ``None`` for sets written without an index, where only
    the stored basename is known.
    """

    timestamp: str
    original_path: Path | None
    stored_path: Path


class ApplyAction(str, Enum):
    """Outcome of reconciling one link."""

    LINKED = "linked"
    RELINKED = "relinked"
    BACKED_UP = "backed_up"
    UNCHANGED = "unchanged"
    PLANNED = "planned"
    WRITTEN = "written"


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """Result emitted for each link in the plan."""

    spec: LinkSpec
    action: ApplyAction
    backup: BackupEntry | None = None
    details: str | None = None


@dataclass(frozen=True, slots=True)
class FileResult:
    """Result of writing a generated file such as the zshrc stub."""

    path: Path
    action: ApplyAction
    backup: BackupEntry | None = None
    details: str | None = None


class RestoreAction(str, Enum):
    """Outcome of a rollback step."""

    UNLINKED = "unlinked"
    RESTORED = "restored"
    SKIPPED = "skipped"
    PLANNED = "planned"


@dataclass(frozen=True, slots=True)
class RestoreResult:
    """Result emitted for each removed link or restored entry."""

    path: Path
    action: RestoreAction
    details: str | None = None


@dataclass(frozen=True, slots=True)
class RollbackReport:
    """Everything a rollback did, or would do under dry-run."""

    backup_set: Path
    results: tuple[RestoreResult, ...]
    cancelled: bool = False


class ValidationState(str, Enum):
    """States reported by the post-apply validation pass."""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ValidationEntry:
    """Validation outcome for a single checked item."""

    subject: str
    state: ValidationState
    details: str | None = None


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Collection of validation results."""

    entries: tuple[ValidationEntry, ...]

    @property
    def errors(self) -> int:
        return sum(1 for entry in self.entries if entry.state is ValidationState.ERROR)

    @property
    def warnings(self) -> int:
        return sum(1 for entry in self.entries if entry.state is ValidationState.WARNING)
