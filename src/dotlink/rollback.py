"""Restore the most recent backup set."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from .errors import BackupIOError
from .filesystem import content_digest, copy_entry, exists, remove_managed
from .ledger import BackupLedger
from .log import log_success
from .models import BackupEntry, RestoreAction, RestoreResult, RollbackReport
from .plan import LinkPlan

CONFIRM_PROMPT = "Are you sure you want to rollback? This will restore backups and remove symlinks."

logger = logging.getLogger(__name__)


class RollbackEngine:
    """Go back one step: drop managed links and restore the newest backup set.

    Rollback never backs up what it overwrites and never deletes the set it
    restored from, so running it twice against the same set is harmless.
    """

    def __init__(self, ledger: BackupLedger, plan: LinkPlan, *, zshrc: Path | None = None) -> None:
        self.ledger = ledger
        self.plan = plan
        self.zshrc = zshrc

    def rollback(
        self,
        *,
        dry_run: bool = False,
        confirm: Callable[[str], bool] | None = None,
    ) -> RollbackReport:
        backup_set = self.ledger.most_recent()
        logger.info("Using backup from: %s", backup_set.path)

        if not dry_run and confirm is not None and not confirm(CONFIRM_PROMPT):
            logger.info("Rollback cancelled")
            return RollbackReport(backup_set=backup_set.path, results=(), cancelled=True)

        entries = backup_set.entries()
        results: list[RestoreResult] = []

        for target in self.plan.targets():
            if not target.is_symlink():
                continue
            if dry_run:
                logger.info("Would remove symlink: %s", target)
                results.append(RestoreResult(target, RestoreAction.PLANNED, "would remove symlink"))
                continue
            remove_managed(target)
            logger.info("Removed symlink: %s", target)
            results.append(RestoreResult(target, RestoreAction.UNLINKED))

        for entry in entries:
            results.append(self._restore_entry(entry, dry_run=dry_run))

        if not dry_run:
            log_success(logger, "Rollback complete")
        return RollbackReport(backup_set=backup_set.path, results=tuple(results))

    def _resolve_original(self, entry: BackupEntry) -> Path | None:
        if entry.original_path is not None:
            return entry.original_path
        name = entry.stored_path.name
        spec = self.plan.find_by_name(name)
        if spec is not None:
            return spec.target
        if self.zshrc is not None and name == self.zshrc.name:
            return self.zshrc
        return None

    def _restore_entry(self, entry: BackupEntry, *, dry_run: bool) -> RestoreResult:
        original = self._resolve_original(entry)
        if original is None:
            logger.warning("No known original location for '%s'; skipping", entry.stored_path)
            return RestoreResult(entry.stored_path, RestoreAction.SKIPPED, "no known original location")

        if not exists(entry.stored_path):
            logger.warning("Backup copy '%s' is missing; skipping", entry.stored_path)
            return RestoreResult(original, RestoreAction.SKIPPED, "backup copy missing")

        # Under dry-run the managed link is still in place, so compare only real paths.
        if (
            exists(original)
            and not original.is_symlink()
            and content_digest(original) == content_digest(entry.stored_path)
        ):
            logger.info("Already matches backup: %s", original)
            return RestoreResult(original, RestoreAction.SKIPPED, "already matches backup")

        if dry_run:
            logger.info("Would restore: %s -> %s", entry.stored_path, original)
            return RestoreResult(original, RestoreAction.PLANNED, f"would restore from '{entry.stored_path}'")

        if original.is_symlink():
            remove_managed(original)
        try:
            copy_entry(entry.stored_path, original)
        except OSError as exc:
            raise BackupIOError(f"Failed to restore '{original}' from '{entry.stored_path}': {exc}") from exc

        log_success(logger, "Restored: %s", original)
        return RestoreResult(original, RestoreAction.RESTORED, str(entry.stored_path))
