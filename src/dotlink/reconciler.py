"""Converge the filesystem toward a link plan."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import PathConflict, WriteIOError
from .filesystem import ensure_directory, exists, link, remove_managed, symlink_points_to
from .ledger import BackupLedger
from .log import log_success
from .models import (
    ApplyAction,
    ApplyResult,
    FileResult,
    LinkSpec,
    RunMode,
    ValidationEntry,
    ValidationReport,
    ValidationState,
)
from .plan import LinkPlan
from .zshrc import mentions_zdotdir, read_text, render_stub, touch_history

logger = logging.getLogger(__name__)


class Reconciler:
    """Applies a ``LinkPlan``, backing up unmanaged targets through the ledger.

    Errors from backup or link creation abort the run immediately. Nothing that
    already happened is undone; re-running is safe, and ``RollbackEngine``
    restores the most recent backup set.
    """

    def __init__(self, ledger: BackupLedger) -> None:
        self.ledger = ledger

    def apply(self, plan: LinkPlan, mode: RunMode = RunMode.APPLY) -> list[ApplyResult]:
        if mode is RunMode.ROLLBACK:
            raise ValueError("Reconciler cannot run in rollback mode")

        self._check_sources(plan)

        results: list[ApplyResult] = []
        for spec in plan:
            if mode is RunMode.DRY_RUN:
                result = self._preview(spec)
            else:
                result = self._apply_spec(spec)
            results.append(result)
        return results

    def validate(self, plan: LinkPlan) -> ValidationReport:
        entries: list[ValidationEntry] = []
        for spec in plan:
            target = spec.target
            subject = str(target)
            if not target.is_symlink():
                details = "Symlink missing" if not exists(target) else "Target is not a symlink"
                logger.error("%s: %s", details, target)
                entries.append(ValidationEntry(subject, ValidationState.ERROR, details))
            elif not symlink_points_to(target, spec.source):
                details = f"Symlink points to '{os.readlink(target)}' instead of '{spec.source}'"
                logger.warning("%s: %s", subject, details)
                entries.append(ValidationEntry(subject, ValidationState.WARNING, details))
            else:
                log_success(logger, "Symlink exists: %s", target)
                entries.append(ValidationEntry(subject, ValidationState.OK))
        return ValidationReport(entries=tuple(entries))

    def ensure_zshrc(
        self,
        zshrc: Path,
        zdotdir: Path,
        *,
        home: Path,
        mode: RunMode = RunMode.APPLY,
    ) -> FileResult:
        """Point ``zshrc`` at ``zdotdir`` with a small stub file.

        A foreign zshrc (one that does not mention ZDOTDIR) goes into the
        current backup set first. A zshrc from an earlier run is rewritten in
        place. The history file under ``zdotdir`` is created as a courtesy.
        """

        if mode is RunMode.ROLLBACK:
            raise ValueError("Reconciler cannot run in rollback mode")

        stub = render_stub(zdotdir, home=home)
        foreign = zshrc.is_symlink() or (exists(zshrc) and not mentions_zdotdir(zshrc))

        if mode is RunMode.DRY_RUN:
            if read_text(zshrc) == stub:
                details = "already up to date"
            elif foreign:
                details = "would back up and replace existing file"
            else:
                details = "would write zshrc"
            logger.info("Would create %s (%s)", zshrc, details)
            return FileResult(path=zshrc, action=ApplyAction.PLANNED, details=details)

        touch_history(zdotdir)

        if read_text(zshrc) == stub:
            logger.info("zshrc already in place: %s", zshrc)
            return FileResult(path=zshrc, action=ApplyAction.UNCHANGED)

        backup = None
        action = ApplyAction.WRITTEN
        if foreign:
            backup = self.ledger.record_backup().store(zshrc)
            remove_managed(zshrc, backed_up=True)
            action = ApplyAction.BACKED_UP

        ensure_directory(zshrc.parent)
        try:
            zshrc.write_text(stub, encoding="utf-8")
        except OSError as exc:
            raise WriteIOError(f"Cannot write '{zshrc}': {exc}") from exc

        log_success(logger, "Created %s", zshrc)
        return FileResult(path=zshrc, action=action, backup=backup)

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_sources(self, plan: LinkPlan) -> None:
        for spec in plan:
            if not exists(spec.source):
                logger.error("Source path '%s' does not exist", spec.source)
                raise PathConflict(f"Source path '{spec.source}' does not exist")

    def _preview(self, spec: LinkSpec) -> ApplyResult:
        target = spec.target
        if symlink_points_to(target, spec.source):
            details = "already linked"
        elif target.is_symlink():
            details = "would replace existing symlink"
        elif exists(target):
            details = "would back up and replace existing path"
        else:
            details = "would create symlink"

        logger.info("Would create symlink: %s -> %s (%s)", target, spec.source, details)
        return ApplyResult(spec=spec, action=ApplyAction.PLANNED, details=details)

    def _apply_spec(self, spec: LinkSpec) -> ApplyResult:
        source, target = spec.source, spec.target
        backup = None

        if target.is_symlink():
            if symlink_points_to(target, source):
                logger.info("Symlink already in place: %s -> %s", target, source)
                return ApplyResult(spec=spec, action=ApplyAction.UNCHANGED)
            remove_managed(target)
            action = ApplyAction.RELINKED
        elif exists(target):
            backup = self.ledger.record_backup().store(target)
            remove_managed(target, backed_up=True)
            action = ApplyAction.BACKED_UP
        else:
            action = ApplyAction.LINKED

        ensure_directory(target.parent)
        link(source, target)
        log_success(logger, "Created symlink: %s -> %s", target, source)
        return ApplyResult(spec=spec, action=action, backup=backup)
