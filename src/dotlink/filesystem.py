"""Filesystem mutation primitives for dotlink."""

from __future__ import annotations

import os
import shutil
from hashlib import sha256
from pathlib import Path

from .errors import BackupIOError, LinkIOError, PathConflict
from .models import EntryType


def exists(path: Path) -> bool:
    """Return ``True`` if ``path`` exists, counting dangling symlinks."""

    return path.exists() or path.is_symlink()


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    ensure_directory(path.parent)


def ensure_directory(path: Path) -> None:
    """Create ``path`` and any missing ancestors.

    Raises ``PathConflict`` if ``path`` (or an ancestor) exists as something other
    than a directory.
    """

    if path.is_dir():
        return
    if exists(path):
        raise PathConflict(f"'{path}' exists and is not a directory")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as exc:
        raise PathConflict(f"Cannot create directory '{path}': an ancestor is not a directory") from exc


def entry_type(path: Path) -> EntryType:
    if path.is_symlink():
        return EntryType.SYMLINK
    return EntryType.DIRECTORY if path.is_dir() else EntryType.FILE


def copy_entry(source: Path, destination: Path) -> EntryType:
    """Copy ``source`` over ``destination`` preserving metadata and inner symlinks."""

    kind = entry_type(source)
    ensure_parent(destination)
    remove_path(destination)

    if kind is EntryType.SYMLINK:
        destination.symlink_to(os.readlink(source))
    elif kind is EntryType.DIRECTORY:
        shutil.copytree(
            source,
            destination,
            symlinks=True,
            copy_function=shutil.copy2,
            dirs_exist_ok=False,
        )
    else:
        shutil.copy2(source, destination)

    return kind


def backup_path(path: Path, backup_dir: Path, name: str | None = None) -> Path | None:
    """Copy ``path`` into ``backup_dir`` under ``name`` (its basename by default).

    Returns the stored path, or ``None`` if there was nothing to back up.
    """

    if not exists(path):
        return None

    stored = backup_dir / (name or path.name)
    try:
        ensure_directory(backup_dir)
        copy_entry(path, stored)
    except (OSError, PathConflict) as exc:
        raise BackupIOError(f"Failed to back up '{path}' to '{stored}': {exc}") from exc
    return stored


def remove_path(path: Path) -> None:
    """Delete ``path`` whether it is a file, directory, or symlink."""

    if not exists(path):
        return
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    shutil.rmtree(path)


def remove_managed(path: Path, *, backed_up: bool = False) -> None:
    """Remove a symlink, or a real path that has already been backed up.

    Symlinks are unlinked without touching what they point at. Real files and
    directories are only deleted when ``backed_up`` is set.
    """

    if path.is_symlink():
        try:
            path.unlink()
        except OSError as exc:
            raise LinkIOError(f"Cannot remove symlink '{path}': {exc}") from exc
        return
    if not path.exists():
        return
    if not backed_up:
        raise PathConflict(f"Refusing to remove '{path}' without a backup")
    try:
        remove_path(path)
    except OSError as exc:
        raise LinkIOError(f"Cannot remove '{path}': {exc}") from exc


def symlink_points_to(link_path: Path, target: Path) -> bool:
    """Return ``True`` if ``link_path`` is a symlink that resolves to ``target``."""

    if not link_path.is_symlink():
        return False
    current = Path(os.readlink(link_path))
    current_resolved = (link_path.parent / current).resolve(strict=False)
    return current_resolved == target.resolve(strict=False)


def link(source: Path, target: Path) -> bool:
    """Create a symlink at ``target`` pointing to ``source``.

    Returns ``True`` if a change was made.
    """

    if symlink_points_to(target, source):
        return False
    try:
        target.symlink_to(source)
    except OSError as exc:
        raise LinkIOError(f"Cannot create symlink '{target}' -> '{source}': {exc}") from exc
    return True


def content_digest(path: Path) -> str:
    """Fingerprint ``path`` by kind, and for directories by every member's name and content.

    Symlinks contribute their link text; directory symlinks are not descended.
    """

    digest = sha256()
    _feed(digest, path, ".")
    if entry_type(path) is EntryType.DIRECTORY:
        for member in sorted(path.rglob("*")):
            _feed(digest, member, member.relative_to(path).as_posix())
    return digest.hexdigest()


def _feed(digest, path: Path, name: str) -> None:
    kind = entry_type(path)
    digest.update(f"{kind.value} {name}\n".encode())
    if kind is EntryType.SYMLINK:
        digest.update(os.readlink(path).encode())
    elif kind is EntryType.FILE:
        digest.update(path.read_bytes())
