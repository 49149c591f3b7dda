from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from dotlink.errors import BackupIOError, NoBackupFound
from dotlink.ledger import INDEX_FILENAME, BackupLedger, BackupSetHandle


def _fill(handle: BackupSetHandle, home: Path) -> BackupSetHandle:
    original = home / f"rc-{handle.path.name}"
    original.write_text("x")
    handle.store(original)
    return handle


def test_record_backup_is_lazy_and_reused(ledger: BackupLedger, fake_home: Path) -> None:
    assert not ledger.root.exists()
    assert ledger.current is None

    first = ledger.record_backup()
    second = ledger.record_backup()

    assert first == second
    assert first.path == ledger.root / "20240501_120000"
    # Reserving a set does not create it yet.
    assert not first.path.exists()
    assert ledger.list_backup_sets() == ()

    _fill(first, fake_home)
    assert first.path.is_dir()
    assert ledger.list_backup_sets() == (first,)


def test_list_backup_sets_ordered_by_timestamp(fake_home: Path, clock) -> None:
    root = fake_home / ".dotfiles-backup"
    handles = [_fill(BackupLedger(root, clock=clock).record_backup(), fake_home) for _ in range(3)]

    ledger = BackupLedger(root)
    assert ledger.list_backup_sets() == tuple(handles)
    assert ledger.most_recent() == handles[-1]


def test_same_second_sets_get_unique_names(fake_home: Path) -> None:
    root = fake_home / ".dotfiles-backup"
    fixed = datetime(2024, 5, 1, 12, 0, 0)

    first = _fill(BackupLedger(root, clock=lambda: fixed).record_backup(), fake_home)
    second = _fill(BackupLedger(root, clock=lambda: fixed).record_backup(), fake_home)

    assert first.path.name == "20240501_120000"
    assert second.path.name == "20240501_120000_01"
    assert BackupLedger(root).most_recent() == second


def test_most_recent_without_backups(ledger: BackupLedger) -> None:
    assert ledger.list_backup_sets() == ()
    with pytest.raises(NoBackupFound):
        ledger.most_recent()


def test_failed_first_store_leaves_no_set(
    ledger: BackupLedger, fake_home: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    original = fake_home / ".config" / "starship.toml"
    original.parent.mkdir(parents=True)
    original.write_text("foo=bar")

    def broken_copy(source: Path, destination: Path):
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text("half")
        raise OSError("disk full")

    monkeypatch.setattr("dotlink.filesystem.copy_entry", broken_copy)
    handle = ledger.record_backup()

    with pytest.raises(BackupIOError):
        handle.store(original)

    assert not handle.path.exists()
    assert original.read_text() == "foo=bar"
    with pytest.raises(NoBackupFound):
        BackupLedger(ledger.root).most_recent()


def test_failed_later_store_keeps_earlier_entries(
    ledger: BackupLedger, fake_home: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = fake_home / "first"
    second = fake_home / "second"
    first.write_text("one")
    second.write_text("two")
    handle = ledger.record_backup()
    kept = handle.store(first)

    def broken_copy(_source: Path, _destination: Path):
        raise OSError("disk full")

    monkeypatch.setattr("dotlink.filesystem.copy_entry", broken_copy)

    with pytest.raises(BackupIOError):
        handle.store(second)

    assert handle.entries() == (kept,)
    assert not (handle.path / "second").exists()
    assert ledger.most_recent() == handle


def test_empty_set_directories_are_ignored(fake_home: Path) -> None:
    root = fake_home / ".dotfiles-backup"
    (root / "20240101_000000").mkdir(parents=True)

    with pytest.raises(NoBackupFound):
        BackupLedger(root).most_recent()

def test_store_records_index(ledger: BackupLedger, fake_home: Path) -> None:
    original = fake_home / ".config" / "starship.toml"
    original.parent.mkdir(parents=True)
    original.write_text("foo=bar")

    handle = ledger.record_backup()
    entry = handle.store(original)

    assert entry.original_path == original
    assert entry.stored_path == handle.path / "starship.toml"
    assert entry.stored_path.read_text() == "foo=bar"
    assert (handle.path / INDEX_FILENAME).exists()

    reloaded = BackupLedger(ledger.root).most_recent()
    assert reloaded.entries() == (entry,)


def test_store_disambiguates_basenames(ledger: BackupLedger, fake_home: Path) -> None:
    first = fake_home / "a" / "config"
    second = fake_home / "b" / "config"
    for path, text in ((first, "one"), (second, "two")):
        path.parent.mkdir(parents=True)
        path.write_text(text)

    handle = ledger.record_backup()
    entry_one = handle.store(first)
    entry_two = handle.store(second)

    assert entry_one.stored_path.name == "config"
    assert entry_two.stored_path.name == "config.2"
    assert entry_two.stored_path.read_text() == "two"
    assert [entry.original_path for entry in handle.entries()] == [first, second]


def test_store_same_target_twice_keeps_first_snapshot(ledger: BackupLedger, fake_home: Path) -> None:
    original = fake_home / "file"
    original.write_text("first")
    handle = ledger.record_backup()
    entry = handle.store(original)

    original.write_text("second")

    assert handle.store(original) == entry
    assert entry.stored_path.read_text() == "first"


def test_entries_without_index(fake_home: Path) -> None:
    legacy = fake_home / ".dotfiles-backup" / "20230101_000000"
    legacy.mkdir(parents=True)
    (legacy / ".zshrc").write_text("export ZDOTDIR=~/.config/zsh\n")
    (legacy / "zsh").mkdir()

    handle = BackupLedger(legacy.parent).most_recent()
    entries = handle.entries()

    assert [entry.stored_path.name for entry in entries] == [".zshrc", "zsh"]
    assert all(entry.original_path is None for entry in entries)
    assert all(entry.timestamp == "20230101_000000" for entry in entries)
