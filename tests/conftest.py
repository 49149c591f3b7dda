from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

import pytest

from dotlink.ledger import BackupLedger
from dotlink.plan import LinkPlan, default_plan


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A dotfiles repository with the three default link sources."""

    root = tmp_path / "dotfiles"
    config = root / "config"
    (config / "zsh").mkdir(parents=True)
    (config / "ghostty").mkdir()
    (config / "starship.toml").write_text('format = "$all"\n')
    (config / "zsh" / "zsh.sh").write_text("source ${ZDOTDIR}/env.sh\n")
    (config / "ghostty" / "config").write_text("theme = dark\n")
    return root


@pytest.fixture
def plan(repo: Path, fake_home: Path) -> LinkPlan:
    return default_plan(repo, fake_home / ".config")


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """A clock that advances one minute per call."""

    current = [datetime(2024, 5, 1, 12, 0, 0)]

    def tick() -> datetime:
        value = current[0]
        current[0] = value + timedelta(minutes=1)
        return value

    return tick


@pytest.fixture
def ledger(fake_home: Path, clock: Callable[[], datetime]) -> BackupLedger:
    return BackupLedger(fake_home / ".dotfiles-backup", clock=clock)
