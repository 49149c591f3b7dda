"""The ``~/.zshrc`` stub that hands zsh over to the linked ZDOTDIR."""

from __future__ import annotations

import logging
from pathlib import Path

ZDOTDIR_MARKER = "ZDOTDIR"
HISTORY_FILENAME = ".zsh_history"

STUB_TEMPLATE = """\
# Set ZDOTDIR to use modular ZSH configuration
export ZDOTDIR="{zdotdir}"

# Load ZSH configuration
if [[ -f "${{ZDOTDIR}}/zsh.sh" ]]; then
    source "${{ZDOTDIR}}/zsh.sh"
fi
"""

logger = logging.getLogger(__name__)


def render_stub(zdotdir: Path, *, home: Path) -> str:
    """Return the stub text, spelling ``zdotdir`` relative to ``${HOME}`` when possible."""

    try:
        relative = zdotdir.relative_to(home)
    except ValueError:
        value = str(zdotdir)
    else:
        value = f"${{HOME}}/{relative.as_posix()}"
    return STUB_TEMPLATE.format(zdotdir=value)


def read_text(path: Path) -> str | None:
    """Content of a regular file, or ``None`` when there is nothing readable there."""

    if path.is_symlink() or not path.is_file():
        return None
    return path.read_text(encoding="utf-8", errors="replace")


def mentions_zdotdir(path: Path) -> bool:
    """True when ``path`` is a file that already sets up ZDOTDIR.

    Such a file was written by an earlier run and is replaced without a backup.
    """

    text = read_text(path)
    return text is not None and ZDOTDIR_MARKER in text


def touch_history(zdotdir: Path) -> Path | None:
    """Make sure the zsh history file exists. Failures are logged, never raised."""

    history = zdotdir / HISTORY_FILENAME
    try:
        history.touch(exist_ok=True)
    except OSError as exc:
        logger.warning("Could not create zsh history file '%s': %s", history, exc)
        return None
    return history
