"""Error kinds raised by dotlink."""

from __future__ import annotations


class DotlinkError(RuntimeError):
    """Raised when dotlink encounters an unrecoverable state."""


class PathConflict(DotlinkError):
    """A path exists in a shape that prevents the requested operation."""


class BackupIOError(DotlinkError):
    """Copying a path into a backup set failed."""


class LinkIOError(DotlinkError):
    """The filesystem rejected creating or removing a symlink."""


class NoBackupFound(DotlinkError):
    """The backup ledger holds no backup sets."""


class UnsupportedPlatform(DotlinkError):
    """The current operating system is not supported."""


class ConfigError(DotlinkError):
    """Raised when a configuration file cannot be parsed or validated."""


class WriteIOError(DotlinkError):
    """Writing a generated file, such as the zshrc stub, failed."""
