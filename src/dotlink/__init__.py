"""Core package for the dotlink project."""

from .cli import app, run
from .config import Config, Settings, load_config
from .errors import (
    BackupIOError,
    ConfigError,
    DotlinkError,
    LinkIOError,
    NoBackupFound,
    PathConflict,
    UnsupportedPlatform,
    WriteIOError,
)
from .ledger import BackupLedger, BackupSetHandle
from .models import (
    ApplyAction,
    ApplyResult,
    BackupEntry,
    FileResult,
    LinkSpec,
    RestoreAction,
    RestoreResult,
    RollbackReport,
    RunMode,
    ValidationEntry,
    ValidationReport,
    ValidationState,
)
from .plan import LinkPlan, build_plan, default_plan
from .reconciler import Reconciler
from .rollback import RollbackEngine

__all__ = [
    "Config",
    "Settings",
    "load_config",
    "DotlinkError",
    "ConfigError",
    "PathConflict",
    "BackupIOError",
    "LinkIOError",
    "NoBackupFound",
    "UnsupportedPlatform",
    "WriteIOError",
    "BackupLedger",
    "BackupSetHandle",
    "LinkPlan",
    "build_plan",
    "default_plan",
    "Reconciler",
    "RollbackEngine",
    "ApplyAction",
    "ApplyResult",
    "BackupEntry",
    "FileResult",
    "LinkSpec",
    "RestoreAction",
    "RestoreResult",
    "RollbackReport",
    "RunMode",
    "ValidationEntry",
    "ValidationReport",
    "ValidationState",
    "app",
    "run",
]
