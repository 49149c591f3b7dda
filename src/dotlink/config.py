"""Run configuration for dotlink."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError
from .models import RunMode
from .plan import LinkPlan, build_plan, default_plan, expand_path, expand_target

DEFAULT_CONFIG_FILENAME = "dotlink.toml"
DEFAULT_TOOLS: tuple[str, ...] = ("zsh", "git", "nvim", "go", "starship")
DEFAULT_LOG_FILENAME = ".dotfiles-setup.log"

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_LOG_FILENAME",
    "DEFAULT_TOOLS",
    "Config",
    "ConfigError",
    "Settings",
    "default_log_file",
    "load_config",
]


class Settings(BaseModel):
    """Locations and options that do not depend on the run mode."""

    model_config = ConfigDict(frozen=True)

    config_dir: Path
    backup_root: Path
    log_file: Path
    tools: tuple[str, ...] = Field(default=DEFAULT_TOOLS)
    # ``None`` disables the zshrc stub step.
    zshrc: Path | None = None
    zdotdir: Path | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, home: Path, base_dir: Path) -> "Settings":
        config_dir = _setting_path(raw, "config_dir", home / ".config", base_dir=base_dir)
        backup_root = _setting_path(raw, "backup_root", home / ".dotfiles-backup", base_dir=base_dir)
        log_file = _setting_path(raw, "log_file", home / DEFAULT_LOG_FILENAME, base_dir=base_dir)

        tools_raw = raw.get("tools", DEFAULT_TOOLS)
        if not isinstance(tools_raw, (list, tuple)) or not all(isinstance(tool, str) for tool in tools_raw):
            raise ConfigError("'settings.tools' must be a list of command names")

        zshrc_raw = raw.get("zshrc")
        if zshrc_raw is False:
            zshrc = None
            zdotdir = None
        elif zshrc_raw is None or isinstance(zshrc_raw, str):
            zshrc = expand_target(zshrc_raw or home / ".zshrc", base_dir=home)
            # The zdotdir is normally a managed symlink itself.
            zdotdir = expand_target(raw.get("zdotdir") or config_dir / "zsh", base_dir=base_dir)
        else:
            raise ConfigError("'settings.zshrc' must be a path or false")

        return cls(
            config_dir=config_dir,
            backup_root=backup_root,
            log_file=log_file,
            tools=tuple(tools_raw),
            zshrc=zshrc,
            zdotdir=zdotdir,
        )


class Config(BaseModel):
    """Everything a run needs, resolved once at startup."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    repo_root: Path
    home: Path
    config_path: Path | None = None
    settings: Settings
    plan: LinkPlan
    mode: RunMode = RunMode.APPLY
    dry_run: bool = False
    skip_tools: bool = False


def load_config(
    repo_root: Path | None = None,
    config_path: Path | None = None,
    *,
    home: Path | None = None,
    mode: RunMode = RunMode.APPLY,
    dry_run: bool = False,
    skip_tools: bool = False,
) -> Config:
    """Build the run configuration.

    Args:
        repo_root: Dotfiles repository root. Defaults to the current directory.
        config_path: Optional ``dotlink.toml``. When omitted, ``<repo_root>/dotlink.toml``
            is used if it exists; otherwise the built-in settings and link plan apply.
        home: Home directory. Defaults to ``Path.home()``.
    """

    repo = (repo_root or Path.cwd()).expanduser().resolve(strict=False)
    if not repo.is_dir():
        raise ConfigError(f"Repository root '{repo}' is not a directory")
    home_dir = (home or Path.home()).resolve(strict=False)

    resolved_config = _resolve_config_path(repo, config_path)
    data: Mapping[str, Any] = {}
    base_dir = repo
    if resolved_config is not None:
        base_dir = resolved_config.parent
        try:
            with resolved_config.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Cannot parse '{resolved_config}': {exc}") from exc

    settings = Settings.from_raw(data.get("settings") or {}, home=home_dir, base_dir=base_dir)

    links_raw = data.get("links")
    if links_raw is None:
        plan = default_plan(repo, settings.config_dir)
    else:
        plan = build_plan(repo, links_raw, base_dir=settings.config_dir)

    # A plan that links the zshrc itself owns that file.
    if settings.zshrc is not None and settings.zshrc in plan.targets():
        settings = settings.model_copy(update={"zshrc": None, "zdotdir": None})

    return Config(
        repo_root=repo,
        home=home_dir,
        config_path=resolved_config,
        settings=settings,
        plan=plan,
        mode=mode,
        dry_run=dry_run,
        skip_tools=skip_tools,
    )


def default_log_file(home: Path | None = None) -> Path:
    """Log location used before (or without) a loaded configuration."""

    return (home or Path.home()) / DEFAULT_LOG_FILENAME


def _setting_path(raw: Mapping[str, Any], key: str, default: Path, *, base_dir: Path) -> Path:
    value = raw.get(key)
    if value is None:
        return default.resolve(strict=False)
    return expand_path(value, base_dir=base_dir)


def _resolve_config_path(repo_root: Path, path: Path | None) -> Path | None:
    if path is None:
        candidate = repo_root / DEFAULT_CONFIG_FILENAME
        return candidate.resolve(strict=False) if candidate.is_file() else None

    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist")
    if path.is_dir():
        candidate = path / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            raise ConfigError(f"Expected to find '{DEFAULT_CONFIG_FILENAME}' inside '{path}', but none was located")
        path = candidate

    return path.resolve(strict=False)
