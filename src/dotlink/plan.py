"""The declarative list of links dotlink converges toward."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

from .errors import ConfigError
from .models import LinkSpec

# (path inside the repository, path under the config directory)
DEFAULT_LINKS: tuple[tuple[str, str], ...] = (
    ("config/starship.toml", "starship.toml"),
    ("config/zsh", "zsh"),
    ("config/ghostty", "ghostty"),
)


def expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def expand_target(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Like ``expand_path`` but never follows a symlink in the last segment.

    A link target is usually a symlink already; resolving it would yield its
    destination instead of the link itself.
    """

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if not expanded.is_absolute():
        expanded = base_dir / expanded
    absolute = Path(os.path.abspath(expanded))
    return absolute.parent.resolve(strict=False) / absolute.name


class LinkPlan:
    """Ordered, immutable sequence of ``LinkSpec`` values."""

    def __init__(self, specs: Sequence[LinkSpec]) -> None:
        self._specs = tuple(specs)

    def __iter__(self) -> Iterator[LinkSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LinkPlan) and other._specs == self._specs

    def __hash__(self) -> int:
        return hash(self._specs)

    def __repr__(self) -> str:
        return f"LinkPlan({list(self._specs)!r})"

    @property
    def specs(self) -> tuple[LinkSpec, ...]:
        return self._specs

    def targets(self) -> tuple[Path, ...]:
        return tuple(spec.target for spec in self._specs)

    def find_by_name(self, name: str) -> LinkSpec | None:
        """Return the spec whose target basename is ``name``, if exactly one matches."""

        matches = [spec for spec in self._specs if spec.target.name == name]
        return matches[0] if len(matches) == 1 else None


def default_plan(repo_root: Path, config_dir: Path) -> LinkPlan:
    return build_plan(
        repo_root,
        [{"source": source, "target": config_dir / target} for source, target in DEFAULT_LINKS],
        base_dir=repo_root,
    )


def build_plan(repo_root: Path, raw_links: Sequence[Mapping[str, Any]], *, base_dir: Path) -> LinkPlan:
    """Validate raw ``{source, target}`` tables into a ``LinkPlan``.

    Relative sources resolve against ``repo_root``; relative targets against
    ``base_dir``. Every source must live inside ``repo_root``.
    """

    if not raw_links:
        raise ConfigError("The link plan must define at least one link")

    root = repo_root.resolve(strict=False)
    specs: list[LinkSpec] = []
    seen: set[Path] = set()

    for index, raw in enumerate(raw_links):
        try:
            source_raw = raw["source"]
            target_raw = raw["target"]
        except KeyError as exc:
            raise ConfigError(f"Link #{index + 1} is missing the '{exc.args[0]}' key") from None

        source = expand_path(source_raw, base_dir=root)
        target = expand_target(target_raw, base_dir=base_dir)

        if not source.is_relative_to(root):
            raise ConfigError(f"Link source '{source}' must live inside the repository '{root}'")
        if target in seen:
            raise ConfigError(f"Link target '{target}' is listed more than once")
        if target == source or source.is_relative_to(target):
            raise ConfigError(f"Link target '{target}' would overwrite its own source")
        seen.add(target)
        specs.append(LinkSpec(source=source, target=target))

    return LinkPlan(specs)
