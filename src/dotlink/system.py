"""Platform detection and advisory tool checks.

dotlink does not install anything itself. It only reports which of the
configured tools are missing and which package manager would provide them.
"""

from __future__ import annotations

import logging
import platform
import shutil
import sys
from dataclasses import dataclass
from typing import Iterable

from .errors import UnsupportedPlatform

logger = logging.getLogger(__name__)

PACKAGE_MANAGERS = {"macos": "brew", "linux": "apt"}


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """The operating system dotlink is running on."""

    os_type: str
    version: str
    distribution: str | None = None

    @property
    def package_manager(self) -> str:
        return PACKAGE_MANAGERS[self.os_type]

    def describe(self) -> str:
        if self.os_type == "macos":
            return f"macOS {self.version}"
        if self.distribution == "ubuntu":
            return f"Ubuntu {self.version}"
        if self.distribution:
            return f"Linux ({self.distribution}) {self.version}"
        return "Linux (unknown distribution)"


@dataclass(frozen=True, slots=True)
class ToolStatus:
    name: str
    path: str | None

    @property
    def installed(self) -> bool:
        return self.path is not None


def detect_platform(sys_platform: str | None = None) -> PlatformInfo:
    """Identify macOS or Linux; anything else raises ``UnsupportedPlatform``."""

    current = sys_platform or sys.platform
    if current == "darwin":
        info = PlatformInfo("macos", platform.mac_ver()[0] or "unknown")
    elif current.startswith("linux"):
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            logger.warning("Linux detected but cannot determine distribution")
            release = {}
        info = PlatformInfo("linux", release.get("VERSION_ID", "unknown"), release.get("ID"))
    else:
        logger.error("Unsupported operating system: %s", current)
        raise UnsupportedPlatform(f"Unsupported operating system: {current}")

    logger.info("Detected %s", info.describe())
    return info


def check_tools(tools: Iterable[str]) -> list[ToolStatus]:
    statuses: list[ToolStatus] = []
    for name in tools:
        status = ToolStatus(name, shutil.which(name))
        if status.installed:
            logger.info("%s is installed", name)
        else:
            logger.warning("%s is not installed", name)
        statuses.append(status)
    return statuses
