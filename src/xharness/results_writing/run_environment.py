"""Host facts recorded in result files."""

from __future__ import annotations

import getpass
import locale
import os
import platform
from dataclasses import dataclass
from importlib import metadata

_FALLBACK_VERSION = "0.0.0"


@dataclass(frozen=True)
class RunEnvironment:  # pylint: disable=too-many-instance-attributes
    """Machine, runtime and culture facts of the host that produced the results."""

    harness_version: str
    runtime_version: str
    os_version: str
    platform: str
    cwd: str
    machine_name: str
    user: str
    user_domain: str
    culture: str
    ui_culture: str

    @staticmethod
    def capture() -> RunEnvironment:
        culture = _culture_name()
        return RunEnvironment(
            harness_version=harness_version(),
            runtime_version=platform.python_version(),
            os_version=platform.platform(),
            platform=platform.system(),
            cwd=os.getcwd(),
            machine_name=platform.node(),
            user=_user_name(),
            user_domain=platform.node(),
            culture=culture,
            ui_culture=culture,
        )


def harness_version() -> str:
    try:
        return metadata.version("xharness")
    except metadata.PackageNotFoundError:
        return _FALLBACK_VERSION


def _user_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def _culture_name() -> str:
    language, _ = locale.getlocale()
    if not language or language == "C":
        return "en-US"
    return language.replace("_", "-")
