# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Common classes and values used around staccato-build.
"""
from __future__ import annotations

import dataclasses
import logging
import os
import pathlib
import platform as _platform
import subprocess
import sys
from typing import Mapping, Optional, Sequence, Union

# staccato-build package version
__version__ = "0.3.0"

log = logging.getLogger(__name__)

LINUX = "linux"
WIN32 = "win32"
DARWIN = "darwin"

DEBUG = "Debug"
RELEASE = "Release"
CONFIGURATIONS = (DEBUG, RELEASE)

DEFAULT_PREFER_TOOL = "homebrew"

PathLike = Union[str, os.PathLike[str]]


class StaccatoException(Exception):
    """
    Base class for exceptions generated from staccato-build.
    """


class ConfigurationError(StaccatoException):
    """
    The target graph or the run configuration is invalid.
    """


class ToolResolutionError(StaccatoException):
    """
    No executable candidate was found for a tool.
    """


class CycleError(ConfigurationError):
    """
    The target graph contains a dependency cycle.

    :param path: The target names forming the cycle, first name repeated last
    :type path: list
    """

    def __init__(self, path: Sequence[str]) -> None:
        self.path = list(path)
        super().__init__("Dependency cycle: {}".format(" -> ".join(self.path)))


class ProcessError(StaccatoException):
    """
    An external program could not be run or exited with a non zero code.

    :param cmd: The command that was run
    :type cmd: list
    :param returncode: The exit code, ``None`` when the program never started
    :type returncode: int
    """

    def __init__(self, cmd: Sequence[str], returncode: Optional[int]) -> None:
        self.cmd = [str(_) for _ in cmd]
        self.returncode = returncode
        if returncode is None:
            msg = "Unable to start '{}'".format(" ".join(self.cmd))
        else:
            msg = "Command '{}' failed with exit code {}".format(
                " ".join(self.cmd), returncode
            )
        super().__init__(msg)


class ManifestError(StaccatoException):
    """
    A version manifest could not be patched.
    """


def build_arch() -> str:
    """
    Return the current machine.
    """
    return _platform.machine().lower()


@dataclasses.dataclass(frozen=True)
class Platform:
    """
    The operating system family and cpu architecture builds run on.

    Every platform specific rule (executable suffixes, library file names)
    is answered here so callers never look at ``sys.platform`` themselves.
    """

    os: str
    arch: str

    @classmethod
    def current(cls) -> "Platform":
        return cls(sys.platform, build_arch())

    @property
    def is_windows(self) -> bool:
        return self.os == WIN32

    @property
    def is_darwin(self) -> bool:
        return self.os == DARWIN

    @property
    def is_linux(self) -> bool:
        return self.os.startswith(LINUX)

    def executable_suffixes(self, pathext: Optional[str] = None) -> list[str]:
        """
        Get the suffixes tried when looking for an executable.

        On windows these are the ``PATHEXT`` entries, as given and lower
        cased, after the empty suffix.

        :param pathext: The ``PATHEXT`` value, defaults to the environment's
        :type pathext: str

        :return: The suffixes in the order they are tried
        :rtype: list
        """
        suffixes = [""]
        if not self.is_windows:
            return suffixes
        if pathext is None:
            pathext = os.environ.get("PATHEXT", "")
        exts = [_ for _ in pathext.split(";") if _]
        suffixes.extend(exts)
        suffixes.extend(_.lower() for _ in exts)
        return suffixes

    def is_rooted(self, name: str) -> bool:
        """
        Whether ``name`` is a path from a root rather than a bare tool name.

        On windows ``\\tools\\cmake`` and ``C:cmake`` count as rooted.
        """
        if os.path.isabs(name):
            return True
        if self.is_windows:
            path = pathlib.PureWindowsPath(name)
            return bool(path.root or path.drive)
        return False

    def executable(self, name: str) -> str:
        """
        Add the executable extension to ``name`` when the platform needs one.
        """
        if self.is_windows and not os.path.splitext(name)[1]:
            return f"{name}.exe"
        return name

    @property
    def static_lib_ext(self) -> str:
        return "lib" if self.is_windows else "a"

    def shared_lib_name(self, name: str) -> str:
        """
        Get the file name of the shared library ``name``.

        ``shared_lib_name("SDL3")`` is ``SDL3.dll``, ``libSDL3.dylib`` or
        ``libSDL3.so``.
        """
        if self.is_windows:
            return f"{name}.dll"
        elif self.is_darwin:
            return f"lib{name}.dylib"
        return f"lib{name}.so"


def which(
    name: str,
    preferred: str = DEFAULT_PREFER_TOOL,
    platform: Optional[Platform] = None,
    path: Optional[str] = None,
    pathext: Optional[str] = None,
) -> list[str]:
    """
    Find every executable named ``name`` on the search path.

    Candidates whose path contains ``preferred`` are ranked ahead of all
    others, search path order is kept otherwise. A rooted ``name`` is
    returned as is.

    :param name: The tool name or path
    :type name: str
    :param preferred: Substring marking a preferred candidate
    :type preferred: str
    :param platform: The platform rules to use, defaults to the current one
    :type platform: ``staccato_build.common.Platform``
    :param path: The search path, defaults to ``PATH``
    :type path: str
    :param pathext: The windows executable extensions, defaults to ``PATHEXT``
    :type pathext: str

    :return: The ranked candidates, possibly empty
    :rtype: list
    """
    if platform is None:
        platform = Platform.current()
    if platform.is_rooted(name):
        return [name]
    if path is None:
        path = os.environ.get("PATH", "")

    results: list[str] = []
    for directory in path.split(os.pathsep):
        if not directory:
            continue
        for suffix in platform.executable_suffixes(pathext):
            candidate = os.path.join(directory, name + suffix)
            if candidate not in results and os.path.isfile(candidate):
                results.append(candidate)

    if not preferred:
        return results
    prefers = [_ for _ in results if preferred in _]
    others = [_ for _ in results if preferred not in _]
    return prefers + others


def resolve_tool(
    name: str,
    preferred: str = DEFAULT_PREFER_TOOL,
    platform: Optional[Platform] = None,
    path: Optional[str] = None,
    pathext: Optional[str] = None,
) -> str:
    """
    Get the best candidate for a tool.

    :raises ToolResolutionError: If no candidate was found

    :return: The path to the tool
    :rtype: str
    """
    candidates = which(name, preferred, platform, path, pathext)
    if not candidates:
        raise ToolResolutionError(f"Unable to find '{name}' on the search path")
    return candidates[0]


def runcmd(
    cmd: Sequence[PathLike],
    cwd: Optional[PathLike] = None,
    env: Optional[Mapping[str, str]] = None,
    platform: Optional[Platform] = None,
    base_env: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Run a command.

    The command is never passed through a shell and its output goes straight
    to our own stdout and stderr. This blocks until the program exits.

    :param cmd: The program followed by its arguments
    :type cmd: list
    :param cwd: The working directory of the program
    :type cwd: str
    :param env: Environment variables set on top of ``base_env``
    :type env: dict
    :param platform: The platform rules to use, defaults to the current one
    :type platform: ``staccato_build.common.Platform``
    :param base_env: The inherited environment, defaults to ``os.environ``
    :type base_env: dict

    :raises ProcessError: If the command can not start or exits non zero

    :return: The exit code, always 0
    :rtype: int
    """
    if not cmd:
        raise StaccatoException("No command provided to runcmd")
    if platform is None:
        platform = Platform.current()
    args = [platform.executable(os.fspath(cmd[0]))]
    args.extend(os.fspath(_) for _ in cmd[1:])

    child_env = dict(os.environ if base_env is None else base_env)
    if env:
        child_env.update(env)

    log.info("Running command: %s (in %s)", " ".join(args), cwd or os.getcwd())
    try:
        proc = subprocess.run(args, cwd=cwd, env=child_env, check=False)
    except OSError as exc:
        log.error("Unable to start %s: %s", args[0], exc)
        raise ProcessError(args, None) from exc
    if proc.returncode != 0:
        raise ProcessError(args, proc.returncode)
    return proc.returncode


def cmd_output(cmd: Sequence[PathLike], cwd: Optional[PathLike] = None) -> str:
    """
    Run a command and return what it wrote to stdout.

    :raises ProcessError: If the command can not start or exits non zero
    """
    args = [os.fspath(_) for _ in cmd]
    log.debug("Running command: %s", " ".join(args))
    try:
        proc = subprocess.run(
            args, cwd=cwd, stdout=subprocess.PIPE, universal_newlines=True, check=False
        )
    except OSError as exc:
        raise ProcessError(args, None) from exc
    if proc.returncode != 0:
        raise ProcessError(args, proc.returncode)
    return proc.stdout


def is_standalone_project(root: PathLike) -> bool:
    """
    Whether ``root`` is checked out on its own rather than as a git submodule.

    Anything that keeps git from answering counts as standalone.
    """
    try:
        out = cmd_output(
            ["git", "rev-parse", "--show-superproject-working-tree"], cwd=root
        )
    except ProcessError as exc:
        log.debug("Unable to query superproject: %s", exc)
        return True
    return not out.strip()


@dataclasses.dataclass(frozen=True)
class LibrarySpec:
    """
    Where one library's sources, build tree and install tree live.
    """

    name: str
    source: pathlib.Path
    build: pathlib.Path
    install: pathlib.Path

    @property
    def lock_file(self) -> pathlib.Path:
        return self.install / f"{self.name}-installed.lock"


class Layout:
    """
    Simple class used to hold the directories of a build relative to a given root.

    :param root: The root of the source tree
    :type root: str
    :param configuration: The build configuration, ``Debug`` or ``Release``
    :type configuration: str
    """

    NATIVE = "native"

    def __init__(self, root: PathLike, configuration: str) -> None:
        self.root = pathlib.Path(root)
        self.configuration = configuration
        self.libraries = self.root / "library"
        self.native = self.root / "native"
        self.scripts = self.root / "script"
        self.runtime = self.root / "src"
        self.cargo_file = self.runtime / "Cargo.toml"
        self.version_file = self.root / "version.txt"
        self.toolchain_file = self.native / "toolchain.cmake"
        self.build = self.root / f"build-{configuration}"
        self.install = self.root / f"install-{configuration}"
        self.artifact = self.root / f"artifact-{configuration}"
        self.native_build = self.build / self.NATIVE
        self.native_install = self.artifact / self.NATIVE

    def library(self, name: str) -> LibrarySpec:
        """
        Get the directories of the library ``name``.

        The glue library has its own source, build and install roots, every
        other library installs into the shared prefix.
        """
        if name == self.NATIVE:
            return LibrarySpec(name, self.native, self.native_build, self.native_install)
        return LibrarySpec(
            name, self.libraries / name, self.build / name, self.install
        )

    def to_dict(self) -> dict[str, pathlib.Path]:
        return {
            x: getattr(self, x)
            for x in [
                "root",
                "build",
                "install",
                "artifact",
                "native_install",
            ]
        }


@dataclasses.dataclass(frozen=True)
class RunContext:
    """
    Everything a build run needs to know, fixed when the run starts.
    """

    root: pathlib.Path
    configuration: str = DEBUG
    build_sample: bool = True
    cmake: str = "cmake"
    clang: str = "clang"
    uv: str = "uv"
    prefer_tool: str = DEFAULT_PREFER_TOOL
    platform: Platform = dataclasses.field(default_factory=Platform.current)
    environ: Mapping[str, str] = dataclasses.field(
        default_factory=lambda: dict(os.environ)
    )

    def __post_init__(self) -> None:
        if self.configuration not in CONFIGURATIONS:
            raise ConfigurationError(
                "Unknown configuration {}, expected one of {}".format(
                    self.configuration, ", ".join(CONFIGURATIONS)
                )
            )

    @property
    def layout(self) -> Layout:
        return Layout(self.root, self.configuration)

    def which(self, name: str) -> list[str]:
        """
        Find the ranked candidates for ``name`` with this run's search path.
        """
        return which(
            name,
            self.prefer_tool,
            self.platform,
            self.environ.get("PATH", ""),
            self.environ.get("PATHEXT", ""),
        )

    def resolve(self, name: str) -> str:
        """
        Find the best candidate for ``name`` with this run's search path.
        """
        return resolve_tool(
            name,
            self.prefer_tool,
            self.platform,
            self.environ.get("PATH", ""),
            self.environ.get("PATHEXT", ""),
        )
