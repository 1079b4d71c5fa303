# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Build functions driving CMake and Meson.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Mapping, Optional, Sequence

from staccato_build.common import PathLike, RunContext, runcmd

from .cache import hit_cache, mark_cached

log = logging.getLogger(__name__)

GENERATOR = "Ninja"

# Sibling tools looked up next to the C compiler, keyed by the variable
# meson reads them from.
COMPILER_SIBLINGS = {
    "CXX": "clang++",
    "AR": "llvm-ar",
    "RANLIB": "llvm-ranlib",
}


def run_cmake(ctx: RunContext, cwd: PathLike, args: Sequence[PathLike]) -> None:
    """
    Run cmake with ``args`` in ``cwd``.
    """
    cmake = ctx.resolve(ctx.cmake)
    log.info('Run %s "%s"', cmake, '" "'.join(os.fspath(_) for _ in args))
    runcmd([cmake, *args], cwd=cwd, platform=ctx.platform, base_env=ctx.environ)


def derive_toolchain(ctx: RunContext) -> Dict[str, str]:
    """
    Find the C compiler and the tools that come with it.

    The C++ compiler, archiver and index tool are taken from the directory
    the C compiler was found in so every build uses one toolchain.

    :param ctx: The run context
    :type ctx: ``staccato_build.common.RunContext``

    :raises ToolResolutionError: If one of the tools can not be found

    :return: ``CC``, ``CXX``, ``AR`` and ``RANLIB``
    :rtype: dict
    """
    clang = ctx.resolve(ctx.clang)
    bindir = os.path.dirname(clang)
    toolchain = {"CC": clang}
    for var, sibling in COMPILER_SIBLINGS.items():
        name = os.path.join(bindir, sibling) if bindir else sibling
        toolchain[var] = ctx.resolve(name)
    for var, tool in toolchain.items():
        log.info("Using %s: %s", var, tool)
    return toolchain


def run_uv(
    ctx: RunContext,
    cwd: PathLike,
    args: Sequence[PathLike],
    toolchain: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Run uv with ``args`` in ``cwd``, exporting the compiler toolchain.
    """
    uv = ctx.resolve(ctx.uv)
    if toolchain is None:
        toolchain = derive_toolchain(ctx)
    log.info("Using uv: %s", uv)
    runcmd(
        [uv, *args],
        cwd=cwd,
        env=toolchain,
        platform=ctx.platform,
        base_env=ctx.environ,
    )


def build_cmake(ctx: RunContext, name: str, options: Sequence[str] = ()) -> bool:
    """
    Configure, build and install a CMake project.

    :param ctx: The run context
    :type ctx: ``staccato_build.common.RunContext``
    :param name: The library to build
    :type name: str
    :param options: Extra arguments for the configure step
    :type options: list

    :return: False when the library was already installed
    :rtype: bool
    """
    layout = ctx.layout
    lib = layout.library(name)
    if hit_cache(lib):
        return False

    configuration = ctx.configuration
    run_cmake(
        ctx,
        lib.source,
        [
            "-S",
            lib.source,
            "-B",
            lib.build,
            "-G",
            GENERATOR,
            f"-DCMAKE_TOOLCHAIN_FILE={layout.toolchain_file}",
            f"-DCMAKE_BUILD_TYPE={configuration}",
            f"-DCMAKE_INSTALL_PREFIX={lib.install}",
            f"-DSTACCATO_INSTALL_ROOT={layout.install}",
            "-Wno-dev",
            *options,
        ],
    )
    run_cmake(ctx, lib.build, ["--build", ".", "--config", configuration])
    run_cmake(ctx, lib.build, ["--install", ".", "--config", configuration])

    mark_cached(lib)
    return True


def build_meson(ctx: RunContext, name: str, options: Sequence[str] = ()) -> bool:
    """
    Setup, compile and install a Meson project through uv.

    Meson runs from the ``script`` project so its version is pinned there.

    :param ctx: The run context
    :type ctx: ``staccato_build.common.RunContext``
    :param name: The library to build
    :type name: str
    :param options: Extra arguments for ``meson setup``
    :type options: list

    :return: False when the library was already installed
    :rtype: bool
    """
    layout = ctx.layout
    lib = layout.library(name)
    if hit_cache(lib):
        return False

    toolchain = derive_toolchain(ctx)
    meson = ["run", "--project", layout.scripts, "meson"]
    run_uv(
        ctx,
        lib.source,
        [
            *meson,
            "setup",
            lib.build,
            "--prefix",
            lib.install,
            "--buildtype",
            ctx.configuration.lower(),
            *options,
        ],
        toolchain,
    )
    run_uv(ctx, lib.build, [*meson, "compile"], toolchain)
    run_uv(ctx, lib.build, [*meson, "install"], toolchain)

    mark_cached(lib)
    return True
