# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
The build targets and the options each library is built with.
"""
from __future__ import annotations

import functools
import logging

from staccato_build.common import RELEASE, RunContext, runcmd

from .common import (
    Builder,
    build_cmake,
    build_meson,
    clean,
    hit_cache,
    stage_artifact,
    update_version_files,
)

log = logging.getLogger(__name__)

DEFAULT_TARGET = "build-all"

HARFBUZZ_OPTIONS = [
    "-D", "backend=ninja",
    "-D", "b_lto=true",
    "-D", "b_lto_mode=thin",
    "-D", "default_library=static",
    "-D", "auto_features=disabled",
    "-D", "icu=disabled",
    "-D", "cairo=disabled",
    "-D", "chafa=disabled",
    "-D", "freetype=disabled",
    "-D", "glib=disabled",
    "-D", "gobject=disabled",
    "-D", "tests=disabled",
    "-D", "utilities=disabled",
    "-D", "b_pie=true",
    "-D", "b_staticpic=true",
]

ZLIB_OPTIONS = [
    "-DZLIB_ENABLE_TESTS=OFF",
    "-DZLIB_COMPAT=ON",
    "-DWITH_GTEST=OFF",
    "-DBUILD_SHARED_LIBS=OFF",
    "-DBUILD_STATIC_LIBS=ON",
    "-DWITH_ARMV6=OFF",
    "-DWITH_NATIVE_INSTRUCTIONS=OFF",
]

BZIP2_OPTIONS = [
    "-DENABLE_WERROR=OFF",
    "-DENABLE_APP=OFF",
    "-DENABLE_DEBUG=OFF",
    "-DENABLE_DOCS=OFF",
    "-DENABLE_EXAMPLES=OFF",
    "-DENABLE_LIB_ONLY=ON",
    "-DENABLE_SHARED_LIB=OFF",
    "-DENABLE_STATIC_LIB=ON",
]

BROTLI_OPTIONS = [
    "-DBROTLI_BUILD_TOOLS=OFF",
    "-DBUILD_SHARED_LIBS=OFF",
    "-DBUILD_STATIC_LIBS=ON",
]

PLUTOSVG_OPTIONS = [
    "-DPLUTOSVG_BUILD_EXAMPLES=OFF",
    "-DPLUTOSVG_ENABLE_FREETYPE=ON",
]

SDL_OPTIONS = [
    "-DSDL_INSTALL=ON",
    "-DSDL_DEPS_SHARED=ON",
    "-DSDL_SHARED=ON",
    "-DSDL_STATIC=OFF",
    "-DSDL_TESTS=OFF",
    "-DSDL_UNINSTALL=OFF",
    "-DSDL_EXAMPLES=OFF",
]

RUNTIME_BUILD_STD = "build-std=core,alloc,std,proc_macro,test"


def restore_submodules(ctx: RunContext) -> None:
    runcmd(
        ["git", "submodule", "update", "--init", "--recursive"],
        cwd=ctx.root,
        platform=ctx.platform,
        base_env=ctx.environ,
    )


def bzip2_static_lib(ctx: RunContext) -> str:
    """
    The name of the static library bzip2 actually installs.
    """
    return f"libbz2_static.{ctx.platform.static_lib_ext}"


def build_zlib(ctx: RunContext) -> None:
    build_cmake(ctx, "zlib", ZLIB_OPTIONS)


def build_bzip2(ctx: RunContext) -> None:
    """
    Build bzip2 and expose its static library under the usual name.
    """
    build_cmake(ctx, "bzip2", BZIP2_OPTIONS)
    libdir = ctx.layout.library("bzip2").install / "lib"
    stage_artifact(
        libdir / f"libbz2.{ctx.platform.static_lib_ext}",
        libdir / bzip2_static_lib(ctx),
    )


def build_libpng(ctx: RunContext) -> None:
    layout = ctx.layout
    build_cmake(
        ctx,
        "libpng",
        [
            "-DPNG_TESTS=OFF",
            "-DPNG_EXECUTABLES=OFF",
            "-DPNG_BUILD_ZLIB=OFF",
            "-DPNG_HARDWARE_OPTIMIZATIONS=ON",
            "-DPNG_TOOLS=OFF",
            f"-DZLIB_ROOT={layout.library('zlib').install}",
            "-DBUILD_SHARED_LIBS=OFF",
            "-DBUILD_STATIC_LIBS=ON",
            "-DPNG_SHARED=OFF",
            "-DPNG_STATIC=ON",
        ],
    )


def build_brotli(ctx: RunContext) -> None:
    build_cmake(ctx, "brotli", BROTLI_OPTIONS)


def build_freetype(ctx: RunContext) -> None:
    """
    Build freetype against the compression and image libraries built before it.
    """
    layout = ctx.layout
    bzip2 = layout.library("bzip2").install
    bzip2_lib = bzip2 / "lib" / bzip2_static_lib(ctx)
    build_cmake(
        ctx,
        "freetype",
        [
            "-DFT_REQUIRE_ZLIB=ON",
            "-DFT_REQUIRE_BZIP2=ON",
            "-DFT_REQUIRE_PNG=ON",
            "-DFT_REQUIRE_BROTLI=ON",
            "-DFT_REQUIRE_HARFBUZZ=ON",
            "-DFT_DYNAMIC_HARFBUZZ=ON",
            f"-DZLIB_ROOT={layout.library('zlib').install}",
            f"-DBROTLIDEC_ROOT={layout.library('brotli').install}",
            f"-DPNG_ROOT={layout.library('libpng').install}",
            f"-DBZIP2_ROOT={bzip2}",
            f"-DBZIP2_INCLUDE_DIRS={bzip2 / 'include'}",
            f"-DBZIP2_LIBRARIES={bzip2_lib}",
            f"-DBZIP2_LIBRARY_DEBUG={bzip2_lib}",
            f"-DBZIP2_LIBRARY_RELEASE={bzip2_lib}",
            "-DBZIP2_NEED_PREFIX=ON",
            "-DBUILD_SHARED_LIBS=OFF",
            "-DBUILD_STATIC_LIBS=ON",
        ],
    )


def build_harfbuzz(ctx: RunContext) -> None:
    build_meson(ctx, "harfbuzz", HARFBUZZ_OPTIONS)


def build_plutosvg(ctx: RunContext) -> None:
    build_cmake(ctx, "plutosvg", PLUTOSVG_OPTIONS)


def build_sdl(ctx: RunContext) -> None:
    # libusb backed HIDAPI is only wanted on linux
    libusb = "ON" if ctx.platform.is_linux else "OFF"
    build_cmake(
        ctx,
        "SDL",
        SDL_OPTIONS
        + [f"-DSDL_HIDAPI_LIBUSB={libusb}", f"-DSDL_HIDAPI_LIBUSB_SHARED={libusb}"],
    )


def build_native(ctx: RunContext) -> None:
    """
    Build the glue library and put SDL next to it.

    SDL is the only shared library shipped with the glue library, every
    other shared dependency comes from the system.
    """
    layout = ctx.layout
    build_cmake(ctx, "native")
    sdl = ctx.platform.shared_lib_name("SDL3")
    stage_artifact(
        layout.native_install / sdl,
        layout.library("SDL").install / "lib" / sdl,
    )


def cargo_profile(configuration: str) -> str:
    if configuration == RELEASE:
        return "release"
    return "dev"


def build_runtime(ctx: RunContext) -> None:
    runcmd(
        [
            "cargo",
            "build",
            "--profile",
            cargo_profile(ctx.configuration),
            "--workspace",
            "-Z",
            RUNTIME_BUILD_STD,
        ],
        cwd=ctx.layout.runtime,
        platform=ctx.platform,
        base_env=ctx.environ,
    )


def build_sample(ctx: RunContext) -> None:
    log.info("No samples to build")


# target name, library name, build function, upstream targets
LIBRARIES = [
    ("build-zlib", "zlib", build_zlib, []),
    ("build-bzip2", "bzip2", build_bzip2, []),
    ("build-libpng", "libpng", build_libpng, ["build-zlib"]),
    ("build-brotli", "brotli", build_brotli, []),
    (
        "build-freetype",
        "freetype",
        build_freetype,
        ["build-libpng", "build-zlib", "build-bzip2", "build-brotli"],
    ),
    ("build-harfbuzz", "harfbuzz", build_harfbuzz, []),
    ("build-plutosvg", "plutosvg", build_plutosvg, ["build-freetype"]),
    ("build-sdl", "SDL", build_sdl, []),
    (
        "build-native",
        "native",
        build_native,
        ["build-freetype", "build-sdl", "build-harfbuzz", "build-plutosvg"],
    ),
]


def create_builder(ctx: RunContext) -> Builder:
    """
    Declare every target for a run.

    :param ctx: The run context
    :type ctx: ``staccato_build.common.RunContext``

    :return: The builder holding all targets
    :rtype: ``staccato_build.build.common.Builder``
    """
    layout = ctx.layout
    build = Builder()
    build.add(
        "restore-submodules",
        functools.partial(restore_submodules, ctx),
        description="Fetch the library sources",
    )
    build.add("restore-native", depends_on=["restore-submodules"])

    for target, name, func, depends_on in LIBRARIES:
        build.add(
            target,
            functools.partial(func, ctx),
            depends_on=["restore-native"] + depends_on,
            skip_if=functools.partial(hit_cache, layout.library(name)),
            description=f"Build {name}",
        )

    build.add(
        "build-sample",
        functools.partial(build_sample, ctx),
        depends_on=["restore-native"],
        skip_if=lambda: not ctx.build_sample,
        description="Build the samples",
    )
    build.add(
        "update-version-files",
        functools.partial(update_version_files, ctx),
        description="Write version.txt into Cargo.toml",
    )
    build.add(
        "build-runtime",
        functools.partial(build_runtime, ctx),
        depends_on=["update-version-files", "build-native"],
        description="Build the rust workspace",
    )
    build.add(
        DEFAULT_TARGET,
        depends_on=["build-native", "build-sample", "build-runtime"],
        description="Build everything",
    )
    build.add(
        "clean",
        functools.partial(clean, ctx),
        description="Remove the build trees",
    )
    return build
