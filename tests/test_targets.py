# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import dataclasses
import pathlib
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest

from staccato_build.build.common.install import END_MARK, START_MARK
from staccato_build.build.targets import (
    DEFAULT_TARGET,
    LIBRARIES,
    build_bzip2,
    build_native,
    build_sdl,
    cargo_profile,
    create_builder,
)
from staccato_build.common import Platform, ProcessError, RunContext
from tests.helpers import make_lock

# mypy: ignore-errors

LIBRARY_NAMES = [name for _, name, _, _ in LIBRARIES]


@pytest.fixture
def project(ctx: RunContext) -> RunContext:
    layout = ctx.layout
    layout.runtime.mkdir(parents=True)
    layout.cargo_file.write_text(f"[package]\n{START_MARK}\n{END_MARK}\n")
    layout.version_file.write_text("0.4.0\n")
    return ctx


@pytest.fixture
def commands() -> Iterator[MagicMock]:
    cmd_mock = MagicMock(return_value=0)
    with patch("staccato_build.build.common.builders.runcmd", cmd_mock):
        with patch("staccato_build.build.targets.runcmd", cmd_mock):
            with patch("staccato_build.build.targets.stage_artifact") as stage_mock:
                cmd_mock.stage = stage_mock
                yield cmd_mock


def programs(cmd_mock: MagicMock) -> list[str]:
    return [pathlib.Path(_.args[0][0]).name for _ in cmd_mock.call_args_list]


def plan_names(ctx: RunContext, *names: str) -> list[str]:
    return [_.name for _ in create_builder(ctx).plan(*names)]


def test_plan_build_all(ctx: RunContext) -> None:
    names = plan_names(ctx, DEFAULT_TARGET)
    assert len(names) == len(set(names))
    assert names[0] == "restore-submodules"
    assert names[-1] == DEFAULT_TARGET
    assert "clean" not in names
    for target, _, _, _ in LIBRARIES:
        assert target in names


@pytest.mark.parametrize(
    "target,dependencies",
    [
        ("build-libpng", ["build-zlib"]),
        ("build-freetype", ["build-libpng", "build-zlib", "build-bzip2", "build-brotli"]),
        ("build-plutosvg", ["build-freetype"]),
        (
            "build-native",
            ["build-freetype", "build-sdl", "build-harfbuzz", "build-plutosvg"],
        ),
        ("build-runtime", ["update-version-files", "build-native"]),
        (DEFAULT_TARGET, ["build-native", "build-sample", "build-runtime"]),
    ],
)
def test_dependencies_planned_first(ctx: RunContext, target, dependencies) -> None:
    names = plan_names(ctx, target)
    for dependency in dependencies:
        assert names.index(dependency) < names.index(target)


def test_library_targets_restore_native_first(ctx: RunContext) -> None:
    for target, _, _, _ in LIBRARIES:
        names = plan_names(ctx, target)
        assert names.index("restore-submodules") < names.index("restore-native")
        assert names.index("restore-native") < names.index(target)


def test_library_target_skipped_when_cached(ctx: RunContext) -> None:
    build = create_builder(ctx)
    assert build.get("build-zlib").should_skip() is False
    make_lock(ctx.layout.install, "zlib")
    assert build.get("build-zlib").should_skip() is True
    assert build.get("build-libpng").should_skip() is False


def test_native_target_uses_artifact_lock(ctx: RunContext) -> None:
    build = create_builder(ctx)
    make_lock(ctx.layout.install, "native")
    assert build.get("build-native").should_skip() is False
    make_lock(ctx.layout.native_install, "native")
    assert build.get("build-native").should_skip() is True


def test_sample_toggle(ctx: RunContext) -> None:
    assert create_builder(ctx).get("build-sample").should_skip() is False
    ctx = dataclasses.replace(ctx, build_sample=False)
    assert create_builder(ctx).get("build-sample").should_skip() is True


def test_build_all(project: RunContext, commands: MagicMock) -> None:
    executed = create_builder(project).run(DEFAULT_TARGET)
    assert "restore-submodules" in executed
    assert "build-runtime" in executed
    progs = programs(commands)
    assert progs[0] == "git"
    assert progs[-1] == "cargo"
    assert progs.count("cmake") == 3 * 8
    assert progs.count("uv") == 3
    for name in LIBRARY_NAMES:
        assert project.layout.library(name).lock_file.exists()
    cargo = commands.call_args_list[-1]
    assert cargo.args[0][:4] == ["cargo", "build", "--profile", "dev"]
    assert cargo.kwargs["cwd"] == project.layout.runtime
    assert 'version = "0.4.0"' in project.layout.cargo_file.read_text()


def test_build_all_second_run_is_cheap(
    project: RunContext, commands: MagicMock
) -> None:
    create_builder(project).run(DEFAULT_TARGET)
    commands.reset_mock()
    executed = create_builder(project).run(DEFAULT_TARGET)
    assert executed == [
        "restore-submodules",
        "build-sample",
        "update-version-files",
        "build-runtime",
    ]
    assert programs(commands) == ["git", "cargo"]


def test_build_failure_stops_dependents(
    project: RunContext, commands: MagicMock
) -> None:
    error = ProcessError(["cmake", "--build", "."], 2)

    def fail_on_build(cmd, **kwargs):
        if "--build" in cmd:
            raise error
        return 0

    commands.side_effect = fail_on_build
    with pytest.raises(ProcessError) as excinfo:
        create_builder(project).run(DEFAULT_TARGET)
    assert excinfo.value.returncode == 2
    assert "cargo" not in programs(commands)
    for name in LIBRARY_NAMES:
        assert not project.layout.library(name).lock_file.exists()


def test_build_without_sample(project: RunContext, commands: MagicMock) -> None:
    ctx = dataclasses.replace(project, build_sample=False)
    executed = create_builder(ctx).run(DEFAULT_TARGET)
    assert "build-sample" not in executed


def test_build_runtime_release(project: RunContext, commands: MagicMock) -> None:
    ctx = dataclasses.replace(project, configuration="Release")
    create_builder(ctx).run("build-runtime")
    assert commands.call_args_list[-1].args[0][3] == "release"


def test_cargo_profile() -> None:
    assert cargo_profile("Release") == "release"
    assert cargo_profile("Debug") == "dev"


def test_clean_target(ctx: RunContext) -> None:
    ctx.layout.native_build.mkdir(parents=True)
    assert create_builder(ctx).run("clean") == ["clean"]
    assert not ctx.layout.build.exists()


@pytest.mark.skip_on_windows
def test_build_bzip2_stages_static_lib(ctx: RunContext) -> None:
    libdir = ctx.layout.install / "lib"
    libdir.mkdir(parents=True)
    (libdir / "libbz2_static.a").write_bytes(b"archive")
    with patch("staccato_build.build.common.builders.runcmd"):
        build_bzip2(ctx)
    assert (libdir / "libbz2.a").is_symlink()
    assert (libdir / "libbz2.a").read_bytes() == b"archive"


def test_build_native_stages_sdl(ctx: RunContext, commands: MagicMock) -> None:
    build_native(ctx)
    commands.stage.assert_called_once_with(
        ctx.layout.native_install / "libSDL3.so",
        ctx.layout.install / "lib" / "libSDL3.so",
    )


def test_build_native_stages_sdl_windows(ctx: RunContext, commands: MagicMock) -> None:
    ctx = dataclasses.replace(ctx, platform=Platform("win32", "amd64"))
    build_native(ctx)
    commands.stage.assert_called_once_with(
        ctx.layout.native_install / "SDL3.dll",
        ctx.layout.install / "lib" / "SDL3.dll",
    )


@pytest.mark.parametrize("plat,value", [("linux", "ON"), ("darwin", "OFF")])
def test_build_sdl_libusb(ctx: RunContext, commands: MagicMock, plat, value) -> None:
    ctx = dataclasses.replace(ctx, platform=Platform(plat, "x86_64"))
    build_sdl(ctx)
    configure = commands.call_args_list[0].args[0]
    assert f"-DSDL_HIDAPI_LIBUSB={value}" in configure
    assert f"-DSDL_HIDAPI_LIBUSB_SHARED={value}" in configure
