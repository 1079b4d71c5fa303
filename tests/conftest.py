# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
#
import os
import pathlib
from typing import Iterator

import pytest

from staccato_build.common import Platform, RunContext
from tests.helpers import make_tool

TOOLS = ["cmake", "uv", "clang", "clang++", "llvm-ar", "llvm-ranlib", "git", "cargo"]


@pytest.fixture
def linux() -> Platform:
    return Platform("linux", "x86_64")


@pytest.fixture
def windows() -> Platform:
    return Platform("win32", "amd64")


@pytest.fixture
def darwin() -> Platform:
    return Platform("darwin", "arm64")


@pytest.fixture
def bindir(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "usr" / "bin"
    for name in TOOLS:
        make_tool(path, name)
    return path


@pytest.fixture
def root(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def ctx(root: pathlib.Path, bindir: pathlib.Path, linux: Platform) -> Iterator[RunContext]:
    yield RunContext(
        root=root,
        configuration="Debug",
        build_sample=True,
        platform=linux,
        environ={"PATH": str(bindir), "HOME": os.environ.get("HOME", "")},
    )
