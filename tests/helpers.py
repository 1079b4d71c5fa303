# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
import pathlib


def make_tool(directory: pathlib.Path, name: str) -> pathlib.Path:
    directory.mkdir(parents=True, exist_ok=True)
    tool = directory / name
    tool.write_text("#!/bin/sh\n")
    tool.chmod(0o755)
    return tool


def make_lock(install: pathlib.Path, name: str) -> pathlib.Path:
    install.mkdir(parents=True, exist_ok=True)
    lock = install / f"{name}-installed.lock"
    lock.touch()
    return lock
