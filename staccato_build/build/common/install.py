# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Post install fixups, version manifest patching and cleanup.
"""
from __future__ import annotations

import logging
import os
import pathlib
import re
import shutil

from staccato_build.common import ManifestError, PathLike, RunContext

log = logging.getLogger(__name__)

START_MARK = "# THIS IS UPDATED BY BUILD SCRIPT - DO NOT MODIFY MANUALLY - START"
END_MARK = "# THIS IS UPDATED BY BUILD SCRIPT - DO NOT MODIFY MANUALLY - END"

# semver: MAJOR.MINOR.PATCH with optional pre-release and build metadata
VERSION_PATTERN = re.compile(
    r"(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?"
)


def stage_artifact(link: PathLike, target: PathLike) -> bool:
    """
    Make ``target`` reachable under the name ``link``.

    Nothing happens when ``link`` already exists. There is no copy fallback,
    this fails where symbolic links are not permitted.

    :param link: The file name other builds expect
    :type link: str
    :param target: The file the library actually installed
    :type target: str

    :return: True when a link was created
    :rtype: bool
    """
    link = pathlib.Path(link)
    if link.exists() or link.is_symlink():
        log.debug("Artifact %s already exists", link)
        return False
    log.info("Linking %s -> %s", link, target)
    os.symlink(target, link)
    return True


def patch_version_manifest(
    text: str, version: str, start: str = START_MARK, end: str = END_MARK
) -> str:
    """
    Replace everything between the ``start`` and ``end`` markers with a version line.

    :param text: The manifest contents
    :type text: str
    :param version: The version to write
    :type version: str

    :raises ManifestError: If a marker is missing or the version is not semver

    :return: The patched manifest
    :rtype: str
    """
    if not VERSION_PATTERN.fullmatch(version):
        raise ManifestError(f"Invalid version {version!r}")
    begin = text.find(start)
    if begin == -1:
        raise ManifestError(f"Start marker not found: {start}")
    finish = text.find(end, begin + len(start))
    if finish == -1:
        raise ManifestError(f"End marker not found after start marker: {end}")
    head = text[: begin + len(start)]
    return f'{head}\nversion = "{version}"\n{text[finish:]}'


def update_version_files(ctx: RunContext) -> None:
    """
    Write the version from ``version.txt`` into the runtime's Cargo.toml.
    """
    layout = ctx.layout
    try:
        version = layout.version_file.read_text(encoding="utf-8").strip()
        cargo = layout.cargo_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Unable to read version files: {exc}") from exc
    log.info("Use %s", version)
    result = patch_version_manifest(cargo, version)
    log.info("Update %s", layout.cargo_file)
    layout.cargo_file.write_text(result, encoding="utf-8")


def clean(ctx: RunContext) -> None:
    """
    Remove the build trees of this configuration.

    Install trees and their lock files are kept.
    """
    layout = ctx.layout
    for path in [layout.build, layout.native_build]:
        if path.is_dir():
            log.info("Removing %s", path)
            shutil.rmtree(path)
