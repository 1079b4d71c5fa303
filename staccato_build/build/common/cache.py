# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Sentinel files recording which libraries are already installed.
"""
from __future__ import annotations

import logging

from staccato_build.common import LibrarySpec

log = logging.getLogger(__name__)


def hit_cache(lib: LibrarySpec) -> bool:
    """
    Whether ``lib`` is already installed for this configuration.

    Only the sentinel's existence matters, the options the library was
    built with are not recorded. Errors while probing mean not cached.

    :param lib: The library to check
    :type lib: ``staccato_build.common.LibrarySpec``

    :rtype: bool
    """
    try:
        cached = lib.lock_file.is_file()
    except OSError as exc:
        log.debug("Unable to probe %s: %s", lib.lock_file, exc)
        return False
    if cached:
        log.info("Hit cache lock file %s", lib.lock_file)
    return cached


def mark_cached(lib: LibrarySpec) -> None:
    """
    Record that ``lib`` is installed. Call only after its install succeeded.
    """
    lib.install.mkdir(parents=True, exist_ok=True)
    lib.lock_file.touch()
    log.debug("Wrote lock file %s", lib.lock_file)
