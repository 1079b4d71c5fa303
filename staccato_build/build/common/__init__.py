# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Build process common methods.
"""
from __future__ import annotations

from .builder import (
    Builder,
    Target,
)

from .builders import (
    build_cmake,
    build_meson,
    derive_toolchain,
    run_cmake,
    run_uv,
)

from .cache import (
    hit_cache,
    mark_cached,
)

from .install import (
    clean,
    patch_version_manifest,
    stage_artifact,
    update_version_files,
)


__all__ = [
    # Target graph
    "Builder",
    "Target",
    # Cache guard
    "hit_cache",
    "mark_cached",
    # Build step adapters
    "build_cmake",
    "build_meson",
    "derive_toolchain",
    "run_cmake",
    "run_uv",
    # Install functions
    "clean",
    "patch_version_manifest",
    "stage_artifact",
    "update_version_files",
]
