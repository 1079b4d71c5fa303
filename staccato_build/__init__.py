# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import sys

from staccato_build.common import __version__

MIN_SUPPORTED_PYTHON = (3, 10)

if sys.version_info < MIN_SUPPORTED_PYTHON:
    raise RuntimeError("staccato-build requires Python 3.10 or newer.")


__all__ = ["__version__"]
