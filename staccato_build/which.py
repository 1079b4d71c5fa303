# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
The ``staccato-build which`` command.
"""
from __future__ import annotations

import argparse
import sys

from .build import default_root
from .common import DEFAULT_PREFER_TOOL, RunContext


def setup_parser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    """
    Setup the subparser for the ``which`` command.

    :param subparsers: The subparsers object returned from ``add_subparsers``
    :type subparsers: argparse._SubParsersAction
    """
    subparser = subparsers.add_parser(
        "which", description="Show every candidate for a tool, best first"
    )
    subparser.set_defaults(func=main)
    subparser.add_argument("tools", metavar="TOOL", nargs="+", help="Tool names")
    subparser.add_argument(
        "--prefer-tool",
        default=DEFAULT_PREFER_TOOL,
        help=(
            "Prefer tools whose path contains this string when several are "
            "found on PATH [default: %(default)s]"
        ),
    )


def main(args: argparse.Namespace) -> None:
    """
    The entrypoint to the ``which`` command.

    Exits with 1 when any tool has no candidate.
    """
    ctx = RunContext(root=default_root(), prefer_tool=args.prefer_tool)
    missing = False
    for tool in args.tools:
        candidates = ctx.which(tool)
        if not candidates:
            sys.stderr.write(f"{tool}: not found\n")
            missing = True
            continue
        for candidate in candidates:
            print(f"{tool}: {candidate}")
    if missing:
        sys.exit(1)
