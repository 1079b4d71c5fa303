# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Entry points for the ``staccato-build build`` CLI command.
"""
from __future__ import annotations

import argparse
import logging
import os
import pathlib
import signal
import sys
from types import FrameType
from typing import List, Optional

from .common import Builder
from .targets import DEFAULT_TARGET, create_builder
from ..common import (
    CONFIGURATIONS,
    DEBUG,
    DEFAULT_PREFER_TOOL,
    RELEASE,
    RunContext,
    StaccatoException,
    is_standalone_project,
)

log = logging.getLogger(__name__)

ROOT_ENV = "STACCATO_ROOT"


def default_root() -> pathlib.Path:
    return pathlib.Path(os.environ.get(ROOT_ENV, os.getcwd())).resolve()


def add_tool_arguments(parser: argparse.ArgumentParser) -> None:
    """
    Add the options selecting which external tools are used.
    """
    parser.add_argument(
        "--cmake",
        default="cmake",
        help="Use cmake from this path [default: %(default)s]",
    )
    parser.add_argument(
        "--clang",
        default="clang",
        help=(
            "Use clang from this path. clang++, llvm-ar and llvm-ranlib are "
            "looked up in the directory containing clang [default: %(default)s]"
        ),
    )
    parser.add_argument(
        "--uv",
        default="uv",
        help="Use uv from this path [default: %(default)s]",
    )
    parser.add_argument(
        "--prefer-tool",
        default=DEFAULT_PREFER_TOOL,
        help=(
            "Prefer tools whose path contains this string when several are "
            "found on PATH [default: %(default)s]"
        ),
    )


def setup_parser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    """
    Setup the subparser for the ``build`` command.

    :param subparsers: The subparsers object returned from ``add_subparsers``
    :type subparsers: argparse._SubParsersAction
    """
    build_subparser = subparsers.add_parser(
        "build", description="Build the native libraries and the runtime"
    )
    build_subparser.set_defaults(func=main)
    build_subparser.add_argument(
        "targets",
        metavar="TARGET",
        nargs="*",
        help=f"The targets to run [default: {DEFAULT_TARGET}]",
    )
    build_subparser.add_argument(
        "--root",
        type=pathlib.Path,
        default=None,
        help=f"The repository root [default: ${ROOT_ENV} or the current directory]",
    )
    build_subparser.add_argument(
        "--configuration",
        choices=CONFIGURATIONS,
        default=None,
        help=(
            f"Configuration to build [default: {DEBUG} for a standalone "
            f"checkout, {RELEASE} as a git submodule]"
        ),
    )
    build_subparser.add_argument(
        "--sample",
        dest="sample",
        action=argparse.BooleanOptionalAction,
        default=None,
        help=(
            "Build the samples [default: on for a standalone checkout, off as "
            "a git submodule]"
        ),
    )
    add_tool_arguments(build_subparser)
    build_subparser.add_argument(
        "--list",
        default=False,
        action="store_true",
        help="List the targets and exit.",
    )
    build_subparser.add_argument(
        "--plan",
        default=False,
        action="store_true",
        help="Print the order targets would run in and exit.",
    )
    build_subparser.add_argument(
        "--log-level",
        default="info",
        choices=(
            "error",
            "warning",
            "info",
            "debug",
        ),
        help="Log level determines how verbose the logs will be.",
    )
    build_subparser.add_argument(
        "--log-file",
        type=pathlib.Path,
        default=None,
        help="Also write INFO and above to this file.",
    )


def context_from_args(args: argparse.Namespace) -> RunContext:
    """
    Create the run context from parsed arguments.

    Configuration and sample defaults depend on whether the root is a git
    submodule, git is only asked when one of them was not given.
    """
    root = args.root.resolve() if args.root else default_root()
    configuration = args.configuration
    sample = args.sample
    if configuration is None or sample is None:
        standalone = is_standalone_project(root)
        if configuration is None:
            configuration = DEBUG if standalone else RELEASE
        if sample is None:
            sample = standalone
    return RunContext(
        root=root,
        configuration=configuration,
        build_sample=sample,
        cmake=args.cmake,
        clang=args.clang,
        uv=args.uv,
        prefer_tool=args.prefer_tool,
    )


def setup_logging(
    log_level: str, log_file: Optional[pathlib.Path] = None
) -> List[logging.Handler]:
    """
    Attach stream and file handlers to the root logger.

    :return: The handlers added, remove them when the run is over
    :rtype: list
    """
    root_log = logging.getLogger(None)
    root_log.setLevel(logging.NOTSET)
    handlers: List[logging.Handler] = []

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.getLevelName(log_level.upper()))
    stream_handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
    handlers.append(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        handlers.append(file_handler)

    for handler in handlers:
        root_log.addHandler(handler)
    return handlers


def run(builder: Builder, targets: List[str]) -> int:
    """
    Run the targets, turning build failures into an exit code.
    """
    try:
        executed = builder.run(*targets)
    except StaccatoException as exc:
        log.error("Build failed: %s", exc)
        return 1
    log.info("Finished, ran %d target(s): %s", len(executed), ", ".join(executed))
    return 0


def main(args: argparse.Namespace) -> None:
    """
    The entrypoint to the ``build`` command.

    :param args: The arguments to the command
    :type args: ``argparse.Namespace``
    """

    def signal_handler(_signal: int, frame: FrameType | None) -> None:
        sys.exit(1)

    signal.signal(signal.SIGINT, signal_handler)

    root_log = logging.getLogger(None)
    previous_level = root_log.level
    handlers = setup_logging(args.log_level, args.log_file)
    try:
        ctx = context_from_args(args)
        builder = create_builder(ctx)
        if args.list:
            for line in builder.describe():
                print(line)
            return
        targets = [_.strip() for _ in args.targets] or [DEFAULT_TARGET]
        if args.plan:
            try:
                plan = builder.plan(*targets)
            except StaccatoException as exc:
                log.error("%s", exc)
                sys.exit(1)
            for target in plan:
                print(target.name)
            return
        log.info(
            "Build %s (%s) on %s %s",
            ", ".join(targets),
            ctx.configuration,
            ctx.platform.os,
            ctx.platform.arch,
        )
        for key, value in ctx.layout.to_dict().items():
            log.debug("Directory %s %s", key, value)
        code = run(builder, targets)
        if code:
            sys.exit(code)
    finally:
        for handler in handlers:
            root_log.removeHandler(handler)
            handler.close()
        root_log.setLevel(previous_level)
