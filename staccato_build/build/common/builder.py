# Copyright 2024-2025 The Staccato Authors.
# SPDX-License-Identifier: Apache-2.0
"""
Target and Builder classes for managing the build process.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from staccato_build.common import ConfigurationError, CycleError

log = logging.getLogger(__name__)

Action = Callable[[], object]
Predicate = Callable[[], bool]


class Target:
    """
    A named unit of build work.

    :param name: The name of the target
    :type name: str
    :param action: What the target does, defaults to nothing
    :type action: types.FunctionType, optional
    :param depends_on: Targets that must run first
    :type depends_on: list, optional
    :param skip_if: Checked right before ``action`` runs, the action is
        skipped when it returns True
    :type skip_if: types.FunctionType, optional
    :param description: One line shown by ``--list``
    :type description: str
    """

    def __init__(
        self,
        name: str,
        action: Optional[Action] = None,
        depends_on: Optional[Sequence[str]] = None,
        skip_if: Optional[Predicate] = None,
        description: str = "",
    ) -> None:
        self.name = name
        self.action = action
        self.depends_on: List[str] = list(depends_on or [])
        self.skip_if = skip_if
        self.description = description

    def __repr__(self) -> str:
        return f"<Target {self.name}>"

    def should_skip(self) -> bool:
        if self.skip_if is None:
            return False
        return bool(self.skip_if())


class Builder:
    """
    Utility that orders targets by their dependencies and runs them.

    Every target runs at most once per call to :meth:`run` however many
    targets depend on it.
    """

    def __init__(self) -> None:
        self.targets: Dict[str, Target] = {}

    def add(
        self,
        name: str,
        action: Optional[Action] = None,
        depends_on: Optional[Sequence[str]] = None,
        skip_if: Optional[Predicate] = None,
        description: str = "",
    ) -> Target:
        """
        Add a target to the build process.

        :param name: The name of the target
        :type name: str
        :param action: The function that does the work, defaults to None
        :type action: types.FunctionType, optional
        :param depends_on: Targets to run before this one, defaults to None
        :type depends_on: list, optional
        :param skip_if: Deferred skip predicate, defaults to None
        :type skip_if: types.FunctionType, optional

        :raises ConfigurationError: If a target with this name already exists

        :return: The new target
        :rtype: ``staccato_build.build.common.Target``
        """
        if name in self.targets:
            raise ConfigurationError(f"Target {name} is already defined")
        target = Target(name, action, depends_on, skip_if, description)
        self.targets[name] = target
        return target

    def get(self, name: str) -> Target:
        try:
            return self.targets[name]
        except KeyError:
            raise ConfigurationError(f"Unknown target {name}") from None

    def plan(self, *names: str) -> List[Target]:
        """
        Get the targets needed for ``names`` in the order they will run.

        :raises CycleError: If a target depends on itself
        :raises ConfigurationError: If an unknown target is referenced

        :return: Each needed target once, dependencies first
        :rtype: list
        """
        order: List[Target] = []
        done: set[str] = set()
        in_progress: List[str] = []

        def visit(name: str) -> None:
            if name in done:
                return
            if name in in_progress:
                start = in_progress.index(name)
                raise CycleError(in_progress[start:] + [name])
            target = self.get(name)
            in_progress.append(name)
            for dependency in target.depends_on:
                visit(dependency)
            in_progress.pop()
            done.add(name)
            order.append(target)

        for name in names:
            visit(name)
        return order

    def run(self, *names: str) -> List[str]:
        """
        Run ``names`` and everything they depend on.

        The whole plan is computed before anything runs. The first failing
        action stops the run, targets that already ran are left as they are.

        :return: The names of the targets whose actions ran
        :rtype: list
        """
        plan = self.plan(*names)
        log.info("Execution plan: %s", ", ".join(_.name for _ in plan))
        executed: List[str] = []
        for target in plan:
            if target.action is None:
                log.debug("Target %s has nothing to do", target.name)
                continue
            if target.should_skip():
                log.info("Skipping target %s", target.name)
                continue
            log.info("Running target %s", target.name)
            try:
                target.action()
            except Exception:
                log.error("Target %s has failed", target.name)
                raise
            executed.append(target.name)
        return executed

    def describe(self) -> List[str]:
        """
        Get one line per target, with its dependencies and description.
        """
        lines = []
        for name in sorted(self.targets):
            target = self.targets[name]
            line = name
            if target.depends_on:
                line += " <- {}".format(", ".join(target.depends_on))
            if target.description:
                line += f"  # {target.description}"
            lines.append(line)
        return lines
