"""Dependency resolution: agent descriptors to a linear execution plan."""
from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Dict, Iterator, List, Sequence, Tuple

from hiveai.core.errors import CircularDependencyError, ConfigError, FieldIssue, MissingDependencyError
from hiveai.core.models import AgentDescriptor, ExecutionPlan

logger = logging.getLogger(__name__)


class _Mark(Enum):
    IN_PROGRESS = auto()
    DONE = auto()


class DependencyResolver:
    """Depth-first topological ordering with cycle and dangling-reference detection.

    The walk is iterative over an explicit stack of frames, so the depth of
    the graph is not bounded by the interpreter's recursion limit. Roots are
    visited in input order and dependencies in declaration order, which makes
    the plan deterministic for a given input.
    """

    def resolve(self, descriptors: Sequence[AgentDescriptor]) -> ExecutionPlan:
        by_name: Dict[str, AgentDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in by_name:
                raise ConfigError(None, [FieldIssue(path="name", message=f"duplicate agent name '{descriptor.name}'")])
            by_name[descriptor.name] = descriptor

        marks: Dict[str, _Mark] = {}
        ordered: List[AgentDescriptor] = []

        for root in descriptors:
            if root.name in marks:
                continue
            marks[root.name] = _Mark.IN_PROGRESS
            stack: List[Tuple[AgentDescriptor, Iterator[str]]] = [(root, iter(root.depends_on))]

            while stack:
                node, pending = stack[-1]
                dependency = next(pending, None)
                if dependency is None:
                    stack.pop()
                    marks[node.name] = _Mark.DONE
                    ordered.append(node)
                    continue

                if dependency not in by_name:
                    raise MissingDependencyError(node.name, dependency)
                mark = marks.get(dependency)
                if mark is _Mark.DONE:
                    continue
                if mark is _Mark.IN_PROGRESS:
                    path = [frame.name for frame, _ in stack]
                    cycle = path[path.index(dependency):] + [dependency]
                    raise CircularDependencyError(dependency, cycle)

                marks[dependency] = _Mark.IN_PROGRESS
                child = by_name[dependency]
                stack.append((child, iter(child.depends_on)))

        plan = ExecutionPlan(steps=tuple(ordered))
        logger.debug("Resolved execution order: %s", " -> ".join(plan.names))
        return plan
