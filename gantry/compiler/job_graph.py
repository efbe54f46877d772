"""
Gantry Job Graph

Collection of CI jobs keyed by name, with dependency validation,
cycle detection, deterministic topological ordering and YAML rendering.

Rendering follows insertion order, not execution order: the target
format expresses execution order purely through each job's `needs`.
"""

from __future__ import annotations
from typing import Dict, List, Any, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from types import MappingProxyType
import copy
import logging

import yaml

from ..errors import (
    EmptyJobNameError,
    DuplicateJobError,
    UnknownDependencyError,
    CycleDetectedError,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Job
# =============================================================================

@dataclass(frozen=True)
class Job:
    """
    A single GitHub Actions job.

    `if_condition` holds rendered expression text, `permissions` and
    `runs_on` are passed through as given (string or mapping), `steps`
    are step mappings emitted in order.

    Jobs are frozen: `needs` and `steps` become tuples and every mapping
    is copied on construction, so a registered job cannot change under
    the graph.
    """
    name: str
    runs_on: Any = "ubuntu-latest"
    if_condition: str = ""
    permissions: Any = None
    steps: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)
    needs: Tuple[str, ...] = field(default_factory=tuple)
    outputs: Mapping[str, str] = field(default_factory=dict)
    timeout_minutes: int = 0

    def __post_init__(self):
        # needs is a set; keep first-seen order for rendering
        object.__setattr__(self, "needs", tuple(dict.fromkeys(self.needs)))
        object.__setattr__(self, "steps", tuple(copy.deepcopy(list(self.steps))))
        object.__setattr__(self, "outputs", MappingProxyType(dict(self.outputs)))
        object.__setattr__(self, "permissions", copy.deepcopy(self.permissions))
        object.__setattr__(self, "runs_on", copy.deepcopy(self.runs_on))

    def to_dict(self) -> Dict[str, Any]:
        """Job body in the key order the jobs section is rendered with."""
        body: Dict[str, Any] = {}

        if self.needs:
            body["needs"] = self.needs[0] if len(self.needs) == 1 else list(self.needs)
        if self.if_condition:
            body["if"] = self.if_condition
        if self.runs_on:
            body["runs-on"] = copy.deepcopy(self.runs_on)
        if self.permissions:
            body["permissions"] = copy.deepcopy(self.permissions)
        if self.timeout_minutes > 0:
            body["timeout-minutes"] = self.timeout_minutes
        if self.outputs:
            body["outputs"] = {key: self.outputs[key] for key in sorted(self.outputs)}
        if self.steps:
            body["steps"] = copy.deepcopy(list(self.steps))

        return body


# =============================================================================
# YAML Dumper
# =============================================================================

class _WorkflowDumper(yaml.SafeDumper):
    """SafeDumper that indents block sequences and keeps scripts as literals."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, data: str):
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_WorkflowDumper.add_representer(str, _represent_str)


def dump_yaml(data: Any) -> str:
    """Dump data with stable key order and no line folding."""
    return yaml.dump(
        data,
        Dumper=_WorkflowDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )


def _indent(text: str, prefix: str) -> str:
    return "".join(prefix + line if line.strip() else line for line in text.splitlines(True))


# =============================================================================
# Job Graph
# =============================================================================

VISITING, VISITED = 1, 2


class JobGraph:
    """
    Add-only collection of jobs.

    Invariants:
    - job names are unique and non-empty
    - every `needs` entry names a job in the same graph (checked by validate)
    - the dependency relation is acyclic (checked by validate)
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._order: List[str] = []

    def add_job(self, job: Job) -> None:
        if not job.name or not job.name.strip():
            raise EmptyJobNameError()

        if job.name in self._jobs:
            raise DuplicateJobError(job.name)

        self._jobs[job.name] = job
        self._order.append(job.name)
        logger.debug(f"Registered job {job.name} (needs: {job.needs})")

    def get_job(self, name: str) -> Optional[Job]:
        return self._jobs.get(name)

    def get_all_jobs(self) -> Dict[str, Job]:
        """Copy of the name -> job mapping."""
        return dict(self._jobs)

    @property
    def job_names(self) -> List[str]:
        """Job names in insertion order."""
        return list(self._order)

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_dependencies(self) -> None:
        """
        Check that every dependency exists and that there are no cycles.

        Raises:
            UnknownDependencyError: a job needs a job that is not registered
            CycleDetectedError: a back edge closes a cycle (including self-dependency)
        """
        for name in self._order:
            for dep in self._jobs[name].needs:
                if dep not in self._jobs:
                    raise UnknownDependencyError(name, dep)

        self._detect_cycles()

    def _detect_cycles(self) -> None:
        """Three-state DFS over the dependency relation, with an explicit stack."""
        state: Dict[str, int] = {}

        for root in self._order:
            if root in state:
                continue

            state[root] = VISITING
            stack = [(root, iter(self._jobs[root].needs))]
            while stack:
                name, deps = stack[-1]
                for dep in deps:
                    dep_state = state.get(dep)
                    if dep_state == VISITING:
                        raise CycleDetectedError(name, dep)
                    if dep_state is None:
                        state[dep] = VISITING
                        stack.append((dep, iter(self._jobs[dep].needs)))
                        break
                else:
                    state[name] = VISITED
                    stack.pop()

    # =========================================================================
    # Ordering
    # =========================================================================

    def get_topological_order(self) -> List[str]:
        """
        Job names with dependencies before dependents.

        Kahn's algorithm with an alphabetical tie-break at every step, so
        the same graph always yields the same order.
        """
        self.validate_dependencies()

        in_degree = {name: len(job.needs) for name, job in self._jobs.items()}
        dependents: Dict[str, List[str]] = {name: [] for name in self._order}
        for name in self._order:
            for dep in self._jobs[name].needs:
                dependents[dep].append(name)

        queue = [name for name, degree in in_degree.items() if degree == 0]
        result: List[str] = []

        while queue:
            queue.sort()
            current = queue.pop(0)
            result.append(current)

            for name in dependents[current]:
                in_degree[name] -= 1
                if in_degree[name] == 0:
                    queue.append(name)

        return result

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_to_yaml(self) -> str:
        """Render the jobs section in insertion order."""
        if not self._jobs:
            return "jobs:\n"

        parts = ["jobs:\n"]
        for name in self._order:
            parts.append(self._render_job(self._jobs[name]))

        return "".join(parts)

    def _render_job(self, job: Job) -> str:
        return _indent(dump_yaml({job.name: job.to_dict()}), "  ") + "\n"
