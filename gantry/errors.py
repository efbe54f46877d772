"""
Gantry Compilation Errors

Typed errors raised while compiling a workflow.
Every error carries a machine-readable code so API callers can branch
on it without parsing messages.
"""

from __future__ import annotations
from typing import List, Optional


class CompilationError(Exception):
    """Error during workflow compilation."""

    code = "E_COMPILATION"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        jobs: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.jobs = jobs or []

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "jobs": self.jobs}


class WorkflowSpecError(CompilationError):
    """The workflow specification is invalid."""

    code = "E_INVALID_SPEC"


class UnknownEngineError(CompilationError):
    """The requested agentic engine is not registered."""

    code = "E_UNKNOWN_ENGINE"

    def __init__(self, engine_id: str, supported: List[str]):
        super().__init__(
            f"invalid engine: {engine_id}. Supported engines: {', '.join(supported)}"
        )
        self.engine_id = engine_id


class InvariantViolation(CompilationError):
    """
    Engine-native tool input reached a stage that only accepts neutral tools.

    Signals a programming error in the caller, not bad user input.
    """

    code = "E_INVARIANT"


# =============================================================================
# Job Graph Errors
# =============================================================================

class JobGraphError(CompilationError):
    """Base class for job graph errors."""


class EmptyJobNameError(JobGraphError):
    code = "E_EMPTY_NAME"

    def __init__(self):
        super().__init__("job name cannot be empty")


class DuplicateJobError(JobGraphError):
    code = "E_DUPLICATE_JOB"

    def __init__(self, name: str):
        super().__init__(f"job '{name}' already exists", jobs=[name])
        self.name = name


class UnknownDependencyError(JobGraphError):
    code = "E_UNKNOWN_DEPENDENCY"

    def __init__(self, job: str, dependency: str):
        super().__init__(
            f"job '{job}' depends on non-existent job '{dependency}'",
            jobs=[job],
        )
        self.job = job
        self.dependency = dependency


class CycleDetectedError(JobGraphError):
    """A back edge closed a cycle; `job` -> `dependency` is that edge."""

    code = "E_CYCLE"

    def __init__(self, job: str, dependency: str):
        super().__init__(
            f"cycle detected in job dependencies: job '{job}' has circular dependency through '{dependency}'",
            jobs=[job, dependency] if job != dependency else [job],
        )
        self.job = job
        self.dependency = dependency
