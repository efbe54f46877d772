"""
Gantry - Agentic Workflow Compiler

Compiles agentic workflow specifications into GitHub Actions workflows:
- gate, reaction and agent jobs
- tool allow-lists for the agent
- least-privilege jobs that apply the agent's safe outputs

Gantry does NOT:
- Parse markdown or frontmatter
- Run the generated jobs
"""

__version__ = "0.1.0"

from .compiler.workflow_compiler import WorkflowCompiler, CompiledWorkflow, generate_job_name
from .compiler.job_graph import Job, JobGraph
from .engines.registry import AgenticEngine, EngineRegistry
from .errors import (
    CompilationError,
    WorkflowSpecError,
    UnknownEngineError,
    InvariantViolation,
    JobGraphError,
    CycleDetectedError,
)
from .permissions.tool_permissions import ToolPermissionCompiler, PermissionCompilation
from .schemas.workflow import WorkflowSpec, SafeOutputsConfig

__all__ = [
    # Compiler
    "WorkflowCompiler",
    "CompiledWorkflow",
    "generate_job_name",
    "Job",
    "JobGraph",
    # Engines
    "AgenticEngine",
    "EngineRegistry",
    # Errors
    "CompilationError",
    "WorkflowSpecError",
    "UnknownEngineError",
    "InvariantViolation",
    "JobGraphError",
    "CycleDetectedError",
    # Permissions
    "ToolPermissionCompiler",
    "PermissionCompilation",
    # Schemas
    "WorkflowSpec",
    "SafeOutputsConfig",
]
