"""Gantry Compiler Module - Conditions, job graph and workflow compilation."""

from .workflow_compiler import (
    WorkflowCompiler,
    CompiledWorkflow,
    generate_job_name,
    workflow_compiler,
)
from .job_graph import Job, JobGraph, dump_yaml
from .expressions import (
    ConditionNode,
    ExpressionNode,
    AndNode,
    OrNode,
    NotNode,
    DisjunctionNode,
    build_condition_tree,
    build_event_aware_command_condition,
)

__all__ = [
    "WorkflowCompiler",
    "CompiledWorkflow",
    "generate_job_name",
    "workflow_compiler",
    "Job",
    "JobGraph",
    "dump_yaml",
    "ConditionNode",
    "ExpressionNode",
    "AndNode",
    "OrNode",
    "NotNode",
    "DisjunctionNode",
    "build_condition_tree",
    "build_event_aware_command_condition",
]
