"""Gantry Schemas Package - Workflow and tool specification schemas."""

from .workflow import (
    WorkflowSpec,
    EngineConfig,
    SafeOutputsConfig,
    CreateIssueConfig,
    AddIssueCommentConfig,
    CreatePullRequestConfig,
    AddIssueLabelConfig,
    UpdateIssueConfig,
    PushToBranchConfig,
    MissingToolConfig,
    CustomJobConfig,
)
from .tools import (
    ToolSpecification,
    ToolEntry,
    NeutralTool,
    NeutralToolKind,
    MCPTool,
    MCPTransport,
    EngineNativeBlock,
    parse_tool_specification,
    dump_tool_specification,
)

__all__ = [
    # Workflow
    "WorkflowSpec",
    "EngineConfig",
    "SafeOutputsConfig",
    "CreateIssueConfig",
    "AddIssueCommentConfig",
    "CreatePullRequestConfig",
    "AddIssueLabelConfig",
    "UpdateIssueConfig",
    "PushToBranchConfig",
    "MissingToolConfig",
    "CustomJobConfig",
    # Tools
    "ToolSpecification",
    "ToolEntry",
    "NeutralTool",
    "NeutralToolKind",
    "MCPTool",
    "MCPTransport",
    "EngineNativeBlock",
    "parse_tool_specification",
    "dump_tool_specification",
]
