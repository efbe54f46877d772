"""Gantry Permissions Module - Agent tool allow-list compilation."""

from .tool_permissions import (
    ToolPermissionCompiler,
    PermissionCompilation,
    render_allowed_tools,
    apply_default_github_tools,
    format_allowed_tools_comment,
    needs_git_commands,
    DEFAULT_ENGINE_TOOLS,
    DEFAULT_GITHUB_TOOLS,
    GIT_COMMANDS,
)

__all__ = [
    "ToolPermissionCompiler",
    "PermissionCompilation",
    "render_allowed_tools",
    "apply_default_github_tools",
    "format_allowed_tools_comment",
    "needs_git_commands",
    "DEFAULT_ENGINE_TOOLS",
    "DEFAULT_GITHUB_TOOLS",
    "GIT_COMMANDS",
]
