"""
Gantry Tool Permissions

Compiles a neutral tool specification into the agent's allow-list string.

Pipeline (each stage only adds what is missing):
1. reject engine-native input
2. expand neutral tools into the engine-native block
3. add read-only defaults
4. escalate for safe outputs that need git
5. add Bash companions
6. flatten to permission tokens
7. make sure safe outputs can write their output file
8. sort and join
"""

from __future__ import annotations
from typing import Dict, List, Optional
from dataclasses import dataclass
import copy
import logging

from ..errors import InvariantViolation
from ..schemas.tools import (
    ENGINE_NATIVE_KEY,
    EngineNativeBlock,
    MCPTool,
    NeutralTool,
    NeutralToolKind,
    ToolSpecification,
)
from ..schemas.workflow import SafeOutputsConfig


logger = logging.getLogger(__name__)


# =============================================================================
# Permission Names
# =============================================================================

BASH = "Bash"
WRITE = "Write"

# Always granted, read-only
DEFAULT_ENGINE_TOOLS = [
    "Task",
    "Glob",
    "Grep",
    "ExitPlanMode",
    "TodoWrite",
    "LS",
    "Read",
    "NotebookRead",
]

# Granted by the neutral `edit` tool and by git-capable safe outputs
EDIT_TOOLS = ["Edit", "MultiEdit", "NotebookEdit", WRITE]

# Implicitly granted alongside any Bash permission
BASH_COMPANION_TOOLS = ["KillBash", "BashOutput"]

# Bash patterns needed to prepare a branch for create-pull-request / push-to-branch
GIT_COMMANDS = [
    "git checkout:*",
    "git branch:*",
    "git switch:*",
    "git add:*",
    "git rm:*",
    "git commit:*",
    "git merge:*",
]

# Bash list entries that grant every command
BASH_WILDCARD = "*"
BASH_COLON_WILDCARD = ":*"


# Read-only GitHub MCP sub-tools every workflow gets
DEFAULT_GITHUB_TOOLS = [
    # actions
    "download_workflow_run_artifact",
    "get_job_logs",
    "get_workflow_run",
    "get_workflow_run_logs",
    "get_workflow_run_usage",
    "list_workflow_jobs",
    "list_workflow_run_artifacts",
    "list_workflow_runs",
    "list_workflows",
    # code security
    "get_code_scanning_alert",
    "list_code_scanning_alerts",
    # context
    "get_me",
    # dependabot
    "get_dependabot_alert",
    "list_dependabot_alerts",
    # discussions
    "get_discussion",
    "get_discussion_comments",
    "list_discussion_categories",
    "list_discussions",
    # issues
    "get_issue",
    "get_issue_comments",
    "list_issues",
    "search_issues",
    # notifications
    "get_notification_details",
    "list_notifications",
    # organizations
    "search_orgs",
    # prs
    "get_pull_request",
    "get_pull_request_comments",
    "get_pull_request_diff",
    "get_pull_request_files",
    "get_pull_request_reviews",
    "get_pull_request_status",
    "list_pull_requests",
    "search_pull_requests",
    # repos
    "get_commit",
    "get_file_contents",
    "get_tag",
    "list_branches",
    "list_commits",
    "list_tags",
    "search_code",
    "search_repositories",
    # secret protection
    "get_secret_scanning_alert",
    "list_secret_scanning_alerts",
    # users
    "search_users",
]

GITHUB_TOOL = "github"


def apply_default_github_tools(tools: Optional[ToolSpecification]) -> ToolSpecification:
    """
    Return a copy of tools whose github entry includes the read-only defaults.

    The entry is created when missing; an existing allow-list keeps its
    order and only gains the defaults it lacks.
    """
    result = copy.deepcopy(tools) if tools else {}

    github = result.get(GITHUB_TOOL)
    if not isinstance(github, MCPTool):
        github = MCPTool(name=GITHUB_TOOL)

    github.allowed = github.allowed + [t for t in DEFAULT_GITHUB_TOOLS if t not in github.allowed]
    result[GITHUB_TOOL] = github
    return result


def needs_git_commands(safe_outputs: Optional[SafeOutputsConfig]) -> bool:
    """Whether the configured safe outputs push commits."""
    if safe_outputs is None:
        return False
    return safe_outputs.create_pull_request is not None or safe_outputs.push_to_branch is not None


# =============================================================================
# Result
# =============================================================================

@dataclass
class PermissionCompilation:
    """Allow-list string plus the tool specification it was derived from."""
    permissions: str
    tools: ToolSpecification

    @property
    def tokens(self) -> List[str]:
        return self.permissions.split(",") if self.permissions else []


# =============================================================================
# Flattening
# =============================================================================

def _bash_tokens(commands: Optional[List[str]]) -> List[str]:
    if commands is None:
        return [BASH]
    # A wildcard anywhere absorbs every literal command in the list
    if BASH_COLON_WILDCARD in commands or BASH_WILDCARD in commands:
        return [BASH]
    return [f"Bash({cmd})" for cmd in commands]


def _mcp_tokens(tool: MCPTool) -> List[str]:
    if tool.allows_everything:
        return [f"mcp__{tool.name}"]
    return [f"mcp__{tool.name}__{sub_tool}" for sub_tool in tool.allowed]


def render_allowed_tools(
    tools: Optional[ToolSpecification],
    safe_outputs: Optional[SafeOutputsConfig] = None,
) -> str:
    """
    Flatten an already expanded tool specification to the allow-list string.

    Engine-native entries contribute their names (Bash per command);
    lowercase names are leftover neutral keys and are skipped. MCP tools
    contribute mcp__ tokens.
    """
    tokens: List[str] = []

    for name, entry in (tools or {}).items():
        if isinstance(entry, EngineNativeBlock):
            for perm, commands in entry.allowed.items():
                if perm == BASH:
                    tokens.extend(_bash_tokens(commands))
                elif perm and perm[0].isupper():
                    tokens.append(perm)
        elif isinstance(entry, MCPTool) and entry.is_mcp:
            tokens.extend(_mcp_tokens(entry))

    if safe_outputs is not None and WRITE not in tokens:
        tokens.append(WRITE)

    return ",".join(sorted(set(tokens)))


def format_allowed_tools_comment(permissions: str, indent: str = "") -> str:
    """Comment block listing every allowed tool, one per line."""
    if not permissions:
        return ""

    lines = [f"{indent}# Allowed tools (sorted):"]
    lines.extend(f"{indent}# - {tool}" for tool in permissions.split(","))
    return "\n".join(lines) + "\n"


# =============================================================================
# Compiler
# =============================================================================

class ToolPermissionCompiler:
    """
    Compiles neutral tools into the agent allow-list.

    Usage:
        result = ToolPermissionCompiler().compile(tools, safe_outputs)
        result.permissions   # "Bash,BashOutput,Glob,..."
        result.tools         # tools with the engine-native block filled in

    The input specification is never modified.
    """

    def compile(
        self,
        tools: Optional[ToolSpecification],
        safe_outputs: Optional[SafeOutputsConfig] = None,
    ) -> PermissionCompilation:
        tools = tools or {}
        self._ensure_neutral(tools)

        expanded = self._expand_neutral_tools(copy.deepcopy(tools))
        native = expanded[ENGINE_NATIVE_KEY].allowed

        self._add_defaults(native)
        if needs_git_commands(safe_outputs):
            self._add_git_permissions(native)
        # Also covers a Bash entry created by the git escalation
        self._add_bash_companions(native)

        permissions = render_allowed_tools(expanded, safe_outputs)
        logger.debug(f"Compiled allowed tools: {permissions}")

        return PermissionCompilation(permissions=permissions, tools=expanded)

    def _ensure_neutral(self, tools: ToolSpecification) -> None:
        for name, entry in tools.items():
            if isinstance(entry, EngineNativeBlock):
                raise InvariantViolation(
                    f"tool permission compilation accepts neutral tools only, "
                    f"got engine-native block '{name}'"
                )

    def _expand_neutral_tools(self, tools: ToolSpecification) -> ToolSpecification:
        """Replace neutral entries with engine-native permissions."""
        result: ToolSpecification = {
            name: entry for name, entry in tools.items() if not isinstance(entry, NeutralTool)
        }

        block = result.get(ENGINE_NATIVE_KEY)
        if not isinstance(block, EngineNativeBlock):
            block = EngineNativeBlock()
        native = block.allowed

        for entry in tools.values():
            if not isinstance(entry, NeutralTool):
                continue

            if entry.kind == NeutralToolKind.BASH:
                native.setdefault(BASH, list(entry.commands) if entry.commands is not None else None)
            elif entry.kind == NeutralToolKind.WEB_FETCH:
                native.setdefault("WebFetch", None)
            elif entry.kind == NeutralToolKind.WEB_SEARCH:
                native.setdefault("WebSearch", None)
            elif entry.kind == NeutralToolKind.EDIT:
                for perm in EDIT_TOOLS:
                    native.setdefault(perm, None)

        result[ENGINE_NATIVE_KEY] = block
        return result

    def _add_defaults(self, native: Dict[str, Optional[List[str]]]) -> None:
        for perm in DEFAULT_ENGINE_TOOLS:
            native.setdefault(perm, None)

    def _add_bash_companions(self, native: Dict[str, Optional[List[str]]]) -> None:
        if BASH not in native:
            return
        for perm in BASH_COMPANION_TOOLS:
            native.setdefault(perm, None)

    def _add_git_permissions(self, native: Dict[str, Optional[List[str]]]) -> None:
        """Grant file editing and git branch commands for git-based safe outputs."""
        for perm in EDIT_TOOLS:
            native.setdefault(perm, None)

        if BASH not in native:
            native[BASH] = list(GIT_COMMANDS)
            return

        existing = native[BASH]
        if existing is None:
            # Unrestricted already
            return
        if BASH_COLON_WILDCARD in existing or BASH_WILDCARD in existing:
            return

        native[BASH] = existing + [cmd for cmd in GIT_COMMANDS if cmd not in existing]
