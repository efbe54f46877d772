"""
Gantry Tool Specification

Typed view of the `tools:` section of a workflow.

Each entry is exactly one of:
- NeutralTool: engine-agnostic capability (bash, edit, web-fetch, web-search)
- MCPTool: server reachable over MCP, with an allow-list of sub-tools
- EngineNativeBlock: permissions already in the agent's own vocabulary
"""

from __future__ import annotations
from typing import Dict, List, Any, Optional, Union
from dataclasses import dataclass, field
from enum import Enum
import copy
import json

from ..errors import WorkflowSpecError


# Key of the engine-native block in the tools section
ENGINE_NATIVE_KEY = "claude"

# MCP servers recognised by name even without transport metadata
RESERVED_MCP_TOOLS = {"github"}

# Allow-list entry granting every sub-tool of an MCP server
MCP_WILDCARD = "*"


class NeutralToolKind(str, Enum):
    BASH = "bash"
    WEB_FETCH = "web-fetch"
    WEB_SEARCH = "web-search"
    EDIT = "edit"


class MCPTransport(str, Enum):
    STDIO = "stdio"
    HTTP = "http"


NEUTRAL_TOOL_KINDS = {kind.value for kind in NeutralToolKind}


# =============================================================================
# Tool Entries
# =============================================================================

@dataclass
class NeutralTool:
    """Engine-agnostic tool; `commands` restricts bash, None means unrestricted."""
    kind: NeutralToolKind
    commands: Optional[List[str]] = None


@dataclass
class MCPTool:
    """MCP server entry."""
    name: str
    allowed: List[str] = field(default_factory=list)
    transport: Optional[MCPTransport] = None
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_mcp(self) -> bool:
        return self.name in RESERVED_MCP_TOOLS or self.transport is not None

    @property
    def allows_everything(self) -> bool:
        return MCP_WILDCARD in self.allowed


@dataclass
class EngineNativeBlock:
    """Permission name -> optional literal command list (only used by Bash)."""
    allowed: Dict[str, Optional[List[str]]] = field(default_factory=dict)


ToolEntry = Union[NeutralTool, MCPTool, EngineNativeBlock]
ToolSpecification = Dict[str, ToolEntry]


# =============================================================================
# Parsing
# =============================================================================

def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def mcp_settings(config: Dict[str, Any], tool_name: str = "") -> Dict[str, Any]:
    """
    The `mcp` block of a tool entry; it may also be given as JSON text.

    Raises:
        WorkflowSpecError: the JSON text does not parse
    """
    mcp = config.get("mcp")
    if isinstance(mcp, str):
        try:
            mcp = json.loads(mcp)
        except json.JSONDecodeError as e:
            raise WorkflowSpecError(f"tool '{tool_name}' has invalid JSON in mcp configuration: {e}") from e
    return mcp if isinstance(mcp, dict) else {}


def _mcp_transport(name: str, config: Dict[str, Any]) -> Optional[MCPTransport]:
    mcp = mcp_settings(config, name)
    if not mcp:
        return None

    try:
        return MCPTransport(mcp.get("type"))
    except ValueError:
        return None


def parse_tool_entry(name: str, value: Any) -> ToolEntry:
    """Classify one raw `tools:` entry."""
    if name == ENGINE_NATIVE_KEY:
        allowed: Dict[str, Optional[List[str]]] = {}
        raw_allowed = value.get("allowed") if isinstance(value, dict) else None
        if isinstance(raw_allowed, dict):
            for perm, commands in raw_allowed.items():
                allowed[perm] = _string_list(commands) if isinstance(commands, list) else None
        return EngineNativeBlock(allowed=allowed)

    if name in NEUTRAL_TOOL_KINDS:
        kind = NeutralToolKind(name)
        commands = _string_list(value) if kind == NeutralToolKind.BASH and isinstance(value, list) else None
        return NeutralTool(kind=kind, commands=commands)

    config = copy.deepcopy(value) if isinstance(value, dict) else {}
    return MCPTool(
        name=name,
        allowed=_string_list(config.get("allowed")),
        transport=_mcp_transport(name, config),
        config=config,
    )


def parse_tool_specification(raw: Optional[Dict[str, Any]]) -> ToolSpecification:
    """Parse a `tools:` mapping into typed entries, keeping key order."""
    if not raw:
        return {}
    return {name: parse_tool_entry(name, value) for name, value in raw.items()}


def dump_tool_entry(entry: ToolEntry) -> Any:
    if isinstance(entry, NeutralTool):
        return list(entry.commands) if entry.commands is not None else None
    if isinstance(entry, MCPTool):
        data = copy.deepcopy(entry.config)
        data["allowed"] = list(entry.allowed)
        return data
    if isinstance(entry, EngineNativeBlock):
        return {
            "allowed": {
                perm: list(commands) if commands is not None else None
                for perm, commands in entry.allowed.items()
            }
        }
    raise TypeError(f"Unknown tool entry: {type(entry).__name__}")


def dump_tool_specification(tools: ToolSpecification) -> Dict[str, Any]:
    """Plain-data form of a tool specification, as written in frontmatter."""
    return {name: dump_tool_entry(entry) for name, entry in tools.items()}
