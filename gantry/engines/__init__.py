"""Gantry Engines Module - Agentic engines and their registry."""

from .registry import (
    AgenticEngine,
    ClaudeEngine,
    CodexEngine,
    EngineRegistry,
    mcp_server_config,
    DEFAULT_ENGINE,
    PROMPT_FILE,
    MCP_CONFIG_FILE,
)

__all__ = [
    "AgenticEngine",
    "ClaudeEngine",
    "CodexEngine",
    "EngineRegistry",
    "mcp_server_config",
    "DEFAULT_ENGINE",
    "PROMPT_FILE",
    "MCP_CONFIG_FILE",
]
