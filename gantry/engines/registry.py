"""
Gantry Agentic Engines

Engines that can run the agent step of a workflow, and the registry
used to resolve an engine id from the workflow's `engine:` setting.
"""

from __future__ import annotations
from typing import Dict, List, Any, Optional
from dataclasses import dataclass
from abc import ABC, abstractmethod
import json
import logging

from ..errors import UnknownEngineError
from ..schemas.tools import MCPTool, MCPTransport, mcp_settings
from ..schemas.workflow import EngineConfig


logger = logging.getLogger(__name__)


PROMPT_FILE = "/tmp/aw-prompts/prompt.txt"
MCP_CONFIG_DIR = "/tmp/mcp-config"
MCP_CONFIG_FILE = f"{MCP_CONFIG_DIR}/mcp-servers.json"
SAFE_OUTPUTS_ENV = "${{ env.GITHUB_AW_SAFE_OUTPUTS }}"

GITHUB_MCP_IMAGE = "ghcr.io/github/github-mcp-server"
GITHUB_MCP_IMAGE_VERSION = "sha-45e90ae"


# =============================================================================
# MCP Servers
# =============================================================================

def mcp_server_config(tool: MCPTool) -> Dict[str, Any]:
    """
    Launch settings for one MCP server.

    The github server always runs from its Docker image. Other servers
    use their `mcp` block: command/args/env for stdio, url/headers for
    http. A stdio server with a `container` is wrapped in `docker run`.
    """
    if tool.name == "github":
        version = tool.config.get("docker_image_version") or GITHUB_MCP_IMAGE_VERSION
        return {
            "command": "docker",
            "args": [
                "run", "-i", "--rm",
                "-e", "GITHUB_PERSONAL_ACCESS_TOKEN",
                f"{GITHUB_MCP_IMAGE}:{version}",
            ],
            "env": {"GITHUB_PERSONAL_ACCESS_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
        }

    settings = mcp_settings(tool.config, tool.name)
    if tool.transport == MCPTransport.HTTP:
        return {key: settings[key] for key in ("url", "headers") if key in settings}

    container = settings.get("container")
    if container:
        env = settings.get("env") or {}
        args = ["run", "--rm", "-i"]
        for key in env:
            args.extend(["-e", key])
        args.append(container)
        args.extend(settings.get("args") or [])
        server: Dict[str, Any] = {"command": "docker", "args": args}
        if env:
            server["env"] = env
        return server

    return {key: settings[key] for key in ("command", "args", "env") if key in settings}


# =============================================================================
# Engines
# =============================================================================

@dataclass
class AgenticEngine(ABC):
    """
    An AI engine the main job can execute.

    Capability flags drive validation: tool allow-listing, MCP servers
    over HTTP and the max-turns limit are not available everywhere.
    """
    id: str
    display_name: str
    description: str
    experimental: bool = False
    supports_tools_whitelist: bool = True
    supports_http_transport: bool = False
    supports_max_turns: bool = False
    action: Optional[str] = None

    def installation_steps(self, config: Optional[EngineConfig]) -> List[Dict[str, Any]]:
        return []

    def mcp_setup_step(self, tools: List[MCPTool]) -> Optional[Dict[str, Any]]:
        """Step writing the MCP server configuration, or None without MCP tools."""
        if not tools:
            return None
        return {
            "name": "Setup MCPs",
            "run": f"mkdir -p {MCP_CONFIG_DIR}\n" + self.render_mcp_config(tools),
        }

    def render_mcp_config(self, tools: List[MCPTool]) -> str:
        servers = {tool.name: mcp_server_config(tool) for tool in tools}
        document = json.dumps({"mcpServers": servers}, indent=2)
        return f"cat > {MCP_CONFIG_FILE} << 'EOF'\n{document}\nEOF\n"

    @abstractmethod
    def execution_steps(
        self,
        config: Optional[EngineConfig],
        allowed_tools: str,
        log_file: str,
        has_safe_outputs: bool,
        timeout_minutes: int,
    ) -> List[Dict[str, Any]]:
        """Steps that run the agent and leave its log at `log_file`."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "description": self.description,
            "experimental": self.experimental,
            "supports_tools_whitelist": self.supports_tools_whitelist,
            "supports_http_transport": self.supports_http_transport,
            "supports_max_turns": self.supports_max_turns,
        }


@dataclass
class ClaudeEngine(AgenticEngine):
    """Runs the agent through the Claude Code base action."""
    version: str = "v0.0.56"

    def execution_steps(
        self,
        config: Optional[EngineConfig],
        allowed_tools: str,
        log_file: str,
        has_safe_outputs: bool,
        timeout_minutes: int,
    ) -> List[Dict[str, Any]]:
        config = config or EngineConfig()
        version = config.version or self.version

        inputs: Dict[str, Any] = {
            "anthropic_api_key": "${{ secrets.ANTHROPIC_API_KEY }}",
            "mcp_config": MCP_CONFIG_FILE,
            "prompt_file": PROMPT_FILE,
            "timeout_minutes": timeout_minutes,
        }
        if allowed_tools:
            inputs["allowed_tools"] = allowed_tools
        if has_safe_outputs:
            inputs["claude_env"] = f"GITHUB_AW_SAFE_OUTPUTS: {SAFE_OUTPUTS_ENV}\n"
        if config.max_turns:
            inputs["max_turns"] = config.max_turns
        if config.model:
            inputs["model"] = config.model

        env: Dict[str, Any] = {"GITHUB_AW_PROMPT": PROMPT_FILE}
        if has_safe_outputs:
            env["GITHUB_AW_SAFE_OUTPUTS"] = SAFE_OUTPUTS_ENV
        if config.max_turns:
            env["GITHUB_AW_MAX_TURNS"] = config.max_turns

        execution_file = "${{ steps.agentic_execution.outputs.execution_file }}"
        capture_logs = (
            f'if [ -n "{execution_file}" ] && [ -f "{execution_file}" ]; then\n'
            f"  cp {execution_file} {log_file}\n"
            "else\n"
            f'  echo "No execution file output found from Agentic Action" >> {log_file}\n'
            "fi\n"
            f"touch {log_file}\n"
        )

        return [
            {
                "name": "Execute Claude Code Action",
                "id": "agentic_execution",
                "uses": f"{self.action}@{version}",
                "with": {key: inputs[key] for key in sorted(inputs)},
                "env": env,
            },
            {
                "name": "Capture Agentic Action logs",
                "if": "always()",
                "run": capture_logs,
            },
        ]


@dataclass
class CodexEngine(AgenticEngine):
    """Runs the agent through the Codex CLI."""
    default_model: str = "o4-mini"

    def installation_steps(self, config: Optional[EngineConfig]) -> List[Dict[str, Any]]:
        package = "@openai/codex"
        if config and config.version:
            package = f"{package}@{config.version}"

        return [
            {
                "name": "Setup Node.js",
                "uses": "actions/setup-node@v4",
                "with": {"node-version": "24"},
            },
            {
                "name": "Install Codex",
                "run": f"npm install -g {package}",
            },
        ]

    def render_mcp_config(self, tools: List[MCPTool]) -> str:
        """Codex reads config.toml from CODEX_HOME; only stdio servers are written."""
        lines = [f"cat > {MCP_CONFIG_DIR}/config.toml << EOF", "[history]", 'persistence = "none"']

        for tool in tools:
            if tool.transport == MCPTransport.HTTP:
                logger.warning(f"MCP server '{tool.name}' uses http transport; codex supports stdio only, skipping")
                continue

            server = mcp_server_config(tool)
            lines.append("")
            lines.append(f"[mcp_servers.{tool.name}]")
            if "command" in server:
                lines.append(f"command = {json.dumps(server['command'])}")
            if "args" in server:
                lines.append(f"args = {json.dumps(server['args'])}")
            if server.get("env"):
                pairs = ", ".join(f"{json.dumps(k)} = {json.dumps(v)}" for k, v in server["env"].items())
                lines.append(f"env = {{ {pairs} }}")

        lines.append("EOF")
        return "\n".join(lines) + "\n"

    def execution_steps(
        self,
        config: Optional[EngineConfig],
        allowed_tools: str,
        log_file: str,
        has_safe_outputs: bool,
        timeout_minutes: int,
    ) -> List[Dict[str, Any]]:
        model = (config.model if config else None) or self.default_model

        command = (
            "set -o pipefail\n"
            f"INSTRUCTION=$(cat {PROMPT_FILE})\n"
            f"export CODEX_HOME={MCP_CONFIG_DIR}\n"
            "mkdir -p /tmp/aw-logs\n"
            f'codex exec -c model={model} --full-auto "$INSTRUCTION" 2>&1 | tee {log_file}\n'
        )

        env: Dict[str, Any] = {
            "GITHUB_AW_PROMPT": PROMPT_FILE,
            "GITHUB_STEP_SUMMARY": "${{ env.GITHUB_STEP_SUMMARY }}",
            "OPENAI_API_KEY": "${{ secrets.OPENAI_API_KEY }}",
        }
        if has_safe_outputs:
            env["GITHUB_AW_SAFE_OUTPUTS"] = SAFE_OUTPUTS_ENV

        return [
            {
                "name": "Run Codex",
                "run": command,
                "env": {key: env[key] for key in sorted(env)},
                "timeout-minutes": timeout_minutes,
            },
        ]


# =============================================================================
# Registry
# =============================================================================

DEFAULT_ENGINE = "claude"


class EngineRegistry:
    """
    Engines by id.

    Built once and only read afterwards, so one registry can be shared
    by concurrent compilations.
    """

    def __init__(self, default_engine: str = DEFAULT_ENGINE):
        self._engines: Dict[str, AgenticEngine] = {}
        self._default_engine = default_engine

        self.register(ClaudeEngine(
            id="claude",
            display_name="Claude Code",
            description="Uses Claude Code with full MCP tool support and allow-listing",
            supports_tools_whitelist=True,
            supports_http_transport=True,
            supports_max_turns=True,
            action="anthropics/claude-code-base-action",
        ))
        self.register(CodexEngine(
            id="codex",
            display_name="Codex",
            description="Uses OpenAI Codex CLI with MCP server support",
            experimental=True,
            supports_tools_whitelist=True,
            supports_http_transport=False,
            supports_max_turns=False,
        ))

    def register(self, engine: AgenticEngine) -> None:
        self._engines[engine.id] = engine
        logger.debug(f"Registered engine {engine.id}")

    def get_engine(self, engine_id: str) -> AgenticEngine:
        engine = self._engines.get(engine_id)
        if engine is None:
            raise UnknownEngineError(engine_id, self.get_supported_engines())
        return engine

    def get_supported_engines(self) -> List[str]:
        return sorted(self._engines)

    def get_all_engines(self) -> List[AgenticEngine]:
        return [self._engines[engine_id] for engine_id in self.get_supported_engines()]

    def is_valid_engine(self, engine_id: str) -> bool:
        return engine_id in self._engines

    def get_default_engine(self) -> AgenticEngine:
        return self.get_engine(self._default_engine)

    def get_engine_by_prefix(self, value: str) -> AgenticEngine:
        """Resolve legacy ids such as "codex-experimental" by their engine prefix."""
        for engine_id in self.get_supported_engines():
            if value.startswith(engine_id):
                return self._engines[engine_id]
        raise UnknownEngineError(value, self.get_supported_engines())

    def resolve(self, engine_id: Optional[str]) -> AgenticEngine:
        """Engine for a workflow's `engine:` setting, falling back to the default."""
        if not engine_id:
            return self.get_default_engine()
        if self.is_valid_engine(engine_id):
            return self._engines[engine_id]
        return self.get_engine_by_prefix(engine_id)
