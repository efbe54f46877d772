"""
Gantry Configuration Module

Centralized configuration from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class JobDefaults:
    """Defaults applied to generated jobs."""
    runs_on: str = "ubuntu-latest"
    permissions: str = "read-all"
    safe_output_timeout_minutes: int = 10
    missing_tool_timeout_minutes: int = 5
    agent_timeout_minutes: int = 5


@dataclass
class ActionVersions:
    """Pinned actions referenced by generated steps."""
    script: str = "actions/github-script@v7"
    checkout: str = "actions/checkout@v5"
    upload_artifact: str = "actions/upload-artifact@v4"
    download_artifact: str = "actions/download-artifact@v4"


@dataclass
class GantryConfig:
    """Main configuration container."""
    jobs: JobDefaults
    actions: ActionVersions
    default_engine: str = "claude"
    debug: bool = False
    log_level: str = "INFO"

    @property
    def effective_log_level(self) -> str:
        """GANTRY_DEBUG forces DEBUG regardless of GANTRY_LOG_LEVEL."""
        return "DEBUG" if self.debug else self.log_level


def load_config() -> GantryConfig:
    """
    Load configuration from environment variables.

    Environment Variables:
        GANTRY_DEFAULT_ENGINE: Engine used when a workflow names none (default: claude)
        GANTRY_RUNS_ON: Runner for generated jobs (default: ubuntu-latest)
        GANTRY_SAFE_OUTPUT_TIMEOUT: Safe output job timeout in minutes (default: 10)
        GANTRY_MISSING_TOOL_TIMEOUT: missing_tool job timeout in minutes (default: 5)
        GANTRY_AGENT_TIMEOUT: Agent step timeout in minutes (default: 5)
        GANTRY_SCRIPT_ACTION: github-script action reference (default: actions/github-script@v7)
        GANTRY_CHECKOUT_ACTION: checkout action reference (default: actions/checkout@v5)
        GANTRY_DEBUG: Enable debug mode (default: false)
        GANTRY_LOG_LEVEL: Log level (default: INFO)
    """
    jobs = JobDefaults(
        runs_on=os.getenv("GANTRY_RUNS_ON", "ubuntu-latest"),
        safe_output_timeout_minutes=int(os.getenv("GANTRY_SAFE_OUTPUT_TIMEOUT", "10")),
        missing_tool_timeout_minutes=int(os.getenv("GANTRY_MISSING_TOOL_TIMEOUT", "5")),
        agent_timeout_minutes=int(os.getenv("GANTRY_AGENT_TIMEOUT", "5")),
    )

    actions = ActionVersions(
        script=os.getenv("GANTRY_SCRIPT_ACTION", "actions/github-script@v7"),
        checkout=os.getenv("GANTRY_CHECKOUT_ACTION", "actions/checkout@v5"),
    )

    return GantryConfig(
        jobs=jobs,
        actions=actions,
        default_engine=os.getenv("GANTRY_DEFAULT_ENGINE", "claude").lower(),
        debug=os.getenv("GANTRY_DEBUG", "false").lower() in ("true", "1", "yes"),
        log_level=os.getenv("GANTRY_LOG_LEVEL", "INFO").upper(),
    )


# Singleton config instance
_config: Optional[GantryConfig] = None


def get_config() -> GantryConfig:
    """Get the global configuration (lazy-loaded singleton)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    global _config
    _config = None
