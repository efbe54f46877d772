"""
Gantry API Routes

FastAPI endpoints for the Gantry workflow compiler:
- CompileWorkflow
- CompileToolPermissions
- ListEngines
"""

from __future__ import annotations
from typing import Dict, Any, Optional, List
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
import logging

from .. import __version__
from ..compiler.workflow_compiler import WorkflowCompiler
from ..errors import CompilationError
from ..permissions import ToolPermissionCompiler
from ..schemas.tools import dump_tool_specification, parse_tool_specification
from ..schemas.workflow import SafeOutputsConfig, WorkflowSpec


logger = logging.getLogger(__name__)


# =============================================================================
# API Models
# =============================================================================

class CompileWorkflowRequest(BaseModel):
    """Request to compile a workflow."""
    workflow: WorkflowSpec = Field(..., description="Parsed workflow frontmatter plus prompt")
    file_name: Optional[str] = Field(default=None, description="Source file; its stem names commands")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "workflow": {
                    "name": "Issue Triage",
                    "on": {"issues": {"types": ["opened"]}},
                    "tools": {"bash": ["echo", "ls"], "edit": None},
                    "safe-outputs": {"add-issue-comment": None},
                    "prompt": "Triage the new issue and leave a comment.",
                },
                "file_name": "issue-triage.md",
            }
        }
    )


class CompileWorkflowResponse(BaseModel):
    """Compiled workflow."""
    job_name: str
    engine: str
    allowed_tools: str
    if_condition: str
    topological_order: List[str]
    yaml: str


class ToolPermissionsRequest(BaseModel):
    """Request to compile a tools section into an allow-list."""
    model_config = ConfigDict(populate_by_name=True)

    tools: Dict[str, Any] = Field(default_factory=dict)
    safe_outputs: Optional[SafeOutputsConfig] = Field(default=None, alias="safe-outputs")

    @field_validator("safe_outputs", mode="before")
    @classmethod
    def empty_safe_outputs(cls, v: Any) -> Any:
        # Same rule as WorkflowSpec: a present but empty section is configured
        return {} if v is None else v


class ToolPermissionsResponse(BaseModel):
    """Allow-list and the expanded tools it was derived from."""
    permissions: str
    tokens: List[str]
    tools: Dict[str, Any]


class EngineInfo(BaseModel):
    """Information about an agentic engine."""
    id: str
    display_name: str
    description: str
    experimental: bool
    supports_tools_whitelist: bool
    supports_http_transport: bool
    supports_max_turns: bool


class EnginesResponse(BaseModel):
    default: str
    engines: List[EngineInfo]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str


# =============================================================================
# Router
# =============================================================================

router = APIRouter(prefix="/api/v1", tags=["Gantry Workflow Compiler"])

_compiler: Optional[WorkflowCompiler] = None


def get_compiler() -> WorkflowCompiler:
    """Get or create the workflow compiler instance."""
    global _compiler
    if _compiler is None:
        _compiler = WorkflowCompiler()
    return _compiler


def _unprocessable(error: CompilationError) -> HTTPException:
    logger.warning(f"Compilation failed [{error.code}]: {error.message}")
    return HTTPException(status_code=422, detail={"code": error.code, "message": error.message})


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the compiler service is running.",
)
async def health_check():
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get(
    "/engines",
    response_model=EnginesResponse,
    summary="List Engines",
    description="Get the agentic engines a workflow can select.",
)
async def list_engines(compiler: WorkflowCompiler = Depends(get_compiler)):
    registry = compiler.registry
    return EnginesResponse(
        default=registry.get_default_engine().id,
        engines=[EngineInfo(**engine.to_dict()) for engine in registry.get_all_engines()],
    )


@router.post(
    "/workflows/compile",
    response_model=CompileWorkflowResponse,
    summary="Compile Workflow",
    description="Compile a workflow specification into GitHub Actions YAML.",
)
async def compile_workflow(
    request: CompileWorkflowRequest,
    compiler: WorkflowCompiler = Depends(get_compiler),
):
    """
    Compile a workflow.

    Compilation errors are returned as 422 with a machine-readable code.
    """
    spec = request.workflow
    if request.file_name:
        spec = spec.model_copy(update={"source_path": request.file_name})

    try:
        compiled = compiler.compile(spec)
    except CompilationError as e:
        raise _unprocessable(e)

    return CompileWorkflowResponse(
        job_name=compiled.job_name,
        engine=compiled.engine,
        allowed_tools=compiled.allowed_tools,
        if_condition=compiled.if_condition,
        topological_order=compiled.execution_order,
        yaml=compiled.yaml,
    )


@router.post(
    "/tools/permissions",
    response_model=ToolPermissionsResponse,
    summary="Compile Tool Permissions",
    description="Compile a neutral tools section into the agent's allow-list.",
)
async def compile_tool_permissions(request: ToolPermissionsRequest):
    try:
        result = ToolPermissionCompiler().compile(
            parse_tool_specification(request.tools),
            request.safe_outputs,
        )
    except CompilationError as e:
        raise _unprocessable(e)

    return ToolPermissionsResponse(
        permissions=result.permissions,
        tokens=result.tokens,
        tools=dump_tool_specification(result.tools),
    )
