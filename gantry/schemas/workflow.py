"""
Gantry Workflow Schema

Already-parsed workflow frontmatter, validated with pydantic.
Keys use the hyphenated spelling of the frontmatter (safe-outputs,
runs-on, max-turns, ...); snake_case field names are accepted too.
"""

from __future__ import annotations
from typing import Dict, List, Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Engine
# =============================================================================

class EngineConfig(BaseModel):
    """Agentic engine selection; a bare string is read as the engine id."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    version: Optional[str] = None
    model: Optional[str] = None
    max_turns: Optional[str] = Field(default=None, alias="max-turns")

    @model_validator(mode="before")
    @classmethod
    def accept_engine_id(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"id": data}
        return data

    @field_validator("max_turns", mode="before")
    @classmethod
    def stringify_max_turns(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v)


# =============================================================================
# Safe Outputs
# =============================================================================

class CreateIssueConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title_prefix: str = Field(default="", alias="title-prefix")
    labels: List[str] = Field(default_factory=list)
    max: int = Field(default=1, ge=1)


class AddIssueCommentConfig(BaseModel):
    """Target is "triggering" (default, empty), "*" or an explicit issue number."""
    max: int = Field(default=1, ge=1)
    target: str = ""

    @field_validator("target", mode="before")
    @classmethod
    def stringify_target(cls, v: Any) -> str:
        return "" if v is None else str(v)


class CreatePullRequestConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title_prefix: str = Field(default="", alias="title-prefix")
    labels: List[str] = Field(default_factory=list)
    draft: Optional[bool] = None

    @property
    def is_draft(self) -> bool:
        """Pull requests are opened as drafts unless draft is explicitly false."""
        return True if self.draft is None else self.draft


class AddIssueLabelConfig(BaseModel):
    """An empty allow-list lets the agent add any label."""
    allowed: List[str] = Field(default_factory=list)
    max: Optional[int] = Field(default=None, ge=1)

    @property
    def max_count(self) -> int:
        return self.max if self.max is not None else 3


class UpdateIssueConfig(BaseModel):
    """
    Fields the agent may update.

    Only the presence of the status / title / body keys matters; their
    values are ignored.
    """
    status: bool = False
    title: bool = False
    body: bool = False
    target: str = ""
    max: int = Field(default=1, ge=1)

    @model_validator(mode="before")
    @classmethod
    def presence_enables_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("status", "title", "body"):
            data[key] = key in data
        if data.get("target") is not None:
            data["target"] = str(data["target"])
        return data


class PushToBranchConfig(BaseModel):
    branch: str = "triggering"
    target: str = ""

    @field_validator("branch", mode="before")
    @classmethod
    def default_branch(cls, v: Any) -> str:
        return v if isinstance(v, str) and v else "triggering"

    @field_validator("target", mode="before")
    @classmethod
    def stringify_target(cls, v: Any) -> str:
        return "" if v is None else str(v)


class MissingToolConfig(BaseModel):
    max: Optional[int] = Field(default=None, ge=1)


SAFE_OUTPUT_KEYS = [
    "create-issue",
    "add-issue-comment",
    "create-pull-request",
    "add-issue-label",
    "update-issue",
    "push-to-branch",
    "missing-tool",
]


class SafeOutputsConfig(BaseModel):
    """
    Side effects the agent may request.

    A key that is present with a null value still enables that output
    with its defaults.
    """
    model_config = ConfigDict(populate_by_name=True)

    create_issue: Optional[CreateIssueConfig] = Field(default=None, alias="create-issue")
    add_issue_comment: Optional[AddIssueCommentConfig] = Field(default=None, alias="add-issue-comment")
    create_pull_request: Optional[CreatePullRequestConfig] = Field(default=None, alias="create-pull-request")
    add_issue_label: Optional[AddIssueLabelConfig] = Field(default=None, alias="add-issue-label")
    update_issue: Optional[UpdateIssueConfig] = Field(default=None, alias="update-issue")
    push_to_branch: Optional[PushToBranchConfig] = Field(default=None, alias="push-to-branch")
    missing_tool: Optional[MissingToolConfig] = Field(default=None, alias="missing-tool")
    allowed_domains: List[str] = Field(default_factory=list, alias="allowed-domains")

    @model_validator(mode="before")
    @classmethod
    def enable_null_entries(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in SAFE_OUTPUT_KEYS:
            snake = key.replace("-", "_")
            for candidate in (key, snake):
                if candidate in data and data[candidate] is None:
                    data[candidate] = {}
        return data

    def has_any(self) -> bool:
        """Whether at least one safe output job will be generated."""
        return any(
            output is not None
            for output in (
                self.create_issue,
                self.add_issue_comment,
                self.create_pull_request,
                self.add_issue_label,
                self.update_issue,
                self.push_to_branch,
                self.missing_tool,
            )
        )

    def to_validation_config(self) -> Dict[str, Any]:
        """Compact view of enabled outputs, handed to the output collection step."""
        config: Dict[str, Any] = {}
        if self.create_issue is not None:
            config["create-issue"] = True
        if self.add_issue_comment is not None:
            comment: Dict[str, Any] = {"enabled": True}
            if self.add_issue_comment.target:
                comment["target"] = self.add_issue_comment.target
            config["add-issue-comment"] = comment
        if self.create_pull_request is not None:
            config["create-pull-request"] = True
        if self.add_issue_label is not None:
            config["add-issue-label"] = True
        if self.update_issue is not None:
            config["update-issue"] = True
        if self.push_to_branch is not None:
            push: Dict[str, Any] = {"enabled": True, "branch": self.push_to_branch.branch}
            if self.push_to_branch.target:
                push["target"] = self.push_to_branch.target
            config["push-to-branch"] = push
        if self.missing_tool is not None:
            config["missing-tool"] = True
        return config


# =============================================================================
# Custom Jobs
# =============================================================================

class CustomJobConfig(BaseModel):
    """Extra job declared under `jobs:`; `depends` is accepted as an alias of `needs`."""
    model_config = ConfigDict(populate_by_name=True)

    needs: List[str] = Field(default_factory=list)
    runs_on: Optional[Union[str, List[str], Dict[str, Any]]] = Field(default=None, alias="runs-on")
    if_condition: Optional[str] = Field(default=None, alias="if")
    permissions: Optional[Union[str, Dict[str, str]]] = None
    steps: List[Dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def merge_depends(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "depends" not in data:
            return data
        data = dict(data)
        data.setdefault("needs", data.pop("depends"))
        return data

    @field_validator("needs", mode="before")
    @classmethod
    def single_dependency(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v


# =============================================================================
# Workflow
# =============================================================================

class WorkflowSpec(BaseModel):
    """
    Gantry workflow specification.

    Mirrors the frontmatter of an agentic workflow file after it has been
    parsed; `on` is normalised to a mapping of event name to event config.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    on: Dict[str, Any] = Field(default_factory=dict)
    permissions: Optional[Union[str, Dict[str, str]]] = None
    runs_on: Optional[Union[str, List[str], Dict[str, Any]]] = Field(default=None, alias="runs-on")
    if_condition: Optional[str] = Field(default=None, alias="if")
    timeout_minutes: Optional[int] = Field(default=None, alias="timeout_minutes", ge=1)
    engine: Optional[EngineConfig] = None
    tools: Dict[str, Any] = Field(default_factory=dict)
    safe_outputs: Optional[SafeOutputsConfig] = Field(default=None, alias="safe-outputs")
    jobs: Dict[str, CustomJobConfig] = Field(default_factory=dict)
    steps: Optional[List[Dict[str, Any]]] = None
    post_steps: Optional[List[Dict[str, Any]]] = Field(default=None, alias="post-steps")

    # Markdown body of the workflow file, written to the agent's prompt
    prompt: str = ""

    # Set by whoever parsed the markdown body
    needs_text_output: bool = Field(default=False, alias="needs-text-output")
    source_path: Optional[str] = Field(default=None, alias="source-path")

    @field_validator("on", mode="before")
    @classmethod
    def normalize_on(cls, v: Any) -> Dict[str, Any]:
        if v is None:
            return {}
        if isinstance(v, str):
            return {v: None}
        if isinstance(v, list):
            return {event: None for event in v}
        return v

    @field_validator("if_condition", mode="before")
    @classmethod
    def strip_if_prefix(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("if:"):
                v = v[len("if:"):].strip()
        return v

    @field_validator("safe_outputs", mode="before")
    @classmethod
    def empty_safe_outputs(cls, v: Any) -> Any:
        # `safe-outputs:` with no entries still counts as configured
        return {} if v is None else v

    @property
    def engine_id(self) -> Optional[str]:
        return self.engine.id if self.engine else None
