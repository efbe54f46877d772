"""
Gantry Workflow Compiler

Compiles a WorkflowSpec into a GitHub Actions workflow.

Job layout:
- task:            gates the run (condition, command, team membership, text)
- add_reaction:    reacts to the triggering item
- <workflow job>:  runs the agent and collects its safe output
- safe output jobs: apply the agent's requested side effects
- custom jobs from the `jobs:` section
"""

from __future__ import annotations
from typing import Dict, List, Any, Optional, Union
from dataclasses import dataclass
from pathlib import Path
import json
import logging
import string

from pydantic import ValidationError

from ..config import GantryConfig, get_config
from ..engines import AgenticEngine, EngineRegistry, PROMPT_FILE
from ..errors import WorkflowSpecError
from ..permissions import (
    ToolPermissionCompiler,
    apply_default_github_tools,
    format_allowed_tools_comment,
)
from ..schemas.tools import (
    ENGINE_NATIVE_KEY,
    MCPTool,
    MCPTransport,
    ToolSpecification,
    parse_tool_specification,
)
from ..schemas.workflow import SafeOutputsConfig, WorkflowSpec
from ..scripts import load_script
from .expressions import (
    COMMAND_EVENTS,
    build_command_only_condition,
    build_condition_tree,
    build_draft_filter_condition,
    build_event_aware_command_condition,
    build_label_filter_condition,
    build_reaction_condition,
)
from .job_graph import Job, JobGraph


logger = logging.getLogger(__name__)


TASK_JOB = "task"
REACTION_JOB = "add_reaction"

# Trigger keys that configure the compiler instead of naming an event
NON_EVENT_TRIGGER_KEYS = {"command", "reaction", "stop-after"}

TEXT_OUTPUT_EXPRESSION = "${{ needs.task.outputs.text }}"
AGENT_OUTPUT_EXPRESSION = "${{ needs.%s.outputs.output }}"
SAFE_OUTPUTS_FILE = "${{ env.GITHUB_AW_SAFE_OUTPUTS }}"
PATCH_ARTIFACT = "aw.patch"

HEADER = (
    "# This file was automatically generated by gantry. DO NOT EDIT.\n"
    "# To update this file, edit the workflow specification and recompile.\n"
)

_JOB_NAME_SEPARATORS = " :.,()/\\@"
_JOB_NAME_FIRST_CHARS = string.ascii_lowercase + "_"


def generate_job_name(workflow_name: str) -> str:
    """
    Job id derived from a workflow's display name.

    Lowercased, punctuation replaced by dashes, quotes removed. Ids that
    would not start with a letter or underscore get a "workflow-" prefix.
    """
    name = workflow_name.lower()
    for char in _JOB_NAME_SEPARATORS:
        name = name.replace(char, "-")
    name = name.replace("'", "").replace('"', "")

    while "--" in name:
        name = name.replace("--", "-")
    name = name.strip("-")

    if not name or name[0] not in _JOB_NAME_FIRST_CHARS:
        name = "workflow-" + name

    return name


# =============================================================================
# Result
# =============================================================================

@dataclass
class TriggerAnalysis:
    """What the `on:` section asks of the compiler."""
    command: Optional[str]
    reaction: Optional[str]
    other_events: List[str]
    condition: str


@dataclass
class CompiledWorkflow:
    """Result of compiling one workflow."""
    name: str
    job_name: str
    engine: str
    jobs: JobGraph
    allowed_tools: str
    tools: ToolSpecification
    if_condition: str
    yaml: str

    @property
    def execution_order(self) -> List[str]:
        return self.jobs.get_topological_order()


# =============================================================================
# Compiler
# =============================================================================

class WorkflowCompiler:
    """
    Compiles workflow specifications into GitHub Actions YAML.

    Features:
    - Trigger analysis (commands, reactions, draft and label filters)
    - Engine capability validation
    - Tool allow-list compilation
    - Safe output jobs with least-privilege permissions
    - Dependency-validated job graph
    """

    def __init__(
        self,
        registry: Optional[EngineRegistry] = None,
        config: Optional[GantryConfig] = None,
    ):
        self.version = "1.0.0"
        self._registry = registry
        self._config = config
        self.permission_compiler = ToolPermissionCompiler()

    @property
    def config(self) -> GantryConfig:
        return self._config or get_config()

    @property
    def registry(self) -> EngineRegistry:
        if self._registry is None:
            self._registry = EngineRegistry(default_engine=self.config.default_engine)
        return self._registry

    def compile(self, spec: Union[WorkflowSpec, Dict[str, Any]]) -> CompiledWorkflow:
        """
        Compile a workflow specification.

        Raises:
            WorkflowSpecError: invalid specification or unsupported engine feature
            UnknownEngineError: the engine id is not registered
            JobGraphError: custom jobs form an invalid graph
        """
        if not isinstance(spec, WorkflowSpec):
            try:
                spec = WorkflowSpec.model_validate(spec)
            except ValidationError as e:
                raise WorkflowSpecError(f"invalid workflow specification: {e}") from e

        engine = self.registry.resolve(spec.engine_id)
        job_name = generate_job_name(spec.name)
        logger.info(f"Compiling workflow '{spec.name}' (job: {job_name}, engine: {engine.id})")

        triggers = self._analyze_triggers(spec, job_name)

        tools = parse_tool_specification(spec.tools)
        self._validate_engine_features(spec, engine, tools)
        tools = apply_default_github_tools(tools)

        allowed_tools = ""
        if engine.supports_tools_whitelist:
            result = self.permission_compiler.compile(tools, spec.safe_outputs)
            allowed_tools = result.permissions
            tools = result.tools

        graph = self._build_jobs(spec, engine, job_name, triggers, tools, allowed_tools)
        graph.validate_dependencies()

        rendered = HEADER + f"name: {json.dumps(spec.name)}\n\n" + graph.render_to_yaml()
        rendered = self._annotate_allowed_tools(rendered, allowed_tools)

        logger.info(f"Compiled workflow '{spec.name}' into {len(graph)} jobs")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Job order: {graph.get_topological_order()}")

        return CompiledWorkflow(
            name=spec.name,
            job_name=job_name,
            engine=engine.id,
            jobs=graph,
            allowed_tools=allowed_tools,
            tools=tools,
            if_condition=triggers.condition,
            yaml=rendered,
        )

    # =========================================================================
    # Triggers
    # =========================================================================

    def _analyze_triggers(self, spec: WorkflowSpec, job_name: str) -> TriggerAnalysis:
        on = spec.on
        command = self._command_name(spec, job_name)

        if command is not None:
            for event in COMMAND_EVENTS:
                if event in on:
                    raise WorkflowSpecError(f"cannot use 'command' with '{event}' in the same workflow")

        reaction = on.get("reaction")
        if reaction is not None and not isinstance(reaction, str):
            raise WorkflowSpecError("'reaction' must be a string")

        other_events = [event for event in on if event not in NON_EVENT_TRIGGER_KEYS]

        condition = spec.if_condition or ""
        if command is not None and not condition:
            condition = build_event_aware_command_condition(command, bool(other_events)).render()

        pull_request = on.get("pull_request")
        if isinstance(pull_request, dict) and "draft" in pull_request:
            draft = pull_request["draft"]
            if not isinstance(draft, bool):
                raise WorkflowSpecError("'draft' filter on pull_request must be a boolean")
            condition = build_condition_tree(condition, build_draft_filter_condition(draft).render()).render()

        label = on.get("label")
        if isinstance(label, dict) and "name" in label:
            names = label["name"]
            if not isinstance(names, list):
                raise WorkflowSpecError("'name' filter on label must be a list")
            addition = build_label_filter_condition(names)
            if addition is not None:
                condition = build_condition_tree(condition, addition.render()).render()

        return TriggerAnalysis(
            command=command,
            reaction=reaction,
            other_events=other_events,
            condition=condition,
        )

    def _command_name(self, spec: WorkflowSpec, job_name: str) -> Optional[str]:
        if "command" not in spec.on:
            return None

        command = spec.on["command"]
        if isinstance(command, dict) and command.get("name"):
            return str(command["name"])
        if isinstance(command, str) and command:
            return command
        if spec.source_path:
            return Path(spec.source_path).stem
        return job_name

    # =========================================================================
    # Validation
    # =========================================================================

    def _validate_engine_features(
        self,
        spec: WorkflowSpec,
        engine: AgenticEngine,
        tools: ToolSpecification,
    ) -> None:
        if ENGINE_NATIVE_KEY in tools:
            raise WorkflowSpecError(
                f"engine-native '{ENGINE_NATIVE_KEY}' tools are not accepted; "
                "use neutral tools (bash, edit, web-fetch, web-search)"
            )

        if not engine.supports_http_transport:
            for name, entry in tools.items():
                if isinstance(entry, MCPTool) and entry.transport == MCPTransport.HTTP:
                    raise WorkflowSpecError(
                        f"tool '{name}' uses HTTP transport which is not supported by engine "
                        f"'{engine.id}' (only stdio transport is supported)"
                    )

        if spec.engine and spec.engine.max_turns and not engine.supports_max_turns:
            raise WorkflowSpecError(
                f"max-turns not supported: engine '{engine.id}' does not support the max-turns feature"
            )

    # =========================================================================
    # Jobs
    # =========================================================================

    def _build_jobs(
        self,
        spec: WorkflowSpec,
        engine: AgenticEngine,
        job_name: str,
        triggers: TriggerAnalysis,
        tools: ToolSpecification,
        allowed_tools: str,
    ) -> JobGraph:
        graph = JobGraph()
        needs_text_output = spec.needs_text_output or TEXT_OUTPUT_EXPRESSION in spec.prompt

        has_task_job = bool(triggers.command) or needs_text_output or bool(triggers.condition)
        if has_task_job:
            graph.add_job(self._build_task_job(triggers, needs_text_output))

        if triggers.reaction:
            graph.add_job(self._build_reaction_job(triggers, has_task_job))

        graph.add_job(self._build_main_job(spec, engine, job_name, has_task_job, tools, allowed_tools))

        safe_outputs = spec.safe_outputs
        if safe_outputs is not None:
            for job in self._build_safe_output_jobs(safe_outputs, job_name, triggers.command):
                graph.add_job(job)

        for name in sorted(spec.jobs):
            custom = spec.jobs[name]
            graph.add_job(Job(
                name=name,
                runs_on=custom.runs_on or self.config.jobs.runs_on,
                if_condition=custom.if_condition or "",
                permissions=custom.permissions,
                steps=list(custom.steps),
                needs=list(custom.needs),
            ))

        return graph

    def _script_step(self, name: str, script: str, step_id: Optional[str] = None,
                     env: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        step: Dict[str, Any] = {"name": name}
        if step_id:
            step["id"] = step_id
        step["uses"] = self.config.actions.script
        if env:
            step["env"] = env
        step["with"] = {"script": load_script(script)}
        return step

    def _build_task_job(self, triggers: TriggerAnalysis, needs_text_output: bool) -> Job:
        steps: List[Dict[str, Any]] = []
        outputs: Dict[str, str] = {}

        if triggers.command:
            check = self._script_step("Check team membership for command workflow", "check_team_member",
                                      step_id="check-team-member")
            # Only gate on membership when the command was actually typed
            check["if"] = build_command_only_condition(triggers.command).render()
            steps.append(check)
            steps.append({
                "name": "Validate team membership",
                "if": "steps.check-team-member.outputs.is_team_member == 'false'",
                "run": (
                    'echo "❌ Access denied: Only team members can trigger command workflows"\n'
                    'echo "User ${{ github.actor }} is not a team member"\n'
                    "exit 1\n"
                ),
            })

        if needs_text_output:
            steps.append(self._script_step("Compute current body text", "compute_text", step_id="compute-text"))
            outputs["text"] = "${{ steps.compute-text.outputs.text }}"

        if not steps:
            steps.append({
                "name": "Task job condition barrier",
                "run": 'echo "Task job executed - conditions satisfied"',
            })

        return Job(
            name=TASK_JOB,
            runs_on=self.config.jobs.runs_on,
            if_condition=triggers.condition,
            steps=steps,
            outputs=outputs,
        )

    def _build_reaction_job(self, triggers: TriggerAnalysis, has_task_job: bool) -> Job:
        env: Dict[str, Any] = {"GITHUB_AW_REACTION": triggers.reaction}
        if triggers.command:
            env["GITHUB_AW_COMMAND"] = triggers.command

        return Job(
            name=REACTION_JOB,
            runs_on=self.config.jobs.runs_on,
            if_condition=build_reaction_condition().render(),
            permissions={"issues": "write", "pull-requests": "write"},
            steps=[self._script_step(
                f"Add {triggers.reaction} reaction to the triggering item", "add_reaction",
                step_id="react", env=env,
            )],
            needs=[TASK_JOB] if has_task_job else [],
            outputs={"reaction_id": "${{ steps.react.outputs.reaction-id }}"},
        )

    def _build_main_job(
        self,
        spec: WorkflowSpec,
        engine: AgenticEngine,
        job_name: str,
        has_task_job: bool,
        tools: ToolSpecification,
        allowed_tools: str,
    ) -> Job:
        actions = self.config.actions
        safe_outputs = spec.safe_outputs
        has_safe_outputs = safe_outputs is not None
        log_file = f"/tmp/{job_name}.log"

        steps: List[Dict[str, Any]] = []
        if spec.steps:
            steps.extend(spec.steps)
        else:
            steps.append({"name": "Checkout repository", "uses": actions.checkout})

        steps.extend(engine.installation_steps(spec.engine))

        if has_safe_outputs:
            steps.append(self._script_step("Setup agent output", "setup_agent_output", step_id="setup_agent_output"))

        mcp_tools = sorted(
            (entry for entry in tools.values() if isinstance(entry, MCPTool) and entry.is_mcp),
            key=lambda entry: entry.name,
        )
        mcp_step = engine.mcp_setup_step(mcp_tools)
        if mcp_step:
            steps.append(mcp_step)

        steps.append(self._prompt_step(spec.prompt, safe_outputs))

        timeout = spec.timeout_minutes or self.config.jobs.agent_timeout_minutes
        steps.extend(engine.execution_steps(spec.engine, allowed_tools, log_file, has_safe_outputs, timeout))

        outputs: Dict[str, str] = {}
        if has_safe_outputs:
            steps.extend(self._collect_output_steps(safe_outputs))
            outputs["output"] = "${{ steps.collect_output.outputs.output }}"

        steps.append({
            "name": "Upload agent logs",
            "if": "always()",
            "uses": actions.upload_artifact,
            "with": {"name": f"{job_name}.log", "path": log_file, "if-no-files-found": "warn"},
        })

        if has_safe_outputs and (safe_outputs.create_pull_request or safe_outputs.push_to_branch):
            steps.extend(self._git_patch_steps())

        if spec.post_steps:
            steps.extend(spec.post_steps)

        return Job(
            name=job_name,
            runs_on=spec.runs_on or self.config.jobs.runs_on,
            permissions=spec.permissions or self.config.jobs.permissions,
            steps=steps,
            needs=[TASK_JOB] if has_task_job else [],
            outputs=outputs,
        )

    def _prompt_step(self, prompt: str, safe_outputs: Optional[SafeOutputsConfig]) -> Dict[str, Any]:
        body = prompt.rstrip("\n")
        if safe_outputs is not None:
            body += "\n\n" + _safe_output_instructions(safe_outputs)

        step: Dict[str, Any] = {"name": "Create prompt"}
        if safe_outputs is not None:
            step["env"] = {"GITHUB_AW_SAFE_OUTPUTS": SAFE_OUTPUTS_FILE}
        step["run"] = (
            "mkdir -p /tmp/aw-prompts\n"
            f"cat > {PROMPT_FILE} << 'EOF'\n"
            f"{body}\n"
            "EOF\n"
        )
        return step

    def _collect_output_steps(self, safe_outputs: SafeOutputsConfig) -> List[Dict[str, Any]]:
        env: Dict[str, Any] = {
            "GITHUB_AW_SAFE_OUTPUTS": SAFE_OUTPUTS_FILE,
            "GITHUB_AW_SAFE_OUTPUTS_CONFIG": json.dumps(safe_outputs.to_validation_config(), separators=(",", ":")),
        }
        if safe_outputs.allowed_domains:
            env["GITHUB_AW_ALLOWED_DOMAINS"] = ",".join(safe_outputs.allowed_domains)

        return [
            self._script_step("Collect agent output", "collect_output", step_id="collect_output", env=env),
            {
                "name": "Upload agentic output file",
                "if": "always() && steps.collect_output.outputs.output != ''",
                "uses": self.config.actions.upload_artifact,
                "with": {"name": "safe_output.jsonl", "path": SAFE_OUTPUTS_FILE, "if-no-files-found": "warn"},
            },
        ]

    def _git_patch_steps(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": "Generate git patch",
                "if": "always()",
                "run": (
                    "git add -A || true\n"
                    "if ! git diff --cached --quiet HEAD 2>/dev/null; then\n"
                    '  git -c user.name="gantry" -c user.email="gantry@users.noreply.github.com" '
                    'commit -m "Uncommitted changes from agent" || true\n'
                    "fi\n"
                    "git format-patch ${{ github.sha }}..HEAD --stdout > /tmp/aw.patch || true\n"
                    "ls -la /tmp/aw.patch\n"
                ),
            },
            {
                "name": "Upload git patch",
                "if": "always()",
                "uses": self.config.actions.upload_artifact,
                "with": {"name": PATCH_ARTIFACT, "path": "/tmp/aw.patch", "if-no-files-found": "ignore"},
            },
        ]

    # =========================================================================
    # Safe Output Jobs
    # =========================================================================

    def _build_safe_output_jobs(
        self,
        safe_outputs: SafeOutputsConfig,
        main_job: str,
        command: Optional[str],
    ) -> List[Job]:
        command_condition = build_command_only_condition(command).render() if command else ""
        jobs: List[Job] = []

        if safe_outputs.create_issue is not None:
            config = safe_outputs.create_issue
            jobs.append(self._safe_output_job(
                "create_issue", main_job, "Create Output Issue", "create_issue",
                step_id="create_issue",
                condition=command_condition,
                permissions={"contents": "read", "issues": "write"},
                env={
                    "GITHUB_AW_ISSUE_TITLE_PREFIX": config.title_prefix,
                    "GITHUB_AW_ISSUE_LABELS": ",".join(config.labels),
                    "GITHUB_AW_ISSUE_MAX": str(config.max),
                },
                outputs={
                    "issue_number": "${{ steps.create_issue.outputs.issue_number }}",
                    "issue_url": "${{ steps.create_issue.outputs.issue_url }}",
                },
            ))

        if safe_outputs.add_issue_comment is not None:
            config = safe_outputs.add_issue_comment
            base = "always()" if config.target == "*" else "github.event.issue.number || github.event.pull_request.number"
            env = {"GITHUB_AW_COMMENT_MAX": str(config.max)}
            if config.target:
                env["GITHUB_AW_COMMENT_TARGET"] = config.target
            jobs.append(self._safe_output_job(
                "create_issue_comment", main_job, "Add Issue Comment", "create_comment",
                step_id="create_comment",
                condition=_with_command(command_condition, base),
                permissions={"contents": "read", "issues": "write", "pull-requests": "write"},
                env=env,
                outputs={
                    "comment_id": "${{ steps.create_comment.outputs.comment_id }}",
                    "comment_url": "${{ steps.create_comment.outputs.comment_url }}",
                },
            ))

        if safe_outputs.create_pull_request is not None:
            config = safe_outputs.create_pull_request
            jobs.append(self._safe_output_job(
                "create_pull_request", main_job, "Create Pull Request", "create_pull_request",
                step_id="create_pull_request",
                condition=command_condition,
                permissions={"contents": "write", "issues": "write", "pull-requests": "write"},
                env={
                    "GITHUB_AW_WORKFLOW_ID": main_job,
                    "GITHUB_AW_BASE_BRANCH": "${{ github.ref_name }}",
                    "GITHUB_AW_PR_TITLE_PREFIX": config.title_prefix,
                    "GITHUB_AW_PR_LABELS": ",".join(config.labels),
                    "GITHUB_AW_PR_DRAFT": "true" if config.is_draft else "false",
                },
                outputs={
                    "pull_request_number": "${{ steps.create_pull_request.outputs.pull_request_number }}",
                    "pull_request_url": "${{ steps.create_pull_request.outputs.pull_request_url }}",
                    "branch_name": "${{ steps.create_pull_request.outputs.branch_name }}",
                },
                pre_steps=self._patch_checkout_steps(),
            ))

        if safe_outputs.add_issue_label is not None:
            config = safe_outputs.add_issue_label
            jobs.append(self._safe_output_job(
                "add_labels", main_job, "Add Labels", "add_labels",
                step_id="add_labels",
                condition="github.event.issue.number || github.event.pull_request.number",
                permissions={"contents": "read", "issues": "write", "pull-requests": "write"},
                env={
                    "GITHUB_AW_LABELS_ALLOWED": ",".join(config.allowed),
                    "GITHUB_AW_LABELS_MAX_COUNT": str(config.max_count),
                },
                outputs={"labels_added": "${{ steps.add_labels.outputs.labels_added }}"},
            ))

        if safe_outputs.update_issue is not None:
            config = safe_outputs.update_issue
            base = "always()" if config.target else "github.event.issue.number"
            env = {
                "GITHUB_AW_UPDATE_STATUS": _flag(config.status),
                "GITHUB_AW_UPDATE_TITLE": _flag(config.title),
                "GITHUB_AW_UPDATE_BODY": _flag(config.body),
                "GITHUB_AW_UPDATE_MAX": str(config.max),
            }
            if config.target:
                env["GITHUB_AW_UPDATE_TARGET"] = config.target
            jobs.append(self._safe_output_job(
                "update_issue", main_job, "Update Issue", "update_issue",
                step_id="update_issue",
                condition=_with_command(command_condition, base),
                permissions={"contents": "read", "issues": "write"},
                env=env,
                outputs={
                    "issue_number": "${{ steps.update_issue.outputs.issue_number }}",
                    "issue_url": "${{ steps.update_issue.outputs.issue_url }}",
                },
            ))

        if safe_outputs.push_to_branch is not None:
            config = safe_outputs.push_to_branch
            env = {"GITHUB_AW_PUSH_BRANCH": config.branch}
            if config.target:
                env["GITHUB_AW_PUSH_TARGET"] = config.target
            jobs.append(self._safe_output_job(
                "push_to_branch", main_job, "Push to Branch", "push_to_branch",
                step_id="push_to_branch",
                condition="always()" if config.target == "*" else "github.event.pull_request.number",
                permissions={"contents": "write", "pull-requests": "read"},
                env=env,
                outputs={
                    "branch_name": "${{ steps.push_to_branch.outputs.branch_name }}",
                    "commit_sha": "${{ steps.push_to_branch.outputs.commit_sha }}",
                    "push_url": "${{ steps.push_to_branch.outputs.push_url }}",
                },
                pre_steps=self._patch_checkout_steps(),
            ))

        if safe_outputs.missing_tool is not None:
            config = safe_outputs.missing_tool
            env = {}
            if config.max is not None:
                env["GITHUB_AW_MISSING_TOOL_MAX"] = str(config.max)
            jobs.append(self._safe_output_job(
                "missing_tool", main_job, "Record Missing Tool", "missing_tool",
                step_id="missing_tool",
                condition="${{ always() }}",
                permissions={"contents": "read"},
                env=env,
                outputs={
                    "tools_reported": "${{ steps.missing_tool.outputs.tools_reported }}",
                    "total_count": "${{ steps.missing_tool.outputs.total_count }}",
                },
                timeout_minutes=self.config.jobs.missing_tool_timeout_minutes,
            ))

        return jobs

    def _safe_output_job(
        self,
        name: str,
        main_job: str,
        step_name: str,
        script: str,
        step_id: str,
        condition: str,
        permissions: Dict[str, str],
        env: Dict[str, str],
        outputs: Dict[str, str],
        pre_steps: Optional[List[Dict[str, Any]]] = None,
        timeout_minutes: Optional[int] = None,
    ) -> Job:
        step_env = {"GITHUB_AW_AGENT_OUTPUT": AGENT_OUTPUT_EXPRESSION % main_job}
        step_env.update(env)

        steps = list(pre_steps or [])
        steps.append(self._script_step(step_name, script, step_id=step_id, env=step_env))

        return Job(
            name=name,
            runs_on=self.config.jobs.runs_on,
            if_condition=condition,
            permissions=permissions,
            steps=steps,
            needs=[main_job],
            outputs=outputs,
            timeout_minutes=timeout_minutes or self.config.jobs.safe_output_timeout_minutes,
        )

    def _patch_checkout_steps(self) -> List[Dict[str, Any]]:
        actions = self.config.actions
        return [
            {
                "name": "Download patch artifact",
                "continue-on-error": True,
                "uses": actions.download_artifact,
                "with": {"name": PATCH_ARTIFACT, "path": "/tmp/"},
            },
            {
                "name": "Checkout repository",
                "uses": actions.checkout,
                "with": {"fetch-depth": 0},
            },
        ]

    # =========================================================================
    # Rendering
    # =========================================================================

    def _annotate_allowed_tools(self, rendered: str, allowed_tools: str) -> str:
        """Insert the allowed-tools comment above the agent's allowed_tools input."""
        if not allowed_tools:
            return rendered

        lines = rendered.splitlines(True)
        for index, line in enumerate(lines):
            stripped = line.lstrip(" ")
            if stripped.startswith("allowed_tools:"):
                indent = line[: len(line) - len(stripped)]
                lines.insert(index, format_allowed_tools_comment(allowed_tools, indent))
                break

        return "".join(lines)


# =============================================================================
# Helpers
# =============================================================================

def _flag(value: bool) -> str:
    return "true" if value else "false"


def _with_command(command_condition: str, base: str) -> str:
    """Combine a command check with a job's own guard."""
    if not command_condition:
        return base
    if base == "always()":
        return command_condition
    return f"({command_condition}) && ({base})"


_OUTPUT_TITLES = [
    ("add_issue_comment", "Adding a Comment to an Issue or Pull Request"),
    ("create_issue", "Creating an Issue"),
    ("create_pull_request", "Creating a Pull Request"),
    ("add_issue_label", "Adding Labels to Issues or Pull Requests"),
    ("update_issue", "Updating Issues"),
    ("push_to_branch", "Pushing Changes to Branch"),
    ("missing_tool", "Reporting Missing Tools"),
]

_OUTPUT_EXAMPLES = {
    "add_issue_comment": '{"type": "add-issue-comment", "body": "Your comment content in markdown"}',
    "create_issue": '{"type": "create-issue", "title": "Issue title", "body": "Issue body in markdown", "labels": ["optional", "labels"]}',
    "create_pull_request": '{"type": "create-pull-request", "branch": "branch-name", "title": "PR title", "body": "PR body in markdown", "labels": ["optional", "labels"]}',
    "add_issue_label": '{"type": "add-issue-label", "labels": ["label1", "label2"]}',
    "update_issue": '{"type": "update-issue", "title": "New title", "body": "New body", "status": "open"}',
    "push_to_branch": '{"type": "push-to-branch", "message": "Commit message"}',
    "missing_tool": '{"type": "missing-tool", "tool": "tool-name", "reason": "Why it is needed", "alternatives": "Optional alternatives"}',
}


def _safe_output_instructions(safe_outputs: SafeOutputsConfig) -> str:
    """Prompt section telling the agent how to request side effects."""
    enabled = [(field, title) for field, title in _OUTPUT_TITLES if getattr(safe_outputs, field) is not None]

    lines = [
        "---",
        "",
        "## " + ", ".join(title for _, title in enabled) if enabled else "## Safe Outputs",
        "",
        "**IMPORTANT**: To do the actions mentioned in the header of this section, do NOT attempt to use "
        "MCP tools, do NOT attempt to use `gh`, do NOT attempt to use the GitHub API. You don't have write "
        f'access to the GitHub repo. Instead write JSON objects to the file "{SAFE_OUTPUTS_FILE}". '
        "Each line should contain a single JSON object (JSONL format).",
        "",
        "### Available Output Types:",
    ]

    for field, title in enabled:
        lines.extend(["", f"**{title}**", "", "```json", _OUTPUT_EXAMPLES[field], "```"])
        if field in ("create_pull_request", "push_to_branch"):
            lines.extend([
                "",
                "Make and commit your changes on a local branch first. Do not push; "
                "the changes are pushed after you finish.",
            ])

    return "\n".join(lines)


workflow_compiler = WorkflowCompiler()
