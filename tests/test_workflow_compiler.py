"""
Gantry Workflow Compiler Tests

Validates:
- Job layout (task, add_reaction, main, safe output and custom jobs)
- Trigger analysis (commands, reactions, draft and label filters)
- Engine capability checks
- Rendered YAML (header, allowed-tools comment, determinism)
"""

import logging

import pytest
import yaml

from gantry.compiler.expressions import (
    build_command_only_condition,
    build_draft_filter_condition,
    build_event_aware_command_condition,
    build_reaction_condition,
)
from gantry.compiler.job_graph import JobGraph
from gantry.compiler.workflow_compiler import WorkflowCompiler, generate_job_name
from gantry.config import ActionVersions, GantryConfig, JobDefaults
from gantry.errors import (
    CycleDetectedError,
    UnknownDependencyError,
    UnknownEngineError,
    WorkflowSpecError,
)
from gantry.schemas.workflow import WorkflowSpec


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def compiler():
    return WorkflowCompiler(config=GantryConfig(jobs=JobDefaults(), actions=ActionVersions()))


@pytest.fixture
def all_safe_outputs():
    return {
        "create-issue": {"title-prefix": "[bot] ", "labels": ["automation", "triage"]},
        "add-issue-comment": None,
        "create-pull-request": {"draft": False},
        "add-issue-label": {"allowed": ["bug", "enhancement"]},
        "update-issue": {"title": None},
        "push-to-branch": {"branch": "updates"},
        "missing-tool": None,
    }


def compile_jobs(compiler, spec):
    """Compile and return the parsed jobs mapping."""
    result = compiler.compile(spec)
    return result, yaml.safe_load(result.yaml)["jobs"]


def step_named(job, name):
    for step in job["steps"]:
        if step.get("name") == name:
            return step
    raise AssertionError(f"no step named {name!r}")


# =============================================================================
# Job Names
# =============================================================================

class TestGenerateJobName:
    """Workflow display name -> job id."""

    @pytest.mark.parametrize("workflow_name,expected", [
        ("Test Workflow", "test-workflow"),
        ("Playground: Everything Echo Test", "playground-everything-echo-test"),
        ("Daily Plan (Automatic)", "daily-plan-automatic"),
        ("CI/CD Pipeline", "ci-cd-pipeline"),
        ('Test "Production" System', "test-production-system"),
        ("Multiple   Spaces   Test", "multiple-spaces-test"),
        ("Build", "build"),
        ("", "workflow-"),
        ("2024 Release", "workflow-2024-release"),
        ("@mergefest - Merge Parent Branch Changes", "mergefest-merge-parent-branch-changes"),
        ("_private", "_private"),
    ])
    def test_job_names(self, workflow_name, expected):
        assert generate_job_name(workflow_name) == expected


# =============================================================================
# Basic Compilation
# =============================================================================

class TestBasicCompilation:
    """A plain workflow with no gate or safe outputs."""

    @pytest.fixture
    def spec(self):
        return {
            "name": "Issue Triage",
            "on": {"issues": {"types": ["opened"]}},
            "tools": {"bash": ["echo", "ls"]},
            "prompt": "Triage the issue.",
        }

    def test_only_main_job(self, compiler, spec):
        result, jobs = compile_jobs(compiler, spec)

        assert result.job_name == "issue-triage"
        assert list(jobs) == ["issue-triage"]
        assert result.if_condition == ""

    def test_main_job_defaults(self, compiler, spec):
        _, jobs = compile_jobs(compiler, spec)
        main = jobs["issue-triage"]

        assert main["runs-on"] == "ubuntu-latest"
        assert main["permissions"] == "read-all"
        assert "needs" not in main
        assert "outputs" not in main

    def test_main_job_steps(self, compiler, spec):
        _, jobs = compile_jobs(compiler, spec)
        names = [step.get("name") for step in jobs["issue-triage"]["steps"]]

        assert names == [
            "Checkout repository",
            "Setup MCPs",
            "Create prompt",
            "Execute Claude Code Action",
            "Capture Agentic Action logs",
            "Upload agent logs",
        ]

    def test_prompt_written(self, compiler, spec):
        _, jobs = compile_jobs(compiler, spec)
        run = step_named(jobs["issue-triage"], "Create prompt")["run"]

        assert "cat > /tmp/aw-prompts/prompt.txt << 'EOF'" in run
        assert "Triage the issue." in run

    def test_allowed_tools_passed_to_agent(self, compiler, spec):
        result, jobs = compile_jobs(compiler, spec)
        execute = step_named(jobs["issue-triage"], "Execute Claude Code Action")

        assert execute["with"]["allowed_tools"] == result.allowed_tools
        assert "Bash(echo)" in result.allowed_tools
        assert "mcp__github__get_issue" in result.allowed_tools

    def test_github_mcp_server_configured(self, compiler, spec):
        _, jobs = compile_jobs(compiler, spec)
        run = step_named(jobs["issue-triage"], "Setup MCPs")["run"]

        assert "/tmp/mcp-config/mcp-servers.json" in run
        assert "ghcr.io/github/github-mcp-server:sha-45e90ae" in run

    def test_header_and_name(self, compiler, spec):
        result = compiler.compile(spec)
        lines = result.yaml.splitlines()

        assert lines[0] == "# This file was automatically generated by gantry. DO NOT EDIT."
        assert 'name: "Issue Triage"' in lines

    def test_allowed_tools_comment(self, compiler, spec):
        result = compiler.compile(spec)
        lines = result.yaml.splitlines()
        index = next(i for i, line in enumerate(lines) if line.strip().startswith("allowed_tools:"))
        indent = lines[index][: len(lines[index]) - len(lines[index].lstrip())]
        tools = result.allowed_tools.split(",")

        assert lines[index - len(tools) - 1] == f"{indent}# Allowed tools (sorted):"
        assert lines[index - 1] == f"{indent}# - {tools[-1]}"

    def test_deterministic(self, compiler, spec):
        assert compiler.compile(spec).yaml == compiler.compile(dict(spec)).yaml

    def test_accepts_model(self, compiler, spec):
        assert compiler.compile(WorkflowSpec.model_validate(spec)).yaml == compiler.compile(spec).yaml

    def test_invalid_mapping(self, compiler):
        with pytest.raises(WorkflowSpecError):
            compiler.compile({"name": ""})

    def test_custom_steps_replace_checkout(self, compiler, spec):
        spec["steps"] = [{"name": "Setup", "run": "make deps"}]
        spec["post-steps"] = [{"name": "Cleanup", "run": "make clean"}]
        _, jobs = compile_jobs(compiler, spec)
        names = [step.get("name") for step in jobs["issue-triage"]["steps"]]

        assert names[0] == "Setup"
        assert "Checkout repository" not in names
        assert names[-1] == "Cleanup"

    def test_runs_on_and_permissions_from_spec(self, compiler, spec):
        spec["runs-on"] = "self-hosted"
        spec["permissions"] = {"contents": "read", "issues": "read"}
        _, jobs = compile_jobs(compiler, spec)
        main = jobs["issue-triage"]

        assert main["runs-on"] == "self-hosted"
        assert main["permissions"] == {"contents": "read", "issues": "read"}


# =============================================================================
# Task Job
# =============================================================================

class TestTaskJob:
    """The gate job."""

    def test_explicit_condition(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "Gated", "on": {"push": None}, "if": "github.ref == 'refs/heads/main'"})
        task = jobs["task"]

        assert task["if"] == "github.ref == 'refs/heads/main'"
        assert task["steps"] == [{"name": "Task job condition barrier", "run": 'echo "Task job executed - conditions satisfied"'}]
        assert "permissions" not in task
        assert jobs["gated"]["needs"] == "task"
        assert "if" not in jobs["gated"]

    def test_text_output_from_prompt(self, compiler):
        _, jobs = compile_jobs(compiler, {
            "name": "Echo",
            "on": {"issues": None},
            "prompt": "Repeat: ${{ needs.task.outputs.text }}",
        })
        task = jobs["task"]

        assert task["outputs"] == {"text": "${{ steps.compute-text.outputs.text }}"}
        assert step_named(task, "Compute current body text")["id"] == "compute-text"
        assert "if" not in task

    def test_text_output_flag(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "Echo", "needs-text-output": True})
        assert "text" in jobs["task"]["outputs"]


class TestCommandTriggers:
    """on.command workflows."""

    def test_command_gate(self, compiler):
        result, jobs = compile_jobs(compiler, {"name": "Helper Bot", "on": {"command": {"name": "helper"}}})
        task = jobs["task"]

        assert result.if_condition == build_event_aware_command_condition("helper", False).render()
        assert task["if"] == result.if_condition

        check = step_named(task, "Check team membership for command workflow")
        assert check["id"] == "check-team-member"
        assert check["if"] == build_command_only_condition("helper").render()

        validate = step_named(task, "Validate team membership")
        assert validate["if"] == "steps.check-team-member.outputs.is_team_member == 'false'"
        assert "exit 1" in validate["run"]

    def test_command_with_other_events(self, compiler):
        result = compiler.compile({"name": "Helper", "on": {"command": {"name": "helper"}, "schedule": [{"cron": "0 9 * * 1"}]}})
        assert result.if_condition == build_event_aware_command_condition("helper", True).render()

    def test_explicit_if_wins_over_command(self, compiler):
        result = compiler.compile({"name": "Helper", "on": {"command": {"name": "helper"}}, "if": "always()"})
        assert result.if_condition == "always()"

    @pytest.mark.parametrize("event", ["issues", "issue_comment", "pull_request", "pull_request_review_comment"])
    def test_command_conflicts(self, compiler, event):
        with pytest.raises(WorkflowSpecError) as exc:
            compiler.compile({"name": "Bot", "on": {"command": {"name": "bot"}, event: None}})

        assert str(exc.value) == f"cannot use 'command' with '{event}' in the same workflow"

    def test_command_name_from_source_path(self, compiler):
        result = compiler.compile({"name": "Bot", "on": {"command": None}, "source-path": ".github/workflows/fix-it.md"})
        assert "'/fix-it'" in result.if_condition

    def test_command_name_from_job_name(self, compiler):
        result = compiler.compile({"name": "Fix It", "on": {"command": None}})
        assert "'/fix-it'" in result.if_condition


class TestFilters:
    """Draft and label filters."""

    def test_draft_filter(self, compiler):
        result, jobs = compile_jobs(compiler, {"name": "PR Review", "on": {"pull_request": {"draft": False}}})

        assert result.if_condition == build_draft_filter_condition(False).render()
        assert jobs["task"]["if"] == result.if_condition

    def test_draft_filter_combined_with_if(self, compiler):
        result = compiler.compile({"name": "PR Review", "on": {"pull_request": {"draft": True}}, "if": "a"})
        assert result.if_condition == f"(a) && ({build_draft_filter_condition(True).render()})"

    def test_draft_must_be_boolean(self, compiler):
        with pytest.raises(WorkflowSpecError):
            compiler.compile({"name": "PR Review", "on": {"pull_request": {"draft": "yes"}}})

    def test_label_filter(self, compiler):
        result = compiler.compile({"name": "Labelled", "on": {"label": {"name": ["bug", "triage"]}}})
        assert result.if_condition == (
            "contains(github.event.issue.labels.*.name, 'bug') || "
            "contains(github.event.issue.labels.*.name, 'triage')"
        )

    def test_label_names_must_be_list(self, compiler):
        with pytest.raises(WorkflowSpecError):
            compiler.compile({"name": "Labelled", "on": {"label": {"name": "bug"}}})


class TestReactionJob:
    """on.reaction."""

    def test_reaction_job(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "React", "on": {"issues": None, "reaction": "eyes"}})
        job = jobs["add_reaction"]

        assert job["if"] == build_reaction_condition().render()
        assert job["permissions"] == {"issues": "write", "pull-requests": "write"}
        assert job["outputs"] == {"reaction_id": "${{ steps.react.outputs.reaction-id }}"}
        assert "needs" not in job

        step = step_named(job, "Add eyes reaction to the triggering item")
        assert step["id"] == "react"
        assert step["env"] == {"GITHUB_AW_REACTION": "eyes"}

    def test_reaction_needs_task(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "Bot", "on": {"command": {"name": "bot"}, "reaction": "rocket"}})
        job = jobs["add_reaction"]

        assert job["needs"] == "task"
        assert job["steps"][0]["env"]["GITHUB_AW_COMMAND"] == "bot"
        assert list(jobs)[:3] == ["task", "add_reaction", "bot"]


# =============================================================================
# Safe Outputs
# =============================================================================

class TestSafeOutputJobs:
    """One job per configured safe output."""

    @pytest.fixture
    def compiled(self, compiler, all_safe_outputs):
        return compile_jobs(compiler, {
            "name": "Agent",
            "on": {"workflow_dispatch": None},
            "safe-outputs": all_safe_outputs,
            "prompt": "Do things.",
        })

    def test_job_order(self, compiled):
        _, jobs = compiled
        assert list(jobs) == [
            "agent",
            "create_issue",
            "create_issue_comment",
            "create_pull_request",
            "add_labels",
            "update_issue",
            "push_to_branch",
            "missing_tool",
        ]

    def test_jobs_need_main(self, compiled):
        _, jobs = compiled
        for name, job in jobs.items():
            if name != "agent":
                assert job["needs"] == "agent"
                assert job["steps"][-1]["env"]["GITHUB_AW_AGENT_OUTPUT"] == "${{ needs.agent.outputs.output }}"

    def test_timeouts(self, compiled):
        _, jobs = compiled
        assert jobs["create_issue"]["timeout-minutes"] == 10
        assert jobs["missing_tool"]["timeout-minutes"] == 5

    def test_permissions(self, compiled):
        _, jobs = compiled
        assert jobs["create_issue"]["permissions"] == {"contents": "read", "issues": "write"}
        assert jobs["create_issue_comment"]["permissions"] == {
            "contents": "read", "issues": "write", "pull-requests": "write",
        }
        assert jobs["create_pull_request"]["permissions"] == {
            "contents": "write", "issues": "write", "pull-requests": "write",
        }
        assert jobs["push_to_branch"]["permissions"] == {"contents": "write", "pull-requests": "read"}
        assert jobs["missing_tool"]["permissions"] == {"contents": "read"}

    def test_guards(self, compiled):
        _, jobs = compiled
        assert "if" not in jobs["create_issue"]
        assert jobs["create_issue_comment"]["if"] == "github.event.issue.number || github.event.pull_request.number"
        assert jobs["add_labels"]["if"] == "github.event.issue.number || github.event.pull_request.number"
        assert jobs["update_issue"]["if"] == "github.event.issue.number"
        assert jobs["push_to_branch"]["if"] == "github.event.pull_request.number"
        assert jobs["missing_tool"]["if"] == "${{ always() }}"

    def test_outputs(self, compiled):
        _, jobs = compiled
        assert set(jobs["create_issue"]["outputs"]) == {"issue_number", "issue_url"}
        assert set(jobs["create_pull_request"]["outputs"]) == {"pull_request_number", "pull_request_url", "branch_name"}
        assert set(jobs["push_to_branch"]["outputs"]) == {"branch_name", "commit_sha", "push_url"}
        assert set(jobs["missing_tool"]["outputs"]) == {"tools_reported", "total_count"}

    def test_issue_env(self, compiled):
        _, jobs = compiled
        env = jobs["create_issue"]["steps"][-1]["env"]
        assert env["GITHUB_AW_ISSUE_TITLE_PREFIX"] == "[bot] "
        assert env["GITHUB_AW_ISSUE_LABELS"] == "automation,triage"

    def test_pull_request_steps(self, compiled):
        _, jobs = compiled
        steps = jobs["create_pull_request"]["steps"]

        assert steps[0]["with"] == {"name": "aw.patch", "path": "/tmp/"}
        assert steps[1]["with"] == {"fetch-depth": 0}
        assert steps[2]["env"]["GITHUB_AW_PR_DRAFT"] == "false"
        assert steps[2]["env"]["GITHUB_AW_WORKFLOW_ID"] == "agent"
        assert steps[2]["env"]["GITHUB_AW_BASE_BRANCH"] == "${{ github.ref_name }}"

    def test_label_env(self, compiled):
        _, jobs = compiled
        env = jobs["add_labels"]["steps"][-1]["env"]
        assert env["GITHUB_AW_LABELS_ALLOWED"] == "bug,enhancement"
        assert env["GITHUB_AW_LABELS_MAX_COUNT"] == "3"

    def test_update_env(self, compiled):
        _, jobs = compiled
        env = jobs["update_issue"]["steps"][-1]["env"]
        assert env["GITHUB_AW_UPDATE_TITLE"] == "true"
        assert env["GITHUB_AW_UPDATE_BODY"] == "false"
        assert env["GITHUB_AW_UPDATE_STATUS"] == "false"

    def test_push_env(self, compiled):
        _, jobs = compiled
        assert jobs["push_to_branch"]["steps"][-1]["env"]["GITHUB_AW_PUSH_BRANCH"] == "updates"

    def test_main_job_collects_output(self, compiled):
        _, jobs = compiled
        main = jobs["agent"]
        names = [step.get("name") for step in main["steps"]]

        assert main["outputs"] == {"output": "${{ steps.collect_output.outputs.output }}"}
        assert names.index("Setup agent output") < names.index("Create prompt")
        assert names.index("Collect agent output") > names.index("Execute Claude Code Action")
        assert "Upload git patch" in names

    def test_prompt_has_instructions(self, compiled):
        _, jobs = compiled
        step = step_named(jobs["agent"], "Create prompt")

        assert step["env"] == {"GITHUB_AW_SAFE_OUTPUTS": "${{ env.GITHUB_AW_SAFE_OUTPUTS }}"}
        assert '"type": "create-issue"' in step["run"]
        assert "Creating a Pull Request" in step["run"]

    def test_git_permissions_granted(self, compiled):
        result, _ = compiled
        assert "Bash(git commit:*)" in result.allowed_tools
        assert "Write" in result.allowed_tools.split(",")

    def test_topological_order(self, compiled):
        result, _ = compiled
        order = result.execution_order
        assert order[0] == "agent"
        assert sorted(order[1:]) == order[1:]


class TestSafeOutputGuards:
    """Target and command dependent guards."""

    def test_comment_any_target(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "A", "safe-outputs": {"add-issue-comment": {"target": "*"}}})
        job = jobs["create_issue_comment"]

        assert job["if"] == "always()"
        assert job["steps"][-1]["env"]["GITHUB_AW_COMMENT_TARGET"] == "*"

    def test_comment_with_command(self, compiler):
        command = build_command_only_condition("bot").render()
        _, jobs = compile_jobs(compiler, {"name": "A", "on": {"command": {"name": "bot"}}, "safe-outputs": {"add-issue-comment": None}})

        assert jobs["create_issue_comment"]["if"] == (
            f"({command}) && (github.event.issue.number || github.event.pull_request.number)"
        )

    def test_comment_any_target_with_command(self, compiler):
        _, jobs = compile_jobs(compiler, {
            "name": "A",
            "on": {"command": {"name": "bot"}},
            "safe-outputs": {"add-issue-comment": {"target": "*"}},
        })
        assert jobs["create_issue_comment"]["if"] == build_command_only_condition("bot").render()

    def test_issue_with_command(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "A", "on": {"command": {"name": "bot"}}, "safe-outputs": {"create-issue": None}})
        assert jobs["create_issue"]["if"] == build_command_only_condition("bot").render()

    def test_update_issue_explicit_target(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "A", "safe-outputs": {"update-issue": {"target": 7}}})
        job = jobs["update_issue"]

        assert job["if"] == "always()"
        assert job["steps"][-1]["env"]["GITHUB_AW_UPDATE_TARGET"] == "7"

    def test_push_any_target(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "A", "safe-outputs": {"push-to-branch": {"target": "*"}}})
        assert jobs["push_to_branch"]["if"] == "always()"

    def test_empty_safe_outputs(self, compiler):
        result, jobs = compile_jobs(compiler, {"name": "A", "safe-outputs": None})

        assert list(jobs) == ["a"]
        assert jobs["a"]["outputs"] == {"output": "${{ steps.collect_output.outputs.output }}"}
        assert "Write" in result.allowed_tools.split(",")


# =============================================================================
# Custom Jobs
# =============================================================================

class TestCustomJobs:
    """Jobs from the `jobs:` section."""

    def test_custom_jobs_sorted_and_wired(self, compiler):
        result, jobs = compile_jobs(compiler, {
            "name": "Build",
            "jobs": {
                "notify": {"needs": ["build", "lint"], "steps": [{"run": "echo done"}]},
                "lint": {"runs-on": "ubuntu-22.04", "steps": [{"run": "make lint"}]},
            },
        })

        assert list(jobs)[-2:] == ["lint", "notify"]
        assert jobs["lint"]["runs-on"] == "ubuntu-22.04"
        assert jobs["notify"]["needs"] == ["build", "lint"]
        assert result.execution_order == ["build", "lint", "notify"]

    def test_unknown_dependency(self, compiler):
        with pytest.raises(UnknownDependencyError):
            compiler.compile({"name": "Build", "jobs": {"notify": {"needs": "missing"}}})

    def test_cycle(self, compiler):
        with pytest.raises(CycleDetectedError):
            compiler.compile({
                "name": "Build",
                "jobs": {"a": {"needs": "b"}, "b": {"needs": "a"}},
            })


# =============================================================================
# Engines
# =============================================================================

class TestEngineValidation:
    """Engine selection and capability checks."""

    def test_default_engine(self, compiler):
        assert compiler.compile({"name": "A"}).engine == "claude"

    def test_unknown_engine(self, compiler):
        with pytest.raises(UnknownEngineError) as exc:
            compiler.compile({"name": "A", "engine": "gpt-pilot"})

        assert str(exc.value) == "invalid engine: gpt-pilot. Supported engines: claude, codex"

    def test_engine_prefix(self, compiler):
        assert compiler.compile({"name": "A", "engine": "codex-experimental"}).engine == "codex"

    def test_http_mcp_on_codex(self, compiler):
        with pytest.raises(WorkflowSpecError) as exc:
            compiler.compile({
                "name": "A",
                "engine": "codex",
                "tools": {"remote": {"mcp": {"type": "http", "url": "https://mcp.example.com"}}},
            })

        assert str(exc.value) == (
            "tool 'remote' uses HTTP transport which is not supported by engine 'codex' "
            "(only stdio transport is supported)"
        )

    def test_http_mcp_on_claude(self, compiler):
        result = compiler.compile({
            "name": "A",
            "tools": {"remote": {"mcp": {"type": "http", "url": "https://mcp.example.com"}, "allowed": ["*"]}},
        })
        assert "mcp__remote" in result.allowed_tools.split(",")

    def test_max_turns_on_codex(self, compiler):
        with pytest.raises(WorkflowSpecError) as exc:
            compiler.compile({"name": "A", "engine": {"id": "codex", "max-turns": 5}})

        assert str(exc.value) == "max-turns not supported: engine 'codex' does not support the max-turns feature"

    def test_max_turns_on_claude(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "A", "engine": {"id": "claude", "max-turns": 5}})
        step = step_named(jobs["a"], "Execute Claude Code Action")

        assert step["with"]["max_turns"] == "5"
        assert step["env"]["GITHUB_AW_MAX_TURNS"] == "5"

    def test_engine_native_tools_rejected(self, compiler):
        with pytest.raises(WorkflowSpecError):
            compiler.compile({"name": "A", "tools": {"claude": {"allowed": {"Read": None}}}})

    def test_codex_steps(self, compiler):
        _, jobs = compile_jobs(compiler, {"name": "A", "engine": "codex"})
        names = [step.get("name") for step in jobs["a"]["steps"]]

        assert "Install Codex" in names
        assert "Run Codex" in names
        assert "config.toml" in step_named(jobs["a"], "Setup MCPs")["run"]

    def test_invalid_mcp_json_rejected(self, compiler):
        with pytest.raises(WorkflowSpecError) as exc:
            compiler.compile({"name": "A", "tools": {"notion": {"mcp": "{not json", "allowed": ["*"]}}})

        assert "tool 'notion' has invalid JSON in mcp configuration" in str(exc.value)


# =============================================================================
# Logging
# =============================================================================

class TestLogging:
    """Compile logging."""

    @pytest.fixture
    def order_calls(self, monkeypatch):
        calls = []
        original = JobGraph.get_topological_order

        def counting(graph):
            calls.append(graph)
            return original(graph)

        monkeypatch.setattr(JobGraph, "get_topological_order", counting)
        return calls

    def test_order_not_computed_without_debug(self, compiler, order_calls, caplog):
        caplog.set_level(logging.INFO, logger="gantry.compiler.workflow_compiler")
        compiler.compile({"name": "A"})

        assert order_calls == []
        assert "Compiled workflow 'A' into 1 jobs" in caplog.text

    def test_order_logged_at_debug(self, compiler, order_calls, caplog):
        caplog.set_level(logging.DEBUG, logger="gantry.compiler.workflow_compiler")
        compiler.compile({"name": "A"})

        assert len(order_calls) == 1
        assert "Job order: ['a']" in caplog.text
