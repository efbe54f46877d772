"""
Gantry Condition Expression Tests

Validates:
- Node rendering and parenthesization
- Disjunctions (flat and multiline)
- Composite builders used by the workflow compiler
"""

import pytest

from gantry.compiler.expressions import (
    AndNode,
    DisjunctionNode,
    ExpressionNode,
    NotNode,
    OrNode,
    build_boolean_literal,
    build_command_only_condition,
    build_condition_tree,
    build_contains,
    build_draft_filter_condition,
    build_equals,
    build_event_aware_command_condition,
    build_event_type_equals,
    build_function_call,
    build_label_contains,
    build_label_filter_condition,
    build_multiline_disjunction,
    build_expression_with_description,
    build_number_literal,
    build_property_access,
    build_reaction_condition,
    build_ref_starts_with,
    build_string_literal,
    build_ternary,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def a():
    return ExpressionNode("a")


@pytest.fixture
def b():
    return ExpressionNode("b")


@pytest.fixture
def c():
    return ExpressionNode("c")


# =============================================================================
# Node Rendering
# =============================================================================

class TestNodeRendering:
    """Each node renders to expression text."""

    def test_expression_renders_raw_text(self):
        assert ExpressionNode("github.event_name == 'push'").render() == "github.event_name == 'push'"

    def test_and_wraps_both_sides(self, a, b):
        assert AndNode(a, b).render() == "(a) && (b)"

    def test_or_wraps_both_sides(self, a, b):
        assert OrNode(a, b).render() == "(a) || (b)"

    def test_not_wraps_child(self, a):
        assert NotNode(a).render() == "!(a)"

    def test_nested_and_or(self, a, b, c):
        assert AndNode(a, OrNode(b, c)).render() == "(a) && ((b) || (c))"

    def test_str_matches_render(self, a, b):
        node = AndNode(a, b)
        assert str(node) == node.render()

    def test_literals(self):
        assert build_string_literal("push").render() == "'push'"
        assert build_boolean_literal(True).render() == "true"
        assert build_boolean_literal(False).render() == "false"
        assert build_number_literal("42").render() == "42"

    def test_comparison(self):
        node = build_equals(build_property_access("github.event.action"), build_string_literal("opened"))
        assert node.render() == "github.event.action == 'opened'"

    def test_function_call(self):
        node = build_function_call("always")
        assert node.render() == "always()"

    def test_contains(self):
        node = build_contains(build_property_access("github.event.issue.labels.*.name"), build_string_literal("bug"))
        assert node.render() == "contains(github.event.issue.labels.*.name, 'bug')"

    def test_ternary(self):
        node = build_ternary(
            build_property_access("github.event.pull_request.draft"),
            build_string_literal("draft"),
            build_string_literal("ready"),
        )
        assert node.render() == "github.event.pull_request.draft ? 'draft' : 'ready'"

    def test_ref_starts_with(self):
        assert build_ref_starts_with("refs/tags/").render() == "startsWith(github.ref, 'refs/tags/')"

    def test_nodes_are_immutable(self, a, b):
        node = AndNode(a, b)
        with pytest.raises(Exception):
            node.left = b


# =============================================================================
# Disjunctions
# =============================================================================

class TestDisjunction:
    """N-ary OR rendering."""

    def test_empty_renders_empty(self):
        assert DisjunctionNode(()).render() == ""

    def test_single_term_renders_term(self, a):
        assert DisjunctionNode((a,)).render() == "a"

    def test_flat_join(self, a, b, c):
        assert DisjunctionNode((a, b, c)).render() == "a || b || c"

    def test_multiline_with_descriptions(self):
        node = build_multiline_disjunction(
            build_expression_with_description("a", "first"),
            ExpressionNode("b"),
        )
        assert node.render() == "# first\na ||\nb"


# =============================================================================
# Composite Builders
# =============================================================================

class TestConditionTree:
    """Merging an existing condition with a new one."""

    def test_empty_existing_yields_addition(self):
        assert build_condition_tree("", "b").render() == "b"

    def test_existing_and_addition_are_anded(self):
        assert build_condition_tree("a", "b").render() == "(a) && (b)"

    def test_nothing_is_dropped(self):
        rendered = build_condition_tree("x == 1", "y == 2").render()
        assert "x == 1" in rendered
        assert "y == 2" in rendered


class TestCommandConditions:
    """Command mention checks."""

    def test_command_only_checks_all_bodies(self):
        rendered = build_command_only_condition("bot").render()
        assert rendered == (
            "contains(github.event.issue.body, '/bot') || "
            "contains(github.event.comment.body, '/bot') || "
            "contains(github.event.pull_request.body, '/bot')"
        )

    def test_event_aware_without_other_events(self):
        rendered = build_event_aware_command_condition("bot", has_other_events=False).render()
        assert rendered == (
            "((contains(github.event.issue.body, '/bot')) || "
            "(contains(github.event.comment.body, '/bot'))) || "
            "(contains(github.event.pull_request.body, '/bot'))"
        )

    def test_event_aware_with_other_events_lets_them_through(self):
        node = build_event_aware_command_condition("bot", has_other_events=True)
        rendered = node.render()

        assert isinstance(node, OrNode)
        assert isinstance(node.right, NotNode)
        assert "github.event_name == 'issues'" in rendered
        assert "github.event_name == 'pull_request_review_comment'" in rendered
        assert rendered.startswith("((github.event_name == 'issues'")


class TestFilterConditions:
    """Draft, label and reaction conditions."""

    def test_draft_filter(self):
        assert build_draft_filter_condition(False).render() == (
            "(github.event_name != 'pull_request') || (github.event.pull_request.draft == false)"
        )

    def test_label_filter_single(self):
        assert build_label_filter_condition(["bug"]).render() == build_label_contains("bug").render()

    def test_label_filter_multiple(self):
        rendered = build_label_filter_condition(["bug", "triage"]).render()
        assert rendered == (
            "contains(github.event.issue.labels.*.name, 'bug') || "
            "contains(github.event.issue.labels.*.name, 'triage')"
        )

    def test_label_filter_empty(self):
        assert build_label_filter_condition([]) is None

    def test_reaction_condition_covers_comment_events(self):
        rendered = build_reaction_condition().render()
        assert rendered.split(" || ") == [
            build_event_type_equals(event).render()
            for event in [
                "issues",
                "pull_request",
                "issue_comment",
                "pull_request_comment",
                "pull_request_review_comment",
            ]
        ]
