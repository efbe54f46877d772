"""
Gantry Condition Expressions

Programmatic AST for GitHub Actions expressions.
Nodes are built in code and rendered to expression text; nothing here
parses or evaluates expressions.
"""

from __future__ import annotations
from typing import List, Optional, Sequence
from dataclasses import dataclass, field
from abc import ABC, abstractmethod


# Events that carry a body a command can be typed into
COMMAND_EVENTS = ["issues", "issue_comment", "pull_request", "pull_request_review_comment"]

# Events that the reaction job reacts to
REACTION_EVENTS = [
    "issues",
    "pull_request",
    "issue_comment",
    "pull_request_comment",
    "pull_request_review_comment",
]

# Body properties scanned for a command mention
COMMAND_BODY_PROPERTIES = [
    "github.event.issue.body",
    "github.event.comment.body",
    "github.event.pull_request.body",
]


# =============================================================================
# Nodes
# =============================================================================

class ConditionNode(ABC):
    """A node in a condition expression tree."""

    @abstractmethod
    def render(self) -> str:
        """Render the node as expression text."""

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class ExpressionNode(ConditionNode):
    """
    Leaf holding raw expression text.

    The description is only emitted by multiline disjunctions.
    """
    expression: str
    description: str = ""

    def render(self) -> str:
        return self.expression


@dataclass(frozen=True)
class AndNode(ConditionNode):
    left: ConditionNode
    right: ConditionNode

    def render(self) -> str:
        return f"({self.left.render()}) && ({self.right.render()})"


@dataclass(frozen=True)
class OrNode(ConditionNode):
    left: ConditionNode
    right: ConditionNode

    def render(self) -> str:
        return f"({self.left.render()}) || ({self.right.render()})"


@dataclass(frozen=True)
class NotNode(ConditionNode):
    child: ConditionNode

    def render(self) -> str:
        return f"!({self.child.render()})"


@dataclass(frozen=True)
class ComparisonNode(ConditionNode):
    """Comparison such as ==, !=, <, >, <=, >=."""
    left: ConditionNode
    operator: str
    right: ConditionNode

    def render(self) -> str:
        return f"{self.left.render()} {self.operator} {self.right.render()}"


@dataclass(frozen=True)
class FunctionCallNode(ConditionNode):
    """Function call like startsWith(github.ref, 'refs/tags/')."""
    function_name: str
    arguments: Sequence[ConditionNode] = field(default_factory=tuple)

    def render(self) -> str:
        args = ", ".join(arg.render() for arg in self.arguments)
        return f"{self.function_name}({args})"


@dataclass(frozen=True)
class ContainsNode(ConditionNode):
    """Array membership check, shorthand for contains(array, value)."""
    array: ConditionNode
    value: ConditionNode

    def render(self) -> str:
        return FunctionCallNode("contains", (self.array, self.value)).render()


@dataclass(frozen=True)
class TernaryNode(ConditionNode):
    condition: ConditionNode
    true_value: ConditionNode
    false_value: ConditionNode

    def render(self) -> str:
        return f"{self.condition.render()} ? {self.true_value.render()} : {self.false_value.render()}"


@dataclass(frozen=True)
class PropertyAccessNode(ConditionNode):
    """Context property such as github.event.action or github.event.issue.labels.*.name."""
    property_path: str

    def render(self) -> str:
        return self.property_path


@dataclass(frozen=True)
class StringLiteralNode(ConditionNode):
    value: str

    def render(self) -> str:
        return f"'{self.value}'"


@dataclass(frozen=True)
class BooleanLiteralNode(ConditionNode):
    value: bool

    def render(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class NumberLiteralNode(ConditionNode):
    value: str

    def render(self) -> str:
        return self.value


@dataclass(frozen=True)
class DisjunctionNode(ConditionNode):
    """
    N-ary OR without nested parentheses.

    With multiline enabled each term is rendered on its own line, preceded
    by a "# description" comment when the term is an ExpressionNode
    carrying one.
    """
    terms: Sequence[ConditionNode] = field(default_factory=tuple)
    multiline: bool = False

    def render(self) -> str:
        if not self.terms:
            return ""
        if len(self.terms) == 1:
            return self.terms[0].render()
        if self.multiline:
            return self.render_multiline()
        return " || ".join(term.render() for term in self.terms)

    def render_multiline(self) -> str:
        if not self.terms:
            return ""
        if len(self.terms) == 1:
            return self.terms[0].render()

        lines: List[str] = []
        last = len(self.terms) - 1
        for i, term in enumerate(self.terms):
            line = ""
            if isinstance(term, ExpressionNode) and term.description:
                line = f"# {term.description}\n"
            line += term.render()
            if i < last:
                line += " ||"
            lines.append(line)

        return "\n".join(lines)


# =============================================================================
# Builders
# =============================================================================

def build_property_access(path: str) -> PropertyAccessNode:
    return PropertyAccessNode(path)


def build_string_literal(value: str) -> StringLiteralNode:
    return StringLiteralNode(value)


def build_boolean_literal(value: bool) -> BooleanLiteralNode:
    return BooleanLiteralNode(value)


def build_number_literal(value: str) -> NumberLiteralNode:
    return NumberLiteralNode(value)


def build_comparison(left: ConditionNode, operator: str, right: ConditionNode) -> ComparisonNode:
    return ComparisonNode(left, operator, right)


def build_equals(left: ConditionNode, right: ConditionNode) -> ComparisonNode:
    return build_comparison(left, "==", right)


def build_not_equals(left: ConditionNode, right: ConditionNode) -> ComparisonNode:
    return build_comparison(left, "!=", right)


def build_contains(array: ConditionNode, value: ConditionNode) -> ContainsNode:
    return ContainsNode(array, value)


def build_function_call(function_name: str, *args: ConditionNode) -> FunctionCallNode:
    return FunctionCallNode(function_name, tuple(args))


def build_ternary(
    condition: ConditionNode,
    true_value: ConditionNode,
    false_value: ConditionNode,
) -> TernaryNode:
    return TernaryNode(condition, true_value, false_value)


def build_label_contains(label_name: str) -> ContainsNode:
    """Check that the triggering issue/PR carries a label."""
    return build_contains(
        build_property_access("github.event.issue.labels.*.name"),
        build_string_literal(label_name),
    )


def build_action_equals(action: str) -> ComparisonNode:
    return build_equals(
        build_property_access("github.event.action"),
        build_string_literal(action),
    )


def build_event_type_equals(event_type: str) -> ComparisonNode:
    return build_equals(
        build_property_access("github.event_name"),
        build_string_literal(event_type),
    )


def build_ref_starts_with(prefix: str) -> FunctionCallNode:
    return build_function_call(
        "startsWith",
        build_property_access("github.ref"),
        build_string_literal(prefix),
    )


def build_expression_with_description(expression: str, description: str) -> ExpressionNode:
    return ExpressionNode(expression, description)


def build_multiline_disjunction(*terms: ConditionNode) -> DisjunctionNode:
    return DisjunctionNode(tuple(terms), multiline=True)


# =============================================================================
# Composite Conditions
# =============================================================================

def build_condition_tree(existing_condition: str, addition: str) -> ConditionNode:
    """
    Merge an already rendered condition with a newly required one.

    Neither side is dropped: an empty existing condition yields the
    addition alone, otherwise both are ANDed.
    """
    addition_node = ExpressionNode(addition)

    if not existing_condition:
        return addition_node

    return AndNode(ExpressionNode(existing_condition), addition_node)


def build_reaction_condition() -> DisjunctionNode:
    """Condition for the add_reaction job: the event carries a reactable item."""
    return DisjunctionNode(tuple(build_event_type_equals(e) for e in REACTION_EVENTS))


def _command_body_checks(command_name: str) -> List[ContainsNode]:
    command_text = f"/{command_name}"
    return [
        build_contains(build_property_access(prop), build_string_literal(command_text))
        for prop in COMMAND_BODY_PROPERTIES
    ]


def build_command_only_condition(command_name: str) -> DisjunctionNode:
    """
    True only when the command is mentioned.

    Unlike build_event_aware_command_condition, non-comment events never
    pass this check.
    """
    return DisjunctionNode(tuple(_command_body_checks(command_name)))


def build_event_aware_command_condition(command_name: str, has_other_events: bool) -> ConditionNode:
    """
    Command check applied only to comment-bearing events.

    When other triggers were merged in (schedule, push, ...), those events
    bypass the command check instead of being blocked by it.
    """
    issue_check, comment_check, pr_check = _command_body_checks(command_name)
    command_condition = OrNode(OrNode(issue_check, comment_check), pr_check)

    if not has_other_events:
        return command_condition

    comment_events = DisjunctionNode(tuple(build_event_type_equals(e) for e in COMMAND_EVENTS))

    return OrNode(
        AndNode(comment_events, command_condition),
        NotNode(comment_events),
    )


def build_draft_filter_condition(draft: bool) -> OrNode:
    """Let non-PR events through; PR events must match the requested draft state."""
    return OrNode(
        build_not_equals(build_property_access("github.event_name"), build_string_literal("pull_request")),
        build_equals(build_property_access("github.event.pull_request.draft"), build_boolean_literal(draft)),
    )


def build_label_filter_condition(label_names: Sequence[str]) -> Optional[ConditionNode]:
    """Match any of the given label names, or None when there are none."""
    conditions = [build_label_contains(name) for name in label_names]
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return DisjunctionNode(tuple(conditions))
