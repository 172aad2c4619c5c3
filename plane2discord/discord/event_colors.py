"""Discord embed colors and workflow-state recoloring rules."""

from dataclasses import dataclass

# Event type colors (hex values)
INFO_COLOR = 0x3498DB  # Blue
COMMENT_COLOR = 0x9B59B6  # Purple
ALERT_COLOR = 0xFF4444  # Red
SUCCESS_COLOR = 0x8EDA8E  # Green
WARNING_COLOR = 0xFFD700  # Yellow


@dataclass(frozen=True)
class StateColorRule:
    """Recolor an "updated" notification when the state moves to a name.

    Attributes:
        state_names: Lowercased workflow state names that trigger the rule
        color: Embed color to use
        notice: Title notice replacing the default, or None to keep it
    """

    state_names: frozenset[str]
    color: int
    notice: str | None = None

    def matches(self, state_name: object) -> bool:
        return str(state_name).strip().lower() in self.state_names


def build_state_rules(
    completed_states: list[str], in_progress_states: list[str]
) -> tuple[StateColorRule, ...]:
    """Build the rule table from configured state names (first match wins)."""
    return (
        StateColorRule(
            state_names=frozenset(name.lower() for name in completed_states),
            color=SUCCESS_COLOR,
            notice="Issue Completed",
        ),
        StateColorRule(
            state_names=frozenset(name.lower() for name in in_progress_states),
            color=WARNING_COLOR,
        ),
    )


DEFAULT_STATE_RULES = build_state_rules(["done", "completed"], ["in-progress", "in progress"])
