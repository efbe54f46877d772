"""
Gantry Scripts

github-script bodies inlined into generated steps. Each script lives
next to this module as a .cjs file and is read once per process.
"""

from functools import lru_cache
from importlib import resources


SCRIPT_NAMES = [
    "add_labels",
    "add_reaction",
    "check_team_member",
    "collect_output",
    "compute_text",
    "create_comment",
    "create_issue",
    "create_pull_request",
    "missing_tool",
    "push_to_branch",
    "setup_agent_output",
    "update_issue",
]


@lru_cache(maxsize=None)
def load_script(name: str) -> str:
    """Return the script text, raising KeyError for an unknown script."""
    if name not in SCRIPT_NAMES:
        raise KeyError(f"Unknown script: {name}")
    return resources.files(__name__).joinpath(f"{name}.cjs").read_text(encoding="utf-8")
