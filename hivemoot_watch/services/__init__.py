"""Service layer for GitHub access, state persistence and acknowledgments."""

from .ack_service import AckResult, AckService
from .github_service import GitHubService
from .state_service import (
    append_ack,
    journal_path_for,
    load_state,
    merge_ack_journal,
    save_state,
)

__all__ = [
    "AckResult",
    "AckService",
    "GitHubService",
    "append_ack",
    "journal_path_for",
    "load_state",
    "merge_ack_journal",
    "save_state",
]
