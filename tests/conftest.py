"""Shared test fixtures.

Provides an in-memory GitHub service and notification factories so the
watcher and ack tests run without network access.
"""

import io
from typing import Callable, Optional

import pytest

from hivemoot_watch.models import CommentDetail, RawNotification

COMMENT_URL = "https://api.github.com/repos/owner/repo/issues/comments/999"
AGENT = "hive-bot"


def make_notification(
    thread_id: str = "1001",
    reason: str = "mention",
    updated_at: str = "2026-02-01T11:30:00.000Z",
    subject_url: str = "https://api.github.com/repos/owner/repo/issues/42",
    subject_type: str = "Issue",
    title: str = "Test issue",
    comment_url: Optional[str] = COMMENT_URL,
    unread: bool = True,
) -> RawNotification:
    return RawNotification.model_validate(
        {
            "id": thread_id,
            "unread": unread,
            "reason": reason,
            "updated_at": updated_at,
            "subject": {
                "url": subject_url,
                "type": subject_type,
                "title": title,
                "latest_comment_url": comment_url,
            },
            "repository": {"full_name": "owner/repo"},
        }
    )


def make_comment(body: str = f"@{AGENT} please take a look", author: str = "alice") -> CommentDetail:
    return CommentDetail(
        body=body,
        author=author,
        html_url="https://github.com/owner/repo/issues/42#issuecomment-999",
    )


class FakeGitHubService:
    """In-memory stand-in for GitHubService that records its calls."""

    def __init__(self, agent: str = AGENT):
        self.agent = agent
        self.notifications: list[RawNotification] = []
        self.comments: dict[str, CommentDetail] = {}
        self.fetch_error: Optional[Exception] = None
        self.mark_read_error: Optional[Exception] = None
        self.on_fetch: Optional[Callable[[], None]] = None

        self.fetch_calls: list[tuple[str, list[str]]] = []
        self.comment_calls: list[str] = []
        self.marked_read: list[str] = []

    async def get_current_user(self) -> str:
        return self.agent

    async def fetch_mention_notifications(self, repo: str, reasons: list[str]) -> list[RawNotification]:
        self.fetch_calls.append((repo, list(reasons)))
        if self.on_fetch:
            self.on_fetch()
        if self.fetch_error:
            raise self.fetch_error
        return list(self.notifications)

    async def fetch_comment(self, comment_url: Optional[str]) -> Optional[CommentDetail]:
        self.comment_calls.append(comment_url)
        return self.comments.get(comment_url)

    async def mark_notification_read(self, thread_id: str) -> None:
        if self.mark_read_error:
            raise self.mark_read_error
        self.marked_read.append(thread_id)


@pytest.fixture
def fake_github():
    return FakeGitHubService()


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "watch-state.json"


@pytest.fixture
def output():
    return io.StringIO()
