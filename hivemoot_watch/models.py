"""Data model for notifications, mention events and watch state."""

from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorCode, WatchError

SubjectType = Literal["Issue", "PullRequest"]


def composite_key(thread_id: str, updated_at: str) -> str:
    """Build the dedup/ack key for a notification.

    GitHub reuses thread IDs across unrelated activity, so the key includes
    the update timestamp to tell new activity apart from old.
    """
    return f"{thread_id}:{updated_at}"


def split_composite_key(key: str) -> tuple[str, str]:
    """Split a ``threadId:updatedAt`` key on its first colon.

    Raises:
        WatchError: If the key has no colon after at least one character.
    """
    colon_index = key.find(":")
    if colon_index < 1:
        raise WatchError(
            f'Invalid key format: expected "threadId:updatedAt", got "{key}"',
            ErrorCode.INVALID_KEY,
            1,
        )
    return key[:colon_index], key[colon_index + 1 :]


class NotificationSubject(BaseModel):
    """The issue or pull request a notification refers to."""

    url: str
    type: str
    title: str
    latest_comment_url: Optional[str] = None


class NotificationRepository(BaseModel):
    full_name: str


class RawNotification(BaseModel):
    """A notification thread as returned by the GitHub REST API."""

    model_config = ConfigDict(frozen=True)

    id: str
    unread: bool = True
    reason: str
    updated_at: str
    subject: NotificationSubject
    repository: NotificationRepository

    @property
    def thread_id(self) -> str:
        return self.id

    @property
    def composite_key(self) -> str:
        return composite_key(self.id, self.updated_at)


@dataclass
class CommentDetail:
    """The comment that triggered a notification."""

    body: str
    author: str
    html_url: str


class MentionEvent(BaseModel):
    """Actionable event written to the output stream, one JSON object per line."""

    model_config = ConfigDict(populate_by_name=True)

    agent: str
    repo: str
    number: int
    type: str
    title: str
    author: str
    body: str
    url: str
    thread_id: str = Field(alias="threadId")
    timestamp: str

    @property
    def composite_key(self) -> str:
        return composite_key(self.thread_id, self.timestamp)

    def to_json_line(self) -> str:
        return self.model_dump_json(by_alias=True) + "\n"


class WatchState(BaseModel):
    """Persisted poll progress.

    ``processed_thread_ids`` is an ordered set of composite keys. It only ever
    grows; ``with_processed`` and ``merged`` return new values and leave the
    original untouched.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    last_checked: Optional[str] = Field(default=None, alias="lastChecked")
    processed_thread_ids: tuple[str, ...] = Field(default=(), alias="processedThreadIds")

    def is_processed(self, key: str) -> bool:
        return key in self.processed_thread_ids

    def with_processed(self, key: str) -> "WatchState":
        return self.merged([key])

    def merged(self, keys: Iterable[str]) -> "WatchState":
        seen = set(self.processed_thread_ids)
        additions = []
        for key in keys:
            if key and key not in seen:
                seen.add(key)
                additions.append(key)
        if not additions:
            return self
        return self.model_copy(
            update={"processed_thread_ids": self.processed_thread_ids + tuple(additions)}
        )

    def with_last_checked(self, timestamp: str) -> "WatchState":
        return self.model_copy(update={"last_checked": timestamp})
