"""Mention verification and event building."""

import re
from typing import Optional

from .models import CommentDetail, MentionEvent, RawNotification

SUBJECT_NUMBER_PATTERN = re.compile(r"/(\d+)$")


def is_agent_mentioned(body: Optional[str], agent: str) -> bool:
    """
    Check whether text contains an @mention of the given login.

    Case-insensitive and boundary-safe on both sides:
    - Left: rejects email local parts (``foo@agent``)
    - Right: rejects longer usernames (``@agent-extra``)

    Args:
        body: Comment text (may be empty or None).
        agent: GitHub login to look for.

    Returns:
        True if the agent is mentioned.

    Examples:
        >>> is_agent_mentioned("Hey @Hive-Bot, take a look", "hive-bot")
        True
        >>> is_agent_mentioned("ping @hive-bot-2", "hive-bot")
        False
    """
    if not body or not agent:
        return False

    pattern = rf"(?<![A-Za-z0-9._+-])@{re.escape(agent)}(?![A-Za-z0-9-])"
    return re.search(pattern, body, re.IGNORECASE) is not None


def parse_subject_number(url: Optional[str]) -> Optional[int]:
    """Extract the issue/PR number from a subject API URL (last path segment)."""
    if not url:
        return None
    match = SUBJECT_NUMBER_PATTERN.search(url)
    return int(match.group(1)) if match else None


def build_mention_event(
    notification: RawNotification,
    comment: Optional[CommentDetail],
    agent: str,
) -> Optional[MentionEvent]:
    """
    Build a MentionEvent from a notification and the comment that triggered it.

    Without a comment (mention in the issue/PR body itself) the author
    defaults to "unknown" and body/url are left empty.

    Returns:
        The event, or None if the subject number can't be parsed.
    """
    number = parse_subject_number(notification.subject.url)
    if number is None:
        return None

    return MentionEvent(
        agent=agent,
        repo=notification.repository.full_name,
        number=number,
        type=notification.subject.type,
        title=notification.subject.title,
        author=comment.author if comment else "unknown",
        body=comment.body if comment else "",
        url=comment.html_url if comment else "",
        thread_id=notification.thread_id,
        timestamp=notification.updated_at,
    )
