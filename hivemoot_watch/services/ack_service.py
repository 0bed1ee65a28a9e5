"""Service for acknowledging processed mention events."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..models import split_composite_key
from .github_service import GitHubService
from .state_service import append_ack

logger = logging.getLogger(__name__)


@dataclass
class AckResult:
    """Outcome of an acknowledgment.

    ``journaled`` is the only field that decides success; ``marked_read``
    reports whether the upstream notification was also marked read.
    """

    key: str
    thread_id: str
    journaled: bool
    marked_read: bool
    error: Optional[str] = None


class AckService:
    """Records acknowledgments in the ack journal and marks threads read."""

    def __init__(self, github_service: GitHubService, journal_path: str | Path):
        self.github_service = github_service
        self.journal_path = Path(journal_path)

    async def ack(self, key: str) -> AckResult:
        """
        Acknowledge an event by its composite key.

        The journal write is the critical path: once it succeeds the event
        is never re-emitted by the watcher. Marking the thread read on
        GitHub is best effort and its failure is only logged.

        Args:
            key: Composite key in the form ``threadId:updatedAt``.

        Returns:
            AckResult describing both steps.

        Raises:
            WatchError: If the key is malformed (before any I/O).
            OSError: If the journal can't be written.
        """
        thread_id, _ = split_composite_key(key)

        append_ack(self.journal_path, key)
        logger.debug("Recorded ack %s in %s", key, self.journal_path)

        try:
            await self.github_service.mark_notification_read(thread_id)
        except Exception as e:
            logger.warning("Warning: could not mark thread %s as read on GitHub: %s", thread_id, e)
            return AckResult(
                key=key,
                thread_id=thread_id,
                journaled=True,
                marked_read=False,
                error=str(e),
            )

        logger.info("Acknowledged %s", key)
        return AckResult(key=key, thread_id=thread_id, journaled=True, marked_read=True)
