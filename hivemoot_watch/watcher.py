"""Poll loop that turns GitHub notifications into mention events."""

import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, TextIO

from .errors import ErrorCode, WatchError
from .mentions import build_mention_event, is_agent_mentioned
from .models import MentionEvent, RawNotification, WatchState
from .services.github_service import GitHubService
from .services.state_service import journal_path_for, load_state, merge_ack_journal, save_state

logger = logging.getLogger(__name__)


class WatcherState(Enum):
    """Poll loop states."""

    IDLE = "idle"
    FETCHING = "fetching"
    PROCESSING = "processing"
    PERSISTING = "persisting"
    SLEEPING = "sleeping"
    STOPPING = "stopping"


class GateOutcome(Enum):
    """What the gating pipeline decided for one notification."""

    DUPLICATE = "duplicate"
    COMMENT_UNAVAILABLE = "comment_unavailable"
    STALE_MENTION = "stale_mention"
    UNPARSEABLE = "unparseable"
    EMITTED = "emitted"


@dataclass
class GateResult:
    outcome: GateOutcome
    event: Optional[MentionEvent] = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Format as ISO 8601 UTC with millisecond precision (``...T11:30:00.000Z``)."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Watcher:
    """Polls a repository's notifications and emits mention events."""

    def __init__(
        self,
        github_service: GitHubService,
        repo: str,
        agent: str,
        state_file: str | Path,
        reasons: Optional[list[str]] = None,
        poll_interval: float = 300,
        output: Optional[TextIO] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.github_service = github_service
        self.repo = repo
        self.agent = agent
        self.state_file = Path(state_file)
        self.journal_path = journal_path_for(state_file)
        self.reasons = reasons or ["mention"]
        self.poll_interval = poll_interval
        self.output = output if output is not None else sys.stdout
        self.clock = clock
        self.state = WatcherState.IDLE

    def _transition(self, state: WatcherState) -> None:
        logger.debug("Watcher %s -> %s", self.state.value, state.value)
        self.state = state

    def emit(self, event: MentionEvent) -> None:
        """Write one event as a JSON line and flush so consumers see it immediately."""
        self.output.write(event.to_json_line())
        self.output.flush()

    async def process_notification(
        self, notification: RawNotification, state: WatchState
    ) -> GateResult:
        """Run one notification through the gating pipeline.

        Emitting does not mark the notification processed; only an ack
        (through the journal) does. The caller is responsible for marking
        STALE_MENTION keys processed.

        Args:
            notification: Raw notification from GitHub.
            state: Current watch state (not modified).

        Returns:
            GateResult with the outcome and, when emitted, the event.
        """
        key = notification.composite_key
        if state.is_processed(key):
            logger.debug("Skipping already processed notification %s", key)
            return GateResult(GateOutcome.DUPLICATE)

        comment_url = notification.subject.latest_comment_url
        comment = await self.github_service.fetch_comment(comment_url) if comment_url else None

        # A URL that fails to load is transient; no URL at all means the
        # mention lives in the issue/PR body, which is handled below.
        if comment is None and comment_url:
            logger.info("Skipping %s: comment fetch failed, will retry", notification.thread_id)
            return GateResult(GateOutcome.COMMENT_UNAVAILABLE)

        # GitHub keeps reason="mention" on a thread after later comments that
        # don't mention the agent.
        if (
            comment is not None
            and notification.reason == "mention"
            and not is_agent_mentioned(comment.body, self.agent)
        ):
            logger.info(
                "Skipping %s: agent not mentioned in comment body (stale thread)",
                notification.thread_id,
            )
            return GateResult(GateOutcome.STALE_MENTION)

        event = build_mention_event(notification, comment, self.agent)
        if event is None:
            logger.debug("Skipping %s: could not parse subject number", notification.thread_id)
            return GateResult(GateOutcome.UNPARSEABLE)

        self.emit(event)
        logger.info(
            "Emitted mention %s on %s #%d from @%s", key, event.repo, event.number, event.author
        )
        return GateResult(GateOutcome.EMITTED, event)

    async def run_cycle(self, state: WatchState) -> WatchState:
        """Run a single poll cycle and persist the result.

        Args:
            state: State carried over from the previous cycle.

        Returns:
            The next state (as persisted).

        Raises:
            Exception: Whatever the notification fetch raised; nothing is
                persisted in that case.
        """
        state = merge_ack_journal(self.journal_path, state)

        self._transition(WatcherState.FETCHING)
        # Informational only: GitHub's unread filter decides what is fetched
        fetch_time = format_timestamp(self.clock())
        notifications = await self.github_service.fetch_mention_notifications(
            self.repo, self.reasons
        )

        self._transition(WatcherState.PROCESSING)
        if notifications:
            logger.info("Found %d unread notification(s)", len(notifications))

        emitted = 0
        for notification in notifications:
            result = await self.process_notification(notification, state)
            if result.outcome is GateOutcome.STALE_MENTION:
                state = state.with_processed(notification.composite_key)
            elif result.outcome is GateOutcome.EMITTED:
                emitted += 1

        state = state.with_last_checked(fetch_time)

        self._transition(WatcherState.PERSISTING)
        save_state(self.state_file, state)
        logger.debug("Cycle complete: %d event(s) emitted", emitted)

        self._transition(WatcherState.IDLE)
        return state

    async def run_once(self) -> WatchState:
        """Run exactly one cycle.

        Raises:
            WatchError: On any failure; non-WatchError exceptions are wrapped.
        """
        logger.info("Running single poll cycle for %s", self.repo)
        try:
            return await self.run_cycle(load_state(self.state_file))
        except WatchError:
            raise
        except Exception as e:
            raise WatchError(f"Poll failed: {e}", ErrorCode.GH_ERROR, 1) from e
        finally:
            self._transition(WatcherState.STOPPING)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Poll continuously until ``stop_event`` is set.

        Fetch errors are logged and retried after the next sleep. A cycle
        that has started runs to completion; the stop event is checked
        between cycles and interrupts the sleep immediately.
        """
        logger.info(
            "Starting watch: repo=%s agent=%s interval=%ss reasons=%s",
            self.repo,
            self.agent,
            self.poll_interval,
            ",".join(self.reasons),
        )

        state = load_state(self.state_file)

        while not stop_event.is_set():
            try:
                state = await self.run_cycle(state)
            except Exception as e:
                logger.error("Poll error: %s", e, exc_info=not isinstance(e, WatchError))
                self._transition(WatcherState.IDLE)

            if stop_event.is_set():
                break

            self._transition(WatcherState.SLEEPING)
            await self._sleep(stop_event)

        self._transition(WatcherState.STOPPING)
        logger.info("Watch stopped")

    async def _sleep(self, stop_event: asyncio.Event) -> None:
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            self._transition(WatcherState.IDLE)
