"""Tests for AckService."""

import logging

import pytest

from hivemoot_watch.errors import ErrorCode, WatchError
from hivemoot_watch.services.ack_service import AckService
from hivemoot_watch.services.state_service import journal_path_for, read_ack_journal

KEY = "1001:2026-02-01T11:30:00.000Z"


class TestAckService:
    """Test the two-phase acknowledgment."""

    @pytest.fixture(autouse=True)
    def setup(self, fake_github, state_file):
        self.github = fake_github
        self.journal = journal_path_for(state_file)
        self.service = AckService(fake_github, self.journal)

    @pytest.mark.asyncio
    async def test_appends_literal_key_to_journal(self):
        result = await self.service.ack(KEY)

        assert read_ack_journal(self.journal) == [KEY]
        assert result.journaled is True

    @pytest.mark.asyncio
    async def test_marks_thread_read(self):
        result = await self.service.ack(KEY)

        assert self.github.marked_read == ["1001"]
        assert result.thread_id == "1001"
        assert result.marked_read is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_mark_read_failure_is_logged_not_raised(self, caplog):
        """Test upstream failures never fail the ack once journaled."""
        self.github.mark_read_error = RuntimeError("network error")

        with caplog.at_level(logging.WARNING, logger="hivemoot_watch.services.ack_service"):
            result = await self.service.ack(KEY)

        assert read_ack_journal(self.journal) == [KEY]
        assert result.journaled is True
        assert result.marked_read is False
        assert result.error == "network error"
        assert "Warning" in caplog.text
        assert "1001" in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["invalid-key", ":2026-02-01T11:30:00.000Z"])
    async def test_rejects_malformed_key_before_io(self, key):
        with pytest.raises(WatchError) as exc_info:
            await self.service.ack(key)

        assert exc_info.value.code is ErrorCode.INVALID_KEY
        assert not self.journal.exists()
        assert self.github.marked_read == []

    @pytest.mark.asyncio
    async def test_thread_id_split_on_first_colon(self):
        await self.service.ack("5001:2026-02-01T11:30:00.000Z")

        assert self.github.marked_read == ["5001"]
        assert read_ack_journal(self.journal) == ["5001:2026-02-01T11:30:00.000Z"]

    @pytest.mark.asyncio
    async def test_multiple_acks_append(self):
        await self.service.ack(KEY)
        await self.service.ack("1002:2026-02-01T12:00:00.000Z")

        assert read_ack_journal(self.journal) == [KEY, "1002:2026-02-01T12:00:00.000Z"]

    @pytest.mark.asyncio
    async def test_journal_write_failure_propagates(self, tmp_path):
        """Test the critical path fails loudly and skips the upstream call."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        service = AckService(self.github, blocker / "state.json.acks")

        with pytest.raises(OSError):
            await service.ack(KEY)

        assert self.github.marked_read == []
