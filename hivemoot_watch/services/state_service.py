"""File-backed watch state and ack journal."""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from ..models import WatchState

logger = logging.getLogger(__name__)

JOURNAL_SUFFIX = ".acks"


def journal_path_for(state_file: str | Path) -> Path:
    """Return the ack journal path that belongs to a state file."""
    path = Path(state_file)
    return path.with_name(path.name + JOURNAL_SUFFIX)


def load_state(state_file: str | Path) -> WatchState:
    """Load state from disk.

    A missing or empty file yields the zero-value state. A corrupt file is
    logged and also treated as the zero-value state; acknowledged keys are
    recovered from the journal on the next merge.
    """
    path = Path(state_file)
    if not path.exists():
        return WatchState()

    try:
        raw = path.read_text(encoding="utf-8")
        if not raw.strip():
            return WatchState()

        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("state root is not an object")
        ids = data.get("processedThreadIds")
        # Tolerate hand-edited files: keep only string keys
        data["processedThreadIds"] = [k for k in ids if isinstance(k, str)] if isinstance(ids, list) else []
        if not isinstance(data.get("lastChecked"), str) or not data["lastChecked"]:
            data["lastChecked"] = None
        return WatchState.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning("Ignoring unreadable state file %s: %s", path, e)
        return WatchState()


def save_state(state_file: str | Path, state: WatchState) -> None:
    """Atomically write state to disk (temp file in the same directory, then rename)."""
    path = Path(state_file)
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(state.model_dump(mode="json", by_alias=True), indent=2) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise

    logger.debug(
        "Saved state to %s (%d processed key(s))", path, len(state.processed_thread_ids)
    )


def read_ack_journal(journal_path: str | Path) -> list[str]:
    """Return the keys recorded in the journal, in append order.

    Lines that are not valid UTF-8 are logged and skipped; the rest of the
    journal still applies.
    """
    path = Path(journal_path)
    if not path.exists():
        return []

    keys: list[str] = []
    for lineno, raw_line in enumerate(path.read_bytes().splitlines(), start=1):
        try:
            line = raw_line.decode("utf-8").strip()
        except UnicodeDecodeError:
            logger.warning("Skipping undecodable line %d in %s", lineno, path)
            continue
        if line:
            keys.append(line)
    return keys


def merge_ack_journal(journal_path: str | Path, state: WatchState) -> WatchState:
    """Union the journal's keys into the state.

    The journal is read but never truncated or moved, so it keeps every
    acknowledged key even if the process dies before the state is saved.
    """
    keys = read_ack_journal(journal_path)
    merged = state.merged(keys)
    added = len(merged.processed_thread_ids) - len(state.processed_thread_ids)
    if added:
        logger.debug("Merged %d acknowledged key(s) from %s", added, journal_path)
    return merged


def append_ack(journal_path: str | Path, key: str) -> None:
    """Append one key to the journal (append mode, one write per key)."""
    path = Path(journal_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(f"{key}\n")
        f.flush()
        os.fsync(f.fileno())
