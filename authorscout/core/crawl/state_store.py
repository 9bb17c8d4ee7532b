"""State stores - load and save crawl snapshots between runs."""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from authorscout.core.crawl.models import RunRecord
from authorscout.core.crawl.state import CrawlSnapshot
from authorscout.utils.exceptions import CrawlInProgressError, StateError

logger = structlog.get_logger(__name__)


class StateStore(Protocol):
    """Persistence boundary for crawl snapshots and run history."""

    def load(self) -> CrawlSnapshot | None: ...

    def save(self, snapshot: CrawlSnapshot) -> None: ...

    def clear(self) -> None: ...

    def history(self) -> list[RunRecord]: ...

    def record_run(self, record: RunRecord) -> None: ...


class InMemoryStateStore:
    """Store that keeps the snapshot for the life of the process."""

    def __init__(self, snapshot: CrawlSnapshot | None = None) -> None:
        self.snapshot = snapshot
        self.runs: list[RunRecord] = []

    def load(self) -> CrawlSnapshot | None:
        return self.snapshot.model_copy(deep=True) if self.snapshot else None

    def save(self, snapshot: CrawlSnapshot) -> None:
        self.snapshot = snapshot.model_copy(deep=True)

    def clear(self) -> None:
        self.snapshot = None
        self.runs = []

    def history(self) -> list[RunRecord]:
        return list(self.runs)

    def record_run(self, record: RunRecord) -> None:
        self.runs.append(record)


class JsonFileStateStore:
    """
    Store that keeps the snapshot and run history in one JSON file.

    Writes go to a temporary sibling file that then replaces the target,
    so a crash mid-write leaves the previous file intact.
    """

    def __init__(self, path: Path) -> None:
        """
        Initialize the store.

        Args:
            path: JSON file holding {"state": ..., "history": [...], "saved_at": ...}
        """
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StateError(f"Cannot read crawl state from {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StateError(f"Crawl state file {self.path} is not a JSON object")
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data["saved_at"] = datetime.now(timezone.utc).isoformat()
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def load(self) -> CrawlSnapshot | None:
        """
        Load the stored snapshot.

        Returns:
            Snapshot, or None when nothing has been stored yet

        Raises:
            StateError: If the file exists but cannot be parsed or validated
        """
        raw = self._read().get("state")
        if raw is None:
            logger.info("state_store_empty", path=str(self.path))
            return None
        try:
            snapshot = CrawlSnapshot.model_validate(raw)
        except ValidationError as e:
            raise StateError(f"Invalid crawl state in {self.path}: {e}") from e
        logger.info(
            "state_store_loaded",
            path=str(self.path),
            authors=len(snapshot.authors),
            processed_urls=len(snapshot.processed_urls),
        )
        return snapshot

    def save(self, snapshot: CrawlSnapshot) -> None:
        data = self._read()
        data["state"] = snapshot.model_dump(mode="json")
        self._write(data)
        logger.info("state_store_saved", path=str(self.path), authors=len(snapshot.authors))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("state_store_cleared", path=str(self.path))

    def history(self) -> list[RunRecord]:
        try:
            return [RunRecord.model_validate(r) for r in self._read().get("history", [])]
        except ValidationError as e:
            raise StateError(f"Invalid run history in {self.path}: {e}") from e

    def record_run(self, record: RunRecord) -> None:
        data = self._read()
        data.setdefault("history", []).append(record.model_dump(mode="json"))
        self._write(data)


class RunLock:
    """
    Lock file guarding a state file against concurrent runs.

    The crawl core does no locking of its own; callers hold this around a run.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._held = False

    def acquire(self) -> None:
        """
        Raises:
            CrawlInProgressError: If the lock file already exists
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as e:
            raise CrawlInProgressError(
                f"A crawl is already in progress (lock file {self.path})"
            ) from e
        with os.fdopen(fd, "w") as f:
            f.write(str(os.getpid()))
        self._held = True

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.release()
