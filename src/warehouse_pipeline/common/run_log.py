#!/usr/bin/env python3
"""
Run Log

Append-only audit trail of every pipeline operation. Each pipeline run owns a
set of entries; an entry is opened as Running and moved to Success or Failed
exactly once. Entries are never deleted.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple, Iterator

from .errors import RunLogError


class RunStatus(str, Enum):
    """Lifecycle of a pipeline run"""
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCESS = "Success"
    FAILED = "Failed"


class EntryStatus(str, Enum):
    """Lifecycle of a single log entry"""
    RUNNING = "Running"
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass
class Run:
    """One end-to-end pipeline execution"""
    run_id: str
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    status: RunStatus = RunStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.SUCCESS, RunStatus.FAILED)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def start(self):
        """Move a pending run to Running"""
        if self.status != RunStatus.PENDING:
            raise ValueError(f"Run {self.run_id} cannot start from status {self.status.value}")
        self.status = RunStatus.RUNNING

    def finish(self, success: bool):
        """Move the run to its terminal status"""
        if self.is_terminal:
            raise ValueError(f"Run {self.run_id} is already {self.status.value}")
        self.status = RunStatus.SUCCESS if success else RunStatus.FAILED
        self.end_time = datetime.now()


@dataclass
class OperationLogEntry:
    """A single row of the run log"""
    id: int
    run_id: str
    stage: str
    operation_name: str
    status: EntryStatus
    start_time: datetime
    schema_name: Optional[str] = None
    entity_name: Optional[str] = None
    source_location: Optional[str] = None
    rows_affected: Optional[int] = None
    end_time: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    message: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> Tuple[str, Optional[str], str]:
        return (self.run_id, self.entity_name, self.operation_name)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        for name in ("start_time", "end_time", "created_at"):
            if data[name] is not None:
                data[name] = data[name].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OperationLogEntry':
        data = dict(data)
        data["status"] = EntryStatus(data["status"])
        for name in ("start_time", "end_time", "created_at"):
            if data.get(name) is not None:
                data[name] = datetime.fromisoformat(data[name])
        return cls(**data)


@dataclass(frozen=True)
class LogHandle:
    """Reference returned by RunLog.begin and used to close the entry"""
    run_id: str
    entity_name: Optional[str]
    operation_name: str
    entry_id: int

    @property
    def key(self) -> Tuple[str, Optional[str], str]:
        return (self.run_id, self.entity_name, self.operation_name)


@dataclass
class TrackedOperation:
    """Mutable outcome filled in by the body of RunLog.track"""
    handle: LogHandle
    rows_affected: Optional[int] = None
    message: str = ""


class RunLog(ABC):
    """
    Base run log

    Keeps the working set of entries in memory and delegates persistence to
    subclasses through ``_persist``.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._entries: List[OperationLogEntry] = []
        self._running: Dict[Tuple[str, Optional[str], str], OperationLogEntry] = {}
        self._next_id = 1

    def begin(self, run_id: str, stage: str, operation: str,
              entity: Optional[str] = None,
              schema_name: Optional[str] = None,
              source_location: Optional[str] = None,
              message: str = "") -> LogHandle:
        """
        Open a Running entry

        Args:
            run_id: Run the entry belongs to
            stage: Layer label (Pipeline, Bronze, Silver, Tests)
            operation: Procedure or rule name
            entity: Entity name, None for run and stage level entries
            schema_name: Target schema of the operation
            source_location: Source file for ingestion entries
            message: Initial message

        Returns:
            LogHandle identifying the entry
        """
        key = (run_id, entity, operation)
        if key in self._running:
            raise RunLogError(
                f"Entry for run={run_id} entity={entity} operation={operation} is already Running"
            )

        now = datetime.now()
        entry = OperationLogEntry(
            id=self._next_id,
            run_id=run_id,
            stage=stage,
            operation_name=operation,
            status=EntryStatus.RUNNING,
            start_time=now,
            schema_name=schema_name,
            entity_name=entity,
            source_location=source_location,
            message=message,
            created_at=now,
        )
        self._next_id += 1
        self._entries.append(entry)
        self._running[key] = entry
        self._persist(entry)

        target = f"{operation} ({entity})" if entity else operation
        self.logger.debug(f"🔄 [{stage}] {target} started")
        return LogHandle(run_id=run_id, entity_name=entity, operation_name=operation, entry_id=entry.id)

    def complete(self, handle: LogHandle, rows_affected: Optional[int] = None, message: str = "") -> bool:
        """
        Mark the Running entry for the handle's key as Success

        Returns:
            False when no Running entry exists for the key
        """
        entry = self._close(handle, EntryStatus.SUCCESS, message, rows_affected)
        if entry is None:
            return False
        target = f"{entry.operation_name} ({entry.entity_name})" if entry.entity_name else entry.operation_name
        self.logger.info(f"✅ [{entry.stage}] {target}: {message}")
        return True

    def fail(self, handle: LogHandle, message: str) -> bool:
        """
        Mark the Running entry for the handle's key as Failed

        Returns:
            False when no Running entry exists for the key
        """
        entry = self._close(handle, EntryStatus.FAILED, message, None)
        if entry is None:
            return False
        target = f"{entry.operation_name} ({entry.entity_name})" if entry.entity_name else entry.operation_name
        self.logger.error(f"❌ [{entry.stage}] {target}: {message}")
        return True

    @contextmanager
    def track(self, run_id: str, stage: str, operation: str, **kwargs) -> Iterator[TrackedOperation]:
        """
        Open an entry for the duration of a block

        The entry is completed with the rows and message set on the yielded
        TrackedOperation, or failed with the exception text if the block raises.
        The exception is re-raised.
        """
        tracked = TrackedOperation(handle=self.begin(run_id, stage, operation, **kwargs))
        try:
            yield tracked
        except Exception as e:
            self.fail(tracked.handle, str(e))
            raise
        self.complete(tracked.handle, rows_affected=tracked.rows_affected, message=tracked.message)

    def entries_for_run(self, run_id: str) -> List[OperationLogEntry]:
        """
        Get all entries of a run ordered by start time, then id
        """
        entries = [entry for entry in self._entries if entry.run_id == run_id]
        return sorted(entries, key=lambda entry: (entry.start_time, entry.id))

    def _close(self, handle: LogHandle, status: EntryStatus, message: str,
               rows_affected: Optional[int]) -> Optional[OperationLogEntry]:
        entry = self._running.pop(handle.key, None)
        if entry is None:
            self.logger.warning(
                f"⚠️ No Running entry for run={handle.run_id} entity={handle.entity_name} "
                f"operation={handle.operation_name}; {status.value} not recorded"
            )
            return None

        entry.status = status
        entry.end_time = datetime.now()
        entry.duration_seconds = (entry.end_time - entry.start_time).total_seconds()
        entry.rows_affected = rows_affected
        entry.message = message
        self._persist(entry)
        return entry

    @abstractmethod
    def _persist(self, entry: OperationLogEntry):
        """Store a new or updated entry"""
        pass


class InMemoryRunLog(RunLog):
    """Run log kept only in process memory"""

    def _persist(self, entry: OperationLogEntry):
        pass


class JsonRunLog(RunLog):
    """
    Run log persisted as one JSON-lines file per run

    Layout: ``<audit_dir>/run_id=<id>/etl_log.jsonl``. The run's file is
    rewritten after every transition so the on-disk state always matches the
    in-memory working set. Entries already persisted for a run are loaded
    before the first new entry is written, so re-entering a run id (e.g. to
    run one stage for diagnosis) appends to its trail.
    """

    LOG_FILE_NAME = "etl_log.jsonl"

    def __init__(self, audit_dir: str):
        super().__init__()
        self.audit_dir = Path(audit_dir)
        self.audit_dir.mkdir(parents=True, exist_ok=True)
        self._next_id = self._max_persisted_id() + 1
        self._loaded_runs = set()

    def begin(self, run_id: str, stage: str, operation: str, **kwargs) -> LogHandle:
        self._load_run(run_id)
        return super().begin(run_id, stage, operation, **kwargs)

    def log_path(self, run_id: str) -> Path:
        return self.audit_dir / f"run_id={run_id}" / self.LOG_FILE_NAME

    def entries_for_run(self, run_id: str) -> List[OperationLogEntry]:
        if any(entry.run_id == run_id for entry in self._entries):
            return super().entries_for_run(run_id)

        entries = self._read_run(self.log_path(run_id))
        return sorted(entries, key=lambda entry: (entry.start_time, entry.id))

    def list_runs(self) -> List[str]:
        """Run ids with a persisted log, oldest directory first"""
        run_dirs = sorted(self.audit_dir.glob("run_id=*"), key=lambda p: p.stat().st_mtime)
        return [path.name.split("=", 1)[1] for path in run_dirs if (path / self.LOG_FILE_NAME).exists()]

    def _persist(self, entry: OperationLogEntry):
        path = self.log_path(entry.run_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        run_entries = [e for e in self._entries if e.run_id == entry.run_id]
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, 'w') as f:
            for run_entry in run_entries:
                f.write(json.dumps(run_entry.to_dict()) + "\n")
        tmp_path.replace(path)

    def _load_run(self, run_id: str):
        """Pull a run's persisted entries into the working set once"""
        if run_id in self._loaded_runs:
            return
        self._loaded_runs.add(run_id)

        persisted = self._read_run(self.log_path(run_id))
        if persisted:
            self.logger.info(f"📂 Resuming run log for run {run_id} with {len(persisted)} existing entries")
        # Entries left Running by an earlier process stay as they are; they are not reopened
        self._entries.extend(persisted)

    def _read_run(self, path: Path) -> List[OperationLogEntry]:
        if not path.exists():
            return []

        entries = []
        with open(path, 'r') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(OperationLogEntry.from_dict(json.loads(line)))
                except (ValueError, KeyError, TypeError) as e:
                    raise RunLogError(f"Corrupt run log {path} at line {line_number}: {e}") from e
        return entries

    def _max_persisted_id(self) -> int:
        max_id = 0
        for path in self.audit_dir.glob(f"run_id=*/{self.LOG_FILE_NAME}"):
            for entry in self._read_run(path):
                max_id = max(max_id, entry.id)
        return max_id
