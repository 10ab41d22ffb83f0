"""
changecontrol: ordered, audited, run-once changes for a shared key-value store.

Components:
- ChangeLogLock: cross-process mutual exclusion via optimistic transactions
- ChangeLog: audit ledger (checksum, user, timestamp, sequence per change id)
- Change: idempotent unit of work (validate / execute / pretend / sync)
- ChangeSet: ordered group run under one lock, first failure aborts the phase
- ChangeControl: facade binding a store, scope prefix, logger and renderer
"""

__version__ = "0.1.0"

from .change import Change, Frequency, Mode, Outcome
from .changelog import ChangeLog, LedgerEntry
from .changeset import ChangeResult, ChangeSet, PhaseReport, RunReport
from .console import ChangeLogger, ConsoleLogger, NullLogger, RecordingLogger
from .control import ChangeControl
from .errors import (
    ChangeControlError,
    ChangeFailed,
    ChangeModified,
    ChangeSetLoadError,
    LockContention,
    PreconditionAborted,
    PreconditionFailed,
    StoreError,
)
from .lock import ChangeLogLock, LockRecord
from .render import CsvRenderer, JsonRenderer, Renderer, TableRenderer
from .store import MemoryStore, RedisStore, Store, open_store

__all__ = [
    "__version__",
    # Core
    "Change",
    "ChangeControl",
    "ChangeLog",
    "ChangeLogLock",
    "ChangeSet",
    "Frequency",
    "LedgerEntry",
    "LockRecord",
    "Mode",
    "Outcome",
    # Reports
    "ChangeResult",
    "PhaseReport",
    "RunReport",
    # Errors
    "ChangeControlError",
    "ChangeFailed",
    "ChangeModified",
    "ChangeSetLoadError",
    "LockContention",
    "PreconditionAborted",
    "PreconditionFailed",
    "StoreError",
    # Collaborators
    "ChangeLogger",
    "ConsoleLogger",
    "CsvRenderer",
    "JsonRenderer",
    "MemoryStore",
    "NullLogger",
    "RecordingLogger",
    "RedisStore",
    "Renderer",
    "Store",
    "TableRenderer",
    "open_store",
]
