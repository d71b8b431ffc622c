from .conf import BalanceConfig
from .controller import BalanceController, BalanceState, normalize_amount
from .exceptions import BalanceError, StoreError
from .integrity import IntegrityVerifier, sha256_digest
from .scheduler import AsyncioScheduler, ManualScheduler, ScheduledTask, Scheduler
from .store import CacheStore, KeyValueStore, MemoryStore

__all__ = [
    "AsyncioScheduler",
    "BalanceConfig",
    "BalanceController",
    "BalanceError",
    "BalanceState",
    "CacheStore",
    "IntegrityVerifier",
    "KeyValueStore",
    "ManualScheduler",
    "MemoryStore",
    "ScheduledTask",
    "Scheduler",
    "StoreError",
    "normalize_amount",
    "sha256_digest",
]
