"""
BalanceController: owns the in-memory balance and keeps the stored blob,
its digest and subscribers in step.

All writes of the (blob, digest) pair go through one asyncio.Lock, so the
regenerator, the roller and direct saves never interleave their two-step
writes.
"""
import asyncio
import itertools
import logging
import math
import numbers
import re
import sys
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from service.obfuscation import Extractor, Obfuscator

from .conf import BalanceConfig
from .integrity import IntegrityVerifier
from .scheduler import AsyncioScheduler, ScheduledTask, Scheduler
from .store import KeyValueStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[int], Any]
ErrorHook = Callable[[str, BaseException], Any]


class BalanceState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


_JS_RADIX = re.compile(r"0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_JS_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)
_RADIX_BASE = {"x": 16, "o": 8, "b": 2}

# Larger magnitudes are not finite numbers in a JS Number
MAX_FINITE = int(sys.float_info.max)


def _parse_number_text(text: str):
    if _JS_RADIX.fullmatch(text):
        return int(text[2:], _RADIX_BASE[text[1].lower()])
    if not _JS_DECIMAL.fullmatch(text):
        return None
    return float(text)


def normalize_amount(amount: Any) -> int:
    """
    Coerce arbitrary input to a balance the way ``Number()`` would.

    Negative values clamp to 0, fractions are floored, numeric strings are
    parsed (decimal, exponent and 0x/0o/0b forms), anything else (None, NaN,
    infinities, magnitudes beyond a finite double, garbage) becomes 0.
    """
    if isinstance(amount, str):
        text = amount.strip()
        if not text:
            return 0
        number = _parse_number_text(text)
        if number is None:
            return 0
    elif isinstance(amount, (numbers.Real, Decimal)):
        number = amount
    else:
        return 0
    try:
        if not isinstance(number, int) and not math.isfinite(number):
            return 0
    except OverflowError:
        return 0
    result = math.floor(number)
    if result > MAX_FINITE:
        return 0
    return max(0, result)


def _alive(task: Optional[ScheduledTask]) -> bool:
    return task is not None and not task.done


class BalanceController:
    """
    Tamper-evident balance stored as an obfuscated blob plus digest.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        obfuscator: Optional[Obfuscator] = None,
        extractor: Optional[Extractor] = None,
        verifier: Optional[IntegrityVerifier] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[BalanceConfig] = None,
        on_error: Optional[ErrorHook] = None,
    ):
        """
        Initialize controller

        Args:
            store: Key/value store for the blob and digest
            obfuscator: Blob builder (noise length from config by default)
            extractor: Blob decoder (noise length from config by default)
            verifier: Digest checker over the configured keys
            scheduler: Periodic task runner for regenerator and roller
            config: Keys, defaults and timer periods
            on_error: Called with (source, exception) for swallowed failures
        """
        self.config = config or BalanceConfig()
        self.store = store
        self.obfuscator = obfuscator or Obfuscator(self.config.noise_bytes)
        self.extractor = extractor or Extractor(self.config.noise_bytes)
        self.verifier = verifier or IntegrityVerifier(
            store, self.config.balance_key, self.config.hash_key
        )
        self.scheduler = scheduler or AsyncioScheduler()
        self.on_error = on_error

        self._balance = 0
        self._state = BalanceState.UNINITIALIZED
        self._subscribers: dict[int, Subscriber] = {}
        self._tokens = itertools.count()
        self._write_lock = asyncio.Lock()
        self._regen_task: Optional[ScheduledTask] = None
        self._roller_task: Optional[ScheduledTask] = None

    @property
    def state(self) -> BalanceState:
        return self._state

    @property
    def regen_running(self) -> bool:
        return _alive(self._regen_task)

    @property
    def roller_running(self) -> bool:
        return _alive(self._roller_task)

    # -- persistence -------------------------------------------------------

    async def _write(self, amount: int) -> None:
        """Build and store a fresh blob/digest pair. Caller holds the write lock."""
        blob = self.obfuscator.build(amount)
        digest = self.verifier.digest_of(blob)
        await self.store.set(self.config.balance_key, blob)
        await self.store.set(self.config.hash_key, digest)

    async def save_balance(self, amount: int) -> None:
        """
        Persist ``amount`` and make it the current balance.

        No normalization is applied. Store, random and hash failures propagate.
        Subscribers are notified after both writes are issued.
        """
        async with self._write_lock:
            await self._write(amount)
            self._balance = amount
        self._notify(amount)

    async def verify_integrity(self) -> bool:
        """True if the stored digest matches the stored blob. Never raises."""
        async with self._write_lock:
            return await self.verifier.verify()

    # -- public API --------------------------------------------------------

    async def init(
        self,
        default_balance: Optional[int] = None,
        auto_regen: Optional[bool] = None,
    ) -> int:
        """
        Load the balance from the store.

        A missing or tampered record resets the balance to 0. A valid record
        that does not decode falls back to ``default_balance``.

        Args:
            default_balance: Fallback when a valid record cannot be decoded
            auto_regen: Start the regenerator and the roller afterwards

        Returns:
            Resulting balance
        """
        if default_balance is None:
            default_balance = self.config.default_balance
        if auto_regen is None:
            auto_regen = self.config.auto_regen

        async with self._write_lock:
            valid = await self.verifier.verify()
            blob = await self.store.get(self.config.balance_key) if valid else None

        if not valid:
            logger.warning("Balance record missing or tampered, resetting to 0")
            self._balance = 0
            await self.save_balance(0)
        else:
            extracted = self.extractor.extract(blob)
            if extracted is None:
                logger.warning(
                    f"Balance record verified but not decodable, using default {default_balance}"
                )
                await self.save_balance(default_balance)
            else:
                logger.info(f"Balance restored: {extracted}")
                self._balance = extracted

        self._state = BalanceState.READY
        if auto_regen:
            self.start_auto_regen()
            self.start_hash_roller()
        return self._balance

    def get_balance(self) -> int:
        return self._balance

    async def set_balance(self, amount: Any) -> int:
        """Normalize ``amount``, save it and return the stored value"""
        normalized = normalize_amount(amount)
        await self.save_balance(normalized)
        return normalized

    async def repair_reset(self, default_balance: int = 0) -> int:
        """Unconditionally overwrite the record with ``default_balance``"""
        logger.info(f"Balance repair reset to {default_balance}")
        self._balance = default_balance
        await self.save_balance(default_balance)
        return default_balance

    async def close(self) -> None:
        """Stop both timers"""
        self.stop_auto_regen()
        self.stop_hash_roller()

    # -- subscribers -------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for balance changes.

        The callback is called once immediately with the current balance.

        Returns:
            Function removing the callback; safe to call more than once
        """
        token = next(self._tokens)
        self._subscribers[token] = callback
        self._call_subscriber(callback, self._balance)

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def _call_subscriber(self, callback: Subscriber, balance: int) -> None:
        try:
            callback(balance)
        except Exception as e:
            logger.warning(f"Balance subscriber {callback!r} raised: {e!r}")
            self._report("subscriber", e)

    def _notify(self, balance: int) -> None:
        for callback in list(self._subscribers.values()):
            self._call_subscriber(callback, balance)

    def _report(self, source: str, error: BaseException) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(source, error)
        except Exception as e:
            logger.error(f"Balance error hook raised: {e!r}")

    # -- regenerator -------------------------------------------------------

    def start_auto_regen(
        self,
        threshold: Optional[int] = None,
        interval_ms: Optional[int] = None,
    ) -> None:
        """Increment the balance by 1 per tick while it is below ``threshold``"""
        if _alive(self._regen_task):
            return
        if threshold is None:
            threshold = self.config.regen_threshold
        if interval_ms is None:
            interval_ms = self.config.regen_interval_ms

        async def tick() -> None:
            await self._regen_tick(threshold)

        self._regen_task = self.scheduler.call_every(interval_ms / 1000, tick)
        logger.info(f"Auto regen started (threshold={threshold}, interval={interval_ms}ms)")

    def stop_auto_regen(self) -> None:
        if self._regen_task is None:
            return
        self._regen_task.cancel()
        self._regen_task = None
        logger.info("Auto regen stopped")

    async def _regen_tick(self, threshold: int) -> None:
        try:
            async with self._write_lock:
                if self._balance >= threshold:
                    return
                amount = self._balance + 1
                await self._write(amount)
                self._balance = amount
        except Exception as e:
            logger.warning(f"Auto regen tick failed: {e!r}")
            self._report("regen", e)
            return
        logger.debug(f"Auto regen: balance {amount}")
        self._notify(amount)

    # -- hash roller -------------------------------------------------------

    def start_hash_roller(self, interval_ms: Optional[int] = None) -> None:
        """Rewrite blob and digest with fresh noise on every tick"""
        if _alive(self._roller_task):
            return
        if interval_ms is None:
            interval_ms = self.config.roller_interval_ms
        self._roller_task = self.scheduler.call_every(interval_ms / 1000, self._roll_tick)
        logger.info(f"Hash roller started (interval={interval_ms}ms)")

    def stop_hash_roller(self) -> None:
        if self._roller_task is None:
            return
        self._roller_task.cancel()
        self._roller_task = None
        logger.info("Hash roller stopped")

    async def _roll_tick(self) -> None:
        try:
            async with self._write_lock:
                amount = self._balance
                if self._state is BalanceState.UNINITIALIZED:
                    blob = await self.store.get(self.config.balance_key)
                    amount = self.extractor.extract(blob) or 0
                await self._write(amount)
        except Exception as e:
            logger.debug(f"Hash roller tick failed: {e!r}")
            self._report("roller", e)
