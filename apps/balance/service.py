import logging
import threading
from typing import Any, Callable, Optional

from service.balance import BalanceConfig, BalanceController, CacheStore
from service.balance.async_loop import run_async

logger = logging.getLogger(__name__)


class BalanceService:
    """
    Synchronous access to the process-wide balance controller.

    Coroutines run on the background event loop, so timers keep ticking
    between requests.
    """

    _controller: Optional[BalanceController] = None
    _lock = threading.Lock()

    @staticmethod
    def get_controller() -> BalanceController:
        """Get or create the controller configured from settings"""
        if BalanceService._controller is None:
            with BalanceService._lock:
                if BalanceService._controller is None:
                    config = BalanceConfig.from_settings()
                    BalanceService._controller = BalanceController(
                        CacheStore(config.cache_alias), config=config
                    )
        return BalanceService._controller

    @staticmethod
    def init(default_balance: Optional[int] = None, auto_regen: Optional[bool] = None) -> int:
        controller = BalanceService.get_controller()
        return run_async(controller.init(default_balance=default_balance, auto_regen=auto_regen))

    @staticmethod
    def get_balance() -> int:
        return BalanceService.get_controller().get_balance()

    @staticmethod
    def set_balance(amount: Any) -> int:
        return run_async(BalanceService.get_controller().set_balance(amount))

    @staticmethod
    def save_balance(amount: int) -> None:
        run_async(BalanceService.get_controller().save_balance(amount))

    @staticmethod
    def verify_integrity() -> bool:
        return run_async(BalanceService.get_controller().verify_integrity())

    @staticmethod
    def subscribe(callback: Callable[[int], Any]) -> Callable[[], None]:
        """Callbacks run on the background loop thread"""
        return BalanceService.get_controller().subscribe(callback)

    @staticmethod
    def repair_reset(default_balance: int = 0) -> int:
        return run_async(BalanceService.get_controller().repair_reset(default_balance))

    @staticmethod
    def shutdown() -> None:
        """Stop timers and drop the controller"""
        with BalanceService._lock:
            controller = BalanceService._controller
            BalanceService._controller = None
        if controller is not None:
            run_async(controller.close())
            logger.info("Balance controller shut down")
