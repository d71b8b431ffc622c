"""
Shared background event loop for balance timers and sync callers.
"""
import asyncio
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)

_loop: Optional[asyncio.AbstractEventLoop] = None
_lock = threading.Lock()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Get the background loop, starting its daemon thread on first use"""
    global _loop
    if _loop is None:
        with _lock:
            if _loop is None:
                loop = asyncio.new_event_loop()
                started = threading.Event()

                def run_loop():
                    asyncio.set_event_loop(loop)
                    loop.call_soon(started.set)
                    loop.run_forever()

                threading.Thread(target=run_loop, name="balance-loop", daemon=True).start()
                started.wait()
                logger.info("Balance event loop started in background thread")
                _loop = loop
    return _loop


def run_async(coro):
    """
    Run a coroutine on the background loop and wait for its result

    Args:
        coro: Coroutine to run

    Returns:
        Coroutine result
    """
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()
