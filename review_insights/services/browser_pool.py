"""
Bounded pool of reusable Selenium browser sessions.

Each scrape borrows exactly one session for its whole lifetime. A session is
never handed to two requests at once; once the pool is saturated, further
requests wait up to ``acquire_timeout`` seconds and are then rejected with
``ScraperBusy``. Sessions that ended in a failure are always quit, healthy
ones are returned for reuse until they reach ``max_uses``.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from selenium.webdriver.remote.webdriver import WebDriver

from review_insights.services.errors import LaunchError, ScraperBusy

logger = logging.getLogger(__name__)


@dataclass
class _PooledSession:
    driver: WebDriver
    uses: int = 0


class BrowserPool:
    def __init__(
        self,
        driver_factory: Callable[[], WebDriver],
        pool_size: int = 2,
        acquire_timeout: float = 30.0,
        max_uses: int = 10,
    ):
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self.pool_size = pool_size
        self.acquire_timeout = acquire_timeout
        self.max_uses = max_uses

        self._driver_factory = driver_factory
        self._slots = threading.BoundedSemaphore(pool_size)
        self._lock = threading.Lock()
        self._idle: list[_PooledSession] = []
        self._in_use = 0
        self._closed = False

    @contextmanager
    def session(self) -> Iterator[WebDriver]:
        """
        Borrow a browser session for the duration of a ``with`` block.

        Raises:
            ScraperBusy: No session became free within ``acquire_timeout``.
            LaunchError: A new browser could not be started.
        """
        if self._closed:
            raise LaunchError("browser pool is shut down")
        if not self._slots.acquire(timeout=self.acquire_timeout):
            logger.warning(
                "Browser pool saturated (%d sessions), rejecting request", self.pool_size
            )
            raise ScraperBusy(f"no browser session free after {self.acquire_timeout}s")

        try:
            pooled = self._checkout()
        except BaseException:
            self._slots.release()
            raise

        healthy = False
        try:
            yield pooled.driver
            healthy = True
        finally:
            try:
                self._checkin(pooled, healthy)
            finally:
                self._slots.release()

    def _checkout(self) -> _PooledSession:
        with self._lock:
            pooled = self._idle.pop() if self._idle else None
            self._in_use += 1

        if pooled is None:
            logger.info("Launching new browser session")
            try:
                pooled = _PooledSession(driver=self._driver_factory())
            except Exception as exc:
                with self._lock:
                    self._in_use -= 1
                logger.error("Browser launch failed: %s", exc)
                raise LaunchError(str(exc)) from exc

        pooled.uses += 1
        return pooled

    def _checkin(self, pooled: _PooledSession, healthy: bool) -> None:
        with self._lock:
            self._in_use -= 1

        reusable = healthy and not self._closed and pooled.uses < self.max_uses
        if reusable:
            try:
                pooled.driver.delete_all_cookies()
            except Exception as exc:
                logger.warning("Could not reset browser session, discarding it: %s", exc)
                reusable = False

        if reusable:
            with self._lock:
                self._idle.append(pooled)
            logger.debug("Browser session returned to pool (uses=%d)", pooled.uses)
        else:
            self._quit(pooled)

    def _quit(self, pooled: _PooledSession) -> None:
        try:
            pooled.driver.quit()
            logger.info("Browser session closed (uses=%d)", pooled.uses)
        except Exception as exc:
            # A dead chromedriver surfaces as urllib3/connection errors here.
            logger.warning("Error closing browser session: %s", exc)

    def stats(self) -> dict:
        with self._lock:
            in_use = self._in_use
            idle = len(self._idle)
        return {
            "pool_size": self.pool_size,
            "in_use": in_use,
            "idle": idle,
            "status": "saturated" if in_use >= self.pool_size else "healthy",
        }

    def shutdown(self) -> None:
        """Quit every idle session. Sessions in use are quit when returned."""
        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, []
        logger.info("Shutting down browser pool (%d idle sessions)", len(idle))
        for pooled in idle:
            self._quit(pooled)
