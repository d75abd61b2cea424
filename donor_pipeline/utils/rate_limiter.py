"""
Request pacing for the registry site.

A job shares one browser session across every donor, so requests are
spaced by a fixed delay instead of a token bucket. The pacer is keyed by
site name and is thread-safe, so concurrent jobs that each own a session
still respect one shared spacing per site.

Usage:
    pacer = RequestPacer()
    pacer.wait("xytex", delay=3.0)
    session.navigate(url)
"""

import threading
import time
from typing import Callable, Dict


class RequestPacer:
    """
    Thread-safe per-site request spacing.
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep, clock: Callable[[], float] = time.monotonic):
        self._locks: Dict[str, threading.Lock] = {}
        self._last_request: Dict[str, float] = {}
        self._master_lock = threading.Lock()
        self._sleep = sleep
        self._clock = clock

    def _get_site_lock(self, site: str) -> threading.Lock:
        with self._master_lock:
            if site not in self._locks:
                self._locks[site] = threading.Lock()
            return self._locks[site]

    def wait(self, site: str, delay: float) -> float:
        """
        Block until at least `delay` seconds have passed since the last request to `site`.

        The first request to a site never waits.

        Returns:
            Seconds actually slept
        """
        lock = self._get_site_lock(site)

        with lock:
            now = self._clock()
            last = self._last_request.get(site)
            wait_time = 0.0
            if last is not None and delay > 0:
                elapsed = now - last
                if elapsed < delay:
                    wait_time = delay - elapsed
                    self._sleep(wait_time)

            self._last_request[site] = self._clock()
            return wait_time

    def reset(self, site: str | None = None):
        """Forget request history for one site, or all sites."""
        with self._master_lock:
            if site:
                self._last_request.pop(site, None)
            else:
                self._last_request.clear()
