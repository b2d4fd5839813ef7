import asyncio
import logging
from collections import Counter
from contextlib import nullcontext
from enum import Enum

import aiohttp
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .errors import InputError


log = logging.getLogger(__name__)

DEFAULT_THREADS = 1000
DEFAULT_TIMEOUT = 30


class Outcome(Enum):
    HIT = "hit"
    MISS = "miss"
    THROTTLED = "throttled"
    ERROR = "error"


def classify_status(status):
    if status == 200:
        return Outcome.HIT
    if status in (403, 404):
        return Outcome.MISS
    return Outcome.THROTTLED


def create_session(threads=DEFAULT_THREADS, timeout=DEFAULT_TIMEOUT):
    """The one HTTP client shared by every probe of a run.

    Must be created inside the running event loop and closed by the caller,
    normally with ``async with create_session(...) as session``.
    """
    connector = aiohttp.TCPConnector(limit=threads)
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout, connect=min(timeout, 10)),
    )


class ProbeEngine:
    """Bounded-concurrency GET checks over a set of candidate URLs.

    Candidates are anything with a ``full_url`` attribute. Probe failures never
    abort a batch; they are counted in ``stats`` and logged.
    """

    def __init__(self, session, threads=DEFAULT_THREADS, progress=False):
        if threads < 1:
            raise InputError("threads must be at least 1")
        self.session = session
        self.threads = threads
        self.progress = progress
        self.stats = Counter()

    @property
    def examined(self):
        return sum(self.stats.values())

    async def status(self, url):
        try:
            async with self.session.get(url) as response:
                return response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            log.warning("Request error for %s - %s", url, e or type(e).__name__)
            return None

    async def check(self, url):
        status = await self.status(url)
        if status is None:
            outcome = Outcome.ERROR
        else:
            outcome = classify_status(status)

        self.stats[outcome] += 1
        if outcome is Outcome.HIT:
            log.debug("Got it! - %s", url)
        elif outcome is Outcome.MISS:
            log.debug("Still going - %s", url)
        elif outcome is Outcome.THROTTLED:
            log.warning("You might be getting throttled (or your connection is dead)! Status code: %s - URL: %s", status, url)
        return outcome

    def _progress_bar(self, total):
        return tqdm(total=total, disable=not self.progress, unit="url", leave=False, colour="blue")

    def _redirect_logs(self):
        return logging_redirect_tqdm() if self.progress else nullcontext()

    async def _bounded(self, semaphore, func, item, bar):
        async with semaphore:
            result = await func(item)
        bar.update(1)
        return item, result

    async def first_hit(self, candidates):
        """Probe until a candidate answers 200 and return it, or None.

        Outstanding requests are cancelled as soon as the first hit arrives.
        """
        if not candidates:
            return None

        semaphore = asyncio.Semaphore(self.threads)
        with self._redirect_logs(), self._progress_bar(len(candidates)) as bar:
            tasks = [
                asyncio.create_task(self._bounded(semaphore, self._check_candidate, candidate, bar))
                for candidate in candidates
            ]
            try:
                for next_done in asyncio.as_completed(tasks):
                    candidate, outcome = await next_done
                    if outcome is Outcome.HIT:
                        return candidate
                return None
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

    async def all_hits(self, candidates):
        """Probe every candidate and return the live ones in input order."""
        results = await self._map(self._check_candidate, candidates)
        return [candidate for candidate, outcome in results if outcome is Outcome.HIT]

    async def statuses(self, urls):
        """Raw status codes (None on transport failure) for ``urls``, in order."""
        results = await self._map(self.status, urls)
        return [status for _, status in results]

    async def _check_candidate(self, candidate):
        return await self.check(candidate.full_url)

    async def _map(self, func, items):
        if not items:
            return []
        semaphore = asyncio.Semaphore(self.threads)
        with self._redirect_logs(), self._progress_bar(len(items)) as bar:
            return await asyncio.gather(*(self._bounded(semaphore, func, item, bar) for item in items))
