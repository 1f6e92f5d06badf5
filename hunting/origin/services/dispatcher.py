import asyncio
import time
from typing import Awaitable, Callable, Iterable, List, Optional

from loguru import logger

from hunting.origin.models import ProbeOutcome


class Dispatcher:
    """
    Runs probes over an address sequence with a fixed cap on in-flight probes.

    New probes are admitted only while the stop flag is clear. Once it is set
    the probes already running are left to finish (no socket is aborted) and
    run_range returns after they drain.
    """

    def __init__(self, probe: Callable[[str], Awaitable[ProbeOutcome]], state, max_concurrent: int,
                 reporter=None, progress_every: int = 5000):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.probe = probe
        self.state = state
        self.max_concurrent = max_concurrent
        self.reporter = reporter
        self.progress_every = progress_every

    async def run_range(self, addresses: Iterable[str], stop_on_find: bool = True,
                        total: Optional[int] = None) -> List[ProbeOutcome]:
        """
        Probe every address until the sequence runs out or the scan is stopped.

        Args:
            addresses: Addresses in the order they should be admitted
            stop_on_find: Set the stop flag on the first match
            total: Size of the sequence, used only for progress lines

        Returns:
            Matches in the order their probes completed
        """
        if total is None and hasattr(addresses, "__len__"):
            total = len(addresses)

        found: List[ProbeOutcome] = []
        found_lock = asyncio.Lock()
        work = iter(addresses)
        completed = 0
        started = time.monotonic()

        async def worker():
            nonlocal completed
            # Checked before every pull from the shared iterator
            while not self.state.stopped:
                address = next(work, None)
                if address is None:
                    return
                await self._settle(self.probe(address), found, found_lock, stop_on_find)
                completed += 1
                self._report_progress(completed, total, started)

        worker_count = self.max_concurrent if total is None else max(1, min(self.max_concurrent, total))
        workers = [asyncio.ensure_future(worker()) for _ in range(worker_count)]
        try:
            await asyncio.gather(*workers)
        finally:
            for task in workers:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        if self.state.stopped and total is not None and completed < total:
            logger.debug("Range drained after stop: {}/{} addresses probed", completed, total)
        return found

    async def _settle(self, probing, found, found_lock, stop_on_find) -> ProbeOutcome:
        outcome = await probing
        self.state.record_completion()

        if outcome.is_match:
            async with found_lock:
                found.append(outcome)
            self.state.record_match()

            if self.reporter is not None:
                self.reporter.log(f"✓ FOUND: {outcome.address}", "FOUND", outcome.describe())
            else:
                logger.success("Found {} - {}", outcome.address, outcome.describe())

            if stop_on_find:
                self.state.stop(f"match at {outcome.address}")
                if self.reporter is not None:
                    self.reporter.log("⚠ Backend IP found! Stopping scan...", "STOPPING")
        return outcome

    def _report_progress(self, completed, total, started):
        if self.progress_every <= 0:
            return
        if completed % self.progress_every != 0 and completed != total:
            return
        elapsed = time.monotonic() - started
        rate = completed / elapsed if elapsed > 0 else 0.0
        if total:
            logger.info("Scan progress | {}/{} ({:.1f}%) - {:.0f} IPs/sec",
                        completed, total, completed * 100.0 / total, rate)
        else:
            logger.info("Scan progress | {} probed - {:.0f} IPs/sec", completed, rate)
