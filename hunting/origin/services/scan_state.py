import threading

from loguru import logger


class ScanState:
    """
    Shared handle for one invocation of the scanner.

    Holds the stop flag together with the match and progress counters. The
    same instance is passed to every dispatcher run and every probe, so a
    match in one range suppresses the ranges after it. Once stopped it is
    never cleared.
    """

    def __init__(self):
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._matches = 0
        self._completed = 0

    def stop(self, reason=None):
        # First caller wins the log line; later calls are no-ops
        with self._lock:
            already = self._stop.is_set()
            self._stop.set()
        if not already:
            logger.debug("Stop signal set{}", f" ({reason})" if reason else "")

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def is_set(self) -> bool:
        return self._stop.is_set()

    def record_match(self) -> int:
        with self._lock:
            self._matches += 1
            return self._matches

    def record_completion(self) -> int:
        with self._lock:
            self._completed += 1
            return self._completed

    @property
    def match_count(self) -> int:
        return self._matches

    @property
    def completed(self) -> int:
        return self._completed
