import time
from typing import List

from loguru import logger

from hunting.origin.errors import RangeParseError
from hunting.origin.models import ScanResult
from hunting.origin.services.address_range import AddressRange


class ScanOrchestrator:
    def __init__(self, dispatcher, state, reporter=None):
        self.dispatcher = dispatcher
        self.state = state
        self.reporter = reporter

    async def run_scan(self, ranges: List[str], stop_on_find: bool = True) -> ScanResult:
        """Scan each range in order, stopping after the first range with a match if asked to"""
        result = ScanResult()
        start_time = time.monotonic()

        for i, cidr in enumerate(ranges, 1):
            if self.state.stopped:
                logger.info("Stop signal set, skipping remaining {} range(s)", len(ranges) - i + 1)
                break

            try:
                address_range = AddressRange.parse(cidr)
            except RangeParseError as e:
                result.ranges_skipped += 1
                logger.warning("✗ Failed to parse range {}: {}", cidr, e)
                continue

            self._announce(address_range, i, len(ranges))
            found = await self.dispatcher.run_range(address_range, stop_on_find=stop_on_find,
                                                    total=address_range.size)
            result.matches.extend(found)
            result.ranges_scanned += 1

            logger.info("Range {} done | {} match(es)", address_range.cidr, len(found))

            if stop_on_find and result.matches:
                if i < len(ranges) and self.reporter is not None:
                    self.reporter.log("⚠ Found backend IP(s) - stopping all remaining scans", "STOPPING")
                break

        result.elapsed_seconds = time.monotonic() - start_time
        result.probes_completed = self.state.completed
        return result

    def _announce(self, address_range, index, count):
        if self.reporter is None:
            logger.info("Scanning {} IPs in range {}", address_range.size, address_range.cidr)
            return
        self.reporter.rule()
        self.reporter.log(f"➤ Scanning {address_range.size} IPs in range {address_range.cidr}", "RANGE_START",
                          f"range {index}/{count}, {address_range.first} - {address_range.last}")
        self.reporter.rule()
