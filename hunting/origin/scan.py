import asyncio
from typing import List, Optional

from hunting.origin.models import VERSION, ProbeOutcome, ScanConfig, ScanResult
from hunting.origin.services import Dispatcher, Prober, ScanOrchestrator, ScanState
from hunting.origin.services.address_range import parse_address
from hunting.origin.utils.logger import Logger


class OriginScanner:
    def __init__(self, config: ScanConfig, stop_on_find: bool = True, reporter: Optional[Logger] = None,
                 probe=None, progress_every: int = 5000):
        self.config = config
        self.stop_on_find = stop_on_find
        self.logger = reporter or Logger()

        # One state per invocation, shared by every range
        self.state = ScanState()
        self.prober = Prober(config, self.state)
        self.dispatcher = Dispatcher(probe or self.prober.probe, self.state, config.max_concurrent,
                                     reporter=self.logger, progress_every=progress_every)
        self.scan_orchestrator = ScanOrchestrator(self.dispatcher, self.state, self.logger)

    def print_banner(self):
        self.logger.rule()
        self.logger.log(f"🔍 origin-hunting v{VERSION}", "BANNER", "reverse proxy backend scanner")
        self.logger.rule()

    def print_configuration(self, range_count: int, custom_headers: int = 0):
        self.logger.rule()
        self.logger.log("⚙ Scan Configuration", "CONFIG")
        self.logger.rule()
        self.logger.log(f"  → Target domain: {self.config.host}", "CONFIG")
        self.logger.log(f"  → HTTP method: {self.config.method.value}", "CONFIG")
        self.logger.log(f"  → Port: {self.config.port}", "CONFIG")
        self.logger.log(f"  → Target status: {self.config.status_code}", "CONFIG")
        if self.config.content_pattern is not None:
            self.logger.log(f"  → Content match: {self.config.content_pattern.pattern}", "CONFIG")
        if custom_headers:
            self.logger.log(f"  → Custom headers: {custom_headers} header(s)", "CONFIG")
        self.logger.log(f"  → IP ranges: {range_count}", "CONFIG")
        self.logger.log(f"  → Concurrent workers: {self.config.max_concurrent}", "CONFIG")
        self.logger.log(f"  → Timeout: {self.config.timeout_ms}ms", "CONFIG")
        self.logger.log(f"  → Stop on find: {self.stop_on_find}", "CONFIG")

    def run_scan(self, ranges: List[str]) -> ScanResult:
        """Main entry point - runs the orchestrator on a fresh event loop"""
        result = asyncio.run(self.scan_orchestrator.run_scan(ranges, stop_on_find=self.stop_on_find))
        self.print_summary(result)
        return result

    def run_single(self, address: str) -> ProbeOutcome:
        """Probe one literal address, skipping range expansion"""
        address = parse_address(address)
        self.logger.log(f"➤ Scanning single IP: {address}:{self.config.port}", "SINGLE_IP")

        outcome = asyncio.run(self.dispatcher.probe(address))
        if outcome.is_match:
            self.logger.log(f"✓ {outcome.address}", "FOUND", outcome.describe())
        else:
            self.logger.log(f"✗ No matching response from {address}", "NOT_FOUND", outcome.describe())
        return outcome

    def print_summary(self, result: ScanResult):
        self.logger.rule()
        self.logger.log(f"✓ Scan completed in {result.elapsed_seconds:.2f}s", "SCAN_COMPLETE",
                        f"ranges scanned: {result.ranges_scanned}, skipped: {result.ranges_skipped}, "
                        f"probes: {result.probes_completed}")
        self.logger.rule()

        if not result.matches:
            self.logger.log("✗ No matching IPs found", "NOT_FOUND")
            return

        self.logger.log(f"✓ Found {len(result.matches)} backend IP(s):", "RESULT")
        for outcome in result.matches:
            self.logger.log(f"  → {outcome.address}", "RESULT", outcome.describe())
