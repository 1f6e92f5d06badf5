import os
from dataclasses import dataclass

import psutil
from loguru import logger

GIB = 1024 ** 3


@dataclass(frozen=True)
class Capabilities:
    cpu_count: int
    memory_gb: int
    concurrency: int
    timeout_ms: int


def suggest(cpu_count: int, memory_gb: int) -> Capabilities:
    """
    Pick default concurrency and timeout for a host.

    Concurrency follows RAM: 16GB+ -> 10000, 8GB+ -> 5000, 4GB+ -> 2000,
    otherwise 1000. Timeout follows RAM and CPU together: 300ms needs 16GB
    and 8 cores, 500ms needs 4GB and 4 cores, anything smaller gets 1000ms.
    """
    if memory_gb >= 16:
        concurrency = 10000
    elif memory_gb >= 8:
        concurrency = 5000
    elif memory_gb >= 4:
        concurrency = 2000
    else:
        concurrency = 1000

    if memory_gb >= 16 and cpu_count >= 8:
        timeout_ms = 300
    elif memory_gb >= 4 and cpu_count >= 4:
        timeout_ms = 500
    else:
        timeout_ms = 1000

    return Capabilities(cpu_count=cpu_count, memory_gb=memory_gb,
                        concurrency=concurrency, timeout_ms=timeout_ms)


class SystemProfiler:
    """One-shot look at the local machine to derive scan defaults."""

    def detect(self) -> Capabilities:
        cpu_count = psutil.cpu_count(logical=True) or os.cpu_count() or 1
        memory_gb = psutil.virtual_memory().total // GIB

        caps = suggest(cpu_count, memory_gb)
        logger.info("Auto-detected system capabilities | CPU cores: {}, RAM: {} GB", cpu_count, memory_gb)
        logger.info("Suggested defaults | concurrent workers: {}, timeout: {}ms",
                    caps.concurrency, caps.timeout_ms)
        return caps
