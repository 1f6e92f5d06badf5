from .address_range import AddressRange
from .prober import Prober
from .dispatcher import Dispatcher
from .scan_state import ScanState
from .capabilities import SystemProfiler
from .initiator import ScanOrchestrator

__all__ = [
    'AddressRange',
    'Prober',
    'Dispatcher',
    'ScanState',
    'SystemProfiler',
    'ScanOrchestrator'
]
