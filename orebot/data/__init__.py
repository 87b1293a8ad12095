from .ledger import LedgerReader
from .monitor import StateMonitor, ValueCell
from .price import ORE_MINT, SOL_MINT, PriceOracle, PriceRecord, extract_prices
from .snapshot_store import SnapshotStore

__all__ = [
    "LedgerReader",
    "StateMonitor",
    "ValueCell",
    "ORE_MINT",
    "SOL_MINT",
    "PriceOracle",
    "PriceRecord",
    "extract_prices",
    "SnapshotStore",
]
