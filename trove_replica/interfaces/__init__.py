"""Protocol interfaces for the trove replica."""
from .chain import ChainClient
from .notifier import Notifier
from .price_oracle import PriceOracle
from .protocol_adapter import ProtocolAdapter

__all__ = ["ChainClient", "Notifier", "PriceOracle", "ProtocolAdapter"]
