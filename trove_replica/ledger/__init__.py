"""Pure trove ledger core — decode, aggregate, sort and derive. No I/O."""
from .aggregator import aggregate_troves, collect_debts, join_troves
from .decoder import RecordKind, decode, try_decode
from .liquidation import select_liquidatable
from .ratio import compute_ratio, reprice_positions
from .redemption import net_after_fee, plan_redemption
from .rewards import compounded_stake, effective_compounded_stake, pending_gain
from .sorted_index import find_neighbors, sort_positions

__all__ = [
    "RecordKind",
    "aggregate_troves",
    "collect_debts",
    "compounded_stake",
    "compute_ratio",
    "decode",
    "effective_compounded_stake",
    "find_neighbors",
    "join_troves",
    "net_after_fee",
    "pending_gain",
    "plan_redemption",
    "reprice_positions",
    "select_liquidatable",
    "sort_positions",
    "try_decode",
]
