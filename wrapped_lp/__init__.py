"""
Wrapped LP position engine.

Issues fungible shares valued in one side of a constant-product pool,
zaps single-sided deposits into pooled liquidity and corrects impermanent
loss or gain against a virtual-reserve snapshot.

NOTE: Collaborator interfaces and in-memory implementations live in
      wrapped_lp.gateways; configuration constants in wrapped_lp.utils.env
"""

from wrapped_lp.engine import WrappedLiquidityEngine
from wrapped_lp.errors import (
    WrappedLPError,
    ZeroAmount,
    UnsupportedAsset,
    InsufficientMint,
    SlippageExceeded,
    InsufficientShares,
    ReentrancyDetected,
    InsolventPosition,
)
from wrapped_lp.models import (
    TargetSide,
    AdjustmentAction,
    EngineConfig,
    Position,
    VirtualReserves,
    PoolSnapshot,
    LiquidityAdded,
    LiquidityRedeemed,
    Adjustment,
    AdjustmentResult,
    EngineState,
)

__all__ = [
    # Engine
    "WrappedLiquidityEngine",
    # Errors
    "WrappedLPError",
    "ZeroAmount",
    "UnsupportedAsset",
    "InsufficientMint",
    "SlippageExceeded",
    "InsufficientShares",
    "ReentrancyDetected",
    "InsolventPosition",
    # Models
    "TargetSide",
    "AdjustmentAction",
    "EngineConfig",
    "Position",
    "VirtualReserves",
    "PoolSnapshot",
    "LiquidityAdded",
    "LiquidityRedeemed",
    "Adjustment",
    "AdjustmentResult",
    "EngineState",
]
