"""
Data models for the wrapped LP engine.

Position and VirtualReserves are the engine's mutable book; the rest are
configuration, collaborator snapshots, events and reports.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wrapped_lp.utils.env import (
    CORRECTION_THRESHOLD_PPT,
    FEE_RECIPIENT,
    MAX_PERFORMANCE_FEE_BPS,
    PERFORMANCE_FEE_BPS,
)


class TargetSide(int, Enum):
    """Which pool asset is the valuation (target) asset."""
    TOKEN0 = 0
    TOKEN1 = 1

    @property
    def other(self) -> "TargetSide":
        return TargetSide(1 - self.value)


class AdjustmentAction(str, Enum):
    """What a rebalancer step did."""
    NONE = "none"
    HARVEST = "harvest"
    TOP_UP = "top_up"
    REBASELINE = "rebaseline"


class EngineConfig(BaseModel):
    """Rebalancer and fee configuration."""
    correction_threshold_ppt: int = Field(
        CORRECTION_THRESHOLD_PPT, gt=0, lt=1000,
        description="Drift band in parts-per-thousand (500 = +/-50%)",
    )
    performance_fee_bps: int = Field(
        PERFORMANCE_FEE_BPS, ge=0, le=10_000,
        description="Fee on harvested profit when drift sits exactly on the band",
    )
    max_performance_fee_bps: int = Field(
        MAX_PERFORMANCE_FEE_BPS, ge=0, le=10_000,
        description="Cap on the drift-scaled performance fee",
    )
    fee_recipient: str = Field(FEE_RECIPIENT, description="Receiver of performance fees")

    @model_validator(mode='after')
    def validate_fee_cap(self) -> 'EngineConfig':
        """Ensure the cap is not below the base fee."""
        if self.max_performance_fee_bps < self.performance_fee_bps:
            raise ValueError("max_performance_fee_bps must be >= performance_fee_bps")
        return self


class Position(BaseModel):
    """The engine's claim: pooled liquidity plus undeployed target asset."""
    model_config = ConfigDict(validate_assignment=True)

    pooled_liquidity: int = Field(0, ge=0, description="Pool liquidity-share units held")
    target_reserve: int = Field(0, ge=0, description="Target asset held outside the pool")


class VirtualReserves(BaseModel):
    """Pool reserves attributable to the pooled liquidity at the last write."""
    model_config = ConfigDict(validate_assignment=True)

    reserve0: int = Field(0, ge=0)
    reserve1: int = Field(0, ge=0)

    def side(self, side: TargetSide) -> int:
        return self.reserve0 if side == TargetSide.TOKEN0 else self.reserve1


class PoolSnapshot(BaseModel):
    """Point-in-time view of a pair, e.g. read from chain."""
    pair_address: Optional[str] = Field(None, description="Pair address, if on-chain")
    symbol0: str = Field(..., description="Symbol of token0")
    symbol1: str = Field(..., description="Symbol of token1")
    decimals0: int = Field(18, ge=0)
    decimals1: int = Field(18, ge=0)
    reserve0: int = Field(..., gt=0, description="Reserve of token0 in base units")
    reserve1: int = Field(..., gt=0, description="Reserve of token1 in base units")
    total_supply: int = Field(0, ge=0, description="Liquidity-share supply")
    fee_bps: int = Field(30, ge=0, lt=10_000, description="Swap fee in basis points")
    block_timestamp_last: int = Field(0, ge=0)


class LiquidityAdded(BaseModel):
    depositor: str
    amount_in: int
    shares_out: int


class LiquidityRedeemed(BaseModel):
    holder: str
    shares_in: int
    target_out: int


class Adjustment(BaseModel):
    timestamp: int


class AdjustmentResult(BaseModel):
    """Outcome of one rebalancer step."""
    action: AdjustmentAction = Field(AdjustmentAction.NONE)
    drift_ppt: int = Field(1000, description="Attributable / snapshot target reserve, in PPT")
    liquidity_delta: int = Field(0, description="Change in pooled liquidity")
    target_reserve_delta: int = Field(0, description="Change in target reserve")
    profit: int = Field(0, ge=0, description="Realized profit before fees (harvest only)")
    fee: int = Field(0, ge=0, description="Performance fee paid (harvest only)")


class EngineState(BaseModel):
    """Read-only report of the engine's book."""
    target_symbol: str
    target_side: TargetSide
    position: Position
    virtual_reserves: VirtualReserves
    share_supply: int
    total_supplied_assets: int
    unrealized_assets: int
    virtual_ratio: int
    unrealized_ratio: int
    should_adjust: bool
