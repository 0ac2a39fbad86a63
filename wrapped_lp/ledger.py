"""
Position ledger and virtual-reserve tracker.

The position and its virtual-reserve snapshot are only ever written
together, through `write`, so the snapshot always describes the pooled
liquidity it sits next to.
"""
import logging
from typing import Any, Tuple

from wrapped_lp.gateways.base import Checkpointable, PoolGateway
from wrapped_lp.models import Position, TargetSide, VirtualReserves
from wrapped_lp.utils.math import ConstantProductMath

logger = logging.getLogger(__name__)


class PositionLedger(Checkpointable):
    """Engine's claim on the pool and the baseline drift is measured against."""

    def __init__(self, pool: PoolGateway, target_side: TargetSide):
        self.pool = pool
        self.target_side = target_side
        self.position = Position()
        self.virtual_reserves = VirtualReserves()

    @property
    def pooled_liquidity(self) -> int:
        return self.position.pooled_liquidity

    @property
    def target_reserve(self) -> int:
        return self.position.target_reserve

    @property
    def virtual_target(self) -> int:
        return self.virtual_reserves.side(self.target_side)

    def attributable_reserves(self) -> Tuple[int, int]:
        """Live pool reserves attributable to the pooled liquidity."""
        reserve0, reserve1, _ = self.pool.reserves()
        return ConstantProductMath.amounts_for_liquidity(
            self.position.pooled_liquidity,
            reserve0,
            reserve1,
            self.pool.total_liquidity_supply(),
        )

    def attributable_target(self) -> int:
        return self.attributable_reserves()[self.target_side.value]

    def write(self, pooled_liquidity: int, target_reserve: int) -> None:
        """Replace the position and re-snapshot the virtual reserves from the live pool."""
        if pooled_liquidity > self.pool.total_liquidity_supply():
            raise ValueError(
                f"Pooled liquidity {pooled_liquidity} exceeds pool supply "
                f"{self.pool.total_liquidity_supply()}"
            )
        self.position = Position(
            pooled_liquidity=pooled_liquidity,
            target_reserve=target_reserve,
        )
        reserve0, reserve1 = self.attributable_reserves()
        self.virtual_reserves = VirtualReserves(reserve0=reserve0, reserve1=reserve1)
        logger.debug(
            f"Position written: liquidity={pooled_liquidity}, reserve={target_reserve}, "
            f"virtual=({reserve0}, {reserve1})"
        )

    def checkpoint(self) -> Any:
        return self.position.model_copy(), self.virtual_reserves.model_copy()

    def restore(self, state: Any) -> None:
        self.position, self.virtual_reserves = state
