"""
Wrapped LP engine: deposit, redemption and adjustment entry points.

Every state-mutating entry point runs under a re-entrancy guard and an
atomic scope covering the engine's book and every checkpointable
collaborator, so a failure anywhere leaves no partial state behind.
"""
import logging
import time
from contextlib import contextmanager
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel

from wrapped_lp.accountant import ShareAccountant
from wrapped_lp.errors import SlippageExceeded, UnsupportedAsset, WrappedLPError, ZeroAmount
from wrapped_lp.gateways.base import Checkpointable, PoolGateway
from wrapped_lp.guard import ReentrancyGuard, atomic
from wrapped_lp.ledger import PositionLedger
from wrapped_lp.models import (
    Adjustment,
    AdjustmentAction,
    AdjustmentResult,
    EngineConfig,
    EngineState,
    LiquidityAdded,
    LiquidityRedeemed,
    TargetSide,
)
from wrapped_lp.rebalancer import Rebalancer
from wrapped_lp.utils.math import ConstantProductMath
from wrapped_lp.zap import AssetRef, ZapEngine

logger = logging.getLogger(__name__)

EngineEvent = Union[LiquidityAdded, LiquidityRedeemed, Adjustment]


class WrappedLiquidityEngine:
    """
    Issues shares valued in one side (the target asset) of a constant-product
    pool, backed by pooled liquidity plus an undeployed target reserve.

    Usage:
        engine = WrappedLiquidityEngine(pool, target_asset="USDC")
        pool.token0.approve(alice, engine.address, amount)
        shares = engine.add_liquidity(alice, "USDC", amount)
        engine.redeem_liquidity(alice, shares, min_target_out=quote)
    """

    def __init__(
        self,
        pool: PoolGateway,
        target_asset: AssetRef,
        config: Optional[EngineConfig] = None,
        address: str = "wrapped-lp",
    ):
        """
        Args:
            pool: Pool the engine supplies liquidity to
            target_asset: Symbol or ledger of the valuation asset; fixes the target side
            config: Rebalancer and fee configuration (defaults from the environment)
            address: Account holding the engine's assets on the ledgers
        """
        if pool.token0 is target_asset or pool.token0.symbol == target_asset:
            target_side = TargetSide.TOKEN0
        elif pool.token1 is target_asset or pool.token1.symbol == target_asset:
            target_side = TargetSide.TOKEN1
        else:
            raise UnsupportedAsset(
                f"Target {target_asset} is not one of {pool.token0.symbol}/{pool.token1.symbol}"
            )

        self.address = address
        self.pool = pool
        self.config = config or EngineConfig()
        self.ledger = PositionLedger(pool, target_side)
        self.zap = ZapEngine(pool, self.ledger, address)
        self.rebalancer = Rebalancer(self.ledger, self.zap, self.config)
        self.accountant = ShareAccountant()
        self.events: List[EngineEvent] = []
        self._guard = ReentrancyGuard()

        logger.info(
            f"Initialized engine {address} on {pool.token0.symbol}/{pool.token1.symbol}, "
            f"target {self.zap.target_token.symbol} (token{target_side.value})"
        )

    @property
    def target_side(self) -> TargetSide:
        return self.ledger.target_side

    def _participants(self) -> List[Checkpointable]:
        collaborators = [
            self.pool,
            self.pool.token0,
            self.pool.token1,
            self.pool.liquidity_token,
        ]
        return [self.ledger, self.accountant] + [
            c for c in collaborators if isinstance(c, Checkpointable)
        ]

    @contextmanager
    def _operation(self, name: str):
        with self._guard.enter(name):
            emitted = len(self.events)
            try:
                with atomic(self._participants()):
                    yield
            except Exception as e:
                # Events of an aborted operation never happened
                del self.events[emitted:]
                if isinstance(e, WrappedLPError):
                    logger.warning(f"{name} aborted: {e}")
                raise

    def _emit(self, event: BaseModel) -> None:
        self.events.append(event)
        logger.info(f"{type(event).__name__}: {event.model_dump()}")

    def _adjust(self) -> AdjustmentResult:
        result = self.rebalancer.adjust()
        if result.action != AdjustmentAction.NONE:
            self._emit(Adjustment(timestamp=int(time.time())))
        return result

    # -----------------------------
    # Entry points
    # -----------------------------

    def add_liquidity(self, depositor: str, asset_in: AssetRef, amount_in: int) -> int:
        """
        Deposit either pool asset and receive engine shares.

        The depositor must have approved the engine for `amount_in`.

        Returns:
            Shares minted, priced off the NAV before the deposit

        Raises:
            ZeroAmount: If amount_in is zero or too small to mint a share
            UnsupportedAsset: If asset_in is not one of the pool's assets
            InsufficientMint: If the pool issues no liquidity
        """
        if amount_in <= 0:
            raise ZeroAmount("Deposit amount must be positive")
        self.zap.resolve(asset_in)

        with self._operation("add_liquidity"):
            self._adjust()
            nav_before = self.total_supplied_assets()
            target_value = self.zap.zap_in(depositor, asset_in, amount_in)
            shares_out = self.accountant.mint(depositor, target_value, nav_before)
            self.zap.supply_half_and_half(target_value)
            self._emit(LiquidityAdded(depositor=depositor, amount_in=amount_in, shares_out=shares_out))
        return shares_out

    def redeem_liquidity(self, holder: str, shares_in: int, min_target_out: int) -> int:
        """
        Redeem shares for target asset by reversing the zap.

        The holder receives the pro-rata slice of the target reserve plus the
        zapped-out pro-rata slice of the pooled liquidity. The payout is what
        the zap realizes at live reserves, not the book value of the shares.
        A liquidity slice too small to burn into both assets stays pooled.

        Returns:
            Target asset paid to the holder

        Raises:
            InsufficientShares: If the holder owns fewer than shares_in
            SlippageExceeded: If the payout is below min_target_out
        """
        with self._operation("redeem_liquidity"):
            self._adjust()
            supply = self.accountant.total_supply
            self.accountant.burn(holder, shares_in, self.total_supplied_assets())

            liquidity = self.ledger.pooled_liquidity
            target_reserve = self.ledger.target_reserve
            liquidity_slice = self._withdrawable_slice(shares_in, supply)
            reserve_slice = ConstantProductMath.mul_div(target_reserve, shares_in, supply)

            target_out = reserve_slice
            if liquidity_slice > 0:
                target_out += self.zap.zap_out(liquidity_slice)
            if target_out < min_target_out:
                raise SlippageExceeded(target_out, min_target_out)

            self.ledger.write(liquidity - liquidity_slice, target_reserve - reserve_slice)
            if target_out > 0:
                self.zap.target_token.transfer(self.address, holder, target_out)
            self._emit(LiquidityRedeemed(holder=holder, shares_in=shares_in, target_out=target_out))
        return target_out

    def _withdrawable_slice(self, shares_in: int, supply: int) -> int:
        """Pro-rata liquidity slice, or 0 when the pool cannot zap it out."""
        liquidity_slice = ConstantProductMath.mul_div(self.ledger.pooled_liquidity, shares_in, supply)
        if liquidity_slice > 0 and not self.zap.can_withdraw(liquidity_slice):
            logger.debug(f"Liquidity slice {liquidity_slice} is dust; leaving it pooled")
            return 0
        return liquidity_slice

    def safe_redeem_liquidity(self, holder: str, shares_in: int) -> Tuple[int, int]:
        """
        Redeem shares for the raw pro-rata slice without touching the pool.

        Returns:
            Tuple of (target asset paid, pool liquidity-share units paid)
        """
        with self._operation("safe_redeem_liquidity"):
            supply = self.accountant.total_supply
            nav_before = self.total_supplied_assets()
            self.accountant.burn(holder, shares_in, nav_before)

            liquidity = self.ledger.pooled_liquidity
            target_reserve = self.ledger.target_reserve
            liquidity_out = ConstantProductMath.mul_div(liquidity, shares_in, supply)
            target_out = ConstantProductMath.mul_div(target_reserve, shares_in, supply)

            self.ledger.write(liquidity - liquidity_out, target_reserve - target_out)
            if target_out > 0:
                self.zap.target_token.transfer(self.address, holder, target_out)
            if liquidity_out > 0:
                self.pool.liquidity_token.transfer(self.address, holder, liquidity_out)
            self._emit(LiquidityRedeemed(holder=holder, shares_in=shares_in, target_out=target_out))
        return target_out, liquidity_out

    def adjust(self) -> AdjustmentResult:
        """Run the rebalancer explicitly; a no-op while drift is inside the band."""
        with self._operation("adjust"):
            return self._adjust()

    # -----------------------------
    # Queries
    # -----------------------------

    def should_adjust(self) -> bool:
        return self.rebalancer.should_adjust()

    def total_supplied_assets(self) -> int:
        """Book NAV: target reserve plus twice the snapshot target reserve."""
        return self.ledger.target_reserve + 2 * self.ledger.virtual_target

    def unrealized_assets(self) -> int:
        """Live NAV: target reserve plus twice the live attributable target reserve."""
        return self.ledger.target_reserve + 2 * self.ledger.attributable_target()

    def virtual_ratio(self) -> int:
        """Book NAV per share, scaled by UNIT."""
        return ConstantProductMath.ratio(self.total_supplied_assets(), self.accountant.total_supply)

    def unrealized_ratio(self) -> int:
        """Live NAV per share, scaled by UNIT. Informational; never used for pricing."""
        return ConstantProductMath.ratio(self.unrealized_assets(), self.accountant.total_supply)

    def balance_of(self, holder: str) -> int:
        return self.accountant.balance_of(holder)

    def quote_redeem(self, shares_in: int) -> int:
        """Estimate `redeem_liquidity(shares_in)` at live reserves, ignoring any pending adjustment."""
        supply = self.accountant.total_supply
        if shares_in <= 0 or supply == 0:
            return 0
        liquidity_slice = self._withdrawable_slice(shares_in, supply)
        reserve_slice = ConstantProductMath.mul_div(self.ledger.target_reserve, shares_in, supply)
        return reserve_slice + self.zap.quote_out(liquidity_slice)

    def state(self) -> EngineState:
        return EngineState(
            target_symbol=self.zap.target_token.symbol,
            target_side=self.target_side,
            position=self.ledger.position.model_copy(),
            virtual_reserves=self.ledger.virtual_reserves.model_copy(),
            share_supply=self.accountant.total_supply,
            total_supplied_assets=self.total_supplied_assets(),
            unrealized_assets=self.unrealized_assets(),
            virtual_ratio=self.virtual_ratio(),
            unrealized_ratio=self.unrealized_ratio(),
            should_adjust=self.should_adjust(),
        )
