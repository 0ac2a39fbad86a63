"""
Zap engine: single-sided value in and out of a constant-product pool.

All amounts are measured as realized balance deltas on the engine's own
account rather than trusted from quotes, so fee-on-transfer assets and
rounding in the pool settle correctly.
"""
import logging
from typing import Union

from wrapped_lp.errors import InsufficientMint, SlippageExceeded, UnsupportedAsset, ZeroAmount
from wrapped_lp.gateways.base import AssetLedger, PoolGateway
from wrapped_lp.ledger import PositionLedger
from wrapped_lp.utils.math import ConstantProductMath

logger = logging.getLogger(__name__)

AssetRef = Union[str, AssetLedger]


class ZapEngine:
    """Converts between the target asset and the pool's balanced pair."""

    def __init__(self, pool: PoolGateway, ledger: PositionLedger, account: str):
        """
        Args:
            pool: Pool the position lives in
            ledger: Position ledger updated by `supply_half_and_half`
            account: Address holding the engine's assets
        """
        self.pool = pool
        self.ledger = ledger
        self.account = account

    @property
    def target_token(self) -> AssetLedger:
        return self.pool.token0 if self.ledger.target_side.value == 0 else self.pool.token1

    @property
    def other_token(self) -> AssetLedger:
        return self.pool.token1 if self.ledger.target_side.value == 0 else self.pool.token0

    def resolve(self, asset: AssetRef) -> AssetLedger:
        """Map a symbol or ledger to one of the pool's two assets."""
        for token in (self.pool.token0, self.pool.token1):
            if asset is token or asset == token.symbol:
                return token
        symbol = asset if isinstance(asset, str) else getattr(asset, "symbol", repr(asset))
        raise UnsupportedAsset(
            f"{symbol} is not one of {self.pool.token0.symbol}/{self.pool.token1.symbol}"
        )

    def _swap(self, token_in: AssetLedger, amount_in: int) -> int:
        """
        Sell `amount_in` of `token_in` held by the engine into the pool.

        Returns:
            Amount of the opposite asset actually received
        """
        zero_for_one = token_in is self.pool.token0
        token_out = self.pool.token1 if zero_for_one else self.pool.token0

        reserve0, reserve1, _ = self.pool.reserves()
        reserve_in, reserve_out = (reserve0, reserve1) if zero_for_one else (reserve1, reserve0)

        token_in.transfer(self.account, self.pool.address, amount_in)
        received = token_in.balance_of(self.pool.address) - reserve_in
        amount_out = ConstantProductMath.get_amount_out(
            received, reserve_in, reserve_out, self.pool.fee_bps
        )
        if amount_out == 0:
            raise ZeroAmount(f"Swapping {amount_in} {token_in.symbol} yields nothing")

        before = token_out.balance_of(self.account)
        if zero_for_one:
            self.pool.swap(0, amount_out, self.account)
        else:
            self.pool.swap(amount_out, 0, self.account)
        realized = token_out.balance_of(self.account) - before

        logger.debug(
            f"Swapped {amount_in} {token_in.symbol} for {realized} {token_out.symbol}"
        )
        return realized

    def zap_in(self, depositor: str, asset_in: AssetRef, amount_in: int) -> int:
        """
        Pull `amount_in` of `asset_in` from `depositor` and convert it to target asset.

        Returns:
            Target-asset value received by the engine

        Raises:
            ZeroAmount: If amount_in is zero
            UnsupportedAsset: If asset_in is not one of the pool's assets
        """
        if amount_in <= 0:
            raise ZeroAmount("Deposit amount must be positive")
        token = self.resolve(asset_in)

        before = token.balance_of(self.account)
        token.transfer_from(self.account, depositor, self.account, amount_in)
        received = token.balance_of(self.account) - before
        if received == 0:
            raise ZeroAmount(f"Transfer of {amount_in} {token.symbol} delivered nothing")

        if token is self.target_token:
            return received
        return self._swap(token, received)

    def deploy(self, amount: int) -> int:
        """
        Supply `amount` of target asset held by the engine as a balanced pair.

        Half of `amount` is sent to the pool as-is, the rest is swapped into
        the pair asset first; both balances are then minted into liquidity.

        Returns:
            Liquidity issued by the pool

        Raises:
            InsufficientMint: If the pool issues no liquidity
        """
        if amount <= 0:
            raise ZeroAmount("Nothing to deploy")
        target_part = amount // 2
        other_part = self._swap(self.target_token, amount - target_part)

        self.target_token.transfer(self.account, self.pool.address, target_part)
        self.other_token.transfer(self.account, self.pool.address, other_part)
        liquidity_issued = self.pool.mint(self.account)
        if liquidity_issued <= 0:
            raise InsufficientMint(
                f"Pool issued no liquidity for {target_part} {self.target_token.symbol} "
                f"and {other_part} {self.other_token.symbol}"
            )

        logger.info(f"Deployed {amount} {self.target_token.symbol} for {liquidity_issued} liquidity")
        return liquidity_issued

    def can_deploy(self, amount: int) -> bool:
        """Whether `deploy(amount)` would swap and mint a non-zero amount at live reserves."""
        if amount < 2:
            return False
        reserve0, reserve1, _ = self.pool.reserves()
        if self.ledger.target_side.value == 0:
            reserve_target, reserve_other = reserve0, reserve1
        else:
            reserve_target, reserve_other = reserve1, reserve0
        if reserve_target <= 0 or reserve_other <= 0:
            return False

        target_part = amount // 2
        swap_in = amount - target_part
        other_part = ConstantProductMath.get_amount_out(
            swap_in, reserve_target, reserve_other, self.pool.fee_bps
        )
        supply = self.pool.total_liquidity_supply()
        liquidity = min(
            target_part * supply // (reserve_target + swap_in),
            other_part * supply // (reserve_other - other_part),
        )
        return liquidity > 0

    def supply_half_and_half(self, target_value: int) -> int:
        """
        Split `target_value` into a reserved half and a deployed half.

        The reserved half is credited to the target reserve (the buffer the
        rebalancer tops losses up from); the deployed half goes into the pool
        through `deploy`.

        Returns:
            Liquidity issued by the pool
        """
        deployed = target_value // 2
        reserved = target_value - deployed
        liquidity_issued = self.deploy(deployed)

        self.ledger.write(
            self.ledger.pooled_liquidity + liquidity_issued,
            self.ledger.target_reserve + reserved,
        )
        return liquidity_issued

    def zap_out(self, liquidity: int, min_target_out: int = 0) -> int:
        """
        Burn `liquidity` and convert both proceeds to target asset.

        Returns:
            Target asset received by the engine

        Raises:
            SlippageExceeded: If the result is below min_target_out
        """
        if liquidity <= 0:
            raise ZeroAmount("Nothing to withdraw")
        target_token = self.target_token
        other_token = self.other_token

        target_before = target_token.balance_of(self.account)
        other_before = other_token.balance_of(self.account)
        self.pool.liquidity_token.transfer(self.account, self.pool.address, liquidity)
        self.pool.burn(self.account)
        target_received = target_token.balance_of(self.account) - target_before
        other_received = other_token.balance_of(self.account) - other_before

        target_out = target_received
        if other_received > 0:
            target_out += self._swap(other_token, other_received)
        if target_out < min_target_out:
            raise SlippageExceeded(target_out, min_target_out)

        logger.info(f"Withdrew {liquidity} liquidity for {target_out} {target_token.symbol}")
        return target_out

    def can_withdraw(self, liquidity: int) -> bool:
        """Whether `zap_out(liquidity)` would burn into both assets and swap a non-zero amount."""
        if liquidity <= 0:
            return False
        reserve0, reserve1, _ = self.pool.reserves()
        amount0, amount1 = ConstantProductMath.amounts_for_liquidity(
            liquidity, reserve0, reserve1, self.pool.total_liquidity_supply()
        )
        if amount0 <= 0 or amount1 <= 0:
            return False
        if self.ledger.target_side.value == 0:
            other_amount, reserve_target, reserve_other = amount1, reserve0 - amount0, reserve1 - amount1
        else:
            other_amount, reserve_target, reserve_other = amount0, reserve1 - amount1, reserve0 - amount0
        if reserve_target <= 0 or reserve_other <= 0:
            return False
        return ConstantProductMath.get_amount_out(
            other_amount, reserve_other, reserve_target, self.pool.fee_bps
        ) > 0

    def quote_out(self, liquidity: int) -> int:
        """Estimate `zap_out(liquidity)` from live reserves without touching the pool."""
        if liquidity <= 0:
            return 0
        reserve0, reserve1, _ = self.pool.reserves()
        amount0, amount1 = ConstantProductMath.amounts_for_liquidity(
            liquidity, reserve0, reserve1, self.pool.total_liquidity_supply()
        )
        if self.ledger.target_side.value == 0:
            target_amount, other_amount = amount0, amount1
            reserve_target, reserve_other = reserve0 - amount0, reserve1 - amount1
        else:
            target_amount, other_amount = amount1, amount0
            reserve_target, reserve_other = reserve1 - amount1, reserve0 - amount0
        if other_amount == 0 or reserve_target <= 0 or reserve_other <= 0:
            return target_amount
        return target_amount + ConstantProductMath.get_amount_out(
            other_amount, reserve_other, reserve_target, self.pool.fee_bps
        )
