"""
In-memory collaborators: a fungible-token ledger and a constant-product pair.

These mirror the semantics of an x * y = k pair contract closely enough to
drive the engine in simulations and tests: tokens are transferred to the pool
first, then `swap`, `mint` or `burn` settles against the pool's balances.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from wrapped_lp.errors import (
    ConstantProductViolation,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientLiquidity,
    ZeroAmount,
)
from wrapped_lp.gateways.base import AssetLedger, Checkpointable, PoolGateway
from wrapped_lp.models import PoolSnapshot
from wrapped_lp.utils.math import ConstantProductMath

logger = logging.getLogger(__name__)

DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"


class TokenLedger(AssetLedger, Checkpointable):
    """Balances and allowances for a single fungible asset."""

    def __init__(self, symbol: str, decimals: int = 18, transfer_fee_bps: int = 0):
        """
        Args:
            symbol: Asset symbol, also used as the asset identifier
            decimals: Display decimals
            transfer_fee_bps: Fee burned on every transfer (fee-on-transfer assets)
        """
        self.symbol = symbol
        self.decimals = decimals
        self.transfer_fee_bps = transfer_fee_bps
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}

    def __repr__(self) -> str:
        return f"TokenLedger({self.symbol}, supply={self.total_supply})"

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def issue(self, account: str, amount: int) -> None:
        """Create `amount` new units for `account`."""
        self._balances[account] = self.balance_of(account) + amount
        self.total_supply += amount

    def destroy(self, account: str, amount: int) -> None:
        """Remove `amount` units from `account`."""
        balance = self.balance_of(account)
        if amount > balance:
            raise InsufficientBalance(
                f"{self.symbol}: {account} holds {balance}, cannot destroy {amount}"
            )
        self._balances[account] = balance - amount
        self.total_supply -= amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must not be negative")
        balance = self.balance_of(sender)
        if amount > balance:
            raise InsufficientBalance(
                f"{self.symbol}: {sender} holds {balance}, cannot transfer {amount}"
            )
        fee = amount * self.transfer_fee_bps // ConstantProductMath.BPS
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount - fee
        self.total_supply -= fee

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise InsufficientAllowance(
                f"{self.symbol}: {spender} may move {allowed} from {owner}, not {amount}"
            )
        self.transfer(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def checkpoint(self) -> Any:
        return dict(self._balances), dict(self._allowances), self.total_supply

    def restore(self, state: Any) -> None:
        balances, allowances, total_supply = state
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self.total_supply = total_supply


class ConstantProductPool(PoolGateway, Checkpointable):
    """
    Two-asset x * y = k pair with a liquidity-share token.

    `on_swap` is invoked after the optimistic transfer of a swap's output and
    before the invariant check, the point where a real pair calls back into
    the recipient.
    """

    def __init__(
        self,
        token0: TokenLedger,
        token1: TokenLedger,
        fee_bps: int = 30,
        address: str = "pool",
    ):
        self.address = address
        self.token0 = token0
        self.token1 = token1
        self.fee_bps = fee_bps
        self.liquidity_token = TokenLedger(f"{token0.symbol}-{token1.symbol}-LP", decimals=18)
        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.on_swap: Optional[Callable[[str, int, int], None]] = None

    def __repr__(self) -> str:
        return (
            f"ConstantProductPool({self.token0.symbol}/{self.token1.symbol}, "
            f"reserves=({self.reserve0}, {self.reserve1}), "
            f"supply={self.total_liquidity_supply()})"
        )

    @classmethod
    def from_snapshot(cls, snapshot: PoolSnapshot, seeder: str = "seeder") -> "ConstantProductPool":
        """
        Build a pool whose reserves match `snapshot`.

        The seeding liquidity is minted to `seeder`; the pool's liquidity-share
        supply matches the snapshot's only if the snapshot came from a pair
        with a single historical deposit, so callers should treat share
        amounts as relative.
        """
        pool = cls(
            TokenLedger(snapshot.symbol0, snapshot.decimals0),
            TokenLedger(snapshot.symbol1, snapshot.decimals1),
            fee_bps=snapshot.fee_bps,
            address=snapshot.pair_address or "pool",
        )
        pool.seed(seeder, snapshot.reserve0, snapshot.reserve1)
        return pool

    def seed(self, provider: str, amount0: int, amount1: int) -> int:
        """Issue both assets to `provider` and add them as liquidity."""
        self.token0.issue(provider, amount0)
        self.token1.issue(provider, amount1)
        self.token0.transfer(provider, self.address, amount0)
        self.token1.transfer(provider, self.address, amount1)
        return self.mint(provider)

    def reserves(self) -> Tuple[int, int, int]:
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def total_liquidity_supply(self) -> int:
        return self.liquidity_token.total_supply

    def _update(self, balance0: int, balance1: int) -> None:
        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = int(time.time())

    def sync(self) -> None:
        """Force reserves to match balances."""
        self._update(
            self.token0.balance_of(self.address),
            self.token1.balance_of(self.address),
        )

    def swap(self, amount0_out: int, amount1_out: int, recipient: str) -> None:
        if amount0_out <= 0 and amount1_out <= 0:
            raise ZeroAmount("Swap must request some output")
        if amount0_out >= self.reserve0 or amount1_out >= self.reserve1:
            raise InsufficientLiquidity(
                f"Swap output ({amount0_out}, {amount1_out}) exceeds reserves "
                f"({self.reserve0}, {self.reserve1})"
            )

        if amount0_out > 0:
            self.token0.transfer(self.address, recipient, amount0_out)
        if amount1_out > 0:
            self.token1.transfer(self.address, recipient, amount1_out)
        if self.on_swap is not None:
            self.on_swap(recipient, amount0_out, amount1_out)

        balance0 = self.token0.balance_of(self.address)
        balance1 = self.token1.balance_of(self.address)
        amount0_in = max(0, balance0 - (self.reserve0 - amount0_out))
        amount1_in = max(0, balance1 - (self.reserve1 - amount1_out))
        if amount0_in <= 0 and amount1_in <= 0:
            raise ZeroAmount("Swap received no input")

        bps = ConstantProductMath.BPS
        adjusted0 = balance0 * bps - amount0_in * self.fee_bps
        adjusted1 = balance1 * bps - amount1_in * self.fee_bps
        if adjusted0 * adjusted1 < self.reserve0 * self.reserve1 * bps * bps:
            raise ConstantProductViolation(
                f"Swap in=({amount0_in}, {amount1_in}) out=({amount0_out}, {amount1_out}) breaks k"
            )

        self._update(balance0, balance1)
        logger.debug(
            f"Swap in=({amount0_in}, {amount1_in}) out=({amount0_out}, {amount1_out}) "
            f"reserves=({balance0}, {balance1})"
        )

    def mint(self, recipient: str) -> int:
        balance0 = self.token0.balance_of(self.address)
        balance1 = self.token1.balance_of(self.address)
        amount0 = balance0 - self.reserve0
        amount1 = balance1 - self.reserve1
        total_supply = self.total_liquidity_supply()

        liquidity = ConstantProductMath.liquidity_for_amounts(
            amount0, amount1, self.reserve0, self.reserve1, total_supply
        )
        if liquidity <= 0:
            logger.warning(f"Mint of ({amount0}, {amount1}) issues no liquidity")
            return 0

        if total_supply == 0:
            self.liquidity_token.issue(DEAD_ADDRESS, ConstantProductMath.MINIMUM_LIQUIDITY)
        self.liquidity_token.issue(recipient, liquidity)
        self._update(balance0, balance1)
        logger.debug(f"Minted {liquidity} liquidity to {recipient} for ({amount0}, {amount1})")
        return liquidity

    def burn(self, recipient: str) -> Tuple[int, int]:
        liquidity = self.liquidity_token.balance_of(self.address)
        amount0, amount1 = ConstantProductMath.amounts_for_liquidity(
            liquidity,
            self.token0.balance_of(self.address),
            self.token1.balance_of(self.address),
            self.total_liquidity_supply(),
        )
        if amount0 <= 0 or amount1 <= 0:
            raise InsufficientLiquidity(f"Burning {liquidity} liquidity releases nothing")

        self.liquidity_token.destroy(self.address, liquidity)
        self.token0.transfer(self.address, recipient, amount0)
        self.token1.transfer(self.address, recipient, amount1)
        self.sync()
        logger.debug(f"Burned {liquidity} liquidity to {recipient} for ({amount0}, {amount1})")
        return amount0, amount1

    def checkpoint(self) -> Any:
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def restore(self, state: Any) -> None:
        self.reserve0, self.reserve1, self.block_timestamp_last = state


def swap_exact_in(pool: PoolGateway, trader: str, asset_in: AssetLedger, amount_in: int) -> int:
    """
    Sell `amount_in` of `asset_in` held by `trader` into `pool`.

    The output is quoted against the amount the pool actually received, so
    fee-on-transfer inputs settle correctly.

    Returns:
        Amount of the opposite asset sent to `trader`
    """
    zero_for_one = asset_in is pool.token0
    if not zero_for_one and asset_in is not pool.token1:
        raise ValueError(f"{asset_in.symbol} is not traded by this pool")

    reserve0, reserve1, _ = pool.reserves()
    reserve_in, reserve_out = (reserve0, reserve1) if zero_for_one else (reserve1, reserve0)

    asset_in.transfer(trader, pool.address, amount_in)
    received = asset_in.balance_of(pool.address) - reserve_in
    amount_out = ConstantProductMath.get_amount_out(
        received, reserve_in, reserve_out, pool.fee_bps
    )
    if zero_for_one:
        pool.swap(0, amount_out, trader)
    else:
        pool.swap(amount_out, 0, trader)
    return amount_out
