"""
Share accounting for the wrapped LP engine.

Shares are minted and burned against the net asset value (NAV) the caller
observed before touching the pool. All divisions round down, which favours
the holders that stay in.
"""
import logging
from typing import Any, Dict

from wrapped_lp.errors import InsolventPosition, InsufficientShares, ZeroAmount
from wrapped_lp.gateways.base import Checkpointable
from wrapped_lp.utils.math import ConstantProductMath

logger = logging.getLogger(__name__)


class ShareAccountant(Checkpointable):
    """Holder balances and total supply of engine shares."""

    def __init__(self) -> None:
        self.total_supply = 0
        self._balances: Dict[str, int] = {}

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def mint(self, depositor: str, target_value_in: int, nav_before: int) -> int:
        """
        Mint shares for `target_value_in` of target asset.

        Args:
            depositor: Account credited with the new shares
            target_value_in: Target-asset value contributed
            nav_before: NAV before the contribution was added

        Returns:
            Number of shares minted

        Raises:
            ZeroAmount: If the contribution is worth less than one share
            InsolventPosition: If shares are outstanding against a zero NAV
        """
        if self.total_supply == 0:
            shares_out = target_value_in
        else:
            if nav_before == 0:
                raise InsolventPosition(
                    f"{self.total_supply} shares outstanding against zero NAV"
                )
            shares_out = ConstantProductMath.mul_div(
                target_value_in, self.total_supply, nav_before
            )

        if shares_out == 0:
            raise ZeroAmount(f"Deposit of {target_value_in} mints no shares")

        self._balances[depositor] = self.balance_of(depositor) + shares_out
        self.total_supply += shares_out
        logger.debug(f"Minted {shares_out} shares to {depositor} (NAV before {nav_before})")
        return shares_out

    def burn(self, holder: str, shares_in: int, nav_before: int) -> int:
        """
        Burn `shares_in` of `holder`'s shares.

        Returns:
            Target-asset value of the burned shares at `nav_before`
        """
        if shares_in == 0:
            raise ZeroAmount("Cannot burn zero shares")
        balance = self.balance_of(holder)
        if shares_in > balance:
            raise InsufficientShares(holder, balance, shares_in)

        target_value_out = ConstantProductMath.mul_div(nav_before, shares_in, self.total_supply)
        self._balances[holder] = balance - shares_in
        self.total_supply -= shares_in
        logger.debug(f"Burned {shares_in} shares of {holder} for {target_value_out}")
        return target_value_out

    def checkpoint(self) -> Any:
        return self.total_supply, dict(self._balances)

    def restore(self, state: Any) -> None:
        self.total_supply, balances = state
        self._balances = dict(balances)
