import math
from typing import Tuple


class ConstantProductMath:
    """
    Int-only constant-product (x * y = k) math helpers.

    Every division truncates toward zero, matching the integer semantics of
    the pools this engine supplies to.
    """

    UNIT = 10 ** 18
    PPT = 1_000
    BPS = 10_000
    MINIMUM_LIQUIDITY = 1_000

    @staticmethod
    def mul_div(a: int, b: int, denominator: int) -> int:
        """floor(a * b / denominator); zero when the denominator is zero."""
        if denominator == 0:
            return 0
        return (a * b) // denominator

    @staticmethod
    def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int = 30) -> int:
        """
        Output of an exact-input swap against reserves (reserve_in, reserve_out).

        Args:
            amount_in: Amount of the input asset actually received by the pool
            reserve_in: Pool reserve of the input asset before the swap
            reserve_out: Pool reserve of the output asset before the swap
            fee_bps: Swap fee in basis points (30 = 0.3%)

        Returns:
            Amount of the output asset the pool can release
        """
        if amount_in <= 0:
            raise ValueError("amount_in must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise ValueError("reserves must be positive")

        amount_in_with_fee = amount_in * (ConstantProductMath.BPS - fee_bps)
        numerator = amount_in_with_fee * reserve_out
        denominator = reserve_in * ConstantProductMath.BPS + amount_in_with_fee
        return numerator // denominator

    @staticmethod
    def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Amount of B with the same value as amount_a at the reserve ratio."""
        if reserve_a <= 0:
            raise ValueError("reserve_a must be positive")
        return amount_a * reserve_b // reserve_a

    # -----------------------------
    # Liquidity math
    # -----------------------------

    @staticmethod
    def liquidity_for_amounts(
        amount0: int,
        amount1: int,
        reserve0: int,
        reserve1: int,
        total_supply: int,
    ) -> int:
        """
        Liquidity minted for a deposit of (amount0, amount1).

        The first deposit mints sqrt(amount0 * amount1) minus the permanently
        locked MINIMUM_LIQUIDITY; later deposits mint the smaller of the two
        pro-rata claims.
        """
        if total_supply == 0:
            return max(0, math.isqrt(amount0 * amount1) - ConstantProductMath.MINIMUM_LIQUIDITY)
        return min(
            amount0 * total_supply // reserve0,
            amount1 * total_supply // reserve1,
        )

    @staticmethod
    def amounts_for_liquidity(
        liquidity: int,
        reserve0: int,
        reserve1: int,
        total_supply: int,
    ) -> Tuple[int, int]:
        """
        Pro-rata reserves behind `liquidity` pool shares.
        Returns (amount0, amount1)
        """
        if liquidity <= 0 or total_supply <= 0:
            return 0, 0
        return (
            liquidity * reserve0 // total_supply,
            liquidity * reserve1 // total_supply,
        )

    # -----------------------------
    # Ratios
    # -----------------------------

    @staticmethod
    def drift_ppt(current: int, baseline: int) -> int:
        """current / baseline in parts-per-thousand (PPT == no drift)."""
        if baseline <= 0:
            return ConstantProductMath.PPT
        return current * ConstantProductMath.PPT // baseline

    @staticmethod
    def ratio(numerator: int, denominator: int) -> int:
        """numerator / denominator scaled by UNIT; UNIT when nothing is outstanding."""
        if denominator == 0:
            return ConstantProductMath.UNIT
        return numerator * ConstantProductMath.UNIT // denominator
