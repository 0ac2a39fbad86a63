"""
Read-only access to a live constant-product pair.

The engine never writes to chain; this reader turns a deployed pair into a
`PoolSnapshot` that can seed a `ConstantProductPool` for simulation.
"""
import asyncio
import logging
from typing import Tuple

from web3.contract import AsyncContract

from wrapped_lp.models import PoolSnapshot
from wrapped_lp.utils.web3 import AsyncWeb3Helper

logger = logging.getLogger(__name__)


class PairReader:
    """Reads tokens, reserves and supply of a UniswapV2-style pair."""

    def __init__(self, chain_id: int, pair_address: str, fee_bps: int = 30):
        """Initialize the pair reader."""
        self.chain_id = chain_id
        self.fee_bps = fee_bps
        self.pair: AsyncContract = AsyncWeb3Helper.make_web3(chain_id).make_contract_by_name(
            name="UniswapV2Pair",
            addr=pair_address,
        )

    async def _get_pair_tokens(self) -> Tuple[str, str]:
        """
        Extract token0 and token1 addresses from the pair.
        Returns:
            Tuple of (token0_address, token1_address)

        Raises:
            ValueError: If tokens cannot be extracted
        """
        try:
            token0, token1 = await asyncio.gather(
                self.pair.functions.token0().call(),
                self.pair.functions.token1().call(),
            )
            logger.info(
                f"Extracted tokens from pair {self.pair.address}: token0={token0}, token1={token1}"
            )
            return token0, token1

        except Exception as e:
            raise ValueError(
                f"Failed to extract tokens from pair {self.pair.address}: {e}"
            )

    async def _get_token_metadata(self, token_address: str) -> Tuple[str, int]:
        """
        Get symbol and decimals of an ERC20 token.

        Falls back to the address and 18 decimals for tokens that do not
        implement the optional metadata methods.
        """
        token = AsyncWeb3Helper.make_web3(self.chain_id).make_contract_by_name(
            name="ERC20",
            addr=token_address,
        )
        try:
            symbol, decimals = await asyncio.gather(
                token.functions.symbol().call(),
                token.functions.decimals().call(),
            )
            return symbol, decimals
        except Exception as e:
            logger.warning(f"Failed to read metadata of {token_address}: {e}")
            return token_address, 18

    async def get_reserves(self) -> Tuple[int, int, int]:
        """
        Returns:
            Tuple of (reserve0, reserve1, block_timestamp_last)
        """
        reserve0, reserve1, timestamp = await self.pair.functions.getReserves().call()
        return reserve0, reserve1, timestamp

    async def get_snapshot(self) -> PoolSnapshot:
        """Read the pair's current state in one round of calls."""
        token0, token1 = await self._get_pair_tokens()
        (symbol0, decimals0), (symbol1, decimals1), reserves, total_supply = await asyncio.gather(
            self._get_token_metadata(token0),
            self._get_token_metadata(token1),
            self.get_reserves(),
            self.pair.functions.totalSupply().call(),
        )
        reserve0, reserve1, timestamp = reserves

        snapshot = PoolSnapshot(
            pair_address=self.pair.address,
            symbol0=symbol0,
            symbol1=symbol1,
            decimals0=decimals0,
            decimals1=decimals1,
            reserve0=reserve0,
            reserve1=reserve1,
            total_supply=total_supply,
            fee_bps=self.fee_bps,
            block_timestamp_last=timestamp,
        )
        logger.info(
            f"Snapshot of {symbol0}/{symbol1} at {self.pair.address}: "
            f"reserves=({reserve0}, {reserve1}), supply={total_supply}"
        )
        return snapshot
