"""
Collaborator interfaces for the wrapped LP engine.

The engine never owns pool or token state; it talks to them through these
interfaces, injected at construction, and re-reads them before every use.
"""
from abc import ABC, abstractmethod
from typing import Any, Tuple


class Checkpointable(ABC):
    """
    A collaborator whose state can be captured and restored.

    The engine checkpoints every checkpointable collaborator when a guarded
    operation starts and restores them all if that operation fails.
    """

    @abstractmethod
    def checkpoint(self) -> Any:
        """Return an opaque copy of the current state."""
        pass

    @abstractmethod
    def restore(self, state: Any) -> None:
        """Reset to a state previously returned by `checkpoint`."""
        pass


class AssetLedger(ABC):
    """
    Fungible-token ledger for one asset.

    Callers identify themselves explicitly (`sender`, `spender`) since the
    ledger has no notion of an implicit message sender.
    """

    symbol: str
    decimals: int

    @abstractmethod
    def balance_of(self, account: str) -> int:
        pass

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        pass

    @abstractmethod
    def approve(self, owner: str, spender: str, amount: int) -> None:
        pass

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        pass


class PoolGateway(ABC):
    """
    Two-asset constant-product pool.

    Follows the pair contract convention: inputs are transferred to the pool
    address first, then `swap`, `mint` or `burn` settles against the pool's
    balances.
    """

    address: str
    token0: AssetLedger
    token1: AssetLedger
    liquidity_token: AssetLedger
    fee_bps: int

    @abstractmethod
    def reserves(self) -> Tuple[int, int, int]:
        """
        Returns:
            Tuple of (reserve0, reserve1, block_timestamp_last)
        """
        pass

    @abstractmethod
    def swap(self, amount0_out: int, amount1_out: int, recipient: str) -> None:
        pass

    @abstractmethod
    def mint(self, recipient: str) -> int:
        """Mint liquidity for the tokens sent to the pool since the last sync."""
        pass

    @abstractmethod
    def burn(self, recipient: str) -> Tuple[int, int]:
        """Burn the liquidity tokens held by the pool, paying out both assets."""
        pass

    @abstractmethod
    def total_liquidity_supply(self) -> int:
        pass
