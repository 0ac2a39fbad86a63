"""
Errors raised by the wrapped LP engine and its in-memory collaborators.

Every error aborts the whole operation that raised it; the engine rolls its
own state and the checkpointed collaborators back before propagating.
"""


class WrappedLPError(ValueError):
    """Base class for all engine errors."""


class ZeroAmount(WrappedLPError):
    """An amount (deposit, shares, or resulting shares) is zero."""


class UnsupportedAsset(WrappedLPError):
    """The asset is not one of the pool's two reserve assets."""


class InsufficientMint(WrappedLPError):
    """The pool issued zero liquidity for a supply call."""


class SlippageExceeded(WrappedLPError):
    """A redemption produced less than the caller's minimum."""

    def __init__(self, target_out: int, min_target_out: int):
        self.target_out = target_out
        self.min_target_out = min_target_out
        super().__init__(
            f"Redemption output {target_out} is below minimum {min_target_out}"
        )


class InsufficientShares(WrappedLPError):
    """A burn exceeds the holder's share balance."""

    def __init__(self, holder: str, balance: int, requested: int):
        self.holder = holder
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Holder {holder} has {balance} shares, cannot burn {requested}"
        )


class ReentrancyDetected(WrappedLPError):
    """A guarded entry point was entered while another one was running."""


class InsolventPosition(WrappedLPError):
    """Shares are outstanding but the position is worth nothing."""


# Collaborator errors (in-memory pool and token ledgers)


class InsufficientBalance(WrappedLPError):
    """A transfer exceeds the sender's balance."""


class InsufficientAllowance(WrappedLPError):
    """A transfer_from exceeds the spender's allowance."""


class InsufficientLiquidity(WrappedLPError):
    """The pool cannot satisfy a swap or burn."""


class ConstantProductViolation(WrappedLPError):
    """A swap would decrease the pool's fee-adjusted constant product."""
