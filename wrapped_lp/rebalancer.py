"""
Impermanent-loss correction.

The rebalancer compares the target reserve currently attributable to the
pooled liquidity against the virtual-reserve snapshot. Inside the
configured band it does nothing. Past the band it either harvests the gain
into the target reserve (minus a performance fee) or deploys target reserve
back into the pool to cover the loss, then re-snapshots.
"""
import logging
from typing import Optional

from wrapped_lp.ledger import PositionLedger
from wrapped_lp.models import AdjustmentAction, AdjustmentResult, EngineConfig
from wrapped_lp.utils.math import ConstantProductMath
from wrapped_lp.zap import ZapEngine

logger = logging.getLogger(__name__)


class Rebalancer:
    """Threshold-triggered, idempotent correction step."""

    def __init__(self, ledger: PositionLedger, zap: ZapEngine, config: EngineConfig):
        self.ledger = ledger
        self.zap = zap
        self.config = config

    def drift_ppt(self) -> Optional[int]:
        """
        Live attributable target reserve over the snapshot, in parts-per-thousand.

        Returns:
            None before the first snapshot (nothing to compare against)
        """
        baseline = self.ledger.virtual_target
        if baseline == 0:
            return None
        return ConstantProductMath.drift_ppt(self.ledger.attributable_target(), baseline)

    def should_adjust(self) -> bool:
        drift = self.drift_ppt()
        if drift is None:
            return False
        return abs(drift - ConstantProductMath.PPT) >= self.config.correction_threshold_ppt

    def performance_fee_bps(self, drift_ppt: int) -> int:
        """Base fee scaled by how far the gain reaches past the band, capped."""
        excess = max(0, drift_ppt - ConstantProductMath.PPT)
        scaled = self.config.performance_fee_bps * excess // self.config.correction_threshold_ppt
        return min(scaled, self.config.max_performance_fee_bps)

    def adjust(self) -> AdjustmentResult:
        """
        Run one correction step.

        Returns:
            What was done; action NONE when drift is inside the band
        """
        drift = self.drift_ppt()
        if drift is None:
            return AdjustmentResult()
        if abs(drift - ConstantProductMath.PPT) < self.config.correction_threshold_ppt:
            return AdjustmentResult(drift_ppt=drift)

        attributable = self.ledger.attributable_target()
        baseline = self.ledger.virtual_target
        logger.info(
            f"Drift {drift} ppt (attributable {attributable}, snapshot {baseline}) "
            f"is outside the {self.config.correction_threshold_ppt} ppt band"
        )
        if attributable > baseline:
            return self._harvest(attributable, baseline, drift)
        return self._top_up(attributable, baseline, drift)

    def _harvest(self, attributable: int, baseline: int, drift: int) -> AdjustmentResult:
        liquidity = self.ledger.pooled_liquidity
        target_reserve = self.ledger.target_reserve
        burn_liquidity = ConstantProductMath.mul_div(liquidity, attributable - baseline, attributable)
        if burn_liquidity == 0:
            return self._rebaseline(drift)

        profit = self.zap.zap_out(burn_liquidity)
        fee_bps = self.performance_fee_bps(drift)
        fee = profit * fee_bps // ConstantProductMath.BPS
        if fee > 0:
            self.zap.target_token.transfer(self.zap.account, self.config.fee_recipient, fee)

        self.ledger.write(liquidity - burn_liquidity, target_reserve + profit - fee)
        logger.info(
            f"Harvested {profit} {self.zap.target_token.symbol} from {burn_liquidity} liquidity, "
            f"fee {fee} ({fee_bps} bps)"
        )
        return AdjustmentResult(
            action=AdjustmentAction.HARVEST,
            drift_ppt=drift,
            liquidity_delta=-burn_liquidity,
            target_reserve_delta=profit - fee,
            profit=profit,
            fee=fee,
        )

    def _top_up(self, attributable: int, baseline: int, drift: int) -> AdjustmentResult:
        liquidity = self.ledger.pooled_liquidity
        target_reserve = self.ledger.target_reserve
        shortfall = 2 * (baseline - attributable)
        amount = min(shortfall, target_reserve)
        if not self.zap.can_deploy(amount):
            logger.warning(
                f"Shortfall {shortfall} cannot be covered from reserve {target_reserve}; "
                f"re-baselining"
            )
            return self._rebaseline(drift)

        liquidity_issued = self.zap.deploy(amount)
        self.ledger.write(liquidity + liquidity_issued, target_reserve - amount)
        logger.info(
            f"Topped up {amount} {self.zap.target_token.symbol} of {shortfall} shortfall "
            f"for {liquidity_issued} liquidity"
        )
        return AdjustmentResult(
            action=AdjustmentAction.TOP_UP,
            drift_ppt=drift,
            liquidity_delta=liquidity_issued,
            target_reserve_delta=-amount,
        )

    def _rebaseline(self, drift: int) -> AdjustmentResult:
        self.ledger.write(self.ledger.pooled_liquidity, self.ledger.target_reserve)
        return AdjustmentResult(action=AdjustmentAction.REBASELINE, drift_ppt=drift)
