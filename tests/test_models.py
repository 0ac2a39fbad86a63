"""
Tests for data models and validation.
"""
import pytest
from pydantic import ValidationError
from wrapped_lp.models import (
    AdjustmentAction,
    AdjustmentResult,
    EngineConfig,
    PoolSnapshot,
    Position,
    TargetSide,
    VirtualReserves,
)


def test_engine_config_defaults():
    """Test EngineConfig picks up the default band and fees."""
    config = EngineConfig()

    assert 0 < config.correction_threshold_ppt < 1000
    assert config.max_performance_fee_bps >= config.performance_fee_bps
    assert config.fee_recipient


def test_engine_config_fee_cap_below_base():
    """Test that the fee cap may not be below the base fee."""
    with pytest.raises(ValidationError):
        EngineConfig(performance_fee_bps=1000, max_performance_fee_bps=500)


@pytest.mark.parametrize("threshold", [0, 1000, -5])
def test_engine_config_threshold_bounds(threshold):
    """Test that the band must be strictly between 0 and 1000 ppt."""
    with pytest.raises(ValidationError):
        EngineConfig(correction_threshold_ppt=threshold)


def test_position_rejects_negative_amounts():
    """Test Position validates on assignment."""
    position = Position(pooled_liquidity=10, target_reserve=5)

    with pytest.raises(ValidationError):
        position.target_reserve = -1

    with pytest.raises(ValidationError):
        Position(pooled_liquidity=-1)


def test_virtual_reserves_side():
    """Test VirtualReserves selects the target side."""
    reserves = VirtualReserves(reserve0=7, reserve1=11)

    assert reserves.side(TargetSide.TOKEN0) == 7
    assert reserves.side(TargetSide.TOKEN1) == 11
    assert TargetSide.TOKEN0.other == TargetSide.TOKEN1


def test_pool_snapshot_requires_reserves():
    """Test that an empty pool cannot be snapshotted."""
    with pytest.raises(ValidationError):
        PoolSnapshot(symbol0="WETH", symbol1="USDC", reserve0=0, reserve1=100)


def test_adjustment_result_defaults():
    """Test a default AdjustmentResult describes a no-op."""
    result = AdjustmentResult()

    assert result.action == AdjustmentAction.NONE
    assert result.drift_ppt == 1000
    assert result.liquidity_delta == 0
    assert result.model_dump(mode="json")["action"] == "none"
