"""
End-to-end tests for the wrapped LP engine.

Most tests use a fee-less 2250/2250 USDC/WETH pool so the bootstrap deposit
of 1000 USDC settles exactly: 500 stays as target reserve, 250 is swapped
for 225 WETH and minted with 250 USDC for 225 pool liquidity, worth 250
USDC a side. The deep-pool tests use a 0.3% fee and approximate bounds.
"""
import pytest

from wrapped_lp import (
    InsufficientMint,
    InsufficientShares,
    LiquidityAdded,
    LiquidityRedeemed,
    ReentrancyDetected,
    SlippageExceeded,
    TargetSide,
    UnsupportedAsset,
    WrappedLiquidityEngine,
    ZeroAmount,
)
from wrapped_lp.gateways.memory import ConstantProductPool, TokenLedger, swap_exact_in
from wrapped_lp.models import EngineConfig
from wrapped_lp.utils.math import ConstantProductMath

UNIT = ConstantProductMath.UNIT


@pytest.fixture
def config():
    return EngineConfig(
        correction_threshold_ppt=500,
        performance_fee_bps=1000,
        max_performance_fee_bps=2000,
        fee_recipient="treasury",
    )


@pytest.fixture
def pool():
    pool = ConstantProductPool(TokenLedger("USDC"), TokenLedger("WETH"), fee_bps=0)
    pool.seed("seeder", 2250, 2250)
    return pool


@pytest.fixture
def engine(pool, config):
    return WrappedLiquidityEngine(pool, "USDC", config=config)


@pytest.fixture
def bootstrapped(engine):
    """Engine after alice's 1000 USDC bootstrap deposit."""
    fund(engine, engine.pool.token0, "alice", 1000)
    engine.add_liquidity("alice", "USDC", 1000)
    return engine


def fund(engine, token, account, amount):
    token.issue(account, amount)
    token.approve(account, engine.address, amount)


def snapshot_state(engine):
    """Everything an aborted operation must leave untouched."""
    pool = engine.pool
    accounts = ["alice", "bob", engine.address, pool.address]
    return {
        "reserves": pool.reserves(),
        "lp_supply": pool.total_liquidity_supply(),
        "balances": {
            token.symbol: {account: token.balance_of(account) for account in accounts}
            for token in (pool.token0, pool.token1, pool.liquidity_token)
        },
        "position": engine.ledger.position.model_copy(),
        "virtual": engine.ledger.virtual_reserves.model_copy(),
        "shares": engine.accountant.checkpoint(),
        "events": list(engine.events),
    }


def test_target_side(pool, config):
    assert WrappedLiquidityEngine(pool, "USDC", config=config).target_side == TargetSide.TOKEN0
    assert WrappedLiquidityEngine(pool, pool.token1, config=config).target_side == TargetSide.TOKEN1
    with pytest.raises(UnsupportedAsset):
        WrappedLiquidityEngine(pool, "DAI", config=config)


def test_bootstrap_deposit(bootstrapped):
    engine = bootstrapped

    assert engine.balance_of("alice") == 1000
    assert engine.accountant.total_supply == 1000
    assert engine.ledger.pooled_liquidity == 225
    assert engine.ledger.target_reserve == 500
    assert engine.ledger.virtual_target == 250
    assert engine.total_supplied_assets() == 1000
    assert engine.unrealized_assets() == 1000
    assert engine.virtual_ratio() == UNIT
    assert engine.events == [LiquidityAdded(depositor="alice", amount_in=1000, shares_out=1000)]


def test_empty_engine_ratios(engine):
    assert engine.total_supplied_assets() == 0
    assert engine.virtual_ratio() == UNIT
    assert engine.unrealized_ratio() == UNIT
    assert engine.quote_redeem(100) == 0


def test_deposit_pair_asset(engine):
    fund(engine, engine.pool.token1, "alice", 1000)

    # 1000 WETH is zapped into 692 USDC first
    assert engine.add_liquidity("alice", "WETH", 1000) == 692
    assert engine.events[-1] == LiquidityAdded(depositor="alice", amount_in=1000, shares_out=692)
    assert engine.ledger.target_reserve == 346


def test_second_deposit_priced_off_nav(bootstrapped):
    engine = bootstrapped
    fund(engine, engine.pool.token0, "bob", 1000)

    assert engine.add_liquidity("bob", "USDC", 1000) == 1000
    assert engine.accountant.total_supply == 2000


def test_safe_redeem_returns_at_most_deposit(bootstrapped):
    engine = bootstrapped
    pool = engine.pool

    target_out, liquidity_out = engine.safe_redeem_liquidity("alice", 1000)

    assert (target_out, liquidity_out) == (500, 225)
    assert pool.token0.balance_of("alice") == 500
    assert pool.liquidity_token.balance_of("alice") == 225
    # The paid-out liquidity is worth 250 USDC a side
    lp_target, _ = ConstantProductMath.amounts_for_liquidity(
        liquidity_out, *pool.reserves()[:2], pool.total_liquidity_supply()
    )
    assert target_out + 2 * lp_target <= 1000

    assert engine.accountant.total_supply == 0
    assert engine.total_supplied_assets() == 0
    assert engine.events[-1] == LiquidityRedeemed(holder="alice", shares_in=1000, target_out=500)


def test_redeem_matches_quote(bootstrapped):
    engine = bootstrapped
    pool = engine.pool

    quote = engine.quote_redeem(1000)
    assert quote == 976

    assert engine.redeem_liquidity("alice", 1000, min_target_out=quote) == quote
    assert pool.token0.balance_of("alice") == 976
    assert pool.token0.balance_of(engine.address) == 0
    assert pool.liquidity_token.balance_of(engine.address) == 0
    assert engine.ledger.pooled_liquidity == 0
    assert engine.ledger.target_reserve == 0
    assert engine.total_supplied_assets() == 0


def test_partial_redeem_keeps_ratio(bootstrapped):
    engine = bootstrapped

    target_out = engine.redeem_liquidity("alice", 400, min_target_out=0)

    # 200 reserve + 100 burned USDC + 95 from the swapped WETH
    assert target_out == 395
    assert engine.balance_of("alice") == 600
    # The exit swap moves this shallow pool, so the book only roughly holds
    assert engine.virtual_ratio() == pytest.approx(UNIT, rel=5e-2)


def test_redeem_slippage_rolls_back(bootstrapped):
    engine = bootstrapped
    before = snapshot_state(engine)

    with pytest.raises(SlippageExceeded) as exc_info:
        engine.redeem_liquidity("alice", 1000, min_target_out=977)

    assert exc_info.value.target_out == 976
    assert snapshot_state(engine) == before
    assert not engine._guard.entered


def test_failed_redeem_discards_pending_correction(bootstrapped):
    """A correction run inside an aborted redemption leaves no event or fee behind."""
    engine = bootstrapped
    pool = engine.pool
    pool.token0.issue("trader", 1650)
    swap_exact_in(pool, "trader", pool.token0, 1650)
    assert engine.should_adjust()
    before = snapshot_state(engine)

    with pytest.raises(SlippageExceeded):
        engine.redeem_liquidity("alice", 1000, min_target_out=10**9)

    assert snapshot_state(engine) == before
    assert engine.events == [LiquidityAdded(depositor="alice", amount_in=1000, shares_out=1000)]
    assert pool.token0.balance_of("treasury") == 0
    assert engine.should_adjust()


def test_failed_deposit_discards_pending_correction(bootstrapped, monkeypatch):
    engine = bootstrapped
    pool = engine.pool
    pool.token0.issue("trader", 1650)
    swap_exact_in(pool, "trader", pool.token0, 1650)
    fund(engine, pool.token0, "bob", 1000)
    before = snapshot_state(engine)
    monkeypatch.setattr(pool, "mint", lambda recipient: 0)

    with pytest.raises(InsufficientMint):
        engine.add_liquidity("bob", "USDC", 1000)

    assert snapshot_state(engine) == before
    assert pool.token0.balance_of("treasury") == 0


def test_redeem_dust_leaves_liquidity_pooled(bootstrapped):
    """5 shares claim 1 liquidity unit, which burns to no WETH; only the reserve slice is paid."""
    engine = bootstrapped
    pool = engine.pool
    assert not engine.zap.can_withdraw(1)
    assert engine.quote_redeem(5) == 2

    assert engine.redeem_liquidity("alice", 5, min_target_out=2) == 2

    assert pool.token0.balance_of("alice") == 2
    assert engine.balance_of("alice") == 995
    assert engine.ledger.pooled_liquidity == 225
    assert engine.ledger.target_reserve == 498
    assert engine.virtual_ratio() >= UNIT
    assert engine.events[-1] == LiquidityRedeemed(holder="alice", shares_in=5, target_out=2)


def test_reentrant_deposit_rejected(engine):
    pool = engine.pool
    fund(engine, pool.token0, "alice", 1000)
    fund(engine, pool.token0, "mallory", 10)
    before = snapshot_state(engine)

    def reenter(recipient, amount0_out, amount1_out):
        engine.add_liquidity("mallory", "USDC", 10)

    pool.on_swap = reenter
    with pytest.raises(ReentrancyDetected):
        engine.add_liquidity("alice", "USDC", 1000)

    assert snapshot_state(engine) == before
    assert pool.token0.allowance("alice", engine.address) == 1000
    assert not engine._guard.entered

    pool.on_swap = None
    assert engine.add_liquidity("alice", "USDC", 1000) == 1000


def test_reentrant_redeem_rejected(bootstrapped):
    engine = bootstrapped
    before = snapshot_state(engine)

    def reenter(recipient, amount0_out, amount1_out):
        engine.safe_redeem_liquidity("alice", 1)

    engine.pool.on_swap = reenter
    with pytest.raises(ReentrancyDetected):
        engine.redeem_liquidity("alice", 500, min_target_out=0)

    assert snapshot_state(engine) == before


def test_failed_mint_rolls_back(engine, monkeypatch):
    pool = engine.pool
    fund(engine, pool.token0, "alice", 1000)
    before = snapshot_state(engine)
    monkeypatch.setattr(pool, "mint", lambda recipient: 0)

    with pytest.raises(InsufficientMint):
        engine.add_liquidity("alice", "USDC", 1000)

    assert snapshot_state(engine) == before


def test_rejects_bad_deposits(engine):
    fund(engine, engine.pool.token0, "alice", 1000)

    with pytest.raises(ZeroAmount):
        engine.add_liquidity("alice", "USDC", 0)
    with pytest.raises(UnsupportedAsset):
        engine.add_liquidity("alice", "DAI", 100)
    assert engine.events == []


def test_rejects_bad_redemptions(bootstrapped):
    engine = bootstrapped

    with pytest.raises(InsufficientShares):
        engine.redeem_liquidity("alice", 1001, min_target_out=0)
    with pytest.raises(InsufficientShares):
        engine.safe_redeem_liquidity("bob", 1)
    with pytest.raises(ZeroAmount):
        engine.safe_redeem_liquidity("alice", 0)
    assert engine.balance_of("alice") == 1000


def test_unrealized_tracks_live_pool(bootstrapped):
    engine = bootstrapped
    pool = engine.pool
    pool.token0.issue("trader", 1650)
    swap_exact_in(pool, "trader", pool.token0, 1650)

    # 225 liquidity now claims 400 USDC a side; the book still says 250
    assert engine.unrealized_assets() == 500 + 2 * 400
    assert engine.total_supplied_assets() == 1000
    assert engine.unrealized_ratio() > engine.virtual_ratio()

    state = engine.state()
    assert state.should_adjust
    assert state.target_symbol == "USDC"
    assert state.model_dump(mode="json")["target_side"] == 0


class TestDeepPool:
    """Share price stability with a realistic fee and deep reserves."""

    @pytest.fixture
    def engine(self, config):
        pool = ConstantProductPool(TokenLedger("USDC"), TokenLedger("WETH"), fee_bps=30)
        pool.seed("seeder", 10**24, 10**24)
        engine = WrappedLiquidityEngine(pool, "USDC", config=config)
        fund(engine, pool.token0, "alice", 10**21)
        engine.add_liquidity("alice", "USDC", 10**21)
        return engine

    def test_bootstrap_ratio_at_most_unit(self, engine):
        assert engine.virtual_ratio() <= UNIT
        assert engine.virtual_ratio() == pytest.approx(UNIT, rel=1e-2)

    def test_ratio_stable_across_operations(self, engine):
        """Each deposit or redemption moves the book share price by at most 0.1%."""
        pool = engine.pool
        start = engine.virtual_ratio()
        ratios = [start]

        fund(engine, pool.token0, "bob", 2 * 10**20)
        bob_shares = engine.add_liquidity("bob", "USDC", 2 * 10**20)
        ratios.append(engine.virtual_ratio())

        fund(engine, pool.token1, "carol", 10**20)
        engine.add_liquidity("carol", "WETH", 10**20)
        ratios.append(engine.virtual_ratio())

        engine.safe_redeem_liquidity("alice", engine.balance_of("alice") // 2)
        ratios.append(engine.virtual_ratio())

        engine.redeem_liquidity("bob", bob_shares, min_target_out=0)
        ratios.append(engine.virtual_ratio())

        for previous, current in zip(ratios, ratios[1:]):
            assert current == pytest.approx(previous, rel=1e-3)
        assert ratios[-1] == pytest.approx(start, rel=1e-3)
        assert not engine.should_adjust()

    def test_round_trip_loses_value(self, engine):
        pool = engine.pool
        fund(engine, pool.token0, "bob", 10**20)

        shares = engine.add_liquidity("bob", "USDC", 10**20)
        target_out = engine.redeem_liquidity("bob", shares, min_target_out=0)

        assert target_out <= 10**20
        assert target_out == pytest.approx(10**20, rel=1e-2)
