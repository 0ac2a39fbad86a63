"""
Simulation entry point for the wrapped LP engine.

Builds a pool (static reserves or a snapshot of a live pair), deposits into
the engine, moves the market with an external trade, adjusts, redeems, and
prints the engine state after every step.
"""
import argparse
import asyncio
import json
import logging
import sys

from wrapped_lp.engine import WrappedLiquidityEngine
from wrapped_lp.gateways.memory import ConstantProductPool, swap_exact_in
from wrapped_lp.gateways.onchain import PairReader
from wrapped_lp.models import EngineConfig, PoolSnapshot
from wrapped_lp.utils.env import LOG_LEVEL

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stderr)
    ]
)
logger = logging.getLogger(__name__)

DEPOSITOR = "depositor"
TRADER = "trader"


def get_config():
    """Load configuration from arguments."""
    parser = argparse.ArgumentParser(description='Wrapped LP engine simulation')

    # Pool arguments
    parser.add_argument('--pair-address', type=str, help='Snapshot a live UniswapV2-style pair')
    parser.add_argument('--chain-id', type=int, default=8453, help='Chain of the live pair')
    parser.add_argument('--symbol0', type=str, default='WETH', help='Static pool token0 symbol')
    parser.add_argument('--symbol1', type=str, default='USDC', help='Static pool token1 symbol')
    parser.add_argument('--reserve0', type=int, default=1_000 * 10**18, help='Static pool reserve0')
    parser.add_argument('--reserve1', type=int, default=2_500_000 * 10**18, help='Static pool reserve1')
    parser.add_argument('--fee-bps', type=int, default=30, help='Pool swap fee in basis points')

    # Scenario arguments
    parser.add_argument('--target', type=str, help='Target asset symbol (default: token1)')
    parser.add_argument('--deposit', type=int, default=10_000 * 10**18, help='Target asset deposited')
    parser.add_argument('--trade', type=int, default=0,
                        help='External trade size in target asset (negative sells the pair asset)')
    parser.add_argument('--threshold-ppt', type=int, help='Override the correction band')

    return parser.parse_args()


def build_pool(args) -> ConstantProductPool:
    if args.pair_address:
        reader = PairReader(args.chain_id, args.pair_address, fee_bps=args.fee_bps)
        snapshot = asyncio.run(reader.get_snapshot())
    else:
        snapshot = PoolSnapshot(
            symbol0=args.symbol0,
            symbol1=args.symbol1,
            reserve0=args.reserve0,
            reserve1=args.reserve1,
            fee_bps=args.fee_bps,
        )
    return ConstantProductPool.from_snapshot(snapshot)


def report(step: str, engine: WrappedLiquidityEngine) -> None:
    print(json.dumps({"step": step, "state": engine.state().model_dump(mode="json")}, indent=2))


def main():
    """Run one deposit / trade / adjust / redeem scenario."""
    args = get_config()
    pool = build_pool(args)
    target_symbol = args.target or pool.token1.symbol

    config = EngineConfig()
    if args.threshold_ppt is not None:
        config = EngineConfig(correction_threshold_ppt=args.threshold_ppt)
    engine = WrappedLiquidityEngine(pool, target_symbol, config=config)
    target = engine.zap.target_token
    other = engine.zap.other_token

    target.issue(DEPOSITOR, args.deposit)
    target.approve(DEPOSITOR, engine.address, args.deposit)
    shares = engine.add_liquidity(DEPOSITOR, target_symbol, args.deposit)
    report("deposit", engine)

    if args.trade > 0:
        target.issue(TRADER, args.trade)
        swap_exact_in(pool, TRADER, target, args.trade)
    elif args.trade < 0:
        reserve0, reserve1, _ = pool.reserves()
        amount = -args.trade * (reserve0 if other is pool.token0 else reserve1) // (
            reserve1 if other is pool.token0 else reserve0
        )
        other.issue(TRADER, amount)
        swap_exact_in(pool, TRADER, other, amount)
    if args.trade:
        report("trade", engine)

    result = engine.adjust()
    logger.info(f"Adjustment: {result.model_dump()}")
    report("adjust", engine)

    quote = engine.quote_redeem(shares)
    target_out = engine.redeem_liquidity(DEPOSITOR, shares, min_target_out=quote * 99 // 100)
    logger.info(f"Redeemed {shares} shares for {target_out} {target.symbol} (deposited {args.deposit})")
    report("redeem", engine)


if __name__ == '__main__':
    main()
