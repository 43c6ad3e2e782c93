from typing import Dict

import numpy as np

from proof_of_capital.engine.checked import mul_div_up
from proof_of_capital.engine.constants import WAD
from proof_of_capital.engine.pricing import PricingEngine, TradeQuote
from proof_of_capital.schemas import CurveParameters


def compute_level_schedule(curve: CurveParameters, levels: int):
    """Tabulate the first `levels` curve levels with cumulative supply and collateral."""
    engine = PricingEngine(curve)
    lvls = [engine.level(i) for i in range(levels)]

    # object dtype keeps exact integers through cumsum
    sizes = np.array([lvl.size for lvl in lvls], dtype=object)
    prices = np.array([lvl.price for lvl in lvls], dtype=object)
    level_cost = np.array([mul_div_up(lvl.size, lvl.price, WAD) for lvl in lvls], dtype=object)
    cumulative_supply = np.cumsum(sizes)
    cumulative_collateral = np.cumsum(level_cost)

    rows = []
    for i, lvl in enumerate(lvls):
        rows.append({
            "level": lvl.index,
            "phase": "growth" if lvl.index < curve.trend_change_step else "decline",
            "start": lvl.start,
            "size": lvl.size,
            "price": lvl.price,
            "level_cost": level_cost[i],
            "cumulative_supply": cumulative_supply[i],
            "cumulative_collateral": cumulative_collateral[i],
            "profit_rate": engine.profit_rate(lvl.index),
        })

    sizes_f = np.array([float(s) for s in sizes], dtype=float)
    prices_f = np.array([float(p) for p in prices], dtype=float)
    peak_idx = int(np.argmax(sizes_f)) if levels > 0 else 0

    return {
        "rows": rows,
        "summary": {
            "levels": levels,
            "total_supply": int(cumulative_supply[-1]),
            "total_collateral": int(cumulative_collateral[-1]),
            "trend_change_position": engine.trend_change_position() if curve.trend_change_step < levels else None,
            "peak_level": peak_idx,
            "peak_level_size": int(sizes[peak_idx]),
            "final_price": int(prices[-1]),
            "price_growth_x": float(prices_f[-1] / prices_f[0]),
            "avg_price_weighted": float(np.dot(prices_f, sizes_f) / np.sum(sizes_f)),
        },
    }


def _quote_dict(quote: TradeQuote) -> Dict:
    return {
        "amount": quote.amount,
        "gross": quote.gross,
        "profit": quote.profit,
        "net": quote.net,
        "start_level": quote.start_level,
        "end_level": quote.end_level,
    }


def compute_trade_quotes(curve: CurveParameters, total_sold: int, launch_tokens_earned: int, amount: int):
    """Buy, market-maker sell and return-wallet buyback valuations at one cursor."""
    engine = PricingEngine(curve)
    available = total_sold - launch_tokens_earned
    quotes: Dict[str, object] = {
        "current_price": engine.current_price(total_sold),
        "current_level": engine.level_at(total_sold).index,
        "buy": _quote_dict(engine.quote_buy(total_sold, amount)),
        "sell": None,
        "buyback": None,
    }
    # a sale can only unwind tokens that are still out on the market
    if amount <= available:
        quotes["sell"] = _quote_dict(engine.quote_sell(total_sold, amount))
        quotes["buyback"] = _quote_dict(engine.quote_buyback(launch_tokens_earned, amount))
    return quotes

