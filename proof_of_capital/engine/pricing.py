"""
Stepped bonding curve.

Tokens are sold in discrete levels. Level sizes compound by
`level_increase_multiplier` up to `trend_change_step`, then by
`-level_decrease_multiplier_after_trend`, giving an accelerating then
decelerating trend. Unit price compounds by `price_increment_multiplier`
per level crossed.

Price is a function of the cumulative-sold position only:

    level i covers [start_i, start_i + size_i)

so a cursor exactly on a boundary belongs to the next level. Buys, sells
and return-wallet buybacks all value a position range with the same level
function; none of them carries its own curve state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, List, Tuple

from proof_of_capital.engine.checked import checked_add, checked_sub, mul_div, mul_div_up
from proof_of_capital.engine.constants import MAX_LEVEL_WALK, PERCENTAGE_DIVISOR, WAD
from proof_of_capital.engine.errors import CurveLevelLimitExceeded, InvalidAmount

if TYPE_CHECKING:
    from proof_of_capital.schemas import CurveParameters

D = PERCENTAGE_DIVISOR


@dataclass(frozen=True)
class Level:
    index: int
    start: int
    size: int
    price: int

    @property
    def end(self) -> int:
        return self.start + self.size


@dataclass(frozen=True)
class TradeQuote:
    """Collateral valuation of a position range."""
    amount: int
    gross: int          # cost of a buy, curve value of a sale
    profit: int         # profit taken on a buy, withheld on a sale
    net: int            # collateral kept as backing (buy) or paid out (sale)
    start_level: int
    end_level: int


class PricingEngine:
    def __init__(self, curve: CurveParameters):
        self.curve = curve
        # memo of levels derived from the immutable parameters
        self._levels: List[Level] = [
            Level(
                index=0,
                start=0,
                size=curve.first_level_launch_token_quantity,
                price=curve.initial_price_per_launch_token,
            )
        ]

    def _next_level(self, level: Level) -> Level:
        c = self.curve
        if level.index < c.trend_change_step:
            factor = D + c.level_increase_multiplier
        else:
            factor = D - c.level_decrease_multiplier_after_trend
        size = max(mul_div(level.size, factor, D), 1)
        price = mul_div(level.price, D + c.price_increment_multiplier, D)
        return Level(index=level.index + 1, start=checked_add(level.start, level.size), size=size, price=price)

    def level(self, index: int) -> Level:
        if index < 0:
            raise InvalidAmount("level index must be >= 0")
        if index > MAX_LEVEL_WALK:
            raise CurveLevelLimitExceeded(f"level {index} exceeds walk limit {MAX_LEVEL_WALK}")
        while len(self._levels) <= index:
            self._levels.append(self._next_level(self._levels[-1]))
        return self._levels[index]

    def level_at(self, position: int) -> Level:
        """Level containing cumulative-sold `position`."""
        if position < 0:
            raise InvalidAmount("position must be >= 0")
        last = self._levels[-1]
        if position < last.end:
            # binary search over memoised levels
            lo, hi = 0, len(self._levels) - 1
            while lo < hi:
                mid = (lo + hi) // 2
                if self._levels[mid].end <= position:
                    lo = mid + 1
                else:
                    hi = mid
            return self._levels[lo]
        index = last.index
        while True:
            index += 1
            lvl = self.level(index)
            if position < lvl.end:
                return lvl

    def current_price(self, total_sold: int) -> int:
        return self.level_at(total_sold).price

    def trend_change_position(self) -> int:
        """Cumulative-sold position where the post-trend profit rate starts."""
        return self.level(self.curve.trend_change_step).start

    def profit_rate(self, level_index: int) -> int:
        if level_index < self.curve.trend_change_step:
            return self.curve.profit_before_trend_change
        return self.curve.profit_percentage

    def segments(self, start: int, end: int) -> Iterator[Tuple[Level, int]]:
        """Yield (level, quantity) pieces covering [start, end)."""
        if end < start:
            raise InvalidAmount("range end before start")
        position = start
        lvl = self.level_at(start) if start < end else None
        while position < end:
            take = min(lvl.end, end) - position
            yield lvl, take
            position += take
            if position < end:
                lvl = self.level(lvl.index + 1)

    # ── Valuations ──

    def quote_buy(self, total_sold: int, amount: int) -> TradeQuote:
        """Cost of buying `amount` at the top of the curve; rounds up."""
        self._require_amount(amount)
        gross = profit = 0
        first = last = None
        for lvl, qty in self.segments(total_sold, checked_add(total_sold, amount)):
            cost = mul_div_up(qty, lvl.price, WAD)
            gross = checked_add(gross, cost)
            profit = checked_add(profit, mul_div(cost, self.profit_rate(lvl.index), D))
            first = lvl.index if first is None else first
            last = lvl.index
        return TradeQuote(amount, gross, profit, checked_sub(gross, profit), first, last)

    def quote_sell(self, total_sold: int, amount: int) -> TradeQuote:
        """Payout for selling `amount` back down the curve; rounds down."""
        self._require_amount(amount)
        return self._quote_range(checked_sub(total_sold, amount), total_sold, amount)

    def quote_buyback(self, tokens_earned: int, amount: int) -> TradeQuote:
        """Payout for return-wallet tokens, valued from the oldest sold position up."""
        self._require_amount(amount)
        return self._quote_range(tokens_earned, checked_add(tokens_earned, amount), amount)

    def _quote_range(self, start: int, end: int, amount: int) -> TradeQuote:
        gross = profit = 0
        first = last = None
        for lvl, qty in self.segments(start, end):
            value = mul_div(qty, lvl.price, WAD)
            gross = checked_add(gross, value)
            profit = checked_add(profit, mul_div(value, self.profit_rate(lvl.index), D))
            first = lvl.index if first is None else first
            last = lvl.index
        return TradeQuote(amount, gross, profit, checked_sub(gross, profit), first, last)

    @staticmethod
    def _require_amount(amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("amount must be > 0")
