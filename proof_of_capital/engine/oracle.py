from __future__ import annotations

import logging
from typing import Optional

from proof_of_capital.engine.errors import CollateralPriceBelowMinimum
from proof_of_capital.engine.tokens import PriceOracle
from proof_of_capital.utils.logging_cfg import log_event

log = logging.getLogger(__name__)


class OracleGuard:
    """Floor-price check on the collateral token; a missing oracle disables it."""

    def __init__(self, oracle: Optional[PriceOracle], min_value: int):
        self.oracle = oracle
        self.min_value = min_value

    @property
    def enabled(self) -> bool:
        return self.oracle is not None

    def check(self) -> None:
        if self.oracle is None:
            return
        value = self.oracle.latest_value()
        if value < self.min_value:
            log_event(log, "collateral_below_floor", level=logging.WARNING, value=value, floor=self.min_value)
            raise CollateralPriceBelowMinimum(
                f"collateral oracle value {value} below minimum {self.min_value}"
            )
