from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from proof_of_capital.engine.constants import (
    MAX_CONTROL_PERIOD,
    MAX_ROYALTY_PERCENT,
    MIN_CONTROL_PERIOD,
    PERCENTAGE_DIVISOR,
    ZERO_ADDRESS,
)


def _check_address(v, field_name: str) -> str:
    vv = str(v).strip()
    if not vv or vv.lower() == ZERO_ADDRESS:
        raise ValueError(f"{field_name} must be a non-zero address")
    return vv


class CurveParameters(BaseModel):
    initial_price_per_launch_token: int
    first_level_launch_token_quantity: int
    price_increment_multiplier: int
    level_increase_multiplier: int
    trend_change_step: int
    level_decrease_multiplier_after_trend: int
    profit_percentage: int
    profit_before_trend_change: int
    royalty_profit_percent: int

    @field_validator("initial_price_per_launch_token", "first_level_launch_token_quantity")
    @classmethod
    def positive(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("price_increment_multiplier")
    @classmethod
    def price_increment_positive(cls, v):
        if v <= 0:
            raise ValueError("price_increment_multiplier must be > 0")
        return v

    @field_validator("level_increase_multiplier", "level_decrease_multiplier_after_trend")
    @classmethod
    def signed_multiplier_range(cls, v, info):
        # strict bounds keep the per-level factor (D ± m) / D positive
        if v <= -PERCENTAGE_DIVISOR or v >= PERCENTAGE_DIVISOR:
            raise ValueError(
                f"{info.field_name} must be in ({-PERCENTAGE_DIVISOR}, {PERCENTAGE_DIVISOR})"
            )
        return v

    @field_validator("trend_change_step")
    @classmethod
    def non_negative_step(cls, v):
        if v < 0:
            raise ValueError("trend_change_step must be >= 0")
        return v

    @field_validator("profit_percentage", "profit_before_trend_change")
    @classmethod
    def profit_range(cls, v, info):
        if v < 0 or v > PERCENTAGE_DIVISOR:
            raise ValueError(f"{info.field_name} must be between 0 and {PERCENTAGE_DIVISOR}")
        return v

    @field_validator("royalty_profit_percent")
    @classmethod
    def royalty_range(cls, v):
        if v <= 1 or v > MAX_ROYALTY_PERCENT:
            raise ValueError(f"royalty_profit_percent must be in (1, {MAX_ROYALTY_PERCENT}]")
        return v

    @property
    def creator_profit_percent(self) -> int:
        return PERCENTAGE_DIVISOR - self.royalty_profit_percent


class LaunchParams(CurveParameters):
    initial_owner: str
    reserve_owner: str
    royalty_wallet: str
    launch_token: str
    collateral_token: str
    dao_address: Optional[str] = None    # falls back to initial_owner
    market_makers: List[str] = Field(default_factory=list)
    return_wallets: List[str] = Field(default_factory=list)
    old_contracts: List[str] = Field(default_factory=list)

    lock_end_time: int
    control_day: int
    control_period: int

    # Supply transferred to the contract before launch, registered later
    offset_launch: int = 0

    # Oracle floor; only enforced when an oracle collaborator is supplied
    collateral_token_min_oracle_value: int = 0

    profit_in_time: bool = True

    @field_validator("initial_owner", "reserve_owner", "royalty_wallet", "launch_token", "collateral_token")
    @classmethod
    def required_address(cls, v, info):
        return _check_address(v, info.field_name)

    @field_validator("dao_address")
    @classmethod
    def optional_address(cls, v):
        if v is None:
            return v
        return _check_address(v, "dao_address")

    @field_validator("market_makers", "return_wallets", "old_contracts")
    @classmethod
    def address_lists(cls, v, info):
        out = []
        for raw in v or []:
            vv = _check_address(raw, info.field_name)
            if vv not in out:
                out.append(vv)
        return out

    @field_validator("lock_end_time", "control_day")
    @classmethod
    def timestamp_positive(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be a positive unix timestamp")
        return v

    @field_validator("control_period")
    @classmethod
    def clamp_control_period(cls, v):
        # out-of-range periods are clamped, never rejected
        return min(max(v, MIN_CONTROL_PERIOD), MAX_CONTROL_PERIOD)

    @field_validator("offset_launch", "collateral_token_min_oracle_value")
    @classmethod
    def non_negative(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    def model_post_init(self, __context):
        if self.dao_address is None:
            self.dao_address = self.initial_owner

    @model_validator(mode="after")
    def distinct_tokens(self):
        if self.launch_token == self.collateral_token:
            raise ValueError("launch_token and collateral_token must differ")
        return self


# ── API request bodies ──

class CurveTableInput(BaseModel):
    curve: CurveParameters
    levels: int = 50

    @field_validator("levels")
    @classmethod
    def levels_range(cls, v):
        if v < 1:
            raise ValueError("levels must be >= 1")
        return v


class QuoteInput(BaseModel):
    curve: CurveParameters
    total_sold: int = 0
    launch_tokens_earned: int = 0
    amount: int

    @field_validator("total_sold", "launch_tokens_earned")
    @classmethod
    def cursor_non_negative(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v):
        if v <= 0:
            raise ValueError("amount must be > 0")
        return v

    @model_validator(mode="after")
    def earned_within_sold(self):
        if self.launch_tokens_earned > self.total_sold:
            raise ValueError("launch_tokens_earned cannot exceed total_sold")
        return self


SCENARIO_OPERATIONS = {
    "deposit_launch",
    "deposit_collateral",
    "process_unaccounted_offset",
    "buy_launch_tokens",
    "sell_launch_tokens",
    "sell_launch_tokens_return_wallet",
    "claim_profit_on_request",
    "switch_profit_mode",
    "change_profit_percentage",
    "extend_lock",
    "toggle_deferred_withdrawal",
    "register_old_contract",
    "transfer_ownership",
    "assign_new_reserve_owner",
    "set_market_maker",
    "set_return_wallet",
    "change_royalty_wallet",
    "set_dao",
    "schedule_launch_withdrawal",
    "cancel_launch_withdrawal",
    "confirm_launch_withdrawal",
    "schedule_collateral_withdrawal",
    "cancel_collateral_withdrawal",
    "confirm_collateral_withdrawal",
    "withdraw_all_launch_tokens",
    "withdraw_all_collateral_tokens",
}


class ScenarioStep(BaseModel):
    at: int = 0           # seconds after scenario start
    caller: str
    operation: str
    args: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("at")
    @classmethod
    def at_non_negative(cls, v):
        if v < 0:
            raise ValueError("at must be >= 0")
        return v

    @field_validator("operation")
    @classmethod
    def valid_operation(cls, v):
        vv = str(v).strip()
        if vv not in SCENARIO_OPERATIONS:
            raise ValueError(f"operation must be one of: {', '.join(sorted(SCENARIO_OPERATIONS))}")
        return vv


class ScenarioInput(BaseModel):
    params: LaunchParams
    start_time: int
    # initial token balances: {"launch": {addr: amount}, "collateral": {addr: amount}}
    balances: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    steps: List[ScenarioStep]

    @field_validator("balances")
    @classmethod
    def valid_balance_keys(cls, v):
        for key, holders in v.items():
            if key not in {"launch", "collateral"}:
                raise ValueError("balances keys must be 'launch' or 'collateral'")
            for addr, amount in holders.items():
                if amount < 0:
                    raise ValueError(f"balance for {addr} must be >= 0")
        return v

    @model_validator(mode="after")
    def steps_in_time_order(self):
        ats = [s.at for s in self.steps]
        if ats != sorted(ats):
            raise ValueError("steps must be ordered by 'at'")
        return self
