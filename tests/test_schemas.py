import os
import sys

import pytest
from pydantic import ValidationError

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from poc_fixtures import COLLATERAL, LAUNCH, MM, OWNER, make_params
from proof_of_capital.engine.constants import MAX_CONTROL_PERIOD, MIN_CONTROL_PERIOD, ONE_DAY, ZERO_ADDRESS
from proof_of_capital.schemas import QuoteInput, ScenarioInput, ScenarioStep


def test_initial_price_must_be_positive():
    with pytest.raises(ValidationError):
        make_params(initial_price_per_launch_token=0)
    assert make_params(initial_price_per_launch_token=1).initial_price_per_launch_token == 1


def test_control_period_is_clamped_not_rejected():
    assert make_params(control_period=60).control_period == MIN_CONTROL_PERIOD
    assert make_params(control_period=100 * ONE_DAY).control_period == MAX_CONTROL_PERIOD
    assert make_params(control_period=3 * ONE_DAY).control_period == 3 * ONE_DAY


def test_royalty_percent_bounds():
    for bad in (0, 1, 1001):
        with pytest.raises(ValidationError):
            make_params(royalty_profit_percent=bad)
    p = make_params(royalty_profit_percent=1000)
    assert p.creator_profit_percent == 0


def test_level_multiplier_bounds():
    with pytest.raises(ValidationError):
        make_params(level_increase_multiplier=-1000)
    with pytest.raises(ValidationError):
        make_params(level_decrease_multiplier_after_trend=1000)
    make_params(level_increase_multiplier=-999, level_decrease_multiplier_after_trend=999)


def test_addresses_and_roles():
    with pytest.raises(ValidationError):
        make_params(initial_owner=ZERO_ADDRESS)
    with pytest.raises(ValidationError):
        make_params(launch_token=COLLATERAL)

    p = make_params(dao_address=None, market_makers=[MM, MM, " " + MM])
    assert p.dao_address == OWNER
    assert p.market_makers == [MM]
    assert p.launch_token == LAUNCH


def test_quote_cursor_consistency():
    curve = make_params().model_dump()
    with pytest.raises(ValidationError):
        QuoteInput(curve=curve, total_sold=10, launch_tokens_earned=11, amount=1)
    q = QuoteInput(curve=curve, total_sold=10, launch_tokens_earned=10, amount=1)
    assert q.curve.trend_change_step == 3


def test_scenario_steps_validated():
    with pytest.raises(ValidationError):
        ScenarioStep(caller=OWNER, operation="mint_everything")

    steps = [
        {"at": 10, "caller": OWNER, "operation": "deposit_launch", "args": {"amount": 1}},
        {"at": 5, "caller": MM, "operation": "buy_launch_tokens", "args": {"amount": 1}},
    ]
    with pytest.raises(ValidationError):
        ScenarioInput(params=make_params(), start_time=1, steps=steps)
    with pytest.raises(ValidationError):
        ScenarioInput(params=make_params(), start_time=1, balances={"eth": {}}, steps=[])
