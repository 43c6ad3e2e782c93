"""
Ledger Tests
============
Buys, market-maker sells, return-wallet buybacks, deposits, profit handling
and the DAO emergency paths, driven through a deployed ProofOfCapital.
Run with: python3 -m pytest tests/test_ledger.py -v
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from poc_fixtures import (
    CONTRACT, CONTROL_DAY, DAO, LOCK_END, MM, OUTSIDER, OWNER, RECIPIENT, RETURN, ROYALTY,
    FakeOracle, RecordingRoyalty, RevertingRoyalty, deploy, ledger_tuple,
)
from proof_of_capital.engine.constants import ONE_DAY, THIRTY_DAYS, WAD
from proof_of_capital.engine.errors import (
    AccessDenied,
    CollateralPriceBelowMinimum,
    ContractNotActive,
    ContractNotInitialized,
    InsufficientCollateralBalance,
    InsufficientSoldTokens,
    InsufficientTokenBalance,
    InsufficientUnaccountedOffset,
    InvalidAmount,
    InvalidFlag,
    InvalidPercentage,
    InvalidTokenForWithdrawal,
    LockPeriodNotEnded,
    NoCollateralTokensToWithdraw,
    NoProfitAvailable,
    NoTokensToWithdraw,
    OnlyDao,
    OnlyOwner,
    OnlyReturnWallet,
    TokenTransferError,
    UseDepositFunctionForOwners,
)
from proof_of_capital.engine.tokens import InMemoryToken

W = WAD
FUND = 100_000 * W


# ── Buys ──────────────────────────────────────────────────────────────────────

def test_buy_moves_tokens_and_pays_profit_immediately():
    d = deploy(deposit=FUND)
    quote = d.contract.buy_launch_tokens(MM, 1500 * W)

    assert quote.gross == 1550 * W
    assert ledger_tuple(d.contract) == (FUND - 1500 * W, 1500 * W, 0, 1240 * W, 0, 0)
    assert d.launch.balance_of(MM) == 1500 * W
    assert d.collateral.balance_of(MM) == 1_000_000 * W - 1550 * W
    # 310 profit: 10% royalty, rest to the creator
    assert d.collateral.balance_of(ROYALTY) == 31 * W
    assert d.collateral.balance_of(OWNER) == 1_000_000 * W + 279 * W
    assert d.collateral.balance_of(CONTRACT) == 1240 * W
    assert len(d.contract.events.named("LaunchTokensBought")) == 1


def test_buy_requires_initialization():
    d = deploy()
    with pytest.raises(ContractNotInitialized):
        d.contract.buy_launch_tokens(MM, W)


def test_owner_cannot_buy_even_as_market_maker():
    d = deploy(deposit=FUND)
    d.contract.set_market_maker(OWNER, OWNER, True)
    with pytest.raises(UseDepositFunctionForOwners):
        d.contract.buy_launch_tokens(OWNER, W)


def test_buy_rejects_zero_and_oversized_amounts():
    d = deploy(deposit=1000 * W)
    with pytest.raises(InvalidAmount):
        d.contract.buy_launch_tokens(MM, 0)
    with pytest.raises(InvalidAmount):
        d.contract.buy_launch_tokens(MM, True)
    with pytest.raises(InvalidAmount):
        d.contract.buy_launch_tokens(MM, "5")
    with pytest.raises(InsufficientTokenBalance):
        d.contract.buy_launch_tokens(MM, 1000 * W + 1)


def test_outsider_trades_only_while_access_is_open():
    d = deploy(deposit=FUND)
    with pytest.raises(AccessDenied):
        d.contract.buy_launch_tokens(OUTSIDER, 100 * W)

    # yearly control window
    d.clock.now = CONTROL_DAY + ONE_DAY
    d.contract.buy_launch_tokens(OUTSIDER, 100 * W)

    # closed again after the window
    d.clock.now = CONTROL_DAY + 8 * ONE_DAY
    with pytest.raises(AccessDenied):
        d.contract.sell_launch_tokens(OUTSIDER, 50 * W)

    # last two months of the lock
    d.clock.now = LOCK_END - 59 * ONE_DAY
    d.contract.sell_launch_tokens(OUTSIDER, 50 * W)
    assert d.launch.balance_of(OUTSIDER) == 50 * W


def test_failed_pull_leaves_no_partial_state():
    d = deploy(deposit=FUND)
    d.collateral.approve(MM, CONTRACT, 0)
    before = ledger_tuple(d.contract)
    n_events = len(d.contract.events)

    with pytest.raises(TokenTransferError):
        d.contract.buy_launch_tokens(MM, 10 * W)

    assert ledger_tuple(d.contract) == before
    assert len(d.contract.events) == n_events
    assert d.launch.balance_of(MM) == 0


# ── Sells ─────────────────────────────────────────────────────────────────────

def test_market_maker_sell_unwinds_top_of_curve():
    d = deploy(deposit=FUND)
    d.contract.buy_launch_tokens(MM, 1500 * W)
    quote = d.contract.sell_launch_tokens(MM, 500 * W)

    assert quote.net == 440 * W
    assert ledger_tuple(d.contract) == (FUND - 1000 * W, 1000 * W, 0, 800 * W, 0, 0)
    assert d.collateral.balance_of(MM) == 1_000_000 * W - 1550 * W + 440 * W
    assert d.contract.pricing.current_price(d.contract.ledger.state.total_launch_sold) == W * 11 // 10


def test_sell_bounded_by_available_tokens():
    d = deploy(deposit=FUND)
    d.contract.buy_launch_tokens(MM, 1500 * W)
    with pytest.raises(InsufficientSoldTokens):
        d.contract.sell_launch_tokens(MM, 1500 * W + 1)


def test_sell_bounded_by_collateral_backing():
    d = deploy(deposit=FUND)
    d.contract.buy_launch_tokens(MM, 1500 * W)
    d.contract.schedule_collateral_withdrawal(OWNER, RECIPIENT)
    d.clock.advance(THIRTY_DAYS)
    d.contract.confirm_collateral_withdrawal(OWNER)

    with pytest.raises(InsufficientCollateralBalance):
        d.contract.sell_launch_tokens(MM, 500 * W)


# ── Return-wallet buyback ─────────────────────────────────────────────────────

def test_return_wallet_buyback_values_oldest_positions():
    d = deploy(deposit=FUND)
    d.contract.buy_launch_tokens(MM, 1500 * W)
    d.contract.sell_launch_tokens(MM, 500 * W)
    d.launch.transfer(MM, RETURN, 1000 * W)

    quote = d.contract.sell_launch_tokens_return_wallet(RETURN, 1000 * W)

    # level 0 at 1.0 less 20% withheld profit
    assert quote.net == 800 * W
    assert ledger_tuple(d.contract) == (FUND, 1000 * W, 1000 * W, 0, 0, 0)
    assert d.contract.launch_available() == 0
    assert d.collateral.balance_of(RETURN) == 800 * W

    with pytest.raises(InsufficientSoldTokens):
        d.contract.sell_launch_tokens(MM, W)


def test_only_return_wallets_use_buyback():
    d = deploy(deposit=FUND)
    d.contract.buy_launch_tokens(MM, 1000 * W)
    with pytest.raises(OnlyReturnWallet):
        d.contract.sell_launch_tokens_return_wallet(MM, 100 * W)


def test_available_tracks_sold_minus_earned_through_a_session():
    d = deploy(deposit=FUND)
    c = d.contract
    c.buy_launch_tokens(MM, 3000 * W)
    d.launch.transfer(MM, RETURN, 1200 * W)
    c.sell_launch_tokens_return_wallet(RETURN, 700 * W)
    c.sell_launch_tokens(MM, 400 * W)
    c.buy_launch_tokens(MM, 250 * W)
    c.sell_launch_tokens_return_wallet(RETURN, 500 * W)

    s = c.ledger.state
    assert s.total_launch_sold == 2850 * W
    assert s.launch_tokens_earned == 1200 * W
    assert c.launch_available() == s.total_launch_sold - s.launch_tokens_earned
    assert s.contract_collateral_balance == d.collateral.balance_of(CONTRACT)
    assert s.launch_balance == d.launch.balance_of(CONTRACT)


# ── Deposits ──────────────────────────────────────────────────────────────────

def test_collateral_deposit_is_owner_only():
    d = deploy(deposit=FUND)
    d.contract.deposit_collateral(OWNER, 500 * W)
    assert d.contract.ledger.state.contract_collateral_balance == 500 * W

    with pytest.raises(AccessDenied):
        d.contract.deposit_collateral(OUTSIDER, 500 * W)
    with pytest.raises(InvalidAmount):
        d.contract.deposit_collateral(OWNER, 0)


def test_unaccounted_offset_registers_prefunded_supply():
    d = deploy(offset_launch=5000 * W)
    d.launch.mint(CONTRACT, 5000 * W)

    d.contract.process_unaccounted_offset(OWNER, 2000 * W)
    s = d.contract.ledger.state
    assert (s.launch_balance, s.unaccounted_offset, s.is_initialized) == (2000 * W, 3000 * W, True)

    with pytest.raises(InsufficientUnaccountedOffset):
        d.contract.process_unaccounted_offset(OWNER, 4000 * W)
    with pytest.raises(OnlyOwner):
        d.contract.process_unaccounted_offset(MM, W)


def test_unaccounted_offset_needs_tokens_on_contract():
    d = deploy(offset_launch=5000 * W)
    with pytest.raises(InsufficientTokenBalance):
        d.contract.process_unaccounted_offset(OWNER, 1000 * W)


# ── Oracle floor ──────────────────────────────────────────────────────────────

def test_oracle_floor_blocks_trading_and_deposits():
    oracle = FakeOracle(50)
    d = deploy(deposit=FUND, oracle=oracle, collateral_token_min_oracle_value=100)
    with pytest.raises(CollateralPriceBelowMinimum):
        d.contract.buy_launch_tokens(MM, W)
    with pytest.raises(CollateralPriceBelowMinimum):
        d.contract.deposit_collateral(OWNER, W)

    oracle.value = 100
    d.contract.buy_launch_tokens(MM, W)


def test_missing_oracle_disables_floor():
    d = deploy(deposit=FUND, collateral_token_min_oracle_value=100)
    assert not d.contract.oracle.enabled
    d.contract.buy_launch_tokens(MM, W)


# ── Profit ────────────────────────────────────────────────────────────────────

def test_profit_on_request_accumulates_until_claimed():
    d = deploy(deposit=FUND, profit_in_time=False)
    d.contract.buy_launch_tokens(MM, 1000 * W)
    s = d.contract.ledger.state
    assert (s.owner_profit_balance, s.royalty_profit_balance) == (180 * W, 20 * W)
    assert d.collateral.balance_of(CONTRACT) == 1000 * W

    assert d.contract.claim_profit_on_request(OWNER) == 180 * W
    assert d.collateral.balance_of(OWNER) == 1_000_000 * W + 180 * W
    with pytest.raises(NoProfitAvailable):
        d.contract.claim_profit_on_request(OWNER)

    assert d.contract.claim_profit_on_request(ROYALTY) == 20 * W
    with pytest.raises(AccessDenied):
        d.contract.claim_profit_on_request(OUTSIDER)


def test_profit_percentage_moves_one_way_per_party():
    d = deploy(deposit=FUND)
    c = d.contract
    c.change_profit_percentage(OWNER, 150)
    s = c.ledger.state
    assert s.royalty_profit_percent == 150
    assert s.royalty_profit_percent + s.creator_profit_percent == 1000

    with pytest.raises(InvalidPercentage):
        c.change_profit_percentage(OWNER, 120)
    c.change_profit_percentage(ROYALTY, 120)
    with pytest.raises(InvalidPercentage):
        c.change_profit_percentage(ROYALTY, 130)
    with pytest.raises(InvalidPercentage):
        c.change_profit_percentage(OWNER, 120)
    with pytest.raises(InvalidPercentage):
        c.change_profit_percentage(OWNER, 1001)
    with pytest.raises(InvalidPercentage):
        c.change_profit_percentage(ROYALTY, 0)
    with pytest.raises(AccessDenied):
        c.change_profit_percentage(OUTSIDER, 500)
    assert s.royalty_profit_percent == 120


def test_new_royalty_share_applies_to_next_buy():
    d = deploy(deposit=FUND)
    d.contract.change_profit_percentage(OWNER, 500)
    d.contract.buy_launch_tokens(MM, 1000 * W)
    assert d.collateral.balance_of(ROYALTY) == 100 * W


def test_profit_mode_switch_notifies_royalty_contract():
    royalty = RecordingRoyalty()
    d = deploy(deposit=FUND, royalty=royalty)
    assert d.contract.switch_profit_mode(OWNER, False) is True
    assert royalty.calls == [(CONTRACT, False)]
    assert d.contract.ledger.state.profit_in_time is False

    with pytest.raises(OnlyOwner):
        d.contract.switch_profit_mode(ROYALTY, True)


def test_profit_mode_switch_survives_failing_royalty_contract():
    d = deploy(deposit=FUND, royalty=RevertingRoyalty())
    assert d.contract.switch_profit_mode(OWNER, False) is False
    assert d.contract.ledger.state.profit_in_time is False
    assert len(d.contract.events.named("ProfitModeChanged")) == 1


# ── DAO emergency paths ───────────────────────────────────────────────────────

def test_dao_launch_sweep_after_lock_end_shuts_down():
    d = deploy(deposit=FUND)
    with pytest.raises(LockPeriodNotEnded):
        d.contract.withdraw_all_launch_tokens(DAO)
    d.clock.now = LOCK_END
    with pytest.raises(OnlyDao):
        d.contract.withdraw_all_launch_tokens(OWNER)

    assert d.contract.withdraw_all_launch_tokens(DAO) == FUND
    assert d.launch.balance_of(DAO) == FUND
    s = d.contract.ledger.state
    assert (s.launch_balance, s.is_active) == (0, False)

    with pytest.raises(ContractNotActive):
        d.contract.buy_launch_tokens(MM, W)
    with pytest.raises(ContractNotActive):
        d.contract.deposit_collateral(OWNER, W)
    with pytest.raises(NoTokensToWithdraw):
        d.contract.withdraw_all_launch_tokens(DAO)


def test_dao_collateral_sweep():
    d = deploy(deposit=FUND)
    d.clock.now = LOCK_END
    with pytest.raises(NoCollateralTokensToWithdraw):
        d.contract.withdraw_all_collateral_tokens(DAO)

    d.contract.buy_launch_tokens(MM, 1500 * W)
    assert d.contract.withdraw_all_collateral_tokens(DAO) == 1240 * W
    assert d.contract.ledger.state.contract_collateral_balance == 0


def test_dao_rescues_foreign_tokens_only():
    d = deploy(deposit=FUND)
    stray = InMemoryToken("0xstraytoken")
    stray.mint(CONTRACT, 5 * W)

    d.contract.withdraw_token(DAO, stray, 5 * W)
    assert stray.balance_of(DAO) == 5 * W

    with pytest.raises(InvalidTokenForWithdrawal):
        d.contract.withdraw_token(DAO, d.launch, 1)
    with pytest.raises(InvalidTokenForWithdrawal):
        d.contract.withdraw_token(DAO, d.collateral, 1)
    with pytest.raises(OnlyDao):
        d.contract.withdraw_token(OWNER, stray, 1)


def test_json_shaped_flags_and_percentages_are_rejected():
    d = deploy(deposit=FUND)
    with pytest.raises(InvalidFlag):
        d.contract.switch_profit_mode(OWNER, "false")
    with pytest.raises(InvalidFlag):
        d.contract.switch_profit_mode(OWNER, 0)
    assert d.contract.ledger.state.profit_in_time is True
    assert d.contract.events.named("ProfitModeChanged") == []

    with pytest.raises(InvalidPercentage):
        d.contract.change_profit_percentage(OWNER, "500")
    with pytest.raises(InvalidPercentage):
        d.contract.change_profit_percentage(OWNER, True)
    assert d.contract.ledger.state.royalty_profit_percent == 100
