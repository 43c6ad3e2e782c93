"""
Shared builders for engine tests: a controllable clock, in-memory tokens and
a deployed lock with funded participants.
"""

import os
import sys
from dataclasses import dataclass

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from proof_of_capital.engine.constants import ONE_DAY, UINT256_MAX, WAD
from proof_of_capital.engine.contract import ProofOfCapital
from proof_of_capital.engine.tokens import AddressBook, InMemoryToken
from proof_of_capital.schemas import LaunchParams


# ── Addresses ──
OWNER = "0xowner"
RESERVE = "0xreserve"
ROYALTY = "0xroyalty"
DAO = "0xdao"
MM = "0xmarketmaker"
RETURN = "0xreturnwallet"
OUTSIDER = "0xoutsider"
RECIPIENT = "0xrecipient"
CONTRACT = "0xproofofcapital"
LAUNCH = "0xlaunchtoken"
COLLATERAL = "0xcollateraltoken"

T0 = 1_700_000_000
LOCK_END = T0 + 365 * ONE_DAY
CONTROL_DAY = T0 + 100 * ONE_DAY
CONTROL_PERIOD = 7 * ONE_DAY


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeOracle:
    def __init__(self, value: int):
        self.value = value

    def latest_value(self) -> int:
        return self.value


class RecordingRoyalty:
    def __init__(self):
        self.calls = []

    def notify_profit_mode_changed(self, contract: str, profit_in_time: bool) -> None:
        self.calls.append((contract, profit_in_time))


class RevertingRoyalty:
    def notify_profit_mode_changed(self, contract: str, profit_in_time: bool) -> None:
        raise RuntimeError("royalty contract reverted")


def make_params(**overrides) -> LaunchParams:
    """Minimal valid launch parameters; 1 collateral per token at level 0."""
    defaults = dict(
        initial_owner=OWNER,
        reserve_owner=RESERVE,
        royalty_wallet=ROYALTY,
        dao_address=DAO,
        launch_token=LAUNCH,
        collateral_token=COLLATERAL,
        market_makers=[MM],
        return_wallets=[RETURN],
        lock_end_time=LOCK_END,
        control_day=CONTROL_DAY,
        control_period=CONTROL_PERIOD,
        initial_price_per_launch_token=WAD,
        first_level_launch_token_quantity=1000 * WAD,
        price_increment_multiplier=100,              # +10% per level
        level_increase_multiplier=200,               # levels grow 20% ...
        trend_change_step=3,
        level_decrease_multiplier_after_trend=300,   # ... then shrink 30%
        profit_percentage=100,
        profit_before_trend_change=200,
        royalty_profit_percent=100,
    )
    defaults.update(overrides)
    return LaunchParams(**defaults)


@dataclass
class Deployment:
    contract: ProofOfCapital
    clock: FakeClock
    launch: InMemoryToken
    collateral: InMemoryToken
    book: AddressBook


def approve_all(token: InMemoryToken, holder: str, spender: str = CONTRACT) -> None:
    token.approve(holder, spender, UINT256_MAX)


def deploy(
    deposit: int = 0,
    oracle=None,
    royalty=None,
    clock: FakeClock = None,
    book: AddressBook = None,
    address: str = CONTRACT,
    launch: InMemoryToken = None,
    collateral: InMemoryToken = None,
    **overrides,
) -> Deployment:
    """Deploy a lock; OWNER holds launch supply, MM and OUTSIDER hold collateral."""
    clock = clock or FakeClock()
    book = book or AddressBook()
    fresh_tokens = launch is None
    launch = launch or InMemoryToken(LAUNCH, symbol="LAUNCH")
    collateral = collateral or InMemoryToken(COLLATERAL, symbol="COLL")
    if fresh_tokens:
        launch.mint(OWNER, 1_000_000 * WAD)
        collateral.mint(MM, 1_000_000 * WAD)
        collateral.mint(OUTSIDER, 1_000_000 * WAD)
        collateral.mint(OWNER, 1_000_000 * WAD)

    contract = ProofOfCapital(
        make_params(**overrides),
        address,
        launch,
        collateral,
        clock=clock,
        oracle=oracle,
        royalty=royalty,
        address_book=book,
    )
    for holder in (OWNER, MM, RETURN, OUTSIDER):
        approve_all(launch, holder, address)
        approve_all(collateral, holder, address)

    if deposit:
        contract.deposit_launch(OWNER, deposit)
    return Deployment(contract, clock, launch, collateral, book)


def ledger_tuple(contract: ProofOfCapital):
    s = contract.ledger.state
    return (
        s.launch_balance,
        s.total_launch_sold,
        s.launch_tokens_earned,
        s.contract_collateral_balance,
        s.owner_profit_balance,
        s.royalty_profit_balance,
    )
