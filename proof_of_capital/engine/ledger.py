"""
Ledger: the accounting state behind the curve.

    launch_balance               launch tokens accounted to the contract
    total_launch_sold            cumulative-sold cursor on the curve
    launch_tokens_earned         sold tokens bought back by return wallets
    contract_collateral_balance  collateral backing sold, not bought-back tokens

Invariant: launch_available = total_launch_sold - launch_tokens_earned >= 0.

Every operation validates fully before it writes; token pulls happen before
state writes and payouts after, so a failed pull leaves nothing behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from proof_of_capital.engine.checked import checked_add, checked_sub, mul_div
from proof_of_capital.engine.constants import PERCENTAGE_DIVISOR
from proof_of_capital.engine.errors import (
    AccessDenied,
    ContractNotActive,
    ContractNotInitialized,
    InsufficientCollateralBalance,
    InsufficientSoldTokens,
    InsufficientTokenBalance,
    InsufficientUnaccountedOffset,
    InvalidAmount,
    InvalidPercentage,
    InvalidTokenForWithdrawal,
    LockPeriodNotEnded,
    NoCollateralTokensToWithdraw,
    NoProfitAvailable,
    NoTokensToWithdraw,
    UseDepositFunctionForOwners,
)
from proof_of_capital.engine.events import EventLog
from proof_of_capital.engine.lock import LockController
from proof_of_capital.engine.oracle import OracleGuard
from proof_of_capital.engine.pricing import PricingEngine, TradeQuote
from proof_of_capital.engine.roles import RoleRegistry
from proof_of_capital.engine.tokens import FungibleToken

log = logging.getLogger(__name__)


@dataclass
class LedgerState:
    royalty_profit_percent: int
    launch_balance: int = 0
    total_launch_sold: int = 0
    launch_tokens_earned: int = 0
    contract_collateral_balance: int = 0
    owner_profit_balance: int = 0
    royalty_profit_balance: int = 0
    unaccounted_offset: int = 0
    is_initialized: bool = False
    is_active: bool = True
    profit_in_time: bool = True

    @property
    def creator_profit_percent(self) -> int:
        return PERCENTAGE_DIVISOR - self.royalty_profit_percent

    @property
    def launch_available(self) -> int:
        return checked_sub(self.total_launch_sold, self.launch_tokens_earned)


class Ledger:
    def __init__(
        self,
        state: LedgerState,
        address: str,
        launch_token: FungibleToken,
        collateral_token: FungibleToken,
        pricing: PricingEngine,
        roles: RoleRegistry,
        lock: LockController,
        oracle: OracleGuard,
        events: EventLog,
    ):
        self.state = state
        self.address = address
        self.launch_token = launch_token
        self.collateral_token = collateral_token
        self.pricing = pricing
        self._roles = roles
        self._lock = lock
        self._oracle = oracle
        self._events = events

    # ── Guards ──

    def require_active(self) -> None:
        if not self.state.is_active:
            raise ContractNotActive("contract was shut down by the DAO")

    @staticmethod
    def _require_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")

    def _require_trader(self, caller: str) -> None:
        if self._roles.is_market_maker(caller):
            return
        if not self._lock.trading_access():
            raise AccessDenied(f"{caller} is not a market maker and trading access is closed")

    def _require_lock_ended(self) -> None:
        if not self._lock.lock_ended():
            raise LockPeriodNotEnded(f"lock ends in {self._lock.remaining_seconds()}s")

    # ── Market operations ──

    def buy_launch_tokens(self, caller: str, amount: int) -> TradeQuote:
        self.require_active()
        self._require_amount(amount)
        if caller == self._roles.owner:
            raise UseDepositFunctionForOwners("owner must use deposit_launch / deposit_collateral")
        self._require_trader(caller)
        if not self.state.is_initialized:
            raise ContractNotInitialized("no launch tokens deposited yet")
        self._oracle.check()
        if amount > self.state.launch_balance:
            raise InsufficientTokenBalance(
                f"requested {amount}, launch balance {self.state.launch_balance}"
            )

        quote = self.pricing.quote_buy(self.state.total_launch_sold, amount)
        royalty_share, creator_share = self._split_profit(quote.profit)
        new_sold = checked_add(self.state.total_launch_sold, amount)
        new_balance = checked_sub(self.state.launch_balance, amount)
        new_backing = checked_add(self.state.contract_collateral_balance, quote.net)

        self.collateral_token.transfer_from(self.address, caller, self.address, quote.gross)

        self.state.total_launch_sold = new_sold
        self.state.launch_balance = new_balance
        self.state.contract_collateral_balance = new_backing
        self._distribute_profit(creator_share, royalty_share)

        self.launch_token.transfer(self.address, caller, amount)
        self._events.emit(
            "LaunchTokensBought",
            buyer=caller,
            amount=amount,
            cost=quote.gross,
            profit=quote.profit,
            level=quote.end_level,
        )
        return quote

    def sell_launch_tokens(self, caller: str, amount: int) -> TradeQuote:
        self.require_active()
        self._require_amount(amount)
        self._require_trader(caller)
        self._oracle.check()
        available = self.state.launch_available
        if amount > available:
            raise InsufficientSoldTokens(f"requested {amount}, available {available}")

        quote = self.pricing.quote_sell(self.state.total_launch_sold, amount)
        if quote.net > self.state.contract_collateral_balance:
            raise InsufficientCollateralBalance(
                f"payout {quote.net} exceeds backing {self.state.contract_collateral_balance}"
            )

        self.launch_token.transfer_from(self.address, caller, self.address, amount)

        self.state.total_launch_sold = checked_sub(self.state.total_launch_sold, amount)
        self.state.launch_balance = checked_add(self.state.launch_balance, amount)
        self.state.contract_collateral_balance = checked_sub(
            self.state.contract_collateral_balance, quote.net
        )

        self.collateral_token.transfer(self.address, caller, quote.net)
        self._events.emit(
            "LaunchTokensSold",
            seller=caller,
            amount=amount,
            payout=quote.net,
            level=quote.start_level,
        )
        return quote

    def sell_launch_tokens_return_wallet(self, caller: str, amount: int) -> TradeQuote:
        """Guaranteed buyback: the only path that raises launch_balance above total_launch_sold."""
        self.require_active()
        self._require_amount(amount)
        self._roles.require_return_wallet(caller)
        self._oracle.check()
        available = self.state.launch_available
        if amount > available:
            raise InsufficientSoldTokens(f"requested {amount}, available {available}")

        quote = self.pricing.quote_buyback(self.state.launch_tokens_earned, amount)
        if quote.net > self.state.contract_collateral_balance:
            raise InsufficientCollateralBalance(
                f"payout {quote.net} exceeds backing {self.state.contract_collateral_balance}"
            )

        self.launch_token.transfer_from(self.address, caller, self.address, amount)

        self.state.launch_balance = checked_add(self.state.launch_balance, amount)
        self.state.launch_tokens_earned = checked_add(self.state.launch_tokens_earned, amount)
        self.state.contract_collateral_balance = checked_sub(
            self.state.contract_collateral_balance, quote.net
        )

        if quote.net:
            self.collateral_token.transfer(self.address, caller, quote.net)
        self._events.emit("ReturnWalletSale", wallet=caller, amount=amount, payout=quote.net)
        return quote

    # ── Deposits ──

    def deposit_launch(self, caller: str, amount: int) -> None:
        self.require_active()
        self._roles.require_owner_or_old_contract(caller)
        self._require_amount(amount)
        new_balance = checked_add(self.state.launch_balance, amount)

        self.launch_token.transfer_from(self.address, caller, self.address, amount)

        self.state.launch_balance = new_balance
        self.state.is_initialized = True
        self._events.emit("LaunchDeposited", sender=caller, amount=amount)

    def deposit_collateral(self, caller: str, amount: int) -> None:
        self.require_active()
        self._roles.require_owner_or_old_contract(caller)
        self._require_amount(amount)
        self._oracle.check()
        new_backing = checked_add(self.state.contract_collateral_balance, amount)

        self.collateral_token.transfer_from(self.address, caller, self.address, amount)

        self.state.contract_collateral_balance = new_backing
        self._events.emit("CollateralDeposited", sender=caller, amount=amount)

    def process_unaccounted_offset(self, caller: str, amount: int) -> None:
        """Register supply that was transferred in before launch."""
        self.require_active()
        self._roles.require_owner(caller)
        self._require_amount(amount)
        if amount > self.state.unaccounted_offset:
            raise InsufficientUnaccountedOffset(
                f"requested {amount}, unaccounted offset {self.state.unaccounted_offset}"
            )
        new_balance = checked_add(self.state.launch_balance, amount)
        held = self.launch_token.balance_of(self.address)
        if held < new_balance:
            raise InsufficientTokenBalance(f"contract holds {held}, needs {new_balance}")

        self.state.unaccounted_offset -= amount
        self.state.launch_balance = new_balance
        self.state.is_initialized = True
        self._events.emit("UnaccountedOffsetProcessed", amount=amount, remaining=self.state.unaccounted_offset)

    # ── Profit ──

    def _split_profit(self, profit: int):
        royalty_share = mul_div(profit, self.state.royalty_profit_percent, PERCENTAGE_DIVISOR)
        return royalty_share, profit - royalty_share

    def _distribute_profit(self, creator_share: int, royalty_share: int) -> None:
        if creator_share == 0 and royalty_share == 0:
            return
        if self.state.profit_in_time:
            if creator_share:
                self.collateral_token.transfer(self.address, self._roles.owner, creator_share)
            if royalty_share:
                self.collateral_token.transfer(self.address, self._roles.royalty_wallet, royalty_share)
        else:
            self.state.owner_profit_balance = checked_add(self.state.owner_profit_balance, creator_share)
            self.state.royalty_profit_balance = checked_add(self.state.royalty_profit_balance, royalty_share)
        self._events.emit(
            "ProfitDistributed",
            creator_share=creator_share,
            royalty_share=royalty_share,
            in_time=self.state.profit_in_time,
        )

    def claim_profit_on_request(self, caller: str) -> int:
        self._roles.require_owner_or_royalty(caller)
        owner_part = self.state.owner_profit_balance if caller == self._roles.owner else 0
        royalty_part = self.state.royalty_profit_balance if caller == self._roles.royalty_wallet else 0
        total = owner_part + royalty_part
        if total == 0:
            raise NoProfitAvailable(f"no profit available for {caller}")

        if owner_part:
            self.state.owner_profit_balance = 0
        if royalty_part:
            self.state.royalty_profit_balance = 0

        self.collateral_token.transfer(self.address, caller, total)
        self._events.emit("ProfitClaimed", recipient=caller, amount=total)
        return total

    def change_profit_percentage(self, caller: str, new_percent: int) -> None:
        """Owner may only raise the royalty share; the royalty wallet may only lower it."""
        self._roles.require_owner_or_royalty(caller)
        current = self.state.royalty_profit_percent
        if isinstance(new_percent, bool) or not isinstance(new_percent, int):
            raise InvalidPercentage(f"{new_percent!r} is not an integer percentage")
        if new_percent <= 0 or new_percent > PERCENTAGE_DIVISOR:
            raise InvalidPercentage(f"{new_percent} outside (0, {PERCENTAGE_DIVISOR}]")
        if new_percent == current:
            raise InvalidPercentage("royalty share unchanged")
        if caller == self._roles.owner and new_percent > current:
            pass
        elif caller == self._roles.royalty_wallet and new_percent < current:
            pass
        else:
            raise InvalidPercentage(f"{caller} cannot move royalty share from {current} to {new_percent}")
        self.state.royalty_profit_percent = new_percent
        self._events.emit(
            "ProfitPercentageChanged",
            royalty_profit_percent=new_percent,
            creator_profit_percent=self.state.creator_profit_percent,
        )

    # ── DAO emergency paths ──

    def withdraw_all_launch_tokens(self, caller: str) -> int:
        self._roles.require_dao(caller)
        self._require_lock_ended()
        held = self.launch_token.balance_of(self.address)
        if held == 0:
            raise NoTokensToWithdraw("contract holds no launch tokens")

        self.state.launch_balance = 0
        self.state.unaccounted_offset = 0
        self.state.is_active = False

        self.launch_token.transfer(self.address, caller, held)
        self._events.emit("AllLaunchTokensWithdrawn", dao=caller, amount=held)
        return held

    def withdraw_all_collateral_tokens(self, caller: str) -> int:
        self._roles.require_dao(caller)
        self._require_lock_ended()
        held = self.collateral_token.balance_of(self.address)
        if held == 0:
            raise NoCollateralTokensToWithdraw("contract holds no collateral")

        self.state.contract_collateral_balance = 0
        self.state.owner_profit_balance = 0
        self.state.royalty_profit_balance = 0

        self.collateral_token.transfer(self.address, caller, held)
        self._events.emit("AllCollateralWithdrawn", dao=caller, amount=held)
        return held

    def withdraw_token(self, caller: str, token: FungibleToken, amount: int) -> None:
        """Rescue tokens sent here by mistake; the launch and collateral tokens are excluded."""
        self._roles.require_dao(caller)
        if token.address in (self.launch_token.address, self.collateral_token.address):
            raise InvalidTokenForWithdrawal(f"{token.address} must go through the gated withdrawal paths")
        self._require_amount(amount)
        token.transfer(self.address, caller, amount)
        self._events.emit("TokenRescued", token=token.address, dao=caller, amount=amount)

    # ── Views ──

    def snapshot(self) -> Dict[str, Any]:
        s = self.state
        return {
            "launch_balance": s.launch_balance,
            "total_launch_sold": s.total_launch_sold,
            "launch_tokens_earned": s.launch_tokens_earned,
            "launch_available": s.launch_available,
            "contract_collateral_balance": s.contract_collateral_balance,
            "owner_profit_balance": s.owner_profit_balance,
            "royalty_profit_balance": s.royalty_profit_balance,
            "unaccounted_offset": s.unaccounted_offset,
            "royalty_profit_percent": s.royalty_profit_percent,
            "creator_profit_percent": s.creator_profit_percent,
            "is_initialized": s.is_initialized,
            "is_active": s.is_active,
            "profit_in_time": s.profit_in_time,
            "current_price": self.pricing.current_price(s.total_launch_sold),
        }
