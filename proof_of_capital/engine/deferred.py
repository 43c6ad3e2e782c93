"""
Deferred withdrawals of locked assets.

    IDLE ──schedule (owner)──> SCHEDULED ──confirm (owner, in window)──> IDLE
                                   │
                                   └──cancel (owner | royalty wallet)──> IDLE

A request becomes confirmable 30 days after scheduling and stays so for 7
days; after that it has to be cancelled and scheduled again. One request per
asset class may be outstanding.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from proof_of_capital.engine.checked import checked_sub
from proof_of_capital.engine.constants import DEFERRED_WITHDRAWAL_DELAY, DEFERRED_WITHDRAWAL_WINDOW
from proof_of_capital.engine.errors import (
    CollateralDeferredWithdrawalAlreadyScheduled,
    CollateralTokenWithdrawalWindowExpired,
    DeferredWithdrawalBlocked,
    InsufficientAmount,
    InsufficientTokenBalance,
    InvalidRecipient,
    InvalidRecipientOrAmount,
    LaunchDeferredWithdrawalAlreadyScheduled,
    NoCollateralTokensToWithdraw,
    NoDeferredWithdrawalScheduled,
    TokenTransferError,
    WithdrawalDateNotReached,
)
from proof_of_capital.engine.events import EventLog
from proof_of_capital.engine.ledger import Ledger
from proof_of_capital.engine.lock import LockController
from proof_of_capital.engine.roles import RoleRegistry, is_valid_address
from proof_of_capital.engine.tokens import AddressBook, FungibleToken


class WithdrawalStatus(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"


@dataclass
class WithdrawalRequest:
    recipient: Optional[str] = None
    amount: int = 0
    scheduled_date: int = 0

    @property
    def status(self) -> WithdrawalStatus:
        return WithdrawalStatus.SCHEDULED if self.scheduled_date else WithdrawalStatus.IDLE


class DeferredWithdrawalManager:
    """Shared schedule/cancel/confirm machinery; subclasses supply the asset rules."""

    asset = ""
    already_scheduled_error = LaunchDeferredWithdrawalAlreadyScheduled
    deposit_hook = ""

    def __init__(
        self,
        state: WithdrawalRequest,
        ledger: Ledger,
        roles: RoleRegistry,
        lock: LockController,
        clock: Callable[[], int],
        events: EventLog,
        address_book: Optional[AddressBook] = None,
    ):
        self.state = state
        self._ledger = ledger
        self._roles = roles
        self._lock = lock
        self._clock = clock
        self._events = events
        self._address_book = address_book

    @property
    def recipient(self) -> str:
        return self.state.recipient or self._roles.owner

    @property
    def scheduled(self) -> bool:
        return self.state.status is WithdrawalStatus.SCHEDULED

    def _require_enabled(self) -> None:
        if not self._lock.state.can_withdrawal:
            raise DeferredWithdrawalBlocked("deferred withdrawals are switched off")

    def _require_scheduled(self) -> None:
        if not self.scheduled:
            raise NoDeferredWithdrawalScheduled(f"no {self.asset} withdrawal scheduled")

    def _begin_schedule(self, caller: str) -> None:
        self._roles.require_owner(caller)
        self._require_enabled()

    def _commit_schedule(self, recipient: str, amount: int, announced: int) -> None:
        if self.scheduled:
            raise self.already_scheduled_error(f"{self.asset} withdrawal already scheduled")
        self.state.recipient = recipient
        self.state.amount = amount
        self.state.scheduled_date = self._clock() + DEFERRED_WITHDRAWAL_DELAY
        self._events.emit(
            f"{self.asset.capitalize()}DeferredWithdrawalScheduled",
            recipient=recipient,
            amount=announced,
            execute_after=self.state.scheduled_date,
        )

    def _reset(self) -> None:
        self.state.recipient = None
        self.state.amount = 0
        self.state.scheduled_date = 0

    def cancel(self, caller: str) -> None:
        self._roles.require_owner_or_royalty(caller)
        self._require_scheduled()
        self._reset()
        self._events.emit(f"{self.asset.capitalize()}DeferredWithdrawalCancelled", cancelled_by=caller)

    def _begin_confirm(self, caller: str) -> int:
        self._roles.require_owner(caller)
        self._require_enabled()
        self._require_scheduled()
        now = self._clock()
        if now < self.state.scheduled_date:
            raise WithdrawalDateNotReached(
                f"{self.asset} withdrawal confirmable from {self.state.scheduled_date}"
            )
        return now

    def _push(self, token: FungibleToken, recipient: str, amount: int) -> None:
        """Hand `amount` to the recipient, through its deposit hook when it is a contract."""
        contract_address = self._ledger.address
        target = self._address_book.resolve(recipient) if self._address_book else None
        if target is None:
            token.transfer(contract_address, recipient, amount)
            return
        before = token.balance_of(contract_address)
        token.approve(contract_address, recipient, amount)
        getattr(target, self.deposit_hook)(contract_address, amount)
        token.approve(contract_address, recipient, 0)
        if before - token.balance_of(contract_address) != amount:
            raise TokenTransferError(f"recipient {recipient} did not pull {amount} via {self.deposit_hook}")


class LaunchDeferredWithdrawal(DeferredWithdrawalManager):
    asset = "launch"
    already_scheduled_error = LaunchDeferredWithdrawalAlreadyScheduled
    deposit_hook = "deposit_launch"

    def schedule(self, caller: str, recipient: str, amount: int) -> None:
        self._begin_schedule(caller)
        bad_amount = isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0
        if not is_valid_address(recipient) or bad_amount:
            raise InvalidRecipientOrAmount(f"recipient {recipient!r}, amount {amount!r}")
        self._commit_schedule(recipient, amount, amount)

    def confirm(self, caller: str) -> int:
        now = self._begin_confirm(caller)
        # an expired window reports the same way as a window not yet open
        if now > self.state.scheduled_date + DEFERRED_WITHDRAWAL_WINDOW:
            raise WithdrawalDateNotReached("launch withdrawal window expired; schedule again")

        ledger = self._ledger.state
        if ledger.launch_balance <= ledger.total_launch_sold:
            raise InsufficientTokenBalance(
                f"launch balance {ledger.launch_balance} does not exceed sold {ledger.total_launch_sold}"
            )
        amount = self.state.amount
        if ledger.launch_balance - ledger.total_launch_sold < amount:
            raise InsufficientAmount(
                f"headroom {ledger.launch_balance - ledger.total_launch_sold} below {amount}"
            )

        recipient = self.recipient
        ledger.launch_balance = checked_sub(ledger.launch_balance, amount)
        self._reset()
        self._push(self._ledger.launch_token, recipient, amount)
        self._events.emit("LaunchDeferredWithdrawalConfirmed", recipient=recipient, amount=amount)
        return amount


class CollateralDeferredWithdrawal(DeferredWithdrawalManager):
    asset = "collateral"
    already_scheduled_error = CollateralDeferredWithdrawalAlreadyScheduled
    deposit_hook = "deposit_collateral"

    def schedule(self, caller: str, recipient: str) -> None:
        self._begin_schedule(caller)
        if not is_valid_address(recipient):
            raise InvalidRecipient(f"recipient {recipient!r}")
        # the announced amount is the backing now; confirmation sends whatever is there then
        self._commit_schedule(recipient, 0, self._ledger.state.contract_collateral_balance)

    def confirm(self, caller: str) -> int:
        now = self._begin_confirm(caller)
        if now > self.state.scheduled_date + DEFERRED_WITHDRAWAL_WINDOW:
            raise CollateralTokenWithdrawalWindowExpired("collateral withdrawal window expired; schedule again")

        ledger = self._ledger.state
        amount = ledger.contract_collateral_balance
        if amount == 0:
            raise NoCollateralTokensToWithdraw("no collateral backing to withdraw")

        recipient = self.recipient
        ledger.contract_collateral_balance = 0
        self._reset()
        self._push(self._ledger.collateral_token, recipient, amount)
        self._events.emit("CollateralDeferredWithdrawalConfirmed", recipient=recipient, amount=amount)
        return amount
