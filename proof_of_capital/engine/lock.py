from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from proof_of_capital.engine.constants import (
    CONTROL_CYCLE,
    FIVE_YEARS,
    MAX_CONTROL_PERIOD,
    MIN_CONTROL_PERIOD,
    TRADING_OPPORTUNITY_WINDOW,
    WITHDRAWAL_REACTIVATION_WINDOW,
)
from proof_of_capital.engine.errors import (
    CannotActivateWithdrawalTooCloseToLockEnd,
    InvalidTimePeriod,
    LockCannotExceedFiveYears,
    TradingAccessOpen,
)
from proof_of_capital.engine.events import EventLog
from proof_of_capital.engine.roles import RoleRegistry


def clamp_control_period(period: int) -> int:
    return min(max(period, MIN_CONTROL_PERIOD), MAX_CONTROL_PERIOD)


@dataclass
class LockState:
    lock_end_time: int
    control_day: int
    control_period: int
    can_withdrawal: bool = True


class LockController:
    """
    Lock expiry, the deferred-withdrawal switch and the yearly control window.

    All time checks read the clock at call time; nothing is precomputed.
    """

    def __init__(self, state: LockState, roles: RoleRegistry, clock: Callable[[], int], events: EventLog):
        state.control_period = clamp_control_period(state.control_period)
        self.state = state
        self._roles = roles
        self._clock = clock
        self._events = events

    def remaining_seconds(self) -> int:
        return max(self.state.lock_end_time - self._clock(), 0)

    def lock_ended(self) -> bool:
        return self._clock() >= self.state.lock_end_time

    def trading_opportunity(self) -> bool:
        """Open access for any holder during the last two months of the lock."""
        return self.remaining_seconds() < TRADING_OPPORTUNITY_WINDOW

    def in_control_window(self) -> bool:
        now = self._clock()
        if now < self.state.control_day:
            return False
        offset = (now - self.state.control_day) % CONTROL_CYCLE
        return offset < self.state.control_period

    def trading_access(self) -> bool:
        return self.trading_opportunity() or self.in_control_window()

    def extend_lock(self, caller: str, new_end: int) -> None:
        self._roles.require_owner(caller)
        now = self._clock()
        if isinstance(new_end, bool) or not isinstance(new_end, int):
            raise InvalidTimePeriod(f"lock end must be a unix timestamp, got {new_end!r}")
        if new_end <= now:
            raise InvalidTimePeriod("new lock end must be in the future")
        if new_end > now + FIVE_YEARS:
            raise LockCannotExceedFiveYears("lock cannot end more than five years from now")
        if new_end <= self.state.lock_end_time:
            raise InvalidTimePeriod("lock can only be extended")
        previous = self.state.lock_end_time
        self.state.lock_end_time = new_end
        self._events.emit("LockExtended", previous=previous, lock_end_time=new_end)

    def toggle_deferred_withdrawal(self, caller: str) -> bool:
        self._roles.require_owner(caller)
        if not self.state.can_withdrawal:
            remaining = self.state.lock_end_time - self._clock()
            if remaining >= WITHDRAWAL_REACTIVATION_WINDOW:
                raise CannotActivateWithdrawalTooCloseToLockEnd(
                    "deferred withdrawal can only be re-enabled within 60 days of lock end"
                )
        self.state.can_withdrawal = not self.state.can_withdrawal
        self._events.emit("DeferredWithdrawalToggled", can_withdrawal=self.state.can_withdrawal)
        return self.state.can_withdrawal

    def register_old_contract(self, caller: str, address: str) -> None:
        self._roles.require_owner(caller)
        if self.trading_access():
            raise TradingAccessOpen("old contracts cannot be registered while trading access is open")
        self._roles.register_old_contract(address)
