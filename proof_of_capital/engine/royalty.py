from __future__ import annotations

import logging
from typing import Optional

from proof_of_capital.engine.events import EventLog
from proof_of_capital.engine.roles import RoleRegistry, require_flag
from proof_of_capital.engine.tokens import RoyaltyContract
from proof_of_capital.utils.logging_cfg import log_event

log = logging.getLogger(__name__)


class RoyaltyNotifier:
    """
    Switches real-time vs. on-request profit distribution and tells the
    royalty contract about it.

    The notification is best-effort: whatever the royalty contract raises is
    logged and dropped, the mode switch still completes.
    """

    def __init__(self, contract_address: str, royalty: Optional[RoyaltyContract], roles: RoleRegistry, events: EventLog):
        self._contract_address = contract_address
        self._royalty = royalty
        self._roles = roles
        self._events = events

    def switch_profit_mode(self, caller: str, ledger_state, profit_in_time: bool) -> bool:
        self._roles.require_owner(caller)
        ledger_state.profit_in_time = require_flag(profit_in_time, "profit_in_time")
        self._events.emit("ProfitModeChanged", profit_in_time=ledger_state.profit_in_time)
        return self.notify(ledger_state.profit_in_time)

    def notify(self, profit_in_time: bool) -> bool:
        """Returns True when the royalty contract accepted the notification."""
        if self._royalty is None:
            return False
        try:
            self._royalty.notify_profit_mode_changed(self._contract_address, profit_in_time)
        except Exception as e:
            log_event(
                log,
                "royalty_notification_failed",
                level=logging.WARNING,
                contract=self._contract_address,
                error=f"{type(e).__name__}: {e}",
            )
            return False
        return True
