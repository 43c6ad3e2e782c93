"""
Scenario sandbox: replay timed operations against a fresh, in-memory lock.

Every holder named in the scenario pre-approves the sandbox contract for
both tokens, so deposits, buys and sells only fail on engine rules or on
real balance shortfalls.
"""

import inspect
import logging
from typing import Any, Dict, List

from proof_of_capital.engine.constants import UINT256_MAX
from proof_of_capital.engine.contract import ProofOfCapital
from proof_of_capital.engine.errors import ProofOfCapitalError
from proof_of_capital.engine.pricing import TradeQuote
from proof_of_capital.engine.tokens import AddressBook, InMemoryToken
from proof_of_capital.schemas import ScenarioInput
from proof_of_capital.utils.logging_cfg import log_event

log = logging.getLogger(__name__)

SANDBOX_ADDRESS = "0x" + "5a2db0c".rjust(40, "0")


class ScenarioClock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


def _result_value(value: Any) -> Any:
    if isinstance(value, TradeQuote):
        return {
            "amount": value.amount,
            "gross": value.gross,
            "profit": value.profit,
            "net": value.net,
            "start_level": value.start_level,
            "end_level": value.end_level,
        }
    return value


def _holders(data: ScenarioInput) -> List[str]:
    p = data.params
    seen = [p.initial_owner, p.reserve_owner, p.royalty_wallet, p.dao_address]
    seen += p.market_makers + p.return_wallets
    for holders in data.balances.values():
        seen += list(holders)
    seen += [s.caller for s in data.steps]
    out = []
    for addr in seen:
        if addr and addr not in out:
            out.append(addr)
    return out


def run_scenario(data: ScenarioInput) -> Dict[str, Any]:
    clock = ScenarioClock(data.start_time)
    launch = InMemoryToken(data.params.launch_token, symbol="LAUNCH")
    collateral = InMemoryToken(data.params.collateral_token, symbol="COLLATERAL")
    for addr, amount in data.balances.get("launch", {}).items():
        launch.mint(addr, amount)
    for addr, amount in data.balances.get("collateral", {}).items():
        collateral.mint(addr, amount)
    # pre-funded supply sits on the contract before launch
    if data.params.offset_launch:
        launch.mint(SANDBOX_ADDRESS, data.params.offset_launch)

    contract = ProofOfCapital(
        data.params,
        SANDBOX_ADDRESS,
        launch,
        collateral,
        clock=clock,
        address_book=AddressBook(),
    )

    holders = _holders(data)
    for addr in holders:
        launch.approve(addr, SANDBOX_ADDRESS, UINT256_MAX)
        collateral.approve(addr, SANDBOX_ADDRESS, UINT256_MAX)

    steps = []
    for i, step in enumerate(data.steps):
        clock.now = data.start_time + step.at
        method = getattr(contract, step.operation)
        entry = {
            "index": i,
            "at": clock.now,
            "caller": step.caller,
            "operation": step.operation,
            "ok": False,
            "error": None,
            "message": None,
            "result": None,
        }
        try:
            inspect.signature(method).bind(step.caller, **step.args)
        except TypeError as e:
            entry["error"] = "InvalidArguments"
            entry["message"] = str(e)
            steps.append(entry)
            continue
        try:
            entry["result"] = _result_value(method(step.caller, **step.args))
            entry["ok"] = True
        except ProofOfCapitalError as e:
            entry["error"] = e.code
            entry["message"] = str(e)
        except (TypeError, ValueError) as e:
            # JSON args of the wrong type that slipped past the engine guards
            entry["error"] = "InvalidArguments"
            entry["message"] = str(e)
        steps.append(entry)

    log_event(
        log,
        "scenario_replayed",
        steps=len(steps),
        failed=sum(1 for s in steps if not s["ok"]),
    )

    tracked = holders + [SANDBOX_ADDRESS]
    return {
        "steps": steps,
        "state": contract.snapshot(),
        "events": [e.to_dict() for e in contract.events],
        "balances": {
            "launch": {a: launch.balance_of(a) for a in tracked},
            "collateral": {a: collateral.balance_of(a) for a in tracked},
        },
    }
