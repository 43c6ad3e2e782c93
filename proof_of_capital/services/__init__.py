from proof_of_capital.services.curve_table import compute_level_schedule, compute_trade_quotes
from proof_of_capital.services.sandbox import run_scenario

__all__ = ["compute_level_schedule", "compute_trade_quotes", "run_scenario"]
