from proof_of_capital.engine.contract import ProofOfCapital
from proof_of_capital.engine.pricing import Level, PricingEngine, TradeQuote
from proof_of_capital.engine.tokens import AddressBook, InMemoryToken

__all__ = ["AddressBook", "InMemoryToken", "Level", "PricingEngine", "ProofOfCapital", "TradeQuote"]
