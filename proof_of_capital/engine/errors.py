"""
Error taxonomy for the engine.

Every failure is raised synchronously before any state is written. Callers
catch `ProofOfCapitalError` (or one of the category bases) and re-submit.
"""


class ProofOfCapitalError(Exception):
    """Base class for all engine failures."""

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class ArithmeticOverflow(ProofOfCapitalError):
    pass


# ── Authorization ──

class AuthorizationError(ProofOfCapitalError):
    pass


class AccessDenied(AuthorizationError):
    pass


class OnlyOwner(AuthorizationError):
    pass


class OnlyReserveOwner(AuthorizationError):
    pass


class OnlyDao(AuthorizationError):
    pass


class OnlyRoyaltyWalletCanChange(AuthorizationError):
    pass


class OnlyReturnWallet(AuthorizationError):
    pass


class UseDepositFunctionForOwners(AuthorizationError):
    pass


# ── Lifecycle state ──

class StateError(ProofOfCapitalError):
    pass


class NoDeferredWithdrawalScheduled(StateError):
    pass


class LaunchDeferredWithdrawalAlreadyScheduled(StateError):
    pass


class CollateralDeferredWithdrawalAlreadyScheduled(StateError):
    pass


class LockPeriodNotEnded(StateError):
    pass


class DeferredWithdrawalBlocked(StateError):
    pass


class ContractNotActive(StateError):
    pass


class ContractNotInitialized(StateError):
    pass


class TradingAccessOpen(StateError):
    pass


class CannotActivateWithdrawalTooCloseToLockEnd(StateError):
    pass


# ── Timing ──

class TimingError(ProofOfCapitalError):
    pass


class WithdrawalDateNotReached(TimingError):
    pass


class CollateralTokenWithdrawalWindowExpired(TimingError):
    pass


class InvalidTimePeriod(TimingError):
    pass


class LockCannotExceedFiveYears(TimingError):
    pass


# ── Values ──

class ValueValidationError(ProofOfCapitalError):
    pass


class InvalidAmount(ValueValidationError):
    pass


class InvalidAddress(ValueValidationError):
    pass


class InvalidRecipient(ValueValidationError):
    pass


class InvalidRecipientOrAmount(ValueValidationError):
    pass


class InvalidPercentage(ValueValidationError):
    pass


class InvalidFlag(ValueValidationError):
    pass


class InsufficientAmount(ValueValidationError):
    pass


class InsufficientTokenBalance(ValueValidationError):
    pass


class InsufficientSoldTokens(ValueValidationError):
    pass


class InsufficientCollateralBalance(ValueValidationError):
    pass


class InsufficientUnaccountedOffset(ValueValidationError):
    pass


class NoTokensToWithdraw(ValueValidationError):
    pass


class NoCollateralTokensToWithdraw(ValueValidationError):
    pass


class NoProfitAvailable(ValueValidationError):
    pass


class InvalidTokenForWithdrawal(ValueValidationError):
    pass


class OldContractAddress(ValueValidationError):
    pass


class CollateralPriceBelowMinimum(ValueValidationError):
    pass


class CurveLevelLimitExceeded(ValueValidationError):
    pass


# ── Token collaborator ──

class TokenTransferError(ProofOfCapitalError):
    pass
