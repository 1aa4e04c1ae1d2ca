"""Application-wide exception classes."""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class DatabaseError(ApplicationError):
    """Base exception for database-related errors."""
    pass


class ContractError(ApplicationError):
    """Base exception for a reverted contract call.

    Every subclass is a named revert reason. ``error_name`` is what callers
    match on and what the web layer reports back.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.error_name)

    @property
    def error_name(self) -> str:
        return type(self).__name__


# Authorization


class AuthorizationError(ContractError):
    """Raised when the caller is not allowed to perform the operation."""
    pass


class CallerNotOwner(AuthorizationError):
    pass


class CallerNotCreator(AuthorizationError):
    pass


class CallerNotProvider(AuthorizationError):
    pass


class AccessDenied(AuthorizationError):
    pass


# Invalid parameters


class InvalidParameterError(ContractError):
    """Raised when an argument is rejected before any state is touched."""
    pass


class InvalidParameter(InvalidParameterError):
    pass


class InvalidArrayLength(InvalidParameterError):
    pass


class BatchLengthMismatch(InvalidParameterError):
    pass


class InvalidWinnerNumber(InvalidParameterError):
    pass


class ZeroAddress(InvalidParameterError):
    pass


# State conflicts


class StateConflictError(ContractError):
    """Raised when the call is valid but not in the current phase."""
    pass


class ParameterAlreadySet(StateConflictError):
    pass


class ParameterNotSet(StateConflictError):
    pass


class VaultWithdrawsEnabled(StateConflictError):
    pass


class VaultWithdrawsDisabled(StateConflictError):
    pass


class InvalidRaffleStatus(StateConflictError):
    pass


class RaffleNotConfigurable(StateConflictError):
    pass


class RaffleNotStarted(StateConflictError):
    pass


class RaffleEnded(StateConflictError):
    pass


class RaffleNotEnded(StateConflictError):
    pass


class HubPaused(StateConflictError):
    pass


# External protocol


class ProtocolError(ContractError):
    """Raised on an inconsistent randomness request/response exchange."""
    pass


class RequestIdNotKnown(ProtocolError):
    pass


class RequestNotFulfilled(ProtocolError):
    pass


class NoEndpointAdded(ProtocolError):
    pass


class ResultRetrieved(ProtocolError):
    pass


# Asset primitives


class AssetError(ContractError):
    """Raised by the token and native currency primitives."""
    pass


class InsufficientBalance(AssetError):
    pass


class InsufficientAllowance(AssetError):
    pass


class TokenNotFound(AssetError):
    pass


class NotTokenOwner(AssetError):
    pass


class ContractNotFound(AssetError):
    pass


# Price feeds


class PriceFeedError(ContractError):
    """Raised when a fiat price cannot be read."""
    pass


class FeedNotRegistered(PriceFeedError):
    pass


class FeedNotInitialized(PriceFeedError):
    pass


class CannotCastUint(PriceFeedError):
    pass
