"""Core application components."""

from core.logger import setup_logger, get_logger
from core.constants import (
    ZERO_ADDRESS,
    ONE_UNIT,
    RaffleStatus,
    TokenType,
    CancelationReason,
    RaffleType,
    Roles,
    QrngSignatures,
    HubDefaults,
    DatabaseDefaults,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    DatabaseError,
    ContractError,
    AuthorizationError,
    InvalidParameterError,
    StateConflictError,
    ProtocolError,
    AssetError,
    PriceFeedError,
)

__all__ = [
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'ZERO_ADDRESS',
    'ONE_UNIT',
    'RaffleStatus',
    'TokenType',
    'CancelationReason',
    'RaffleType',
    'Roles',
    'QrngSignatures',
    'HubDefaults',
    'DatabaseDefaults',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'DatabaseError',
    'ContractError',
    'AuthorizationError',
    'InvalidParameterError',
    'StateConflictError',
    'ProtocolError',
    'AssetError',
    'PriceFeedError',
]
