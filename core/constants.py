"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum, IntEnum


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# 1 whole unit of an 18 decimals asset
ONE_UNIT = 10**18


class RaffleStatus(IntEnum):
    """Raffle lifecycle status."""
    UNINITIALIZED = 0
    CANCELED = 1
    OPEN = 2
    CLOSE = 3
    FINISH = 4


class TokenType(IntEnum):
    """Kind of asset a raffle or a vault operation deals with."""
    NATIVE = 0
    ERC20 = 1
    ERC721 = 2
    ERC1155 = 3
    PRICE_FEED = 4


class CancelationReason(IntEnum):
    """Why a raffle ended up canceled."""
    FORCED_CANCELATION = 0
    CREATOR_DECISION = 1
    REQUIREMENTS_NOT_MET = 2


class RaffleType(IntEnum):
    TRADITIONAL = 0
    YOLO = 1


class Roles(str, Enum):
    """Access manager roles."""
    ADMIN = "ADMIN_ROLE"
    MANAGER = "MANAGER_ROLE"


# Randomness endpoints
class QrngSignatures:
    """Callback signatures the randomness requesters register."""
    INDIVIDUAL_WINNER = "getIndividualWinner(bytes32,bytes)"
    MULTIPLE_WINNERS = "getMultipleWinners(bytes32,bytes)"
    SINGLE_NUMBER = "getNumber(bytes32,bytes)"
    MULTIPLE_NUMBERS = "getMultipleNumbers(bytes32,bytes)"


# Hub defaults
class HubDefaults:
    """Default marketplace configuration."""
    RAFFLE_CUT = 5  # percent
    YOLO_RAFFLE_CUT = 5  # percent
    CANCELATION_FEE = 10**9  # 1 gwei
    YOLO_RAFFLE_DURATION = 60 * 60  # seconds
    MAX_PERCENTAGE = 100


# Database constants
class DatabaseDefaults:
    """Default database configuration."""
    POOL_SIZE = 5
    BUSY_TIMEOUT = 5000  # milliseconds
    JOURNAL_PAGE_SIZE = 100
