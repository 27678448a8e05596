from enum import Enum, IntEnum


class AccountStatus(IntEnum):
    ACTIVE = 1
    SUSPENDED = 2


class AccountRole(IntEnum):
    PASSENGER = 1
    MATE = 2
    DRIVER = 3
    OWNER = 4


class PlatformType(IntEnum):
    OTHER = 1
    WEB = 2
    NATIVE = 3
    SERVER = 4


class Direction(IntEnum):
    UP = 1
    DOWN = 2


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SettlementState(IntEnum):
    VALIDATING = 1
    PRICING = 2
    DEBITING = 3
    RECORDING = 4
    NOTIFYING = 5
    COMPLETED = 6
    FAILED = 7
