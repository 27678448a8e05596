from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

# PINs are short, so they are only ever stored as salted Argon2 hashes
pinHasher = PasswordHasher(encoding="utf-8")


def makePin(pin: str) -> str:
    """Hash a PIN for storage in `Account.pin`."""
    return pinHasher.hash(pin)


def checkPin(pin: str, pinHash: str) -> bool:
    """
    Compare a submitted PIN with the stored hash.

    A malformed stored hash counts as a mismatch instead of an error, so a
    corrupted row can not be logged into.

    Example:
        >>> checkPin("1234", makePin("1234"))
        True
    """
    try:
        return pinHasher.verify(pinHash, pin)
    except (VerifyMismatchError, InvalidHashError):
        return False
