"""
Argon2 password hashing utilities for chatline.

Passwords are hashed with Argon2id; the salt and cost parameters are embedded
in the hash string, so verification needs nothing but the stored hash.
"""

import os

from argon2 import PasswordHasher, Type, exceptions
from argon2.exceptions import InvalidHashError, VerificationError

from ..exceptions import AuthenticationError, WeakInputError
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import log_and_raise

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8

# Cost parameters, overridable via ARGON2_TIME_COST, ARGON2_MEMORY_COST,
# ARGON2_PARALLELISM and ARGON2_HASH_LENGTH
TIME_COST = int(os.getenv("ARGON2_TIME_COST", "3"))
MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "65536"))  # KiB
PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "1"))
HASH_LENGTH = int(os.getenv("ARGON2_HASH_LENGTH", "32"))

if TIME_COST < 1 or TIME_COST > 10:
    raise ValueError(f"ARGON2_TIME_COST must be between 1 and 10, got {TIME_COST}")
if MEMORY_COST < 1024 or MEMORY_COST > 1048576:
    raise ValueError(f"ARGON2_MEMORY_COST must be between 1024 and 1048576, got {MEMORY_COST}")
if PARALLELISM < 1 or PARALLELISM > 16:
    raise ValueError(f"ARGON2_PARALLELISM must be between 1 and 16, got {PARALLELISM}")
if HASH_LENGTH < 16 or HASH_LENGTH > 64:
    raise ValueError(f"ARGON2_HASH_LENGTH must be between 16 and 64, got {HASH_LENGTH}")

_default_hasher = PasswordHasher(
    type=Type.ID,
    time_cost=TIME_COST,
    memory_cost=MEMORY_COST,
    parallelism=PARALLELISM,
    hash_len=HASH_LENGTH,
)


def hash_password(password: str, min_length: int = MIN_PASSWORD_LENGTH) -> str:
    """
    Hash a plaintext password using Argon2id.

    Hashing is CPU bound and deliberately slow; async callers should run it
    in the threadpool.

    Args:
        password: Plaintext password
        min_length: Minimum accepted length (never below 8)

    Returns:
        Argon2id hash string in format: $argon2id$v=19$m=65536,t=3,p=1$...

    Raises:
        WeakInputError: If password is not a string or is shorter than the minimum
        AuthenticationError: If the underlying hashing fails
    """
    min_length = max(min_length, MIN_PASSWORD_LENGTH)
    if not isinstance(password, str):
        raise WeakInputError(
            "Password must be a string",
            field="password",
            user_friendly="Password must be a string",
        )
    if len(password) < min_length:
        raise WeakInputError(
            f"Password shorter than {min_length} characters",
            field="password",
            details={"minimum_length": min_length},
            user_friendly=f"Password must be at least {min_length} characters",
        )

    try:
        return _default_hasher.hash(password)
    except exceptions.HashingError as e:
        log_and_raise(
            AuthenticationError,
            f"Failed to hash password: {e}",
            details={"original_error": str(e), "error_type": type(e).__name__},
            user_friendly="Password processing failed",
        )


def verify_password(password: str, hashed: str | None) -> bool:
    """
    Verify a plaintext password against an Argon2 hash.

    Never raises: a mismatch, a malformed hash or a non-string input all
    return False.
    """
    if not isinstance(password, str) or not hashed:
        logger.debug("Password verification skipped - missing input")
        return False

    try:
        return _default_hasher.verify(hashed, password)
    except VerificationError:
        logger.debug("Password verification failed - mismatch")
        return False
    except InvalidHashError as e:
        logger.warning("Password verification failed - malformed hash", error=str(e))
        return False


def is_argon2_hash(hash_value: str | None) -> bool:
    """Check if a given string is an Argon2 hash."""
    return isinstance(hash_value, str) and hash_value.startswith("$argon2")


def needs_rehash(hashed: str) -> bool:
    """Check if a hash needs to be rehashed due to parameter changes."""
    if not is_argon2_hash(hashed):
        return True
    try:
        return _default_hasher.check_needs_rehash(hashed)
    except InvalidHashError:
        return True
