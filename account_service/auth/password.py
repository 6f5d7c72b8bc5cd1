"""
Password hashing with Argon2id.

Argon2id is memory-hard and side-channel resistant. Each digest embeds the
algorithm parameters and a random per-call salt, so two hashes of the same
password never match byte-for-byte.

The functions here are synchronous and CPU-bound; async callers run them in
a worker thread (see ``hash_password_async`` / ``verify_password_async``).
"""

import asyncio

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# ~250ms hash time and 64MB memory on modern hardware
ph = PasswordHasher(
    time_cost=3,        # Number of iterations
    memory_cost=65536,  # 64 MB memory usage
    parallelism=4,      # Number of parallel threads
    hash_len=32,        # Length of the hash in bytes
    salt_len=16,        # Length of the random salt
)


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id.

    Args:
        password: The plaintext password to hash

    Returns:
        The hashed password string (includes algorithm, params, salt, and hash)
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Never raises: a mismatch and a malformed hash are both a plain False.
    """
    try:
        ph.verify(password_hash, password)
        return True
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """
    Check if a password hash was made with outdated parameters.

    After a successful login, check this and rehash if needed.
    """
    try:
        return ph.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)
