import logging

import bcrypt

from backend.core import config
from backend.core.errors import CredentialError

logger = logging.getLogger(__name__)

# bcrypt ignores anything past 72 bytes, so longer passwords are refused
# rather than truncated.
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode('utf-8')


def exceeds_bcrypt_limit(password: str) -> bool:
    return len(_encode(password)) > BCRYPT_MAX_BYTES


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt at the configured cost factor.

    Any failure of the primitive is raised as CredentialError so the caller
    aborts the write instead of persisting an unhashed secret. Passwords over
    72 bytes count as a failure.
    """
    try:
        encoded = _encode(password)
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValueError(f'password is longer than {BCRYPT_MAX_BYTES} bytes')
        salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
        hashed = bcrypt.hashpw(encoded, salt)
    except (ValueError, TypeError, OSError) as exc:
        logger.exception('Password hashing failed.')
        raise CredentialError() from exc
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    encoded = _encode(plain_password)
    # No stored hash was ever made from a longer password.
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode('utf-8'))
    except ValueError:
        logger.warning('Stored password hash is malformed.')
        return False
