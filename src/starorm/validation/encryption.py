"""Field level encryption and password hashing helpers."""

import base64
import hashlib
import hmac
import secrets
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..exceptions import ModelException
from ..infrastructure.configuration import get_config

ENCRYPTED_PREFIX = "enc:"
PASSWORD_ALGORITHM = "pbkdf2_sha256"


def get_fernet(key: Optional[str] = None) -> Fernet:
    key = key or get_config().validation.encryption_key
    if not key:
        raise ModelException(
            "No encryption key configured. "
            'Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"'
        )
    return Fernet(key.encode() if isinstance(key, str) else key)


def is_encrypted(value: object) -> bool:
    return isinstance(value, str) and value.startswith(ENCRYPTED_PREFIX)


def encrypt_value(value: Optional[str], key: Optional[str] = None) -> Optional[str]:
    """Encrypt a string value; already encrypted values are returned unchanged"""
    if value is None or value == "" or is_encrypted(value):
        return value
    token = get_fernet(key).encrypt(str(value).encode()).decode()
    return f"{ENCRYPTED_PREFIX}{token}"


def decrypt_value(value: Optional[str], key: Optional[str] = None) -> Optional[str]:
    if not is_encrypted(value):
        return value
    token = value[len(ENCRYPTED_PREFIX):]
    try:
        return get_fernet(key).decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise ModelException("Invalid or corrupted encrypted value") from e


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``"""
    iterations = iterations or get_config().validation.password_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    encoded = base64.b64encode(digest).decode()
    return f"{PASSWORD_ALGORITHM}${iterations}${salt}${encoded}"


def verify_password(password: str, hashed: str) -> bool:
    try:
        algorithm, iterations, salt, expected = hashed.split("$", 3)
    except ValueError:
        return False
    if algorithm != PASSWORD_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(base64.b64encode(digest).decode(), expected)


__all__ = [
    'encrypt_value',
    'decrypt_value',
    'is_encrypted',
    'hash_password',
    'verify_password',
    'ENCRYPTED_PREFIX',
]
