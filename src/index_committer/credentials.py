"""Resolution and attachment of index credentials.

Passwords may be stored encrypted. They are decrypted with a key that
is itself resolved from one of several sources (literal value, file,
environment variable, or a host-supplied property mapping) only when a
request is about to be sent.
"""

from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import ConfigurationError
from .schemas import Credentials, EncryptionKey, KeySource

if TYPE_CHECKING:
    from .clients.base import UpdateRequest

logger = logging.getLogger(__name__)

_SALT = b"index-committer-password-salt"
_ITERATIONS = 100_000


def _derive_key(secret: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_SALT,
        iterations=_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


def resolve_key(
    key: EncryptionKey,
    properties: Optional[Mapping[str, str]] = None,
) -> str:
    """Return the secret text an :class:`EncryptionKey` points to."""
    source = key.source
    if source == KeySource.KEY:
        secret: Optional[str] = key.value
    elif source == KeySource.FILE:
        path = Path(key.value)
        try:
            secret = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot read encryption key file: {path}"
            ) from exc
    elif source == KeySource.ENVIRONMENT:
        secret = os.environ.get(key.value)
    elif source == KeySource.PROPERTY:
        secret = (properties or {}).get(key.value)
    else:
        raise ConfigurationError(f"Unsupported encryption key source: {source}")

    if not secret:
        raise ConfigurationError(
            f"Encryption key not found ({source.value}: {key.value})"
        )
    return secret


def encrypt_password(
    password: str,
    key: EncryptionKey,
    properties: Optional[Mapping[str, str]] = None,
) -> str:
    fernet = Fernet(_derive_key(resolve_key(key, properties)))
    return fernet.encrypt(password.encode("utf-8")).decode("ascii")


def decrypt_password(
    credentials: Credentials,
    properties: Optional[Mapping[str, str]] = None,
) -> str:
    """Plain-text password for *credentials*, decrypting it if a key is set."""
    if credentials.password_key is None:
        return credentials.password
    fernet = Fernet(_derive_key(resolve_key(credentials.password_key, properties)))
    try:
        return fernet.decrypt(credentials.password.encode("ascii")).decode("utf-8")
    except (InvalidToken, UnicodeError) as exc:
        raise ConfigurationError(
            f"Cannot decrypt password for user {credentials.username!r}."
        ) from exc


def attach_credentials(
    update: "UpdateRequest",
    credentials: Optional[Credentials],
    properties: Optional[Mapping[str, str]] = None,
) -> "UpdateRequest":
    """Set basic authentication on *update* when credentials are configured."""
    if credentials is None or not credentials.is_set:
        return update
    update.basic_auth = (credentials.username, decrypt_password(credentials, properties))
    logger.debug("Attached basic authentication for user %s.", credentials.username)
    return update
