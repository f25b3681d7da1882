# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/utils/services_auth.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

mcpbridge.utils.services_auth - Encryption of stored upstream credentials.

Secret fields of a bridge's ``authConfig`` and ``accessConfig`` (``token``,
``apiKey``, ``password``) are stored as ``enc:`` prefixed AES-GCM
ciphertext. Values without the prefix are returned as they are, so rows
written before encryption keep working.

Doctest examples
----------------
>>> from mcpbridge.utils import services_auth
>>> services_auth.settings.auth_encryption_secret = 'doctest-secret'
>>> stored = services_auth.encrypt_secrets({'type': 'bearer', 'token': 't0k'})
>>> stored['type'], stored['token'].startswith('enc:')
('bearer', True)
>>> services_auth.decrypt_secrets(stored)
{'type': 'bearer', 'token': 't0k'}
>>> services_auth.mask_secrets(stored)
{'type': 'bearer', 'token': '********'}
>>> services_auth.decode_secret('plain')
'plain'
"""

# Standard
import base64
import hashlib
import os
from typing import Any, Dict, Optional

# Third-Party
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

# First-Party
from mcpbridge.config import settings

ENCRYPTED_PREFIX = "enc:"
SECRET_FIELDS = ("token", "apiKey", "api_key", "password")
SECRET_MASK = "********"


def get_key() -> bytes:
    """
    Generate a 32-byte AES encryption key derived from a passphrase.

    Returns:
        bytes: A 32-byte encryption key.

    Raises:
        ValueError: If the passphrase is not set or empty.

    Doctest:
    >>> from mcpbridge.utils import services_auth
    >>> services_auth.settings.auth_encryption_secret = 'doctest-secret'
    >>> len(services_auth.get_key())
    32
    >>> services_auth.settings.auth_encryption_secret = ''
    >>> try:
    ...     services_auth.get_key()
    ... except ValueError as e:
    ...     print('error')
    error
    >>> services_auth.settings.auth_encryption_secret = 'doctest-secret'
    """
    passphrase = settings.auth_encryption_secret
    if not passphrase:
        raise ValueError("AUTH_ENCRYPTION_SECRET not set in environment.")
    return hashlib.sha256(passphrase.encode()).digest()  # 32-byte key


def encode_secret(value: str) -> str:
    """
    Encrypt a secret into an ``enc:`` prefixed base64-url string.

    Args:
        value (str): Plaintext secret.

    Returns:
        str: The prefixed ciphertext.

    Doctest:
    >>> from mcpbridge.utils import services_auth
    >>> services_auth.settings.auth_encryption_secret = 'doctest-secret'
    >>> token = services_auth.encode_secret('s3cret')
    >>> token.startswith('enc:'), token != services_auth.encode_secret('s3cret')
    (True, True)
    """
    aesgcm = AESGCM(get_key())
    nonce = os.urandom(12)
    ciphertext = aesgcm.encrypt(nonce, value.encode(), None)
    encoded = base64.urlsafe_b64encode(nonce + ciphertext).rstrip(b"=")
    return ENCRYPTED_PREFIX + encoded.decode()


def decode_secret(value: str) -> str:
    """
    Decrypt an ``enc:`` prefixed secret.

    Args:
        value (str): Stored value.

    Returns:
        str: The plaintext secret; values without the prefix are returned unchanged.

    Raises:
        ValueError: If the ciphertext was not produced with the current key.

    Doctest:
    >>> from mcpbridge.utils import services_auth
    >>> services_auth.settings.auth_encryption_secret = 'doctest-secret'
    >>> services_auth.decode_secret(services_auth.encode_secret('s3cret'))
    's3cret'
    """
    if not value.startswith(ENCRYPTED_PREFIX):
        return value
    encoded = value[len(ENCRYPTED_PREFIX) :]
    # Fix base64 padding
    combined = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
    try:
        plaintext = AESGCM(get_key()).decrypt(combined[:12], combined[12:], None)
    except InvalidTag as e:
        raise ValueError("Stored secret could not be decrypted with AUTH_ENCRYPTION_SECRET") from e
    return plaintext.decode()


def encrypt_secrets(config: Optional[Dict[str, Any]], previous: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """
    Encrypt the secret fields of a stored auth or access config.

    A field submitted as the mask keeps the previously stored value, so an
    admin client can send back what it read.

    Args:
        config: camelCase config about to be stored.
        previous: Currently stored config, if any.

    Returns:
        The config with encrypted secret fields.

    Doctest:
    >>> from mcpbridge.utils import services_auth
    >>> services_auth.settings.auth_encryption_secret = 'doctest-secret'
    >>> services_auth.encrypt_secrets(None) is None
    True
    >>> kept = services_auth.encrypt_secrets({'apiKey': '********'}, previous={'apiKey': 'legacy'})
    >>> services_auth.decrypt_secrets(kept)
    {'apiKey': 'legacy'}
    """
    if config is None:
        return None
    stored = dict(config)
    for field in SECRET_FIELDS:
        value = stored.get(field)
        if not isinstance(value, str) or not value:
            continue
        if value == SECRET_MASK and previous and previous.get(field):
            value = decode_secret(previous[field])
        stored[field] = encode_secret(value)
    return stored


def decrypt_secrets(config: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Decrypt the secret fields of a stored auth or access config.

    Args:
        config: Stored camelCase config.

    Returns:
        The config with plaintext secret fields.
    """
    if config is None:
        return None
    plain = dict(config)
    for field in SECRET_FIELDS:
        if isinstance(plain.get(field), str):
            plain[field] = decode_secret(plain[field])
    return plain


def mask_secrets(config: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Hide the secret fields of a config for display.

    Args:
        config: Stored camelCase config.

    Returns:
        The config with every present secret replaced by the mask.

    Doctest:
    >>> mask_secrets({'authRequired': True, 'apiKey': 'enc:abc'})
    {'authRequired': True, 'apiKey': '********'}
    >>> mask_secrets({'type': 'none'})
    {'type': 'none'}
    """
    if config is None:
        return None
    return {key: SECRET_MASK if key in SECRET_FIELDS and value else value for key, value in config.items()}
