"""Sealing secrets for the GitHub Actions secrets API.

GitHub expects secret values encrypted with a libsodium sealed box under the
repository's public key.
"""

from __future__ import annotations

import binascii
from base64 import b64encode

from nacl import encoding, exceptions, public

from gitdeck.errors import CredentialSealError


def seal_secret(plaintext: str, public_key: str) -> str:
    """Encrypt a secret for upload.

    Args:
        plaintext: Secret value.
        public_key: Base64-encoded Curve25519 public key from the API.

    Returns:
        Base64-encoded sealed box.

    Raises:
        CredentialSealError: If the key cannot be decoded or encryption fails.
    """
    try:
        key = public.PublicKey(public_key.encode("utf-8"), encoding.Base64Encoder)
    except (exceptions.CryptoError, binascii.Error, ValueError, TypeError) as e:
        raise CredentialSealError(f"invalid public key: {e}") from e

    try:
        sealed = public.SealedBox(key).encrypt(plaintext.encode("utf-8"))
    except exceptions.CryptoError as e:
        raise CredentialSealError(str(e)) from e

    return b64encode(sealed).decode("utf-8")
