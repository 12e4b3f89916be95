"""
Crypto Envelope - Mã hóa claims của credential khi lưu trữ
==========================================================

AES-256-GCM (AEAD) envelope for credential claims at rest.

Envelope format (JSON, all values base64):
    {"iv": <96-bit nonce>, "ciphertext": <encrypted JSON>, "tag": <128-bit auth tag>}

Records written before the envelope key was renamed use "content" instead
of "ciphertext"; both are accepted when opening.
"""

import json
import base64
import binascii
import hashlib
import os
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionError
from .logger import get_logger

logger = get_logger("crypto")

# Development only. Deployed instances must set AES_SECRET.
FALLBACK_SECRET = "fallback_dev_secret_key_32_chars!"

NONCE_SIZE = 12
TAG_SIZE = 16


def derive_key(secret: str) -> bytes:
    """SHA-256 of the secret -> 256-bit AES key"""
    return hashlib.sha256(secret.encode("utf-8")).digest()


def is_envelope(value: Any) -> bool:
    """True if value carries iv, ciphertext (or legacy content) and tag"""
    if not isinstance(value, dict):
        return False
    ciphertext = value.get("ciphertext") or value.get("content")
    return bool(value.get("iv") and ciphertext and value.get("tag"))


class CryptoEnvelope:
    """
    Seals and opens claim payloads with a single process-wide key

    The key is derived once at construction and never changes.
    """

    def __init__(self, secret: Optional[str] = None):
        if not secret:
            logger.warning("AES_SECRET not set, using development fallback secret")
            secret = FALLBACK_SECRET
        self._aes = AESGCM(derive_key(secret))

    # ==================== SEAL ====================

    def seal(self, plaintext: Dict[str, Any]) -> Dict[str, str]:
        """
        Encrypt a JSON-shaped mapping

        Args:
            plaintext: Mapping of string keys to JSON values

        Returns:
            Envelope dict with base64 iv, ciphertext and tag
        """
        nonce = os.urandom(NONCE_SIZE)
        data = json.dumps(plaintext).encode("utf-8")

        # AESGCM appends the tag to the ciphertext
        sealed = self._aes.encrypt(nonce, data, None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]

        return {
            "iv": base64.b64encode(nonce).decode("utf-8"),
            "ciphertext": base64.b64encode(ciphertext).decode("utf-8"),
            "tag": base64.b64encode(tag).decode("utf-8"),
        }

    # ==================== OPEN ====================

    def open(self, envelope: Any) -> Any:
        """
        Decrypt an envelope back to its plaintext mapping

        Anything that is not an envelope is returned unchanged so that
        unencrypted legacy records can still be read.

        Raises:
            DecryptionError: tag mismatch, wrong key, or undecodable envelope
        """
        if not is_envelope(envelope):
            return envelope

        try:
            nonce = base64.b64decode(envelope["iv"], validate=True)
            ciphertext = base64.b64decode(
                envelope.get("ciphertext") or envelope["content"], validate=True
            )
            tag = base64.b64decode(envelope["tag"], validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise DecryptionError() from e

        if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
            raise DecryptionError()

        try:
            data = self._aes.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionError() from e

        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecryptionError() from e
