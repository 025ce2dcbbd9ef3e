"""
================================================================================
Image Search Aggregator - Opaque Token Codec
================================================================================
Stateless, self-contained image references for /view/<token> and
/api/image-data/<token>. Nothing is stored server-side: the token IS the data.

FORMAT:
  key   = SHA-256(secret)                       (32 bytes, AES-256)
  body  = hex(iv) ":" hex(AES-CBC(key, iv, PKCS7(json)))
  token = base64url(body ":" hex(HMAC-SHA256(key, body)))   (no padding)

decode() answers None for anything it cannot fully verify and decrypt.
================================================================================
"""

import base64
import hashlib
import hmac
import json
import logging
import os
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger(__name__)

IV_LENGTH = 16


class TokenCodec:
    """Encrypts small JSON dicts into URL-safe opaque tokens."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._key = hashlib.sha256(secret.encode('utf-8')).digest()

    def _mac(self, body: str) -> str:
        return hmac.new(self._key, body.encode('ascii'), hashlib.sha256).hexdigest()

    def encode(self, payload: Dict[str, Any]) -> str:
        plaintext = json.dumps(payload, separators=(',', ':'), ensure_ascii=False).encode('utf-8')

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()

        iv = os.urandom(IV_LENGTH)
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        body = f"{iv.hex()}:{ciphertext.hex()}"
        raw = f"{body}:{self._mac(body)}".encode('ascii')
        return base64.urlsafe_b64encode(raw).rstrip(b'=').decode('ascii')

    def decode(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        if not token or not isinstance(token, str):
            return None
        try:
            padded_token = token + '=' * (-len(token) % 4)
            raw = base64.urlsafe_b64decode(padded_token.encode('ascii')).decode('ascii')

            iv_hex, ciphertext_hex, mac = raw.split(':')
            if not hmac.compare_digest(mac, self._mac(f"{iv_hex}:{ciphertext_hex}")):
                return None

            iv = bytes.fromhex(iv_hex)
            if len(iv) != IV_LENGTH:
                return None
            ciphertext = bytes.fromhex(ciphertext_hex)

            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()

            data = json.loads(plaintext.decode('utf-8'))
        except (ValueError, TypeError) as exc:
            logger.debug("Token decode failed: %s", exc)
            return None

        return data if isinstance(data, dict) else None
