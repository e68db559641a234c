"""Field-level encryption for attributes stored in the overview table."""
from __future__ import annotations

import base64
import binascii
import hashlib
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pynamodb.attributes import UnicodeAttribute

_NONCE_BYTES = 12


class FieldCipher:
    """AES-256-GCM cipher producing ``name:nonce:ciphertext`` tokens."""

    def __init__(self, name: Optional[str] = None, password: Optional[str] = None) -> None:
        self._name: Optional[str] = None
        self._aead: Optional[AESGCM] = None
        if name and password:
            self.configure(name, password)

    @property
    def configured(self) -> bool:
        return self._aead is not None

    def configure(self, name: str, password: str) -> None:
        if not name or ":" in name:
            raise ValueError("Cipher name must be non-empty and must not contain ':'")
        if not password:
            raise ValueError("Cipher password must not be empty")
        digest = hashlib.sha256(password.encode("utf-8")).digest()
        self._name = name
        self._aead = AESGCM(digest)

    def _require_aead(self) -> AESGCM:
        if self._aead is None:
            raise RuntimeError(
                "Field encryption is not configured. Set crypto_password in the overview configuration."
            )
        return self._aead

    def encrypt(self, plaintext: str) -> str:
        aead = self._require_aead()
        nonce = secrets.token_bytes(_NONCE_BYTES)
        data = aead.encrypt(nonce, plaintext.encode("utf-8"), self._name.encode("utf-8"))
        encoded_nonce = base64.b64encode(nonce).decode("ascii")
        encoded_data = base64.b64encode(data).decode("ascii")
        return f"{self._name}:{encoded_nonce}:{encoded_data}"

    def decrypt(self, token: str) -> str:
        aead = self._require_aead()
        try:
            name, nonce_b64, data_b64 = token.split(":", 2)
            nonce = base64.b64decode(nonce_b64, validate=True)
            data = base64.b64decode(data_b64, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise ValueError("Encrypted value is not a valid cipher token") from exc

        if name != self._name:
            raise ValueError(f"Encrypted value uses unknown cipher '{name}'")

        try:
            plaintext = aead.decrypt(nonce, data, name.encode("utf-8"))
        except InvalidTag as exc:
            raise ValueError("Encrypted value could not be decrypted with the configured password") from exc
        return plaintext.decode("utf-8")


# Shared by every encrypted attribute in the schema; configured by bind_models().
FIELD_CIPHER = FieldCipher()


class EncryptedUnicodeAttribute(UnicodeAttribute):
    """Unicode attribute stored encrypted at rest."""

    def __init__(self, *args, cipher: FieldCipher = FIELD_CIPHER, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.cipher = cipher

    def serialize(self, value):
        return super().serialize(self.cipher.encrypt(value))

    def deserialize(self, value):
        return self.cipher.decrypt(super().deserialize(value))


__all__ = ["EncryptedUnicodeAttribute", "FIELD_CIPHER", "FieldCipher"]
