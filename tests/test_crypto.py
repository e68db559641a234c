from __future__ import annotations

import pytest

from learning.crypto import EncryptedUnicodeAttribute, FieldCipher


@pytest.fixture()
def cipher() -> FieldCipher:
    return FieldCipher("primary", "1a22a-d27c9-12342-5f7bc-1a716-fc73e")


def test_encrypt_produces_named_token(cipher: FieldCipher) -> None:
    token = cipher.encrypt("roadrunner@acme.com")

    name, nonce, data = token.split(":")
    assert name == "primary"
    assert nonce and data
    assert "roadrunner" not in token
    assert cipher.decrypt(token) == "roadrunner@acme.com"


def test_each_encryption_uses_a_fresh_nonce(cipher: FieldCipher) -> None:
    assert cipher.encrypt("same") != cipher.encrypt("same")


def test_decrypt_with_wrong_password_fails(cipher: FieldCipher) -> None:
    token = cipher.encrypt("secret")
    other = FieldCipher("primary", "another-password")

    with pytest.raises(ValueError, match="could not be decrypted"):
        other.decrypt(token)


def test_decrypt_rejects_tampered_token(cipher: FieldCipher) -> None:
    name, nonce, data = cipher.encrypt("secret").split(":")
    flipped = ("A" if data[0] != "A" else "B") + data[1:]

    with pytest.raises(ValueError):
        cipher.decrypt(f"{name}:{nonce}:{flipped}")


@pytest.mark.parametrize("token", ["plain-text", "primary:not base64!:x"])
def test_decrypt_rejects_malformed_token(cipher: FieldCipher, token: str) -> None:
    with pytest.raises(ValueError):
        cipher.decrypt(token)


def test_decrypt_rejects_unknown_cipher_name(cipher: FieldCipher) -> None:
    _, nonce, data = cipher.encrypt("secret").split(":")

    with pytest.raises(ValueError, match="unknown cipher"):
        cipher.decrypt(f"secondary:{nonce}:{data}")


def test_unconfigured_cipher_raises() -> None:
    cipher = FieldCipher()

    assert not cipher.configured
    with pytest.raises(RuntimeError):
        cipher.encrypt("value")


@pytest.mark.parametrize("name, password", [("", "pw"), ("a:b", "pw"), ("primary", "")])
def test_configure_validates_arguments(name: str, password: str) -> None:
    with pytest.raises(ValueError):
        FieldCipher().configure(name, password)


def test_encrypted_attribute_round_trip(cipher: FieldCipher) -> None:
    attribute = EncryptedUnicodeAttribute(cipher=cipher)

    stored = attribute.serialize("wile@acme.com")

    assert stored.startswith("primary:")
    assert attribute.deserialize(stored) == "wile@acme.com"
