"""
Tests for the key vault and the in-memory wallet store.
"""
from __future__ import annotations

import pytest

from wallet_assistant_ai.errors import EncryptionError, InvalidKeyError, NoWalletError
from wallet_assistant_ai.wallet.models import EncryptedKey
from wallet_assistant_ai.wallet.store import WalletStore
from wallet_assistant_ai.wallet.vault import CryptoVault, generate_secret

from conftest import KNOWN_ADDRESS, KNOWN_KEY, TEST_SECRET


class TestCryptoVault:
    """Tests for CryptoVault."""

    def test_round_trip(self, vault):
        plaintext = bytes(range(32))
        encrypted = vault.encrypt(plaintext)
        assert encrypted.ciphertext != plaintext
        assert vault.decrypt(encrypted) == plaintext

    def test_fresh_iv_per_encryption(self, vault):
        plaintext = b"\x01" * 32
        first = vault.encrypt(plaintext)
        second = vault.encrypt(plaintext)
        assert len(first.iv) == 16
        assert first.iv != second.iv
        assert first.ciphertext != second.ciphertext

    def test_accepts_raw_bytes_and_prefixed_hex(self):
        raw = bytes.fromhex(TEST_SECRET)
        encrypted = CryptoVault(raw).encrypt(b"key")
        assert CryptoVault("0x" + TEST_SECRET).decrypt(encrypted) == b"key"

    @pytest.mark.parametrize("secret", ["abcd", "zz" * 32, b"\x00" * 16])
    def test_rejects_bad_secret(self, secret):
        with pytest.raises(EncryptionError):
            CryptoVault(secret)

    def test_generate_secret_is_usable(self):
        secret = generate_secret()
        assert len(secret) == 64
        CryptoVault(secret)

    def test_wrong_secret_fails(self, vault):
        encrypted = vault.encrypt(bytes(range(32)))
        other = CryptoVault("22" * 32)
        # CBC has no integrity check; a wrong key either fails unpadding or
        # yields different bytes, never the original.
        try:
            assert other.decrypt(encrypted) != bytes(range(32))
        except EncryptionError:
            pass

    def test_bad_iv_length(self, vault):
        encrypted = vault.encrypt(b"key")
        with pytest.raises(EncryptionError):
            vault.decrypt(EncryptedKey(iv=b"\x00" * 8, ciphertext=encrypted.ciphertext))

    def test_bad_ciphertext_length(self, vault):
        with pytest.raises(EncryptionError):
            vault.decrypt(EncryptedKey(iv=b"\x00" * 16, ciphertext=b"\x00" * 15))

    def test_repr_hides_ciphertext(self, vault):
        encrypted = vault.encrypt(b"\x42" * 32)
        assert encrypted.ciphertext.hex() not in repr(encrypted)


class TestWalletStore:
    """Tests for WalletStore."""

    def test_create_returns_checksummed_address(self, vault):
        store = WalletStore(vault)
        address = store.create(1)
        assert address.startswith("0x") and len(address) == 42
        assert store.address_of(1) == address
        assert 1 in store

    def test_create_twice_replaces(self, vault):
        store = WalletStore(vault)
        first = store.create(1)
        second = store.create(1)
        assert first != second
        assert store.address_of(1) == second
        assert len(store) == 1

    def test_connect_known_key(self, vault):
        store = WalletStore(vault)
        assert store.connect(7, KNOWN_KEY) == KNOWN_ADDRESS
        assert store.connect(8, KNOWN_KEY[2:] + "\n") == KNOWN_ADDRESS

    def test_unlock_returns_original_key(self, vault):
        store = WalletStore(vault)
        store.connect(7, KNOWN_KEY)
        account = store.require(7)
        assert store.unlock(account) == bytes.fromhex(KNOWN_KEY[2:])

    def test_key_is_encrypted_at_rest(self, vault):
        store = WalletStore(vault)
        store.connect(7, KNOWN_KEY)
        account = store.require(7)
        assert bytes.fromhex(KNOWN_KEY[2:]) not in account.encrypted_key.ciphertext

    @pytest.mark.parametrize("bad", ["", "not a key", "0x1234", "0x" + "zz" * 32])
    def test_connect_invalid_key(self, vault, bad):
        store = WalletStore(vault)
        with pytest.raises(InvalidKeyError):
            store.connect(1, bad)
        assert 1 not in store

    def test_require_missing(self, vault):
        store = WalletStore(vault)
        assert store.get(5) is None
        assert store.address_of(5) is None
        with pytest.raises(NoWalletError) as exc_info:
            store.require(5)
        assert exc_info.value.user_id == 5
