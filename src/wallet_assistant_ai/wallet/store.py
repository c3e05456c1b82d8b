"""Volatile custody of user accounts.

Accounts live only in process memory and are lost on restart. Creating or
connecting a wallet replaces whatever account the user had before.
"""

from __future__ import annotations

import logging

from eth_account import Account as EthAccount

from wallet_assistant_ai.errors import InvalidKeyError, NoWalletError
from wallet_assistant_ai.wallet.models import Account
from wallet_assistant_ai.wallet.vault import CryptoVault

logger = logging.getLogger("wallet_assistant_ai.wallet.store")


class WalletStore:
    """Sole owner of the ``user_id -> Account`` mapping."""

    def __init__(self, vault: CryptoVault) -> None:
        self._vault = vault
        self._accounts: dict[int, Account] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, user_id: int) -> str:
        """Generate a fresh key pair for *user_id* and return its address."""
        acct = EthAccount.create()
        return self._store(user_id, acct.address, acct.key)

    def connect(self, user_id: int, raw_key_material: str | bytes) -> str:
        """Import an existing private key and return its address.

        Raises
        ------
        InvalidKeyError
            If *raw_key_material* is not a valid secp256k1 private key.
        """
        if isinstance(raw_key_material, str):
            raw_key_material = raw_key_material.strip()
        try:
            acct = EthAccount.from_key(raw_key_material)
        except Exception as exc:
            # eth-account raises a mix of ValueError, TypeError and
            # ValidationError depending on how the input is malformed.
            raise InvalidKeyError() from exc
        return self._store(user_id, acct.address, acct.key)

    def _store(self, user_id: int, address: str, key: bytes) -> str:
        replaced = user_id in self._accounts
        self._accounts[user_id] = Account(
            user_id=user_id,
            address=address,
            encrypted_key=self._vault.encrypt(bytes(key)),
        )
        logger.info(
            f"Wallet {address} stored for user {user_id}"
            + (" (replaced previous wallet)" if replaced else "")
        )
        return address

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, user_id: int) -> Account | None:
        return self._accounts.get(user_id)

    def require(self, user_id: int) -> Account:
        """Like :meth:`get` but raises ``NoWalletError`` when absent."""
        account = self._accounts.get(user_id)
        if account is None:
            raise NoWalletError(user_id)
        return account

    def address_of(self, user_id: int) -> str | None:
        account = self._accounts.get(user_id)
        return account.address if account else None

    def unlock(self, account: Account) -> bytes:
        """Decrypt the signing key of *account*. Call only right before signing."""
        return self._vault.decrypt(account.encrypted_key)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)
