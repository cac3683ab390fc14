"""Per-unit account generation."""

from __future__ import annotations

from eth_account import Account

from .errors import IdentityError
from .models import Identity

# Mnemonic derivation is flagged unaudited by eth-account and must be opted into.
Account.enable_unaudited_hdwallet_features()


class IdentityFactory:
    """Creates a fresh account (address, private key, BIP-39 phrase) per call."""

    def __init__(self, *, num_words: int = 12):
        self.num_words = num_words

    def create(self) -> Identity:
        try:
            account, mnemonic = Account.create_with_mnemonic(num_words=self.num_words)
        except (ValueError, OSError) as e:
            raise IdentityError(f"Account generation failed: {e}") from e
        return Identity(
            address=account.address,
            private_key="0x" + bytes(account.key).hex(),
            mnemonic=mnemonic,
        )
