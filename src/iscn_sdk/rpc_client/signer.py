"""
Signing identity for ISCN transactions.

Wraps a cosmpy ``LocalWallet`` derived from a mnemonic. The wallet holds
the key material; :class:`AccountData` is the public view of it that
gets passed around and logged.
"""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable
import logging

logger = logging.getLogger(__name__)


@runtime_checkable
class Wallet(Protocol):
    """The subset of cosmpy's ``LocalWallet`` the SDK relies on."""

    def address(self) -> Any:
        ...

    def public_key(self) -> Any:
        ...

    def signer(self) -> Any:
        ...


@dataclass
class AccountData:
    address: str
    pubkey: str
    algo: str = "secp256k1"


@dataclass
class SignerIdentity:
    wallet: Wallet
    account: AccountData

    @property
    def address(self) -> str:
        return self.account.address


def derive_wallet(mnemonic: str, prefix: str = "like") -> "LocalWallet":
    """
    Derive a wallet from a BIP39 mnemonic.

    Args:
        mnemonic: BIP39 seed phrase
        prefix: Bech32 address prefix

    Raises:
        ValueError: If the mnemonic is invalid
    """
    from cosmpy.aerial.wallet import LocalWallet

    try:
        return LocalWallet.from_mnemonic(mnemonic.strip(), prefix=prefix)
    except Exception as e:
        raise ValueError(f"Invalid wallet credentials: {e}") from e


def identity_from_wallet(wallet: Wallet) -> SignerIdentity:
    public_key = wallet.public_key()
    pubkey_hex = getattr(public_key, "public_key_hex", None) or str(public_key)
    return SignerIdentity(
        wallet=wallet,
        account=AccountData(address=str(wallet.address()), pubkey=pubkey_hex),
    )


# Type alias for convenience
LocalWallet = "cosmpy.aerial.wallet.LocalWallet"
