import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class IscnWalletConfig:
    """
    Configuration for the signing wallet.

    One of the following is needed before anything is signed:
    - mnemonic: Mnemonic phrase string.
    - mnemonic_file: Path to a file containing the mnemonic phrase.

    The bech32 address prefix can also be specified (default is "like").
    """
    mnemonic: Optional[str] = None
    mnemonic_file: Optional[str] = None
    prefix: str = "like"

    @classmethod
    def from_env(cls, env_prefix: str | None = None) -> 'IscnWalletConfig':
        return cls(
            mnemonic=os.getenv((env_prefix or "") + "COSMOS_MNEMONIC"),
            mnemonic_file=os.getenv((env_prefix or "") + "COSMOS_MNEMONIC_FILE"),
            prefix=os.getenv((env_prefix or "") + "COSMOS_ADDRESS_PREFIX", "like"),
        )

    @property
    def has_credentials(self) -> bool:
        return self.mnemonic is not None or self.mnemonic_file is not None

    def read_mnemonic(self) -> str:
        if not self.has_credentials:
            raise ValueError("No wallet credentials provided")
        if self.mnemonic is not None:
            return self.mnemonic
        with open(self.mnemonic_file) as f:
            return f.read().strip()


@dataclass
class IscnNetworkConfig:
    """
    Configuration for a LikeCoin chain node.

    ``url`` is the node's REST (LCD) endpoint. When ``chain_id`` is left
    unset it is queried from the node on first use.

    The gas model fields are a linear fit of historical ISCN gas usage
    against message size; re-fit them before pointing at another chain.
    """

    url: str
    chain_id: Optional[str] = None
    fee_denom: str = "nanolike"
    registry_name: str = "likecoin-chain"
    gas_price: int = 10
    gas_slope: float = 3.58
    gas_intercept: float = 99443.87
    gas_buffer: int = 50000
    request_timeout_secs: float = 30.0
    broadcast_timeout_secs: float = 60.0
    broadcast_poll_interval_secs: float = 3.0

    @classmethod
    def mainnet(
        cls,
        url="https://mainnet-node.like.co",
        chain_id="likecoin-mainnet-2",
    ) -> 'IscnNetworkConfig':
        return cls(url=url, chain_id=chain_id)

    @classmethod
    def testnet(
        cls,
        url="https://node.testnet.like.co",
        chain_id="likecoin-public-testnet-5",
    ) -> 'IscnNetworkConfig':
        return cls(url=url, chain_id=chain_id)

    @classmethod
    def local(
        cls,
        port: int = 1317,
        chain_id: str = "likecoin-local",
        url: str | None = None,
    ) -> 'IscnNetworkConfig':
        return cls(
            url=url or f"http://localhost:{port}",
            chain_id=chain_id,
            gas_price=0,
        )

    @classmethod
    def from_env(cls, env_prefix: str | None = None) -> 'IscnNetworkConfig':
        prefix = env_prefix or ""
        return cls(
            url=require_env(prefix + "ISCN_RPC_URL"),
            chain_id=os.getenv(prefix + "ISCN_CHAIN_ID"),
            fee_denom=os.getenv(prefix + "ISCN_FEE_DENOM", "nanolike"),
            gas_price=int(os.getenv(prefix + "ISCN_GAS_PRICE", "10")),
        )


def require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None:
        raise RuntimeError(f"environment variable {name} is required")
    return value
