from .client import IscnSigningClient, SignerData, encode_tx_raw
from .config import IscnNetworkConfig, IscnWalletConfig
from .errors import BroadcastTxError, FeeOracleError, TxError, TxTimeoutError
from .rest import AccountSequence, IscnRestClient
from .signer import AccountData, SignerIdentity
from .tx_manager import IscnTxManager, get_default_manager


__all__ = [
    "IscnSigningClient",
    "IscnRestClient",
    "IscnTxManager",
    "IscnNetworkConfig",
    "IscnWalletConfig",
    "AccountSequence",
    "AccountData",
    "SignerData",
    "SignerIdentity",
    "BroadcastTxError",
    "FeeOracleError",
    "TxError",
    "TxTimeoutError",
    "encode_tx_raw",
    "get_default_manager",
]
