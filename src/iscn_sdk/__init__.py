from .iscn import (
    FormattedRecord,
    GasEstimate,
    InvalidPayloadError,
    TxResult,
    estimate_fee,
    estimate_gas,
    format_payload,
    parse_result,
)
from .rpc_client import (
    BroadcastTxError,
    FeeOracleError,
    IscnNetworkConfig,
    IscnSigningClient,
    IscnTxManager,
    IscnWalletConfig,
    SignerData,
)
from .rpc_client.tx_manager import (
    estimate_iscn_tx_fee,
    get_sequence,
    get_signer_data,
    get_wallet,
    sign_iscn_tx,
)
from .logging_config import setup_sdk_logging

__all__ = [
    "IscnTxManager",
    "IscnSigningClient",
    "IscnNetworkConfig",
    "IscnWalletConfig",
    "SignerData",
    "FormattedRecord",
    "GasEstimate",
    "TxResult",
    "format_payload",
    "estimate_gas",
    "estimate_fee",
    "parse_result",
    "get_wallet",
    "sign_iscn_tx",
    "estimate_iscn_tx_fee",
    "get_sequence",
    "get_signer_data",
    "InvalidPayloadError",
    "BroadcastTxError",
    "FeeOracleError",
    "setup_sdk_logging",
]
