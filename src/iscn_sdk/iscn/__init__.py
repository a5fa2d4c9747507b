from .payload import FormattedRecord, InvalidPayloadError, format_payload, validate_payload
from .fees import GasEstimate, GasModel, estimate_fee, estimate_gas, estimate_gas_from_size
from .messages import (
    MSG_CREATE_ISCN_RECORD,
    MSG_UPDATE_ISCN_RECORD,
    IscnMessageRegistry,
    UnknownMessageTypeError,
    build_iscn_message,
)
from .result import BroadcastReceipt, TxResult, parse_result

__all__ = [
    "FormattedRecord",
    "InvalidPayloadError",
    "format_payload",
    "validate_payload",
    "GasEstimate",
    "GasModel",
    "estimate_fee",
    "estimate_gas",
    "estimate_gas_from_size",
    "MSG_CREATE_ISCN_RECORD",
    "MSG_UPDATE_ISCN_RECORD",
    "IscnMessageRegistry",
    "UnknownMessageTypeError",
    "build_iscn_message",
    "BroadcastReceipt",
    "TxResult",
    "parse_result",
]
