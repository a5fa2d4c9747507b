"""
Gas and fee estimation for ISCN transactions.

Two independent estimators live here:

* :func:`estimate_gas` turns a fully shaped message into a gas limit and a
  fee using a linear model fitted against historical ISCN gas usage.
* :func:`estimate_fee` quotes the ISCN registration fee, which the chain
  charges per byte of the stored record.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_UP
from typing import Any, Mapping, Optional, Union

from iscn_sdk.iscn.payload import FormattedRecord, format_payload, to_json_bytes

logger = logging.getLogger("iscn_sdk")

GAS_ESTIMATOR_SLOP = 3.58
GAS_ESTIMATOR_INTERCEPT = 99443.87
GAS_ESTIMATOR_BUFFER = 50000
DEFAULT_GAS_PRICE = 10
DEFAULT_FEE_DENOM = "nanolike"

ISCN_REGISTRY_NAME = "likecoin-chain"
PLACEHOLDER_CONTENT_ID = "btC7CJvMm4WLj9Tau9LAPTfGK7sfymTJW7ORcFdruCU"
PLACEHOLDER_PARENT_IPLD = "bahuaierav3bfvm4ytx7gvn4yqeu4piiocuvtvdpyyb5f6moxniwemae4tjyq"

ISCN_RECORD_CONTEXT = {
    "@vocab": "http://iscn.io/",
    "recordParentIPLD": {
        "@container": "@index",
    },
    "stakeholders": {
        "@context": {
            "@vocab": "http://schema.org/",
            "entity": "http://iscn.io/entity",
            "rewardProportion": "http://iscn.io/rewardProportion",
            "contributionType": "http://iscn.io/contributionType",
            "footprint": "http://iscn.io/footprint",
        },
    },
    "contentMetadata": {
        "@context": None,
    },
}


@dataclass(frozen=True)
class GasModel:
    """Linear gas model: ``gas = bytes * slope + intercept + buffer``."""
    slope: float = GAS_ESTIMATOR_SLOP
    intercept: float = GAS_ESTIMATOR_INTERCEPT
    buffer: int = GAS_ESTIMATOR_BUFFER
    gas_price: int = DEFAULT_GAS_PRICE
    denom: str = DEFAULT_FEE_DENOM

    @classmethod
    def from_config(cls, config) -> 'GasModel':
        return cls(
            slope=config.gas_slope,
            intercept=config.gas_intercept,
            buffer=config.gas_buffer,
            gas_price=config.gas_price,
            denom=config.fee_denom,
        )


DEFAULT_GAS_MODEL = GasModel()


@dataclass
class FeeCoin:
    amount: str
    denom: str


@dataclass
class GasEstimate:
    amount: list[FeeCoin] = field(default_factory=list)
    gas: str = "0"

    @property
    def gas_limit(self) -> int:
        return int(self.gas)

    def to_tx_fee(self):
        """Convert to a cosmpy ``TxFee``."""
        from cosmpy.aerial.coins import Coin
        from cosmpy.aerial.tx import TxFee

        return TxFee(
            amount=[Coin(amount=int(c.amount), denom=c.denom) for c in self.amount],
            gas_limit=self.gas_limit,
        )


def _to_stable_json_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        # Byte arrays serialize the way a Node Buffer does, which is what
        # the gas model was fitted on.
        return {"type": "Buffer", "data": list(value)}
    if isinstance(value, Mapping):
        return {str(k): _to_stable_json_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_to_stable_json_value(v) for v in value]
    return value


def stable_json_dumps(obj: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace, UTF-8 text kept as is."""
    return json.dumps(
        _to_stable_json_value(obj),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_UP))


def estimate_gas_from_size(byte_length: int, model: GasModel = DEFAULT_GAS_MODEL) -> GasEstimate:
    gas = _ceil(
        Decimal(byte_length) * Decimal(str(model.slope))
        + Decimal(str(model.intercept))
        + Decimal(model.buffer)
    )
    fee_amount = gas * model.gas_price
    return GasEstimate(
        amount=[FeeCoin(amount=str(fee_amount), denom=model.denom)],
        gas=str(gas),
    )


def estimate_gas(message: Mapping[str, Any], model: GasModel = DEFAULT_GAS_MODEL) -> GasEstimate:
    """
    Estimate gas and fee for a message from its serialized size.

    Args:
        message: The full message, ``{"typeUrl": ..., "value": ...}``
        model: Gas model constants

    Returns:
        GasEstimate with integer-string gas and fee amount
    """
    byte_length = len(stable_json_dumps(message).encode("utf-8")) if message else 0
    estimate = estimate_gas_from_size(byte_length, model)
    logger.debug(f"Estimated gas for {byte_length} bytes: {estimate.gas} ({estimate.amount[0].amount} {model.denom})")
    return estimate


def format_timestamp(now: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2021-06-01T00:00:00.000Z"""
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def build_record_envelope(
    record: FormattedRecord,
    version: int = 1,
    parent_ipld: Optional[str] = None,
    now: Optional[datetime] = None,
    registry_name: str = ISCN_REGISTRY_NAME,
) -> dict[str, Any]:
    """
    Build a representative ISCN record envelope for size measurement.

    The record id is a placeholder of realistic length. For versions above
    1 the parent link defaults to a placeholder CID unless ``parent_ipld``
    is given.
    """
    envelope = {
        "@context": ISCN_RECORD_CONTEXT,
        "@type": "Record",
        "@id": f"iscn://{registry_name}/{PLACEHOLDER_CONTENT_ID}/1",
        "recordTimestamp": format_timestamp(now or datetime.now(timezone.utc)),
        "recordVersion": version,
        "recordNotes": record.record_notes,
        "contentFingerprints": record.content_fingerprints,
        "recordParentIPLD": {},
    }
    if version > 1:
        envelope["recordParentIPLD"] = {"/": parent_ipld or PLACEHOLDER_PARENT_IPLD}
    return envelope


def record_byte_size(
    record: FormattedRecord,
    version: int = 1,
    parent_ipld: Optional[str] = None,
    now: Optional[datetime] = None,
    registry_name: str = ISCN_REGISTRY_NAME,
) -> int:
    envelope = build_record_envelope(record, version, parent_ipld, now, registry_name)
    # Stakeholders and metadata are stored as opaque blobs next to the
    # envelope, so their bytes are counted separately.
    return (
        len(to_json_bytes(envelope))
        + sum(len(s) for s in record.stakeholders)
        + len(record.content_metadata)
    )


def estimate_fee(
    payload: Mapping[str, Any],
    fee_per_byte: Union[Decimal, int, str],
    version: int = 1,
    parent_ipld: Optional[str] = None,
    now: Optional[datetime] = None,
    registry_name: str = ISCN_REGISTRY_NAME,
) -> int:
    """
    Quote the ISCN registration fee for a payload.

    Args:
        payload: Content payload, as accepted by ``format_payload``
        fee_per_byte: Chain fee rate in the smallest denomination per byte
        version: Record version
        parent_ipld: CID of the previous record version, if known
        now: Timestamp to stamp the envelope with (defaults to now)
        registry_name: ISCN registry name used in the placeholder id

    Returns:
        Fee in the smallest denomination
    """
    record = format_payload({k: v for k, v in payload.items() if k != "iscnId"}, version)
    byte_size = record_byte_size(record, version, parent_ipld, now, registry_name)
    fee = _ceil(Decimal(byte_size) * Decimal(str(fee_per_byte)))
    logger.debug(f"ISCN record size {byte_size} bytes at {fee_per_byte}/byte: fee {fee}")
    return fee
