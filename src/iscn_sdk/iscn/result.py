import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

logger = logging.getLogger("iscn_sdk")

ISCN_RECORD_EVENT_TYPE = "iscn_record"


@dataclass
class BroadcastReceipt:
    """Outcome of a broadcast transaction once it is included in a block."""
    transaction_hash: str
    code: int = 0
    raw_log: Optional[str] = None
    height: Optional[int] = None
    gas_used: Optional[int] = None
    gas_wanted: Optional[int] = None
    codespace: str = ""

    @classmethod
    def from_tx_response(cls, tx_response: Mapping[str, Any]) -> 'BroadcastReceipt':
        """Build from a cosmos ``TxResponse`` as returned by the REST API."""
        def _int(key):
            value = tx_response.get(key)
            return int(value) if value not in (None, "") else None

        return cls(
            transaction_hash=tx_response.get("txhash", ""),
            code=int(tx_response.get("code") or 0),
            raw_log=tx_response.get("raw_log"),
            height=_int("height"),
            gas_used=_int("gas_used"),
            gas_wanted=_int("gas_wanted"),
            codespace=tx_response.get("codespace") or "",
        )


@dataclass
class TxResult:
    tx_hash: str
    iscn_id: Optional[str] = None


def _find_iscn_id(raw_log: str) -> Optional[str]:
    try:
        logs = json.loads(raw_log)
        events = logs[0]["events"]
        for event in events:
            if event.get("type") == ISCN_RECORD_EVENT_TYPE:
                return event["attributes"][0]["value"]
    except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        logger.debug(f"No ISCN id in raw log: {e}")
    return None


def parse_result(receipt: Union[BroadcastReceipt, Mapping[str, Any]]) -> TxResult:
    """
    Extract the tx hash and the new ISCN id from a broadcast receipt.

    The ISCN id comes from the first ``iscn_record`` event of the first
    log entry. Any other shape leaves ``iscn_id`` as None.
    """
    if isinstance(receipt, BroadcastReceipt):
        tx_hash, raw_log = receipt.transaction_hash, receipt.raw_log
    else:
        tx_hash = receipt.get("transactionHash", receipt.get("txhash"))
        raw_log = receipt.get("rawLog", receipt.get("raw_log"))

    iscn_id = _find_iscn_id(raw_log) if raw_log else None
    return TxResult(tx_hash=tx_hash, iscn_id=iscn_id)
