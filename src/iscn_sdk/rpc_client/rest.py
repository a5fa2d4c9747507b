"""
REST (Cosmos LCD) client for a LikeCoin chain node.

Covers the handful of endpoints the ISCN transaction flow needs: account
lookup, node info, broadcast, tx lookup and the ISCN module parameters
that carry the registration fee rate.
"""

import base64
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from iscn_sdk.rpc_client.errors import FeeOracleError, TxNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class AccountSequence:
    account_number: int
    sequence: int


def _base_account(account: dict[str, Any]) -> dict[str, Any]:
    # Vesting and module accounts wrap the base account one or two levels deep
    while "account_number" not in account:
        if "base_vesting_account" in account:
            account = account["base_vesting_account"]
        elif "base_account" in account:
            account = account["base_account"]
        else:
            raise ValueError(f"Unrecognized account shape: {sorted(account)}")
    return account


class IscnRestClient:
    """LikeCoin chain REST client."""

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize REST client.

        :param base_url: Base URL of the node's REST API
        :param timeout: Per-request timeout in seconds
        :param client: Optional preconfigured httpx client
        """
        self.base_url = base_url.rstrip('/')
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self):
        await self._client.aclose()

    async def _get(self, path: str) -> dict[str, Any]:
        resp = await self._client.get(path)
        resp.raise_for_status()
        return resp.json()

    async def account(self, address: str) -> AccountSequence:
        data = await self._get(f"/cosmos/auth/v1beta1/accounts/{address}")
        account = _base_account(data["account"])
        return AccountSequence(
            account_number=int(account["account_number"]),
            sequence=int(account.get("sequence") or 0),
        )

    async def chain_id(self) -> str:
        data = await self._get("/cosmos/base/tendermint/v1beta1/node_info")
        return data["default_node_info"]["network"]

    async def broadcast_tx(self, tx_bytes: bytes, mode: str = "BROADCAST_MODE_SYNC") -> dict[str, Any]:
        resp = await self._client.post(
            "/cosmos/tx/v1beta1/txs",
            json={
                "tx_bytes": base64.b64encode(tx_bytes).decode(),
                "mode": mode,
            },
        )
        resp.raise_for_status()
        tx_response = resp.json().get("tx_response")
        if tx_response is None:
            raise RuntimeError("broadcast_tx returned no tx_response - check network connectivity")
        return tx_response

    async def get_tx(self, tx_hash: str) -> dict[str, Any]:
        resp = await self._client.get(f"/cosmos/tx/v1beta1/txs/{tx_hash}")
        if resp.status_code in (400, 404):
            # Not yet indexed; the node answers with a NotFound status body
            if "not found" in resp.text.lower():
                raise TxNotFoundError(tx_hash)
        resp.raise_for_status()
        tx_response = resp.json().get("tx_response")
        if tx_response is None:
            raise TxNotFoundError(tx_hash)
        return tx_response

    async def iscn_params(self) -> dict[str, Any]:
        data = await self._get("/likechain/iscn/params")
        return data["params"]

    async def query_fee_per_byte(self) -> Decimal:
        """
        Query the ISCN registration fee rate.

        Returns:
            Fee per byte in the fee denomination

        Raises:
            FeeOracleError: If the node cannot be reached or answers
                with an unexpected shape
        """
        try:
            params = await self.iscn_params()
            amount = Decimal(params["fee_per_byte"]["amount"])
        except httpx.HTTPError as e:
            raise FeeOracleError(f"Failed to query ISCN fee per byte: {e}") from e
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise FeeOracleError(f"Unexpected ISCN params response: {e}") from e
        logger.debug(f"ISCN fee per byte: {amount}")
        return amount
