"""
Signing and broadcast client for the LikeCoin chain.

Transactions are assembled and signed with cosmpy and broadcast through
the node's REST API. The message registry decides how each
``{"typeUrl", "value"}`` message is encoded to protobuf.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Sequence

from cosmpy.aerial.tx import SigningCfg, Transaction
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import TxRaw

from iscn_sdk.iscn.fees import GasEstimate
from iscn_sdk.iscn.messages import IscnMessageRegistry, default_registry
from iscn_sdk.iscn.result import BroadcastReceipt
from iscn_sdk.rpc_client.config import IscnNetworkConfig
from iscn_sdk.rpc_client.errors import TxNotFoundError, TxTimeoutError
from iscn_sdk.rpc_client.rest import AccountSequence, IscnRestClient
from iscn_sdk.rpc_client.signer import Wallet

logger = logging.getLogger("iscn_sdk")


@dataclass
class SignerData:
    """Account state a transaction is signed against."""
    account_number: int
    sequence: int
    chain_id: str


def encode_tx_raw(tx_raw: TxRaw) -> bytes:
    return tx_raw.SerializeToString()


class IscnSigningClient:
    """
    Signs and broadcasts transactions for a single wallet against one node.
    """

    def __init__(
        self,
        rest: IscnRestClient,
        wallet: Wallet,
        registry: IscnMessageRegistry = default_registry,
        config: Optional[IscnNetworkConfig] = None,
    ):
        self.rest = rest
        self.wallet = wallet
        self.registry = registry
        self.config = config
        self._chain_id: Optional[str] = config.chain_id if config is not None else None

    @classmethod
    async def connect(
        cls,
        endpoint: str,
        wallet: Wallet,
        registry: IscnMessageRegistry = default_registry,
        config: Optional[IscnNetworkConfig] = None,
    ) -> 'IscnSigningClient':
        """
        Connect to a node and bind the wallet and registry.

        The chain id is resolved up front, so an unreachable node fails
        here rather than on the first signature.
        """
        config = config or IscnNetworkConfig(url=endpoint)
        rest = IscnRestClient(endpoint, timeout=config.request_timeout_secs)
        client = cls(rest=rest, wallet=wallet, registry=registry, config=config)
        try:
            chain_id = await client.get_chain_id()
        except Exception:
            await rest.close()
            raise
        logger.debug(f"Connected signing client to {endpoint} ({chain_id})")
        return client

    async def close(self):
        await self.rest.close()

    async def get_chain_id(self) -> str:
        if self._chain_id is None:
            self._chain_id = await self.rest.chain_id()
        return self._chain_id

    async def get_sequence(self, address: str) -> AccountSequence:
        return await self.rest.account(address)

    async def sign(
        self,
        address: str,
        messages: Sequence[Mapping[str, Any]],
        fee: GasEstimate,
        memo: str = "",
        explicit_signer_data: Optional[SignerData] = None,
    ) -> TxRaw:
        """
        Build and sign a transaction.

        Args:
            address: Signer address, must belong to the bound wallet
            messages: ``{"typeUrl", "value"}`` messages
            fee: Fee and gas limit
            memo: Transaction memo
            explicit_signer_data: Account number, sequence and chain id to
                sign with. When given, no account lookup is made.

        Returns:
            Signed TxRaw
        """
        if address != str(self.wallet.address()):
            raise ValueError(f"Address {address} does not belong to the signing wallet")

        signer_data = explicit_signer_data
        if signer_data is None:
            account = await self.get_sequence(address)
            signer_data = SignerData(
                account_number=account.account_number,
                sequence=account.sequence,
                chain_id=await self.get_chain_id(),
            )
        logger.debug(
            f"Signing with seq={signer_data.sequence}, num={signer_data.account_number}, "
            f"chain={signer_data.chain_id}"
        )

        tx = Transaction()
        for message in messages:
            tx.add_message(self.registry.encode(message))

        tx.seal(
            signing_cfgs=[SigningCfg.direct(self.wallet.public_key(), sequence_num=signer_data.sequence)],
            fee=fee.to_tx_fee(),
            memo=memo,
        )
        tx.sign(
            signer=self.wallet.signer(),
            chain_id=signer_data.chain_id,
            account_number=signer_data.account_number,
        )
        tx.complete()
        assert tx.tx is not None

        return TxRaw(
            body_bytes=tx.tx.body.SerializeToString(),
            auth_info_bytes=tx.tx.auth_info.SerializeToString(),
            signatures=list(tx.tx.signatures),
        )

    async def broadcast_tx(self, tx_bytes: bytes) -> BroadcastReceipt:
        """
        Broadcast signed transaction bytes and wait for block inclusion.

        A transaction rejected at CheckTx comes back immediately as a
        receipt with a non-zero code.

        Raises:
            TxTimeoutError: If the transaction is not included in time
        """
        logger.debug("Broadcasting transaction...")
        check = BroadcastReceipt.from_tx_response(await self.rest.broadcast_tx(tx_bytes))
        if check.code != 0:
            return check

        tx_hash = check.transaction_hash
        logger.debug(f"Waiting for transaction {tx_hash} to be included in block...")
        return await self.wait_for_tx(tx_hash)

    async def wait_for_tx(
        self,
        tx_hash: str,
        timeout: Optional[timedelta] = None,
        poll_period: Optional[timedelta] = None,
    ) -> BroadcastReceipt:
        config = self.config
        timeout = timeout or timedelta(seconds=config.broadcast_timeout_secs if config else 60)
        poll_period = poll_period or timedelta(seconds=config.broadcast_poll_interval_secs if config else 3)

        start = datetime.now()
        while True:
            try:
                return BroadcastReceipt.from_tx_response(await self.rest.get_tx(tx_hash))
            except TxNotFoundError:
                pass

            if datetime.now() - start >= timeout:
                raise TxTimeoutError(tx_hash, timeout.total_seconds())

            await asyncio.sleep(poll_period.total_seconds())
