import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

from iscn_sdk.iscn.fees import GasEstimate, GasModel, estimate_fee, estimate_gas
from iscn_sdk.iscn.messages import IscnMessageRegistry, build_iscn_message, default_registry
from iscn_sdk.iscn.payload import format_payload, validate_payload
from iscn_sdk.iscn.result import BroadcastReceipt, TxResult, parse_result
from iscn_sdk.rpc_client.client import IscnSigningClient, SignerData, encode_tx_raw
from iscn_sdk.rpc_client.config import IscnNetworkConfig, IscnWalletConfig
from iscn_sdk.rpc_client.errors import BroadcastTxError
from iscn_sdk.rpc_client.rest import IscnRestClient
from iscn_sdk.rpc_client.signer import SignerIdentity, Wallet, derive_wallet, identity_from_wallet

logger = logging.getLogger("iscn_sdk")

T = TypeVar("T")

WalletFactory = Callable[[str, str], Awaitable[Wallet]]
ClientFactory = Callable[..., Awaitable[IscnSigningClient]]


class AsyncOnce(Generic[T]):
    """
    Lazily computed value shared by all callers.

    Concurrent first callers wait on the same initialization. If the
    factory raises, nothing is stored and the next caller tries again.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]):
        self._factory = factory
        self._lock = asyncio.Lock()
        self._value: Optional[T] = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def rebound(self) -> "AsyncOnce[T]":
        """Copy holding the same value, with a lock for the current event loop."""
        once: AsyncOnce[T] = AsyncOnce(self._factory)
        once._value = self._value
        once._initialized = self._initialized
        return once

    async def get(self) -> T:
        if self._initialized:
            return self._value  # type: ignore[return-value]
        async with self._lock:
            if not self._initialized:
                self._value = await self._factory()
                self._initialized = True
        return self._value  # type: ignore[return-value]


async def _derive_wallet_in_thread(mnemonic: str, prefix: str) -> Wallet:
    return await asyncio.to_thread(derive_wallet, mnemonic, prefix)


def assert_is_broadcast_tx_success(receipt: BroadcastReceipt):
    if receipt.code != 0:
        raise BroadcastTxError(
            codespace=receipt.codespace,
            code=receipt.code,
            message=receipt.raw_log or "",
            tx_hash=receipt.transaction_hash,
        )


class IscnTxManager:
    """
    Builds, fees, signs and broadcasts ISCN record transactions.

    The signing identity and the signing client are created on first use
    and then shared by every call on this manager. Node connections belong
    to the event loop that opened them; when the manager is used from a
    new loop (for example a second ``asyncio.run``) they are rebuilt, and
    the derived wallet is kept.
    """

    def __init__(
        self,
        network: IscnNetworkConfig,
        wallet: IscnWalletConfig,
        registry: IscnMessageRegistry = default_registry,
        wallet_factory: Optional[WalletFactory] = None,
        client_factory: Optional[ClientFactory] = None,
        fee_oracle: Optional[Any] = None,
    ):
        self.network = network
        self.wallet_config = wallet
        self.registry = registry
        self.gas_model = GasModel.from_config(network)
        self._wallet_factory = wallet_factory or _derive_wallet_in_thread
        self._client_factory = client_factory or IscnSigningClient.connect
        self._fee_oracle = fee_oracle
        self._owns_fee_oracle = fee_oracle is None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._identity: AsyncOnce[SignerIdentity] = AsyncOnce(self._create_identity)
        self._client: AsyncOnce[IscnSigningClient] = AsyncOnce(self._create_client)

    @classmethod
    def from_env(cls, env_prefix: str | None = None, **kwargs) -> 'IscnTxManager':
        return cls(
            network=IscnNetworkConfig.from_env(env_prefix),
            wallet=IscnWalletConfig.from_env(env_prefix),
            **kwargs,
        )

    async def _create_identity(self) -> SignerIdentity:
        mnemonic = self.wallet_config.read_mnemonic()
        wallet = await self._wallet_factory(mnemonic, self.wallet_config.prefix)
        identity = identity_from_wallet(wallet)
        logger.info(f"ISCN signer address: {identity.address}")
        return identity

    async def _create_client(self) -> IscnSigningClient:
        identity = await self.resolve_identity()
        return await self._client_factory(
            self.network.url,
            identity.wallet,
            registry=self.registry,
            config=self.network,
        )

    def _bind_to_running_loop(self):
        loop = asyncio.get_running_loop()
        if self._loop is loop:
            return
        if self._loop is not None:
            # connections of the previous loop cannot be reused or closed here
            logger.debug("Event loop changed, reconnecting to the node")
            self._identity = self._identity.rebound()
            self._client = AsyncOnce(self._create_client)
            if self._owns_fee_oracle:
                self._fee_oracle = None
        self._loop = loop

    @property
    def fee_oracle(self):
        if self._fee_oracle is None:
            self._fee_oracle = IscnRestClient(self.network.url, timeout=self.network.request_timeout_secs)
        return self._fee_oracle

    async def resolve_identity(self) -> SignerIdentity:
        self._bind_to_running_loop()
        return await self._identity.get()

    get_wallet = resolve_identity

    async def get_signing_client(self) -> IscnSigningClient:
        self._bind_to_running_loop()
        return await self._client.get()

    async def get_sequence(self) -> int:
        identity = await self.resolve_identity()
        client = await self.get_signing_client()
        account = await client.get_sequence(identity.address)
        return account.sequence

    async def get_signer_data(self) -> SignerData:
        identity = await self.resolve_identity()
        client = await self.get_signing_client()
        account = await client.get_sequence(identity.address)
        chain_id = await client.get_chain_id()
        return SignerData(
            account_number=account.account_number,
            sequence=account.sequence,
            chain_id=chain_id,
        )

    def estimate_gas(self, message: Mapping[str, Any]) -> GasEstimate:
        return estimate_gas(message, self.gas_model)

    async def estimate_fee(
        self,
        payload: Mapping[str, Any],
        version: int = 1,
        parent_ipld: Optional[str] = None,
    ) -> int:
        """
        Quote the ISCN registration fee for a payload.

        Queries the chain for the current fee-per-byte rate; a failed query
        raises ``FeeOracleError`` and is not retried.
        """
        self._bind_to_running_loop()
        fee_per_byte = await self.fee_oracle.query_fee_per_byte()
        return estimate_fee(
            payload,
            fee_per_byte,
            version=version,
            parent_ipld=parent_ipld,
            registry_name=self.network.registry_name,
        )

    async def submit(
        self,
        input_payload: Mapping[str, Any],
        explicit_signer_data: Optional[SignerData] = None,
    ) -> TxResult:
        """
        Create or update an ISCN record.

        A payload carrying ``iscnId`` updates that record, otherwise a new
        record is created.

        Args:
            input_payload: Content payload, optionally with ``iscnId``
            explicit_signer_data: Pre-allocated account number, sequence and
                chain id. Lets callers keep several transactions from the
                same account in flight without sequence races.

        Returns:
            TxResult with the tx hash and, for new records, the ISCN id

        Raises:
            InvalidPayloadError: If the payload has no content fingerprint
            BroadcastTxError: If the chain rejects the transaction
        """
        payload = dict(input_payload)
        iscn_id = payload.pop("iscnId", None)
        validate_payload(payload)
        record = format_payload(payload)

        identity = await self.resolve_identity()
        client = await self.get_signing_client()

        message = build_iscn_message(identity.address, record, iscn_id=iscn_id)
        fee = self.estimate_gas(message)
        logger.debug(f"Submitting {message['typeUrl']} with gas {fee.gas}")

        tx_raw = await client.sign(identity.address, [message], fee, "", explicit_signer_data)
        receipt = await client.broadcast_tx(encode_tx_raw(tx_raw))
        self._log_receipt(receipt)
        if receipt.code != 0:
            logger.error(f"ISCN transaction rejected: code={receipt.code} {receipt.raw_log}")
        assert_is_broadcast_tx_success(receipt)

        result = parse_result(receipt)
        logger.info(f"ISCN transaction {result.tx_hash} included, iscn id: {result.iscn_id}")
        return result

    sign_iscn_tx = submit

    def _log_receipt(self, receipt: BroadcastReceipt):
        logger.debug("Transaction Response Details:")
        logger.debug(f"   - Code: {receipt.code}")
        logger.debug(f"   - Raw Log: {receipt.raw_log}")
        logger.debug(f"   - Tx Hash: {receipt.transaction_hash}")
        logger.debug(f"   - Gas Used: {receipt.gas_used}")
        logger.debug(f"   - Gas Wanted: {receipt.gas_wanted}")

    async def close(self):
        self._bind_to_running_loop()
        if self._client.initialized:
            await (await self._client.get()).close()
        if self._owns_fee_oracle and self._fee_oracle is not None:
            await self._fee_oracle.close()


_default_manager: Optional[IscnTxManager] = None
_default_manager_lock = threading.Lock()


def get_default_manager() -> IscnTxManager:
    """Process-wide manager configured from ``ISCN_RPC_URL`` and ``COSMOS_MNEMONIC``."""
    global _default_manager

    with _default_manager_lock:
        if _default_manager is None:
            _default_manager = IscnTxManager.from_env()
        return _default_manager


async def get_wallet() -> SignerIdentity:
    return await get_default_manager().resolve_identity()


async def sign_iscn_tx(
    input_payload: Mapping[str, Any],
    explicit_signer_data: Optional[SignerData] = None,
) -> TxResult:
    return await get_default_manager().submit(input_payload, explicit_signer_data)


async def estimate_iscn_tx_fee(payload: Mapping[str, Any], version: int = 1) -> int:
    return await get_default_manager().estimate_fee(payload, version=version)


async def get_sequence() -> int:
    return await get_default_manager().get_sequence()


async def get_signer_data() -> SignerData:
    return await get_default_manager().get_signer_data()
