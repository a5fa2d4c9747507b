import asyncio

import pytest
import respx
from httpx import Response

from iscn_sdk.iscn.messages import MSG_CREATE_ISCN_RECORD, MSG_UPDATE_ISCN_RECORD
from iscn_sdk.iscn.payload import InvalidPayloadError
from iscn_sdk.iscn.result import BroadcastReceipt, TxResult
from iscn_sdk.rpc_client.client import SignerData
from iscn_sdk.rpc_client.config import IscnNetworkConfig, IscnWalletConfig
from iscn_sdk.rpc_client.errors import BroadcastTxError, FeeOracleError
from iscn_sdk.rpc_client.rest import IscnRestClient
from iscn_sdk.rpc_client.tx_manager import AsyncOnce, IscnTxManager, assert_is_broadcast_tx_success

from tests.mock_data import TEST_ISCN_ID, TEST_MNEMONIC, mock_iscn_params_response, mock_payload
from tests.mocks.client import CountingFactories, MockFeeOracle, MockSigningClient


def make_manager(factories: CountingFactories, **kwargs) -> IscnTxManager:
    return IscnTxManager(
        network=IscnNetworkConfig(url="http://localhost:1317", chain_id="likecoin-local"),
        wallet=IscnWalletConfig(mnemonic=TEST_MNEMONIC),
        wallet_factory=factories.wallet_factory,
        client_factory=factories.client_factory,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_submit_creates_record():
    factories = CountingFactories()
    manager = make_manager(factories)

    result = await manager.submit(mock_payload)

    assert result == TxResult(tx_hash="ABC123", iscn_id=TEST_ISCN_ID)
    address, messages, fee, memo, signer_data = factories.client.sign_calls[0]
    assert address == "like1testaddr"
    assert memo == ""
    assert signer_data is None
    assert messages[0]["typeUrl"] == MSG_CREATE_ISCN_RECORD
    assert "iscnId" not in messages[0]["value"]
    assert messages[0]["value"]["from"] == "like1testaddr"
    assert messages[0]["value"]["record"]["contentFingerprints"] == [mock_payload["hash"]]
    assert factories.client.broadcast_calls == [b"signed-tx"]


@pytest.mark.asyncio
async def test_submit_with_iscn_id_updates_record():
    factories = CountingFactories()
    manager = make_manager(factories)

    await manager.submit({**mock_payload, "iscnId": TEST_ISCN_ID})

    message = factories.client.sign_calls[0][1][0]
    assert message["typeUrl"] == MSG_UPDATE_ISCN_RECORD
    assert message["value"]["iscnId"] == TEST_ISCN_ID
    # iscnId is not copied into the content metadata
    assert b"iscnId" not in message["value"]["record"]["contentMetadata"]


@pytest.mark.asyncio
async def test_submit_fee_covers_full_message():
    factories = CountingFactories()
    manager = make_manager(factories)

    await manager.submit(mock_payload)

    _, messages, fee, _, _ = factories.client.sign_calls[0]
    assert fee == manager.estimate_gas(messages[0])
    assert int(fee.amount[0].amount) == int(fee.gas) * 10


@pytest.mark.asyncio
async def test_submit_passes_explicit_signer_data():
    factories = CountingFactories()
    manager = make_manager(factories)
    signer_data = SignerData(account_number=42, sequence=11, chain_id="likecoin-local")

    await manager.submit(mock_payload, explicit_signer_data=signer_data)

    assert factories.client.sign_calls[0][4] is signer_data


@pytest.mark.asyncio
async def test_submit_rejects_payload_without_fingerprint():
    factories = CountingFactories()
    manager = make_manager(factories)

    with pytest.raises(InvalidPayloadError):
        await manager.submit({"title": "no hash"})

    assert factories.wallet_calls == 0
    assert factories.client_calls == 0


@pytest.mark.asyncio
async def test_submit_raises_on_chain_rejection():
    receipt = BroadcastReceipt(
        transaction_hash="DEF456",
        code=32,
        codespace="sdk",
        raw_log="account sequence mismatch, expected 8, got 7: incorrect account sequence",
    )
    factories = CountingFactories(client=MockSigningClient(receipt=receipt))
    manager = make_manager(factories)

    with pytest.raises(BroadcastTxError) as exc_info:
        await manager.submit(mock_payload)

    assert exc_info.value.code == 32
    assert exc_info.value.tx_hash == "DEF456"
    assert "sequence mismatch" in str(exc_info.value)
    assert len(factories.client.broadcast_calls) == 1


@pytest.mark.asyncio
async def test_submit_without_iscn_event_returns_no_id():
    receipt = BroadcastReceipt(transaction_hash="ABC123", code=0, raw_log=None)
    factories = CountingFactories(client=MockSigningClient(receipt=receipt))
    manager = make_manager(factories)

    assert await manager.submit(mock_payload) == TxResult(tx_hash="ABC123", iscn_id=None)


@pytest.mark.asyncio
async def test_concurrent_first_calls_initialize_once():
    factories = CountingFactories()
    manager = make_manager(factories)

    identities = await asyncio.gather(*[manager.resolve_identity() for _ in range(10)])
    clients = await asyncio.gather(*[manager.get_signing_client() for _ in range(10)])

    assert factories.wallet_calls == 1
    assert factories.client_calls == 1
    assert len({identity.address for identity in identities}) == 1
    assert all(identity is identities[0] for identity in identities)
    assert all(client is clients[0] for client in clients)


@pytest.mark.asyncio
async def test_concurrent_submissions_share_singletons():
    factories = CountingFactories()
    manager = make_manager(factories)

    results = await asyncio.gather(*[manager.submit(mock_payload) for _ in range(5)])

    assert factories.wallet_calls == 1
    assert factories.client_calls == 1
    assert len(results) == 5
    assert {call[0] for call in factories.client.sign_calls} == {"like1testaddr"}


@pytest.mark.asyncio
async def test_failed_initialization_is_retried():
    factories = CountingFactories(fail_wallet_times=1)
    manager = make_manager(factories)

    with pytest.raises(ValueError):
        await manager.resolve_identity()

    identity = await manager.resolve_identity()
    assert identity.address == "like1testaddr"
    assert factories.wallet_calls == 2


@pytest.mark.asyncio
async def test_get_sequence_and_signer_data():
    factories = CountingFactories()
    manager = make_manager(factories)

    assert await manager.get_sequence() == 7
    assert await manager.get_signer_data() == SignerData(
        account_number=42,
        sequence=7,
        chain_id="likecoin-mainnet-2",
    )


@pytest.mark.asyncio
async def test_get_wallet_alias():
    factories = CountingFactories()
    manager = make_manager(factories)
    identity = await manager.get_wallet()
    assert identity.account.address == "like1testaddr"
    assert identity.wallet.address() == "like1testaddr"


@pytest.mark.asyncio
async def test_estimate_fee_uses_oracle_rate():
    oracle = MockFeeOracle(fee_per_byte=10)
    manager = make_manager(CountingFactories(), fee_oracle=oracle)
    doubled = make_manager(CountingFactories(), fee_oracle=MockFeeOracle(fee_per_byte=20))

    fee = await manager.estimate_fee(mock_payload)

    assert oracle.calls == 1
    assert fee > 0
    assert fee % 10 == 0
    assert await doubled.estimate_fee(mock_payload) == 2 * fee


@pytest.mark.asyncio
async def test_estimate_fee_propagates_oracle_failure():
    oracle = MockFeeOracle(error=FeeOracleError("node unreachable"))
    manager = make_manager(CountingFactories(), fee_oracle=oracle)

    with pytest.raises(FeeOracleError):
        await manager.estimate_fee(mock_payload)
    assert oracle.calls == 1


@pytest.mark.asyncio
async def test_close_closes_client():
    factories = CountingFactories()
    manager = make_manager(factories, fee_oracle=MockFeeOracle())
    await manager.close()
    assert factories.client.closed is False

    await manager.get_signing_client()
    await manager.close()
    assert factories.client.closed is True


@pytest.mark.asyncio
async def test_async_once_returns_same_value():
    calls = []

    async def factory():
        calls.append(1)
        await asyncio.sleep(0.01)
        return object()

    once = AsyncOnce(factory)
    values = await asyncio.gather(*[once.get() for _ in range(5)])
    assert len(calls) == 1
    assert once.initialized
    assert all(v is values[0] for v in values)


def test_assert_is_broadcast_tx_success():
    assert_is_broadcast_tx_success(BroadcastReceipt(transaction_hash="A", code=0))
    with pytest.raises(BroadcastTxError):
        assert_is_broadcast_tx_success(BroadcastReceipt(transaction_hash="A", code=5, raw_log="insufficient funds"))


def test_default_manager_is_created_once_from_env(monkeypatch):
    from iscn_sdk.rpc_client import tx_manager

    monkeypatch.setattr(tx_manager, "_default_manager", None)
    monkeypatch.setenv("ISCN_RPC_URL", "http://localhost:1317")
    monkeypatch.setenv("ISCN_CHAIN_ID", "likecoin-local")
    monkeypatch.setenv("COSMOS_MNEMONIC", TEST_MNEMONIC)

    manager = tx_manager.get_default_manager()

    assert tx_manager.get_default_manager() is manager
    assert manager.network.url == "http://localhost:1317"
    assert manager.network.chain_id == "likecoin-local"
    assert manager.wallet_config.mnemonic == TEST_MNEMONIC


def test_default_manager_requires_rpc_url(monkeypatch):
    from iscn_sdk.rpc_client import tx_manager

    monkeypatch.setattr(tx_manager, "_default_manager", None)
    monkeypatch.delenv("ISCN_RPC_URL", raising=False)
    monkeypatch.setenv("COSMOS_MNEMONIC", TEST_MNEMONIC)

    with pytest.raises(RuntimeError, match="ISCN_RPC_URL"):
        tx_manager.get_default_manager()
    assert tx_manager._default_manager is None


@pytest.mark.asyncio
async def test_module_functions_delegate_to_default_manager(monkeypatch):
    from iscn_sdk.rpc_client import tx_manager

    factories = CountingFactories()
    monkeypatch.setattr(tx_manager, "_default_manager", make_manager(factories))

    result = await tx_manager.sign_iscn_tx(mock_payload)
    identity = await tx_manager.get_wallet()

    assert result.iscn_id == TEST_ISCN_ID
    assert identity.address == "like1testaddr"
    assert factories.wallet_calls == 1


@pytest.mark.asyncio
@respx.mock
async def test_estimate_fee_without_wallet_credentials(monkeypatch):
    from iscn_sdk.rpc_client import tx_manager

    respx.get("http://localhost:1317/likechain/iscn/params").mock(
        return_value=Response(200, json=mock_iscn_params_response)
    )
    monkeypatch.setattr(tx_manager, "_default_manager", None)
    monkeypatch.setenv("ISCN_RPC_URL", "http://localhost:1317")
    monkeypatch.delenv("COSMOS_MNEMONIC", raising=False)
    monkeypatch.delenv("COSMOS_MNEMONIC_FILE", raising=False)

    fee = await tx_manager.estimate_iscn_tx_fee(mock_payload)

    assert fee > 0
    assert fee % 10 == 0
    await tx_manager.get_default_manager().close()


@pytest.mark.asyncio
async def test_submit_without_wallet_credentials_fails_before_signing():
    factories = CountingFactories()
    manager = IscnTxManager(
        network=IscnNetworkConfig(url="http://localhost:1317", chain_id="likecoin-local"),
        wallet=IscnWalletConfig(),
        wallet_factory=factories.wallet_factory,
        client_factory=factories.client_factory,
    )

    with pytest.raises(ValueError, match="No wallet credentials"):
        await manager.submit(mock_payload)
    assert factories.wallet_calls == 0
    assert factories.client.sign_calls == []


def test_new_event_loop_reconnects_and_keeps_wallet():
    factories = CountingFactories()
    manager = make_manager(factories)

    assert asyncio.run(manager.get_sequence()) == 7
    assert asyncio.run(manager.get_sequence()) == 7

    assert factories.wallet_calls == 1
    assert factories.client_calls == 2


@respx.mock
def test_new_event_loop_replaces_fee_oracle_client():
    respx.get("http://localhost:1317/likechain/iscn/params").mock(
        return_value=Response(200, json=mock_iscn_params_response)
    )
    manager = make_manager(CountingFactories())

    first = asyncio.run(manager.estimate_fee(mock_payload))
    first_oracle = manager.fee_oracle
    second = asyncio.run(manager.estimate_fee(mock_payload))

    assert second == first
    assert isinstance(manager.fee_oracle, IscnRestClient)
    assert manager.fee_oracle is not first_oracle


def test_injected_fee_oracle_survives_new_event_loop():
    oracle = MockFeeOracle()
    manager = make_manager(CountingFactories(), fee_oracle=oracle)

    asyncio.run(manager.estimate_fee(mock_payload))
    asyncio.run(manager.estimate_fee(mock_payload))

    assert manager.fee_oracle is oracle
    assert oracle.calls == 2


@pytest.mark.asyncio
async def test_wallet_prefix_comes_from_wallet_config():
    factories = CountingFactories()
    manager = IscnTxManager(
        network=IscnNetworkConfig(url="http://localhost:1317", chain_id="likecoin-local"),
        wallet=IscnWalletConfig(mnemonic=TEST_MNEMONIC, prefix="cosmos"),
        wallet_factory=factories.wallet_factory,
        client_factory=factories.client_factory,
    )

    await manager.resolve_identity()

    assert factories.wallet_prefixes == ["cosmos"]
    assert not hasattr(manager.network, "address_prefix")
