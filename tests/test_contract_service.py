import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from dagscanner.errors import (
    ConfirmationTimeoutError,
    ContractInitError,
    TransactionFailedError,
    TransactionSubmissionError,
    UserRejectedError,
    WalletNotConnectedError,
    WrongNetworkError,
)
from dagscanner.schemas.submission import FeeQuote, TransactionHandle, WalletSession
from dagscanner.services.contract_service import FeeQuotingContractClient

from fakes import ACCOUNT, CONTRACT, FEE, OTHER_ACCOUNT, FakeEth, FakeProvider, FakeWeb3, scored

SESSION = WalletSession(account=ACCOUNT)


class RaisingProvider(FakeProvider):
    def __init__(self, error):
        super().__init__([ACCOUNT])
        self.error = error
        self.sent = []

    async def send_transaction(self, w3, transaction):
        self.sent.append(transaction)
        raise self.error


def _client(eth=None, provider=None, expected_chain_id=None):
    return FeeQuotingContractClient(
        FakeWeb3(eth or FakeEth()),
        CONTRACT.lower(),
        provider or FakeProvider([ACCOUNT]),
        expected_chain_id=expected_chain_id,
    )


async def _initialized(eth=None, provider=None):
    client = _client(eth, provider)
    await client.initialize(SESSION)
    return client


@pytest.mark.asyncio
async def test_initialize_reads_fee():
    client = _client(FakeEth(fee=10**16), expected_chain_id=1043)

    fee = await client.initialize(SESSION)

    assert fee == FeeQuote(amount_wei=10**16, as_decimal="0.01")
    assert client.fee == fee
    assert client.bound_account == ACCOUNT
    assert client.contract_address == CONTRACT


@pytest.mark.asyncio
async def test_initialize_requires_account():
    with pytest.raises(WalletNotConnectedError):
        await _client().initialize(WalletSession())


@pytest.mark.asyncio
async def test_initialize_wrong_chain():
    client = _client(FakeEth(chain_id=1), expected_chain_id=1043)

    with pytest.raises(WrongNetworkError) as exc_info:
        await client.initialize(SESSION)

    assert "expected 1043" in exc_info.value.message
    assert client.fee is None


@pytest.mark.asyncio
async def test_initialize_without_contract_code():
    with pytest.raises(WrongNetworkError):
        await _client(FakeEth(code=b"")).initialize(SESSION)


@pytest.mark.asyncio
async def test_initialize_fee_read_failure_is_distinguishable():
    eth = FakeEth()
    eth.fee_error = ValueError("Could not decode contract function call")

    with pytest.raises(ContractInitError) as exc_info:
        await _client(eth).initialize(SESSION)

    assert "Could not decode" in exc_info.value.message


@pytest.mark.asyncio
async def test_session_change_invalidates_binding():
    client = await _initialized()

    client.on_session_changed(WalletSession(account=ACCOUNT, chain_binding_valid=True))
    assert client.fee == FEE

    client.on_session_changed(WalletSession(account=OTHER_ACCOUNT))
    assert client.fee is None
    assert client.contract is None
    assert client.bound_account is None


@pytest.mark.asyncio
async def test_submit_result_attaches_fee_and_passes_fields_verbatim():
    eth = FakeEth()
    client = await _initialized(eth)

    handle = await client.submit_result(scored("0xabc...123", 82, "Secure"), FEE)

    assert handle == TransactionHandle(tx_hash="0xdeadbeef", account=ACCOUNT)
    assert eth.stored == [("0xabc...123", 82, "Secure")]
    assert eth.built == [{"from": ACCOUNT, "value": 10**16}]


@pytest.mark.asyncio
async def test_submit_requires_initialization():
    with pytest.raises(TransactionSubmissionError):
        await _client().submit_result(scored(), FEE)


@pytest.mark.asyncio
async def test_submit_rejected_by_user():
    provider = RaisingProvider(UserRejectedError())
    client = await _initialized(provider=provider)

    with pytest.raises(UserRejectedError):
        await client.submit_result(scored(), FEE)


@pytest.mark.asyncio
async def test_submit_rpc_rejection_code_is_user_rejection():
    provider = RaisingProvider(ValueError({"code": 4001, "message": "User denied transaction signature."}))
    client = await _initialized(provider=provider)

    with pytest.raises(UserRejectedError):
        await client.submit_result(scored(), FEE)


@pytest.mark.asyncio
async def test_submit_send_failure():
    provider = RaisingProvider(ValueError({"code": -32000, "message": "insufficient funds for gas * price + value"}))
    client = await _initialized(provider=provider)

    with pytest.raises(TransactionSubmissionError) as exc_info:
        await client.submit_result(scored(), FEE)

    assert "insufficient funds" in exc_info.value.message


@pytest.mark.asyncio
async def test_submit_revert_during_estimation():
    eth = FakeEth()
    eth.build_error = ContractLogicError("execution reverted: Incorrect fee")
    client = await _initialized(eth)

    with pytest.raises(TransactionSubmissionError) as exc_info:
        await client.submit_result(scored(), FEE)

    assert exc_info.value.message == "Contract rejected the transaction: Incorrect fee"


@pytest.mark.asyncio
async def test_await_confirmation_success():
    eth = FakeEth()
    eth.receipt = {"status": 1, "transactionHash": bytes.fromhex("deadbeef"), "gasUsed": 21000, "blockNumber": 7}
    client = await _initialized(eth)

    reference = await client.await_confirmation(TransactionHandle("0xdeadbeef", ACCOUNT), timeout=5)

    assert reference == "0xdeadbeef"


@pytest.mark.asyncio
async def test_await_confirmation_timeout():
    eth = FakeEth()
    eth.wait_error = TimeExhausted("not in chain after 5 seconds")
    client = await _initialized(eth)

    with pytest.raises(ConfirmationTimeoutError) as exc_info:
        await client.await_confirmation(TransactionHandle("0xfeed", ACCOUNT), timeout=5)

    assert exc_info.value.tx_hash == "0xfeed"


@pytest.mark.asyncio
async def test_await_confirmation_revert_replays_reason():
    eth = FakeEth()
    eth.receipt = {"status": 0, "transactionHash": "0xfeed", "gasUsed": 50000, "blockNumber": 7}
    eth.call_error = ContractLogicError("execution reverted: Incorrect fee")
    client = await _initialized(eth)

    with pytest.raises(TransactionFailedError) as exc_info:
        await client.await_confirmation(TransactionHandle("0xfeed", ACCOUNT), timeout=5)

    assert exc_info.value.tx_hash == "0xfeed"
    assert exc_info.value.message == "Transaction reverted on-chain: Incorrect fee"
