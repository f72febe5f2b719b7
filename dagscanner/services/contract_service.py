import logging

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from dagscanner.errors import (
    ConfirmationTimeoutError,
    ContractInitError,
    SubmissionError,
    TransactionFailedError,
    TransactionSubmissionError,
    UserRejectedError,
    WalletNotConnectedError,
    WrongNetworkError,
)
from dagscanner.schemas.schemas import AnalysisResult
from dagscanner.schemas.submission import FeeQuote, TransactionHandle, WalletSession
from dagscanner.utils.blockchain import (
    ANALYSIS_CONTRACT_ABI,
    extract_revert_reason,
    format_ether,
    is_user_rejection,
    to_hex_hash,
)

logger = logging.getLogger(__name__)


class FeeQuotingContractClient:
    """Client for the on-chain analysis registry.

    Holds the contract binding and the fee quote for one wallet account.
    Both are dropped whenever the wallet session moves to another account
    (see ``on_session_changed``) and must be re-read with ``initialize``.
    """

    def __init__(self, w3, contract_address, provider, abi=None, expected_chain_id=None):
        self.w3 = w3
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.provider = provider
        self.abi = abi or ANALYSIS_CONTRACT_ABI
        self.expected_chain_id = expected_chain_id

        self.contract = None
        self._fee = None
        self._bound_account = None

    @property
    def fee(self):
        return self._fee

    @property
    def bound_account(self):
        return self._bound_account

    def invalidate(self):
        self.contract = None
        self._fee = None
        self._bound_account = None

    def on_session_changed(self, session: WalletSession):
        if session.account != self._bound_account and self.contract is not None:
            logger.info("[Contract] Wallet session changed, dropping fee quote")
            self.invalidate()

    async def initialize(self, session: WalletSession) -> FeeQuote:
        """Bind to the analysis contract for ``session`` and read the current fee"""
        if not session.account:
            raise WalletNotConnectedError()

        try:
            chain_id = await self.w3.eth.chain_id
            if self.expected_chain_id is not None and chain_id != self.expected_chain_id:
                raise WrongNetworkError(
                    f"Connected to chain {chain_id}, expected {self.expected_chain_id}. "
                    "Make sure you are on the correct BlockDAG testnet."
                )

            code = await self.w3.eth.get_code(self.contract_address)
            if not code:
                raise WrongNetworkError(
                    f"No analysis contract at {self.contract_address} on chain {chain_id}. "
                    "Make sure you are on the correct BlockDAG testnet."
                )

            contract = self.w3.eth.contract(address=self.contract_address, abi=self.abi)
            amount_wei = await contract.functions.analysisFee().call()

        except SubmissionError as e:
            logger.warning("[Contract] %s", e.message)
            raise
        except Exception as e:
            logger.warning("[Contract] Initialization failed: %s", e)
            raise ContractInitError(f"Failed to initialize smart contract: {e}") from e

        fee = FeeQuote(amount_wei=amount_wei, as_decimal=format_ether(amount_wei))
        self.contract = contract
        self._fee = fee
        self._bound_account = session.account

        logger.info("[Contract] Bound %s for %s, fee %s", self.contract_address, session.account, fee.as_decimal)
        return fee

    async def submit_result(self, result: AnalysisResult, fee: FeeQuote) -> TransactionHandle:
        """Send storeResultAndPay with the fee attached; returns once broadcast"""
        if self.contract is None or self._bound_account is None:
            raise TransactionSubmissionError("Smart contract is not initialized.")

        account = self._bound_account
        logger.info("[Contract] Submitting transaction with fee: %s", fee.as_decimal)

        try:
            txn = await self.contract.functions.storeResultAndPay(
                result.address,
                result.score,
                result.status
            ).build_transaction({
                'from': Web3.to_checksum_address(account),
                'value': fee.amount_wei,
            })
        except ContractLogicError as e:
            reason = extract_revert_reason(e)
            logger.warning("[Contract] Pre-flight failed: %s", reason)
            raise TransactionSubmissionError(f"Contract rejected the transaction: {reason}") from e
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejectedError() from e
            logger.warning("[Contract] Could not build transaction: %s", e)
            raise TransactionSubmissionError(f"Failed to prepare transaction: {e}") from e

        try:
            tx_hash = await self.provider.send_transaction(self.w3, txn)
        except SubmissionError:
            raise
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejectedError() from e
            logger.warning("[Contract] Send failed: %s", e)
            raise TransactionSubmissionError(f"Failed to submit the transaction: {e}") from e

        logger.info("[Contract] Tx sent: %s", tx_hash)
        return TransactionHandle(tx_hash=tx_hash, account=account)

    async def await_confirmation(self, handle: TransactionHandle, timeout: float) -> str:
        """Wait for the receipt of ``handle``; returns the confirmed tx hash"""
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(handle.tx_hash, timeout=timeout)
        except TimeExhausted as e:
            logger.warning("[Contract] Receipt timeout after %ss: %s", timeout, handle.tx_hash)
            raise ConfirmationTimeoutError(handle.tx_hash) from e
        except Exception as e:
            # Sent but status unknown: the user has to check the explorer either way
            logger.warning("[Contract] Could not fetch receipt for %s: %s", handle.tx_hash, e)
            raise ConfirmationTimeoutError(
                handle.tx_hash,
                f"Transaction submitted ({handle.tx_hash}) but its receipt could not be read: {e}",
            ) from e

        if receipt['status'] != 1:
            reason = await self._replay_revert_reason(handle, receipt)
            logger.warning("[Contract] Tx reverted: %s (%s)", handle.tx_hash, reason)
            raise TransactionFailedError(handle.tx_hash, reason)

        logger.info("[Contract] Tx confirmed: %s gasUsed=%s", handle.tx_hash, receipt.get('gasUsed'))
        return to_hex_hash(receipt.get('transactionHash') or handle.tx_hash)

    async def _replay_revert_reason(self, handle, receipt):
        """Re-run a reverted transaction as eth_call to recover its revert reason"""
        reason = "Transaction reverted on-chain."
        try:
            tx = await self.w3.eth.get_transaction(handle.tx_hash)
            await self.w3.eth.call(
                {'to': tx['to'], 'from': tx['from'], 'data': tx['input'], 'value': tx['value']},
                receipt['blockNumber']
            )
        except Exception as replay_err:
            replayed = extract_revert_reason(replay_err)
            if replayed:
                reason = f"Transaction reverted on-chain: {replayed}"
        return reason
