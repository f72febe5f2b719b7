import logging

from dagscanner.errors import (
    ConfirmationTimeoutError,
    EmptyInputError,
    NetworkError,
    SubmissionError,
    TransactionSubmissionError,
    WalletNotConnectedError,
)
from dagscanner.schemas.submission import (
    Failed,
    Pending,
    Succeeded,
    WorkflowState,
)
from dagscanner.utils.listeners import ListenerSet

logger = logging.getLogger(__name__)


class SubmissionWorkflow:
    """Score an address off-chain, then record the verdict on-chain with the fee.

    Idle -> Validating -> AwaitingScore -> AwaitingWalletSignature
         -> AwaitingConfirmation -> Settled(Succeeded | Failed)

    One invocation at a time. Each invocation produces exactly one outcome
    and replaces the previous one.
    """

    def __init__(self, sessions, contract_client, analysis_client, confirmation_timeout=120.0):
        self.sessions = sessions
        self.contract_client = contract_client
        self.analysis_client = analysis_client
        self.confirmation_timeout = confirmation_timeout

        self._state = WorkflowState.IDLE
        self._outcome = None
        self._in_flight = False
        self._listeners = ListenerSet()
        self._unwatch = sessions.subscribe(contract_client.on_session_changed)

    @property
    def state(self):
        return self._state

    @property
    def outcome(self):
        return self._outcome

    @property
    def in_flight(self):
        return self._in_flight

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None

    def subscribe(self, listener):
        """Register ``listener(state, outcome)``; returns an unsubscribe callable.

        A listener that raises is logged and skipped, the run carries on.
        """
        return self._listeners.add(listener)

    async def connect_wallet(self):
        """Prompt the wallet for an account, then bind the contract and read the fee"""
        account = await self.sessions.request_connection()
        logger.info("[Workflow] Wallet connected: %s", account)
        await self.refresh_fee()
        return self.sessions.current

    async def refresh_fee(self):
        session = self.sessions.current
        try:
            fee = await self.contract_client.initialize(session)
        except SubmissionError:
            self.sessions.set_chain_binding(False)
            raise
        self.sessions.set_chain_binding(True)
        return fee

    async def submit(self, address):
        """Run one submission. Returns the settled outcome, or None if one is already running."""
        if self._in_flight:
            logger.info("[Workflow] Submission already in progress, ignoring trigger")
            return None

        self._in_flight = True
        try:
            return await self._run(address)
        finally:
            self._in_flight = False

    async def _run(self, address):
        self._outcome = Pending()
        self._transition(WorkflowState.IDLE)
        self._transition(WorkflowState.VALIDATING)

        if not address or not address.strip():
            return self._settle(Failed.from_error(EmptyInputError()))
        address = address.strip()

        session = self.sessions.current
        if not session.connected:
            return self._settle(Failed.from_error(WalletNotConnectedError()))

        # Step 1: off-chain score. Nothing touches the chain unless this succeeds.
        self._transition(WorkflowState.AWAITING_SCORE)
        try:
            result = await self.analysis_client.submit(address)
        except Exception as e:
            return self._settle(Failed.from_error(self._classify(e, NetworkError)))

        logger.info("[Workflow] %s scored %s/100 (%s)", result.address, result.score, result.status)

        # Step 2: paid write, fee re-read if the session moved since the last quote
        self._transition(WorkflowState.AWAITING_WALLET_SIGNATURE)
        try:
            fee = self.contract_client.fee
            if fee is None or self.contract_client.bound_account != self.sessions.current.account:
                fee = await self.refresh_fee()
            handle = await self.contract_client.submit_result(result, fee)
        except Exception as e:
            error = self._classify(e, TransactionSubmissionError)
            return self._settle(Failed.from_error(error, result=result))

        # Step 3: confirmation. Never resubmitted; a timeout is reported as is.
        self._transition(WorkflowState.AWAITING_CONFIRMATION)
        try:
            tx_reference = await self.contract_client.await_confirmation(
                handle, self.confirmation_timeout
            )
        except Exception as e:
            error = self._classify(e, lambda msg: ConfirmationTimeoutError(handle.tx_hash, msg))
            return self._settle(Failed.from_error(error, result=result))

        return self._settle(Succeeded(result=result, tx_reference=tx_reference))

    def _classify(self, error, fallback):
        if isinstance(error, SubmissionError):
            return error
        logger.exception("[Workflow] Unexpected error: %s", error)
        return fallback(str(error) or None)

    def _settle(self, outcome):
        self._outcome = outcome
        if isinstance(outcome, Failed):
            logger.warning("[Workflow] Failed (%s): %s", outcome.kind.value, outcome.message)
        else:
            logger.info("[Workflow] Recorded on-chain: %s", outcome.tx_reference)
        self._transition(WorkflowState.SETTLED)
        return outcome

    def _transition(self, state):
        self._state = state
        logger.debug("[Workflow] -> %s", state.value)
        self._listeners.notify(state, self._outcome)
