"""
Wallet session tracking.

The session manager owns the single ``WalletSession`` snapshot. Wallet
access goes through a provider object exposing four capabilities:

    get_accounts()            accounts already authorized, no prompt
    request_accounts()        prompt the user for access
    subscribe(listener)       account-change notifications, returns unsubscribe
    send_transaction(w3, tx)  sign and broadcast, returns the 0x tx hash

A provider may also define ``aclose()``; the manager awaits it on exit.

Two providers ship with the package: ``LocalAccountProvider`` signs with a
private key held in-process, ``NodeAccountProvider`` delegates to accounts
managed by the connected node.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, List, Optional

from eth_account import Account
from web3 import Web3

from dagscanner.errors import (
    ProviderMissingError,
    SubmissionError,
    UserRejectedError,
    WalletNotConnectedError,
)
from dagscanner.schemas.submission import WalletSession
from dagscanner.utils.blockchain import (
    USER_REJECTED_RPC_CODE,
    format_ether,
    is_user_rejection,
)
from dagscanner.utils.listeners import ListenerSet

logger = logging.getLogger(__name__)

AccountsListener = Callable[[List[str]], None]
SessionListener = Callable[[WalletSession], None]
Approval = Callable[[str], Awaitable[bool]]

METHOD_NOT_FOUND_RPC_CODE = -32601


class LocalAccountProvider:
    """Private-key signer with an optional user approval hook.

    ``approve`` is awaited with a human-readable prompt before connecting and
    before every signature; a falsy answer is a user rejection.
    """

    def __init__(self, private_key: str, approve: Optional[Approval] = None):
        self._account = Account.from_key(private_key)
        self._approve = approve
        self._active = self._account
        self._listeners = ListenerSet()

    @property
    def address(self) -> Optional[str]:
        return self._active.address if self._active else None

    async def get_accounts(self) -> List[str]:
        return [self._active.address] if self._active else []

    async def request_accounts(self) -> List[str]:
        if self._active is None:
            self._active = self._account
        if not await self._ask(f"Connect wallet {self._active.address}?"):
            raise UserRejectedError("Wallet connection rejected by user.")
        return [self._active.address]

    def subscribe(self, listener: AccountsListener) -> Callable[[], None]:
        return self._listeners.add(listener)

    def switch_account(self, private_key: str) -> str:
        self._account = Account.from_key(private_key)
        self._active = self._account
        self._listeners.notify([self._active.address])
        return self._active.address

    def disconnect(self) -> None:
        self._active = None
        self._listeners.notify([])

    async def send_transaction(self, w3, transaction: dict) -> str:
        if self._active is None:
            raise WalletNotConnectedError()

        value = transaction.get('value', 0)
        prompt = (
            f"Sign transaction to {transaction.get('to')} "
            f"paying {format_ether(value)} from {self._active.address}?"
        )
        if not await self._ask(prompt):
            raise UserRejectedError()

        txn = dict(transaction)
        txn['from'] = self._active.address
        if 'nonce' not in txn:
            txn['nonce'] = await w3.eth.get_transaction_count(self._active.address)
        if 'chainId' not in txn:
            txn['chainId'] = await w3.eth.chain_id
        if 'gasPrice' not in txn and 'maxFeePerGas' not in txn:
            txn['gasPrice'] = await w3.eth.gas_price

        signed = self._active.sign_transaction(txn)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def _ask(self, prompt: str) -> bool:
        if self._approve is None:
            return True
        return bool(await self._approve(prompt))


class NodeAccountProvider:
    """Accounts unlocked on the connected node.

    Account changes are detected by polling ``eth_accounts`` while at least
    one listener is subscribed. The first poll reports the accounts as read,
    so a change between subscribing and that poll is not lost.
    """

    def __init__(self, w3, poll_interval: float = 2.0):
        self.w3 = w3
        self.poll_interval = poll_interval
        self._listeners = ListenerSet()
        self._poll_task: Optional[asyncio.Task] = None
        self._stopped_tasks: List[asyncio.Task] = []
        self._last_accounts: Optional[List[str]] = None

    async def get_accounts(self) -> List[str]:
        return list(await self.w3.eth.accounts)

    async def request_accounts(self) -> List[str]:
        response = await self.w3.provider.make_request("eth_requestAccounts", [])
        error = response.get('error')
        if error:
            if error.get('code') == USER_REJECTED_RPC_CODE or is_user_rejection(error):
                raise UserRejectedError("Wallet connection rejected by user.")
            if error.get('code') != METHOD_NOT_FOUND_RPC_CODE:
                raise ProviderMissingError(f"Failed to connect wallet: {error.get('message')}")
            # Plain nodes expose their accounts without a connection prompt
            return await self.get_accounts()
        return list(response.get('result') or [])

    def subscribe(self, listener: AccountsListener) -> Callable[[], None]:
        remove = self._listeners.add(listener)
        if self._poll_task is None:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll())

        def unsubscribe():
            remove()
            if not len(self._listeners):
                self._stop_polling()

        return unsubscribe

    async def send_transaction(self, w3, transaction: dict) -> str:
        try:
            tx_hash = await w3.eth.send_transaction(transaction)
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejectedError() from e
            raise
        return Web3.to_hex(tx_hash)

    async def aclose(self) -> None:
        """Stop polling and wait for the poll task to finish."""
        self._stop_polling()
        stopped, self._stopped_tasks = self._stopped_tasks, []
        for task in stopped:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _stop_polling(self):
        self._stopped_tasks = [task for task in self._stopped_tasks if not task.done()]
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._stopped_tasks.append(self._poll_task)
            self._poll_task = None
        self._last_accounts = None

    async def _poll(self):
        while True:
            try:
                accounts = await self.get_accounts()
                if accounts != self._last_accounts:
                    self._listeners.notify(accounts)
                self._last_accounts = accounts
            except Exception as e:
                logger.warning("[Wallet] Error polling accounts: %s", e)
            await asyncio.sleep(self.poll_interval)


class WalletSessionManager:
    """Owns the wallet session and publishes a new snapshot on every change.

    Use as an async context manager: the provider subscription is taken on
    enter and released on exit, whatever the exit path.
    """

    def __init__(self, provider=None):
        self._provider = provider
        self._session = WalletSession()
        self._listeners = ListenerSet()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def provider(self):
        return self._provider

    @property
    def current(self) -> WalletSession:
        return self._session

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()
        aclose = getattr(self._provider, "aclose", None)
        if aclose is not None:
            await aclose()

    async def open(self) -> WalletSession:
        if self._provider is not None and self._unsubscribe is None:
            self._unsubscribe = self._provider.subscribe(self._on_accounts_changed)

        account = await self.get_current_account()
        if account is not None and account != self._session.account:
            logger.info("[Wallet] Found existing session for %s", account)
            self._publish(WalletSession(account=account))
        return self._session

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        return self._listeners.add(listener)

    async def get_current_account(self) -> Optional[str]:
        """Read the provider's existing session without prompting."""
        if self._provider is None:
            return None
        try:
            accounts = await self._provider.get_accounts()
        except Exception as e:
            logger.warning("[Wallet] Could not read connected accounts: %s", e)
            return None
        return accounts[0] if accounts else None

    async def request_connection(self) -> str:
        if self._provider is None:
            raise ProviderMissingError()

        try:
            accounts = await self._provider.request_accounts()
        except SubmissionError:
            raise
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejectedError("Wallet connection rejected by user.") from e
            raise ProviderMissingError(f"Failed to connect wallet: {e}") from e

        if not accounts:
            raise UserRejectedError("Wallet connection rejected by user.")

        account = accounts[0]
        if account != self._session.account:
            logger.info("[Wallet] Connected %s", account)
            self._publish(WalletSession(account=account))
        return account

    def set_chain_binding(self, valid: bool) -> None:
        if self._session.account is None or self._session.chain_binding_valid == valid:
            return
        self._publish(replace(self._session, chain_binding_valid=valid))

    def _on_accounts_changed(self, accounts: List[str]) -> None:
        account = accounts[0] if accounts else None
        if account == self._session.account:
            return
        if account is None:
            logger.info("[Wallet] Provider reports no accounts, session cleared")
        else:
            logger.info("[Wallet] Account changed to %s", account)
        self._publish(WalletSession(account=account))

    def _publish(self, session: WalletSession) -> None:
        self._session = session
        self._listeners.notify(session)
