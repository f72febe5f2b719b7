#!/usr/bin/env python3
"""
DAGScanner terminal client.

Usage:
  dagscanner serve [--host HOST] [--port PORT]   run the analysis proxy
  dagscanner account                             show the connected wallet
  dagscanner fee                                 show the current analysis fee
  dagscanner analyze ADDRESS [--yes]             score ADDRESS and record it on-chain

Env: ANALYZE_API_URL, RPC_URL, CONTRACT_ADDRESS, PRIVATE_KEY or WALLET_MODE=node,
     EXPECTED_CHAIN_ID, CONFIRMATION_TIMEOUT, EXPLORER_TX_URL (see .env.example).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from web3 import AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from dagscanner.agents.submission_workflow import SubmissionWorkflow
from dagscanner.errors import SubmissionError
from dagscanner.schemas.submission import Failed, Succeeded, WorkflowState
from dagscanner.services.analysis_client import AnalysisRequestClient
from dagscanner.services.contract_service import FeeQuotingContractClient
from dagscanner.services.wallet_session import (
    LocalAccountProvider,
    NodeAccountProvider,
    WalletSessionManager,
)
from dagscanner.utils.blockchain import load_abi
from dagscanner.utils.config import Config
from dagscanner.utils.logging import configure_logging

logger = logging.getLogger(__name__)

STATE_LABELS = {
    WorkflowState.AWAITING_SCORE: "Requesting analysis...",
    WorkflowState.AWAITING_WALLET_SIGNATURE: "Waiting for wallet signature...",
    WorkflowState.AWAITING_CONFIRMATION: "Waiting for confirmation...",
}


def build_web3() -> AsyncWeb3:
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(Config.RPC_URL))
    # BlockDAG and other PoA-style chains put extra data in block headers
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


async def _confirm(prompt: str) -> bool:
    answer = await asyncio.to_thread(input, f"{prompt} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def build_provider(w3: AsyncWeb3, assume_yes: bool = False):
    if Config.WALLET_MODE == "node":
        return NodeAccountProvider(w3, poll_interval=Config.ACCOUNT_POLL_INTERVAL)
    if not Config.PRIVATE_KEY:
        return None
    return LocalAccountProvider(Config.PRIVATE_KEY, approve=None if assume_yes else _confirm)


def build_contract_client(w3: AsyncWeb3, provider) -> FeeQuotingContractClient:
    return FeeQuotingContractClient(
        w3,
        Config.CONTRACT_ADDRESS,
        provider,
        abi=load_abi(Config.CONTRACT_ABI_PATH),
        expected_chain_id=Config.EXPECTED_CHAIN_ID,
    )


def render_state(state: WorkflowState, outcome) -> None:
    label = STATE_LABELS.get(state)
    if label:
        print(label)


def render_outcome(outcome) -> None:
    result = getattr(outcome, "result", None)
    if result is not None:
        print(f"\n{'='*60}")
        print("ANALYSIS RESULT")
        print(f"{'='*60}")
        print(f"Contract Address: {result.address}")
        print(f"Trust Score:      {result.score}/100")
        print(f"Security Status:  {result.status}")

    if isinstance(outcome, Succeeded):
        print(f"Transaction:      {outcome.tx_reference}")
        link = Config.explorer_link(outcome.tx_reference)
        if link:
            print(f"Explorer:         {link}")
        print(f"{'='*60}\n")
        return

    if isinstance(outcome, Failed):
        if outcome.scored:
            print("Result was NOT recorded on-chain.")
        if outcome.tx_hash:
            print(f"Transaction:      {outcome.tx_hash}")
            link = Config.explorer_link(outcome.tx_hash)
            if link:
                print(f"Explorer:         {link}")
        print(f"\nError: {outcome.message}")


async def _ensure_connected(workflow: SubmissionWorkflow) -> None:
    if workflow.sessions.current.connected:
        await workflow.refresh_fee()
    else:
        await workflow.connect_wallet()


async def run_account() -> int:
    w3 = build_web3()
    async with WalletSessionManager(build_provider(w3)) as sessions:
        account = sessions.current.account
    if account is None:
        print("No wallet connected.")
        return 1
    print(f"Connected: {account}")
    return 0


async def run_fee(assume_yes: bool = False) -> int:
    w3 = build_web3()
    provider = build_provider(w3, assume_yes)
    contract_client = build_contract_client(w3, provider)

    async with AnalysisRequestClient(Config.ANALYZE_API_URL, timeout=Config.REQUEST_TIMEOUT) as analysis, \
            WalletSessionManager(provider) as sessions, \
            SubmissionWorkflow(sessions, contract_client, analysis) as workflow:
        try:
            await _ensure_connected(workflow)
        except SubmissionError as e:
            print(f"Error: {e.message}")
            return 1
        print(f"Analysis fee: {contract_client.fee.as_decimal} BDAG")
    return 0


async def run_analyze(address: str, assume_yes: bool = False) -> int:
    w3 = build_web3()
    provider = build_provider(w3, assume_yes)
    contract_client = build_contract_client(w3, provider)

    async with AnalysisRequestClient(Config.ANALYZE_API_URL, timeout=Config.REQUEST_TIMEOUT) as analysis, \
            WalletSessionManager(provider) as sessions, \
            SubmissionWorkflow(
                sessions,
                contract_client,
                analysis,
                confirmation_timeout=Config.CONFIRMATION_TIMEOUT,
            ) as workflow:
        workflow.subscribe(render_state)

        try:
            await _ensure_connected(workflow)
        except SubmissionError as e:
            print(f"Error: {e.message}")
            return 1

        print(f"Connected: {workflow.sessions.current.account}")
        print(f"Analyze & Record on BlockDAG ({contract_client.fee.as_decimal} BDAG)")

        outcome = await workflow.submit(address)

    render_outcome(outcome)
    return 0 if isinstance(outcome, Succeeded) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dagscanner",
        description="Analyze a contract address and record the verdict on-chain.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the analysis proxy API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("account", help="show the connected wallet account")

    fee = sub.add_parser("fee", help="show the current analysis fee")
    fee.add_argument("--yes", "-y", action="store_true", help="approve wallet connection without prompting")

    analyze = sub.add_parser("analyze", help="analyze ADDRESS and record the result on-chain")
    analyze.add_argument("address", help="contract address to analyze")
    analyze.add_argument("--yes", "-y", action="store_true", help="approve wallet prompts without asking")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(Config.LOG_LEVEL)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("dagscanner.main:app", host=args.host, port=args.port)
        return 0

    try:
        Config.validate_client()
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    if args.command == "account":
        return asyncio.run(run_account())
    if args.command == "fee":
        return asyncio.run(run_fee(args.yes))
    return asyncio.run(run_analyze(args.address, args.yes))


if __name__ == "__main__":
    sys.exit(main())
