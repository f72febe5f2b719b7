"""
State shapes shared by the wallet session manager, the contract client and
the submission workflow.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from dagscanner.errors import ErrorKind, SubmissionError
from dagscanner.schemas.schemas import AnalysisResult


@dataclass(frozen=True)
class WalletSession:
    account: Optional[str] = None
    chain_binding_valid: bool = False

    @property
    def connected(self) -> bool:
        return self.account is not None


@dataclass(frozen=True)
class FeeQuote:
    amount_wei: int
    as_decimal: str


@dataclass(frozen=True)
class TransactionHandle:
    tx_hash: str
    account: str


class WorkflowState(str, Enum):
    IDLE = "Idle"
    VALIDATING = "Validating"
    AWAITING_SCORE = "AwaitingScore"
    AWAITING_WALLET_SIGNATURE = "AwaitingWalletSignature"
    AWAITING_CONFIRMATION = "AwaitingConfirmation"
    SETTLED = "Settled"


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Succeeded:
    result: AnalysisResult
    tx_reference: str


@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None
    # Score obtained before the on-chain step failed ("scored, not recorded")
    result: Optional[AnalysisResult] = None
    # Sent but unconfirmed or reverted transaction
    tx_hash: Optional[str] = None

    @classmethod
    def from_error(cls, error: SubmissionError, result: Optional[AnalysisResult] = None):
        return cls(
            kind=error.kind,
            message=error.message,
            status_code=getattr(error, "status_code", None),
            result=result,
            tx_hash=getattr(error, "tx_hash", None),
        )

    @property
    def scored(self) -> bool:
        return self.result is not None


SubmissionOutcome = Union[Pending, Succeeded, Failed]
