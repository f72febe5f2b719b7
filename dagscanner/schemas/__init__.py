from dagscanner.schemas.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    ErrorResponse,
    HealthResponse,
)
from dagscanner.schemas.submission import (
    Failed,
    FeeQuote,
    Pending,
    SubmissionOutcome,
    Succeeded,
    TransactionHandle,
    WalletSession,
    WorkflowState,
)

__all__ = [
    "AnalysisResult",
    "AnalyzeRequest",
    "ErrorResponse",
    "Failed",
    "FeeQuote",
    "HealthResponse",
    "Pending",
    "SubmissionOutcome",
    "Succeeded",
    "TransactionHandle",
    "WalletSession",
    "WorkflowState",
]
