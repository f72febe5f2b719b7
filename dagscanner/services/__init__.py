from dagscanner.services.analysis_client import AnalysisRequestClient
from dagscanner.services.contract_service import FeeQuotingContractClient
from dagscanner.services.wallet_session import (
    LocalAccountProvider,
    NodeAccountProvider,
    WalletSessionManager,
)

__all__ = [
    "AnalysisRequestClient",
    "FeeQuotingContractClient",
    "LocalAccountProvider",
    "NodeAccountProvider",
    "WalletSessionManager",
]
