from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    EMPTY_INPUT = "EmptyInput"
    WALLET_NOT_CONNECTED = "WalletNotConnected"
    PROVIDER_MISSING = "ProviderMissing"
    USER_REJECTED = "UserRejected"
    WRONG_NETWORK = "WrongNetwork"
    CONTRACT_INIT_FAILED = "ContractInitFailed"
    BACKEND_ERROR = "BackendError"
    NETWORK_ERROR = "NetworkError"
    TRANSACTION_SUBMISSION_FAILED = "TransactionSubmissionFailed"
    TRANSACTION_FAILED = "TransactionFailed"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeout"


class SubmissionError(Exception):
    """Base class for every failure the submission workflow can surface"""

    kind: ErrorKind = ErrorKind.TRANSACTION_SUBMISSION_FAILED
    default_message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyInputError(SubmissionError):
    kind = ErrorKind.EMPTY_INPUT
    default_message = "Please enter a contract address."


class WalletNotConnectedError(SubmissionError):
    kind = ErrorKind.WALLET_NOT_CONNECTED
    default_message = "Please connect your wallet first."


class ProviderMissingError(SubmissionError):
    kind = ErrorKind.PROVIDER_MISSING
    default_message = "No wallet provider configured. Set PRIVATE_KEY or WALLET_MODE=node."


class UserRejectedError(SubmissionError):
    kind = ErrorKind.USER_REJECTED
    default_message = "Transaction rejected by user."


class WrongNetworkError(SubmissionError):
    kind = ErrorKind.WRONG_NETWORK
    default_message = (
        "Failed to initialize smart contract. "
        "Make sure you are on the correct BlockDAG testnet."
    )


class ContractInitError(SubmissionError):
    kind = ErrorKind.CONTRACT_INIT_FAILED
    default_message = "Failed to initialize smart contract."


class BackendError(SubmissionError):
    kind = ErrorKind.BACKEND_ERROR
    default_message = "Failed to get analysis from the backend."

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message)


class NetworkError(SubmissionError):
    kind = ErrorKind.NETWORK_ERROR
    default_message = "Could not reach the analysis service."


class TransactionSubmissionError(SubmissionError):
    kind = ErrorKind.TRANSACTION_SUBMISSION_FAILED
    default_message = "Failed to submit the transaction."


class TransactionFailedError(SubmissionError):
    kind = ErrorKind.TRANSACTION_FAILED
    default_message = "Transaction reverted on-chain."

    def __init__(self, tx_hash: str, message: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class ConfirmationTimeoutError(SubmissionError):
    kind = ErrorKind.CONFIRMATION_TIMEOUT

    def __init__(self, tx_hash: str, message: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(
            message
            or f"Transaction submitted ({tx_hash}) but could not confirm. "
            "Please check the transaction on the explorer."
        )
