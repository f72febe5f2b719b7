# utils/blockchain.py
import json
from decimal import Decimal

from web3 import Web3

# Minimal ABI of the analysis registry: fee getter and the paid write
ANALYSIS_CONTRACT_ABI = [
    {
        "inputs": [],
        "name": "analysisFee",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "string", "name": "contractAddress", "type": "string"},
            {"internalType": "uint256", "name": "score", "type": "uint256"},
            {"internalType": "string", "name": "status", "type": "string"}
        ],
        "name": "storeResultAndPay",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    }
]

# EIP-1193 / EIP-1474 "user rejected request"
USER_REJECTED_RPC_CODE = 4001


def load_abi(abi_path=None):
    """Load contract ABI from a JSON file, falling back to the embedded one"""
    if not abi_path:
        return ANALYSIS_CONTRACT_ABI

    with open(abi_path) as f:
        contract_json = json.load(f)

    # Accept both a compiler artifact and a bare ABI list
    if isinstance(contract_json, dict):
        return contract_json['abi']
    return contract_json


def format_ether(amount_wei: int) -> str:
    """Render a wei amount as a plain decimal string, e.g. 10**16 -> '0.01'"""
    value = Web3.from_wei(amount_wei, 'ether')
    text = format(Decimal(value), 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text or '0'


def extract_revert_reason(error):
    """Extract human-readable revert reason from a web3 ContractLogicError."""
    msg = getattr(error, 'message', None)
    if not isinstance(msg, str):
        msg = str(error)
    # web3.py returns 'execution reverted: <reason>'
    if 'execution reverted:' in msg:
        return msg.split('execution reverted:')[-1].strip().strip("'\"")
    return msg


def rpc_error_code(error):
    """Return the JSON-RPC error code carried by a web3 exception, if any"""
    rpc_response = getattr(error, 'rpc_response', None)
    if isinstance(rpc_response, dict):
        rpc_error = rpc_response.get('error') or {}
        if isinstance(rpc_error, dict):
            return rpc_error.get('code')

    for arg in getattr(error, 'args', ()):
        if isinstance(arg, dict) and 'code' in arg:
            return arg['code']
    return None


def is_user_rejection(error):
    if rpc_error_code(error) == USER_REJECTED_RPC_CODE:
        return True
    msg = str(error).lower()
    return 'user rejected' in msg or 'user denied' in msg


def to_hex_hash(tx_hash):
    """Normalize a transaction hash (HexBytes or str) to a 0x-prefixed string"""
    if isinstance(tx_hash, str):
        return tx_hash if tx_hash.startswith('0x') else f'0x{tx_hash}'
    return Web3.to_hex(tx_hash)
