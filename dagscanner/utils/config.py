import os
from dotenv import load_dotenv

load_dotenv()


def _float_env(name, default):
    value = os.getenv(name)
    return float(value) if value else default


def _int_env(name, default=None):
    value = os.getenv(name)
    return int(value) if value else default


class Config:
    # Analysis proxy -> scoring backend. No fallback: the proxy fails closed.
    BACKEND_API_URL = os.getenv('BACKEND_API_URL')

    # Client -> analysis proxy
    ANALYZE_API_URL = os.getenv(
        'ANALYZE_API_URL',
        'http://localhost:8000/api/analyze'
    )
    REQUEST_TIMEOUT = _float_env('REQUEST_TIMEOUT', 30.0)

    # Network
    RPC_URL = os.getenv('RPC_URL')
    EXPECTED_CHAIN_ID = _int_env('EXPECTED_CHAIN_ID')

    # Analysis contract
    CONTRACT_ADDRESS = os.getenv('CONTRACT_ADDRESS')
    CONTRACT_ABI_PATH = os.getenv('CONTRACT_ABI_PATH')
    CONFIRMATION_TIMEOUT = _float_env('CONFIRMATION_TIMEOUT', 120.0)

    # Wallet: "local" signs with PRIVATE_KEY, "node" uses node-managed accounts
    WALLET_MODE = os.getenv('WALLET_MODE', 'local')
    PRIVATE_KEY = os.getenv('PRIVATE_KEY')
    ACCOUNT_POLL_INTERVAL = _float_env('ACCOUNT_POLL_INTERVAL', 2.0)

    EXPLORER_TX_URL = os.getenv(
        'EXPLORER_TX_URL',
        'https://primordial.bdagscan.com/tx/'
    )

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def missing(cls, required):
        return [key for key in required if not getattr(cls, key)]

    @classmethod
    def validate(cls):
        """Validate config required by the analysis proxy"""
        missing = cls.missing(['BACKEND_API_URL'])

        if missing:
            raise ValueError(f"Missing required config: {', '.join(missing)}")

    @classmethod
    def validate_client(cls):
        """Validate config required by the submission client"""
        required = [
            'ANALYZE_API_URL',
            'RPC_URL',
            'CONTRACT_ADDRESS',
        ]
        if cls.WALLET_MODE == 'local':
            required.append('PRIVATE_KEY')
        elif cls.WALLET_MODE != 'node':
            raise ValueError(f"Unknown WALLET_MODE: {cls.WALLET_MODE}")

        missing = cls.missing(required)

        if missing:
            raise ValueError(f"Missing required config: {', '.join(missing)}")

    @classmethod
    def explorer_link(cls, tx_hash):
        if not cls.EXPLORER_TX_URL:
            return None
        return f"{cls.EXPLORER_TX_URL.rstrip('/')}/{tx_hash}"
