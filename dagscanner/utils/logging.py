"""
Logging setup shared by the analysis proxy and the submission client.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the project-wide format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # web3 and httpx are chatty at INFO
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
