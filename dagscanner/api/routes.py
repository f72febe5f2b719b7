import logging

import requests
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dagscanner.utils.config import Config
from dagscanner.schemas.schemas import AnalyzeRequest, ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# Shared connection pool to the scoring backend
session = requests.Session()
session.headers["Content-Type"] = "application/json"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)

# ============================================================================
# HEALTH
# ============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "backend_configured": bool(Config.BACKEND_API_URL),
    }

# ============================================================================
# ANALYSIS PROXY
# ============================================================================

@router.post(
    "/analyze",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def analyze(request: AnalyzeRequest):
    """
    Forward an analysis request to the scoring backend.
    Status code and body are passed back unchanged; backend failures are
    reduced to {"error": ...}.
    """
    address = request.address
    logger.info("[Proxy] Received address: %s", address)

    if not address:
        return _error("Address is required", 400)

    backend_url = Config.BACKEND_API_URL
    if not backend_url:
        logger.error("[Proxy] BACKEND_API_URL environment variable not set.")
        return _error("Server configuration error.", 500)

    try:
        backend_response = session.post(
            backend_url, json={"address": address}, timeout=Config.REQUEST_TIMEOUT
        )
    except requests.exceptions.RequestException as e:
        logger.error("[Proxy] Backend request failed: %s", e)
        return _error("Internal Server Error", 500)

    logger.info("[Proxy] Backend response status: %s", backend_response.status_code)

    if not backend_response.ok:
        try:
            error_data = backend_response.json()
        except ValueError:
            error_data = {"error": "Backend error"}
        message = error_data.get("error") if isinstance(error_data, dict) else None
        logger.warning("[Proxy] Backend error: %s", message)
        return _error(message or "Backend API error", backend_response.status_code)

    try:
        data = backend_response.json()
    except ValueError:
        logger.error("[Proxy] Backend returned a non-JSON body")
        return _error("Internal Server Error", 500)

    return JSONResponse(data, status_code=backend_response.status_code)
