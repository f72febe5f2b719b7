import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dagscanner.api import routes
from dagscanner.schemas.schemas import ErrorResponse
from dagscanner.utils.config import Config
from dagscanner.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""

    configure_logging(Config.LOG_LEVEL)
    logger.info("DAGScanner analysis proxy starting...")

    # The proxy still starts without a backend; every request then fails closed
    try:
        Config.validate()
        logger.info("Backend URL: %s", Config.BACKEND_API_URL)
    except ValueError as e:
        logger.warning("%s; /api/analyze will answer 500 until it is set", e)

    yield

    logger.info("Shutting down...")

# Create FastAPI app
app = FastAPI(
    title="DAGScanner Analysis API",
    description="Proxy between the submission client and the contract scoring backend",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(routes.router, prefix="/api", tags=["analysis"])


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Unparseable request bodies get the same {"error": ...} shape as every other failure."""
    logger.warning("[Proxy] Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Internal Server Error").model_dump(),
    )


@app.get("/")
async def root():
    return {
        "message": "DAGScanner Analysis API",
        "docs": "/docs",
        "health": "/api/health"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
