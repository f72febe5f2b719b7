from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

# Request Models
class AnalyzeRequest(BaseModel):
    address: Optional[str] = None

# Response Models
class AnalysisResult(BaseModel):
    """Scoring backend verdict; written on-chain exactly as received"""
    model_config = ConfigDict(frozen=True)

    address: str
    score: int = Field(ge=0, le=100)
    status: str

class ErrorResponse(BaseModel):
    error: str

class HealthResponse(BaseModel):
    status: str
    backend_configured: bool
