from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Gateway health summary; never includes the source URLs"""
    status: str = Field("ok", description="Status indicator")
    allowed_domains: int = Field(..., description="Number of hosts currently allowed for proxying")
    playlist_configured: bool = Field(..., description="Whether an operator playlist source is set")
    epg_configured: bool = Field(..., description="Whether an operator guide source is set")


class ErrorResponse(BaseModel):
    """Error body returned by the gateway endpoints"""
    detail: str = Field(..., description="Human-readable error message")
