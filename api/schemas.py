"""
Pydantic schemas for API request/response contracts.

Wire format uses camelCase keys; Python code uses snake_case attributes
mapped through aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

LLMProvider = Literal["gpt", "claude"]
AnalysisStatus = Literal["pending", "processing", "completed", "failed"]


def _to_string_or_empty(value: Any) -> str:
    return "" if value is None else str(value)


class AnalysisMetrics(BaseModel):
    """Funnel metrics supplied by the caller; every value is kept as a string."""

    model_config = ConfigDict(populate_by_name=True)

    visitors: str = ""
    add_to_carts: str = Field("", alias="addToCarts")
    purchases: str = ""
    aov: str = ""

    @field_validator("visitors", "add_to_carts", "purchases", "aov", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return _to_string_or_empty(v)


class AnalysisContext(BaseModel):
    """Page context supplied by the caller."""

    model_config = ConfigDict(populate_by_name=True)

    traffic_source: str = Field("mixed", alias="trafficSource")
    product_type: str = Field("", alias="productType")
    price_point: str = Field("", alias="pricePoint")

    @field_validator("traffic_source", "product_type", "price_point", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        return _to_string_or_empty(v)


# Request schemas
class CreateAnalysisRequest(BaseModel):
    """Request schema for POST /analyses."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="Page URL to analyze (http or https)")
    user_id: str = Field(..., alias="userId", min_length=1)
    metrics: AnalysisMetrics = Field(default_factory=AnalysisMetrics)
    context: AnalysisContext = Field(default_factory=AnalysisContext)
    llm: LLMProvider = "gpt"

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("metrics", "context", mode="before")
    @classmethod
    def default_when_null(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("llm", mode="before")
    @classmethod
    def normalize_llm(cls, v: Any) -> str:
        """Anything other than "claude" runs on gpt."""
        return "claude" if v == "claude" else "gpt"


class ScreenshotRequest(BaseModel):
    """Request schema for POST /screenshots."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)
    block_patterns: list[str] = Field(default_factory=list, alias="blockPatterns")
    wait_for_network_idle: Optional[bool] = Field(None, alias="waitForNetworkIdle")

    @field_validator("block_patterns", mode="before")
    @classmethod
    def keep_string_patterns(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [p.strip() for p in v if isinstance(p, str) and p.strip()]


# Response schemas
class CreateAnalysisResponse(BaseModel):
    """Response schema for POST /analyses (202)."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId")
    analysis_id: UUID = Field(..., alias="analysisId")
    status: AnalysisStatus


class AnalysisRecordResponse(BaseModel):
    """Full analysis record returned once completed."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    url: str
    status: AnalysisStatus
    llm: LLMProvider
    metrics: dict
    context: dict
    summary: Optional[dict] = None
    recommendations: list = Field(default_factory=list)
    screenshots: Optional[dict] = None
    usage: Optional[dict] = None
    error_message: Optional[str] = Field(None, alias="errorMessage")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class AnalysisStatusResponse(BaseModel):
    """Response schema for GET /analyses/{analysis_id}."""

    status: AnalysisStatus
    progress: int = Field(0, ge=0, le=100)
    stage: Optional[str] = None
    message: str
    error: Optional[str] = None
    analysis: Optional[AnalysisRecordResponse] = None


class MobileScreenshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_page: str = Field(..., alias="fullPage")


class ScreenshotResponse(BaseModel):
    """Response schema for POST /screenshots."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    captured_at: datetime = Field(..., alias="capturedAt")
    mobile: MobileScreenshot
