"""Pydantic schemas for the metadata preview and tagging preview endpoints."""
from pydantic import BaseModel, ConfigDict, Field


class MetadataRequest(BaseModel):
    """Schema for requesting a metadata preview."""

    url: str = Field(..., min_length=1, max_length=2048)


class MetadataResponse(BaseModel):
    """Metadata extracted for a URL."""

    model_config = ConfigDict(from_attributes=True)

    title: str | None
    description: str | None
    image: str | None
    url: str
    site_name: str | None
    platform: str
    platform_display_name: str
    platform_icon: str
    creator_name: str | None
    creator_url: str | None
    normalized_url: str


class TaggingRequest(BaseModel):
    """Schema for requesting a tagging preview."""

    title: str | None = None
    description: str | None = None
    platform: str = Field(default="Web", max_length=64)
    creator_name: str | None = None
    url: str = ""
    content_type: str = "content"


class GeneratedTagResponse(BaseModel):
    """A generated tag with its confidence."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    confidence: float
    category: str | None = None


class TaggingResultResponse(BaseModel):
    """One provider attempt."""

    model_config = ConfigDict(from_attributes=True)

    provider: str
    tags: list[GeneratedTagResponse]
    success: bool
    processing_time_ms: int
    error: str | None = None


class TagAnalysisResponse(BaseModel):
    """Final tags and every provider attempt that produced them."""

    model_config = ConfigDict(from_attributes=True)

    tags: list[GeneratedTagResponse]
    sources: list[TaggingResultResponse]
    strategy: str
    total_processing_time_ms: int
