"""Metadata and tagging preview endpoints (nothing is saved)."""
from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user
from models.user import User
from schemas.common import ApiResponse
from schemas.metadata import (
    MetadataRequest,
    MetadataResponse,
    TagAnalysisResponse,
    TaggingRequest,
)
from services.metadata_extractor import extract_metadata
from services.tag_generator import TaggingInput, generate_tags

router = APIRouter(tags=["preview"])


@router.post("/og", response_model=ApiResponse[MetadataResponse])
async def preview_metadata(
    data: MetadataRequest,
    current_user: User = Depends(get_current_user),  # noqa: ARG001
) -> ApiResponse[MetadataResponse]:
    """Extract metadata for a URL without saving it."""
    metadata = await extract_metadata(data.url)
    if metadata is None:
        raise HTTPException(status_code=400, detail="Invalid URL")
    return ApiResponse(data=MetadataResponse.model_validate(metadata))


@router.post("/tagging", response_model=ApiResponse[TagAnalysisResponse])
async def preview_tags(
    data: TaggingRequest,
    current_user: User = Depends(get_current_user),  # noqa: ARG001
) -> ApiResponse[TagAnalysisResponse]:
    """Generate tags for the given metadata without saving anything."""
    analysis = await generate_tags(TaggingInput(
        title=data.title,
        description=data.description,
        platform=data.platform,
        creator_name=data.creator_name,
        url=data.url,
        content_type=data.content_type,
    ))
    return ApiResponse(data=TagAnalysisResponse.model_validate(analysis))
