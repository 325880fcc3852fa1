"""
The save pipeline: raw URL in, persisted and tagged content out.

Stages run in a fixed order and the first failure ends the run:

    validation -> user_resolution -> metadata -> tagging -> persistence

Nothing here raises. Every failure comes back as a SaveContentResult with the
stage it happened in and a stable error code, which callers (the HTTP API and
the Telegram bot) map to status codes and reply messages.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.content import Content
from services import content_service
from services.metadata_extractor import ExtractedMetadata, extract_metadata
from services.tag_generator import GeneratedTag, TaggingInput, generate_tags
from services.url_normalizer import is_valid_url

logger = logging.getLogger(__name__)


class SaveStep(StrEnum):
    """Pipeline stage a result refers to."""

    VALIDATION = "validation"
    USER_RESOLUTION = "user_resolution"
    METADATA = "metadata"
    TAGGING = "tagging"
    PERSISTENCE = "persistence"
    DONE = "done"


class SaveErrorCode(StrEnum):
    """Stable failure codes."""

    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    METADATA_FAILURE = "metadata_failure"
    PERSISTENCE_FAILURE = "persistence_failure"


ERROR_INVALID_URL = "Invalid URL"
ERROR_USER_RESOLUTION = "Failed to resolve user"
ERROR_METADATA = "Failed to extract metadata"
ERROR_DUPLICATE = "Content already saved"
ERROR_PERSISTENCE = "Failed to save content"


@dataclass
class SaveContentResult:
    """Outcome of one run of the pipeline."""

    success: bool
    content: Content | None = None
    metadata: ExtractedMetadata | None = None
    tags: list[GeneratedTag] = field(default_factory=list)
    error: str | None = None
    step: SaveStep = SaveStep.DONE
    code: SaveErrorCode | None = None


def _failure(
    step: SaveStep,
    code: SaveErrorCode,
    error: str,
    metadata: ExtractedMetadata | None = None,
    tags: list[GeneratedTag] | None = None,
) -> SaveContentResult:
    return SaveContentResult(
        success=False,
        metadata=metadata,
        tags=tags or [],
        error=error,
        step=step,
        code=code,
    )


async def save_content_flow(
    db: AsyncSession,
    url: str | None,
    user_id: UUID | None = None,
    telegram_id: str | None = None,
    telegram_username: str | None = None,
    memo: str | None = None,
) -> SaveContentResult:
    """
    Run the save pipeline for one URL.

    The user is either given directly (`user_id`) or resolved, and created on
    first contact, from a Telegram id. Metadata extraction falls back to a
    URL-only record, and tagging failures only mean fewer tags; neither a slow
    page nor a tagging outage blocks the save.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    if not url or not is_valid_url(url):
        return _failure(SaveStep.VALIDATION, SaveErrorCode.VALIDATION, ERROR_INVALID_URL)

    resolved_user_id = user_id
    if resolved_user_id is None:
        if not telegram_id:
            return _failure(
                SaveStep.USER_RESOLUTION, SaveErrorCode.VALIDATION, ERROR_USER_RESOLUTION,
            )
        try:
            user = await content_service.get_or_create_telegram_user(
                db, telegram_id, telegram_username,
            )
        except SQLAlchemyError:
            logger.exception("Failed to resolve Telegram user %s", telegram_id)
            return _failure(
                SaveStep.USER_RESOLUTION, SaveErrorCode.VALIDATION, ERROR_USER_RESOLUTION,
            )
        resolved_user_id = user.id

    try:
        metadata = await extract_metadata(url)
    except Exception:
        logger.exception("Metadata extraction raised for %s", url)
        metadata = None
    if metadata is None:
        return _failure(SaveStep.METADATA, SaveErrorCode.METADATA_FAILURE, ERROR_METADATA)

    tags: list[GeneratedTag] = []
    try:
        analysis = await generate_tags(TaggingInput(
            title=metadata.title,
            description=metadata.description,
            platform=metadata.platform_display_name,
            creator_name=metadata.creator_name,
            url=metadata.normalized_url,
        ))
        tags = analysis.tags
    except Exception:
        logger.exception("Tag generation raised for %s, saving without tags", url)

    # Savepoint so a failed save leaves the session usable for the caller
    try:
        async with db.begin_nested():
            content = await content_service.create_content(
                db,
                resolved_user_id,
                metadata,
                tag_names=[tag.name for tag in tags],
                memo=memo,
            )
    except content_service.DuplicateContentError:
        logger.info("Duplicate save of %s for user %s", metadata.normalized_url, resolved_user_id)
        return _failure(
            SaveStep.PERSISTENCE, SaveErrorCode.DUPLICATE, ERROR_DUPLICATE, metadata, tags,
        )
    except (SQLAlchemyError, content_service.InvalidPlatformError):
        logger.exception("Failed to persist %s for user %s", metadata.normalized_url, resolved_user_id)
        return _failure(
            SaveStep.PERSISTENCE,
            SaveErrorCode.PERSISTENCE_FAILURE,
            ERROR_PERSISTENCE,
            metadata,
            tags,
        )

    logger.info(
        "Saved %s for user %s (platform=%s, tags=%d)",
        content.url,
        resolved_user_id,
        metadata.platform,
        len(tags),
    )
    return SaveContentResult(success=True, content=content, metadata=metadata, tags=tags)


async def save_from_telegram(
    db: AsyncSession,
    url: str,
    telegram_id: str,
    username: str | None = None,
) -> SaveContentResult:
    """Save a URL sent to the bot on behalf of the Telegram user who sent it."""
    return await save_content_flow(
        db, url, telegram_id=telegram_id, telegram_username=username,
    )


TELEGRAM_FAILURE_MESSAGES = {
    SaveStep.VALIDATION: "❌ That doesn't look like a valid URL.",
    SaveStep.USER_RESOLUTION: "❌ Couldn't identify your account. Please try again.",
    SaveStep.METADATA: "❌ Couldn't fetch information about that content.",
    SaveStep.PERSISTENCE: "❌ Something went wrong while saving.",
}
TELEGRAM_DUPLICATE_MESSAGE = "⚠️ You've already saved this one!"
TELEGRAM_UNTITLED = "Untitled"
MAX_REPLY_TAGS = 5


def format_telegram_response(result: SaveContentResult) -> str:
    """Render the bot's reply for a save result."""
    if not result.success:
        if result.code == SaveErrorCode.DUPLICATE:
            return TELEGRAM_DUPLICATE_MESSAGE
        return TELEGRAM_FAILURE_MESSAGES.get(result.step, f"❌ {result.error}")

    content, metadata = result.content, result.metadata
    title = (content.title if content else None) or (metadata.title if metadata else None)
    title = title or TELEGRAM_UNTITLED

    if content is not None and content.platform is not None:
        platform_line = f"{content.platform.icon or ''} {content.platform.display_name}".strip()
    elif metadata is not None:
        platform_line = f"{metadata.platform_icon} {metadata.platform_display_name}"
    else:
        platform_line = ""

    creator = (content.creator_name if content else None) or (
        metadata.creator_name if metadata else None
    )

    lines = ["✅ Saved!", "", f"📌 {title}", platform_line]
    if creator:
        lines.append(f"👤 {creator}")
    if result.tags:
        hashtags = " ".join(
            "#" + re.sub(r"\s+", "_", tag.name) for tag in result.tags[:MAX_REPLY_TAGS]
        )
        lines.append(f"🏷️ {hashtags}")
    lines.extend(["", "Open moah to see it."])
    return "\n".join(lines)
