"""
Metadata extraction for saved URLs.

Sources are tried in order and the first one that produces metadata wins:

1. Instagram oEmbed (Facebook Graph API) - Instagram URLs only, and only when a
   Facebook app credential pair is configured.
2. Open Graph / Twitter Card scraping of the page itself.

When every source comes back empty, a minimal fallback built from the URL alone
(platform display name, heuristic creator handle) is returned instead, so a valid
URL always yields something that can be saved.
"""
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from core.config import Settings, get_settings
from services.url_normalizer import (
    PLATFORM_INFO,
    Platform,
    build_creator_url,
    classify_url,
    extract_creator_from_url,
)
from services.url_scraper import DEFAULT_TIMEOUT, scrape_open_graph

logger = logging.getLogger(__name__)

INSTAGRAM_OEMBED_URL = 'https://graph.facebook.com/v18.0/instagram_oembed'


@dataclass
class ExtractedMetadata:
    """Metadata for one URL, consumed by tagging and persistence and then discarded."""

    title: str | None
    description: str | None
    image: str | None
    url: str
    site_name: str | None
    platform: Platform
    platform_display_name: str
    platform_icon: str
    creator_name: str | None
    creator_url: str | None
    normalized_url: str


class MetadataSource(Protocol):
    """One strategy in the extraction chain."""

    name: str

    async def attempt(self, url: str, platform: Platform) -> ExtractedMetadata | None:
        """Return metadata for a normalized URL, or None to defer to the next source."""
        ...


def _creator_fields(url: str, platform: Platform) -> tuple[str | None, str | None]:
    creator_name = extract_creator_from_url(url, platform)
    creator_url = build_creator_url(creator_name, platform) if creator_name else None
    return creator_name, creator_url


class InstagramOEmbedSource:
    """Instagram post metadata from the Graph API oEmbed endpoint."""

    name = 'instagram_oembed'

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        timeout: float = DEFAULT_TIMEOUT,
        endpoint: str = INSTAGRAM_OEMBED_URL,
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.timeout = timeout
        self.endpoint = endpoint

    @property
    def configured(self) -> bool:
        """True when both halves of the credential pair are present."""
        return bool(self.app_id and self.app_secret)

    async def attempt(self, url: str, platform: Platform) -> ExtractedMetadata | None:
        """Call the oEmbed API; any HTTP or decoding failure defers to the next source."""
        if platform != Platform.INSTAGRAM:
            return None
        if not self.configured:
            logger.warning("Facebook app credentials not configured, skipping Instagram oEmbed")
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.endpoint,
                    params={'url': url, 'access_token': f'{self.app_id}|{self.app_secret}'},
                    headers={'Accept': 'application/json'},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Instagram oEmbed API error %s for %s", e.response.status_code, url)
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Instagram oEmbed request failed for %s: %s", url, e)
            return None

        if not isinstance(data, dict):
            return None

        info = PLATFORM_INFO[Platform.INSTAGRAM]
        author = (data.get('author_name') or '').lstrip('@')
        if author:
            creator_name = f'@{author}'
            creator_url = build_creator_url(creator_name, Platform.INSTAGRAM)
        else:
            creator_name, creator_url = _creator_fields(url, Platform.INSTAGRAM)

        caption = data.get('title') or None
        if caption:
            title = caption
        elif creator_name:
            title = f"{creator_name}'s Instagram post"
        else:
            title = 'Instagram post'

        return ExtractedMetadata(
            title=title,
            description=caption,
            image=data.get('thumbnail_url') or None,
            url=url,
            site_name=data.get('provider_name') or info.display_name,
            platform=Platform.INSTAGRAM,
            platform_display_name=info.display_name,
            platform_icon=info.icon,
            creator_name=creator_name,
            creator_url=creator_url,
            normalized_url=url,
        )


class OpenGraphSource:
    """Generic Open Graph / Twitter Card scraping of the target page."""

    name = 'open_graph'

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    async def attempt(self, url: str, platform: Platform) -> ExtractedMetadata | None:
        """Scrape the page; a fetch error defers to the fallback."""
        og, error = await scrape_open_graph(url, timeout=self.timeout)
        if og is None:
            logger.warning("Open Graph scrape failed for %s: %s", url, error)
            return None

        info = PLATFORM_INFO[platform]
        creator_name, creator_url = _creator_fields(url, platform)
        return ExtractedMetadata(
            title=og.title,
            description=og.description,
            image=og.image,
            url=og.url or url,
            site_name=og.site_name or info.display_name,
            platform=platform,
            platform_display_name=info.display_name,
            platform_icon=info.icon,
            creator_name=creator_name,
            creator_url=creator_url,
            normalized_url=url,
        )


def build_fallback_metadata(url: str, platform: Platform) -> ExtractedMetadata:
    """Minimal metadata derived from the URL alone."""
    info = PLATFORM_INFO[platform]
    creator_name, creator_url = _creator_fields(url, platform)
    return ExtractedMetadata(
        title=None,
        description=None,
        image=None,
        url=url,
        site_name=info.display_name,
        platform=platform,
        platform_display_name=info.display_name,
        platform_icon=info.icon,
        creator_name=creator_name,
        creator_url=creator_url,
        normalized_url=url,
    )


class MetadataExtractor:
    """Runs the ordered source chain for a URL."""

    def __init__(self, sources: list[MetadataSource]) -> None:
        self.sources = sources

    @classmethod
    def from_settings(cls, settings: Settings) -> 'MetadataExtractor':
        """Default chain: Instagram oEmbed, then Open Graph scraping."""
        return cls([
            InstagramOEmbedSource(
                settings.facebook_app_id,
                settings.facebook_app_secret,
                timeout=settings.scrape_timeout,
            ),
            OpenGraphSource(timeout=settings.scrape_timeout),
        ])

    async def extract(self, url: str) -> ExtractedMetadata | None:
        """
        Extract metadata for a raw URL.

        Returns None only for an invalid URL. Source failures (including
        unexpected exceptions) are logged and skipped; if no source produces
        metadata, the URL-only fallback is returned.
        """
        classification = classify_url(url)
        if not classification.is_valid:
            return None

        normalized = classification.normalized_url
        platform = classification.platform
        for source in self.sources:
            try:
                metadata = await source.attempt(normalized, platform)
            except Exception:
                logger.exception("Metadata source %s raised for %s", source.name, normalized)
                continue
            if metadata is not None:
                logger.info("Metadata for %s extracted via %s", normalized, source.name)
                return metadata

        logger.warning("All metadata sources failed for %s, using fallback", normalized)
        return build_fallback_metadata(normalized, platform)


async def extract_metadata(url: str) -> ExtractedMetadata | None:
    """Extract metadata for a URL using the configured default source chain."""
    return await MetadataExtractor.from_settings(get_settings()).extract(url)
