"""
URL validation, tracking-parameter stripping, and source platform classification.

Everything here is pure: no I/O, and malformed input is reported rather than raised.
"""
import re
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit


class Platform(StrEnum):
    """Content source a URL belongs to."""

    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    TWITTER = "twitter"
    WEB = "web"


@dataclass(frozen=True)
class PlatformInfo:
    """Display attributes for a platform (mirrored into the platforms table)."""

    display_name: str
    icon: str
    color_bg: str
    color_text: str


PLATFORM_INFO: dict[Platform, PlatformInfo] = {
    Platform.INSTAGRAM: PlatformInfo('Instagram', '📸', '#E1306C', '#FFFFFF'),
    Platform.YOUTUBE: PlatformInfo('YouTube', '▶️', '#FF0000', '#FFFFFF'),
    Platform.TIKTOK: PlatformInfo('TikTok', '🎵', '#000000', '#FFFFFF'),
    Platform.TWITTER: PlatformInfo('Twitter/X', '🐦', '#000000', '#FFFFFF'),
    Platform.WEB: PlatformInfo('Web', '🌐', '#6B7280', '#FFFFFF'),
}

# Checked in order; the first platform with a matching pattern wins.
PLATFORM_PATTERNS: list[tuple[Platform, list[re.Pattern[str]]]] = [
    (Platform.INSTAGRAM, [
        re.compile(r'^https?://(www\.)?instagram\.com/(p|reel|tv|stories)/[\w-]+', re.IGNORECASE),
        re.compile(r'^https?://(www\.)?instagram\.com/[\w.]+/?$', re.IGNORECASE),
    ]),
    (Platform.YOUTUBE, [
        re.compile(r'^https?://(www\.|m\.)?youtube\.com/watch\?v=[\w-]+', re.IGNORECASE),
        re.compile(r'^https?://(www\.|m\.)?youtube\.com/shorts/[\w-]+', re.IGNORECASE),
        re.compile(r'^https?://youtu\.be/[\w-]+', re.IGNORECASE),
    ]),
    (Platform.TIKTOK, [
        re.compile(r'^https?://(www\.)?tiktok\.com/@[\w.]+/video/\d+', re.IGNORECASE),
        re.compile(r'^https?://vm\.tiktok\.com/\w+', re.IGNORECASE),
    ]),
    (Platform.TWITTER, [
        re.compile(r'^https?://(www\.)?(twitter|x)\.com/\w+/status/\d+', re.IGNORECASE),
    ]),
]

TRACKING_PARAMS = frozenset({'fbclid', 'gclid', 'igshid', 'igsh'})
TRACKING_PREFIXES = ('utm_',)

ALLOWED_SCHEMES = ('http', 'https')

# Instagram path segments that are content types, not profile handles
_INSTAGRAM_RESERVED = frozenset({'p', 'reel', 'reels', 'tv', 'stories', 'explore'})
_TWITTER_RESERVED = frozenset({'home', 'explore', 'search', 'i', 'intent', 'share'})


@dataclass(frozen=True)
class UrlClassification:
    """Outcome of validating and classifying a raw URL."""

    is_valid: bool
    normalized_url: str | None = None
    platform: Platform | None = None


def is_valid_url(url: str | None) -> bool:
    """Return True if the URL parses, uses http(s), and has a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url.strip())
        return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.hostname)
    except ValueError:
        return False


def _is_tracking_param(key: str) -> bool:
    lowered = key.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PREFIXES)


def normalize_url(url: str) -> str:
    """
    Produce the canonical form of a URL used as the per-user dedupe key.

    Lowercases scheme and host, gives an empty path the root '/', and removes
    tracking query parameters. The remaining query is always re-encoded the same
    way (percent-escapes, spaces as %20), so a link and its tracked share form
    produce the same key.

    Args:
        url: A URL that passed is_valid_url(). Unparseable input is returned as-is.

    Returns:
        The normalized URL.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        kept = [(key, value) for key, value in pairs if not _is_tracking_param(key)]
        query = urlencode(kept, quote_via=quote)

    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path or '/',
        query,
        parts.fragment,
    ))


def detect_platform(url: str) -> Platform:
    """Match a URL against the known platform shapes; no match means web."""
    candidate = url.strip()
    for platform, patterns in PLATFORM_PATTERNS:
        if any(pattern.search(candidate) for pattern in patterns):
            return platform
    return Platform.WEB


def classify_url(url: str | None) -> UrlClassification:
    """
    Validate, normalize, and classify a raw URL in one step.

    Never raises: invalid input yields UrlClassification(is_valid=False).
    """
    if not is_valid_url(url):
        return UrlClassification(is_valid=False)
    normalized = normalize_url(url)
    return UrlClassification(
        is_valid=True,
        normalized_url=normalized,
        platform=detect_platform(normalized),
    )


def extract_creator_from_url(url: str, platform: Platform) -> str | None:
    """
    Best-effort creator handle parsed from the URL path, as '@handle'.

    Instagram profile URLs carry the handle as the only path segment; YouTube and
    TikTok use a leading '/@handle'; Twitter/X puts the handle first.
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return None

    segments = [segment for segment in path.split('/') if segment]
    if not segments:
        return None
    first = segments[0]

    if platform == Platform.INSTAGRAM:
        if len(segments) == 1 and first.lower() not in _INSTAGRAM_RESERVED:
            return f'@{first}'
        return None
    if platform in (Platform.YOUTUBE, Platform.TIKTOK):
        if first.startswith('@') and len(first) > 1:
            return first
        return None
    if platform == Platform.TWITTER:
        if first.lower() not in _TWITTER_RESERVED:
            return f'@{first}'
        return None
    return None


def build_creator_url(creator_name: str, platform: Platform) -> str | None:
    """Profile URL for a creator handle on its platform (None for the open web)."""
    username = creator_name.lstrip('@')
    if not username:
        return None
    if platform == Platform.INSTAGRAM:
        return f'https://instagram.com/{username}'
    if platform == Platform.YOUTUBE:
        return f'https://youtube.com/@{username}'
    if platform == Platform.TIKTOK:
        return f'https://tiktok.com/@{username}'
    if platform == Platform.TWITTER:
        return f'https://x.com/{username}'
    return None
