"""Tests for URL validation, normalization, and platform detection."""
import pytest

from services.url_normalizer import (
    Platform,
    build_creator_url,
    classify_url,
    detect_platform,
    extract_creator_from_url,
    is_valid_url,
    normalize_url,
)


class TestIsValidUrl:
    """Tests for is_valid_url."""

    @pytest.mark.parametrize('url', [
        'https://example.com',
        'http://example.com/path?q=1',
        'HTTPS://EXAMPLE.COM/',
    ])
    def test__is_valid_url__accepts_http_and_https(self, url: str) -> None:
        """http(s) URLs with a host are valid."""
        assert is_valid_url(url) is True

    @pytest.mark.parametrize('url', [
        None,
        '',
        'not a url',
        'ftp://example.com/file',
        'javascript:alert(1)',
        'https://',
        'example.com',
    ])
    def test__is_valid_url__rejects_everything_else(self, url: str | None) -> None:
        """Missing scheme, other schemes, and hostless URLs are invalid."""
        assert is_valid_url(url) is False


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test__normalize_url__lowercases_scheme_and_host(self) -> None:
        """Scheme and host are case-insensitive; the path is not."""
        assert normalize_url('HTTPS://Example.COM/Some/Path') == 'https://example.com/Some/Path'

    def test__normalize_url__empty_path_becomes_root(self) -> None:
        """A bare host gets the root path."""
        assert normalize_url('https://example.com') == 'https://example.com/'

    def test__normalize_url__strips_tracking_params(self) -> None:
        """utm_*, fbclid, gclid, igshid and igsh are removed; other params stay."""
        url = 'https://example.com/a?utm_source=x&id=5&fbclid=abc&UTM_Medium=y&gclid=z'
        assert normalize_url(url) == 'https://example.com/a?id=5'

    def test__normalize_url__strips_instagram_share_params(self) -> None:
        """Instagram share links lose their igsh marker and the query entirely."""
        url = 'https://www.instagram.com/p/ABC123/?igsh=MTIz'
        assert normalize_url(url) == 'https://www.instagram.com/p/ABC123/'

    def test__normalize_url__query_is_always_reencoded(self) -> None:
        """Queries get one canonical encoding whether or not anything was stripped."""
        url = 'https://example.com/search?q=a+b&ref=/home&x=%2F'
        assert normalize_url(url) == 'https://example.com/search?q=a%20b&ref=%2Fhome&x=%2F'

    def test__normalize_url__clean_and_tracked_links_share_a_key(self) -> None:
        """The shared form of a link dedupes against the link itself."""
        clean = 'https://example.com/p?ref=/home&q=a%20b'
        assert normalize_url(clean) == normalize_url(clean + '&utm_source=tw')
        assert normalize_url(clean) == normalize_url(clean.replace('?', '?fbclid=x&'))

    def test__normalize_url__instagram_reel_share_link(self) -> None:
        """A shared reel link reduces to the bare reel URL on the Instagram platform."""
        result = classify_url('https://www.instagram.com/reel/ABC123/?utm_source=ig')
        assert result.normalized_url == 'https://www.instagram.com/reel/ABC123/'
        assert result.platform == Platform.INSTAGRAM

    def test__normalize_url__is_idempotent(self) -> None:
        """Normalizing twice equals normalizing once."""
        for url in (
            'HTTP://Example.com?utm_campaign=c&page=2#frag',
            'https://example.com/s?q=a+b&path=/x/y&empty=&u=%E2%9C%93',
        ):
            once = normalize_url(url)
            assert normalize_url(once) == once

    def test__normalize_url__keeps_fragment(self) -> None:
        """Fragments are part of the identity of the saved link."""
        assert normalize_url('https://example.com/doc#part-2') == 'https://example.com/doc#part-2'


class TestDetectPlatform:
    """Tests for detect_platform."""

    @pytest.mark.parametrize(('url', 'expected'), [
        ('https://www.instagram.com/p/Cx1_abc/', Platform.INSTAGRAM),
        ('https://instagram.com/reel/Cx1abc', Platform.INSTAGRAM),
        ('https://instagram.com/some.user/', Platform.INSTAGRAM),
        ('https://www.youtube.com/watch?v=dQw4w9WgXcQ', Platform.YOUTUBE),
        ('https://m.youtube.com/shorts/abc-123', Platform.YOUTUBE),
        ('https://youtu.be/dQw4w9WgXcQ', Platform.YOUTUBE),
        ('https://www.tiktok.com/@creator/video/7212345678901234567', Platform.TIKTOK),
        ('https://vm.tiktok.com/ZMabc123', Platform.TIKTOK),
        ('https://twitter.com/jack/status/20', Platform.TWITTER),
        ('https://x.com/jack/status/20', Platform.TWITTER),
        ('https://example.com/blog/post', Platform.WEB),
        ('https://www.youtube.com/feed/trending', Platform.WEB),
        ('https://x.com/jack', Platform.WEB),
    ])
    def test__detect_platform__known_shapes(self, url: str, expected: Platform) -> None:
        """Known URL shapes map to their platform; anything else is web."""
        assert detect_platform(url) == expected


class TestClassifyUrl:
    """Tests for classify_url."""

    def test__classify_url__invalid(self) -> None:
        """Invalid input is reported, not raised."""
        result = classify_url('nope')
        assert result.is_valid is False
        assert result.normalized_url is None
        assert result.platform is None

    def test__classify_url__classifies_normalized_form(self) -> None:
        """Classification runs on the normalized URL."""
        result = classify_url('https://YOUTU.BE/abc?utm_source=share')
        assert result.is_valid is True
        assert result.normalized_url == 'https://youtu.be/abc'
        assert result.platform == Platform.YOUTUBE


class TestCreatorHelpers:
    """Tests for extract_creator_from_url and build_creator_url."""

    @pytest.mark.parametrize(('url', 'platform', 'expected'), [
        ('https://instagram.com/natgeo/', Platform.INSTAGRAM, '@natgeo'),
        ('https://instagram.com/p/ABC/', Platform.INSTAGRAM, None),
        ('https://www.tiktok.com/@creator/video/1', Platform.TIKTOK, '@creator'),
        ('https://www.youtube.com/@channel', Platform.YOUTUBE, '@channel'),
        ('https://www.youtube.com/watch?v=x', Platform.YOUTUBE, None),
        ('https://x.com/jack/status/20', Platform.TWITTER, '@jack'),
        ('https://x.com/i/status/20', Platform.TWITTER, None),
        ('https://example.com/author/me', Platform.WEB, None),
    ])
    def test__extract_creator_from_url(
        self, url: str, platform: Platform, expected: str | None,
    ) -> None:
        """Handles are read from the platform-specific path position."""
        assert extract_creator_from_url(url, platform) == expected

    @pytest.mark.parametrize(('platform', 'expected'), [
        (Platform.INSTAGRAM, 'https://instagram.com/someone'),
        (Platform.YOUTUBE, 'https://youtube.com/@someone'),
        (Platform.TIKTOK, 'https://tiktok.com/@someone'),
        (Platform.TWITTER, 'https://x.com/someone'),
        (Platform.WEB, None),
    ])
    def test__build_creator_url(self, platform: Platform, expected: str | None) -> None:
        """Profile URLs follow each platform's convention."""
        assert build_creator_url('@someone', platform) == expected

    def test__build_creator_url__empty_handle(self) -> None:
        """A bare '@' has no profile."""
        assert build_creator_url('@', Platform.INSTAGRAM) is None
