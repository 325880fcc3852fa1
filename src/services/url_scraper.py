"""Fetching web pages and reading their Open Graph / Twitter Card metadata."""
import ipaddress
import socket
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

USER_AGENT = 'Mozilla/5.0 (compatible; MoahBot/1.0; +https://moah.app)'
DEFAULT_TIMEOUT = 10.0


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    The hostname is resolved so that a public name pointing at an internal
    address is rejected too.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host does not resolve.
    """
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw HTML before extraction)."""

    html: str | None
    final_url: str
    status_code: int | None
    error: str | None


@dataclass
class OpenGraphData:
    """Metadata read from a page's <head>; any field may be missing."""

    title: str | None = None
    description: str | None = None
    image: str | None = None
    url: str | None = None
    site_name: str | None = None


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch the HTML of a page.

    Best-effort: returns error info on failure rather than raising. Follows
    redirects (re-checking the final URL against internal networks) and only
    accepts HTML responses.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.

    Returns:
        FetchResult containing the HTML or error info.
    """
    try:
        validate_url_not_private(url)
    except (SSRFBlockedError, ValueError) as e:
        return FetchResult(html=None, final_url=url, status_code=None, error=str(e))

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT, 'Accept': 'text/html,application/xhtml+xml'},
            http2=True,
        ) as client:
            response = await client.get(url)

            final_url = str(response.url)
            try:
                validate_url_not_private(final_url)
            except (SSRFBlockedError, ValueError) as e:
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    error=f"Redirect blocked: {e}",
                )

            if not response.is_success:
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    error=f"HTTP {response.status_code}",
                )

            content_type = response.headers.get('content-type', '')
            if 'html' not in content_type.lower():
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    error=f"Unsupported content type: {content_type}",
                )

            return FetchResult(
                html=response.text,
                final_url=final_url,
                status_code=response.status_code,
                error=None,
            )
    except httpx.TimeoutException:
        return FetchResult(html=None, final_url=url, status_code=None, error="Request timed out")
    except httpx.RequestError as e:
        return FetchResult(
            html=None, final_url=url, status_code=None, error=f"Request failed: {e}",
        )


def _meta_content(soup: BeautifulSoup, *, prop: str | None = None, name: str | None = None) -> str | None:  # noqa: E501
    if prop is not None:
        tag = soup.find('meta', property=prop)
    else:
        tag = soup.find('meta', attrs={'name': name})
    if tag and tag.get('content'):
        value = tag['content'].strip()
        return value or None
    return None


def extract_og_metadata(html: str, base_url: str | None = None) -> OpenGraphData:
    """
    Extract Open Graph / Twitter Card metadata from HTML.

    Pure function with no I/O.

    Title priority: og:title, twitter:title, <title>.
    Description priority: og:description, twitter:description, <meta name="description">.
    Image priority: og:image, og:image:url, twitter:image (relative URLs resolved
    against base_url when given).

    Args:
        html:
            Raw HTML string to parse.
        base_url:
            URL the HTML was served from, for resolving relative image links.

    Returns:
        OpenGraphData (fields are None when not found).
    """
    soup = BeautifulSoup(html, 'lxml')

    title = (
        _meta_content(soup, prop='og:title')
        or _meta_content(soup, name='twitter:title')
    )
    if not title:
        title_tag = soup.find('title')
        if title_tag and title_tag.string and title_tag.string.strip():
            title = title_tag.string.strip()

    description = (
        _meta_content(soup, prop='og:description')
        or _meta_content(soup, name='twitter:description')
        or _meta_content(soup, name='description')
    )

    image = (
        _meta_content(soup, prop='og:image')
        or _meta_content(soup, prop='og:image:url')
        or _meta_content(soup, name='twitter:image')
        or _meta_content(soup, name='twitter:image:src')
    )
    if image and base_url:
        image = urljoin(base_url, image)

    return OpenGraphData(
        title=title,
        description=description,
        image=image,
        url=_meta_content(soup, prop='og:url'),
        site_name=_meta_content(soup, prop='og:site_name'),
    )


async def scrape_open_graph(
    url: str, timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
) -> tuple[OpenGraphData | None, str | None]:
    """
    Fetch a page and extract its Open Graph metadata.

    Returns:
        (metadata, None) on success, or (None, error message) on failure.
    """
    result = await fetch_url(url, timeout)
    if result.error or result.html is None:
        return None, result.error or "Empty response"
    return extract_og_metadata(result.html, base_url=result.final_url), None
