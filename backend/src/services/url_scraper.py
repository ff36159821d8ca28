"""URL scraping service for fetching bookmark metadata from web pages."""
import ipaddress
import logging
import socket
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup
from pypdf import PdfReader

from services.exceptions import UpstreamDegradedError

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; BookmarkManager/1.0)'
DEFAULT_TIMEOUT = 10.0

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 2000
MAX_FAVICON_LENGTH = 2048
UNTITLED = 'Untitled'


_BLOCKED_HOSTNAMES = frozenset({'localhost', 'localhost.localdomain'})
_INTERNAL_ADDRESS_FLAGS = (
    'is_private', 'is_loopback', 'is_link_local', 'is_multicast', 'is_reserved', 'is_unspecified',
)


class SSRFBlockedError(Exception):
    """Raised when a URL points at a loopback, private or otherwise internal address."""


def is_private_ip(ip_str: str) -> bool:
    """True for internal addresses. Unparseable input counts as internal."""
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return True
    return any(getattr(ip, flag) for flag in _INTERNAL_ADDRESS_FLAGS)


def validate_url_not_private(url: str) -> None:
    """
    Refuse URLs whose host is, or resolves to, an internal address.

    Every resolved address is checked, so a public name pointing at an
    internal address is refused as well.

    Raises:
        SSRFBlockedError: If the host is internal.
        ValueError: If the URL has no hostname or the hostname doesn't resolve.
    """
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")
    if hostname.lower() in _BLOCKED_HOSTNAMES:
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        resolved = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    # sockaddr[0] is the address for both IPv4 and IPv6 entries
    blocked = [info[4][0] for info in resolved if is_private_ip(info[4][0])]
    if blocked:
        raise SSRFBlockedError(f"Blocked request to internal address: {url} resolves to {blocked[0]}")


@dataclass
class FetchResult:
    """Raw response body of a metadata fetch, or the reason there is none."""

    final_url: str
    content: str | bytes | None = None  # text for HTML, bytes for PDF
    content_type: str | None = None
    error: str | None = None

    @property
    def is_pdf(self) -> bool:
        """Whether the body is a PDF document."""
        return bool(self.content_type and 'application/pdf' in self.content_type.lower())


@dataclass
class ExtractedMetadata:
    """Fields found in a document; any of them may be missing."""

    title: str | None
    description: str | None
    favicon: str | None = None


@dataclass
class PageMetadata:
    """Metadata used to fill in a bookmark. Always fully populated."""

    title: str
    description: str
    favicon: str


def default_favicon(url: str) -> str:
    """Conventional favicon location at the site root."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/favicon.ico"


def fallback_metadata(url: str) -> PageMetadata:
    """Minimal metadata derived from the URL alone, used when fetching fails."""
    return PageMetadata(
        title=urlparse(url).hostname or url,
        description='',
        favicon=default_favicon(url),
    )


def _guard(url: str) -> str | None:
    try:
        validate_url_not_private(url)
    except (SSRFBlockedError, ValueError) as e:
        return str(e)
    return None


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    GET a URL and keep the body if it is HTML or PDF.

    Failures are reported in FetchResult.error instead of raised. Both the
    requested URL and the final URL after redirects must pass the internal
    address guard.
    """
    blocked = _guard(url)
    if blocked:
        return FetchResult(final_url=url, error=blocked)

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        return FetchResult(final_url=url, error="Request timed out")
    except httpx.RequestError as e:
        return FetchResult(final_url=url, error=f"Request failed: {e}")

    final_url = str(response.url)
    blocked = _guard(final_url)
    if blocked:
        return FetchResult(final_url=final_url, error=f"Redirect blocked: {blocked}")

    content_type = response.headers.get('content-type', '')
    result = FetchResult(final_url=final_url, content_type=content_type)
    if not response.is_success:
        result.error = f"HTTP {response.status_code}"
    elif result.is_pdf:
        result.content = response.content
    elif 'html' in content_type.lower():
        result.content = response.text
    else:
        result.error = f"Unsupported content type: {content_type}"
    return result


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip() or None
    return None


def extract_html_metadata(html: str, base_url: str) -> ExtractedMetadata:
    """
    Extract title, description and favicon from HTML.

    Pure function with no I/O. Uses BeautifulSoup for parsing.

    Title priority: og:title, twitter:title, <title>.
    Description priority: og:description, twitter:description, meta description.
    Favicon priority: link rel icon, shortcut icon, apple-touch-icon; resolved
    against base_url so the result is absolute.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = (
        _meta_content(soup, property='og:title')
        or _meta_content(soup, name='twitter:title')
    )
    if not title:
        title_tag = soup.find('title')
        if title_tag and title_tag.string:
            title = title_tag.string.strip() or None

    description = (
        _meta_content(soup, property='og:description')
        or _meta_content(soup, name='twitter:description')
        or _meta_content(soup, name='description')
    )

    icons: dict[str, str] = {}
    for link in soup.find_all('link', href=True):
        rel = link.get('rel') or []
        if isinstance(rel, str):
            rel = rel.split()
        icons.setdefault(' '.join(rel).lower(), link['href'].strip())

    favicon = None
    for rel in ('icon', 'shortcut icon', 'apple-touch-icon'):
        if icons.get(rel):
            favicon = urljoin(base_url, icons[rel])
            break

    return ExtractedMetadata(title=title, description=description, favicon=favicon)


def extract_pdf_metadata(pdf_bytes: bytes) -> ExtractedMetadata:
    """
    Extract title and description from PDF document metadata.

    Uses /Title for the title and /Subject for the description. PDF metadata
    is often missing, so expect None values frequently.
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        meta = reader.metadata

        title = meta.title if meta and meta.title else None
        description = meta.subject if meta and meta.subject else None

        return ExtractedMetadata(title=title, description=description)
    except Exception:
        logger.debug("Unreadable PDF metadata", exc_info=True)
        return ExtractedMetadata(title=None, description=None)


async def _scrape_metadata(url: str, timeout: float) -> PageMetadata:  # noqa: ASYNC109
    result = await fetch_url(url, timeout)
    if result.error:
        raise UpstreamDegradedError(result.error)

    if result.is_pdf:
        extracted = extract_pdf_metadata(result.content)
    else:
        extracted = extract_html_metadata(result.content, result.final_url)

    title = (extracted.title or UNTITLED).strip()
    description = (extracted.description or '').strip()
    favicon = extracted.favicon or default_favicon(url)
    return PageMetadata(
        title=title[:MAX_TITLE_LENGTH],
        description=description[:MAX_DESCRIPTION_LENGTH],
        favicon=favicon[:MAX_FAVICON_LENGTH],
    )


async def fetch_metadata(url: str, timeout: float = DEFAULT_TIMEOUT) -> PageMetadata:  # noqa: ASYNC109
    """
    Fetch title, description and favicon for a URL. Never raises.

    Any failure (network, HTTP status, parse error) degrades to
    fallback_metadata(url) so bookmark creation is never blocked.
    """
    try:
        return await _scrape_metadata(url, timeout)
    except UpstreamDegradedError as e:
        logger.warning("Metadata fetch degraded for %s: %s", url, e.message)
    except Exception:
        logger.exception("Unexpected error extracting metadata for %s", url)
    return fallback_metadata(url)
