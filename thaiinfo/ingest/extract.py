"""HTML to plain text and metadata extraction."""

import re

from bs4 import BeautifulSoup, Tag, UnicodeDammit

from thaiinfo.ingest.models import ScrapedPage


DEFAULT_MAX_BODY_CHARS = 5000

_WHITESPACE = re.compile(r"\s+")
_DESCRIPTION = re.compile(r"^description$", re.IGNORECASE)
_OG_IMAGE = re.compile(r"^og:image$", re.IGNORECASE)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return _WHITESPACE.sub(" ", text or "").strip()


def _meta_content(soup: BeautifulSoup, **attrs: re.Pattern[str]) -> str:
    tag = soup.find("meta", attrs=attrs)
    if not isinstance(tag, Tag):
        return ""
    content = tag.get("content")
    if isinstance(content, list):
        content = " ".join(content)
    return normalize_whitespace(content or "")


def decode_html(body: bytes, from_encoding: str | None = None) -> str:
    """Decode an HTML body.

    A charset from the HTTP header wins; otherwise the document's own
    <meta> declaration is used, then UTF-8 and Windows-1252. Thai sites
    often declare TIS-620 or Windows-874 only in <meta>.
    """
    known = [from_encoding] if from_encoding else []
    dammit = UnicodeDammit(body, known_definite_encodings=known, is_html=True)
    if dammit.unicode_markup is None:
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def extract_page(
    html: str | bytes,
    max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
    from_encoding: str | None = None,
) -> ScrapedPage:
    """Extract title, description, og:image and body text from HTML.

    Script and style blocks are dropped before the markup is stripped.
    Each metadata field is best-effort and defaults to an empty string.

    Args:
        html: HTML document, decoded or as the raw response body.
        max_body_chars: Body text is truncated to this many characters.
        from_encoding: Charset from the HTTP header, for a bytes body.

    Returns:
        ScrapedPage with the extracted fields.
    """
    if not html:
        return ScrapedPage()

    markup = decode_html(html, from_encoding) if isinstance(html, bytes) else html
    soup = BeautifulSoup(markup, "lxml")

    title = ""
    if soup.title is not None:
        title = normalize_whitespace(soup.title.get_text())

    description = _meta_content(soup, name=_DESCRIPTION)
    image_url = _meta_content(soup, property=_OG_IMAGE)

    for tag in soup(["script", "style"]):
        tag.decompose()
    if soup.head is not None:
        soup.head.decompose()

    text = normalize_whitespace(soup.get_text(" "))

    return ScrapedPage(
        title=title,
        description=description,
        image_url=image_url,
        text=text[:max_body_chars],
    )
