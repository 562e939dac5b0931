import re

from bs4 import BeautifulSoup, Comment

from inkpost.utils.log import app_logger

ELLIPSIS = "..."
DEFAULT_TITLE = "Untitled post"

_FULL_DOCUMENT_RE = re.compile(r"^\s*(<!doctype\s|<html[\s>])", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_PARAGRAPH_RE = re.compile(r"<p(?:\s[^>]*)?>([\s\S]*?)</p>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def is_full_document(content: str) -> bool:
    return bool(_FULL_DOCUMENT_RE.match(content or ""))


def _parse(content: str) -> BeautifulSoup:
    soup = BeautifulSoup(content, "html.parser")
    for node in soup.find_all(string=lambda s: isinstance(s, Comment)):
        node.extract()
    return soup


def _structured_text(content: str) -> str:
    soup = _parse(content)

    region = soup
    if is_full_document(content):
        body = soup.find("body")
        if body is not None:
            region = body

    # a <p> inside another <p> is already part of the outer one's text
    paragraphs = [p for p in region.find_all("p") if p.find_parent("p") is None]
    if paragraphs:
        text = " ".join(p.get_text() for p in paragraphs)
    else:
        text = region.get_text()
    return text.strip()


def _textual_text(content: str) -> str:
    # no entity decoding on this path
    clean = _COMMENT_RE.sub("", content)
    paragraphs = _PARAGRAPH_RE.findall(clean)
    if paragraphs:
        return " ".join(_TAG_RE.sub("", p) for p in paragraphs).strip()
    return _TAG_RE.sub("", clean).strip()


def extract_plain_text(content: str) -> str:
    """Plain-text preview of rich post content.

    Comments are dropped; a full HTML document is narrowed to its <body>; the
    text of the paragraphs is joined with single spaces, or, when there are
    no paragraphs, all text of the region is used. If parsing fails a purely
    textual pass is tried, then "" is returned.
    """
    if not content:
        return ""
    try:
        return _structured_text(content)
    except Exception as e:
        app_logger.warning("excerpt.parse_failed", error=str(e))
    try:
        return _textual_text(content)
    except Exception as e:
        app_logger.error("excerpt.fallback_failed", error=str(e))
        return ""


def truncate(text: str, limit: int, marker: str = ELLIPSIS) -> str:
    if text is None:
        return ""
    if len(text) > limit:
        return f"{text[:limit]}{marker}"
    return text


def make_excerpt(content: str, limit: int = 150) -> str:
    return truncate(extract_plain_text(content), limit)


def extract_body_content(content: str) -> str:
    """Inner markup of <body> for full documents, the content itself otherwise."""
    if not content or not is_full_document(content):
        return content or ""
    body = BeautifulSoup(content, "html.parser").find("body")
    if body is None:
        return content
    return body.decode_contents()


def extract_title(content: str, default: str = DEFAULT_TITLE) -> str:
    """Post title taken from the <title> element of submitted content."""
    if not content:
        return default
    title = BeautifulSoup(content, "html.parser").find("title")
    if title is None:
        return default
    text = title.get_text().strip()
    return text or default
