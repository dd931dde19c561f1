"""
Description sanitizer.

Turns a raw description fragment into clean HTML plus a plain-text
derivative. Steps run in a fixed order; later steps assume the earlier
ones already ran.
"""

import html
import logging
import re
from typing import Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Tag

from .document import clean_text, element_text, parse_fragment
from .markup import DETAIL_LIST_SELECTORS, WRAPPER_TAGS, has_generated_class

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_CHARS = 50
MAX_EMPTY_PASSES = 10

NON_CONTENT_TAGS = ['script', 'style', 'svg', 'iframe', 'noscript', 'object', 'embed', 'template']
CHROME_TAGS = ['nav', 'header', 'footer', 'aside']
BREADCRUMB_SELECTORS = [
    '[aria-label*="breadcrumb" i]', '[class*="breadcrumb" i]', '[id*="breadcrumb" i]',
]

# Login-wall prompts and call-to-action banners, matched on exact element text
BOILERPLATE_PHRASES = {
    'log in to view',
    'log in to see more',
    'sign up to see the full job description',
    'sign up to view the full job description',
    'unlock this job',
    'unlock full access',
    'join now to unlock full access',
    'already a member? log in',
    'apply now',
    'apply for this job',
    'save job',
    'share this job',
    'report this job',
    'find your next remote job!',
    'get started',
    'view all remote jobs',
    'back to search results',
}

# Sibling category-listing pages, e.g. /remote-jobs/customer-service
CATEGORY_PATH_RE = re.compile(r'^/remote-jobs/[a-z0-9-]+/?$', re.IGNORECASE)
JOB_LINK_RE = re.compile(
    r'/job-details/|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}',
    re.IGNORECASE,
)

ALLOWED_ATTRIBUTES = ('href', 'src', 'alt', 'title')
MEDIA_TAGS = ['img', 'video', 'audio', 'picture', 'source']
VOID_TAGS = {'br', 'hr', 'img', 'source', 'wbr'}


def _href_path(href: str) -> str:
    try:
        return urlsplit(href).path or ''
    except ValueError:
        return ''


def _decompose_all(elements) -> int:
    removed = 0
    for element in elements:
        if getattr(element, 'decomposed', False):
            continue
        element.decompose()
        removed += 1
    return removed


class DescriptionSanitizer:
    """Cleans description fragments for storage."""

    def __init__(self, min_chars: int = MIN_DESCRIPTION_CHARS):
        self.min_chars = min_chars

    def sanitize(self, raw_html: Optional[str]) -> Optional[str]:
        """
        Clean a raw description fragment.

        Returns:
            Cleaned HTML, or None when less than min_chars of text survive.
        """
        if not raw_html or not raw_html.strip():
            return None

        soup = parse_fragment(raw_html)

        self._remove_non_content(soup)
        self._remove_chrome(soup)
        self._remove_boilerplate(soup)
        self._remove_detail_list(soup)
        self._remove_category_links(soup)
        self._unwrap_wrappers(soup)
        self._strip_attributes(soup)
        self._remove_empty(soup)

        cleaned = self._decode_entities(str(soup))
        cleaned = clean_text(cleaned)

        text = self.to_text(cleaned)
        if not text or len(text) < self.min_chars:
            logger.debug(f"Description too short after sanitizing ({len(text or '')} chars)")
            return None
        return cleaned

    def to_text(self, cleaned_html: Optional[str]) -> Optional[str]:
        """Markup-free derivative of cleaned HTML."""
        if not cleaned_html:
            return None
        text = clean_text(BeautifulSoup(cleaned_html, 'html.parser').get_text(' '))
        return text or None

    def _remove_non_content(self, soup: BeautifulSoup):
        _decompose_all(soup.find_all(NON_CONTENT_TAGS))

    def _remove_chrome(self, soup: BeautifulSoup):
        _decompose_all(soup.find_all(CHROME_TAGS))
        for selector in BREADCRUMB_SELECTORS:
            _decompose_all(soup.select(selector))

    def _remove_boilerplate(self, soup: BeautifulSoup):
        removed = 0
        for element in soup.find_all(True):
            if getattr(element, 'decomposed', False):
                continue
            if element_text(element).lower() in BOILERPLATE_PHRASES:
                element.decompose()
                removed += 1
        if removed:
            logger.debug(f"Removed {removed} boilerplate elements")

    def _remove_detail_list(self, soup: BeautifulSoup):
        for selector in DETAIL_LIST_SELECTORS:
            _decompose_all(soup.select(selector))

    def _remove_category_links(self, soup: BeautifulSoup):
        for anchor in soup.find_all('a', href=True):
            href = anchor.get('href', '')
            if JOB_LINK_RE.search(href):
                continue
            if CATEGORY_PATH_RE.match(_href_path(href)):
                anchor.decompose()

    def _unwrap_wrappers(self, soup: BeautifulSoup):
        for element in soup.find_all(WRAPPER_TAGS):
            if has_generated_class(element):
                element.unwrap()

    def _strip_attributes(self, soup: BeautifulSoup):
        for element in soup.find_all(True):
            element.attrs = {k: v for k, v in element.attrs.items() if k in ALLOWED_ATTRIBUTES}

    def _is_empty(self, element: Tag) -> bool:
        if element.name in VOID_TAGS or element.name in MEDIA_TAGS:
            return False
        if element.get_text(strip=True):
            return False
        if element.find(MEDIA_TAGS):
            return False
        return True

    def _remove_empty(self, soup: BeautifulSoup):
        for _ in range(MAX_EMPTY_PASSES):
            empties = [el for el in soup.find_all(True) if self._is_empty(el)]
            if not empties:
                break
            _decompose_all(empties)

    def _decode_entities(self, markup: str) -> str:
        return html.unescape(markup).replace('\xa0', ' ')


def sanitize_description(raw_html: Optional[str]) -> Optional[str]:
    return DescriptionSanitizer().sanitize(raw_html)
