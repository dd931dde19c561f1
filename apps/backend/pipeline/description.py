"""
Description fallback strategies.

Used when the page carries no usable JSON-LD description. Each strategy
returns a raw HTML fragment (to be sanitized) or None; the first one with
enough real content wins.
"""

import logging
import re
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag

from .document import Document, element_text
from .markup import CTA_SELECTORS, DETAIL_LIST_SELECTORS, SIDEBAR_SELECTORS

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 100
MIN_PARAGRAPH_CHARS = 50

DESCRIPTION_WRAPPER_SELECTORS = [
    '#job-description', '#jobDescription', '[id*="job-description"]',
    '[class*="job-description"]', '[class*="JobDescription"]', '[class*="jobDescription"]',
    '[data-testid*="description"]', '[itemprop="description"]',
]

MAIN_CONTENT_SELECTORS = ['main', 'article', '[role="main"]', '#content', '.content']

NAVIGATION_SELECTORS = ['nav', 'header', 'footer', '[class*="breadcrumb"]']

DESCRIPTION_HEADING_RE = re.compile(
    r'about the (role|job|position)|job description|description|responsibilities|'
    r"what you('|’)?ll do|the role|role overview|job summary",
    re.IGNORECASE,
)

HEADING_TAGS = ['h1', 'h2', 'h3', 'h4']
MAJOR_HEADING_TAGS = {'h1', 'h2'}

# Promotional copy repeated on every posting
PROMO_BOILERPLATE = [
    'find your next remote job',
    'sign up to see the full job description',
    'join now to unlock full access',
    'log in to view',
    'remote.co has been helping',
    'subscribe to our newsletter',
    'we use cookies',
]


def _has_content(fragment_html: Optional[str]) -> bool:
    if not fragment_html:
        return False
    text = element_text(BeautifulSoup(fragment_html, 'html.parser'))
    return len(text) >= MIN_CONTENT_CHARS


def _strip(fragment: BeautifulSoup, selectors: List[str]) -> BeautifulSoup:
    for selector in selectors:
        for element in fragment.select(selector):
            if not getattr(element, 'decomposed', False):
                element.decompose()
    return fragment


def _is_sidebar(element: Tag) -> bool:
    if element.name == 'aside':
        return True
    classes = ' '.join(element.get('class') or []).lower()
    return 'sidebar' in classes


def from_description_wrapper(doc: Document) -> Optional[str]:
    """Known wrapper/id for the role description."""
    for selector in DESCRIPTION_WRAPPER_SELECTORS:
        element = doc.select_one(selector)
        if element is None:
            continue
        fragment = _strip(doc.fragment(element), SIDEBAR_SELECTORS + DETAIL_LIST_SELECTORS + CTA_SELECTORS)
        html = str(fragment)
        if _has_content(html):
            return html
    return None


def from_main_content(doc: Document) -> Optional[str]:
    """Main/article region minus navigation, sidebar and detail list."""
    for selector in MAIN_CONTENT_SELECTORS:
        element = doc.select_one(selector)
        if element is None:
            continue
        fragment = _strip(doc.fragment(element), NAVIGATION_SELECTORS + SIDEBAR_SELECTORS + DETAIL_LIST_SELECTORS)
        # The posting title is already its own field
        for heading in fragment.find_all('h1'):
            heading.decompose()
        html = str(fragment)
        if _has_content(html):
            return html
    return None


def from_description_heading(doc: Document) -> Optional[str]:
    """Content after a role/description heading, up to the next major heading or sidebar."""
    for heading in doc.select(', '.join(HEADING_TAGS)):
        if not DESCRIPTION_HEADING_RE.search(element_text(heading)):
            continue
        parts = [str(heading)]
        for sibling in heading.find_next_siblings():
            if sibling.name in MAJOR_HEADING_TAGS or _is_sidebar(sibling):
                break
            if sibling.name == heading.name:
                break
            parts.append(str(sibling))
        html = ''.join(parts)
        if _has_content(html):
            return html
    return None


def from_paragraphs(doc: Document) -> Optional[str]:
    """Long paragraphs in the main content area, minus promotional copy."""
    root = None
    for selector in MAIN_CONTENT_SELECTORS:
        root = doc.select_one(selector)
        if root is not None:
            break
    if root is None:
        root = doc.soup.body or doc.soup

    paragraphs = []
    for paragraph in root.find_all('p'):
        text = element_text(paragraph)
        if len(text) <= MIN_PARAGRAPH_CHARS:
            continue
        lower = text.lower()
        if any(phrase in lower for phrase in PROMO_BOILERPLATE):
            continue
        paragraphs.append(f"<p>{paragraph.decode_contents()}</p>")

    html = ''.join(paragraphs)
    return html if _has_content(html) else None


DESCRIPTION_STRATEGIES: List[Callable[[Document], Optional[str]]] = [
    from_description_wrapper,
    from_main_content,
    from_description_heading,
    from_paragraphs,
]


def extract_description_html(doc: Document) -> Optional[str]:
    """Raw description fragment from the first strategy with enough content."""
    for strategy in DESCRIPTION_STRATEGIES:
        html = strategy(doc)
        if html:
            logger.debug(f"Description via {strategy.__name__} on {doc.url}")
            return html
    return None
