"""
Read-only traversable view over a fetched page.

Extractors query the page only through this wrapper; anything that needs
to mutate markup works on a detached copy from `fragment()`.
"""

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Comment, Tag

WHITESPACE_RE = re.compile(r'\s+')


def clean_text(value: Optional[str]) -> str:
    """Collapse runs of whitespace (including nbsp) and trim."""
    if not value:
        return ''
    return WHITESPACE_RE.sub(' ', value.replace('\xa0', ' ')).strip()


def element_text(element) -> str:
    """Visible text of an element with whitespace collapsed."""
    if element is None:
        return ''
    if isinstance(element, Tag):
        return clean_text(element.get_text(' '))
    return clean_text(str(element))


def parse_fragment(html: str) -> BeautifulSoup:
    """Parse an HTML fragment without adding html/body wrappers."""
    return BeautifulSoup(html or '', 'html.parser')


class Document:
    """Parsed page plus the URL it was fetched from."""

    def __init__(self, html: str, url: str, soup: Optional[BeautifulSoup] = None):
        self.html = html or ''
        self.url = url
        self.soup = soup if soup is not None else BeautifulSoup(self.html, 'lxml')
        self._text: Optional[str] = None
        self._rows = None

    def select(self, selector: str, root: Optional[Tag] = None) -> List[Tag]:
        return (root or self.soup).select(selector)

    def select_one(self, selector: str, root: Optional[Tag] = None) -> Optional[Tag]:
        return (root or self.soup).select_one(selector)

    def first_text(self, selectors: List[str]) -> Optional[str]:
        """Text of the first element matching any selector, in selector order."""
        for selector in selectors:
            for element in self.select(selector):
                text = element_text(element)
                if text:
                    return text
        return None

    def attr(self, selector: str, name: str) -> Optional[str]:
        element = self.select_one(selector)
        if element is None:
            return None
        value = element.get(name)
        if isinstance(value, list):
            value = ' '.join(value)
        value = clean_text(value)
        return value or None

    def meta(self, *keys: str) -> Optional[str]:
        """Content of the first <meta> whose property or name matches one of keys."""
        for key in keys:
            for attr_name in ('property', 'name'):
                value = self.attr(f'meta[{attr_name}="{key}"]', 'content')
                if value:
                    return value
        return None

    @property
    def title(self) -> Optional[str]:
        tag = self.soup.find('title')
        text = element_text(tag)
        return text or None

    @property
    def text(self) -> str:
        """Full visible page text (scripts and styles excluded)."""
        if self._text is None:
            body = self.soup.body or self.soup
            parts = []
            for string in body.find_all(string=True):
                if isinstance(string, Comment):
                    continue
                if string.parent is not None and string.parent.name in ('script', 'style', 'noscript', 'template'):
                    continue
                parts.append(string)
            self._text = clean_text(' '.join(parts))
        return self._text

    @property
    def rows(self):
        """Label/value rows found on the page (see pipeline.markup)."""
        if self._rows is None:
            from .markup import iter_rows
            self._rows = list(iter_rows(self.soup))
        return self._rows

    def fragment(self, element: Tag) -> BeautifulSoup:
        """Detached, mutable copy of element."""
        return parse_fragment(str(element))

    def __repr__(self):
        return f"<Document(url={self.url}, size={len(self.html)})>"
