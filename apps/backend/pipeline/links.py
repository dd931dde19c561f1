"""
Link classification for LIST pages.

Job-detail links are recovered by an ordered list of strategies, from the
most precise to the broadest. The first strategy that yields any valid URL
wins; results are never combined across strategies.
"""

import re
import logging
from typing import Callable, Iterable, List, Optional, Tuple

from bs4 import Tag

from core.urls import get_query_param, is_valid_absolute_url, resolve_url, set_query_param

from .document import Document

logger = logging.getLogger(__name__)

JOB_DETAIL_SEGMENT = '/job-details/'
LISTING_SEGMENT = '/remote-jobs/'
PAGE_PARAM = 'page'

UUID_RE = re.compile(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', re.IGNORECASE)
PAGINATION_PATH_RE = re.compile(r'/page/\d+', re.IGNORECASE)

JOB_CARD_SELECTORS = [
    '[data-testid*="job-card"]', '[data-testid*="jobCard"]',
    '[class*="job-card"]', '[class*="JobCard"]', '[class*="jobCard"]',
    'article[class*="job"]', 'li[class*="job-listing"]', '[data-job-id]',
]

# Attributes that carry a job's identity
JOB_ID_ATTRIBUTES = ['data-job-id', 'data-jobid', 'data-job', 'data-id']
# Attributes that carry an embedded URL
URL_ATTRIBUTES = ['data-href', 'data-url', 'data-job-url', 'data-link', 'href']

LinkStrategy = Callable[[Document, str], List[str]]


def is_search_url(href: str) -> bool:
    lower = href.lower()
    return '/search' in lower or 'searchkeyword=' in lower


def is_pagination_url(href: str) -> bool:
    return bool(PAGINATION_PATH_RE.search(href)) or get_query_param(href, PAGE_PARAM) is not None


def _hrefs(elements: Iterable[Tag]) -> List[str]:
    return [el.get('href') for el in elements if el.get('href')]


def _embedded_url(element: Tag) -> Optional[str]:
    for attribute in URL_ATTRIBUTES:
        value = element.get(attribute)
        if isinstance(value, str) and value.strip().startswith(('/', 'http://', 'https://')):
            return value.strip()
    return None


def detail_path_anchors(doc: Document, base_url: str) -> List[str]:
    """Anchors pointing at the job-detail path."""
    return _hrefs(doc.select(f'a[href*="{JOB_DETAIL_SEGMENT}"]'))


def job_card_containers(doc: Document, base_url: str) -> List[str]:
    """Link carried by (or nested inside) recognized job cards."""
    hrefs = []
    for card in doc.select(', '.join(JOB_CARD_SELECTORS)):
        href = _embedded_url(card)
        if not href:
            anchor = card.find('a', href=True)
            href = anchor.get('href') if anchor else None
        if href:
            hrefs.append(href)
    return hrefs


def job_id_data_attributes(doc: Document, base_url: str) -> List[str]:
    """Elements carrying a job-id data attribute plus an embedded URL."""
    hrefs = []
    selector = ', '.join(f'[{attribute}]' for attribute in JOB_ID_ATTRIBUTES)
    for element in doc.select(selector):
        href = _embedded_url(element)
        if href:
            hrefs.append(href)
    return hrefs


def listing_path_links(doc: Document, base_url: str) -> List[str]:
    """Any /remote-jobs/ path link that is not a search or pagination URL."""
    hrefs = []
    for href in _hrefs(doc.select(f'a[href*="{LISTING_SEGMENT}"]')):
        if is_search_url(href) or is_pagination_url(href):
            continue
        hrefs.append(href)
    return hrefs


def uuid_links(doc: Document, base_url: str) -> List[str]:
    """Last resort: any href with a UUID-shaped token."""
    return [href for href in _hrefs(doc.select('a[href]'))
            if UUID_RE.search(href) and not is_search_url(href)]


LINK_STRATEGIES: List[LinkStrategy] = [
    detail_path_anchors,
    job_card_containers,
    job_id_data_attributes,
    listing_path_links,
    uuid_links,
]


def _valid_unique(hrefs: Iterable[str], base_url: str) -> List[str]:
    urls = []
    seen = set()
    for href in hrefs:
        url = resolve_url(href, base_url)
        if not url or url in seen:
            continue
        seen.add(url)
        urls.append(url)
    return urls


class LinkClassifier:
    """Finds job-detail links and the next-page link on a LIST page."""

    def __init__(self, strategies: Optional[List[LinkStrategy]] = None):
        self.strategies = strategies or LINK_STRATEGIES

    def find_job_links(self, doc: Document, base_url: str) -> Tuple[List[str], Optional[str]]:
        """
        Recover job-detail URLs.

        Returns:
            (absolute URLs in page order, name of the strategy that produced them)
        """
        for strategy in self.strategies:
            urls = _valid_unique(strategy(doc, base_url), base_url)
            if urls:
                logger.debug(f"Found {len(urls)} job links via {strategy.__name__} on {base_url}")
                return urls, strategy.__name__
        return [], None

    def find_next_page(self, doc: Document, base_url: str, current_page: int) -> Optional[str]:
        """rel=next, then a pagination link for current_page + 1, then a synthesized URL."""
        for href in _hrefs(doc.select('link[rel~="next"], a[rel~="next"]')):
            url = resolve_url(href, base_url)
            if url:
                return url

        wanted = str(current_page + 1)
        for href in _hrefs(doc.select('a[href]')):
            url = resolve_url(href, base_url)
            if url and get_query_param(url, PAGE_PARAM) == wanted:
                return url

        url = set_query_param(base_url, PAGE_PARAM, current_page + 1)
        return url if is_valid_absolute_url(url) else None


def find_job_links(doc: Document, base_url: str) -> List[str]:
    urls, _ = LinkClassifier().find_job_links(doc, base_url)
    return urls


def find_next_page(doc: Document, base_url: str, current_page: int) -> Optional[str]:
    return LinkClassifier().find_next_page(doc, base_url, current_page)
