"""
Job cards embedded in a Next.js LIST page (`<script id="__NEXT_DATA__">`).

Listing pages ship their search results as JSON for hydration. The cards
are used to enrich bare-URL records when detail pages are not fetched.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from core.urls import normalize_url, resolve_url

from .document import Document, clean_text
from .links import JOB_DETAIL_SEGMENT

logger = logging.getLogger(__name__)


def _join(value: Any) -> Optional[str]:
    if isinstance(value, list):
        parts = [clean_text(str(v)) for v in value if v]
        joined = ', '.join(p for p in parts if p)
        return joined or None
    if isinstance(value, str):
        return clean_text(value) or None
    return None


def extract_job_cards(doc: Document) -> Tuple[List[Dict[str, Any]], int]:
    """
    Raw job cards and the reported total result count.

    Returns ([], 0) when the page has no usable __NEXT_DATA__ payload.
    """
    script = doc.select_one('script#__NEXT_DATA__')
    if script is None:
        return [], 0
    raw = script.string or script.get_text()
    if not raw or not raw.strip():
        return [], 0

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Failed to parse __NEXT_DATA__ on {doc.url}: {e}")
        return [], 0

    jobs = (((data.get('props') or {}).get('pageProps') or {}).get('jobCardData') or {}).get('jobs') \
        if isinstance(data, dict) else None
    if not isinstance(jobs, dict):
        return [], 0

    results = [job for job in (jobs.get('results') or []) if isinstance(job, dict)]
    total = jobs.get('totalCount') or 0
    return results, total if isinstance(total, int) else 0


def map_job_card(job: Dict[str, Any], base_url: str) -> Optional[Dict[str, Any]]:
    """Partial record for one card, keyed like JobRecord; None without a slug."""
    slug = job.get('slug')
    if not slug or not isinstance(slug, str):
        return None
    url = resolve_url(f"{JOB_DETAIL_SEGMENT}{slug.strip('/')}", base_url)
    if not url:
        return None

    title = job.get('title')
    company = job.get('company')
    posted = job.get('postedDate')
    return {
        'id': job.get('id'),
        'title': clean_text(title) if isinstance(title, str) else None,
        'company': clean_text(company) if isinstance(company, str) else None,
        'location': _join(job.get('jobLocations')),
        'job_type': _join(job.get('jobSchedules')),
        'salary': _join(job.get('salaryRange')),
        'date_posted': str(posted) if posted else None,
        'url': url,
    }


def job_cards_by_url(doc: Document, base_url: str) -> Dict[str, Dict[str, Any]]:
    """Mapped cards keyed by normalized URL."""
    cards, total = extract_job_cards(doc)
    if cards:
        logger.info(f"Found {len(cards)} job cards in __NEXT_DATA__ (total available: {total})")

    mapped = {}
    for job in cards:
        card = map_job_card(job, base_url)
        if card:
            mapped.setdefault(normalize_url(card['url']), card)
    return mapped


def url_slug(url: str) -> Optional[str]:
    """Last non-empty path segment of a job URL."""
    segments = [s for s in urlsplit(url).path.split('/') if s]
    return segments[-1] if segments else None


def find_job_card(cards: Dict[str, Dict[str, Any]], url: str) -> Optional[Dict[str, Any]]:
    """
    Card for a job link: exact normalized-URL match first, then slug.

    Listing links do not always use the detail path the card URL is built
    under (`/remote-jobs/<slug>` vs `/job-details/<slug>`); the slug is shared.
    """
    card = cards.get(normalize_url(url))
    if card:
        return card

    slug = url_slug(url)
    if not slug:
        return None
    for candidate in cards.values():
        if url_slug(candidate['url']) == slug:
            return candidate
    return None
