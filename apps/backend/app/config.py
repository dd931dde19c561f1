"""
Crawl configuration.

Built from keyword arguments, from JOBCRAWL_* environment variables, or
from an actor-style input mapping. The crawler core only reads it.
"""

import os
import json
import logging
from typing import Any, Dict, List, Optional

from core.urls import build_url, is_valid_absolute_url

logger = logging.getLogger(__name__)

SEARCH_URL = "https://remote.co/remote-jobs/search"

DEFAULT_RESULTS_WANTED = 100
DEFAULT_MAX_PAGES = 999
DEFAULT_MIN_DELAY_MS = 500
DEFAULT_MAX_DELAY_MS = 1500
DEFAULT_MAX_CONCURRENCY = 10
DEFAULT_MAX_REQUEST_RETRIES = 5
DEFAULT_HANDLER_TIMEOUT_SECS = 120
DEFAULT_LINK_SLACK_FACTOR = 2.0


def _to_int(value: Any, default: int, minimum: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return max(minimum, number)


def _to_float(value: Any, default: float, minimum: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, number)


def _to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def parse_cookie_string(raw: Optional[str]) -> Dict[str, str]:
    """Parse 'a=1; b=2' into a dict."""
    cookies = {}
    if not raw:
        return cookies
    for part in raw.split(';'):
        if '=' not in part:
            continue
        name, _, value = part.partition('=')
        name = name.strip()
        if name:
            cookies[name] = value.strip()
    return cookies


def parse_cookie_json(raw: Any) -> Dict[str, str]:
    """Parse a JSON object (or already-decoded mapping) of cookie name -> value."""
    if not raw:
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Ignoring invalid cookie JSON: {e}")
            return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring cookie JSON that is not an object")
        return {}
    return {str(k): str(v) for k, v in raw.items()}


def parse_proxy_urls(raw: Any) -> List[str]:
    """Accept a list, a comma-separated string, or a mapping with proxyUrls."""
    if not raw:
        return []
    if isinstance(raw, dict):
        raw = raw.get('proxyUrls') or raw.get('proxy_urls') or []
    if isinstance(raw, str):
        raw = raw.split(',')
    return [str(p).strip() for p in raw if str(p).strip()]


class CrawlConfig:
    """Configuration surface consumed by the crawler."""

    def __init__(
        self,
        keyword: str = "",
        location: str = "",
        category: str = "",
        start_urls: Optional[List[str]] = None,
        results_wanted: Any = DEFAULT_RESULTS_WANTED,
        max_pages: Any = DEFAULT_MAX_PAGES,
        collect_details: bool = True,
        dedupe: bool = True,
        min_delay_ms: Any = DEFAULT_MIN_DELAY_MS,
        max_delay_ms: Any = DEFAULT_MAX_DELAY_MS,
        cookies: Optional[str] = None,
        cookies_json: Any = None,
        proxy_urls: Any = None,
        max_concurrency: Any = DEFAULT_MAX_CONCURRENCY,
        max_request_retries: Any = DEFAULT_MAX_REQUEST_RETRIES,
        handler_timeout_secs: Any = DEFAULT_HANDLER_TIMEOUT_SECS,
        link_slack_factor: Any = DEFAULT_LINK_SLACK_FACTOR,
        search_url: str = SEARCH_URL,
    ):
        self.keyword = (keyword or "").strip()
        self.location = (location or "").strip()
        self.category = (category or "").strip()
        self.search_url = search_url

        self.start_urls = []
        for url in start_urls or []:
            url = (url or "").strip()
            if is_valid_absolute_url(url):
                self.start_urls.append(url)
            elif url:
                logger.warning(f"Ignoring invalid start URL: {url}")

        self.results_wanted = _to_int(results_wanted, DEFAULT_RESULTS_WANTED, 1)
        self.max_pages = _to_int(max_pages, DEFAULT_MAX_PAGES, 1)
        self.collect_details = _to_bool(collect_details, True)
        self.dedupe = _to_bool(dedupe, True)

        min_delay = _to_int(min_delay_ms, DEFAULT_MIN_DELAY_MS, 0)
        max_delay = _to_int(max_delay_ms, DEFAULT_MAX_DELAY_MS, 0)
        self.min_delay_ms, self.max_delay_ms = min(min_delay, max_delay), max(min_delay, max_delay)

        self.cookies = parse_cookie_string(cookies)
        self.cookies.update(parse_cookie_json(cookies_json))
        self.proxy_urls = parse_proxy_urls(proxy_urls)

        self.max_concurrency = _to_int(max_concurrency, DEFAULT_MAX_CONCURRENCY, 1)
        self.max_request_retries = _to_int(max_request_retries, DEFAULT_MAX_REQUEST_RETRIES, 0)
        self.handler_timeout_secs = _to_float(handler_timeout_secs, DEFAULT_HANDLER_TIMEOUT_SECS, 1.0)
        self.link_slack_factor = _to_float(link_slack_factor, DEFAULT_LINK_SLACK_FACTOR, 1.0)

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """Build from JOBCRAWL_* environment variables."""
        start_urls = os.getenv("JOBCRAWL_START_URLS", "")
        return cls(
            keyword=os.getenv("JOBCRAWL_KEYWORD", ""),
            location=os.getenv("JOBCRAWL_LOCATION", ""),
            category=os.getenv("JOBCRAWL_CATEGORY", ""),
            start_urls=[u for u in start_urls.split(',') if u.strip()],
            results_wanted=os.getenv("JOBCRAWL_RESULTS_WANTED", DEFAULT_RESULTS_WANTED),
            max_pages=os.getenv("JOBCRAWL_MAX_PAGES", DEFAULT_MAX_PAGES),
            collect_details=_to_bool(os.getenv("JOBCRAWL_COLLECT_DETAILS"), True),
            dedupe=_to_bool(os.getenv("JOBCRAWL_DEDUPE"), True),
            min_delay_ms=os.getenv("JOBCRAWL_MIN_DELAY_MS", DEFAULT_MIN_DELAY_MS),
            max_delay_ms=os.getenv("JOBCRAWL_MAX_DELAY_MS", DEFAULT_MAX_DELAY_MS),
            cookies=os.getenv("JOBCRAWL_COOKIES"),
            cookies_json=os.getenv("JOBCRAWL_COOKIES_JSON"),
            proxy_urls=os.getenv("JOBCRAWL_PROXY_URLS"),
            max_concurrency=os.getenv("JOBCRAWL_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
            max_request_retries=os.getenv("JOBCRAWL_MAX_REQUEST_RETRIES", DEFAULT_MAX_REQUEST_RETRIES),
            handler_timeout_secs=os.getenv("JOBCRAWL_HANDLER_TIMEOUT_SECS", DEFAULT_HANDLER_TIMEOUT_SECS),
            link_slack_factor=os.getenv("JOBCRAWL_LINK_SLACK_FACTOR", DEFAULT_LINK_SLACK_FACTOR),
        )

    @classmethod
    def from_input(cls, data: Dict[str, Any]) -> "CrawlConfig":
        """Build from an actor-style input mapping."""
        data = data or {}
        start_urls = data.get('startUrls') or []
        if isinstance(start_urls, str):
            start_urls = [start_urls]
        # Request-list style entries: {"url": ...}
        start_urls = [u.get('url') if isinstance(u, dict) else u for u in start_urls]
        if data.get('startUrl'):
            start_urls.insert(0, data['startUrl'])

        return cls(
            keyword=data.get('keyword', ''),
            location=data.get('location', ''),
            category=data.get('category', ''),
            start_urls=[u for u in start_urls if isinstance(u, str)],
            results_wanted=data.get('results_wanted', DEFAULT_RESULTS_WANTED),
            max_pages=data.get('max_pages', DEFAULT_MAX_PAGES),
            collect_details=_to_bool(data.get('collectDetails'), True),
            dedupe=_to_bool(data.get('dedupe'), True),
            min_delay_ms=data.get('minDelayMs', DEFAULT_MIN_DELAY_MS),
            max_delay_ms=data.get('maxDelayMs', DEFAULT_MAX_DELAY_MS),
            cookies=data.get('cookies'),
            cookies_json=data.get('cookiesJson'),
            proxy_urls=data.get('proxyConfiguration'),
            max_concurrency=data.get('maxConcurrency', DEFAULT_MAX_CONCURRENCY),
            max_request_retries=data.get('maxRequestRetries', DEFAULT_MAX_REQUEST_RETRIES),
        )

    def build_search_url(self) -> str:
        """Search URL with keyword, location and category merged into the query."""
        return build_url(self.search_url, {
            'searchkeyword': self.keyword,
            'location': self.location,
            'category': self.category,
            'useclocation': 'true',
        })

    def seed_urls(self) -> List[str]:
        return list(self.start_urls) or [self.build_search_url()]

    def summary(self) -> Dict[str, Any]:
        """Loggable view (cookie values and proxies masked)."""
        return {
            'keyword': self.keyword,
            'location': self.location,
            'category': self.category,
            'start_urls': self.start_urls,
            'results_wanted': self.results_wanted,
            'max_pages': self.max_pages,
            'collect_details': self.collect_details,
            'dedupe': self.dedupe,
            'delay_ms': (self.min_delay_ms, self.max_delay_ms),
            'cookies': sorted(self.cookies),
            'proxies': len(self.proxy_urls),
            'max_concurrency': self.max_concurrency,
        }
