"""
Traversal controller: LIST/DETAIL state machine with budget and dedupe bookkeeping.

LIST(page) -> job links -> DETAIL requests (or bare records) + LIST(page + 1)
DETAIL     -> JSON-LD / heuristics -> validated JobRecord -> sink

All shared counters live on TraversalState; handlers mutate them only
through its lock-guarded methods.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Dict, List, Optional, Set

from core.urls import normalize_url

from pipeline.document import Document
from pipeline.extractor import DetailExtractor
from pipeline.links import LinkClassifier
from pipeline.models import CrawlRequest, JobRecord, PageRole, RECORD_FIELDS
from pipeline.next_data import find_job_card, job_cards_by_url

logger = logging.getLogger(__name__)

# Failure classes handed back to the session policy
FAILURE_RETIRE = "retire"
FAILURE_MARK_BAD = "mark_bad"
BLOCKING_STATUS_CODES = {403, 429}

Enqueue = Callable[[CrawlRequest], Awaitable[None]]


class TraversalState:
    """
    Budget and seen-URL bookkeeping shared by all concurrent handlers.

    Two append-only sets: URLs claimed for DETAIL dispatch and URLs already
    emitted. With dedupe off neither set is consulted; the budget always is.
    """

    def __init__(self, results_wanted: int, max_pages: int, dedupe: bool = True):
        self.results_wanted = max(1, int(results_wanted))
        self.max_pages = max(1, int(max_pages))
        self.dedupe = dedupe
        self.saved_count = 0
        self.enqueued: Set[str] = set()
        self.emitted: Set[str] = set()
        self._lock = asyncio.Lock()

    def remaining(self) -> int:
        return max(0, self.results_wanted - self.saved_count)

    @property
    def budget_met(self) -> bool:
        return self.saved_count >= self.results_wanted

    def is_enqueued(self, url: str) -> bool:
        return self.dedupe and url in self.enqueued

    async def claim_for_enqueue(self, url: str) -> bool:
        """Mark a URL as queued for DETAIL; False if it was already claimed."""
        async with self._lock:
            if self.dedupe:
                if url in self.enqueued:
                    return False
                self.enqueued.add(url)
            return True

    async def commit_emit(self, url: str) -> bool:
        """
        Reserve one slot of the results budget for url.

        False when the budget is met or the URL was already emitted; the
        caller must then drop the record.
        """
        async with self._lock:
            if self.saved_count >= self.results_wanted:
                return False
            if self.dedupe:
                if url in self.emitted:
                    return False
                self.emitted.add(url)
            self.saved_count += 1
            return True


def classify_failure(error: Exception) -> str:
    """Blocking signals (403/429) retire the session; anything else marks it bad."""
    status_code = getattr(error, 'status_code', None)
    if status_code in BLOCKING_STATUS_CODES:
        return FAILURE_RETIRE
    return FAILURE_MARK_BAD


class TraversalController:
    """Page handler plugged into the fetch substrate."""

    def __init__(
        self,
        config,
        state: TraversalState,
        enqueue: Enqueue,
        sink,
        link_classifier: Optional[LinkClassifier] = None,
        extractor: Optional[DetailExtractor] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.state = state
        self.enqueue = enqueue
        self.sink = sink
        self.link_classifier = link_classifier or LinkClassifier()
        self.extractor = extractor or DetailExtractor()
        self.rng = rng or random.Random()

    def seed_requests(self) -> List[CrawlRequest]:
        """LIST(1) requests from explicit seeds or the synthesized search URL."""
        requests = []
        seen = set()
        for url in self.config.seed_urls():
            key = normalize_url(url)
            if key in seen:
                continue
            seen.add(key)
            requests.append(CrawlRequest(
                url=url,
                role=PageRole.LIST,
                page_number=1,
                user_data={'category': self.config.category or None},
            ))
        logger.info(f"[traversal] Seeding {len(requests)} LIST request(s)")
        return requests

    async def jitter(self):
        low, high = self.config.min_delay_ms, self.config.max_delay_ms
        if high <= 0:
            return
        await asyncio.sleep(self.rng.uniform(low, high) / 1000.0)

    async def handle(self, doc: Document, request: CrawlRequest):
        await self.jitter()
        if request.role == PageRole.LIST:
            await self.handle_list(doc, request)
        else:
            await self.handle_detail(doc, request)

    async def handle_list(self, doc: Document, request: CrawlRequest):
        page = request.page_number
        if page > self.state.max_pages:
            logger.info(f"[traversal] Skipping LIST page {page} beyond max_pages={self.state.max_pages}")
            return
        if self.state.budget_met:
            logger.info(f"[traversal] Results budget met, ignoring LIST page {page}")
            return

        links, strategy = self.link_classifier.find_job_links(doc, request.url)
        links = self._dedupe_in_order(links)
        logger.info(f"[traversal] LIST page {page}: {len(links)} job link(s) via {strategy} ({request.url})")
        if not links:
            logger.warning(f"[traversal] No job links on LIST page {page} ({request.url}), stopping pagination")
            return

        if self.config.collect_details:
            queued = await self._queue_details(links, request)
            continue_paging = queued > 0
        else:
            await self._emit_bare_records(doc, links, request)
            continue_paging = not self.state.budget_met

        if page >= self.state.max_pages:
            logger.info(f"[traversal] Reached max_pages={self.state.max_pages}, not paginating")
            return
        if not continue_paging:
            logger.info(f"[traversal] Stopping pagination after LIST page {page}")
            return

        next_url = self.link_classifier.find_next_page(doc, request.url, page)
        if not next_url:
            logger.info(f"[traversal] No next page after LIST page {page}")
            return
        await self.enqueue(CrawlRequest(
            url=next_url,
            role=PageRole.LIST,
            page_number=page + 1,
            user_data=dict(request.user_data),
        ))

    def _dedupe_in_order(self, links: List[str]) -> List[str]:
        seen = set()
        result = []
        for link in links:
            url = normalize_url(link)
            if url not in seen:
                seen.add(url)
                result.append(url)
        return result

    def _select(self, links: List[str], limit: int) -> List[str]:
        """First `limit` links not already claimed."""
        selected = []
        for url in links:
            if len(selected) >= limit:
                break
            if not self.state.is_enqueued(url):
                selected.append(url)
        return selected

    async def _queue_details(self, links: List[str], request: CrawlRequest) -> int:
        limit = int(self.state.remaining() * self.config.link_slack_factor)
        queued = 0
        for url in self._select(links, limit):
            if not await self.state.claim_for_enqueue(url):
                continue
            await self.enqueue(CrawlRequest(
                url=url,
                role=PageRole.DETAIL,
                user_data={
                    'category': request.user_data.get('category'),
                    'list_url': request.url,
                },
            ))
            queued += 1
        logger.info(f"[traversal] Queued {queued} DETAIL request(s) from LIST page {request.page_number}")
        return queued

    async def _emit_bare_records(self, doc: Document, links: List[str], request: CrawlRequest):
        cards = job_cards_by_url(doc, request.url)
        emitted = 0
        for url in self._select(links, self.state.remaining()):
            if not await self.state.claim_for_enqueue(url):
                continue
            record = self._bare_record(url, find_job_card(cards, url), request.user_data.get('category'))
            if record is None:
                continue
            if not await self.state.commit_emit(url):
                break
            await self.sink.emit(record)
            emitted += 1
        logger.info(f"[traversal] Emitted {emitted} bare record(s) from LIST page {request.page_number}")

    def _bare_record(self, url: str, card: Optional[Dict], category: Optional[str]) -> Optional[JobRecord]:
        """Record from the listing card alone; None when it fails validation (no card means no title)."""
        data = {name: (card or {}).get(name) for name in RECORD_FIELDS}
        data['url'] = url
        if not data.get('category'):
            data['category'] = category

        data, is_valid, _, warnings = self.extractor.validator.clean_and_validate(data)
        if not is_valid:
            return None
        return JobRecord(**data, warnings=warnings)

    async def handle_detail(self, doc: Document, request: CrawlRequest):
        if self.state.budget_met:
            logger.debug(f"[traversal] Budget met, skipping DETAIL {request.url}")
            return

        candidate = self.extractor.extract(doc, url=request.url,
                                           category_hint=request.user_data.get('category'))
        if candidate.login_wall:
            logger.info(f"[traversal] Login wall detected on {candidate.url}, record flagged as degraded")

        record = self.extractor.build_record(candidate)
        if record is None:
            return

        if not await self.state.commit_emit(record.url):
            logger.debug(f"[traversal] Dropping {record.url} (duplicate or budget met)")
            return

        await self.sink.emit(record)
        logger.info(f"[traversal] Saved {self.state.saved_count}/{self.state.results_wanted}: "
                    f"{record.title} ({record.url})")
