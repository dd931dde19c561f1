"""
Fetch-and-dispatch substrate: a bounded asyncio worker pool.

Workers take one CrawlRequest at a time, fetch it with a pooled session,
parse it into a Document and await the page handler. Failed fetches are
re-queued until max_request_retries is exhausted.
"""

import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, Iterable, Optional

import httpx

from app.config import CrawlConfig
from core.net import HTTPClient
from core.sessions import SessionPool
from pipeline.document import Document
from pipeline.models import CrawlRequest

from .traversal import FAILURE_RETIRE, TraversalController, TraversalState, classify_failure

logger = logging.getLogger(__name__)

Handler = Callable[[Document, CrawlRequest], Awaitable[None]]
FailureClassifier = Callable[[Exception], str]


class FetchError(Exception):
    """A request that produced no usable document."""

    def __init__(self, url: str, status_code: Optional[int] = None, message: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code} for {url}")


class CrawlRunner:
    """Bounded worker pool over an asyncio.Queue of CrawlRequests."""

    def __init__(self, config: CrawlConfig, http_client: HTTPClient, session_pool: SessionPool):
        self.config = config
        self.http_client = http_client
        self.session_pool = session_pool
        self.queue: asyncio.Queue = asyncio.Queue()
        self.stats = {
            'enqueued': 0,
            'fetched': 0,
            'failed_attempts': 0,
            'dropped': 0,
            'handler_errors': 0,
        }

    async def enqueue(self, request: CrawlRequest):
        self.stats['enqueued'] += 1
        await self.queue.put(request)

    async def run(self, handler: Handler, seeds: Iterable[CrawlRequest],
                  on_failure: Optional[FailureClassifier] = None):
        """Process seeds and everything handlers enqueue until the queue drains."""
        for request in seeds:
            await self.enqueue(request)

        workers = [
            asyncio.create_task(self._worker(handler, on_failure))
            for _ in range(self.config.max_concurrency)
        ]
        try:
            await self.queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        logger.info(f"[runner] Finished: {self.stats}")

    async def _worker(self, handler: Handler, on_failure: Optional[FailureClassifier]):
        while True:
            request = await self.queue.get()
            try:
                await self._process(request, handler, on_failure)
            except Exception as e:
                self.stats['handler_errors'] += 1
                logger.error(f"[runner] Unexpected error processing {request.url}: {e}", exc_info=True)
            finally:
                self.queue.task_done()

    async def _process(self, request: CrawlRequest, handler: Handler,
                       on_failure: Optional[FailureClassifier]):
        session = await self.session_pool.get_session()
        try:
            status, _, text = await self.http_client.fetch(
                request.url,
                user_agent=session.user_agent,
                cookies=session.cookies,
                proxy_url=session.proxy_url,
            )
            if status >= 400:
                raise FetchError(request.url, status)
        except Exception as e:
            # httpx.HTTPError, plus InvalidURL / IDNA errors raised before any request is sent
            if isinstance(e, FetchError):
                error = e
            elif isinstance(e, httpx.HTTPError):
                error = FetchError(request.url, None, str(e))
            else:
                error = FetchError(request.url, None, f"{type(e).__name__}: {e}")
            action = on_failure(error) if on_failure else classify_failure(error)
            if action == FAILURE_RETIRE:
                session.retire()
            else:
                session.mark_bad()
            await self._retry_or_drop(request, error)
            return

        session.mark_good()
        self.stats['fetched'] += 1

        try:
            doc = Document(text, request.url)
            await asyncio.wait_for(handler(doc, request), timeout=self.config.handler_timeout_secs)
        except asyncio.TimeoutError:
            self.stats['handler_errors'] += 1
            logger.error(f"[runner] Handler timed out after {self.config.handler_timeout_secs}s: {request.url}")
        except Exception as e:
            self.stats['handler_errors'] += 1
            logger.error(f"[runner] Handler failed for {request.url}: {e}", exc_info=True)

    async def _retry_or_drop(self, request: CrawlRequest, error: FetchError):
        self.stats['failed_attempts'] += 1
        if request.retry_count < self.config.max_request_retries:
            logger.warning(f"[runner] {error} (attempt {request.retry_count + 1}), retrying")
            await self.enqueue(dataclasses.replace(request, retry_count=request.retry_count + 1))
            return
        self.stats['dropped'] += 1
        logger.warning(f"[runner] Giving up on {request.url} after {request.retry_count + 1} attempt(s): {error}")


async def crawl(config: CrawlConfig, sink, http_client: Optional[HTTPClient] = None,
                session_pool: Optional[SessionPool] = None, rng=None) -> TraversalState:
    """Run one crawl to completion and return the final traversal state."""
    owns_client = http_client is None
    http_client = http_client or HTTPClient()
    session_pool = session_pool or SessionPool(cookies=config.cookies, proxy_urls=config.proxy_urls)

    state = TraversalState(config.results_wanted, config.max_pages, config.dedupe)
    runner = CrawlRunner(config, http_client, session_pool)
    controller = TraversalController(config, state, runner.enqueue, sink, rng=rng)

    logger.info(f"[runner] Starting crawl: {config.summary()}")
    try:
        await runner.run(controller.handle, controller.seed_requests(), on_failure=classify_failure)
    finally:
        if owns_client:
            await http_client.close()

    logger.info(f"[runner] Crawl complete: saved {state.saved_count}/{state.results_wanted} job(s)")
    if state.saved_count == 0:
        logger.warning("[runner] No jobs were saved; check selectors, seed URLs or blocking")
    return state
