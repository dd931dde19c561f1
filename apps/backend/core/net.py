"""
HTTP client with retries, backoff and browser-like headers.

Each fetch is made with the session's user agent, cookies and proxy.
A transport can be injected (httpx.MockTransport in tests).
"""
import os
import time
import asyncio
import logging
from typing import Optional, Dict, Tuple
from email.utils import parsedate_to_datetime

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 2
MAX_RETRY_AFTER_SECS = 30


class HTTPClient:
    """Async HTTP client used by the crawl runner"""

    def __init__(self, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = httpx.Timeout(timeout or float(os.getenv("JOBCRAWL_HTTP_TIMEOUT", DEFAULT_TIMEOUT)))
        self.transport = transport
        # One pooled client per proxy URL (None = direct)
        self._clients: Dict[Optional[str], httpx.AsyncClient] = {}
        self._clients_lock = asyncio.Lock()

    async def _get_client(self, proxy_url: Optional[str]) -> httpx.AsyncClient:
        async with self._clients_lock:
            client = self._clients.get(proxy_url)
            if client is None:
                kwargs = {"timeout": self.timeout, "follow_redirects": True}
                if self.transport is not None:
                    kwargs["transport"] = self.transport
                elif proxy_url:
                    kwargs["proxy"] = proxy_url
                client = httpx.AsyncClient(**kwargs)
                self._clients[proxy_url] = client
            return client

    async def close(self):
        async with self._clients_lock:
            for client in self._clients.values():
                await client.aclose()
            self._clients.clear()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _get_headers(self, user_agent: Optional[str] = None,
                     custom_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Build browser-like request headers"""
        headers = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
        }
        if user_agent:
            headers["User-Agent"] = user_agent
        if custom_headers:
            headers.update(custom_headers)
        return headers

    async def _handle_retry_after(self, headers: httpx.Headers, url: str):
        """Honor a short Retry-After on 429/503"""
        retry_after = headers.get("retry-after")
        if not retry_after:
            return
        try:
            wait_seconds = int(retry_after)
        except ValueError:
            try:
                retry_date = parsedate_to_datetime(retry_after)
                wait_seconds = max(0, int(retry_date.timestamp() - time.time()))
            except (TypeError, ValueError):
                logger.warning(f"[net] Could not parse Retry-After header: {retry_after}")
                return

        wait_seconds = min(wait_seconds, MAX_RETRY_AFTER_SECS)
        if wait_seconds > 0:
            logger.info(f"[net] Retry-After header: waiting {wait_seconds}s for {url}")
            await asyncio.sleep(wait_seconds)

    @retry(
        stop=stop_after_attempt(MAX_RETRIES + 1),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True
    )
    async def fetch(
        self,
        url: str,
        user_agent: Optional[str] = None,
        cookies: Optional[Dict[str, str]] = None,
        proxy_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, str], str]:
        """
        GET a page.

        Returns:
            (status_code, headers, text)
        """
        client = await self._get_client(proxy_url)
        request_headers = self._get_headers(user_agent, headers)
        if cookies:
            request_headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())

        start_time = time.time()
        try:
            response = await client.get(url, headers=request_headers)
        except httpx.TimeoutException as e:
            logger.error(f"[net] Timeout fetching {url}: {e}")
            raise
        except httpx.ConnectError as e:
            logger.error(f"[net] Connection error fetching {url}: {e}")
            raise

        elapsed_ms = int((time.time() - start_time) * 1000)
        if response.status_code in (429, 503):
            await self._handle_retry_after(response.headers, url)

        logger.info(f"[net] GET {response.status_code} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")
        return response.status_code, dict(response.headers), response.text
