"""
Session pool for the fetch substrate.

Each session pins a user agent, a cookie jar and (optionally) a proxy.
Sessions are retired after too many uses or too many errors; blocking
responses (403/429) retire them immediately.
"""

import asyncio
import itertools
import logging
import random
import uuid
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_POOL_SIZE = 50
MAX_USAGE_COUNT = 30
MAX_ERROR_SCORE = 3

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
]


class Session:
    """One identity used for a bounded number of requests."""

    def __init__(self, user_agent: str, cookies: Optional[Dict[str, str]] = None,
                 proxy_url: Optional[str] = None,
                 max_usage_count: int = MAX_USAGE_COUNT,
                 max_error_score: int = MAX_ERROR_SCORE):
        self.id = uuid.uuid4().hex[:12]
        self.user_agent = user_agent
        self.cookies = dict(cookies or {})
        self.proxy_url = proxy_url
        self.max_usage_count = max_usage_count
        self.max_error_score = max_error_score
        self.usage_count = 0
        self.error_score = 0
        self.retired = False

    @property
    def is_usable(self) -> bool:
        return (not self.retired
                and self.usage_count < self.max_usage_count
                and self.error_score < self.max_error_score)

    def mark_good(self):
        self.error_score = max(0, self.error_score - 1)

    def mark_bad(self):
        self.error_score += 1
        if self.error_score >= self.max_error_score:
            self.retire()

    def retire(self):
        if not self.retired:
            logger.debug(f"[sessions] Retiring session {self.id} (used {self.usage_count}, errors {self.error_score})")
        self.retired = True

    def __repr__(self):
        return f"Session(id={self.id}, usage={self.usage_count}, errors={self.error_score}, retired={self.retired})"


class SessionPool:
    """Round-robin over live sessions, replacing dead ones on demand."""

    def __init__(self, cookies: Optional[Dict[str, str]] = None,
                 proxy_urls: Optional[List[str]] = None,
                 max_pool_size: int = MAX_POOL_SIZE,
                 max_usage_count: int = MAX_USAGE_COUNT,
                 max_error_score: int = MAX_ERROR_SCORE,
                 user_agents: Optional[List[str]] = None,
                 rng: Optional[random.Random] = None):
        self.cookies = dict(cookies or {})
        self.max_pool_size = max(1, max_pool_size)
        self.max_usage_count = max_usage_count
        self.max_error_score = max_error_score
        self.user_agents = user_agents or USER_AGENTS
        self.rng = rng or random.Random()
        self._proxies = itertools.cycle(proxy_urls) if proxy_urls else None
        self.sessions: List[Session] = []
        self.created_count = 0
        self._lock = asyncio.Lock()

    def _new_session(self) -> Session:
        session = Session(
            user_agent=self.rng.choice(self.user_agents),
            cookies=self.cookies,
            proxy_url=next(self._proxies) if self._proxies else None,
            max_usage_count=self.max_usage_count,
            max_error_score=self.max_error_score,
        )
        self.created_count += 1
        return session

    async def get_session(self) -> Session:
        """A usable session with its usage count already incremented."""
        async with self._lock:
            self.sessions = [s for s in self.sessions if s.is_usable]
            if len(self.sessions) < self.max_pool_size:
                session = self._new_session()
                self.sessions.append(session)
            else:
                session = self.rng.choice(self.sessions)
            session.usage_count += 1
            return session

    def stats(self) -> Dict[str, int]:
        live = [s for s in self.sessions if s.is_usable]
        return {
            'live': len(live),
            'created': self.created_count,
        }
