"""
Crawler: traversal state machine, fetch substrate and result sinks.
"""

from .runner import CrawlRunner, FetchError, crawl
from .sinks import JsonLinesSink, MemorySink
from .traversal import TraversalController, TraversalState, classify_failure

__all__ = [
    'CrawlRunner',
    'FetchError',
    'crawl',
    'JsonLinesSink',
    'MemorySink',
    'TraversalController',
    'TraversalState',
    'classify_failure',
]
