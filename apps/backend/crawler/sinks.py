"""
Result sinks. The traversal controller calls emit() once per accepted record.
"""

import asyncio
import json
import logging
import os
from typing import List

from pipeline.models import JobRecord

logger = logging.getLogger(__name__)


class MemorySink:
    """Collects records in a list."""

    def __init__(self):
        self.records: List[JobRecord] = []

    async def emit(self, record: JobRecord):
        self.records.append(record)

    def __len__(self):
        return len(self.records)


class JsonLinesSink:
    """
    Appends one JSON object per record to a file.

    The parent directory is created up front. Each write is a small blocking
    append made under the sink's lock; records are emitted one at a time, so
    it is not offloaded to a thread.
    """

    def __init__(self, path: str):
        self.path = path
        self.count = 0
        self._lock = asyncio.Lock()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    async def emit(self, record: JobRecord):
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        async with self._lock:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
            self.count += 1
        logger.debug(f"Wrote record {record.url} to {self.path}")
