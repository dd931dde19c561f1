"""
Shared fixtures: HTML pages captured from the job board (trimmed).
"""

from pathlib import Path

import pytest

from pipeline.document import Document

FIXTURES_DIR = Path(__file__).parent / "fixtures"

LIST_URL = "https://remote.co/remote-jobs/search?searchkeyword=python"
DETAIL_URL = "https://remote.co/job-details/senior-data-analyst-x1"


@pytest.fixture
def load_html():
    def _load(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")
    return _load


@pytest.fixture
def load_doc(load_html):
    def _load(name: str, url: str = DETAIL_URL) -> Document:
        return Document(load_html(name), url)
    return _load
