"""
Data model shared by the extraction pipeline and the crawler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# Output fields in emission order
RECORD_FIELDS = [
    'title', 'company', 'job_type', 'category', 'location',
    'date_posted', 'salary', 'description_html', 'description_text', 'url',
]

# Fields filled by extractors (url comes from the request)
EXTRACTED_FIELDS = [f for f in RECORD_FIELDS if f not in ('url', 'description_text')]


class PageRole(str, Enum):
    LIST = "LIST"
    DETAIL = "DETAIL"


@dataclass
class CrawlRequest:
    """A page to fetch plus the metadata its handler needs."""
    url: str
    role: PageRole
    page_number: int = 1
    user_data: Dict[str, Any] = field(default_factory=dict)
    retry_count: int = 0


class JobRecord(BaseModel):
    """A normalized job posting, the unit handed to result sinks."""
    title: Optional[str] = None
    company: Optional[str] = None
    job_type: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    date_posted: Optional[str] = None
    salary: Optional[str] = None
    description_html: Optional[str] = None
    description_text: Optional[str] = None
    url: str
    is_degraded: bool = False
    warnings: List[str] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
