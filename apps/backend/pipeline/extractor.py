"""
DETAIL page extraction orchestrator.

Stages, per field:
1. JSON-LD JobPosting block (taken verbatim when present)
2. HTML heuristic cascade, only for fields still empty
3. External hint (category only)

The description is sanitized before storage and a plain-text derivative
is produced from the cleaned HTML.
"""

import logging
from typing import Any, Dict, List, Optional

from core.urls import normalize_url

from .document import Document
from .heuristics import HeuristicExtractor
from .jsonld import JSONLDExtractor
from .models import EXTRACTED_FIELDS, JobRecord
from .sanitizer import DescriptionSanitizer
from .validator import RecordValidator

logger = logging.getLogger(__name__)

# Phrases shown when the full posting sits behind a login/paywall
LOGIN_WALL_PHRASES = [
    'log in to view',
    'sign up to see the full job description',
    'sign up to view the full job description',
    'unlock this job',
    'join now to unlock full access',
    'become a member to view',
    'to see the full job details',
    'create a free account to view',
]


def detect_login_wall(doc: Document) -> bool:
    """Check page text for login-wall/paywall prompts."""
    text = doc.text.lower()
    return any(phrase in text for phrase in LOGIN_WALL_PHRASES)


class FieldResult:
    """Result for a single extracted field."""

    def __init__(self, value: Any = None, source: Optional[str] = None,
                 raw_snippet: Optional[str] = None):
        self.value = value
        self.source = source
        self.raw_snippet = raw_snippet

    def is_valid(self) -> bool:
        """Check if field has a valid value."""
        if self.value is None:
            return False
        if isinstance(self.value, str) and not self.value.strip():
            return False
        return True

    def __repr__(self):
        return f"FieldResult(value={str(self.value)[:40]!r}, source={self.source})"


class CandidateJob:
    """Per-page accumulator; a populated field is never overwritten."""

    def __init__(self, url: str):
        self.url = url
        self.fields: Dict[str, FieldResult] = {}
        self.login_wall = False

    def set_field(self, field_name: str, result: FieldResult) -> bool:
        if not result.is_valid() or self.has(field_name):
            return False
        self.fields[field_name] = result
        return True

    def has(self, field_name: str) -> bool:
        result = self.fields.get(field_name)
        return result is not None and result.is_valid()

    def get(self, field_name: str) -> Optional[Any]:
        result = self.fields.get(field_name)
        return result.value if result and result.is_valid() else None

    def source_of(self, field_name: str) -> Optional[str]:
        result = self.fields.get(field_name)
        return result.source if result else None

    def missing(self) -> List[str]:
        return [f for f in EXTRACTED_FIELDS if not self.has(f)]

    def to_dict(self) -> Dict[str, Any]:
        data = {name: self.get(name) for name in EXTRACTED_FIELDS}
        data['url'] = self.url
        return data


class DetailExtractor:
    """Builds a JobRecord from one DETAIL page."""

    def __init__(self, jsonld_extractor: Optional[JSONLDExtractor] = None,
                 heuristic_extractor: Optional[HeuristicExtractor] = None,
                 sanitizer: Optional[DescriptionSanitizer] = None,
                 validator: Optional[RecordValidator] = None):
        self.jsonld_extractor = jsonld_extractor or JSONLDExtractor()
        self.heuristic_extractor = heuristic_extractor or HeuristicExtractor()
        self.sanitizer = sanitizer or DescriptionSanitizer()
        self.validator = validator or RecordValidator()

    def extract(self, doc: Document, url: Optional[str] = None,
                category_hint: Optional[str] = None) -> CandidateJob:
        """Fill a CandidateJob: JSON-LD first, then per-field HTML fallback."""
        candidate = CandidateJob(normalize_url(url or doc.url))

        structured = self.jsonld_extractor.extract(doc)
        if structured:
            for field_name, value in structured.items():
                if field_name == 'description_html':
                    value = self.sanitizer.sanitize(value)
                candidate.set_field(field_name, FieldResult(
                    value=value,
                    source='jsonld',
                    raw_snippet=str(value)[:200] if value else None
                ))
        else:
            logger.debug(f"No JSON-LD JobPosting on {candidate.url}")

        for field_name in candidate.missing():
            value = self.heuristic_extractor.extract_field(field_name, doc)
            if field_name == 'description_html':
                value = self.sanitizer.sanitize(value)
            candidate.set_field(field_name, FieldResult(
                value=value,
                source='heuristic',
                raw_snippet=str(value)[:200] if value else None
            ))

        if category_hint and not candidate.has('category'):
            candidate.set_field('category', FieldResult(value=category_hint, source='hint'))

        candidate.login_wall = detect_login_wall(doc)
        return candidate

    def build_record(self, candidate: CandidateJob) -> Optional[JobRecord]:
        """Validate a candidate; None when a hard requirement fails."""
        data = candidate.to_dict()
        data['description_text'] = self.sanitizer.to_text(data.get('description_html'))

        data, is_valid, error, warnings = self.validator.clean_and_validate(data)
        if not is_valid:
            return None

        if candidate.login_wall:
            warnings.append('login_wall')

        return JobRecord(**data, is_degraded=candidate.login_wall, warnings=warnings)
