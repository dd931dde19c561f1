"""
Heuristic extractor.

Per-field fallback cascades over the HTML, used only for fields the JSON-LD
block left empty. Every strategy is a plain `(Document) -> Optional[str]`
function; a cascade returns the first non-empty result.
"""

import re
import logging
from typing import Callable, Dict, List, Optional

from dateutil import parser as date_parser

from .description import extract_description_html
from .document import Document, clean_text, element_text

logger = logging.getLogger(__name__)

Strategy = Callable[[Document], Optional[str]]

TITLE_SEPARATORS_RE = re.compile(r'\s+[|\-–—:]\s+')

EMPLOYMENT_TYPES = {
    'full-time': 'Full-Time',
    'full time': 'Full-Time',
    'part-time': 'Part-Time',
    'part time': 'Part-Time',
    'contract': 'Contract',
    'temporary': 'Temporary',
    'freelance': 'Freelance',
}
EMPLOYMENT_TYPE_RE = re.compile(r'\b(full[- ]time|part[- ]time|contract|temporary|freelance)\b', re.IGNORECASE)

_CURRENCY = r'(?:[$€£]|\b(?:USD|EUR|GBP|CAD|AUD)\b\s?)'
_AMOUNT = r'\d[\d,]*(?:\.\d+)?\s*[kK]?'
_RANGE_SEP = r'\s*(?:-|–|—|to)\s*'
_UNIT = r'(?:per|/|an?)\s*(?:hour|hr|year|yr|annum|month|week|day)\b'

SALARY_PATTERNS = [
    # $50,000 - $70,000 (per year)
    re.compile(rf'{_CURRENCY}\s*{_AMOUNT}{_RANGE_SEP}{_CURRENCY}?\s*{_AMOUNT}(?:\s*{_UNIT})?', re.IGNORECASE),
    # 25 - 30 per hour
    re.compile(rf'\b{_AMOUNT}{_RANGE_SEP}{_AMOUNT}\s*{_UNIT}', re.IGNORECASE),
    # $65 / hour
    re.compile(rf'{_CURRENCY}\s*{_AMOUNT}(?:\s*{_UNIT})?', re.IGNORECASE),
]

JOB_TYPE_LABEL_RE = re.compile(r'job type|employment|schedule')
SALARY_LABEL_RE = re.compile(r'\b(salary|compensation|pay|rate)\b')
LOCATION_LABEL_RE = re.compile(r'job location|based')
DATE_LABEL_RE = re.compile(r'date posted|posted|published')
CATEGORY_LABELS = ('categories', 'category')

LOCATION_DATA_ATTRIBUTES = ['data-location', 'data-job-location']


def _row_value(doc: Document, matches: Callable[[str], bool]) -> Optional[str]:
    for row in doc.rows:
        if matches(row.label):
            return row.value
    return None


def to_iso_date(raw: Optional[str]) -> Optional[str]:
    """Reformat a parseable date as YYYY-MM-DD; keep the raw string otherwise."""
    if not raw:
        return None
    raw = clean_text(raw)
    try:
        return date_parser.parse(raw).strftime('%Y-%m-%d')
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug(f"Keeping unparsed date '{raw}': {e}")
        return raw


# Title

def title_from_h1(doc: Document) -> Optional[str]:
    return doc.first_text(['h1'])


def title_from_h2(doc: Document) -> Optional[str]:
    return doc.first_text(['h2'])


def title_from_meta(doc: Document) -> Optional[str]:
    return doc.meta('og:title', 'twitter:title', 'title')


def title_from_page_title(doc: Document) -> Optional[str]:
    title = doc.title
    if not title:
        return None
    first = TITLE_SEPARATORS_RE.split(title, maxsplit=1)[0].strip()
    return first or None


# Company

def company_from_subheading(doc: Document) -> Optional[str]:
    heading = doc.select_one('h1')
    if heading is None:
        return None
    sibling = heading.find_next_sibling(['h2', 'h3', 'h4', 'h5', 'h6'])
    if sibling is None and heading.parent is not None:
        sibling = heading.parent.find_next_sibling(['h2', 'h3', 'h4', 'h5', 'h6'])
    text = element_text(sibling)
    return text or None


def company_from_meta(doc: Document) -> Optional[str]:
    return doc.meta('og:site_name')


def company_from_class(doc: Document) -> Optional[str]:
    for element in doc.select('[class*="company"], [class*="Company"]'):
        text = element_text(element)
        if text and len(text) <= 120:
            return text
    return None


# Job type

def job_type_from_rows(doc: Document) -> Optional[str]:
    return _row_value(doc, lambda label: bool(JOB_TYPE_LABEL_RE.search(label)))


def job_type_from_text(doc: Document) -> Optional[str]:
    match = EMPLOYMENT_TYPE_RE.search(doc.text)
    if not match:
        return None
    return EMPLOYMENT_TYPES.get(match.group(1).lower())


# Salary

def salary_from_rows(doc: Document) -> Optional[str]:
    return _row_value(doc, lambda label: bool(SALARY_LABEL_RE.search(label)))


def salary_from_text(doc: Document) -> Optional[str]:
    text = doc.text
    for pattern in SALARY_PATTERNS:
        match = pattern.search(text)
        if match:
            return clean_text(match.group(0))
    return None


# Location

def location_from_rows(doc: Document) -> Optional[str]:
    return _row_value(doc, lambda label: label == 'location' or bool(LOCATION_LABEL_RE.search(label)))


def location_from_data_attribute(doc: Document) -> Optional[str]:
    for attribute in LOCATION_DATA_ATTRIBUTES:
        value = doc.attr(f'[{attribute}]', attribute)
        if value:
            return value
    return doc.first_text(['[data-testid*="location"]'])


# Date posted

def date_from_time_element(doc: Document) -> Optional[str]:
    return to_iso_date(doc.attr('time[datetime]', 'datetime'))


def date_from_rows(doc: Document) -> Optional[str]:
    return to_iso_date(_row_value(doc, lambda label: bool(DATE_LABEL_RE.search(label))))


# Category

def category_from_rows(doc: Document) -> Optional[str]:
    for row in doc.rows:
        if row.label not in CATEGORY_LABELS:
            continue
        names = [element_text(a) for a in row.element.find_all('a')]
        names = [n for n in names if n]
        if names:
            return ', '.join(names)
        return row.value
    return None


FALLBACK_STRATEGIES: Dict[str, List[Strategy]] = {
    'title': [title_from_h1, title_from_h2, title_from_meta, title_from_page_title],
    'company': [company_from_subheading, company_from_meta, company_from_class],
    'job_type': [job_type_from_rows, job_type_from_text],
    'salary': [salary_from_rows, salary_from_text],
    'location': [location_from_rows, location_from_data_attribute],
    'date_posted': [date_from_time_element, date_from_rows],
    'category': [category_from_rows],
    'description_html': [extract_description_html],
}


class HeuristicExtractor:
    """Runs the fallback cascade for a single field."""

    def __init__(self, strategies: Optional[Dict[str, List[Strategy]]] = None):
        self.strategies = strategies or FALLBACK_STRATEGIES

    def extract_field(self, field_name: str, doc: Document) -> Optional[str]:
        for strategy in self.strategies.get(field_name, []):
            try:
                value = strategy(doc)
            except Exception as e:
                logger.warning(f"Strategy {strategy.__name__} failed on {doc.url}: {e}")
                continue
            if value and value.strip():
                logger.debug(f"{field_name} via {strategy.__name__}")
                return value.strip()
        return None
