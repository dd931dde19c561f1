"""
JSON-LD extractor.

Extracts job information from structured JSON-LD data (Schema.org JobPosting).
"""

import html
import json
import logging
from typing import Any, Dict, List, Optional

from .document import Document, clean_text

logger = logging.getLogger(__name__)


def format_number(value: Any) -> Optional[str]:
    """Render 50000.0 as '50000'; pass strings through."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    text = clean_text(str(value))
    return text or None


def format_employment_type(value: str) -> str:
    """FULL_TIME -> Full-Time"""
    parts = [p for p in str(value).strip().split('_') if p]
    return '-'.join(p.capitalize() for p in parts)


class JSONLDExtractor:
    """Extracts job data from JSON-LD structured data."""

    def extract(self, doc: Document) -> Optional[Dict[str, Any]]:
        """
        Map the first JobPosting block on the page to a flat candidate.

        Returns:
            Dictionary of field name -> value (None where the block is silent),
            or None when the page has no parseable JobPosting.
        """
        scripts = doc.select('script[type="application/ld+json"]')

        for script in scripts:
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = json.loads(raw, strict=False)
            except (json.JSONDecodeError, ValueError) as e:
                logger.debug(f"Failed to parse JSON-LD on {doc.url}: {e}")
                continue

            for item in self._flatten_jsonld(data):
                if self._is_job_posting(item):
                    return self._extract_job_posting(item)

        return None

    def _flatten_jsonld(self, data: Any) -> List[Dict]:
        """Flatten JSON-LD structure to list of items."""
        items = []

        if isinstance(data, dict):
            # Check if it's a JobPosting directly
            if self._is_job_posting(data):
                items.append(data)
            # Check for @graph
            elif '@graph' in data and isinstance(data['@graph'], list):
                items.extend([item for item in data['@graph'] if isinstance(item, dict)])
            # Check for itemListElement
            elif 'itemListElement' in data and isinstance(data['itemListElement'], list):
                for element in data['itemListElement']:
                    if isinstance(element, dict) and isinstance(element.get('item'), dict):
                        items.append(element['item'])
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    items.extend(self._flatten_jsonld(item) or [item])

        return items

    def _is_job_posting(self, item: Dict) -> bool:
        """Check if JSON-LD item is a JobPosting."""
        item_type = item.get('@type', '')
        if isinstance(item_type, str):
            return 'JobPosting' in item_type
        elif isinstance(item_type, list):
            return any('JobPosting' in str(t) for t in item_type)
        return False

    def _extract_job_posting(self, job_data: Dict) -> Dict[str, Any]:
        """Extract fields from JobPosting JSON-LD."""
        description = job_data.get('description')
        if isinstance(description, str):
            description = description.strip()
            # Some boards double-escape the HTML body
            if '&lt;' in description and '<' not in description:
                description = html.unescape(description)
        else:
            description = None

        date_posted = job_data.get('datePosted')

        return {
            'title': self._text(job_data.get('title') or job_data.get('name')),
            'company': self._company(job_data.get('hiringOrganization')),
            'location': self._location(job_data),
            'job_type': self._job_type(job_data.get('employmentType')),
            'salary': self._salary(job_data.get('baseSalary')),
            'date_posted': str(date_posted).strip() if date_posted else None,
            'category': self._category(job_data.get('occupationalCategory')),
            'description_html': description or None,
        }

    def _text(self, value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list)):
            return None
        text = clean_text(str(value))
        return text or None

    def _company(self, org: Any) -> Optional[str]:
        if isinstance(org, list):
            org = org[0] if org else None
        if isinstance(org, dict):
            return self._text(org.get('name') or org.get('legalName'))
        if isinstance(org, str):
            return self._text(org)
        return None

    def _location(self, job_data: Dict) -> Optional[str]:
        loc = job_data.get('jobLocation')
        if isinstance(loc, list):
            loc = loc[0] if loc else None

        if isinstance(loc, dict):
            addr = loc.get('address')
            if isinstance(addr, list):
                addr = addr[0] if addr else None
            if isinstance(addr, dict):
                for key in ('addressLocality', 'addressRegion', 'streetAddress'):
                    value = self._text(addr.get(key))
                    if value:
                        return value
            elif isinstance(addr, str):
                return self._text(addr)
            if loc.get('name'):
                return self._text(loc.get('name'))
        elif isinstance(loc, str):
            return self._text(loc)

        # Remote postings describe eligibility instead of a place
        requirements = job_data.get('applicantLocationRequirements')
        if isinstance(requirements, list):
            requirements = requirements[0] if requirements else None
        if isinstance(requirements, dict):
            return self._text(requirements.get('name'))
        return None

    def _job_type(self, employment_type: Any) -> Optional[str]:
        if isinstance(employment_type, list):
            employment_type = employment_type[0] if employment_type else None
        if not employment_type or not isinstance(employment_type, str):
            return None
        return format_employment_type(employment_type) or None

    def _salary(self, base_salary: Any) -> Optional[str]:
        if not isinstance(base_salary, dict):
            return None
        currency = self._text(base_salary.get('currency'))
        if not currency:
            return None

        value = base_salary.get('value')
        quantitative = value if isinstance(value, dict) else base_salary

        single = value if not isinstance(value, dict) else quantitative.get('value')
        single = format_number(single)
        if single:
            return f"{currency} {single}"

        min_value = format_number(quantitative.get('minValue'))
        max_value = format_number(quantitative.get('maxValue'))
        if min_value and max_value:
            return f"{currency} {min_value} - {max_value}"
        return None

    def _category(self, category: Any) -> Optional[str]:
        if isinstance(category, list):
            values = [self._text(c) for c in category]
            joined = ', '.join(v for v in values if v)
            return joined or None
        return self._text(category)
