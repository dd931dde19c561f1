"""
Record validation before a job is emitted.

Validations:
- Missing required fields (title, url) reject the record
- URL format validation
- Missing company / description only add warnings
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from core.urls import is_valid_absolute_url

logger = logging.getLogger(__name__)


class RecordValidator:
    """
    Validates candidate records before emission.
    """

    REQUIRED_FIELDS = ['title', 'url']
    SOFT_FIELDS = {
        'company': 'missing_company',
        'description_text': 'missing_description',
    }

    def clean(self, job: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce empty/whitespace-only strings to None."""
        cleaned = {}
        for key, value in job.items():
            if isinstance(value, str):
                value = value.strip() or None
            cleaned[key] = value
        return cleaned

    def validate(self, job: Dict[str, Any]) -> Tuple[bool, Optional[str], List[str]]:
        """
        Validate a single (already cleaned) job.

        Returns:
            Tuple of (is_valid, error_message, warnings)
        """
        warnings = []

        for field in self.REQUIRED_FIELDS:
            value = job.get(field)
            if not value or (isinstance(value, str) and not value.strip()):
                return False, f"Missing required field: {field}", warnings

        if not is_valid_absolute_url(job['url']):
            return False, f"Invalid URL: {job['url'][:100]}", warnings

        for field, warning in self.SOFT_FIELDS.items():
            if not job.get(field):
                warnings.append(warning)

        return True, None, warnings

    def clean_and_validate(self, job: Dict[str, Any]) -> Tuple[Dict[str, Any], bool, Optional[str], List[str]]:
        cleaned = self.clean(job)
        is_valid, error, warnings = self.validate(cleaned)
        if not is_valid:
            logger.warning(f"Rejected record {cleaned.get('url') or '<no url>'}: {error}")
        elif warnings:
            logger.debug(f"Record {cleaned['url']} accepted with warnings: {', '.join(warnings)}")
        return cleaned, is_valid, error, warnings
