"""
Tests for record validation before emission.
"""

from pipeline.validator import RecordValidator


class TestRecordValidator:

    def setup_method(self):
        self.validator = RecordValidator()

    def test_valid_complete_record(self):
        job = {
            'title': 'Editor',
            'url': 'https://remote.co/job-details/editor-1',
            'company': 'Daily Planet',
            'description_text': 'Edit things.',
        }
        is_valid, error, warnings = self.validator.validate(job)
        assert is_valid is True
        assert error is None
        assert warnings == []

    def test_missing_title_rejected(self):
        is_valid, error, _ = self.validator.validate({'title': None, 'url': 'https://remote.co/job-details/a'})
        assert is_valid is False
        assert 'title' in error

    def test_missing_url_rejected(self):
        is_valid, error, _ = self.validator.validate({'title': 'Editor', 'url': None})
        assert is_valid is False
        assert 'url' in error

    def test_invalid_url_rejected(self):
        is_valid, error, _ = self.validator.validate({'title': 'Editor', 'url': '/job-details/a'})
        assert is_valid is False
        assert 'Invalid URL' in error

    def test_soft_fields_only_warn(self):
        is_valid, _, warnings = self.validator.validate({'title': 'Editor', 'url': 'https://remote.co/j/1'})
        assert is_valid is True
        assert warnings == ['missing_company', 'missing_description']

    def test_clean_coerces_blank_strings(self):
        cleaned = self.validator.clean({'title': '  Editor ', 'company': '   ', 'salary': '', 'url': 'https://x.io/'})
        assert cleaned == {'title': 'Editor', 'company': None, 'salary': None, 'url': 'https://x.io/'}

    def test_whitespace_title_rejected_after_cleaning(self):
        _, is_valid, error, _ = self.validator.clean_and_validate({'title': '   ', 'url': 'https://remote.co/j/1'})
        assert is_valid is False
        assert 'title' in error
