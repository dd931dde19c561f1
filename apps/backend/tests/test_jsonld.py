"""
Unit tests for JSON-LD JobPosting extraction.
"""

import json

import pytest

from pipeline.document import Document
from pipeline.jsonld import JSONLDExtractor, format_employment_type, format_number


def page(*blocks) -> Document:
    scripts = ''.join(
        f'<script type="application/ld+json">{b if isinstance(b, str) else json.dumps(b)}</script>'
        for b in blocks
    )
    return Document(f"<html><head>{scripts}</head><body></body></html>", "https://remote.co/job-details/x")


class TestFormatting:
    """Test value formatting helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("FULL_TIME", "Full-Time"),
        ("PART_TIME", "Part-Time"),
        ("CONTRACTOR", "Contractor"),
        ("full_time", "Full-Time"),
    ])
    def test_employment_type(self, raw, expected):
        assert format_employment_type(raw) == expected

    def test_format_number(self):
        assert format_number(50000) == "50000"
        assert format_number(50000.0) == "50000"
        assert format_number(22.5) == "22.5"
        assert format_number(None) is None


class TestJSONLDExtractor:
    """Test JSON-LD extraction."""

    def setup_method(self):
        self.extractor = JSONLDExtractor()

    def test_full_posting(self, load_doc):
        data = self.extractor.extract(load_doc("detail_jsonld.html"))

        assert data['title'] == "Senior Data Analyst"
        assert data['company'] == "Acme Corp"
        assert data['location'] == "Austin"
        assert data['job_type'] == "Full-Time"
        assert data['salary'] == "USD 50000 - 70000"
        assert data['date_posted'] == "2024-05-01T08:00:00Z"
        assert data['category'] == "Data Science"
        assert "senior data analyst" in data['description_html']

    def test_malformed_block_is_skipped(self):
        good = {"@type": "JobPosting", "title": "Editor"}
        data = self.extractor.extract(page("{not json", good))
        assert data['title'] == "Editor"

    def test_no_job_posting(self):
        org = {"@type": "Organization", "name": "Acme"}
        assert self.extractor.extract(page(org)) is None
        assert self.extractor.extract(page("{not json")) is None
        assert self.extractor.extract(Document("<html></html>", "https://remote.co/")) is None

    def test_first_posting_wins(self):
        first = {"@type": "JobPosting", "title": "First"}
        second = {"@type": "JobPosting", "title": "Second"}
        assert self.extractor.extract(page(first, second))['title'] == "First"

    def test_array_wrapped_block(self):
        data = self.extractor.extract(page([
            {"@type": "BreadcrumbList"},
            {"@type": "JobPosting", "title": "Array Job"},
        ]))
        assert data['title'] == "Array Job"

    def test_graph_block(self):
        data = self.extractor.extract(page({
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "Jobs"},
                {"@type": "JobPosting", "title": "Graph Job"},
            ],
        }))
        assert data['title'] == "Graph Job"

    def test_company_as_string(self):
        data = self.extractor.extract(page({"@type": "JobPosting", "title": "T", "hiringOrganization": "Initech"}))
        assert data['company'] == "Initech"

    def test_location_falls_back_to_region_then_street(self):
        region = {"@type": "JobPosting", "jobLocation": {"address": {"addressRegion": "Ontario"}}}
        street = {"@type": "JobPosting", "jobLocation": {"address": {"streetAddress": "1 Main St"}}}
        assert self.extractor.extract(page(region))['location'] == "Ontario"
        assert self.extractor.extract(page(street))['location'] == "1 Main St"

    def test_remote_location_requirements(self):
        data = self.extractor.extract(page({
            "@type": "JobPosting",
            "jobLocationType": "TELECOMMUTE",
            "applicantLocationRequirements": {"@type": "Country", "name": "USA"},
        }))
        assert data['location'] == "USA"

    def test_salary_single_value(self):
        nested = {"@type": "JobPosting", "baseSalary": {"currency": "EUR", "value": {"value": 45000}}}
        flat = {"@type": "JobPosting", "baseSalary": {"currency": "EUR", "value": 45000}}
        assert self.extractor.extract(page(nested))['salary'] == "EUR 45000"
        assert self.extractor.extract(page(flat))['salary'] == "EUR 45000"

    def test_salary_without_currency(self):
        data = self.extractor.extract(page({
            "@type": "JobPosting",
            "baseSalary": {"value": {"minValue": 1, "maxValue": 2}},
        }))
        assert data['salary'] is None

    def test_missing_fields_are_none(self):
        data = self.extractor.extract(page({"@type": "JobPosting", "title": "Only Title"}))
        assert data['company'] is None
        assert data['job_type'] is None
        assert data['description_html'] is None

    def test_double_escaped_description(self):
        data = self.extractor.extract(page({
            "@type": "JobPosting",
            "description": "&lt;p&gt;Escaped body&lt;/p&gt;",
        }))
        assert data['description_html'] == "<p>Escaped body</p>"
