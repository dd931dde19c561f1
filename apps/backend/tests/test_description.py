"""
Unit tests for the description fallback strategies.
"""

from pipeline.description import (
    extract_description_html, from_description_heading, from_description_wrapper,
    from_main_content, from_paragraphs,
)
from pipeline.document import Document

P1 = "Our platform team builds the internal tools that every engineer at the company relies on daily."
P2 = "You will own deployment pipelines, observability and the developer experience for our services."


def doc(body: str) -> Document:
    return Document(f"<html><body>{body}</body></html>", "https://remote.co/job-details/x")


class TestDescriptionStrategies:

    def test_wrapper_strips_sidebar_detail_list_and_cta(self):
        d = doc(f'<div id="job-description"><p>{P1}</p><p>{P2}</p>'
                '<aside>Similar jobs</aside><ul class="job-details"><li>Salary: $1</li></ul>'
                '<button>Apply</button></div>')
        html = from_description_wrapper(d)
        assert P1 in html
        assert 'Similar jobs' not in html
        assert 'Salary' not in html
        assert '<button' not in html

    def test_wrapper_too_short_falls_through(self):
        d = doc(f'<div id="job-description"><p>Short.</p></div><main><p>{P1}</p><p>{P2}</p></main>')
        assert from_description_wrapper(d) is None
        html = extract_description_html(d)
        assert P1 in html and P2 in html

    def test_main_content_drops_navigation_and_title(self):
        d = doc(f'<main><nav>Home / Jobs</nav><h1>Platform Engineer</h1><p>{P1}</p><p>{P2}</p>'
                '<div class="sidebar">Related</div></main>')
        html = from_main_content(d)
        assert 'Home / Jobs' not in html
        assert 'Platform Engineer' not in html
        assert 'Related' not in html
        assert P2 in html

    def test_heading_section_stops_at_next_major_heading(self):
        d = doc(f'<div><h2>About the role</h2><p>{P1}</p><p>{P2}</p>'
                '<h2>Benefits</h2><p>Unlimited coffee.</p></div>')
        html = from_description_heading(d)
        assert 'About the role' in html
        assert P2 in html
        assert 'Benefits' not in html
        assert 'Unlimited coffee' not in html

    def test_heading_section_stops_at_sidebar(self):
        d = doc(f'<div><h3>Responsibilities</h3><p>{P1}</p><aside>Other jobs</aside><p>{P2}</p></div>')
        html = from_description_heading(d)
        assert html is None or 'Other jobs' not in html

    def test_paragraphs_skip_short_and_promotional(self):
        d = doc(f'<div><p>Tiny.</p><p>{P1}</p>'
                '<p>Find your next remote job! Join thousands of professionals using our board.</p>'
                f'<p>{P2}</p></div>')
        html = from_paragraphs(d)
        assert html == f'<p>{P1}</p><p>{P2}</p>'

    def test_nothing_usable(self):
        assert extract_description_html(doc('<p>Nothing to see.</p>')) is None
