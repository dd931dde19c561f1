"""
Tests for the LIST/DETAIL traversal state machine.
"""

import asyncio

import pytest

from app.config import CrawlConfig
from crawler.sinks import MemorySink
from crawler.runner import FetchError
from crawler.traversal import TraversalController, TraversalState, classify_failure
from pipeline.document import Document
from pipeline.models import CrawlRequest, PageRole

LIST_URL = "https://remote.co/remote-jobs/search?searchkeyword=python"
JOB_A = "https://remote.co/job-details/senior-python-developer-aaa111"
JOB_B = "https://remote.co/job-details/data-engineer-bbb222"
JOB_C = "https://remote.co/job-details/qa-analyst-ccc333"


class RecordingQueue:
    """Stands in for the substrate's enqueue()."""

    def __init__(self):
        self.requests = []

    async def __call__(self, request: CrawlRequest):
        self.requests.append(request)

    def of_role(self, role):
        return [r for r in self.requests if r.role == role]


def make_controller(**config_kwargs):
    config_kwargs.setdefault('min_delay_ms', 0)
    config_kwargs.setdefault('max_delay_ms', 0)
    config = CrawlConfig(**config_kwargs)
    state = TraversalState(config.results_wanted, config.max_pages, config.dedupe)
    queue = RecordingQueue()
    sink = MemorySink()
    controller = TraversalController(config, state, queue, sink)
    return controller, state, queue, sink


def list_request(page=1, url=LIST_URL):
    return CrawlRequest(url=url, role=PageRole.LIST, page_number=page, user_data={'category': None})


def detail_request(url=JOB_A):
    return CrawlRequest(url=url, role=PageRole.DETAIL, user_data={'category': None, 'list_url': LIST_URL})


class TestTraversalState:

    @pytest.mark.asyncio
    async def test_claim_for_enqueue_once(self):
        state = TraversalState(results_wanted=10, max_pages=1)
        assert await state.claim_for_enqueue(JOB_A) is True
        assert await state.claim_for_enqueue(JOB_A) is False

    @pytest.mark.asyncio
    async def test_commit_emit_respects_budget(self):
        state = TraversalState(results_wanted=2, max_pages=1)
        assert await state.commit_emit(JOB_A)
        assert await state.commit_emit(JOB_B)
        assert not await state.commit_emit(JOB_C)
        assert state.saved_count == 2
        assert state.budget_met
        assert state.remaining() == 0

    @pytest.mark.asyncio
    async def test_commit_emit_rejects_duplicates(self):
        state = TraversalState(results_wanted=10, max_pages=1)
        assert await state.commit_emit(JOB_A)
        assert not await state.commit_emit(JOB_A)
        assert state.saved_count == 1

    @pytest.mark.asyncio
    async def test_dedupe_disabled(self):
        state = TraversalState(results_wanted=10, max_pages=1, dedupe=False)
        assert await state.claim_for_enqueue(JOB_A)
        assert await state.claim_for_enqueue(JOB_A)
        assert await state.commit_emit(JOB_A)
        assert await state.commit_emit(JOB_A)
        assert state.saved_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_emits_never_exceed_budget(self):
        state = TraversalState(results_wanted=5, max_pages=1)
        urls = [f"https://remote.co/job-details/job-{i % 8}" for i in range(40)]
        results = await asyncio.gather(*(state.commit_emit(u) for u in urls))
        assert sum(results) == 5
        assert state.saved_count == 5

    def test_minimums(self):
        state = TraversalState(results_wanted=0, max_pages=0)
        assert state.results_wanted == 1
        assert state.max_pages == 1


class TestSeeds:

    def test_search_url_seed(self):
        controller, _, _, _ = make_controller(keyword="data analyst", category="marketing")
        seeds = controller.seed_requests()
        assert len(seeds) == 1
        assert seeds[0].role == PageRole.LIST
        assert seeds[0].page_number == 1
        assert seeds[0].url == ("https://remote.co/remote-jobs/search?searchkeyword=data+analyst"
                                "&category=marketing&useclocation=true")
        assert seeds[0].user_data['category'] == "marketing"

    def test_explicit_seeds_deduped(self):
        controller, _, _, _ = make_controller(start_urls=[
            "https://remote.co/remote-jobs/developer",
            "https://remote.co/remote-jobs/developer#top",
            "https://remote.co/remote-jobs/writing",
        ])
        assert [s.url for s in controller.seed_requests()] == [
            "https://remote.co/remote-jobs/developer",
            "https://remote.co/remote-jobs/writing",
        ]


class TestListHandling:

    @pytest.mark.asyncio
    async def test_queues_normalized_unique_details_and_next_page(self, load_doc):
        controller, _, queue, _ = make_controller(results_wanted=10, max_pages=5)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(1))

        details = queue.of_role(PageRole.DETAIL)
        assert [r.url for r in details] == [JOB_A, JOB_B, JOB_C]
        assert details[0].user_data['list_url'] == LIST_URL

        lists = queue.of_role(PageRole.LIST)
        assert len(lists) == 1
        assert lists[0].page_number == 2
        assert lists[0].url == LIST_URL + "&page=2"

    @pytest.mark.asyncio
    async def test_pagination_stops_at_max_pages(self, load_doc):
        controller, _, queue, _ = make_controller(results_wanted=10, max_pages=2)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(2))

        assert len(queue.of_role(PageRole.DETAIL)) == 3
        assert queue.of_role(PageRole.LIST) == []

    @pytest.mark.asyncio
    async def test_page_beyond_max_pages_ignored(self, load_doc):
        controller, _, queue, _ = make_controller(max_pages=2)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(3))
        assert queue.requests == []

    @pytest.mark.asyncio
    async def test_detail_volume_bounded_by_remaining_budget(self, load_doc):
        controller, _, queue, _ = make_controller(results_wanted=1, link_slack_factor=2.0)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(1))
        assert [r.url for r in queue.of_role(PageRole.DETAIL)] == [JOB_A, JOB_B]

    @pytest.mark.asyncio
    async def test_already_queued_links_stop_pagination(self, load_doc):
        controller, _, queue, _ = make_controller(results_wanted=10, max_pages=5)
        doc = load_doc("listing_page.html", LIST_URL)
        await controller.handle(doc, list_request(1))
        queue.requests.clear()

        # Same links again on the next page: nothing new, so no page 3
        await controller.handle(doc, list_request(2, LIST_URL + "&page=2"))
        assert queue.requests == []

    @pytest.mark.asyncio
    async def test_zero_links_stops(self, load_doc):
        controller, _, queue, _ = make_controller()
        await controller.handle(load_doc("listing_empty.html", LIST_URL), list_request(1))
        assert queue.requests == []

    @pytest.mark.asyncio
    async def test_budget_met_ignores_list_page(self, load_doc):
        controller, state, queue, _ = make_controller(results_wanted=1)
        await state.commit_emit(JOB_C)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(1))
        assert queue.requests == []

    @pytest.mark.asyncio
    async def test_detail_disabled_emits_bare_records(self, load_doc):
        controller, state, queue, sink = make_controller(collect_details=False, results_wanted=2)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(1))

        assert [r.url for r in sink.records] == [JOB_A, JOB_B]
        first = sink.records[0]
        assert first.title == "Senior Python Developer"
        assert first.company == "Initech"
        assert first.location == "US National"
        assert first.job_type == "Full-Time"
        assert sink.records[1].location == "Remote, Canada"
        assert state.saved_count == 2
        # Budget met: no further LIST page
        assert queue.requests == []

    @pytest.mark.asyncio
    async def test_detail_disabled_paginates_while_under_budget(self, load_doc):
        controller, state, queue, sink = make_controller(collect_details=False, results_wanted=10, max_pages=3)
        await controller.handle(load_doc("listing_page.html", LIST_URL), list_request(1))

        # JOB_C has no listing card, so no title: rejected rather than emitted
        assert [r.url for r in sink.records] == [JOB_A, JOB_B]
        assert state.saved_count == 2
        assert [r.page_number for r in queue.of_role(PageRole.LIST)] == [2]
        assert queue.of_role(PageRole.DETAIL) == []

    @pytest.mark.asyncio
    async def test_detail_disabled_never_emits_untitled_records(self):
        controller, state, queue, sink = make_controller(collect_details=False, results_wanted=10)
        html = '<html><body><a href="/job-details/no-card-1">  </a></body></html>'
        await controller.handle(Document(html, LIST_URL), list_request(1))

        assert sink.records == []
        assert state.saved_count == 0

    @pytest.mark.asyncio
    async def test_detail_disabled_matches_cards_by_slug(self):
        controller, state, queue, sink = make_controller(collect_details=False, results_wanted=10)
        html = (
            '<html><body><a href="/remote-jobs/ux-writer-ddd444">UX Writer</a>'
            '<script id="__NEXT_DATA__" type="application/json">'
            '{"props":{"pageProps":{"jobCardData":{"jobs":{"results":'
            '[{"id":"ddd444","title":"UX Writer","company":"Umbrella","slug":"ux-writer-ddd444"}],'
            '"totalCount":1}}}}}</script></body></html>'
        )
        await controller.handle(Document(html, LIST_URL), list_request(1))

        assert [(r.title, r.url) for r in sink.records] == [
            ("UX Writer", "https://remote.co/remote-jobs/ux-writer-ddd444"),
        ]
        assert sink.records[0].company == "Umbrella"


class TestDetailHandling:

    @pytest.mark.asyncio
    async def test_emits_record(self, load_doc):
        controller, state, _, sink = make_controller()
        await controller.handle(load_doc("detail_jsonld.html", JOB_A), detail_request(JOB_A))

        assert len(sink.records) == 1
        assert sink.records[0].title == "Senior Data Analyst"
        assert sink.records[0].url == JOB_A
        assert state.saved_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_url_discarded(self, load_doc):
        controller, state, _, sink = make_controller()
        await controller.handle(load_doc("detail_jsonld.html", JOB_A), detail_request(JOB_A))
        dup = JOB_A + "?utm_source=newsletter"
        await controller.handle(load_doc("detail_jsonld.html", dup), detail_request(dup))

        assert len(sink.records) == 1
        assert state.saved_count == 1

    @pytest.mark.asyncio
    async def test_budget_met_is_noop(self, load_doc):
        controller, state, _, sink = make_controller(results_wanted=1)
        await state.commit_emit(JOB_C)
        await controller.handle(load_doc("detail_jsonld.html", JOB_A), detail_request(JOB_A))
        assert sink.records == []
        assert state.saved_count == 1

    @pytest.mark.asyncio
    async def test_invalid_record_not_emitted(self):
        controller, state, _, sink = make_controller()
        doc = Document("<html><body><p>Nothing here.</p></body></html>", JOB_B)
        await controller.handle(doc, detail_request(JOB_B))
        assert sink.records == []
        assert state.saved_count == 0

    @pytest.mark.asyncio
    async def test_login_wall_record_is_degraded(self, load_doc):
        controller, _, _, sink = make_controller()
        await controller.handle(load_doc("detail_login_wall.html", JOB_B), detail_request(JOB_B))
        assert sink.records[0].is_degraded is True
        assert 'login_wall' in sink.records[0].warnings

    @pytest.mark.asyncio
    async def test_category_hint_from_list_page(self):
        controller, _, _, sink = make_controller()
        request = CrawlRequest(url=JOB_B, role=PageRole.DETAIL, user_data={'category': 'Writing'})
        await controller.handle(Document("<html><body><h1>Copywriter</h1></body></html>", JOB_B), request)
        assert sink.records[0].category == 'Writing'


class TestClassifyFailure:

    @pytest.mark.parametrize("status,expected", [
        (403, 'retire'),
        (429, 'retire'),
        (500, 'mark_bad'),
        (404, 'mark_bad'),
        (None, 'mark_bad'),
    ])
    def test_status_codes(self, status, expected):
        assert classify_failure(FetchError(JOB_A, status)) == expected

    def test_plain_exception(self):
        assert classify_failure(RuntimeError("boom")) == 'mark_bad'
