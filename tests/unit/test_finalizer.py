"""Unit tests for the result finalizer."""

import json

from authorscout.core.crawl.finalizer import ResultFinalizer
from authorscout.core.crawl.models import Author, RunMetrics, SampleArticle
from authorscout.core.crawl.state import CrawlState


def _state() -> CrawlState:
    state = CrawlState()
    state.authors["zed"] = Author(
        handle="zed",
        name="Z",
        profile_url="https://hackernoon.com/u/zed",
        twitter="https://x.com/zed",
        matched_keywords={"saas", "maker"},
    )
    state.authors["amy"] = Author(
        handle="amy",
        name="Amy Adams",
        profile_url="https://hackernoon.com/u/amy",
        bio="Founder",
        website="https://amy.dev",
        matched_keywords={"indie hacker"},
        sample_articles=[SampleArticle(title="One", url="https://hackernoon.com/one")],
    )
    state.record_article("amy", SampleArticle(title="One", url="https://hackernoon.com/one"))
    state.record_article("amy", SampleArticle(title="Two", url="https://hackernoon.com/two"))
    state.mark_processed("https://hackernoon.com/one")
    state.mark_profile_processed("https://hackernoon.com/u/amy")
    return state


def test_authors_ordered_by_handle():
    result = ResultFinalizer().finalize(_state())

    assert [a.handle for a in result.authors] == ["amy", "zed"]


def test_records_are_normalized():
    """Test keyword sorting, name fallback and article counts."""
    result = ResultFinalizer().finalize(_state())
    amy, zed = result.authors

    assert zed.name == "zed"
    assert zed.matched_keywords == ["maker", "saas"]
    assert amy.name == "Amy Adams"
    assert amy.article_count == 2
    assert zed.article_count == 0


def test_stats():
    metrics = RunMetrics(authors_at_start=1, articles_collected=7, processing_time_ms=1500)

    stats = ResultFinalizer().finalize(_state(), metrics).stats

    assert stats.total_authors == 2
    assert stats.with_twitter == 1
    assert stats.with_website == 1
    assert stats.with_bio == 1
    assert stats.with_linkedin == 0
    assert stats.new_authors_this_run == 1
    assert stats.articles_processed == 7
    assert stats.total_urls_processed == 1
    assert stats.total_profiles_processed == 1
    assert stats.processing_time_ms == 1500


def test_without_metrics_nothing_is_new():
    stats = ResultFinalizer().finalize(_state()).stats

    assert stats.new_authors_this_run == 0
    assert stats.articles_processed == 0


def test_json_is_byte_identical_across_calls():
    """Test that finalizing the same state twice renders the same bytes."""
    state = _state()
    finalizer = ResultFinalizer()

    first = finalizer.finalize(state).to_json()
    second = finalizer.finalize(state).to_json()

    assert first == second
    assert json.loads(first)["authors"][0]["handle"] == "amy"


def test_finalize_does_not_mutate_state():
    state = _state()
    before = state.export_dict()

    result = ResultFinalizer().finalize(state)
    result.authors[0].sample_articles[0].title = "Changed"

    assert state.export_dict() == before
