"""
Unit tests for trace filtering and pagination
"""

from datetime import timedelta

from llm_monitor.monitoring.events import EventType, TraceFilters, TraceStatus
from llm_monitor.monitoring.trace_filter import (
    event_to_trace_summary,
    filter_traces,
    paginate,
    query_traces,
    sort_by_time_desc,
)


def _ids(events):
    return [e.request_id for e in events]


class TestFilterTraces:
    """Test predicate composition"""

    def test_only_terminal_events(self, sample_events):
        """Start and tool events never surface as traces"""
        result = filter_traces(sample_events)

        assert sorted(_ids(result)) == ["req-a", "req-b", "req-c"]
        assert all(e.is_terminal for e in result)

    def test_provider_case_insensitive(self, sample_events):
        """Provider matching is a case-insensitive substring match"""
        result = filter_traces(sample_events, TraceFilters(provider="OPENAI"))
        assert sorted(_ids(result)) == ["req-a", "req-c"]

    def test_model_substring(self, sample_events):
        """Model filter matches substrings"""
        result = filter_traces(sample_events, TraceFilters(model="mini"))
        assert _ids(result) == ["req-c"]

    def test_query_searches_several_fields(self, sample_events):
        """Free text matches request id, model or provider"""
        assert _ids(filter_traces(sample_events, TraceFilters(query="claude"))) == ["req-b"]
        assert _ids(filter_traces(sample_events, TraceFilters(query="REQ-C"))) == ["req-c"]

    def test_thresholds_inclusive(self, sample_events):
        """min_cost and min_latency are inclusive lower bounds"""
        assert sorted(_ids(filter_traces(sample_events, TraceFilters(min_cost=0.1)))) == ["req-a", "req-b"]
        assert _ids(filter_traces(sample_events, TraceFilters(min_latency=300))) == ["req-b"]

    def test_status(self, sample_events):
        """Status selects request.end or request.error"""
        assert _ids(filter_traces(sample_events, TraceFilters(status="error"))) == ["req-c"]
        assert sorted(_ids(filter_traces(sample_events, TraceFilters(status="success")))) == ["req-a", "req-b"]

    def test_combined_filters(self, sample_events):
        """All active filters must match"""
        result = filter_traces(sample_events, TraceFilters(provider="openai", status="success"))
        assert _ids(result) == ["req-a"]

    def test_time_window(self, sample_events, base_time):
        """Time bounds are inclusive"""
        filters = TraceFilters(
            start_time=base_time + timedelta(milliseconds=200),
            end_time=base_time + timedelta(milliseconds=300),
        )
        assert sorted(_ids(filter_traces(sample_events, filters))) == ["req-b", "req-c"]


class TestOrderingAndPaging:
    """Test sorting and slicing"""

    def test_sort_desc_does_not_mutate(self, sample_events):
        """Sorting returns a new list, most recent first"""
        original = list(sample_events)
        result = sort_by_time_desc(sample_events)

        assert result[0].request_id == "req-c"
        assert sample_events == original

    def test_paginate(self):
        """Pages are contiguous slices; past the end is empty"""
        items = list(range(5))

        assert paginate(items, 2, 0) == [0, 1]
        assert paginate(items, 2, 4) == [4]
        assert paginate(items, 2, 10) == []

    def test_paginate_negative_bounds(self):
        """Negative offsets do not wrap around to the end"""
        assert paginate([1, 2, 3], 10, -1) == [1, 2, 3]
        assert paginate([1, 2, 3], -1, 0) == []


class TestTraceSummary:
    """Test event projection"""

    def test_success_summary(self, sample_events):
        """Start time is end minus duration; tokens are carried over"""
        event = sample_events[1]
        summary = event_to_trace_summary(event)

        assert summary.status == TraceStatus.SUCCESS
        assert summary.end_time == event.time
        assert summary.start_time == event.time - timedelta(milliseconds=100)
        assert summary.prompt_tokens == 10
        assert summary.completion_tokens == 5
        assert summary.cost == 0.1

    def test_error_summary_omits_tokens(self, make_event):
        """Zero token counts are left absent"""
        summary = event_to_trace_summary(make_event(EventType.REQUEST_ERROR))

        assert summary.status == TraceStatus.ERROR
        assert summary.start_time == summary.end_time
        assert summary.prompt_tokens is None
        assert "prompt_tokens" not in summary.to_dict()


class TestQueryTraces:
    """Test the full query path"""

    def test_page_metadata(self, sample_events):
        """Total counts all matches, not just the page"""
        page = query_traces(sample_events, limit=2, offset=0)

        assert page.total == 3
        assert page.limit == 2
        assert [t.request_id for t in page.items] == ["req-c", "req-b"]

    def test_offset_past_end(self, sample_events):
        """Offsets beyond the matches give an empty page"""
        page = query_traces(sample_events, limit=10, offset=50)

        assert page.items == []
        assert page.total == 3
        assert page.to_dict()["offset"] == 50
