import copy
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from helpers import at, make, titles
from tvsort_app.core.compare import TimeComparator
from tvsort_app.core.models import InputContractError, Listing, ListingHeader, Programme
from tvsort_app.core.normalize.pipeline import (
    merge_channels,
    normalize_listing,
    normalize_programmes,
    partition_by_channel,
)
from tvsort_app.core.normalize.sorting import SortContext


def _messy_input() -> list[Programme]:
    return [
        make("News", "09:00", channel="C2"),
        make("Film", "10:00", "12:00", channel="C1"),
        make("Weather", "09:30", channel="C2"),
        make("Cartoon", "09:00", channel="C1"),
        make("Film", "10:00", "12:00", channel="C1"),
        make("North", "10:00", "10:30", channel="C2", clump=(0, 2)),
        make("Quiz", "11:00", "11:45", channel="C1"),
        make("South", "10:00", "10:30", channel="C2", clump=(1, 2)),
        make("Late", "12:00", channel="C1"),
    ]


class TestPartition:
    def test_groups_and_keeps_order(self):
        progs = [make("a", "09:00", channel="C2"), make("b", "08:00", channel="C1"), make("c", "07:00", channel="C2")]
        parts = partition_by_channel(progs)
        assert list(parts) == ["C2", "C1"]
        assert titles(parts["C2"]) == ["a", "c"]


class TestExampleScenarios:
    """Behaviour on the canonical small inputs."""

    def test_stop_inferred_from_next_start(self):
        a = make("A", "09:00")
        b = make("B", "09:30", "10:00")
        result = normalize_programmes([a, b])
        assert titles(result.programmes) == ["A", "B"]
        assert result.programmes[0].stop == at("09:30")
        assert result.diagnostics == []

    def test_duplicate_scrape_dropped(self):
        result = normalize_programmes([make("A", "09:00", "09:30"), make("A", "09:00", "09:30")])
        assert titles(result.programmes) == ["A"]
        assert result.diagnostics == []

    def test_overlap_reported_both_retained(self):
        result = normalize_programmes([make("B", "09:30", "09:45"), make("A", "09:00", "10:00")])
        assert titles(result.programmes) == ["A", "B"]
        assert [d.kind for d in result.diagnostics] == ["overlap"]
        assert "'A'" in result.diagnostics[0].message
        assert "'B'" in result.diagnostics[0].message

    def test_clump_members_do_not_overlap(self):
        result = normalize_programmes(
            [
                make("South", "09:00", "09:30", clump=(1, 2)),
                make("North", "09:00", "09:30", clump=(0, 2)),
            ]
        )
        assert titles(result.programmes) == ["North", "South"]
        assert result.diagnostics == []

    def test_gap_start_time_resolved_as_winter_time(self):
        london = ZoneInfo("Europe/London")
        prog = Programme(channel="C1", start=datetime(2024, 3, 31, 1, 30), title="Night")
        after = Programme(
            channel="C1",
            start=datetime(2024, 3, 31, 1, 45, tzinfo=UTC),
            stop=datetime(2024, 3, 31, 3, 0, tzinfo=UTC),
            title="Later",
        )
        result = normalize_programmes([after, prog], local_tz=london)
        assert titles(result.programmes) == ["Night", "Later"]
        assert result.programmes[0].stop == after.start

    def test_grouped_and_flat_hold_same_records(self):
        grouped = normalize_programmes(_messy_input(), by_channel=True).programmes
        flat = normalize_programmes(_messy_input(), by_channel=False).programmes

        assert sorted(map(repr, grouped)) == sorted(map(repr, flat))
        assert [p.channel for p in grouped] == ["C1"] * 4 + ["C2"] * 4
        starts = [p.start for p in flat]
        assert starts == sorted(starts)
        assert {p.channel for p in flat[:2]} == {"C1", "C2"}


class TestProperties:
    """Idempotence, stability, soundness and loss-free output."""

    def test_idempotent(self):
        first = normalize_programmes(_messy_input()).programmes
        second = normalize_programmes(copy.deepcopy(first)).programmes
        assert second == first

    def test_idempotent_by_channel(self):
        first = normalize_programmes(_messy_input(), by_channel=True).programmes
        second = normalize_programmes(copy.deepcopy(first), by_channel=True).programmes
        assert second == first

    def test_stable_for_equal_keys(self):
        progs = [make("Z", "09:00", "09:30"), make("Y", "09:00", "09:30"), make("X", "09:00", "09:30")]
        assert titles(normalize_programmes(progs).programmes) == ["Z", "Y", "X"]

    def test_inferred_stops_come_from_input_times(self):
        inputs = _messy_input()
        known = {p.start for p in inputs} | {p.stop for p in inputs if p.stop}
        missing = {id(p) for p in inputs if p.stop is None}
        result = normalize_programmes(inputs)
        for prog in result.programmes:
            if id(prog) in missing and prog.stop is not None:
                assert prog.stop in known

    def test_only_exact_duplicates_lost(self):
        inputs = _messy_input()
        payloads = [(p.channel, p.title, p.start) for p in inputs]
        result = normalize_programmes(inputs)
        assert len(result.programmes) == len(inputs) - 1
        assert sorted(set(payloads)) == sorted((p.channel, p.title, p.start) for p in result.programmes)

    def test_sorted_within_each_channel(self):
        result = normalize_programmes(_messy_input())
        times = TimeComparator()
        for progs in partition_by_channel(result.programmes).values():
            ctx = SortContext(progs, times)
            for a, b in zip(progs, progs[1:]):
                assert ctx.compare(a, b) <= 0

    def test_reordered_after_stop_is_filled_in(self):
        # X sorts first while open; once it inherits Y's stop the clump index decides.
        x = make("X", "09:00", clump=(1, 2))
        y = make("Y", "09:00", "09:30", clump=(0, 2))
        result = normalize_programmes([x, y])
        assert titles(result.programmes) == ["Y", "X"]
        assert [p.stop for p in result.programmes] == [at("09:30"), at("09:30")]
        assert result.diagnostics == []

    def test_thread_pool_gives_same_result(self):
        serial = normalize_programmes(_messy_input())
        parallel = normalize_programmes(_messy_input(), workers=4)
        assert parallel.programmes == serial.programmes
        assert parallel.diagnostics == serial.diagnostics

    def test_last_programme_may_stay_open(self):
        result = normalize_programmes(_messy_input(), by_channel=True)
        last_c1 = [p for p in result.programmes if p.channel == "C1"][-1]
        assert last_c1.title == "Late"
        assert last_c1.stop is None


class TestInputContract:
    def test_missing_start_is_fatal(self):
        bad = Programme(channel="C1", start=None, title="Broken")  # type: ignore[arg-type]
        with pytest.raises(InputContractError):
            normalize_programmes([make("A", "09:00"), bad])

    def test_missing_channel_is_fatal(self):
        bad = Programme(channel="", start=at("09:00"), title="Broken")
        with pytest.raises(InputContractError):
            normalize_programmes([bad])

    def test_empty_input(self):
        result = normalize_programmes([])
        assert result.programmes == []
        assert result.diagnostics == []


class TestMergeAndListing:
    def test_merge_by_channel_orders_channel_ids(self):
        processed = {"b": [make("B", "08:00", channel="b")], "a": [make("A", "09:00", channel="a")]}
        assert titles(merge_channels(processed, by_channel=True)) == ["A", "B"]
        assert titles(merge_channels(processed, by_channel=False)) == ["B", "A"]

    def test_listing_header_passed_through(self):
        header = ListingHeader(encoding="ISO-8859-1", attrs=(("generator-info-name", "grabber"),), channels=("<channel id=\"C1\" />",))
        listing = Listing(header=header, programmes=[make("A", "09:00"), make("B", "09:30", "10:00")])
        normalized, diagnostics = normalize_listing(listing)
        assert normalized.header is header
        assert titles(normalized.programmes) == ["A", "B"]
        assert diagnostics == []
