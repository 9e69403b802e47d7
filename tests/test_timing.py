import re

import pytest

from server_timing import (
    HEADER_KEY,
    NestingError,
    NotStartedError,
    ServerTiming,
    TimingLabel,
)


def test_start_end_renders_duration(timing, clock):
    timing.start("foo")
    clock.advance(3)
    timing.end("foo")
    assert str(timing) == "foo;dur=3"


def test_start_end_with_real_clock():
    timing = ServerTiming(precision=0)
    timing.start("foo")
    timing.end("foo")
    assert re.fullmatch(r"foo;dur=\d+", str(timing))


def test_chained_calls(timing, clock):
    timing.start("foo")
    clock.advance(2.25)
    timing.end("foo").start("bar")
    clock.advance(1.5)
    timing.end("bar")
    assert timing.render() == "foo;dur=2.25, bar;dur=1.5"


def test_description_is_rendered(timing, clock):
    timing.start({"label": "foo", "desc": "Foo Service"})
    clock.advance(4)
    timing.end("foo")
    assert str(timing) == 'foo;desc="Foo Service";dur=4'


def test_description_long_name_and_model_are_accepted(timing):
    timing.add({"label": "a", "description": "first"})
    timing.add(TimingLabel(label="b", description="second", duration=1))
    assert str(timing) == 'a;desc="first", b;desc="second";dur=1'


def test_empty_description_is_omitted(timing):
    timing.add({"label": "a", "desc": ""})
    assert str(timing) == "a"


def test_notes_and_explicit_durations(timing):
    timing.add("miss").add({"label": "db", "dur": 53})
    assert str(timing) == "miss, db;dur=53"


def test_explicit_duration_ignores_precision(clock):
    timing = ServerTiming(precision=0, clock=clock)
    timing.add({"label": "app", "dur": 47.2}).add({"label": "zero", "dur": 0})
    assert str(timing) == "app;dur=47.2, zero;dur=0"


def test_precision_applies_to_measured_durations(clock):
    timing = ServerTiming(precision=2, clock=clock)
    timing.start("db")
    clock.advance(1.23456)
    timing.end("db")
    assert str(timing) == "db;dur=1.23"

    rounded = ServerTiming(precision=0, clock=clock)
    rounded.start("db")
    clock.advance(2.75)
    rounded.end("db")
    assert str(rounded) == "db;dur=3"


def test_precision_rounds_ties_up(clock):
    timing = ServerTiming(precision=0, clock=clock)
    timing.start("db")
    clock.advance(2.5)
    timing.end("db")
    precise = ServerTiming(precision=2, clock=clock)
    precise.start("cache")
    clock.advance(0.125)
    precise.end("cache")
    assert str(timing) == "db;dur=3"
    assert str(precise) == "cache;dur=0.13"


def test_w3c_example(timing, clock):
    # https://www.w3.org/TR/server-timing/#example-1
    timing.add("miss").add({"label": "db", "dur": 53}).add({"label": "app", "dur": 47.2})
    timing.add("customView").add({"label": "dc", "desc": "atl"})
    timing.track({"label": "cache", "desc": "Cache Read"}, clock.advance, 23.2)
    assert str(timing) == (
        'miss, db;dur=53, app;dur=47.2, customView, dc;desc="atl", '
        'cache;desc="Cache Read";dur=23.2'
    )


def test_render_does_not_end_running_timers(timing, clock):
    timing.start("foo")
    clock.advance(3)
    first = str(timing)
    clock.advance(3)
    second = str(timing)
    assert first == "foo;dur=3"
    assert second == "foo;dur=6"
    entry = timing.entries[0]
    assert entry.running
    assert entry.ended_at is None


def test_finished_duration_is_frozen(timing, clock):
    timing.start("foo")
    clock.advance(5)
    timing.end("foo")
    clock.advance(100)
    assert str(timing) == "foo;dur=5"
    entry = timing.entries[0]
    assert entry.finished
    assert entry.ended_at - entry.started_at == 5_000_000


def test_end_without_start_raises(timing):
    with pytest.raises(NotStartedError, match="timing 'foo' was never started"):
        timing.end("foo")
    assert timing.entries == ()


def test_end_does_not_look_inside_groups(timing):
    timing.group().start("inner")
    with pytest.raises(NotStartedError):
        timing.end("inner")


def test_end_logs_unknown_label(timing, caplog):
    caplog.set_level("DEBUG", logger="server_timing.timing")
    with pytest.raises(NotStartedError):
        timing.end("ghost")
    assert any("ghost" in r.getMessage() for r in caplog.records)


def test_end_closes_earliest_running_duplicate(timing, clock):
    timing.start("db")
    clock.advance(1)
    timing.start("db")
    clock.advance(1)
    timing.end("db")
    clock.advance(1)
    timing.end("db")
    first, second = timing.entries
    assert first.ended_at - first.started_at == 2_000_000
    assert second.ended_at - second.started_at == 2_000_000
    assert str(timing) == "db;dur=2, db;dur=2"


def test_end_on_finished_entry_restamps_it(timing, clock):
    timing.start("db")
    clock.advance(1)
    timing.end("db")
    clock.advance(1)
    timing.end("db")
    assert str(timing) == "db;dur=2"


def test_group_renders_as_single_fragment(timing):
    timing.add("before")
    group = timing.group()
    group.add("miss").add({"label": "db", "dur": 53}).add({"label": "app", "dur": 47.2})
    timing.add("after")
    assert timing.fragments() == ["before", "miss, db;dur=53, app;dur=47.2", "after"]
    assert str(timing) == "before, miss, db;dur=53, app;dur=47.2, after"


def test_group_shares_precision_and_clock(clock):
    timing = ServerTiming(precision=1, clock=clock)
    group = timing.group()
    group.start("inner")
    clock.advance(1.26)
    group.end("inner")
    assert group.precision == 1
    assert str(timing) == "inner;dur=1.3"


def test_empty_group_renders_nothing(timing):
    timing.add("a")
    timing.group()
    timing.add("b")
    assert str(timing) == "a, b"


def test_groups_are_one_level_deep(timing):
    group = timing.group()
    with pytest.raises(NestingError):
        group.group()
    assert timing.entries == (group,)
    assert group.entries == ()
    assert group.depth == 1


def test_empty_ledger_renders_empty_string(timing):
    assert str(timing) == ""
    assert timing.headers() == []
    assert timing.raw_timings() == []


def test_headers_pairs(timing):
    timing.add("miss").add({"label": "db", "dur": 53})
    assert timing.header_key == HEADER_KEY == "Server-Timing"
    assert timing.headers() == [
        ("Server-Timing", "miss"),
        ("Server-Timing", "db;dur=53"),
    ]
    assert ", ".join(value for _, value in timing.headers()) == timing.render()


def test_raw_timings(clock):
    timing = ServerTiming(precision=1, clock=clock)
    timing.add("miss").add({"label": "db", "desc": "Users", "dur": 53})
    timing.start("app")
    clock.advance(2.04)
    timing.group().add("inner")
    assert timing.raw_timings() == [
        "miss",
        ("db (Users)", 53),
        ("app", "2.0"),
        ["inner"],
    ]


def test_raw_timings_unbounded_precision_is_numeric(timing, clock):
    timing.start("app")
    clock.advance(2.5)
    timing.end("app")
    assert timing.raw_timings() == [("app", 2.5)]


def test_entry_states(timing, clock):
    timing.add("note").add({"label": "instant", "dur": 1}).start("run").start("done")
    timing.end("done")
    note, instant, run, done = timing.entries
    assert note.is_note and not note.running
    assert instant.instantaneous and not instant.is_note
    assert run.running and not run.finished
    assert done.finished and not done.running
