"""Tests for the availability index."""

from datetime import date, time, timedelta

import pytest

from inkbook.errors import InvalidInterval, OutsideWorkingHours, ResourceNotFound, SlotConflict
from inkbook.scheduling.availability import AvailabilityIndex
from inkbook.schemas.resource_schema import Resource, WorkingHoursBlock, weekly_hours
from tests.conftest import MONDAY, at


@pytest.fixture
def index(artist):
    idx = AvailabilityIndex()
    idx.register_resource(artist)
    return idx


class TestHalfOpenOverlap:
    def test_back_to_back_allowed(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert not index.has_conflict("artist-1", at(MONDAY, 14), at(MONDAY, 15))
        assert not index.has_conflict("artist-1", at(MONDAY, 11), at(MONDAY, 12))

    def test_one_minute_overlap_conflicts(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert index.find_conflict("artist-1", at(MONDAY, 13, 59), at(MONDAY, 15)) == "A"

    def test_contained_and_containing(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert index.has_conflict("artist-1", at(MONDAY, 12, 30), at(MONDAY, 13))
        assert index.has_conflict("artist-1", at(MONDAY, 11), at(MONDAY, 15))

    def test_finds_the_right_neighbour(self, index):
        index.insert("A", "artist-1", at(MONDAY, 9), at(MONDAY, 10))
        index.insert("C", "artist-1", at(MONDAY, 14), at(MONDAY, 15))
        index.insert("B", "artist-1", at(MONDAY, 11), at(MONDAY, 12))
        assert index.find_conflict("artist-1", at(MONDAY, 11, 30), at(MONDAY, 13)) == "B"
        assert index.find_conflict("artist-1", at(MONDAY, 12), at(MONDAY, 14)) is None

    def test_empty_interval_rejected(self, index):
        with pytest.raises(InvalidInterval):
            index.has_conflict("artist-1", at(MONDAY, 12), at(MONDAY, 12))

    def test_other_resource_never_conflicts(self, index):
        index.register_resource(Resource(id="artist-2"))
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert not index.has_conflict("artist-2", at(MONDAY, 12), at(MONDAY, 14))

    def test_unknown_resource(self, index):
        with pytest.raises(ResourceNotFound):
            index.has_conflict("nobody", at(MONDAY, 12), at(MONDAY, 14))


class TestExclusion:
    def test_excluded_appointment_ignored(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert not index.has_conflict(
            "artist-1", at(MONDAY, 13), at(MONDAY, 15), exclude_appointment_id="A"
        )

    def test_exclusion_still_sees_earlier_neighbour(self, index):
        index.insert("A", "artist-1", at(MONDAY, 10), at(MONDAY, 11))
        index.insert("B", "artist-1", at(MONDAY, 11), at(MONDAY, 12))
        assert index.find_conflict(
            "artist-1", at(MONDAY, 10, 30), at(MONDAY, 11, 30), exclude_appointment_id="B"
        ) == "A"
        assert index.find_conflict(
            "artist-1", at(MONDAY, 10, 30), at(MONDAY, 11, 30), exclude_appointment_id="A"
        ) == "B"


class TestMutation:
    def test_remove_frees_slot(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert index.remove("A") is True
        assert not index.has_conflict("artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert index.remove("A") is False

    def test_update_moves_interval(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        index.update("A", at(MONDAY, 15), at(MONDAY, 16))
        assert not index.has_conflict("artist-1", at(MONDAY, 12), at(MONDAY, 14))
        assert index.find_conflict("artist-1", at(MONDAY, 15), at(MONDAY, 16)) == "A"
        assert index.interval_of("A").start == at(MONDAY, 15)

    def test_update_unknown_raises(self, index):
        with pytest.raises(KeyError):
            index.update("missing", at(MONDAY, 15), at(MONDAY, 16))

    def test_double_insert_rejected(self, index):
        index.insert("A", "artist-1", at(MONDAY, 12), at(MONDAY, 14))
        with pytest.raises(ValueError, match="already indexed"):
            index.insert("A", "artist-1", at(MONDAY, 15), at(MONDAY, 16))

    def test_intervals_sorted_by_start(self, index):
        index.insert("late", "artist-1", at(MONDAY, 15), at(MONDAY, 16))
        index.insert("early", "artist-1", at(MONDAY, 9), at(MONDAY, 10))
        assert [iv.appointment_id for iv in index.intervals("artist-1")] == ["early", "late"]


class TestNoOverlapInvariant:
    def test_insert_refuses_overlap(self, index):
        index.insert("A", "artist-1", at(MONDAY, 10), at(MONDAY, 16))
        with pytest.raises(SlotConflict) as exc_info:
            index.insert("B", "artist-1", at(MONDAY, 11), at(MONDAY, 12))
        assert exc_info.value.conflicting_appointment_id == "A"
        assert index.interval_of("B") is None
        assert index.find_conflict("artist-1", at(MONDAY, 13), at(MONDAY, 14)) == "A"

    def test_update_refuses_overlap(self, index):
        index.insert("A", "artist-1", at(MONDAY, 9), at(MONDAY, 10))
        index.insert("B", "artist-1", at(MONDAY, 10), at(MONDAY, 16))
        with pytest.raises(SlotConflict):
            index.update("A", at(MONDAY, 9), at(MONDAY, 11))
        assert index.interval_of("A").end == at(MONDAY, 10)
        assert index.find_conflict("artist-1", at(MONDAY, 13), at(MONDAY, 14)) == "B"

    def test_update_may_overlap_own_interval(self, index):
        index.insert("A", "artist-1", at(MONDAY, 10), at(MONDAY, 12))
        index.update("A", at(MONDAY, 11), at(MONDAY, 13))
        assert index.interval_of("A").start == at(MONDAY, 11)

    def test_insert_rejects_empty_interval(self, index):
        with pytest.raises(InvalidInterval):
            index.insert("A", "artist-1", at(MONDAY, 10), at(MONDAY, 10))


class TestWorkingHours:
    def test_inside_hours_ok(self, index):
        index.check_working_hours("artist-1", at(MONDAY, 9), at(MONDAY, 17))

    def test_before_opening(self, index):
        with pytest.raises(OutsideWorkingHours, match="monday"):
            index.check_working_hours("artist-1", at(MONDAY, 8, 30), at(MONDAY, 10))

    def test_after_closing(self, index):
        with pytest.raises(OutsideWorkingHours):
            index.check_working_hours("artist-1", at(MONDAY, 16), at(MONDAY, 17, 30))

    def test_closed_day(self, index):
        sunday = date(2025, 3, 23)
        with pytest.raises(OutsideWorkingHours, match="closed"):
            index.check_working_hours("artist-1", at(sunday, 10), at(sunday, 11))

    def test_crossing_midnight(self, index):
        index.set_working_hours("artist-1", weekly_hours([0, 1], "00:00", "23:59"))
        with pytest.raises(OutsideWorkingHours, match="day boundary"):
            index.check_working_hours("artist-1", at(MONDAY, 23), at(date(2025, 3, 18), 1))

    def test_split_day_needs_single_block(self, index):
        index.set_working_hours("artist-1", {0: (
            WorkingHoursBlock(open=time(9), close=time(12)),
            WorkingHoursBlock(open=time(13), close=time(17)),
        )})
        index.check_working_hours("artist-1", at(MONDAY, 13), at(MONDAY, 15))
        with pytest.raises(OutsideWorkingHours):
            index.check_working_hours("artist-1", at(MONDAY, 11), at(MONDAY, 14))

    def test_resource_timezone_applied(self, index):
        index.register_resource(Resource(
            id="nyc",
            timezone="America/New_York",
            working_hours=weekly_hours([0], "09:00", "17:00"),
        ))
        # 09:00 EDT is 13:00 UTC on this date.
        index.check_working_hours("nyc", at(MONDAY, 13), at(MONDAY, 14))
        with pytest.raises(OutsideWorkingHours):
            index.check_working_hours("nyc", at(MONDAY, 9), at(MONDAY, 10))


class TestOpenSlots:
    def test_skips_booked_time(self, index):
        index.insert("A", "artist-1", at(MONDAY, 10), at(MONDAY, 11, 30))
        slots = index.open_slots("artist-1", MONDAY, 60, 30)
        starts = [s.strftime("%H:%M") for s, _ in slots]
        assert starts == [
            "09:00", "11:30", "12:00", "12:30", "13:00", "13:30",
            "14:00", "14:30", "15:00", "15:30", "16:00",
        ]

    def test_closed_day_has_no_slots(self, index):
        assert index.open_slots("artist-1", date(2025, 3, 23), 60) == []

    def test_rejects_bad_duration(self, index):
        with pytest.raises(ValueError):
            index.open_slots("artist-1", MONDAY, 0)

    def test_slots_keep_real_length_across_dst(self, index):
        # US clocks jump from 02:00 to 03:00 local on 2025-03-09, a Sunday.
        dst_day = date(2025, 3, 9)
        index.register_resource(Resource(
            id="nyc-night",
            timezone="America/New_York",
            working_hours=weekly_hours([6], "00:00", "06:00"),
        ))
        slots = index.open_slots("nyc-night", dst_day, 60, 60)
        assert all(end - start == timedelta(minutes=60) for start, end in slots)
        assert [s.hour for s, _ in slots] == [5, 6, 7, 8, 9]
