"""Tests for TimeInterval predicates and validation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.errors import InvalidIntervalError, ValidationError
from app.domain.models import TimeInterval

from factories import at, interval


def test_partial_overlap():
    assert interval(9, 10.5).overlaps(interval(10, 11))
    assert interval(10, 11).overlaps(interval(9, 10.5))


def test_containment_counts_as_overlap():
    assert interval(9, 12).overlaps(interval(10, 11))
    assert interval(10, 11).overlaps(interval(9, 12))


def test_touching_endpoints_do_not_overlap():
    """When one interval ends exactly where the other starts, there is no overlap."""
    assert not interval(9, 10).overlaps(interval(10, 11))
    assert not interval(10, 11).overlaps(interval(9, 10))


@pytest.mark.parametrize("gap_minutes", [0, 1, 60, 60 * 24])
def test_disjoint_intervals_never_overlap(gap_minutes):
    first = interval(9, 10)
    second = first.shifted(first.duration + timedelta(minutes=gap_minutes))
    assert not first.overlaps(second)
    assert not second.overlaps(first)


def test_contains_is_half_open():
    slot = interval(10, 11)
    assert slot.contains(at(10))
    assert slot.contains(at(10, 59))
    assert not slot.contains(at(11))
    assert not slot.contains(at(9, 59))


def test_is_valid():
    assert interval(10, 11).is_valid()
    assert not TimeInterval(start=at(11), end=at(10)).is_valid()
    assert not TimeInterval(start=at(10), end=at(10)).is_valid()


def test_ensure_valid_raises_invalid_interval():
    with pytest.raises(InvalidIntervalError) as exc_info:
        TimeInterval(start=at(10), end=at(10)).ensure_valid()
    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.code == "invalid_interval"


def test_naive_datetimes_are_treated_as_utc():
    naive = TimeInterval(start=datetime(2026, 3, 2, 10), end=datetime(2026, 3, 2, 11))
    assert naive.start.tzinfo == timezone.utc
    assert naive.overlaps(interval(10.5, 11.5))


def test_shifted_preserves_duration():
    slot = interval(14, 15)
    later = slot.shifted(timedelta(weeks=1))
    assert later.start == slot.start + timedelta(weeks=1)
    assert later.duration == slot.duration
