"""Date-range logic for host calendars.

Two pieces live here:

* :class:`AvailabilityRegistry` answers coverage queries over a host's
  availability entries.
* :class:`DateSelection` turns calendar clicks into a candidate stay range that
  never straddles two entries, because a stay's terms (price, favor, presence)
  come from exactly one entry.

Nothing in this module touches the database.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence, Union

from django.utils import timezone

DateLike = Union[date, datetime, str]


def as_date(value: DateLike) -> date:
    """Normalize a ``date``, ``datetime`` or ``YYYY-MM-DD`` string to a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def entry_contains(entry, day: DateLike) -> bool:
    """Inclusive containment check for anything with ``start_date``/``end_date``."""
    day = as_date(day)
    return as_date(entry.start_date) <= day <= as_date(entry.end_date)


class AvailabilityRegistry:
    """A flat collection of availability entries, scanned linearly.

    Entries may overlap. When several contain the same day the first one in
    iteration order wins; callers that load entries from the database pass
    them newest-first so that the most recently created entry takes priority.
    """

    def __init__(self, entries: Iterable = ()):
        self.entries = list(entries)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def covers(self, day: DateLike) -> bool:
        return self.entry_for(day) is not None

    def entry_for(self, day: DateLike):
        day = as_date(day)
        for entry in self.entries:
            if entry_contains(entry, day):
                return entry
        return None

    def entry_spanning(self, start: DateLike, end: DateLike):
        """Entry holding ``start`` if it also holds ``end``, else ``None``."""
        entry = self.entry_for(start)
        if entry is not None and entry_contains(entry, end):
            return entry
        return None


class DateSelection:
    """Click-driven range selection constrained to a single entry.

    ``EMPTY`` -> ``ANCHORED`` on a bookable click, ``ANCHORED`` -> ``COMPLETED``
    when the second click lands in the same entry. Any click after completion
    starts over, it never extends the range.
    """

    EMPTY = 'empty'
    ANCHORED = 'anchored'
    COMPLETED = 'completed'

    def __init__(self, registry: AvailabilityRegistry, today: Optional[DateLike] = None):
        self.registry = registry
        self.today = as_date(today) if today is not None else timezone.localdate()
        self.reset()

    def reset(self) -> None:
        self.state = self.EMPTY
        self.start: Optional[date] = None
        self.end: Optional[date] = None
        self.entry = None

    def is_bookable(self, day: date) -> bool:
        return day >= self.today and self.registry.covers(day)

    def _anchor(self, day: date) -> None:
        self.state = self.ANCHORED
        self.start = day
        self.end = None
        self.entry = self.registry.entry_for(day)

    def click(self, day: DateLike) -> str:
        day = as_date(day)
        if self.state == self.EMPTY:
            if self.is_bookable(day):
                self._anchor(day)
        elif self.state == self.ANCHORED:
            if not self.is_bookable(day):
                self.reset()
            elif self.registry.entry_for(day) != self.entry:
                self._anchor(day)
            else:
                self.start, self.end = min(self.start, day), max(self.start, day)
                self.state = self.COMPLETED
        else:
            self.reset()
            if self.is_bookable(day):
                self._anchor(day)
        return self.state

    def is_selected(self, day: DateLike) -> bool:
        day = as_date(day)
        if self.state == self.ANCHORED:
            return day == self.start
        if self.state == self.COMPLETED:
            return self.start <= day <= self.end
        return False

    @property
    def is_complete(self) -> bool:
        return self.state == self.COMPLETED


def resolve_selection(
    registry: AvailabilityRegistry,
    clicks: Sequence[DateLike],
    today: Optional[DateLike] = None,
) -> DateSelection:
    """Replay ``clicks`` in order and return the resulting selection."""
    selection = DateSelection(registry, today=today)
    for day in clicks:
        selection.click(day)
    return selection
