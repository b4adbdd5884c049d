from __future__ import annotations

from collections.abc import Callable
from datetime import date, timedelta

from .models import ViewType

_STEP = {ViewType.DAY: timedelta(days=1), ViewType.WEEK: timedelta(days=7)}


class CalendarNavigation:
    """Anchor date plus view granularity.

    ``clock`` supplies the date used for "today"; the anchor starts there.
    ``generation`` increases whenever the anchor moves. Boards carry it so a
    client can drop a board built for a view it has already left.
    """

    def __init__(self, clock: Callable[[], date] = date.today, view_type: ViewType = ViewType.DAY):
        self._clock = clock
        self.anchor_date: date = clock()
        self.view_type = ViewType(view_type)
        self.generation = 0

    def _move_to(self, new_date: date) -> date:
        if new_date != self.anchor_date:
            self.generation += 1
        self.anchor_date = new_date
        return new_date

    def previous(self) -> date:
        return self._move_to(self.anchor_date - _STEP[self.view_type])

    def next(self) -> date:
        return self._move_to(self.anchor_date + _STEP[self.view_type])

    def today(self) -> date:
        return self._move_to(self._clock())

    def set_view_type(self, view_type: ViewType | str) -> None:
        self.view_type = ViewType(view_type)

    def visible_dates(self) -> list[date]:
        if self.view_type is ViewType.DAY:
            return [self.anchor_date]
        monday = self.anchor_date - timedelta(days=self.anchor_date.weekday())
        return [monday + timedelta(days=i) for i in range(7)]
