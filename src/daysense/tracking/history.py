"""Daily flow score history."""

from collections.abc import Callable, Iterable
from datetime import date

from daysense.models import FlowScoreRecord
from daysense.scoring.flow import weekly_average, weekly_trend


class FlowScoreHistory:
    """Ordered list of daily flow scores, one record per calendar day.

    Recording a score for a day that already has one replaces it in
    place. ``persist`` is called with every recorded score.
    """

    def __init__(
        self,
        records: Iterable[FlowScoreRecord] = (),
        persist: Callable[[FlowScoreRecord], None] | None = None,
    ) -> None:
        self._records: list[FlowScoreRecord] = sorted(records, key=lambda r: r.date)
        self._persist = persist

    @property
    def records(self) -> list[FlowScoreRecord]:
        return list(self._records)

    @property
    def current_score(self) -> int | None:
        return self._records[-1].score if self._records else None

    @property
    def weekly_average(self) -> int | None:
        return weekly_average(self._records)

    def record(self, entry: FlowScoreRecord) -> None:
        for index, existing in enumerate(self._records):
            if existing.date == entry.date:
                self._records[index] = entry
                break
        else:
            self._records.append(entry)
            self._records.sort(key=lambda r: r.date)

        if self._persist is not None:
            self._persist(entry)

    def get_daily_score(self, day: date) -> int | None:
        for entry in self._records:
            if entry.date == day:
                return entry.score
        return None

    def weekly_trend(self, today: date | None = None) -> list[int]:
        return weekly_trend(self._records, today)
