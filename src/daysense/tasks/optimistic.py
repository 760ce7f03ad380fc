"""Apply-commit-revert helper for optimistic updates."""

from collections.abc import Awaitable, Callable, Iterable
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class OptimisticCollection(Generic[T]):
    """A list whose mutations are applied locally before the remote write.

    ``mutate`` applies the local change, then awaits the remote commit. If
    the commit raises, ``revert`` undoes that one change against the list
    as it is now, since other mutations may have landed while the commit
    was in flight. Without ``revert`` the pre-call snapshot is restored.
    The exception always propagates. On success ``reconcile`` may fold the
    remote result back into the list (e.g. swap a temporary id for the
    real one).
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: list[T] = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    @property
    def items(self) -> list[T]:
        return list(self._items)

    def replace(self, items: Iterable[T]) -> None:
        self._items = list(items)

    async def mutate(
        self,
        apply: Callable[[list[T]], list[T]],
        commit: Callable[[], Awaitable[R]],
        reconcile: Callable[[list[T], R], list[T]] | None = None,
        revert: Callable[[list[T]], list[T]] | None = None,
    ) -> R:
        snapshot = list(self._items)
        self._items = apply(list(self._items))

        try:
            result = await commit()
        except Exception:
            self._items = revert(list(self._items)) if revert is not None else snapshot
            raise

        if reconcile is not None:
            self._items = reconcile(self._items, result)
        return result
