"""
Model Iterator - lazily paged iteration over every result of a query.

Pages are fetched with the query's limit as page size. The total is counted
again at each page edge; when rows vanished in the meantime (for example
because the loop body deleted them) the pointer moves back by the same
amount so no row is skipped.
"""

import logging
from typing import Any, Iterator, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .query import Query

logger = logging.getLogger(__name__)


class ModelIterator:
    def __init__(self, query: 'Query'):
        self._query = query.clone()
        self._start = self._query.get_start()
        self._limit = self._query.get_limit() or 1
        self._count: Optional[int] = None

        if not self._query.get_sort():
            ids = self._query.model_class.definition().ids
            self._query.sort([(name, 'asc') for name in ids])

    def count(self) -> int:
        if self._count is None:
            self._count = self._query.count()
        return self._count

    def __len__(self) -> int:
        return self.count()

    def _page_start(self, pointer: int) -> int:
        return self._start + ((pointer - self._start) // self._limit) * self._limit

    def _load(self, page_start: int) -> List[Any]:
        return self._query.clone().start(page_start).limit(self._limit).execute()

    def __iter__(self) -> Iterator[Any]:
        pointer = self._start
        total = self.count()
        loaded_start: Optional[int] = None
        models: List[Any] = []

        while pointer < total:
            page_start = self._page_start(pointer)
            if page_start != loaded_start:
                models = self._load(page_start)
                loaded_start = page_start

            index = pointer - page_start
            if index >= len(models):
                break
            yield models[index]
            pointer += 1

            if (pointer - self._start) % self._limit == 0:
                self._count = None
                new_total = self.count()
                if new_total < total:
                    pointer = max(self._start, pointer - (total - new_total))
                    loaded_start = None
                total = new_total

    def to_list(self) -> List[Any]:
        return list(self)


__all__ = ['ModelIterator']
