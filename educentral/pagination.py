import math


class Page:
    """One page of an in-memory list.

    ``page_numbers`` is the window shown in the pager: up to five numbers
    around the current page, with ``None`` where an ellipsis goes.
    """

    WINDOW = 5

    def __init__(self, items, page=1, per_page=10):
        self.total = len(items)
        self.per_page = per_page
        self.pages = max(1, math.ceil(self.total / per_page))
        self.page = min(max(1, page), self.pages)
        start = (self.page - 1) * per_page
        self.items = items[start:start + per_page]
        self.first_index = start + 1 if self.total else 0
        self.last_index = start + len(self.items)

    @property
    def has_prev(self):
        return self.page > 1

    @property
    def has_next(self):
        return self.page < self.pages

    @property
    def page_numbers(self):
        if self.pages <= self.WINDOW:
            return list(range(1, self.pages + 1))
        half = self.WINDOW // 2
        start = max(1, self.page - half)
        end = min(self.pages, start + self.WINDOW - 1)
        start = max(1, end - self.WINDOW + 1)

        numbers = list(range(start, end + 1))
        if start > 1:
            numbers = [1] + ([None] if start > 2 else []) + numbers
        if end < self.pages:
            numbers = numbers + ([None] if end < self.pages - 1 else []) + [self.pages]
        return numbers


def paginate(items, page=1, per_page=10):
    return Page(list(items), page, per_page)
