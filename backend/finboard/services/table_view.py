"""
In-memory state for one rendered table: search text, sort, page and the
create/edit modal, plus the filtered -> sorted -> paginated derivations.

Records are plain mappings from column key to display value. A record may
carry a precomputed lowercase search blob under ``SEARCH_KEY``; when present
it is checked before falling back to the record's own fields.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Any, Callable, Iterable, Literal, Mapping, Optional, Sequence

from finboard.config import PAGE_SIZE


logger = logging.getLogger(__name__)

SEARCH_KEY = "_search"

ModalType = Literal["income", "user"]
SortDirection = Literal["asc", "desc"]
Record = Mapping[str, Any]


class Column:
    def __init__(self, key: str, label: str, sortable: bool = True) -> None:
        self.key = key
        self.label = label
        self.sortable = sortable

    def as_dict(self) -> dict:
        return {"key": self.key, "label": self.label, "sortable": self.sortable}


class SortState:
    def __init__(self, key: Optional[str] = None, direction: SortDirection = "asc") -> None:
        self.key = key
        self.direction = direction

    def __repr__(self) -> str:
        return f"SortState(key={self.key!r}, direction={self.direction!r})"


class ModalController:
    """
    Open/close state for the create/edit dialog.

    ``close()`` is the only way back to the closed state, so a closed modal
    never keeps a type or a selected record. Opening while already open
    simply overwrites.
    """

    def __init__(self) -> None:
        self.is_open = False
        self.type: Optional[ModalType] = None
        self.selected: Optional[Record] = None

    def open(self, modal_type: ModalType, selected: Optional[Record] = None) -> None:
        self.type = modal_type
        self.selected = selected
        self.is_open = True

    def close(self) -> None:
        self.is_open = False
        self.type = None
        self.selected = None

    def as_dict(self) -> dict:
        return {"isOpen": self.is_open, "type": self.type, "selected": _public(self.selected)}


def infer_modal_type(title: str) -> ModalType:
    """Legacy rule: a table titled with "income" creates transactions, anything else users."""
    return "income" if "income" in (title or "").lower() else "user"


def display_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, Mapping):
        return " ".join(display_text(v) for v in value.values() if v is not None)
    if isinstance(value, (list, tuple)):
        return " ".join(display_text(v) for v in value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def record_matches(record: Record, search: str) -> bool:
    needle = (search or "").strip().lower()
    if not needle:
        return True
    blob = record.get(SEARCH_KEY)
    if isinstance(blob, str) and needle in blob:
        return True
    for key, value in record.items():
        if key == SEARCH_KEY or value is None:
            continue
        if needle in display_text(value).lower():
            return True
    return False


def filter_records(records: Iterable[Record], search: str) -> list[Record]:
    return [record for record in records if record_matches(record, search)]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def sort_value(value: Any) -> tuple:
    # None < numbers < text; only like kinds are compared with each other
    if value is None:
        return (0, 0, 0)
    if _is_number(value):
        return (1, 0, value)
    return (1, 1, display_text(value).lower())


def sort_records(records: Sequence[Record], sort: SortState) -> list[Record]:
    """
    Stable sort by ``sort.key``. Ascending puts missing values first and
    descending puts them last; ``sorted(reverse=True)`` keeps equal keys in
    input order.
    """
    if sort.key is None:
        return list(records)
    key = sort.key
    return sorted(records, key=lambda r: sort_value(r.get(key)), reverse=sort.direction == "desc")


def total_pages_for(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(1, page), max(1, total_pages))


def paginate(records: Sequence[Record], page: int, page_size: int = PAGE_SIZE) -> tuple[list[Record], int, int]:
    """Return ``(rows, effective_page, total_pages)``."""
    total = total_pages_for(len(records), page_size)
    effective = clamp_page(page, total)
    start = (effective - 1) * page_size
    return list(records[start:start + page_size]), effective, total


def _public(record: Optional[Record]) -> Optional[dict]:
    if record is None:
        return None
    return {k: v for k, v in record.items() if k != SEARCH_KEY}


class TableView:
    """
    View state for one table render.

    Intent callbacks are optional and fire after the matching transition:
    ``on_sort(SortState)``, ``on_page_change(page)``, ``on_edit(record)`` and
    ``on_create(modal_type)``.
    """

    def __init__(
        self,
        records: Sequence[Record],
        columns: Sequence[Column],
        title: str = "",
        add_type: Optional[ModalType] = None,
        page_size: int = PAGE_SIZE,
        on_sort: Optional[Callable[[SortState], None]] = None,
        on_page_change: Optional[Callable[[int], None]] = None,
        on_edit: Optional[Callable[[Record], None]] = None,
        on_create: Optional[Callable[[ModalType], None]] = None,
    ) -> None:
        self.records = list(records)
        self.columns = list(columns)
        self.title = title
        self.add_type = add_type
        self.page_size = page_size
        self.search = ""
        self.sort = SortState()
        self.page = 1
        self.modal = ModalController()
        self._on_sort = on_sort
        self._on_page_change = on_page_change
        self._on_edit = on_edit
        self._on_create = on_create

    # -- state transitions -------------------------------------------------

    def set_search(self, text: str) -> None:
        self.search = text or ""
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = page
        if self._on_page_change:
            self._on_page_change(self.effective_page)

    def column(self, key: str) -> Optional[Column]:
        for col in self.columns:
            if col.key == key:
                return col
        return None

    def is_sortable(self, key: str) -> bool:
        col = self.column(key)
        return col is not None and col.sortable

    def toggle_sort(self, key: str) -> None:
        if not self.is_sortable(key):
            return
        if self.sort.key == key:
            self.sort = SortState(key, "desc" if self.sort.direction == "asc" else "asc")
        else:
            self.sort = SortState(key, "asc")
        if self._on_sort:
            self._on_sort(self.sort)

    def sort_by(self, key: Optional[str], direction: SortDirection = "asc") -> None:
        """Set the sort state directly, as a request's query string does."""
        if key is not None and not self.is_sortable(key):
            raise ValueError(f"Column {key!r} is not sortable")
        self.sort = SortState(key, direction)
        if self._on_sort:
            self._on_sort(self.sort)

    def on_add(self) -> None:
        modal_type = self.add_type or infer_modal_type(self.title)
        self.modal.open(modal_type, None)
        if self._on_create:
            self._on_create(modal_type)

    def on_edit_request(self, record_id: Any) -> Optional[Record]:
        for record in self.records:
            if record.get("id") == record_id:
                self.modal.open(self.add_type or infer_modal_type(self.title), record)
                if self._on_edit:
                    self._on_edit(record)
                return record
        logger.debug("Edit requested for unknown record %r in %r", record_id, self.title)
        return None

    # -- derivations -------------------------------------------------------

    def filtered(self) -> list[Record]:
        return filter_records(self.records, self.search)

    def sorted(self) -> list[Record]:
        return sort_records(self.filtered(), self.sort)

    @property
    def total_items(self) -> int:
        return len(self.filtered())

    @property
    def total_pages(self) -> int:
        return total_pages_for(self.total_items, self.page_size)

    @property
    def effective_page(self) -> int:
        return clamp_page(self.page, self.total_pages)

    def page_rows(self) -> list[Record]:
        rows, _, _ = paginate(self.sorted(), self.page, self.page_size)
        return rows

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "columns": [col.as_dict() for col in self.columns],
            "rows": [_public(row) for row in self.page_rows()],
            "pagination": {
                "page": self.effective_page,
                "total_pages": self.total_pages,
                "total_items": self.total_items,
                "page_size": self.page_size,
            },
            "sort": {"key": self.sort.key, "direction": self.sort.direction},
            "search": self.search,
            "modal": self.modal.as_dict(),
        }
