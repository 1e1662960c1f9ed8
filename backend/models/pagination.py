"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM Console - Pagination                                                    ║
║                                                                              ║
║  Les procédures get_orders / get_reminders_for_admin renvoient des lignes    ║
║  dénormalisées: chaque ligne répète la colonne total_count.                  ║
║                                                                              ║
║  Deux formes de réponse, classées dès la frontière RPC:                      ║
║  - "paginated": lignes avec total_count (fenêtre serveur limit/offset)       ║
║  - "list": liste brute sans total_count, déjà fenêtrée par le serveur         ║
║    (ou jeu complet si plus de lignes que limit: paginé côté client)           ║
║                                                                              ║
║  Les deux sont normalisées en PaginatedResult.                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import math
from typing import Any, Callable, Dict, Generic, List, Literal, Optional, TypeVar, Union
from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

TOTAL_COUNT_FIELD = "total_count"


class PaginatedResponse(BaseModel):
    """Server-side page: one window of rows plus the server-side total"""
    kind: Literal["paginated"] = "paginated"
    rows: List[Dict[str, Any]] = []
    total_count: int = 0


class ListResponse(BaseModel):
    """Bare row set without total_count (server window, or complete set)"""
    kind: Literal["list"] = "list"
    rows: List[Dict[str, Any]] = []


PageResponse = Union[PaginatedResponse, ListResponse]


class PaginatedResult(BaseModel, Generic[T]):
    """Normalized page handed to the views"""
    items: List[T] = []
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False


def page_offset(page: int, limit: int) -> int:
    """1-indexed page number -> 0-indexed row offset"""
    return (page - 1) * limit


def to_page_response(rows: Optional[List[Dict[str, Any]]]) -> PageResponse:
    """Classify a raw row set returned by a listing procedure"""
    rows = list(rows or [])
    if not rows:
        return PaginatedResponse(rows=[], total_count=0)

    first = rows[0]
    if isinstance(first, dict) and TOTAL_COUNT_FIELD in first:
        return PaginatedResponse(rows=rows, total_count=int(first.get(TOTAL_COUNT_FIELD) or 0))

    return ListResponse(rows=rows)


def normalize_page(
    response: PageResponse,
    page: int,
    limit: int,
    parse_row: Callable[[Dict[str, Any]], Any] = lambda row: row,
    result_cls: type = PaginatedResult,
) -> PaginatedResult:
    """
    Build the PaginatedResult for the requested page.

    total_pages = ceil(total_count / limit), current_page echoes `page`.
    """
    if isinstance(response, ListResponse) and len(response.rows) <= limit:
        return _windowed_list(response.rows, page, limit, parse_row, result_cls)

    if isinstance(response, ListResponse):
        # More rows than asked for: the procedure ignored the window
        total_count = len(response.rows)
        start = page_offset(page, limit)
        window = response.rows[start:start + limit]
    else:
        total_count = response.total_count
        window = response.rows

    total_pages = math.ceil(total_count / limit) if limit > 0 else 0

    return result_cls(
        items=[parse_row(_strip_total(row)) for row in window],
        total_count=total_count,
        current_page=page,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )


def _windowed_list(rows, page: int, limit: int, parse_row, result_cls) -> PaginatedResult:
    """
    Bare list that already is the requested window.

    The total is unknown: it counts the rows seen up to this page, and a full
    window means a next page may exist.
    """
    full = len(rows) == limit
    total_count = page_offset(page, limit) + len(rows)
    return result_cls(
        items=[parse_row(_strip_total(row)) for row in rows],
        total_count=total_count,
        current_page=page,
        total_pages=page + 1 if full else page,
        has_next_page=full,
        has_previous_page=page > 1,
    )


def _strip_total(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k != TOTAL_COUNT_FIELD}
