"""Runtime orchestration components."""

from .pagination import Paginator, PaginationStats, paginate, paginate_model

__all__ = [
    "Paginator",
    "PaginationStats",
    "paginate",
    "paginate_model",
]
