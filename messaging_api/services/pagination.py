# messaging_api/services/pagination.py
from messaging_api.core.exceptions import ValidationError

MAX_PAGE_SIZE = 100


def validate_pagination(page: int, page_size: int) -> tuple[int, int]:
    """Returns (limit, offset) for a 1-based page."""
    if page < 1:
        raise ValidationError("page must be >= 1.")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}.")
    return page_size, (page - 1) * page_size
