"""Query layer over the SQLAlchemy models.

Repository functions stage changes on ``db.session`` and never commit; the
calling service owns the unit of work.
"""


def page_bounds(page, page_size: int) -> tuple[int, int]:
    """Normalize a 1-based page number into (limit, offset)."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    if page < 1:
        page = 1
    return page_size, (page - 1) * page_size
