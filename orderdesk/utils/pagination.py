from typing import Any, Tuple


def normalize_paging(page: Any, page_size: Any, max_page_size: int = 100) -> Tuple[int, int]:
    """Coerce query-string paging values; bad or missing values fall back to page 1 / 20 rows."""
    try:
        p = int(page)
    except (TypeError, ValueError):
        p = 1
    try:
        ps = int(page_size)
    except (TypeError, ValueError):
        ps = 20
    p = p if p > 0 else 1
    ps = ps if ps > 0 else 20
    return p, min(ps, max_page_size)
