from typing import Tuple


def clamp_page(page: int, page_size: int) -> Tuple[int, int]:
    """Page starts at 1; page_size defaults to 10 and is capped at 100."""
    if page <= 0:
        page = 1
    if page_size <= 0:
        page_size = 10
    elif page_size > 100:
        page_size = 100
    return page, page_size
