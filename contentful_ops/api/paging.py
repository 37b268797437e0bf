"""
Offset pagination over CMA collection endpoints.

The API answers list calls with {"items", "total", "skip", "limit"}. The
walk advances `skip` by the page size until it reaches `total`, re-reading
`total` from every response because other actors may delete items while a
run is in progress.
"""

import logging
import time
from typing import Callable, Iterator, Optional

from contentful_ops.api.retry import with_retry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_PAGE_DELAY = 0.5


def iter_pages(
    list_page: Callable[[dict], dict],
    query: Optional[dict] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page_delay: float = DEFAULT_PAGE_DELAY,
    max_items: Optional[int] = None,
    label: str = "items",
    retry_options: Optional[dict] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[list]:
    """
    Yield pages of items in increasing offset order.

    Any error other than a rate limit aborts the walk and propagates; pages
    already yielded are the caller's to keep or discard.
    """
    base_query = dict(query or {})
    retry_options = retry_options or {}
    skip = 0
    total = None
    fetched = 0

    while total is None or skip < total:
        limit = page_size
        if max_items is not None:
            limit = min(page_size, max_items - fetched)
            if limit <= 0:
                break

        page_query = {**base_query, "skip": skip, "limit": limit}
        response = with_retry(
            lambda: list_page(page_query),
            f"fetch-{label}-skip-{skip}",
            sleep=sleep,
            **retry_options,
        )

        total = response.get("total", 0)
        items = response.get("items", [])
        fetched += len(items)
        logger.info(f"Fetched {label} {skip}-{skip + len(items)} of {total}")

        yield items

        skip += page_size
        if skip < total and page_delay:
            sleep(page_delay)


def fetch_all_with_pagination(
    list_page: Callable[[dict], dict],
    query: Optional[dict] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page_delay: float = DEFAULT_PAGE_DELAY,
    max_items: Optional[int] = None,
    label: str = "items",
    retry_options: Optional[dict] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list:
    """Concatenate every page from iter_pages into one list."""
    all_items = []
    for items in iter_pages(
        list_page,
        query=query,
        page_size=page_size,
        page_delay=page_delay,
        max_items=max_items,
        label=label,
        retry_options=retry_options,
        sleep=sleep,
    ):
        all_items.extend(items)

    logger.info(f"Successfully fetched {len(all_items)} {label}")
    return all_items
