# =============================================================================
# CONTENTFUL-OPS API Layer
# =============================================================================
"""
Content Management API access: HTTP client, error types, retry and paging.
"""

from contentful_ops.api.client import ContentfulManagementClient
from contentful_ops.api.errors import (
    AuthenticationError,
    ContentfulError,
    NotFoundError,
    RateLimitError,
    RetriesExhaustedError,
    ValidationFailedError,
)
from contentful_ops.api.paging import fetch_all_with_pagination, iter_pages
from contentful_ops.api.retry import with_retry

__all__ = [
    "ContentfulManagementClient",
    "ContentfulError",
    "AuthenticationError",
    "NotFoundError",
    "RateLimitError",
    "RetriesExhaustedError",
    "ValidationFailedError",
    "fetch_all_with_pagination",
    "iter_pages",
    "with_retry",
]
