"""
Contentful Content Management API client.

Thin wrapper over the REST endpoints the maintenance commands need. Entries
and assets are returned as the raw JSON documents the API sends back; write
calls take the current document so the `X-Contentful-Version` header can be
taken from `sys.version`.

Non-2xx responses are raised as the typed errors in
contentful_ops.api.errors. Nothing here retries; wrap calls with
contentful_ops.api.retry.with_retry.
"""

import logging
from typing import Optional

import requests

from contentful_ops.api.errors import STATUS_ERRORS, ContentfulError

logger = logging.getLogger(__name__)

CMA_BASE_URL = "https://api.contentful.com"
CMA_CONTENT_TYPE = "application/vnd.contentful.management.v1+json"
DEFAULT_TIMEOUT = 30


class ContentfulManagementClient:
    """Content Management API client scoped to one space environment."""

    def __init__(
        self,
        access_token: str,
        space_id: str,
        environment_id: str,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = CMA_BASE_URL,
        session: Optional[requests.Session] = None,
    ):
        self.access_token = access_token
        self.space_id = space_id
        self.environment_id = environment_id
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    @property
    def environment_url(self) -> str:
        return f"{self.base_url}/spaces/{self.space_id}/environments/{self.environment_id}"

    def _headers(self, version: Optional[int] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": CMA_CONTENT_TYPE,
        }
        if version is not None:
            headers["X-Contentful-Version"] = str(version)
        return headers

    def _request(self, method: str, url: str, version: Optional[int] = None, **kwargs) -> dict:
        """Send one request and return the decoded body ({} for empty bodies)."""
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(version),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise ContentfulError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise self._build_error(response)

        if not response.content:
            return {}
        return response.json()

    def _build_error(self, response: requests.Response) -> ContentfulError:
        """Map an error response onto the matching exception class."""
        try:
            body = response.json()
        except ValueError:
            body = {}

        status = response.status_code
        error_id = body.get("sys", {}).get("id")
        message = body.get("message") or response.text or f"HTTP {status}"
        kwargs = {
            "status": status,
            "error_id": error_id,
            "details": body.get("details") or {},
            "request_id": body.get("requestId"),
        }

        error_cls = STATUS_ERRORS.get(status, ContentfulError)
        if status == 429:
            reset = response.headers.get("X-Contentful-RateLimit-Reset")
            kwargs["retry_after"] = float(reset) if reset else None
        return error_cls(message, **kwargs)

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    def connect(self) -> dict:
        """Verify the token, space and environment. Returns the environment document."""
        self._request("GET", f"{self.base_url}/spaces/{self.space_id}")
        environment = self._request("GET", self.environment_url)
        logger.info(f"Connected to space {self.space_id}, environment {self.environment_id}")
        return environment

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def get_entries(self, query: Optional[dict] = None) -> dict:
        """List entries. Returns the collection document with items/total/skip/limit."""
        return self._request("GET", f"{self.environment_url}/entries", params=query or {})

    def get_entry(self, entry_id: str) -> dict:
        return self._request("GET", f"{self.environment_url}/entries/{entry_id}")

    def update_entry(self, entry: dict) -> dict:
        """Write `entry["fields"]` back. Returns the updated entry (new version)."""
        entry_id = entry["sys"]["id"]
        return self._request(
            "PUT",
            f"{self.environment_url}/entries/{entry_id}",
            version=entry["sys"]["version"],
            json={"fields": entry.get("fields", {})},
        )

    def publish_entry(self, entry: dict) -> dict:
        entry_id = entry["sys"]["id"]
        return self._request(
            "PUT",
            f"{self.environment_url}/entries/{entry_id}/published",
            version=entry["sys"]["version"],
        )

    def unpublish_entry(self, entry: dict) -> dict:
        return self._request("DELETE", f"{self.environment_url}/entries/{entry['sys']['id']}/published")

    def unarchive_entry(self, entry: dict) -> dict:
        return self._request("DELETE", f"{self.environment_url}/entries/{entry['sys']['id']}/archived")

    def delete_entry(self, entry: dict) -> dict:
        return self._request("DELETE", f"{self.environment_url}/entries/{entry['sys']['id']}")

    def get_entries_linking_to_entry(self, entry_id: str, limit: int = 1000) -> dict:
        """Reverse lookup: entries whose fields link to `entry_id`."""
        return self.get_entries({"links_to_entry": entry_id, "limit": limit})

    def get_entries_linking_to_asset(self, asset_id: str, limit: int = 1000) -> dict:
        """Reverse lookup: entries whose fields link to `asset_id`."""
        return self.get_entries({"links_to_asset": asset_id, "limit": limit})

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def get_assets(self, query: Optional[dict] = None) -> dict:
        return self._request("GET", f"{self.environment_url}/assets", params=query or {})

    def get_asset(self, asset_id: str) -> dict:
        return self._request("GET", f"{self.environment_url}/assets/{asset_id}")

    def publish_asset(self, asset: dict) -> dict:
        return self._request(
            "PUT",
            f"{self.environment_url}/assets/{asset['sys']['id']}/published",
            version=asset["sys"]["version"],
        )

    def unpublish_asset(self, asset: dict) -> dict:
        return self._request("DELETE", f"{self.environment_url}/assets/{asset['sys']['id']}/published")

    def unarchive_asset(self, asset: dict) -> dict:
        return self._request("DELETE", f"{self.environment_url}/assets/{asset['sys']['id']}/archived")

    def delete_asset(self, asset: dict) -> dict:
        return self._request("DELETE", f"{self.environment_url}/assets/{asset['sys']['id']}")
