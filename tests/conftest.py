import copy

import pytest

from contentful_ops.api.errors import ContentfulError, NotFoundError
from contentful_ops.config import Settings


def make_link(target_id, link_type="Entry"):
    return {"sys": {"type": "Link", "linkType": link_type, "id": target_id}}


def make_entry(entry_id, fields=None, content_type="page", version=1,
               published_version=None, archived=False):
    sys = {
        "id": entry_id,
        "type": "Entry",
        "version": version,
        "contentType": {"sys": {"type": "Link", "linkType": "ContentType", "id": content_type}},
        "createdAt": "2024-01-01T00:00:00.000Z",
    }
    if published_version:
        sys["publishedVersion"] = published_version
        sys["publishedAt"] = "2024-01-02T00:00:00.000Z"
    if archived:
        sys["archivedAt"] = "2024-01-03T00:00:00.000Z"
        sys["archivedVersion"] = version
    return {"sys": sys, "fields": fields if fields is not None else {}}


def make_asset(asset_id, version=1, published_version=None, archived=False):
    asset = make_entry(asset_id, {"title": {"en-US": asset_id}}, version=version,
                       published_version=published_version, archived=archived)
    asset["sys"]["type"] = "Asset"
    del asset["sys"]["contentType"]
    return asset


def _contains_link(value, target_id):
    if isinstance(value, dict):
        sys = value.get("sys")
        if isinstance(sys, dict) and sys.get("type") == "Link" and sys.get("id") == target_id:
            return True
        return any(_contains_link(v, target_id) for v in value.values())
    if isinstance(value, list):
        return any(_contains_link(v, target_id) for v in value)
    return False


class FakeContentfulClient:
    """In-memory stand-in for ContentfulManagementClient."""

    def __init__(self, entries=None, assets=None):
        self.entries = {e["sys"]["id"]: copy.deepcopy(e) for e in entries or []}
        self.assets = {a["sys"]["id"]: copy.deepcopy(a) for a in assets or []}
        # id -> exception (or list of exceptions, consumed in order) raised by get_entry/get_asset
        self.get_errors = {}
        # id -> exception raised by publish_entry/publish_asset
        self.publish_errors = {}
        self.calls = []

    def _raise_for(self, errors, entity_id):
        error = errors.get(entity_id)
        if isinstance(error, list):
            if error:
                raise error.pop(0)
        elif error is not None:
            raise error

    def calls_to(self, method):
        return [call for call in self.calls if call[0] == method]

    def connect(self):
        self.calls.append(("connect", None))
        return {"sys": {"id": "master"}}

    # Entries

    def get_entries(self, query=None):
        query = query or {}
        self.calls.append(("get_entries", dict(query)))
        items = list(self.entries.values())
        if "content_type" in query:
            items = [e for e in items if e["sys"]["contentType"]["sys"]["id"] == query["content_type"]]
        if "links_to_entry" in query:
            items = [e for e in items if _contains_link(e.get("fields"), query["links_to_entry"])]
        if "links_to_asset" in query:
            items = [e for e in items if _contains_link(e.get("fields"), query["links_to_asset"])]
        if query.get("sys.publishedAt[exists]") == "false":
            items = [e for e in items if not e["sys"].get("publishedAt")]
        elif query.get("sys.publishedAt[exists]") == "true":
            items = [e for e in items if e["sys"].get("publishedAt")]
        return self._page(items, query)

    def _page(self, items, query):
        skip = query.get("skip", 0)
        limit = query.get("limit", 100)
        return {
            "items": copy.deepcopy(items[skip:skip + limit]),
            "total": len(items),
            "skip": skip,
            "limit": limit,
        }

    def get_entry(self, entry_id):
        self.calls.append(("get_entry", entry_id))
        self._raise_for(self.get_errors, entry_id)
        if entry_id not in self.entries:
            raise NotFoundError()
        return copy.deepcopy(self.entries[entry_id])

    def _stored(self, store, entity):
        entity_id = entity["sys"]["id"]
        if entity_id not in store:
            raise NotFoundError()
        return store[entity_id]

    def _current(self, entry):
        """Stored entry, refusing writes sent with an outdated sys.version."""
        stored = self._stored(self.entries, entry)
        if entry["sys"].get("version") != stored["sys"]["version"]:
            raise ContentfulError("Version mismatch", status=409, error_id="VersionMismatch")
        return stored

    def update_entry(self, entry):
        self.calls.append(("update_entry", entry["sys"]["id"]))
        stored = self._current(entry)
        stored["fields"] = copy.deepcopy(entry.get("fields", {}))
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def publish_entry(self, entry):
        self.calls.append(("publish_entry", entry["sys"]["id"]))
        self._raise_for(self.publish_errors, entry["sys"]["id"])
        stored = self._current(entry)
        stored["sys"]["publishedVersion"] = stored["sys"]["version"]
        stored["sys"]["publishedAt"] = "2024-02-01T00:00:00.000Z"
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def unpublish_entry(self, entry):
        self.calls.append(("unpublish_entry", entry["sys"]["id"]))
        stored = self._stored(self.entries, entry)
        stored["sys"].pop("publishedVersion", None)
        stored["sys"].pop("publishedAt", None)
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def unarchive_entry(self, entry):
        self.calls.append(("unarchive_entry", entry["sys"]["id"]))
        stored = self._stored(self.entries, entry)
        stored["sys"].pop("archivedAt", None)
        stored["sys"].pop("archivedVersion", None)
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def delete_entry(self, entry):
        self.calls.append(("delete_entry", entry["sys"]["id"]))
        self._stored(self.entries, entry)
        del self.entries[entry["sys"]["id"]]
        return {}

    def get_entries_linking_to_entry(self, entry_id, limit=1000):
        return self.get_entries({"links_to_entry": entry_id, "limit": limit})

    def get_entries_linking_to_asset(self, asset_id, limit=1000):
        return self.get_entries({"links_to_asset": asset_id, "limit": limit})

    # Assets

    def get_assets(self, query=None):
        query = query or {}
        self.calls.append(("get_assets", dict(query)))
        return self._page(list(self.assets.values()), query)

    def get_asset(self, asset_id):
        self.calls.append(("get_asset", asset_id))
        self._raise_for(self.get_errors, asset_id)
        if asset_id not in self.assets:
            raise NotFoundError()
        return copy.deepcopy(self.assets[asset_id])

    def publish_asset(self, asset):
        self.calls.append(("publish_asset", asset["sys"]["id"]))
        self._raise_for(self.publish_errors, asset["sys"]["id"])
        stored = self._stored(self.assets, asset)
        stored["sys"]["publishedVersion"] = stored["sys"]["version"]
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def unpublish_asset(self, asset):
        self.calls.append(("unpublish_asset", asset["sys"]["id"]))
        stored = self._stored(self.assets, asset)
        stored["sys"].pop("publishedVersion", None)
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def unarchive_asset(self, asset):
        self.calls.append(("unarchive_asset", asset["sys"]["id"]))
        stored = self._stored(self.assets, asset)
        stored["sys"].pop("archivedAt", None)
        stored["sys"]["version"] += 1
        return copy.deepcopy(stored)

    def delete_asset(self, asset):
        self.calls.append(("delete_asset", asset["sys"]["id"]))
        self._stored(self.assets, asset)
        del self.assets[asset["sys"]["id"]]
        return {}


@pytest.fixture
def fake_client():
    return FakeContentfulClient()


@pytest.fixture
def sleeps():
    """Records requested delays instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def settings(tmp_path):
    return Settings(
        access_token="CFPAT-test",
        space_id="space1",
        environment_id="master",
        context="fr",
        retry_attempts=3,
        retry_base_delay=1.0,
        retry_max_delay=4.0,
        page_delay=0.5,
        write_delay=0,
        publish_wait=5.0,
        report_dir=tmp_path / "reports",
    )
