from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .errors import EntryResolutionFailure, SaveFailure, ValidationFailure

logger = logging.getLogger(__name__)

CMA_CONTENT_TYPE = "application/vnd.contentful.management.v1+json"
PAGE_SIZE = 100


# =============================
# Entry
# =============================


@dataclass
class Entry:
    id: str
    content_type: str
    fields: Dict[str, Dict[str, Any]]
    version: Optional[int] = None
    client: Optional["ContentfulClient"] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_payload(
        cls, payload: Dict[str, Any], client: Optional["ContentfulClient"] = None, fallback_id: str = ""
    ) -> "Entry":
        # Inline sub-entries may carry no sys.id; callers pass a positional id
        sys_obj = payload.get("sys") or {}
        content_type = ((sys_obj.get("contentType") or {}).get("sys") or {}).get("id") or "unknown"
        return cls(
            id=str(sys_obj.get("id") or fallback_id),
            content_type=str(content_type),
            fields=payload.get("fields") or {},
            version=sys_obj.get("version"),
            client=client,
        )

    def title(self, locale: str = "en") -> str:
        for name in ("title", "name"):
            value = (self.fields.get(name) or {}).get(locale)
            if isinstance(value, str) and value:
                return value
        return self.id

    def update(self) -> None:
        """Persist the current field values as a draft."""
        if self.client is None:
            raise SaveFailure(self.id, f"Entry {self.id} is not bound to a content client")
        self.client.update_entry(self)


# =============================
# Content Management API client
# =============================


class ContentfulClient:
    def __init__(self, space_id: str, token: str, environment_id: str = "master", base_url: str = "https://api.contentful.com") -> None:
        self.base_url = f"{base_url.rstrip('/')}/spaces/{space_id}/environments/{environment_id}"
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": CMA_CONTENT_TYPE,
        })

    def _check_auth(self, resp: requests.Response) -> None:
        if resp.status_code == 401:
            raise PermissionError("API unauthorized (401)")
        if resp.status_code == 403:
            raise PermissionError("API forbidden (403)")

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        url = f"{self.base_url}/entries/{entry_id}"
        try:
            resp = self.session.get(url, timeout=30)
        except requests.RequestException as exc:
            raise EntryResolutionFailure(entry_id, f"GET entry {entry_id} failed: {exc}") from exc
        self._check_auth(resp)
        if resp.status_code == 404:
            logger.warning("Entry %s not found (404)", entry_id)
            return None
        if resp.status_code >= 400:
            raise EntryResolutionFailure(entry_id, f"GET entry {entry_id} failed: HTTP {resp.status_code}: {resp.text[:200]}")
        return Entry.from_payload(resp.json(), client=self)

    def get_entries(self, content_type: str) -> List[Entry]:
        url = f"{self.base_url}/entries"
        entries: List[Entry] = []
        skip = 0
        while True:
            params = {"content_type": content_type, "limit": PAGE_SIZE, "skip": skip}
            resp = self.session.get(url, params=params, timeout=30)
            self._check_auth(resp)
            if resp.status_code >= 400:
                raise RuntimeError(f"GET entries failed: HTTP {resp.status_code}: {resp.text[:200]}")
            payload = resp.json()
            items = payload.get("items") or []
            entries.extend(Entry.from_payload(item, client=self) for item in items)
            skip += len(items)
            if not items or skip >= int(payload.get("total") or 0):
                break
        return entries

    def get_content_type(self, content_type_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/content_types/{content_type_id}"
        resp = self.session.get(url, timeout=30)
        self._check_auth(resp)
        if resp.status_code >= 400:
            raise RuntimeError(f"GET content type {content_type_id} failed: HTTP {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    def update_entry(self, entry: Entry) -> None:
        url = f"{self.base_url}/entries/{entry.id}"
        headers = {"X-Contentful-Version": str(entry.version or 0)}
        try:
            resp = self.session.put(url, data=json.dumps({"fields": entry.fields}), headers=headers, timeout=60)
        except requests.RequestException as exc:
            raise SaveFailure(entry.id, f"PUT entry {entry.id} failed: {exc}") from exc
        self._check_auth(resp)
        if resp.status_code == 422:
            payload = resp.json()
            errors = (payload.get("details") or {}).get("errors") or []
            raise ValidationFailure(entry.id, errors, payload.get("message") or "Validation error")
        if resp.status_code >= 400:
            raise SaveFailure(entry.id, f"PUT entry {entry.id} failed: HTTP {resp.status_code}: {resp.text[:500]}")
        version = (resp.json().get("sys") or {}).get("version")
        if version is not None:
            entry.version = version
