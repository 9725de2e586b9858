import copy
from typing import Any, Dict, List, Optional

from cms_translate.client import Entry


def link(entry_id: str, link_type: str = "Entry") -> Dict[str, Any]:
    return {"sys": {"type": "Link", "linkType": link_type, "id": entry_id}}


def entry_payload(entry_id: str, fields: Dict[str, Any], content_type: str = "page", version: int = 1) -> Dict[str, Any]:
    return {
        "sys": {"id": entry_id, "version": version, "contentType": {"sys": {"id": content_type}}},
        "fields": fields,
    }


def text(value: str, marks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {"nodeType": "text", "value": value, "marks": marks or [], "data": {}}


def block(node_type: str, *children: Dict[str, Any], data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"nodeType": node_type, "data": data or {}, "content": list(children)}


def document(*children: Dict[str, Any]) -> Dict[str, Any]:
    return block("document", *children)


class FakeClient:
    """In-memory content client; every fetch returns a fresh copy of the stored payload."""

    def __init__(
        self,
        payloads: List[Dict[str, Any]],
        content_types: Optional[Dict[str, Dict[str, Any]]] = None,
        fail_updates: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.store: Dict[str, Dict[str, Any]] = {p["sys"]["id"]: copy.deepcopy(p) for p in payloads}
        self.content_types = content_types or {}
        self.fail_updates = fail_updates or {}
        self.get_calls: List[str] = []
        self.updated: List[str] = []

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        self.get_calls.append(entry_id)
        payload = self.store.get(entry_id)
        if payload is None:
            return None
        return Entry.from_payload(copy.deepcopy(payload), client=self)

    def get_entries(self, content_type: str) -> List[Entry]:
        return [
            Entry.from_payload(copy.deepcopy(p), client=self)
            for p in self.store.values()
            if p["sys"]["contentType"]["sys"]["id"] == content_type
        ]

    def get_content_type(self, content_type_id: str) -> Dict[str, Any]:
        return self.content_types.get(content_type_id, {"fields": []})

    def update_entry(self, entry: Entry) -> None:
        if entry.id in self.fail_updates:
            raise self.fail_updates[entry.id]
        self.store[entry.id]["fields"] = copy.deepcopy(entry.fields)
        self.updated.append(entry.id)

    def entry(self, entry_id: str) -> Entry:
        found = self.get_entry(entry_id)
        assert found is not None
        return found


def dict_translator(mapping: Dict[str, str]):
    calls: List[tuple] = []

    def translate(value: str, locale: str) -> Optional[str]:
        calls.append((value, locale))
        return mapping.get(value, f"{value} [{locale}]")

    translate.calls = calls  # type: ignore[attr-defined]
    return translate
