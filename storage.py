"""Per-user namespaced persistence on top of the flat local storage.

Every data domain (symptom entries, medications) is stored under
``"{base_key}-{email}"`` so two users on the same install never see each
other's journals. Read and write failures are logged and swallowed: callers
get ``None`` back for "no data yet" and for "data was unreadable" alike.
"""

import json
import logging
from typing import Any, Optional

from db import LocalStorage, StorageReadFailed, StorageWriteFailed
from models import Medication, SymptomEntry

logger = logging.getLogger(__name__)


class STORAGE_KEYS:
    SYMPTOM_ENTRIES = "symptom-entries"
    MEDICATIONS = "medications"


class PersistedStateCorrupt(ValueError):
    """A stored value could not be decoded into the expected shape."""


def storage_key(base_key: str, user_email: str) -> str:
    return f"{base_key}-{user_email}"


def decode(raw: str, key: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise PersistedStateCorrupt(f"value under {key!r} is not valid JSON") from exc


def encode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class KeyedStorage:
    def __init__(self, store: LocalStorage):
        self.store = store

    def load(self, base_key: str, user_email: str) -> Optional[Any]:
        key = storage_key(base_key, user_email)
        try:
            raw = self.store.get_item(key)
        except StorageReadFailed:
            logger.exception("Error reading user storage data under %s", key)
            return None
        if raw is None:
            return None
        try:
            return decode(raw, key)
        except PersistedStateCorrupt:
            logger.warning("Discarding unreadable user storage data under %s", key, exc_info=True)
            return None

    def save(self, base_key: str, user_email: str, value: Any):
        key = storage_key(base_key, user_email)
        try:
            self.store.set_item(key, encode(value))
        except (TypeError, ValueError, StorageWriteFailed):
            logger.exception("Error saving user storage data under %s", key)

    def remove(self, base_key: str, user_email: str):
        key = storage_key(base_key, user_email)
        try:
            self.store.remove_item(key)
        except StorageWriteFailed:
            logger.exception("Error removing user storage data under %s", key)

    # ── Typed journals ────────────────────────────────────────────────────

    def load_entries(self, user_email: str) -> list[SymptomEntry]:
        raw = self.load(STORAGE_KEYS.SYMPTOM_ENTRIES, user_email)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Symptom entries for %s are not a list; ignoring", user_email)
            return []
        entries = []
        for item in raw:
            try:
                entries.append(SymptomEntry.from_dict(_normalize_legacy_entry(item)))
            except ValueError as exc:
                logger.warning("Skipping malformed symptom entry for %s: %s", user_email, exc)
        return entries

    def save_entries(self, user_email: str, entries: list[SymptomEntry]):
        self.save(STORAGE_KEYS.SYMPTOM_ENTRIES, user_email, [e.to_dict() for e in entries])

    def append_entry(self, user_email: str, entry: SymptomEntry) -> list[SymptomEntry]:
        entries = self.load_entries(user_email)
        entries.append(entry)
        self.save_entries(user_email, entries)
        return entries

    def load_medications(self, user_email: str) -> list[Medication]:
        raw = self.load(STORAGE_KEYS.MEDICATIONS, user_email)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Medications for %s are not a list; ignoring", user_email)
            return []
        meds = []
        for item in raw:
            try:
                meds.append(Medication.from_dict(item))
            except ValueError as exc:
                logger.warning("Skipping malformed medication for %s: %s", user_email, exc)
        return meds

    def save_medications(self, user_email: str, meds: list[Medication]):
        self.save(STORAGE_KEYS.MEDICATIONS, user_email, [m.to_dict() for m in meds])


def _normalize_legacy_entry(item: Any) -> Any:
    # Early entries stored symptoms as one free-text string.
    if isinstance(item, dict) and isinstance(item.get("symptoms"), str):
        item = dict(item)
        text = item["symptoms"].strip()
        item["symptoms"] = [text] if text else []
    return item
