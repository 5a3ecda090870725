# Overview: Store settings controller: one record per account with upsert semantics.

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..models import DEFAULT_STORE_SETTINGS
from ..remote import Filter, RemoteStore, RemoteStoreError
from ..services.notifications import Notifier
from ..timestamps import stamp

logger = logging.getLogger(__name__)


class SettingsController:
    """
    Record variant of the collection controller.

    load() reads the caller's row, falling back to defaults when none exists.
    save() inserts the row the first time and updates it afterwards.
    """
    table = "store_settings"

    def __init__(self, store: RemoteStore, notifier: Notifier, user_id: Callable[[], Optional[str]]):
        self.store = store
        self.notifier = notifier
        self.user_id = user_id

        self.record: dict = {}
        self.exists = False
        self.loaded = False
        self.is_loading = False
        self.last_error: RemoteStoreError | None = None

    def defaults(self) -> dict:
        return {"user_id": self.user_id(), **DEFAULT_STORE_SETTINGS}

    def load(self) -> bool:
        self.is_loading = True
        try:
            result = self.store.select(self.table, filters=[Filter.eq("user_id", self.user_id())])
        except RemoteStoreError as exc:
            logger.warning("Loading settings failed: %s", exc.message)
            self.last_error = exc
            self.notifier.failure("Failed to fetch settings", exc.message or "An error occurred while fetching settings.")
            return False
        finally:
            self.is_loading = False

        if result.rows:
            self.record, self.exists = dict(result.rows[0]), True
        else:
            self.record, self.exists = self.defaults(), False
        self.loaded = True
        return True

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def save(self, fields: dict) -> dict | None:
        """Upsert the caller's settings row. Returns the stored row or None."""
        self.ensure_loaded()
        user_id = self.user_id()
        patch = {k: v for k, v in fields.items() if k != "user_id"}
        patch["updated_at"] = stamp()

        self.is_loading = True
        try:
            if self.exists:
                rows = self.store.update(self.table, [Filter.eq("user_id", user_id)], patch)
            else:
                base = {k: v for k, v in self.record.items() if k in DEFAULT_STORE_SETTINGS}
                rows = self.store.insert(self.table, [{**base, **patch, "user_id": user_id}])
            if not rows:
                raise RemoteStoreError("")
        except RemoteStoreError as exc:
            logger.warning("Saving settings failed: %s", exc.message)
            self.last_error = exc
            self.notifier.failure(
                "Failed to save settings",
                exc.message or "An error occurred while saving your settings.",
            )
            return None
        finally:
            self.is_loading = False

        self.record, self.exists = dict(rows[0]), True
        self.notifier.success("Settings Updated", "Your store settings have been saved successfully.")
        return self.record

    def reset(self) -> None:
        """Forget the cached record (e.g. after sign-out)."""
        self.record, self.exists, self.loaded = {}, False, False

    def snapshot(self) -> dict:
        return {"settings": self.record, "exists": self.exists, "is_loading": self.is_loading}
