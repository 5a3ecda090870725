# Overview: Product inventory controller; adds image upload ahead of the insert.

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from werkzeug.utils import secure_filename

from ..remote import BlobStorage, Order, RemoteStore, RemoteStoreError
from ..services.notifications import Notifier
from ..timestamps import stamp
from .collection import CollectionController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    data: bytes
    content_type: str | None = None


class ProductController(CollectionController):
    table = "products"
    entity = "Product"
    order = Order("created_at", ascending=True)
    search_fields = ("name", "category", "description")
    items_per_page = 10

    def __init__(
        self,
        store: RemoteStore,
        notifier: Notifier,
        *,
        storage: BlobStorage | None = None,
        items_per_page: int | None = None,
    ):
        super().__init__(store, notifier, items_per_page=items_per_page)
        self.storage = storage

    def _prepare_insert(self, draft: dict) -> dict:
        draft["featured"] = bool(draft.get("featured") or False)
        draft["created_at"] = stamp()
        return draft

    def upload_image(self, image: ImageUpload) -> str | None:
        """Store the image blob; returns its public URL, or None on failure."""
        if self.storage is None:
            self.notifier.failure("Failed to upload image", "Image storage is not configured.")
            return None

        path = f"{uuid.uuid4().hex}-{secure_filename(image.filename) or 'image'}"
        with self._busy():
            try:
                self.storage.upload(path, image.data, image.content_type)
            except RemoteStoreError as exc:
                logger.warning("Image upload failed for %s: %s", path, exc.message)
                self.last_error = exc
                self.notifier.failure(
                    "Failed to upload image",
                    exc.message or "An error occurred while uploading the image.",
                )
                return None
        return self.storage.get_public_url(path)

    def add(self, draft: dict, image: ImageUpload | None = None) -> dict | None:
        """
        Insert a product, uploading its image first when one is given.

        The two steps are not atomic: if the insert fails after the upload
        succeeded, the uploaded blob stays behind unreferenced.
        """
        if image is not None:
            url = self.upload_image(image)
            if url is None:
                return None
            draft = {**draft, "image_url": url}

        row = super().add(draft)
        if row is None and image is not None:
            logger.warning("Product insert failed; uploaded image %s left orphaned", draft.get("image_url"))
        return row

    @property
    def categories(self) -> list[str]:
        return sorted({row.get("category") for row in self.items if row.get("category")})
