"""Persistence adapter: store a confirmed design and hand it to the cart.

The adapter talks to three collaborators: an object store for pixels, a
record store for the design document and a cart. Local file-backed stores
are provided for the desktop app and the tests.
"""

import contextlib
import hashlib
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from cart import LineItem
import config
from errors import PersistenceError
from models import EditorState
import preview
import pricing

logger = logging.getLogger(__name__)

DESIGNS_COLLECTION = "custom_designs"
SOURCE_PREFIX = "custom/sources"
PREVIEW_PREFIX = "custom/previews"


# === Collaborators ===

class ObjectStorage(Protocol):
    def put(self, data: bytes, suggested_name: str) -> str: ...


class RecordStore(Protocol):
    def insert(self, collection: str, record: dict) -> dict: ...


class CartSink(Protocol):
    def add_to_cart(self, item: LineItem) -> None: ...


class LocalObjectStorage:
    """Files under *root*, served from *public_base_url* (or as file:// URLs)."""

    def __init__(self, root, public_base_url: str = ""):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip('/')

    def get_public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return (self.root / key).resolve().as_uri()

    def put(self, data: bytes, suggested_name: str) -> str:
        # Same key, same bytes: rewriting is harmless, so retries are safe.
        path = self.root / suggested_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored %s (%d bytes)", suggested_name, len(data))
        return self.get_public_url(suggested_name)


class JsonRecordStore:
    """One JSON list file per collection."""

    def __init__(self, root):
        self.root = Path(root)

    def _path(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def all(self, collection: str) -> list[dict]:
        path = self._path(collection)
        if not path.exists():
            return []
        with open(path, encoding='utf-8') as f:
            return json.load(f)

    def insert(self, collection: str, record: dict) -> dict:
        stored = {
            'id': str(uuid.uuid4()),
            'created_at': datetime.now(timezone.utc).isoformat(),
            **record,
        }
        records = self.all(collection)
        records.append(stored)
        self.root.mkdir(parents=True, exist_ok=True)
        with open(self._path(collection), 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2)
        logger.info("Inserted %s record %s", collection, stored['id'])
        return stored


# === Submission ===

def _digest(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()[:12]


def upload_sources(state: EditorState, storage: ObjectStorage) -> dict[str, str]:
    """Upload every layer's pixels; returns layer id -> public URL."""
    urls = {}
    for layer in state.images:
        key = f"{SOURCE_PREFIX}/{layer.id}-{_digest(layer.png_data)}.png"
        urls[layer.id] = storage.put(layer.png_data, key)
    return urls


def render_preview(state: EditorState, height: int) -> bytes:
    """PNG of the first lab sheet, used as the design's thumbnail."""
    return preview.to_png(preview.render_lab(state, height)[0])


def upload_preview(data: bytes, storage: ObjectStorage) -> str:
    return storage.put(data, f"{PREVIEW_PREFIX}/{_digest(data)}.png")


@contextlib.contextmanager
def _collaborator(step: str):
    """Turn a failing storage, record or cart call into a PersistenceError."""
    try:
        yield
    except Exception as e:
        logger.error("Design submission failed while %s: %s", step, e)
        raise PersistenceError(f"Could not save your design: {e}") from e


def submit_design(state: EditorState, storage: ObjectStorage, records: RecordStore,
                  cart: CartSink, preview_height: int | None = None) -> LineItem:
    """Persist *state* and add it to *cart* as a custom line item.

    Raises EmptyDesignError before touching any collaborator, and
    PersistenceError when a collaborator fails. *state* is never modified.
    """
    spec = pricing.build_design_specification(state)
    if preview_height is None:
        preview_height = config.PREVIEW_HEIGHT
    preview_png = render_preview(state, preview_height)

    with _collaborator("uploading photos"):
        source_urls = upload_sources(state, storage)
    with _collaborator("uploading the preview"):
        preview_url = upload_preview(preview_png, storage)

    payload = {
        'design_data': spec.to_record(source_urls),
        'preview_url': preview_url,
        'size': state.paper_size_id,
    }
    with _collaborator("saving the design record"):
        record = records.insert(DESIGNS_COLLECTION, payload)

    item = LineItem(
        id=f"custom-{record['id']}",
        name=f"Wallified Custom {state.paper_size_id}",
        price=spec.total_price,
        image_url=preview_url,
        quantity=1,
        size=state.paper_size_id,
        is_custom=True,
        design_id=record['id'],
        is_borderless=state.borderless,
    )
    with _collaborator("adding it to the cart"):
        cart.add_to_cart(item)

    logger.info("Submitted design %s (%s)", record['id'], pricing.format_price(spec.total_price))
    return item
