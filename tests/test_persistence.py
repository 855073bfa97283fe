"""Tests for the persistence adapter and its local stores."""
import json

import pytest

import editor
import persistence
from cart import Cart
from errors import EmptyDesignError, PersistenceError
from models import EditorState, OverlayText, LAYOUT_SEPARATE
from persistence import (
    DESIGNS_COLLECTION, JsonRecordStore, LocalObjectStorage, submit_design,
)


class MemoryStorage:
    """ObjectStorage that keeps uploads in a dict."""

    def __init__(self, fail=False):
        self.objects = {}
        self.fail = fail

    def put(self, data, suggested_name):
        if self.fail:
            raise ConnectionError("storage offline")
        self.objects[suggested_name] = data
        return f"https://cdn.example/{suggested_name}"


class MemoryRecords:
    def __init__(self):
        self.rows = []

    def insert(self, collection, record):
        stored = {'id': f"rec{len(self.rows) + 1}", **record}
        self.rows.append((collection, stored))
        return stored


@pytest.fixture
def design(make_layer):
    state = editor.add_images(EditorState(), [make_layer(640, 480, 'red', 'a.jpg'),
                                              make_layer(480, 640, 'blue', 'b.jpg')])
    return editor.set_overlay_text(state, content="Us", font_id='mono')


class TestSubmitDesign:

    def test_submission_flow(self, design):
        storage, records, cart = MemoryStorage(), MemoryRecords(), Cart()
        item = submit_design(design, storage, records, cart, preview_height=200)

        source_keys = [k for k in storage.objects if k.startswith('custom/sources/')]
        preview_keys = [k for k in storage.objects if k.startswith('custom/previews/')]
        assert len(source_keys) == 2
        assert len(preview_keys) == 1

        collection, record = records.rows[0]
        assert collection == DESIGNS_COLLECTION
        assert record['size'] == 'A4'
        assert record['preview_url'] == f"https://cdn.example/{preview_keys[0]}"
        data = record['design_data']
        assert [img['id'] for img in data['images']] == [layer.id for layer in design.images]
        assert all(img['sourceUrl'].startswith('https://cdn.example/custom/sources/')
                   for img in data['images'])
        assert data['font'] == 'Mono'

        assert item.id == "custom-rec1"
        assert item.name == "Wallified Custom A4"
        assert item.price == 299
        assert item.image_url == record['preview_url']
        assert item.is_custom and item.design_id == "rec1" and not item.is_borderless
        assert cart.items == [item]

    def test_separate_prints_price_per_sheet(self, design):
        state = editor.set_layout_mode(design, LAYOUT_SEPARATE)
        item = submit_design(state, MemoryStorage(), MemoryRecords(), Cart(), preview_height=120)
        assert item.price == 2 * 299

    def test_empty_design_never_calls_collaborators(self):
        storage, records = MemoryStorage(), MemoryRecords()
        with pytest.raises(EmptyDesignError):
            submit_design(EditorState(), storage, records, Cart())
        assert storage.objects == {}
        assert records.rows == []

    def test_storage_failure_becomes_persistence_error(self, design):
        records, cart = MemoryRecords(), Cart()
        with pytest.raises(PersistenceError) as exc:
            submit_design(design, MemoryStorage(fail=True), records, cart, preview_height=120)
        assert "storage offline" in str(exc.value)
        assert records.rows == [] and len(cart) == 0

    def test_cart_failure_becomes_persistence_error(self, design):
        class ClosedCart:
            def add_to_cart(self, item):
                raise RuntimeError("cart closed")

        with pytest.raises(PersistenceError, match="cart closed"):
            submit_design(design, MemoryStorage(), MemoryRecords(), ClosedCart(), preview_height=120)

    def test_render_bug_is_not_reported_as_a_save_failure(self, design, monkeypatch):
        def broken_render(state, height):
            raise ZeroDivisionError("bad layout")

        monkeypatch.setattr(persistence.preview, 'render_lab', broken_render)
        storage = MemoryStorage()
        with pytest.raises(ZeroDivisionError):
            submit_design(design, storage, MemoryRecords(), Cart(), preview_height=120)
        assert storage.objects == {}

    def test_retry_after_failure_uses_same_source_keys(self, design):
        storage = MemoryStorage()
        submit_design(design, storage, MemoryRecords(), Cart(), preview_height=120)
        first = set(storage.objects)
        submit_design(design, storage, MemoryRecords(), Cart(), preview_height=120)
        assert set(storage.objects) == first

    def test_state_is_not_modified(self, design):
        before = design
        submit_design(design, MemoryStorage(), MemoryRecords(), Cart(), preview_height=120)
        assert design == before


class TestLocalStores:

    def test_local_storage_file_urls(self, tmp_path):
        storage = LocalObjectStorage(tmp_path)
        url = storage.put(b"abc", 'custom/previews/x.png')
        assert (tmp_path / 'custom/previews/x.png').read_bytes() == b"abc"
        assert url.startswith('file://')
        assert url.endswith('custom/previews/x.png')

    def test_local_storage_public_url(self, tmp_path):
        storage = LocalObjectStorage(tmp_path, 'https://img.wallified.in/')
        assert storage.put(b"abc", 'a/b.png') == 'https://img.wallified.in/a/b.png'

    def test_json_records_append(self, tmp_path):
        store = JsonRecordStore(tmp_path / 'records')
        first = store.insert('custom_designs', {'size': 'A5'})
        second = store.insert('custom_designs', {'size': 'A6'})
        assert first['id'] != second['id']
        assert 'created_at' in first
        rows = json.loads((tmp_path / 'records' / 'custom_designs.json').read_text())
        assert [r['size'] for r in rows] == ['A5', 'A6']
        assert store.all('custom_designs') == rows

    def test_end_to_end_with_local_stores(self, design, tmp_path):
        cart = Cart()
        item = submit_design(design, LocalObjectStorage(tmp_path / 'storage'),
                             JsonRecordStore(tmp_path / 'records'), cart, preview_height=120)
        rows = JsonRecordStore(tmp_path / 'records').all(DESIGNS_COLLECTION)
        assert item.design_id == rows[0]['id']
        assert rows[0]['design_data']['text'] == "Us"
        assert len(list((tmp_path / 'storage' / 'custom' / 'sources').iterdir())) == 2
