"""Shared pytest fixtures for Wallified Poster Studio tests."""
import os

os.environ['QT_QPA_PLATFORM'] = 'offscreen'  # must be set before QApplication import

import io
import pytest
from PIL import Image


@pytest.fixture(scope='session')
def qapp():
    """Create a single QApplication for all tests."""
    from controller import PosterStudioApp
    app = PosterStudioApp([])
    yield app


@pytest.fixture
def make_png():
    """Factory fixture: make_png(width, height, color) -> PNG bytes."""
    def _make(width, height, color='red'):
        img = Image.new('RGB', (width, height), color)
        buf = io.BytesIO()
        img.save(buf, format='PNG')
        return buf.getvalue()
    return _make


@pytest.fixture
def sample_files(make_png):
    """Four ``(name, bytes)`` uploads of varied shapes, all print-sized for A6."""
    specs = [
        ('red.png', 1600, 1200, 'red'),
        ('blue.png', 1200, 1700, 'blue'),
        ('green.png', 1300, 1300, 'green'),
        ('orange.png', 2000, 1000, 'orange'),
    ]
    return [(name, make_png(w, h, color)) for name, w, h, color in specs]


@pytest.fixture
def make_layer(make_png):
    """Factory fixture: make_layer(width, height, color) -> ImageLayer with the default transform."""
    from intake import decode_image, new_layer

    def _make(width=400, height=300, color='red', name='photo.png'):
        return new_layer(decode_image(make_png(width, height, color), name))
    return _make
