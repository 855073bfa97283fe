"""Tests for pricing, print metadata and the design specification."""
import pytest

from errors import EmptyDesignError
from models import (
    EditorState, BASE_PRICE, BORDERLESS_SURCHARGE, LAYOUT_COMBINED, LAYOUT_SEPARATE, OverlayText,
)
from pricing import build_design_specification, format_price, price, print_specs, unit_price


def _state(make_layer, count, **kwargs):
    return EditorState(images=tuple(make_layer() for _ in range(count)), **kwargs)


class TestPrice:

    def test_unit_price(self):
        assert unit_price(False) == BASE_PRICE
        assert unit_price(True) == BASE_PRICE + BORDERLESS_SURCHARGE == 308

    def test_separate_prints_charge_per_photo(self, make_layer):
        state = _state(make_layer, 3, layout_mode=LAYOUT_SEPARATE, borderless=True)
        assert price(state) == 3 * (BASE_PRICE + BORDERLESS_SURCHARGE)

    def test_combined_poster_charges_once(self, make_layer):
        state = _state(make_layer, 3, layout_mode=LAYOUT_COMBINED, borderless=True)
        assert price(state) == BASE_PRICE + BORDERLESS_SURCHARGE

    def test_empty_design_shows_one_sheet_price(self):
        assert price(EditorState(layout_mode=LAYOUT_SEPARATE)) == BASE_PRICE

    def test_format_price(self):
        assert format_price(299) == "₹299"


class TestPrintSpecs:

    def test_bordered_margin(self):
        assert print_specs(EditorState()).to_dict() == {
            'dpi': 300,
            'colorProfile': 'CMYK',
            'margin': '5mm',
            'paper': 'Premium Luster Photo Paper',
        }

    def test_borderless_margin(self):
        assert print_specs(EditorState(borderless=True)).to_dict()['margin'] == '0mm'


class TestDesignSpecification:

    def test_empty_design_is_rejected(self):
        with pytest.raises(EmptyDesignError) as exc:
            build_design_specification(EditorState())
        assert str(exc.value) == "Please upload at least one image"

    def test_low_resolution_design_is_still_accepted(self, make_layer):
        spec = build_design_specification(EditorState(images=(make_layer(100, 100),)))
        assert spec.total_price == BASE_PRICE

    def test_record_layout(self, make_layer):
        layer = make_layer(640, 480, name='beach.jpg')
        state = EditorState(
            images=(layer,), paper_size_id='A5', borderless=True,
            overlay_text=OverlayText(content="Goa 2024", font_id='playfair-display', font_size_px=40),
        )
        record = build_design_specification(state).to_record({layer.id: 'https://cdn/x.png'})
        assert record['images'][0]['id'] == layer.id
        assert record['images'][0]['sourceUrl'] == 'https://cdn/x.png'
        assert record['images'][0]['naturalResolution'] == {'width': 640, 'height': 480}
        assert set(record['images'][0]['transform']) == {'scale', 'rotate', 'x', 'y'}
        assert record['text'] == "Goa 2024"
        assert record['font'] == "Playfair Display"
        assert record['fontSize'] == 40
        assert record['size'] == 'A5'
        assert record['isBorderless'] is True
        assert record['totalPrice'] == BASE_PRICE + BORDERLESS_SURCHARGE
        assert record['currency'] == 'INR'
        assert record['printSpecs']['margin'] == '0mm'
