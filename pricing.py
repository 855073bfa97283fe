"""Pricing, print metadata and pre-submission validation."""

from models import (
    EditorState, DesignSpecification, PrintSpecs,
    BASE_PRICE, BORDERLESS_SURCHARGE, BORDER_MARGIN_MM, CURRENCY_SYMBOL, LAYOUT_SEPARATE,
)
from errors import EmptyDesignError


def unit_price(borderless: bool) -> int:
    """Price of one printed sheet."""
    return BASE_PRICE + (BORDERLESS_SURCHARGE if borderless else 0)


def price(state: EditorState) -> int:
    """Total price: one sheet for a combined poster, one per photo when separate."""
    sheets = max(1, state.image_count) if state.layout_mode == LAYOUT_SEPARATE else 1
    return unit_price(state.borderless) * sheets


def format_price(amount: int) -> str:
    return f"{CURRENCY_SYMBOL}{amount}"


def print_specs(state: EditorState) -> PrintSpecs:
    return PrintSpecs(margin_mm=0 if state.borderless else BORDER_MARGIN_MM)


def validate_for_submission(state: EditorState) -> None:
    """Raise EmptyDesignError for a poster with no photos.

    Resolution is deliberately not checked here: low-resolution advisories
    never block a design.
    """
    if not state.images:
        raise EmptyDesignError()


def build_design_specification(state: EditorState) -> DesignSpecification:
    validate_for_submission(state)
    return DesignSpecification(
        state=state,
        total_price=price(state),
        print_specs=print_specs(state),
    )
