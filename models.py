"""Data model classes and constants for the Wallified poster studio.

All model values are frozen dataclasses: operations build new values with
``dataclasses.replace`` so history snapshots never share mutable state.
Transform offsets are in reference pixels (a sheet drawn REFERENCE_SHEET_HEIGHT
pixels tall); renderers at other sizes scale them proportionally.
"""

from dataclasses import dataclass, field


# === Constants ===
MAX_IMAGES = 4
HISTORY_LIMIT = 30
SAFETY_MARGIN = 0.95           # keeps a bordered print from bleeding edge to edge

MIN_SCALE = 0.1
MAX_SCALE = 3.0
MIN_FONT_SIZE = 12
MAX_FONT_SIZE = 140
MAX_ADJUSTMENT = 200

REFERENCE_SHEET_HEIGHT = 780   # lab canvas height, in reference px
SHEET_PADDING = 48             # white border around a bordered sheet
GRID_GAP = 16                  # gap between cells of a combined sheet

# Pricing (INR)
BASE_PRICE = 299
BORDERLESS_SURCHARGE = 9
CURRENCY = "INR"
CURRENCY_SYMBOL = "₹"

# Print metadata handed downstream with every design
PRINT_DPI = 300
PRINT_COLOR_PROFILE = "CMYK"
PRINT_PAPER = "Premium Luster Photo Paper"
BORDER_MARGIN_MM = 5

LAYOUT_COMBINED = "combined"
LAYOUT_SEPARATE = "separate"
LAYOUT_MODES = (LAYOUT_COMBINED, LAYOUT_SEPARATE)

ISO_RATIO = 1 / 1.4142         # width / height of every ISO A sheet


# === Reference catalogs ===

@dataclass(frozen=True)
class PaperSize:
    """A printable poster format."""
    id: str
    display_name: str
    dimensions: str
    aspect_ratio: float        # width / height
    preview_scale: float       # relative size in the room mockup
    min_source_width: int      # source width (px) needed for a crisp print


# Largest first: resolution suggestions walk this list in order.
PAPER_SIZES = [
    PaperSize("A4", "A4 Standard", "21 x 29.7 cm", ISO_RATIO, 1.0, 2400),
    PaperSize("A5", "A5 Medium", "14.8 x 21 cm", ISO_RATIO, 0.8, 1800),
    PaperSize("A6", "A6 Small", "10.5 x 14.8 cm", ISO_RATIO, 0.6, 1200),
]
DEFAULT_PAPER_SIZE_ID = "A4"


def paper_size(size_id: str) -> PaperSize:
    """Look up a paper size, falling back to the largest for unknown ids."""
    for size in PAPER_SIZES:
        if size.id == size_id:
            return size
    return PAPER_SIZES[0]


def is_paper_size(size_id: str) -> bool:
    return any(size.id == size_id for size in PAPER_SIZES)


@dataclass(frozen=True)
class FontChoice:
    """An overlay typeface."""
    id: str
    name: str
    family: str  # generic CSS/Qt family used when the named face is missing


FONTS = [
    FontChoice("space-grotesk", "Space Grotesk", "sans-serif"),
    FontChoice("playfair-display", "Playfair Display", "serif"),
    FontChoice("mono", "Mono", "monospace"),
]
DEFAULT_FONT_ID = "space-grotesk"


def font_choice(font_id: str) -> FontChoice:
    for font in FONTS:
        if font.id == font_id:
            return font
    return FONTS[0]


def _clamp(value, low, high):
    return max(low, min(value, high))


# === Editor model ===

@dataclass(frozen=True)
class Transform:
    """Per-image placement inside its slot, applied about the slot centre."""
    scale: float = 1.0
    rotate_degrees: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if not -180 <= self.rotate_degrees <= 180:
            object.__setattr__(self, 'rotate_degrees', _clamp(self.rotate_degrees, -180.0, 180.0))


@dataclass(frozen=True)
class ImageLayer:
    """One uploaded photo, stored as normalized PNG bytes."""
    id: str
    source_name: str
    png_data: bytes = field(repr=False)
    natural_width: int
    natural_height: int
    transform: Transform = field(default_factory=Transform)

    @property
    def aspect(self) -> float:
        if self.natural_height <= 0:
            return 1.0
        return self.natural_width / self.natural_height


@dataclass(frozen=True)
class ColorAdjustments:
    """Non-destructive tonal filter, each value a percentage."""
    brightness: int = 100
    contrast: int = 100
    saturation: int = 100

    def __post_init__(self):
        for name in ('brightness', 'contrast', 'saturation'):
            object.__setattr__(self, name, int(_clamp(getattr(self, name), 0, MAX_ADJUSTMENT)))

    @property
    def is_neutral(self) -> bool:
        return self == ColorAdjustments()


@dataclass(frozen=True)
class OverlayText:
    """Optional caption drawn once per sheet, centred on (x%, y%)."""
    content: str = ""
    font_id: str = DEFAULT_FONT_ID
    font_size_px: int = 24
    color_hex: str = "#000000"
    x_percent: float = 50.0
    y_percent: float = 80.0

    def __post_init__(self):
        object.__setattr__(self, 'font_size_px',
                           int(_clamp(self.font_size_px, MIN_FONT_SIZE, MAX_FONT_SIZE)))
        object.__setattr__(self, 'x_percent', float(_clamp(self.x_percent, 0.0, 100.0)))
        object.__setattr__(self, 'y_percent', float(_clamp(self.y_percent, 0.0, 100.0)))

    @property
    def visible(self) -> bool:
        return bool(self.content)


@dataclass(frozen=True)
class EditorState:
    """Complete snapshot of one design session."""
    images: tuple[ImageLayer, ...] = ()
    paper_size_id: str = DEFAULT_PAPER_SIZE_ID
    borderless: bool = False
    layout_mode: str = LAYOUT_COMBINED
    adjustments: ColorAdjustments = field(default_factory=ColorAdjustments)
    overlay_text: OverlayText = field(default_factory=OverlayText)

    @property
    def paper_size(self) -> PaperSize:
        return paper_size(self.paper_size_id)

    @property
    def image_count(self) -> int:
        return len(self.images)

    @property
    def remaining_capacity(self) -> int:
        return max(0, MAX_IMAGES - len(self.images))

    def index_of(self, image_id: str) -> int:
        for i, layer in enumerate(self.images):
            if layer.id == image_id:
                return i
        raise KeyError(image_id)

    def layer(self, image_id: str) -> ImageLayer:
        return self.images[self.index_of(image_id)]


# === Submission payload ===

@dataclass(frozen=True)
class PrintSpecs:
    """Production metadata for the downstream print process."""
    dpi: int = PRINT_DPI
    color_profile: str = PRINT_COLOR_PROFILE
    margin_mm: int = BORDER_MARGIN_MM
    paper: str = PRINT_PAPER

    def to_dict(self) -> dict:
        return {
            'dpi': self.dpi,
            'colorProfile': self.color_profile,
            'margin': f"{self.margin_mm}mm",
            'paper': self.paper,
        }


@dataclass(frozen=True)
class DesignSpecification:
    """Immutable, priced design handed to the persistence adapter."""
    state: EditorState
    total_price: int
    print_specs: PrintSpecs
    currency: str = CURRENCY

    def to_record(self, source_urls: dict[str, str] | None = None) -> dict:
        """Serialize to a JSON-compatible dict.

        *source_urls* maps layer ids to the durable URLs their pixels were
        uploaded to; layers without an entry are stored without a URL.
        """
        urls = source_urls or {}
        s = self.state
        text = s.overlay_text
        return {
            'images': [
                {
                    'id': layer.id,
                    'sourceName': layer.source_name,
                    'sourceUrl': urls.get(layer.id),
                    'naturalResolution': {
                        'width': layer.natural_width,
                        'height': layer.natural_height,
                    },
                    'transform': {
                        'scale': layer.transform.scale,
                        'rotate': layer.transform.rotate_degrees,
                        'x': layer.transform.offset_x,
                        'y': layer.transform.offset_y,
                    },
                }
                for layer in s.images
            ],
            'layoutMode': s.layout_mode,
            'text': text.content,
            'textColor': text.color_hex,
            'font': font_choice(text.font_id).name,
            'fontSize': text.font_size_px,
            'textPos': {'x': text.x_percent, 'y': text.y_percent},
            'adjustments': {
                'brightness': s.adjustments.brightness,
                'contrast': s.adjustments.contrast,
                'saturation': s.adjustments.saturation,
            },
            'size': s.paper_size_id,
            'isBorderless': s.borderless,
            'totalPrice': self.total_price,
            'currency': self.currency,
            'printSpecs': self.print_specs.to_dict(),
        }
