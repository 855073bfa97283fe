"""Preview rendering with Pillow: flat "lab" sheets and the "room" mockup.

Rendering reads EditorState only. Transforms are applied about each cell's
centre (contain-fit, then scale, rotate, translate) and clipped to the cell;
tonal adjustments are applied to the rendered copy, never to stored pixels.
"""

import functools
import io
import logging
import math

from PIL import Image, ImageColor, ImageDraw, ImageEnhance, ImageFilter, ImageFont

from geometry import (
    cell_rects, contain_size, perspective_coefficients, project_quad, sheet_groups, sheet_size,
)
from models import (
    EditorState, ImageLayer, ColorAdjustments, OverlayText,
    GRID_GAP, LAYOUT_SEPARATE, REFERENCE_SHEET_HEIGHT, SHEET_PADDING, font_choice,
)

logger = logging.getLogger(__name__)

SHEET_COLOR = (255, 255, 255, 255)

# Room mockup
ROOM_ASPECT = 1.6
ROOM_WALL = (218, 212, 202)
ROOM_FLOOR = (139, 115, 92)
ROOM_FLOOR_HEIGHT = 0.2        # fraction of the room height
ROOM_POSTER_HEIGHT = 0.5       # poster height relative to the room, before preview_scale
ROOM_SHEET_PADDING = 24
ROOM_FRAME = 15
ROOM_FRAME_COLOR = (9, 9, 11, 255)
ROOM_ROTATE_X = 3.0
ROOM_ROTATE_Y = -10.0
ROOM_PERSPECTIVE = 1500.0

# Candidate faces per generic family; the first one FreeType can open wins.
_FONT_FILES = {
    'sans-serif': ["SpaceGrotesk-Regular.ttf", "DejaVuSans.ttf", "Arial.ttf",
                   "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
                   "/System/Library/Fonts/Helvetica.ttc"],
    'serif': ["PlayfairDisplay-Regular.ttf", "DejaVuSerif.ttf", "Georgia.ttf",
              "/usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf",
              "/System/Library/Fonts/Supplemental/Georgia.ttf"],
    'monospace': ["DejaVuSansMono.ttf", "Courier New.ttf",
                  "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
                  "/System/Library/Fonts/Menlo.ttc"],
}


# ------------------------------------------------------------------ #
#  Public API                                                         #
# ------------------------------------------------------------------ #

def render_lab(state: EditorState, height: int = REFERENCE_SHEET_HEIGHT) -> list[Image.Image]:
    """Render every printed sheet: one for a combined poster, one per photo when separate."""
    return [render_sheet(state, group, height) for group in sheet_groups(state)]


def sheet_cells(state: EditorState, indices: list[int], height: int,
                padding: float = SHEET_PADDING) -> list[tuple[int, tuple[float, float, float, float]]]:
    """``(layer index, (x, y, w, h))`` for each cell of a sheet *height* pixels tall."""
    factor = height / REFERENCE_SHEET_HEIGHT
    w, h = sheet_size(height, state.paper_size.aspect_ratio)
    pad = 0 if state.borderless else round(padding * factor)
    content_w, content_h = max(1, w - 2 * pad), max(1, h - 2 * pad)
    mode = LAYOUT_SEPARATE if len(indices) <= 1 else state.layout_mode
    rects = cell_rects(content_w, content_h, len(indices), mode, GRID_GAP * factor)
    return [(index, (pad + x, pad + y, cw, ch)) for index, (x, y, cw, ch) in zip(indices, rects)]


def render_sheet(state: EditorState, indices: list[int], height: int,
                 padding: float = SHEET_PADDING) -> Image.Image:
    """Render one sheet holding the layers at *indices*, *height* pixels tall."""
    factor = height / REFERENCE_SHEET_HEIGHT
    sheet = Image.new("RGBA", sheet_size(height, state.paper_size.aspect_ratio), SHEET_COLOR)

    for index, (x, y, cw, ch) in sheet_cells(state, indices, height, padding):
        cell = render_cell(state.images[index], cw, ch, factor, state.adjustments)
        sheet.paste(cell, (round(x), round(y)), cell)

    if state.overlay_text.visible:
        draw_overlay_text(sheet, state.overlay_text, factor)
    return sheet.convert("RGB")


def render_cell(layer: ImageLayer, cell_w: float, cell_h: float, factor: float,
                adjustments: ColorAdjustments) -> Image.Image:
    """Render one layer into a transparent, clipped cell image."""
    cell = Image.new("RGBA", (max(1, round(cell_w)), max(1, round(cell_h))), (0, 0, 0, 0))
    t = layer.transform
    fit_w, fit_h = contain_size(cell_w, cell_h, layer.natural_width, layer.natural_height)
    size = (max(1, round(fit_w * t.scale)), max(1, round(fit_h * t.scale)))

    img = _open_png(layer.png_data).resize(size, Image.Resampling.BICUBIC)
    img = apply_adjustments(img, adjustments)
    if t.rotate_degrees:
        # Positive degrees turn clockwise on screen; Pillow turns counter-clockwise.
        img = img.rotate(-t.rotate_degrees, resample=Image.Resampling.BICUBIC, expand=True)

    cx = cell_w / 2 + t.offset_x * factor
    cy = cell_h / 2 + t.offset_y * factor
    cell.paste(img, (round(cx - img.width / 2), round(cy - img.height / 2)), img)
    return cell


def apply_adjustments(img: Image.Image, adjustments: ColorAdjustments) -> Image.Image:
    """Brightness / contrast / saturation filter on a copy, alpha untouched."""
    if adjustments.is_neutral:
        return img
    alpha = img.getchannel("A") if img.mode == "RGBA" else None
    rgb = img.convert("RGB")
    for enhancer, value in ((ImageEnhance.Brightness, adjustments.brightness),
                            (ImageEnhance.Contrast, adjustments.contrast),
                            (ImageEnhance.Color, adjustments.saturation)):
        if value != 100:
            rgb = enhancer(rgb).enhance(value / 100)
    if alpha is None:
        return rgb
    rgb.putalpha(alpha)
    return rgb


def draw_overlay_text(sheet: Image.Image, text: OverlayText, factor: float = 1.0):
    """Draw the caption centred on (x%, y%) of the sheet."""
    draw = ImageDraw.Draw(sheet)
    font = load_font(font_choice(text.font_id).family, max(1, round(text.font_size_px * factor)))
    try:
        color = ImageColor.getrgb(text.color_hex)
    except ValueError:
        color = (0, 0, 0)
    left, top, right, bottom = draw.textbbox((0, 0), text.content, font=font)
    cx = sheet.width * text.x_percent / 100
    cy = sheet.height * text.y_percent / 100
    origin = (cx - (left + right) / 2, cy - (top + bottom) / 2)
    draw.text(origin, text.content, fill=color, font=font)


def render_room(state: EditorState, height: int = REFERENCE_SHEET_HEIGHT) -> Image.Image:
    """Composite the first sheet, framed and in perspective, onto a room backdrop."""
    factor = height / REFERENCE_SHEET_HEIGHT
    room_w = round(height * ROOM_ASPECT)
    room = Image.new("RGBA", (room_w, height), ROOM_WALL + (255,))
    floor_top = round(height * (1 - ROOM_FLOOR_HEIGHT))
    ImageDraw.Draw(room).rectangle([0, floor_top, room_w, height], fill=ROOM_FLOOR)

    poster_h = max(1, round(height * ROOM_POSTER_HEIGHT * state.paper_size.preview_scale))
    sheet = render_sheet(state, sheet_groups(state)[0], poster_h, padding=ROOM_SHEET_PADDING)
    frame = max(1, round(ROOM_FRAME * factor))
    framed = Image.new("RGBA", (sheet.width + 2 * frame, sheet.height + 2 * frame), ROOM_FRAME_COLOR)
    framed.paste(sheet, (frame, frame))

    fw, fh = framed.size
    quad = project_quad(fw, fh, ROOM_ROTATE_X, ROOM_ROTATE_Y, ROOM_PERSPECTIVE * factor)
    coeffs = perspective_coefficients(quad, [(0, 0), (fw, 0), (fw, fh), (0, fh)])
    out_size = (math.ceil(max(x for x, _ in quad)), math.ceil(max(y for _, y in quad)))
    warped = framed.transform(out_size, Image.Transform.PERSPECTIVE, coeffs,
                              Image.Resampling.BICUBIC)

    left = (room_w - warped.width) // 2
    top = max(0, floor_top - warped.height - round(height * 0.08))
    shadow = Image.new("RGBA", warped.size, (0, 0, 0, 0))
    shadow.putalpha(warped.getchannel("A").point(lambda a: a // 2))
    shadow = shadow.filter(ImageFilter.GaussianBlur(max(1, round(18 * factor))))
    room.paste(shadow, (left, top + round(24 * factor)), shadow)
    room.paste(warped, (left, top), warped)
    return room.convert("RGB")


def to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


# ------------------------------------------------------------------ #
#  Helpers                                                            #
# ------------------------------------------------------------------ #

@functools.lru_cache(maxsize=8)
def _open_png(png_data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(png_data))
    img.load()
    return img.convert("RGBA")


@functools.lru_cache(maxsize=32)
def load_font(family: str, size: int):
    for name in _FONT_FILES.get(family, _FONT_FILES['sans-serif']):
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug("No TrueType face for %s; using Pillow's default font", family)
    return ImageFont.load_default(size=size)
