"""Geometry engine: slot ratios, auto-fit and sheet layout math.

Pure functions only. Structural editor operations call ``fit_all``; the
preview layer reads the resulting transforms and never refits on its own.
"""

import math
from dataclasses import replace

from models import (
    EditorState, ImageLayer, Transform,
    LAYOUT_SEPARATE, SAFETY_MARGIN,
)


# Grid definitions for a combined sheet, by image count:
# (columns, rows, [(col, row, col_span, row_span), ...])
_GRIDS = {
    1: (1, 1, [(0, 0, 1, 1)]),
    2: (1, 2, [(0, 0, 1, 1), (0, 1, 1, 1)]),
    3: (2, 2, [(0, 0, 2, 1), (0, 1, 1, 1), (1, 1, 1, 1)]),
    4: (2, 2, [(0, 0, 1, 1), (1, 0, 1, 1), (0, 1, 1, 1), (1, 1, 1, 1)]),
}


# ------------------------------------------------------------------ #
#  Slot ratios and auto-fit                                           #
# ------------------------------------------------------------------ #

def slot_aspect_ratio(paper_ratio: float, image_count: int, slot_index: int,
                      layout_mode: str) -> float:
    """Aspect ratio (w / h) of the slot holding image *slot_index*.

    Two stacked slots each cover half the sheet height, so each is twice as
    wide relative to its height. With three images only the top (featured)
    slot is stacked that way; the 2x2 grid keeps the sheet ratio.
    """
    if layout_mode == LAYOUT_SEPARATE or image_count <= 1:
        return paper_ratio
    if image_count == 2:
        return paper_ratio * 2
    if image_count == 3:
        return paper_ratio * 2 if slot_index == 0 else paper_ratio
    return paper_ratio


def auto_fit_scale(image_aspect: float, slot_aspect: float, borderless: bool) -> float:
    """Scale that fits an image inside its slot with the print safety margin."""
    if image_aspect > slot_aspect:
        scale = (slot_aspect / image_aspect) * SAFETY_MARGIN
    else:
        scale = SAFETY_MARGIN
    if borderless:
        scale /= SAFETY_MARGIN
    return scale


def fit_layer(layer: ImageLayer, paper_ratio: float, image_count: int, slot_index: int,
              layout_mode: str, borderless: bool) -> ImageLayer:
    """Return *layer* auto-fitted to its slot, with position and rotation reset."""
    slot = slot_aspect_ratio(paper_ratio, image_count, slot_index, layout_mode)
    scale = auto_fit_scale(layer.aspect, slot, borderless)
    return replace(layer, transform=Transform(scale=scale))


def fit_all(state: EditorState) -> EditorState:
    """Refit every layer for the state's paper size, layout and border mode."""
    ratio = state.paper_size.aspect_ratio
    n = len(state.images)
    images = tuple(
        fit_layer(layer, ratio, n, i, state.layout_mode, state.borderless)
        for i, layer in enumerate(state.images)
    )
    return replace(state, images=images)


# ------------------------------------------------------------------ #
#  Sheet and cell layout                                              #
# ------------------------------------------------------------------ #

def sheet_groups(state: EditorState) -> list[list[int]]:
    """Layer indices per printed sheet: one shared sheet, or one per image."""
    n = len(state.images)
    if n == 0:
        return [[]]
    if state.layout_mode == LAYOUT_SEPARATE:
        return [[i] for i in range(n)]
    return [list(range(n))]


def sheet_size(height: int, paper_ratio: float) -> tuple[int, int]:
    return max(1, round(height * paper_ratio)), max(1, int(height))


def cell_rects(width: float, height: float, image_count: int, layout_mode: str,
               gap: float = 0.0) -> list[tuple[float, float, float, float]]:
    """Pixel rects ``(x, y, w, h)`` of the cells inside a sheet's content box.

    Separate sheets always hold a single full-size cell.
    """
    if layout_mode == LAYOUT_SEPARATE or image_count <= 1:
        return [(0.0, 0.0, float(width), float(height))]
    cols, rows, spans = _GRIDS[min(image_count, 4)]
    col_w = (width - gap * (cols - 1)) / cols
    row_h = (height - gap * (rows - 1)) / rows
    rects = []
    for col, row, col_span, row_span in spans:
        x = col * (col_w + gap)
        y = row * (row_h + gap)
        w = col_w * col_span + gap * (col_span - 1)
        h = row_h * row_span + gap * (row_span - 1)
        rects.append((x, y, w, h))
    return rects


def grid_cells(image_count: int, layout_mode: str) -> list[tuple[float, float, float, float]]:
    """Normalized (0..1) cell rects for a combined sheet without gaps."""
    return cell_rects(1.0, 1.0, image_count, layout_mode)


def contain_size(box_w: float, box_h: float, src_w: float, src_h: float) -> tuple[float, float]:
    """Largest size with the source aspect ratio that fits inside the box."""
    if src_w <= 0 or src_h <= 0 or box_w <= 0 or box_h <= 0:
        return box_w, box_h
    src_aspect = src_w / src_h
    if src_aspect > box_w / box_h:
        return box_w, box_w / src_aspect
    return box_h * src_aspect, box_h


# ------------------------------------------------------------------ #
#  Perspective (room mockup)                                          #
# ------------------------------------------------------------------ #

def project_quad(width: float, height: float, rotate_x_deg: float, rotate_y_deg: float,
                 distance: float) -> list[tuple[float, float]]:
    """Project a flat ``width x height`` plane like CSS
    ``perspective(distance) rotateY(y) rotateX(x)``.

    Returns the corners (top-left, top-right, bottom-right, bottom-left),
    shifted so the smallest x and y are zero.
    """
    ax = math.radians(rotate_x_deg)
    ay = math.radians(rotate_y_deg)
    corners = [(-width / 2, -height / 2), (width / 2, -height / 2),
               (width / 2, height / 2), (-width / 2, height / 2)]
    projected = []
    for x, y in corners:
        # rotateX, then rotateY (z points toward the viewer)
        y1 = y * math.cos(ax)
        z1 = y * math.sin(ax)
        x2 = x * math.cos(ay) + z1 * math.sin(ay)
        z2 = -x * math.sin(ay) + z1 * math.cos(ay)
        f = distance / (distance - z2)
        projected.append((x2 * f, y1 * f))
    min_x = min(p[0] for p in projected)
    min_y = min(p[1] for p in projected)
    return [(x - min_x, y - min_y) for x, y in projected]


def perspective_coefficients(dst_quad, src_quad) -> tuple[float, ...]:
    """Solve the homography mapping output points *dst_quad* to *src_quad*.

    The 8 coefficients are in the order Pillow's PERSPECTIVE transform expects.
    """
    rows = []
    rhs = []
    for (x, y), (u, v) in zip(dst_quad, src_quad):
        rows.append([x, y, 1, 0, 0, 0, -x * u, -y * u])
        rhs.append(u)
        rows.append([0, 0, 0, x, y, 1, -x * v, -y * v])
        rhs.append(v)
    return tuple(_solve(rows, rhs))


def _solve(a: list[list[float]], b: list[float]) -> list[float]:
    """Gaussian elimination with partial pivoting."""
    n = len(b)
    m = [row[:] + [b[i]] for i, row in enumerate(a)]
    for col in range(n):
        pivot = max(range(col, n), key=lambda r: abs(m[r][col]))
        if abs(m[pivot][col]) < 1e-12:
            raise ValueError("degenerate quad")
        m[col], m[pivot] = m[pivot], m[col]
        for r in range(col + 1, n):
            factor = m[r][col] / m[col][col]
            for c in range(col, n + 1):
                m[r][c] -= factor * m[col][c]
    solution = [0.0] * n
    for r in range(n - 1, -1, -1):
        acc = m[r][n] - sum(m[r][c] * solution[c] for c in range(r + 1, n))
        solution[r] = acc / m[r][r]
    return solution
