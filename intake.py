"""Image intake: decode uploads, enforce the photo cap, check print resolution."""

import io
import logging
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from errors import CapacityExceededError, DecodeFailureError, StudioError
from geometry import fit_all
from models import EditorState, ImageLayer, MAX_IMAGES, PAPER_SIZES, paper_size

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp')
IMAGE_FILTER = "Images (*.jpg *.jpeg *.png *.webp)"


@dataclass(frozen=True)
class DecodedImage:
    """Pixels of one upload, normalized to RGBA PNG."""
    name: str
    png_data: bytes = field(repr=False)
    width: int
    height: int


@dataclass(frozen=True)
class ResolutionAdvisory:
    """Non-blocking hint that a photo is too small for the chosen format."""
    natural_width: int
    paper_size_id: str
    suggested_size_id: str

    @property
    def message(self) -> str:
        return (f"For professional-grade clarity, we suggest {self.suggested_size_id} "
                f"size for this photo ({self.natural_width}px wide).")


@dataclass
class IntakeResult:
    """Outcome of one batch: new layers plus anything to tell the user."""
    layers: list[ImageLayer] = field(default_factory=list)
    advisories: list[ResolutionAdvisory] = field(default_factory=list)
    errors: list[StudioError] = field(default_factory=list)


def new_image_id() -> str:
    return uuid.uuid4().hex[:9]


def decode_image(data: bytes, name: str = "") -> DecodedImage:
    """Decode raw file bytes with Pillow and normalize to RGBA PNG."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        img = img.convert("RGBA")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeFailureError(name, str(e)) from e
    return DecodedImage(name=name, png_data=buf.getvalue(), width=img.width, height=img.height)


def new_layer(decoded: DecodedImage) -> ImageLayer:
    """Wrap decoded pixels in a layer with the default transform."""
    return ImageLayer(
        id=new_image_id(),
        source_name=decoded.name,
        png_data=decoded.png_data,
        natural_width=decoded.width,
        natural_height=decoded.height,
    )


def read_files(paths) -> list[tuple[str, bytes]]:
    """Read ``(name, bytes)`` pairs; unreadable paths yield empty payloads."""
    files = []
    for path in paths:
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            logger.warning("Could not read %s: %s", p, e)
            data = b""
        files.append((p.name, data))
    return files


def resolution_advisory(natural_width: int, paper_size_id: str) -> ResolutionAdvisory | None:
    """Suggest the largest format this width prints crisply at, if the current one is too big."""
    current = paper_size(paper_size_id)
    if natural_width >= current.min_source_width:
        return None
    suggestion = next(
        (s for s in PAPER_SIZES if natural_width >= s.min_source_width),
        PAPER_SIZES[-1],
    )
    return ResolutionAdvisory(natural_width, current.id, suggestion.id)


def state_advisories(state: EditorState) -> list[ResolutionAdvisory]:
    """Re-check every placed photo against the state's paper size."""
    advisories = []
    for layer in state.images:
        advisory = resolution_advisory(layer.natural_width, state.paper_size_id)
        if advisory is not None:
            advisories.append(advisory)
    return advisories


def intake(state: EditorState, files) -> IntakeResult:
    """Decode a batch of ``(name, bytes)`` files into new layers for *state*.

    Raises CapacityExceededError (accepting nothing) when *state* is already
    full. Otherwise files beyond the remaining capacity are skipped and
    reported, and each undecodable file is dropped on its own.
    """
    files = list(files)
    result = IntakeResult()
    if not files:
        return result

    remaining = state.remaining_capacity
    if remaining <= 0:
        logger.info("Rejected %d file(s): poster already holds %d images",
                    len(files), MAX_IMAGES)
        raise CapacityExceededError(0, len(files), MAX_IMAGES)

    kept = files[:remaining]
    overflow = len(files) - len(kept)
    if overflow:
        logger.info("Skipping %d file(s) beyond the %d-image cap", overflow, MAX_IMAGES)
        result.errors.append(CapacityExceededError(len(kept), overflow, MAX_IMAGES))

    for name, data in kept:
        try:
            decoded = decode_image(data, name)
        except DecodeFailureError as e:
            logger.warning("Dropping %s: %s", name, e.reason)
            result.errors.append(e)
            continue
        result.layers.append(new_layer(decoded))
        advisory = resolution_advisory(decoded.width, state.paper_size_id)
        if advisory is not None:
            result.advisories.append(advisory)

    if result.layers:
        # Fit each new layer to the slot it will occupy once appended.
        fitted = fit_all(replace(state, images=state.images + tuple(result.layers)))
        result.layers = list(fitted.images[len(state.images):])

    logger.debug("Intake accepted %d of %d file(s)", len(result.layers), len(files))
    return result
