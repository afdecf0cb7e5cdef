"""Pillow front end for the callback adapters.

``DataMatrix`` drives ``encode`` with start/plotter/finish callbacks that paint
a ``PIL.Image`` and drives ``decode`` with a picker that reads one.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image

from .constants import (
    DEFAULT_GAP_SIZE,
    DEFAULT_MARGIN_SIZE,
    DEFAULT_MODULE_SIZE,
    DEFAULT_SCHEME,
    DEFAULT_SHAPE,
)
from .decoder import decode
from .encoder import Payload, as_payload, encode
from .errors import DmtxError

# reportlab is optional unless PDF output is used
try:
    from reportlab.lib.units import mm as RL_MM
    from reportlab.pdfgen import canvas
except ImportError:
    canvas = None
    RL_MM = None

RGB = Tuple[int, int, int]


def mm_to_pixels(mm: float, dpi: int) -> int:
    # 1 inch = 25.4 mm
    inches = mm / 25.4
    return int(round(inches * dpi))


def recolor(img: Image.Image, fg: RGB, bg: RGB) -> Image.Image:
    """
    libdmtx emits black-on-white. This remaps to desired fg/bg.
    Approach: threshold to 1-bit then expand to RGB.
    """
    gray = img.convert("L")
    bw = gray.point(lambda p: 0 if p < 128 else 255, mode="1")
    rgb = Image.new("RGB", bw.size, bg)
    # Paste fg where bw is black (0)
    mask = bw.point(lambda p: 255 if p == 0 else 0, mode="L")
    fg_img = Image.new("RGB", bw.size, fg)
    rgb.paste(fg_img, (0, 0), mask)
    return rgb


def scale_to_physical_size(
    img: Image.Image, target_mm: Optional[float], dpi: int
) -> Tuple[Image.Image, Optional[int]]:
    """
    If target_mm is provided, scale image so its width matches that physical size at given dpi.
    Height follows the aspect ratio (rectangular symbols stay rectangular).
    Returns (scaled_img, target_px or None).
    """
    if target_mm is None:
        return img, None

    target_px = mm_to_pixels(target_mm, dpi)
    if target_px <= 0:
        raise ValueError("target_mm must be > 0.")

    target_h = max(1, int(round(target_px * img.height / img.width)))
    # Nearest neighbour keeps module edges crisp
    scaled = img.resize((target_px, target_h), resample=Image.Resampling.NEAREST)
    return scaled, target_px


def write_png(img: Image.Image, out_path: Path, dpi: int) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    # Store DPI metadata to aid printing workflows
    img.save(out_path, format="PNG", dpi=(dpi, dpi), optimize=True)


def write_pdf_from_png(png_path: Path, pdf_path: Path, target_mm: float, aspect: float = 1.0) -> None:
    """Place ``png_path`` on a PDF page exactly ``target_mm`` wide (height = width * aspect)."""
    if canvas is None or RL_MM is None:
        raise RuntimeError("reportlab is not available. Install with: pip install reportlab")

    pdf_path.parent.mkdir(parents=True, exist_ok=True)

    width_pt = target_mm * RL_MM
    height_pt = target_mm * aspect * RL_MM

    c = canvas.Canvas(str(pdf_path), pagesize=(width_pt, height_pt))
    c.drawImage(str(png_path), 0, 0, width=width_pt, height=height_pt, preserveAspectRatio=True, mask="auto")
    c.showPage()
    c.save()


class DataMatrix:
    """Encode to and decode from Pillow images.

    Example:
        >>> dm = DataMatrix(module_size=4)
        >>> img = dm.encode("ABC123")
        >>> dm.decode(img)
        'ABC123'
    """

    def __init__(
        self,
        module_size: int = DEFAULT_MODULE_SIZE,
        margin_size: int = DEFAULT_MARGIN_SIZE,
        scheme: int = DEFAULT_SCHEME,
        shape: int = DEFAULT_SHAPE,
        gap_size: int = DEFAULT_GAP_SIZE,
    ) -> None:
        self.module_size = module_size
        self.margin_size = margin_size
        self.scheme = scheme
        self.shape = shape
        self.gap_size = gap_size
        self.image: Optional[Image.Image] = None

    @staticmethod
    def _start(width: int, height: int, context: Dict[str, Any]) -> None:
        context["canvas"] = Image.new("RGB", (width, height), (255, 255, 255))

    @staticmethod
    def _plot(col: int, row: int, color: RGB, context: Dict[str, Any]) -> None:
        context["canvas"].putpixel((col, row), color)

    def _finish(self, context: Dict[str, Any]) -> None:
        self.image = context["canvas"]

    def encode(self, data: Payload) -> Image.Image:
        payload = as_payload(data)
        self.image = None
        encode(
            payload,
            len(payload),
            self.module_size,
            self.margin_size,
            self.scheme,
            self.shape,
            plotter=self._plot,
            start=self._start,
            finish=self._finish,
            context={},
        )
        if self.image is None:
            raise DmtxError("Encoder finished without producing an image")
        return self.image

    def decode(self, image: Image.Image) -> Optional[str]:
        rgb = image.convert("RGB")
        return decode(
            rgb.width,
            rgb.height,
            self.gap_size,
            picker=lambda col, row, pixels: pixels[col, row],
            context=rgb.load(),
        )

    def _require_image(self) -> Image.Image:
        if self.image is None:
            raise RuntimeError("Nothing encoded yet; call encode() first.")
        return self.image

    def save(self, path: Union[str, Path], dpi: int = 600, size_mm: Optional[float] = None) -> Path:
        """Write the last encoded image as PNG, optionally scaled to ``size_mm`` wide."""
        if dpi <= 0:
            raise ValueError("dpi must be > 0.")
        scaled, _ = scale_to_physical_size(self._require_image(), size_mm, dpi)
        out_path = Path(path)
        write_png(scaled, out_path, dpi)
        return out_path

    def save_pdf(self, path: Union[str, Path], size_mm: float, dpi: int = 600) -> Path:
        """Write the last encoded image onto a PDF page ``size_mm`` wide."""
        img = self._require_image()
        pdf_path = Path(path)
        png_path = pdf_path.with_suffix(".png")
        self.save(png_path, dpi=dpi, size_mm=size_mm)
        write_pdf_from_png(png_path, pdf_path, size_mm, aspect=img.height / img.width)
        return pdf_path
