"""
Command line tools.

dmtx-encode: generate a print-ready Data Matrix (ECC200) code.
  - PNG: scaled to requested physical size (mm) at requested DPI
  - Optional PDF: places the image at exact physical size in mm for reliable printing

dmtx-decode: decode a Data Matrix code from an image file and print the payload.

Dependencies:
  pip install pylibdmtx pillow numpy opencv-python-headless reportlab
System:
  sudo apt install libdmtx0b libdmtx-dev
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .constants import (
    DEFAULT_GAP_SIZE,
    DEFAULT_MARGIN_SIZE,
    DEFAULT_MODULE_SIZE,
    DEFAULT_SCHEME,
    DEFAULT_SHAPE,
    parse_scheme,
    parse_shape,
)
from .decoder import decode_array
from .image import DataMatrix, recolor, scale_to_physical_size, write_pdf_from_png, write_png

Roi = Tuple[int, int, int, int]


def parse_color(s: str) -> Tuple[int, int, int]:
    """
    Accept:
      - hex like "#000000" or "000000"
      - common names: "black", "white"
    """
    s = s.strip().lower()
    if s in ("black",):
        return (0, 0, 0)
    if s in ("white",):
        return (255, 255, 255)
    if s.startswith("#"):
        s = s[1:]
    if len(s) != 6 or any(c not in "0123456789abcdef" for c in s):
        raise ValueError(f"Invalid color '{s}'. Use 'black', 'white', or hex like #RRGGBB.")
    return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))


def clamp_roi(x0: int, y0: int, x1: int, y1: int, w: int, h: int) -> Roi:
    x0 = max(0, min(x0, w - 1))
    y0 = max(0, min(y0, h - 1))
    x1 = max(1, min(x1, w))
    y1 = max(1, min(y1, h))
    if x1 <= x0 + 1:
        x1 = min(w, x0 + 2)
    if y1 <= y0 + 1:
        y1 = min(h, y0 + 2)
    return x0, y0, x1, y1


def parse_roi_arg(roi_str: str) -> Roi:
    parts = [p.strip() for p in roi_str.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("ROI must be 'x0,y0,x1,y1'")
    try:
        return int(parts[0]), int(parts[1]), int(parts[2]), int(parts[3])
    except ValueError as e:
        raise argparse.ArgumentTypeError("ROI values must be integers") from e


def apply_clahe(gray: np.ndarray, clip_limit: float, tile_grid: int) -> np.ndarray:
    """Contrast Limited Adaptive Histogram Equalization on a grayscale image.

    Helps Data Matrix reads when illumination is uneven.
    """
    import cv2

    if clip_limit <= 0:
        raise ValueError("--clahe-clip-limit must be > 0")
    if tile_grid <= 0:
        raise ValueError("--clahe-tile-grid must be > 0")
    clahe = cv2.createCLAHE(clipLimit=float(clip_limit), tileGridSize=(int(tile_grid), int(tile_grid)))
    return clahe.apply(np.ascontiguousarray(gray, dtype=np.uint8))


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(name)s] %(message)s")


def build_encode_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dmtx-encode",
        description="Generate a print-ready Data Matrix (ECC200) code as PNG (and optional PDF).",
    )
    p.add_argument(
        "payload",
        help="Text payload to encode (e.g., '50', 'DIE-50', 'ABC123')."
    )
    p.add_argument(
        "-e", "--encoding",
        default="utf-8",
        help="Text encoding used to convert payload to bytes (default: utf-8). Common: utf-8, ascii."
    )
    p.add_argument(
        "-o", "--out",
        default="datamatrix.png",
        help="Output PNG path (default: datamatrix.png)."
    )
    p.add_argument(
        "--size-mm",
        type=float,
        default=None,
        help="Target printed width in mm for the FULL code footprint. If set, PNG is scaled accordingly."
    )
    p.add_argument(
        "--dpi",
        type=int,
        default=600,
        help="DPI metadata for PNG and scaling reference when --size-mm is set (default: 600)."
    )
    p.add_argument(
        "--fg",
        default="black",
        help="Foreground color (modules). 'black' or hex like #000000 (default: black)."
    )
    p.add_argument(
        "--bg",
        default="white",
        help="Background color. 'white' or hex like #FFFFFF (default: white)."
    )
    p.add_argument(
        "--pdf",
        default=None,
        help="Optional output PDF path. If provided, PDF embeds the PNG at exact --size-mm."
    )
    p.add_argument("--module-size", type=int, default=DEFAULT_MODULE_SIZE, help="Pixels per module (default: 5).")
    p.add_argument("--margin-size", type=int, default=DEFAULT_MARGIN_SIZE, help="Quiet zone in pixels (default: 10).")
    p.add_argument(
        "--scheme",
        type=parse_scheme,
        default=DEFAULT_SCHEME,
        help="Encoding scheme: ascii, c40, text, x12, edifact, base256, auto-best (default: ascii)."
    )
    p.add_argument(
        "--shape",
        type=parse_shape,
        default=DEFAULT_SHAPE,
        help="Symbol shape: square-auto, rect-auto or a fixed size like square-24x24, rect-8x18 (default: square-auto)."
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return p


def encode_main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_encode_argparser().parse_args(argv)
    _setup_logging(args.verbose)

    if args.dpi <= 0:
        raise SystemExit("Error: --dpi must be > 0.")

    if args.pdf is not None and args.size_mm is None:
        raise SystemExit("Error: --pdf requires --size-mm so the PDF can be sized correctly in mm.")

    try:
        fg = parse_color(args.fg)
        bg = parse_color(args.bg)
    except ValueError as e:
        raise SystemExit(f"Error: {e}") from e

    dm = DataMatrix(
        module_size=args.module_size,
        margin_size=args.margin_size,
        scheme=args.scheme,
        shape=args.shape,
    )
    raw = dm.encode(args.payload.encode(args.encoding))
    colored = recolor(raw, fg=fg, bg=bg)
    scaled, target_px = scale_to_physical_size(colored, args.size_mm, args.dpi)

    out_png = Path(args.out).resolve()
    write_png(scaled, out_png, args.dpi)

    print("Generated Data Matrix")
    print(f"  Payload     : {args.payload!r}")
    print(f"  Encoding    : {args.encoding}")
    print(f"  Scheme      : {args.scheme.name.lower()}")
    print(f"  Output PNG  : {out_png}")
    print(f"  PNG size    : {scaled.size[0]} x {scaled.size[1]} px")
    print(f"  DPI         : {args.dpi}")
    if args.size_mm is not None:
        print(f"  Target size : {args.size_mm} mm ({target_px} px at {args.dpi} dpi)")

    if args.pdf is not None:
        out_pdf = Path(args.pdf).resolve()
        write_pdf_from_png(out_png, out_pdf, args.size_mm, aspect=scaled.size[1] / scaled.size[0])
        print(f"  Output PDF  : {out_pdf} (page width = {args.size_mm}mm)")


def build_decode_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dmtx-decode",
        description="Decode a Data Matrix code from an image file and print the decoded payload.",
    )
    p.add_argument("image_path", help="Image file to decode.")
    p.add_argument(
        "--gap-size",
        type=int,
        default=DEFAULT_GAP_SIZE,
        help="Scan every Nth row (default: 10). Lower is more thorough and slower."
    )
    p.add_argument("--roi", type=parse_roi_arg, default=None, help="Crop to 'x0,y0,x1,y1' before decoding.")

    # CLAHE is off by default for file decoding; camera captures usually benefit from it.
    p.add_argument(
        "--clahe",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Apply CLAHE (contrast enhancement) to the grayscale image before decoding (default: off).",
    )
    p.add_argument(
        "--clahe-clip-limit",
        type=float,
        default=2.0,
        help="CLAHE clip limit (higher increases contrast; default: 2.0).",
    )
    p.add_argument(
        "--clahe-tile-grid",
        type=int,
        default=8,
        help="CLAHE tile grid size N (applied as NxN; default: 8).",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return p


def decode_main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_decode_argparser().parse_args(argv)
    _setup_logging(args.verbose)

    if args.gap_size < 1:
        raise SystemExit("Error: --gap-size must be >= 1.")

    image_path = Path(args.image_path)

    if not image_path.exists():
        print(f"Error: file not found: {image_path}")
        sys.exit(1)

    try:
        img = Image.open(image_path)
        img.load()
    except OSError as e:
        print(f"Error: failed to open image: {e}")
        sys.exit(1)

    if args.roi is not None:
        x0, y0, x1, y1 = clamp_roi(*args.roi, img.width, img.height)
        img = img.crop((x0, y0, x1, y1))

    if args.clahe:
        try:
            pixels = apply_clahe(np.asarray(img.convert("L")), args.clahe_clip_limit, args.clahe_tile_grid)
        except ValueError as e:
            raise SystemExit(f"Error: {e}") from e
    else:
        pixels = np.asarray(img.convert("RGB"))

    text = decode_array(pixels, gap_size=args.gap_size)

    if text is None:
        print("NO READ")
        return

    print(f"READ: {text}")
