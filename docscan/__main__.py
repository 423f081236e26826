"""Command-line entry point: ``python -m docscan photo.jpg -o page.jpg``."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .codec import decode_image, draw_corners, encode_image
from .config import CropSettings
from .cropper import AutoCropper
from .editing import ColorFilter, apply_image_editing
from .errors import DecodeError, DegenerateQuadrilateralError
from .quality import analyze_image_quality
from .transformer import DocumentFormat

logger = logging.getLogger("docscan")


def parse_corners(value: str):
    """Parse ``x1,y1,x2,y2,x3,y3,x4,y4`` into four (x, y) pairs."""
    try:
        numbers = [float(v) for v in value.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"corners must be numbers: {value!r}") from None
    if len(numbers) != 8:
        raise argparse.ArgumentTypeError("corners need exactly 8 comma-separated values")
    return list(zip(numbers[0::2], numbers[1::2]))


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="docscan",
        description="Detect a photographed document and write a flattened crop.",
    )
    p.add_argument("input", type=Path, help="Photo to process (JPEG, PNG, ...).")
    p.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Where to write the crop (default: <input>_crop.jpg).",
    )
    p.add_argument(
        "--corners",
        type=parse_corners,
        default=None,
        help="Skip detection and crop to x1,y1,x2,y2,x3,y3,x4,y4 (original pixels).",
    )
    p.add_argument(
        "--format",
        choices=[f.value for f in DocumentFormat],
        default=DocumentFormat.AUTO.value,
        help="Paper format for manual crops (default: keep detected proportions).",
    )
    p.add_argument(
        "--rotate",
        type=int,
        choices=[0, 90, 180, 270],
        default=0,
        help="Rotate the crop clockwise by this many degrees.",
    )
    p.add_argument(
        "--filter",
        choices=[f.value for f in ColorFilter],
        default=ColorFilter.NONE.value,
        help="Color filter for the crop (default: none).",
    )
    p.add_argument("--overlay", type=Path, default=None, help="Also write the input with the corners drawn.")
    p.add_argument("--quality", type=int, default=None, help="JPEG quality of the crop.")
    p.add_argument("--budget-ms", type=float, default=None, help="Detection time budget in milliseconds.")
    p.add_argument("--analyze", action="store_true", help="Print a capture quality report.")
    p.add_argument("--json", action="store_true", help="Print the crop result as JSON.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.quality is not None:
        overrides["jpeg_quality"] = args.quality
    if args.budget_ms is not None:
        overrides["budget_ms"] = args.budget_ms
    settings = CropSettings.from_env(**overrides)
    cropper = AutoCropper(settings)

    output = args.output or args.input.with_name(f"{args.input.stem}_crop.jpg")
    color_filter = ColorFilter(args.filter)

    try:
        image_bytes = args.input.read_bytes()
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.input, exc)
        return 2

    try:
        if args.analyze:
            report = analyze_image_quality(decode_image(image_bytes))
            print(json.dumps(report.to_dict(), indent=2))

        if args.corners is not None:
            fmt = DocumentFormat(args.format)
            cropped = cropper.crop_with_corners(
                image_bytes, args.corners, fmt, args.rotate, color_filter
            )
            corners = args.corners
            logger.info("Manual crop written to %s", output)
        else:
            result = cropper.auto_crop(image_bytes)
            cropped = result.cropped_image
            corners = result.corners
            if result.fallback_used:
                logger.info("Fallback crop (%s) written to %s", result.fallback_reason, output)
            else:
                logger.info("Crop (confidence %.2f) written to %s", result.confidence, output)
            if args.rotate or color_filter is not ColorFilter.NONE:
                cropped = apply_image_editing(
                    cropped, args.rotate, color_filter, settings.jpeg_quality
                )
            if args.json:
                print(json.dumps(result.to_dict(), indent=2))
    except DecodeError as exc:
        logger.error("%s: %s", args.input, exc)
        return 2
    except DegenerateQuadrilateralError as exc:
        logger.error("Invalid corners: %s", exc)
        return 2

    output.write_bytes(cropped)

    if args.overlay is not None:
        overlay = draw_corners(decode_image(image_bytes), corners)
        fmt = "PNG" if args.overlay.suffix.lower() == ".png" else "JPEG"
        args.overlay.write_bytes(encode_image(overlay, settings.jpeg_quality, fmt))
        logger.info("Overlay written to %s", args.overlay)

    return 0


if __name__ == "__main__":
    sys.exit(main())
