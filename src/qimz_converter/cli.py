"""Command line interface for the QIMZ converter."""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path
from typing import Iterable, List

from PIL import Image

from .codec import encode_qimz
from .converter import (
    DEFAULT_WHITE_THRESHOLD,
    MAX_DIMENSION,
    OLED_HEIGHT,
    OLED_WIDTH,
    ConversionParams,
    binarize_image,
    scale_to_aspect,
)
from .errors import ConversionError, SourceUnavailableError

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff"}


def iter_images(paths: Iterable[str]) -> List[Path]:
    results: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            if path.suffix.lower() not in IMAGE_SUFFIXES:
                raise ConversionError(f"Unsupported file type: {path}")
            results.append(path)
        elif path.is_dir():
            for entry in sorted(path.iterdir()):
                if entry.is_file() and entry.suffix.lower() in IMAGE_SUFFIXES:
                    results.append(entry)
        else:
            raise ConversionError(f"Input path does not exist: {path}")
    if not results:
        raise ConversionError("No image files were found in the provided inputs.")
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Convert images into QIMZ monochrome bitmaps for the Quokka OLED display.\n"
            f"Images are scaled to fit {OLED_WIDTH}x{OLED_HEIGHT} unless --width/--height are given; "
            "giving only one of them keeps the source aspect ratio.\n"
            "A pixel is white when its luminance (0.299R + 0.587G + 0.114B) is above the threshold."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument(
        "inputs",
        nargs="+",
        help="Image files or folders containing images (non-recursive)",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        required=True,
        help="Destination directory for .qimz files",
    )
    parser.add_argument("--prefix", default="", help="Optional prefix for output filenames")
    parser.add_argument("--suffix", default="", help="Optional suffix for output filenames")
    parser.add_argument(
        "--width",
        type=int,
        help=f"Output width in pixels (1-{MAX_DIMENSION})",
    )
    parser.add_argument(
        "--height",
        type=int,
        help=f"Output height in pixels (1-{MAX_DIMENSION})",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        default=DEFAULT_WHITE_THRESHOLD,
        help="White threshold (0-255); brighter pixels become white",
    )
    parser.add_argument(
        "--invert",
        action="store_true",
        help="Swap black and white after thresholding",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Also write the monochrome result as a PNG next to each .qimz file",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite existing files without prompting",
    )
    return parser


def ensure_unique_names(paths: List[Path], prefix: str, suffix: str) -> List[str]:
    names: List[str] = []
    seen = set()
    for path in paths:
        name = f"{prefix}{path.stem}{suffix}.qimz"
        if name in seen:
            raise ConversionError(f"Duplicate output name would occur: {name}")
        seen.add(name)
        names.append(name)
    return names


def params_for_image(
    image: Image.Image,
    width: int | None,
    height: int | None,
    threshold: int,
    invert: bool,
) -> ConversionParams:
    target_width, target_height = scale_to_aspect(image.size, width, height)
    params = ConversionParams(
        target_width=target_width,
        target_height=target_height,
        white_threshold=threshold,
        invert=invert,
    )
    params.validate()
    if target_width > OLED_WIDTH or target_height > OLED_HEIGHT:
        warnings.warn(
            f"{target_width}x{target_height} is larger than the {OLED_WIDTH}x{OLED_HEIGHT} display",
            RuntimeWarning,
            stacklevel=1,
        )
    return params


def write_outputs(
    inputs: List[Path],
    names: List[str],
    args: argparse.Namespace,
    output_dir: Path,
) -> None:
    conflicts = []
    for name in names:
        targets = [output_dir / name]
        if args.preview:
            targets.append((output_dir / name).with_suffix(".png"))
        for target in targets:
            if target.exists() and not args.force:
                conflicts.append(str(target))
    if conflicts:
        raise ConversionError(
            "Output files already exist (use --force to overwrite):\n" + "\n".join(conflicts)
        )

    output_dir.mkdir(parents=True, exist_ok=True)

    for src, name in zip(inputs, names):
        try:
            with Image.open(src) as img:
                params = params_for_image(img, args.width, args.height, args.threshold, args.invert)
                binarized = binarize_image(img, params)
        except FileNotFoundError as exc:
            raise SourceUnavailableError(f"Input file not found: {src}") from exc
        except OSError as exc:
            raise SourceUnavailableError(f"Failed to read image: {src}") from exc

        data = encode_qimz(binarized.packed, binarized.width, binarized.height)
        target = output_dir / name
        target.write_bytes(data)
        print(f"wrote {target} ({binarized.width}x{binarized.height}, {len(data)} bytes)")

        if args.preview:
            preview_path = target.with_suffix(".png")
            binarized.preview.save(preview_path)
            print(f"wrote {preview_path}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        # Fail on bad sizes before touching any image.
        ConversionParams(
            target_width=1 if args.width is None else args.width,
            target_height=1 if args.height is None else args.height,
            white_threshold=args.threshold,
            invert=args.invert,
        ).validate()

        inputs = iter_images(args.inputs)
        output_dir = Path(args.output_dir)
        names = ensure_unique_names(inputs, args.prefix, args.suffix)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                write_outputs(inputs, names, args, output_dir)
            finally:
                for warning in caught:
                    print(f"Warning: {warning.message}")
        return 0
    except ConversionError as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
