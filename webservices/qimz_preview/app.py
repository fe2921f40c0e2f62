from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory

import gradio as gr
from PIL import Image

from qimz_converter import (
    DEFAULT_FILENAME,
    DEFAULT_WHITE_THRESHOLD,
    ConversionError,
    ConversionParams,
    binarize_image,
    encode_qimz,
    fit_to_display,
    scale_to_aspect,
)

PREVIEW_SCALE = 4

# One output folder per app; each render overwrites <stem>.qimz inside it.
_output_dir = TemporaryDirectory(prefix="qimz_")
OUTPUT_DIR = Path(_output_dir.name)


def _resolve_image_path(item: object | None) -> Path | None:
    if item is None:
        return None
    if isinstance(item, Path):
        return item
    if isinstance(item, str):
        return Path(item) if item else None
    if isinstance(item, dict) and "name" in item:
        return Path(item["name"])
    name = getattr(item, "name", None)
    if name:
        return Path(name)
    return None


def _parse_dimension(value: object) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _output_name(source: Path | None) -> str:
    if source is None:
        return DEFAULT_FILENAME
    return f"{source.stem}.qimz"


def suggest_size(image_file: object | None) -> tuple[int | None, int | None]:
    """Initial width/height for a freshly uploaded image."""

    path = _resolve_image_path(image_file)
    if path is None:
        return None, None
    try:
        with Image.open(path) as img:
            return fit_to_display(*img.size)
    except (OSError, ConversionError):
        return None, None


def sync_height(
    image_file: object | None, width: object, lock_aspect: bool
) -> object:
    path = _resolve_image_path(image_file)
    width_int = _parse_dimension(width)
    if not lock_aspect or path is None or width_int is None or width_int <= 0:
        return gr.update()
    try:
        with Image.open(path) as img:
            return scale_to_aspect(img.size, width=width_int)[1]
    except OSError:
        return gr.update()


def sync_width(
    image_file: object | None, height: object, lock_aspect: bool
) -> object:
    path = _resolve_image_path(image_file)
    height_int = _parse_dimension(height)
    if not lock_aspect or path is None or height_int is None or height_int <= 0:
        return gr.update()
    try:
        with Image.open(path) as img:
            return scale_to_aspect(img.size, height=height_int)[0]
    except OSError:
        return gr.update()


def render_qimz(
    image_file: object | None,
    width: object,
    height: object,
    threshold: float,
    invert: bool,
) -> tuple[Image.Image | None, str | None, str]:
    """Run one conversion from the current widget values.

    Returns the monochrome preview, the path of the written .qimz file and a
    status message. No file is returned until every input is valid, which
    keeps the download slot empty.
    """

    path = _resolve_image_path(image_file)
    if path is None:
        return None, None, "画像をアップロードしてください。"

    width_int = _parse_dimension(width)
    height_int = _parse_dimension(height)
    if width_int is None or height_int is None:
        return None, None, "幅と高さを入力してください。"

    params = ConversionParams(
        target_width=width_int,
        target_height=height_int,
        white_threshold=int(threshold),
        invert=bool(invert),
    )
    try:
        with Image.open(path) as img:
            binarized = binarize_image(img, params)
        data = encode_qimz(binarized.packed, binarized.width, binarized.height)
    except ConversionError as exc:
        return None, None, str(exc)
    except OSError as exc:
        return None, None, f"画像を読み込めませんでした: {exc}"

    output_path = OUTPUT_DIR / _output_name(path)
    partial_path = output_path.with_suffix(".qimz.part")
    partial_path.write_bytes(data)
    partial_path.replace(output_path)

    preview = binarized.preview.resize(
        (binarized.width * PREVIEW_SCALE, binarized.height * PREVIEW_SCALE),
        Image.NEAREST,
    )
    message = f"{binarized.width}x{binarized.height} / {len(data)} bytes"
    return preview, str(output_path), message


def _build_interface() -> gr.Blocks:
    with gr.Blocks(title="QIMZ Converter") as demo:
        gr.Markdown(
            """
# Quokka Image Converter

画像をアップロードすると 128x64 OLED 用のモノクロ QIMZ に変換します。
幅・高さ・しきい値・反転を変更すると自動で再変換されます。
"""
        )
        with gr.Row():
            image_file = gr.Image(label="入力画像", type="filepath")
            with gr.Column():
                lock_aspect = gr.Checkbox(label="元の縦横比を使う", value=True)
                width = gr.Number(label="幅", precision=0)
                height = gr.Number(label="高さ", precision=0)
                threshold = gr.Slider(
                    label="白のしきい値",
                    minimum=0,
                    maximum=255,
                    step=1,
                    value=DEFAULT_WHITE_THRESHOLD,
                )
                invert = gr.Checkbox(label="反転", value=False)

        preview = gr.Image(label="モノクロプレビュー", type="pil", interactive=False)
        status = gr.Textbox(label="状態", interactive=False)
        output_file = gr.File(label="QIMZ ダウンロード")

        image_file.upload(suggest_size, inputs=[image_file], outputs=[width, height])
        width.input(sync_height, inputs=[image_file, width, lock_aspect], outputs=[height])
        height.input(sync_width, inputs=[image_file, height, lock_aspect], outputs=[width])

        # Only the source widgets trigger a conversion; preview, status and
        # output_file are never listed as triggers.
        gr.on(
            triggers=[image_file.change, width.change, height.change, threshold.change, invert.change],
            fn=render_qimz,
            inputs=[image_file, width, height, threshold, invert],
            outputs=[preview, output_file, status],
            trigger_mode="always_last",
        )
    return demo


app = _build_interface()

if __name__ == "__main__":
    app.launch()
