"""Image decoding, resizing and encoding for the image batch service."""

import io
from typing import Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, EncodeError, UnsupportedFormatError
from .models import OutputFormat, TransformOptions

# Pillow encoder name, modes it stores natively, whether it takes ``quality``
ENCODERS: Dict[OutputFormat, Tuple[str, Tuple[str, ...], bool]] = {
    OutputFormat.JPEG: ("JPEG", ("L", "RGB", "CMYK"), True),
    OutputFormat.WEBP: ("WEBP", ("RGB", "RGBA"), True),
    OutputFormat.PNG: ("PNG", ("1", "L", "LA", "I", "P", "RGB", "RGBA"), False),
    OutputFormat.TIFF: ("TIFF", ("1", "L", "LA", "I", "F", "P", "RGB", "RGBA", "CMYK"), False),
    OutputFormat.GIF: ("GIF", ("1", "L", "P", "RGB", "RGBA"), False),
}


def decode_image(image_bytes: bytes) -> "Image.Image":
    """
    Decode raw bytes into a fully loaded PIL Image.

    Raises:
        DecodeError: If the bytes are not a recognizable image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
        Image.DecompressionBombError,
    ) as exc:
        raise DecodeError(f"Input is not a recognizable image: {exc}") from exc
    return image


def compute_target_size(
    size: Tuple[int, int], width: Optional[int], height: Optional[int]
) -> Tuple[int, int]:
    """
    Calculate output dimensions for a resize request.

    Args:
        size: Original (width, height)
        width: Requested width, or None
        height: Requested height, or None

    Returns:
        Target (width, height). With both given they are used as-is; with one
        given the other follows the original aspect ratio; with neither the
        original size is returned.
    """
    orig_w, orig_h = size
    if width and height:
        return width, height
    if width:
        return width, max(1, round(orig_h * width / orig_w))
    if height:
        return max(1, round(orig_w * height / orig_h)), height
    return orig_w, orig_h


def _has_alpha(image: "Image.Image") -> bool:
    return "A" in image.mode or "transparency" in image.info


def _prepare_mode(image: "Image.Image", supported_modes: Tuple[str, ...]) -> "Image.Image":
    """Convert ``image`` into a mode the target encoder can store."""
    if image.mode in supported_modes:
        return image
    if "RGBA" in supported_modes and _has_alpha(image):
        return image.convert("RGBA")
    return image.convert("RGB")


def encode_image(
    image: "Image.Image", fmt: OutputFormat, quality: int
) -> bytes:
    """
    Encode ``image`` to ``fmt``.

    Quality is passed to lossy encoders only; lossless encoders ignore it.

    Raises:
        UnsupportedFormatError: If no encoder is registered for ``fmt``
        EncodeError: If the encoder rejects the image or parameters
    """
    try:
        encoder, modes, lossy = ENCODERS[fmt]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported output format: {fmt}") from None

    save_kwargs = {"quality": quality} if lossy else {}
    output = io.BytesIO()
    try:
        _prepare_mode(image, modes).save(output, format=encoder, **save_kwargs)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"Failed to encode image as {fmt.value}: {exc}") from exc
    return output.getvalue()


def check_output_size(size: Tuple[int, int], max_pixels: Optional[int]) -> None:
    """
    Reject a resize target larger than ``max_pixels``.

    Raises:
        EncodeError: If the target exceeds the limit
    """
    if max_pixels is None:
        return
    width, height = size
    if width * height > max_pixels:
        raise EncodeError(
            f"Requested output size {width}x{height} exceeds the limit of "
            f"{max_pixels} pixels"
        )


def transform_image(
    image_bytes: bytes,
    options: TransformOptions,
    max_pixels: Optional[int] = None,
) -> bytes:
    """
    Decode, optionally resize, and re-encode an image.

    Args:
        image_bytes: Encoded input image
        options: Bound transformation options
        max_pixels: Largest allowed output area; defaults to
            ``Image.MAX_IMAGE_PIXELS``

    Returns:
        Encoded output bytes in ``options.format``

    Raises:
        EncodeError: If the requested size exceeds ``max_pixels``
    """
    if max_pixels is None:
        # Pillow's decompression-bomb threshold
        max_pixels = Image.MAX_IMAGE_PIXELS

    image = decode_image(image_bytes)

    if options.width or options.height:
        target = compute_target_size(image.size, options.width, options.height)
        check_output_size(target, max_pixels)
        if target != image.size:
            image = image.resize(target, Image.Resampling.LANCZOS)

    return encode_image(image, options.format, options.quality)

