"""Binding of positional option records to uploaded images.

Option values arrive as strings (or JSON integers) and are converted and
validated here, before any transform work starts.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import ParseError, ValidationError
from .models import DEFAULT_FORMAT, DEFAULT_QUALITY, OutputFormat, TransformOptions

FORMAT_ALIASES = {"jpg": OutputFormat.JPEG}

RawOptions = Optional[Dict[str, Any]]


def parse_options_payload(text: str) -> List[RawOptions]:
    """
    Decode the options form field into a list of raw option records.

    Raises:
        ParseError: If the text is not valid JSON or not a JSON array.
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ParseError("Invalid JSON in options") from exc

    if not isinstance(payload, list):
        raise ParseError("Options must be a JSON array")
    return payload


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_int(value: Any, index: int, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(
            f"options[{index}].{field} must be an integer, got {value!r}",
            index=index,
            field=field,
        )
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(
        f"options[{index}].{field} must be an integer, got {value!r}",
        index=index,
        field=field,
    )


def _parse_dimension(value: Any, index: int, field: str) -> Optional[int]:
    if _is_absent(value):
        return None
    number = _parse_int(value, index, field)
    if number <= 0:
        raise ValidationError(
            f"options[{index}].{field} must be a positive integer, got {value!r}",
            index=index,
            field=field,
        )
    return number


def _parse_quality(value: Any, index: int) -> int:
    if _is_absent(value):
        return DEFAULT_QUALITY
    number = _parse_int(value, index, "quality")
    if not 1 <= number <= 100:
        raise ValidationError(
            f"options[{index}].quality must be between 1 and 100, got {value!r}",
            index=index,
            field="quality",
        )
    return number


def _parse_format(value: Any, index: int) -> OutputFormat:
    if _is_absent(value):
        return DEFAULT_FORMAT
    if not isinstance(value, str):
        raise ValidationError(
            f"options[{index}].format must be a string, got {value!r}",
            index=index,
            field="format",
        )
    name = value.strip().lower()
    if name in FORMAT_ALIASES:
        return FORMAT_ALIASES[name]
    try:
        return OutputFormat(name)
    except ValueError:
        allowed = ", ".join(f.value for f in OutputFormat)
        raise ValidationError(
            f"options[{index}].format {value!r} is not supported (allowed: {allowed})",
            index=index,
            field="format",
        ) from None


def bind_one(raw: RawOptions, index: int) -> TransformOptions:
    """Bind a single raw record, filling defaults for missing fields."""
    if raw is None:
        return TransformOptions()
    if not isinstance(raw, dict):
        raise ValidationError(
            f"options[{index}] must be an object", index=index, field=None
        )

    return TransformOptions(
        width=_parse_dimension(raw.get("width"), index, "width"),
        height=_parse_dimension(raw.get("height"), index, "height"),
        quality=_parse_quality(raw.get("quality"), index),
        format=_parse_format(raw.get("format"), index),
    )


def bind_options(
    options: Sequence[RawOptions], item_count: int
) -> List[TransformOptions]:
    """
    Align option records with ``item_count`` images.

    Records beyond ``item_count`` are ignored; images without a record get
    all-default options.

    Args:
        options: Raw option records in upload order
        item_count: Number of uploaded images

    Returns:
        One TransformOptions per image

    Raises:
        ValidationError: If a present value cannot be converted
    """
    bound = []
    for index in range(item_count):
        raw = options[index] if index < len(options) else None
        bound.append(bind_one(raw, index))
    return bound
