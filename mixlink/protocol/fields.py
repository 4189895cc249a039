"""Field classification for `|`-separated device lines.

Every token is classified once, here, as an analog value or one of the
reserved sentinels. Pure functions with no side effects.
"""
from __future__ import annotations

import math
import re
from typing import List

from ..models import (
    BUTTON_PRESSED,
    BUTTON_RELEASED,
    FIELD_DELIMITER,
    MUTE_SENTINEL,
    Field,
    FieldKind,
    SliderReading,
)

RAW_MAX = 1023
RAW_TOLERANCE = 10
NORMALIZED_TOLERANCE = 0.1

# Raw readings this close to either end snap to the end
RAW_SNAP_LOW = 10
RAW_SNAP_HIGH = 1013

# Plain decimal notation only; float() alone would also take "nan", "inf" and "5_12"
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

_SENTINELS = {
    MUTE_SENTINEL: FieldKind.MUTE,
    BUTTON_RELEASED: FieldKind.BUTTON_RELEASED,
    BUTTON_PRESSED: FieldKind.BUTTON_PRESSED,
}


def classify_field(token: str) -> Field:
    """Classify a single token.

    Sentinels are matched by exact integral value, so "9999" and "9999.0"
    are both MUTE while "9999.5" is an (implausible) analog reading.

    Examples:
        >>> classify_field("512").kind
        <FieldKind.ANALOG: 'analog'>
        >>> classify_field("10001").kind
        <FieldKind.BUTTON_PRESSED: 'button_pressed'>
        >>> classify_field("abc").kind
        <FieldKind.INVALID: 'invalid'>
    """
    text = token.strip()
    if not text:
        return Field(text=text, kind=FieldKind.INVALID)

    if not _NUMBER_RE.fullmatch(text):
        return Field(text=text, kind=FieldKind.INVALID)

    value = float(text)
    if math.isinf(value):  # exponent overflow
        return Field(text=text, kind=FieldKind.INVALID)

    is_decimal = "." in text or "e" in text.lower()
    if value.is_integer():
        kind = _SENTINELS.get(int(value))
        if kind is not None:
            return Field(text=text, kind=kind, value=value, is_decimal=is_decimal)

    return Field(text=text, kind=FieldKind.ANALOG, value=value, is_decimal=is_decimal)


def split_fields(line: str) -> List[Field]:
    """Split a line on the field delimiter and classify every token."""
    return [classify_field(token) for token in line.split(FIELD_DELIMITER)]


def is_raw_range(value: float) -> bool:
    return -RAW_TOLERANCE <= value <= RAW_MAX + RAW_TOLERANCE


def is_normalized_range(value: float) -> bool:
    return -NORMALIZED_TOLERANCE <= value <= 1.0 + NORMALIZED_TOLERANCE


def is_plausible(field: Field) -> bool:
    """Check whether a field looks like something the controller would send.

    Sentinels are accepted regardless of range. Analog values are accepted
    in the raw ADC range or the normalized range, each with tolerance.
    """
    if field.is_sentinel:
        return True
    if field.kind != FieldKind.ANALOG or field.value is None:
        return False
    return is_raw_range(field.value) or is_normalized_range(field.value)


def normalize_level(field: Field) -> float:
    """Map an analog field to 0.0-1.0.

    Decimal tokens inside the normalized range are taken as already
    normalized. Everything else is a raw ADC reading: "0" and "1" are raw.
    """
    value = field.value or 0.0
    if field.is_decimal and is_normalized_range(value):
        return max(0.0, min(1.0, value))

    if value <= RAW_SNAP_LOW:
        value = 0.0
    elif value >= RAW_SNAP_HIGH:
        value = float(RAW_MAX)
    return max(0.0, min(1.0, value / RAW_MAX))


def parse_slider_levels(slider_line: str, invert: bool = False) -> List[SliderReading]:
    """Convert a slider sub-line into per-channel readings.

    Args:
        slider_line: Slider part of a device line, e.g. "512|9999|1023"
        invert: Flip every level (for sliders mounted upside down)

    Returns:
        One SliderReading per usable field. Invalid and button fields are
        skipped but still consume their channel index.

    Examples:
        >>> parse_slider_levels("0|9999|1023")
        [SliderReading(index=0, level=0.0, muted=False), SliderReading(index=1, level=0.0, muted=True), SliderReading(index=2, level=1.0, muted=False)]
    """
    readings = []
    if not slider_line.strip():
        return readings

    for index, field in enumerate(split_fields(slider_line)):
        if field.kind == FieldKind.MUTE:
            readings.append(SliderReading(index=index, level=0.0, muted=True))
            continue
        if field.kind != FieldKind.ANALOG:
            continue

        level = normalize_level(field)
        if invert:
            level = 1.0 - level
        readings.append(SliderReading(index=index, level=level))

    return readings
