"""
Data models for the Lightsift edit pipeline.

AdjustmentParameters is the one mutable, persisted value per image. Everything
derived from pixels (statistics, scene details, suggestions) lives next to the
code that computes it.
"""

import json
import math
from dataclasses import dataclass, asdict, fields
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple


MAX_RATING = 5
NEUTRAL_TEMPERATURE = 5500.0


class Flag(Enum):
    """Culling flag attached to an image."""
    NONE = "none"
    PICK = "pick"
    REJECT = "reject"

    @classmethod
    def parse(cls, value: Any) -> 'Flag':
        """Decode a flag, collapsing anything unrecognized to NONE."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NONE


class Rotation(IntEnum):
    """Right-angle rotations supported by the pipeline (degrees clockwise)."""
    DEG_0 = 0
    DEG_90 = 90
    DEG_180 = 180
    DEG_270 = 270

    @classmethod
    def parse(cls, value: Any) -> 'Rotation':
        """Decode a rotation, collapsing anything unrecognized to DEG_0."""
        if isinstance(value, cls):
            return value
        try:
            return cls(int(float(value)))
        except (TypeError, ValueError, OverflowError):
            return cls.DEG_0


@dataclass
class CropRect:
    """
    Crop box stored as normalized edge offsets.

    Each edge is a fraction of the uncropped, unrotated source: ``left`` and
    ``right`` of its width, ``top`` and ``bottom`` of its height. Values
    outside [0, 1] are allowed here and clamped when converted to pixels.
    """
    left: float = 0.0
    top: float = 0.0
    right: float = 1.0
    bottom: float = 1.0

    @classmethod
    def from_pixel_box(cls, x: float, y: float, width: float, height: float,
                       image_width: int, image_height: int) -> 'CropRect':
        """Build a crop from an origin+extent box in source pixel space."""
        image_width = max(int(image_width), 1)
        image_height = max(int(image_height), 1)
        return cls(
            left=x / image_width,
            top=y / image_height,
            right=(x + width) / image_width,
            bottom=(y + height) / image_height,
        )

    def to_pixel_box(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """
        Convert to a pixel box ``(x0, y0, x1, y1)`` with exclusive end.

        The box is clamped into [0, width) x [0, height) and is never smaller
        than 1x1.
        """
        x0, x1 = _clamp_span(self.left, self.right, width)
        y0, y1 = _clamp_span(self.top, self.bottom, height)
        return x0, y0, x1, y1

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['CropRect']:
        if not data:
            return None
        try:
            return cls(**{f.name: float(data[f.name]) for f in fields(cls) if f.name in data})
        except (TypeError, ValueError):
            return None


def _clamp_span(start: float, end: float, size: int) -> Tuple[int, int]:
    size = max(int(size), 1)
    lo, hi = min(start, end), max(start, end)
    if not math.isfinite(lo):
        lo = 0.0
    if not math.isfinite(hi):
        hi = 1.0
    first = int(math.floor(lo * size))
    last = int(math.ceil(hi * size))
    first = min(max(first, 0), size - 1)
    last = min(max(last, first + 1), size)
    return first, last


# Numeric photographic fields that an auto-enhance suggestion may move.
BLENDED_FIELDS = (
    'exposure',
    'contrast',
    'highlights',
    'shadows',
    'white_balance_temp',
    'white_balance_tint',
    'saturation',
    'vibrance',
    'sharpening_amount',
    'noise_reduction',
)


@dataclass
class AdjustmentParameters:
    """
    Non-destructive adjustment set for a single image.

    Percentage-like fields are unbounded on input; every operator clamps its
    output channels instead.
    """
    # Culling
    rating: int = 0                     # 0-5
    flag: Flag = Flag.NONE

    # Geometry
    crop: Optional[CropRect] = None
    straighten_angle: float = 0.0       # Degrees; persisted, not rendered
    rotation: Rotation = Rotation.DEG_0

    # Tone
    exposure: float = 0.0               # EV stops
    contrast: float = 0.0               # Symmetric around 0
    highlights: float = 0.0             # -100 to +100
    shadows: float = 0.0                # -100 to +100

    # Color
    white_balance_temp: float = NEUTRAL_TEMPERATURE
    white_balance_tint: float = 0.0
    saturation: float = 0.0             # %
    vibrance: float = 0.0               # %

    # Detail
    sharpening_amount: float = 0.0      # %
    sharpening_radius: float = 1.0      # Kernel is a fixed 3x3 neighborhood
    noise_reduction: float = 0.0        # %

    def __post_init__(self):
        self.rating = clamp_rating(self.rating)
        self.flag = Flag.parse(self.flag)
        self.rotation = Rotation.parse(self.rotation)
        if isinstance(self.crop, dict):
            self.crop = CropRect.from_dict(self.crop)
        elif not isinstance(self.crop, CropRect):
            self.crop = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        data = asdict(self)
        data['flag'] = self.flag.value
        data['rotation'] = int(self.rotation)
        data['crop'] = self.crop.to_dict() if self.crop else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdjustmentParameters':
        """Deserialize, ignoring unknown keys and bad numbers."""
        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name in ('rating', 'flag', 'rotation', 'crop'):
                # Normalized by __post_init__
                kwargs[f.name] = value
            else:
                kwargs[f.name] = _to_float(value, getattr(defaults, f.name))
        return cls(**kwargs)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> 'AdjustmentParameters':
        return cls.from_dict(json.loads(json_str))


def clamp_rating(value: Any) -> int:
    """Clamp a rating into [0, 5]; unparsable input becomes 0."""
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(rating):
        return 0
    return int(min(max(rating, 0), MAX_RATING))


def _to_float(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default
