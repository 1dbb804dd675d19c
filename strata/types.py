# strata/types.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterator, Tuple, TypeAlias, overload

Scalar: TypeAlias = float

Color3 = Tuple[float, float, float]


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def clamp01(value: float) -> float:
    return clamp(float(value), 0.0, 1.0)


def parse_color(value: Any) -> Color3:
    """
    Convert a color-like value to a linear RGB float triple.

    Accepts "#rrggbb", "#rgb" or any 3-sequence of numbers. Components are
    clamped to [0, 1].
    """
    if isinstance(value, str):
        text = value.strip()
        if not text.startswith("#"):
            raise ValueError(f"Color string must start with '#', got {value!r}")
        digits = text[1:]
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        if len(digits) != 6:
            raise ValueError(f"Malformed hex color {value!r}")
        try:
            r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
        except ValueError:
            raise ValueError(f"Malformed hex color {value!r}") from None
        return (r / 255.0, g / 255.0, b / 255.0)

    if isinstance(value, (bytes, bytearray)):
        raise TypeError(f"Cannot interpret {type(value).__name__} as a color")

    try:
        components = tuple(float(c) for c in value)
    except TypeError:
        raise TypeError(
            f"color must be a hex string or 3 numbers, not {type(value).__name__}"
        ) from None

    if len(components) != 3:
        raise ValueError(f"Color needs 3 components, got {len(components)}")
    return (clamp01(components[0]), clamp01(components[1]), clamp01(components[2]))


def color_to_hex(color: Color3) -> str:
    r, g, b = (int(round(clamp01(c) * 255.0)) for c in color)
    return f"#{r:02x}{g:02x}{b:02x}"


@dataclass(frozen=True, slots=True)
class Vector3:
    x: Scalar
    y: Scalar
    z: Scalar

    @staticmethod
    def zero() -> Vector3:
        return Vector3(0.0, 0.0, 0.0)

    def __iter__(self) -> Iterator[Scalar]:
        yield self.x
        yield self.y
        yield self.z

    def __len__(self) -> int:
        return 3

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(
            self.x + other.x,
            self.y + other.y,
            self.z + other.z,
        )

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(
            self.x - other.x,
            self.y - other.y,
            self.z - other.z,
        )

    def __mul__(self, scalar: float) -> Vector3:
        return Vector3(
            self.x * scalar,
            self.y * scalar,
            self.z * scalar,
        )

    def dot(self, other: Vector3) -> Scalar:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def length(self) -> Scalar:
        return math.sqrt(self.dot(self))

    def normalized(self, fallback: Vector3 | None = None) -> Vector3:
        """Unit-length copy. Zero vectors map to `fallback` (default +Y)."""
        n = self.length()
        if n == 0.0:
            return fallback if fallback is not None else Vector3(0.0, 1.0, 0.0)
        inv = 1.0 / n
        return Vector3(self.x * inv, self.y * inv, self.z * inv)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @overload
    def __getitem__(self, index: int) -> Scalar: ...
    @overload
    def __getitem__(self, index: slice) -> tuple[Scalar, ...]: ...

    def __getitem__(self, index: Any):
        if isinstance(index, int):
            if index == 0:
                return self.x
            if index == 1:
                return self.y
            if index == 2:
                return self.z
            raise IndexError(index)

        if isinstance(index, slice):
            return tuple(self)[index]

        raise TypeError(
            f"indices must be int or slice, not {type(index).__name__}"
        )
