# strata/graphics/materials/catalog.py
"""
Pattern catalog: declarative parameter schema for every pattern kind.

Each kind owns a frozen parameter record (the tagged union used by
`LayerSpec.params`) and a `PatternSchema` describing every parameter's type,
default and legal values. The schema drives both shader generation and the
clamping of edits.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, Union

from strata.types import Color3, clamp, parse_color

logger = logging.getLogger(__name__)


class LayerKind(str, Enum):
    BRICK = "brick"
    CHECKER = "checker"
    NOISE = "noise"
    GRADIENT = "gradient"
    WOOD_GRAIN = "wood_grain"
    WEAVE = "weave"
    STRIPES = "stripes"
    DOTS = "dots"


class ParamType(str, Enum):
    COLOR = "color"
    RANGE = "range"
    SELECT = "select"


# Fixed numeric coding shared by every "direction" parameter
DIRECTION_CODES: Mapping[str, int] = {
    "vertical": 0,
    "horizontal": 1,
    "diagonal": 2,
}

# Upper bound on fractal noise octaves; the generated loop is unrolled to this
MAX_NOISE_OCTAVES = 4


@dataclass(frozen=True, slots=True)
class ParamDef:
    """Schema for a single pattern parameter."""

    name: str
    type: ParamType
    default: Any
    label: str = ""
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: Tuple[str, ...] = ()
    codes: Mapping[str, int] = field(default_factory=dict)

    def coerce(self, value: Any) -> Tuple[Any, bool]:
        """
        Bring `value` into this parameter's legal set.

        Returns the coerced value and whether it had to be changed.
        """
        if self.type is ParamType.COLOR:
            try:
                color = parse_color(value)
            except (TypeError, ValueError):
                return parse_color(self.default), True
            if isinstance(value, str):
                return color, False
            return color, tuple(float(c) for c in value) != color

        if self.type is ParamType.SELECT:
            if isinstance(value, str) and value in self.options:
                return value, False
            # Accept the numeric coding a uniform would carry
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                for option in self.options:
                    if self.code_for(option) == value:
                        return option, True
            return self.default, True

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return float(self.default), True
        number = float(value)
        if math.isnan(number):
            return float(self.default), True
        lo = self.min if self.min is not None else -math.inf
        hi = self.max if self.max is not None else math.inf
        clamped = clamp(number, lo, hi)
        return clamped, clamped != number

    def code_for(self, option: str) -> int:
        if self.codes:
            return self.codes.get(option, 0)
        return self.options.index(option) if option in self.options else 0

    @property
    def glsl_type(self) -> str:
        return "vec3" if self.type is ParamType.COLOR else "float"

    def uniform_value(self, value: Any) -> Union[float, Color3]:
        """Convert a validated parameter value to what its uniform holds."""
        if self.type is ParamType.COLOR:
            return value
        if self.type is ParamType.SELECT:
            return float(self.code_for(value))
        return float(value)


@dataclass(frozen=True, slots=True)
class PatternParams:
    """Base class for the typed per-kind parameter records."""

    kind: ClassVar[LayerKind]

    def to_mapping(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True, slots=True)
class BrickParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.BRICK

    mortar_color: Color3
    mortar_thickness: float
    brick_width: float
    brick_height: float
    offset: float


@dataclass(frozen=True, slots=True)
class CheckerParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.CHECKER

    color2: Color3
    scale: float


@dataclass(frozen=True, slots=True)
class NoiseParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.NOISE

    color2: Color3
    scale: float
    contrast: float
    octaves: float


@dataclass(frozen=True, slots=True)
class GradientParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.GRADIENT

    color2: Color3
    direction: str
    midpoint: float


@dataclass(frozen=True, slots=True)
class WoodGrainParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.WOOD_GRAIN

    grain_color: Color3
    grain_scale: float
    grain_strength: float
    ring_scale: float


@dataclass(frozen=True, slots=True)
class WeaveParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.WEAVE

    color2: Color3
    scale: float
    thread_width: float


@dataclass(frozen=True, slots=True)
class StripesParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.STRIPES

    color2: Color3
    scale: float
    thickness: float
    direction: str


@dataclass(frozen=True, slots=True)
class DotsParams(PatternParams):
    kind: ClassVar[LayerKind] = LayerKind.DOTS

    color2: Color3
    scale: float
    dot_size: float


@dataclass(frozen=True)
class UnknownParams:
    """Raw parameters of a layer whose kind the catalog does not know."""

    values: Dict[str, Any] = field(default_factory=dict)

    def to_mapping(self) -> Dict[str, Any]:
        return dict(self.values)


LayerParams = Union[
    BrickParams,
    CheckerParams,
    NoiseParams,
    GradientParams,
    WoodGrainParams,
    WeaveParams,
    StripesParams,
    DotsParams,
    UnknownParams,
]


@dataclass(frozen=True, slots=True)
class PatternSchema:
    kind: LayerKind
    name: str
    description: str
    record: Type[PatternParams]
    params: Tuple[ParamDef, ...]
    uses_noise: bool = False
    uses_face_uv: bool = True

    def param(self, name: str) -> Optional[ParamDef]:
        for p in self.params:
            if p.name == name:
                return p
        return None

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params)


def _color(name: str, default: str, label: str) -> ParamDef:
    return ParamDef(name, ParamType.COLOR, parse_color(default), label=label)


def _range(
    name: str, lo: float, hi: float, step: float, default: float, label: str
) -> ParamDef:
    return ParamDef(
        name, ParamType.RANGE, float(default), label=label, min=lo, max=hi, step=step
    )


def _direction(default: str, options: Tuple[str, ...]) -> ParamDef:
    return ParamDef(
        "direction",
        ParamType.SELECT,
        default,
        label="Direction",
        options=options,
        codes=DIRECTION_CODES,
    )


PATTERN_SCHEMAS: Mapping[LayerKind, PatternSchema] = {
    LayerKind.BRICK: PatternSchema(
        kind=LayerKind.BRICK,
        name="Brick",
        description="Brick pattern with mortar lines",
        record=BrickParams,
        params=(
            _color("mortar_color", "#666666", "Mortar Color"),
            _range("mortar_thickness", 0.005, 0.15, 0.005, 0.03, "Mortar Width"),
            _range("brick_width", 1.0, 10.0, 0.5, 4.0, "Brick Width"),
            _range("brick_height", 1.0, 10.0, 0.5, 2.0, "Brick Height"),
            _range("offset", 0.0, 1.0, 0.1, 0.5, "Row Offset"),
        ),
    ),
    LayerKind.CHECKER: PatternSchema(
        kind=LayerKind.CHECKER,
        name="Checker",
        description="Checkerboard pattern",
        record=CheckerParams,
        params=(
            _color("color2", "#ffffff", "Second Color"),
            _range("scale", 1.0, 20.0, 1.0, 4.0, "Scale"),
        ),
    ),
    LayerKind.NOISE: PatternSchema(
        kind=LayerKind.NOISE,
        name="Noise",
        description="Procedural noise pattern",
        record=NoiseParams,
        params=(
            _color("color2", "#ffffff", "Second Color"),
            _range("scale", 0.5, 10.0, 0.5, 2.0, "Scale"),
            _range("contrast", 0.0, 2.0, 0.1, 1.0, "Contrast"),
            _range("octaves", 1.0, float(MAX_NOISE_OCTAVES), 1.0, 2.0, "Detail"),
        ),
        uses_noise=True,
        uses_face_uv=False,
    ),
    LayerKind.GRADIENT: PatternSchema(
        kind=LayerKind.GRADIENT,
        name="Gradient",
        description="Color gradient blend",
        record=GradientParams,
        params=(
            _color("color2", "#000000", "End Color"),
            _direction("vertical", ("vertical", "horizontal", "diagonal")),
            _range("midpoint", 0.0, 1.0, 0.05, 0.5, "Midpoint"),
        ),
    ),
    LayerKind.WOOD_GRAIN: PatternSchema(
        kind=LayerKind.WOOD_GRAIN,
        name="Wood Grain",
        description="Wood grain pattern",
        record=WoodGrainParams,
        params=(
            _color("grain_color", "#5a3d2b", "Grain Color"),
            _range("grain_scale", 1.0, 20.0, 1.0, 8.0, "Grain Scale"),
            _range("grain_strength", 0.0, 1.0, 0.05, 0.5, "Grain Strength"),
            _range("ring_scale", 0.5, 5.0, 0.5, 2.0, "Ring Scale"),
        ),
        uses_noise=True,
        uses_face_uv=False,
    ),
    LayerKind.WEAVE: PatternSchema(
        kind=LayerKind.WEAVE,
        name="Weave",
        description="Fabric weave pattern",
        record=WeaveParams,
        params=(
            _color("color2", "#333333", "Thread Color"),
            _range("scale", 5.0, 50.0, 5.0, 20.0, "Scale"),
            _range("thread_width", 0.3, 0.7, 0.05, 0.5, "Thread Width"),
        ),
    ),
    LayerKind.STRIPES: PatternSchema(
        kind=LayerKind.STRIPES,
        name="Stripes",
        description="Stripe pattern",
        record=StripesParams,
        params=(
            _color("color2", "#ffffff", "Stripe Color"),
            _range("scale", 1.0, 20.0, 1.0, 4.0, "Scale"),
            _range("thickness", 0.1, 0.9, 0.05, 0.5, "Stripe Width"),
            _direction("horizontal", ("horizontal", "vertical", "diagonal")),
        ),
    ),
    LayerKind.DOTS: PatternSchema(
        kind=LayerKind.DOTS,
        name="Dots",
        description="Polka dot pattern",
        record=DotsParams,
        params=(
            _color("color2", "#ffffff", "Dot Color"),
            _range("scale", 2.0, 20.0, 1.0, 6.0, "Scale"),
            _range("dot_size", 0.1, 0.8, 0.05, 0.4, "Dot Size"),
        ),
    ),
}


def parse_kind(kind: Any) -> Union[LayerKind, str]:
    """Resolve a kind name; unrecognised names are returned unchanged."""
    if isinstance(kind, LayerKind):
        return kind
    text = str(kind)
    try:
        return LayerKind(text)
    except ValueError:
        pass
    try:
        return LayerKind(_snake_case(text))
    except ValueError:
        return text


def schema_for(kind: Union[LayerKind, str]) -> Optional[PatternSchema]:
    resolved = parse_kind(kind)
    if isinstance(resolved, LayerKind):
        return PATTERN_SCHEMAS[resolved]
    return None


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def default_params(kind: Union[LayerKind, str]) -> LayerParams:
    schema = schema_for(kind)
    if schema is None:
        return UnknownParams()
    return schema.record(**{p.name: p.default for p in schema.params})


def validate_params(
    kind: Union[LayerKind, str], values: Mapping[str, Any] | None
) -> Tuple[LayerParams, List[str]]:
    """
    Build a parameter record for `kind` from a plain mapping.

    Range values are clamped, bad colors and enum options fall back to their
    defaults, missing keys are filled from defaults and unknown keys are
    dropped. camelCase keys are accepted. Returns the record and a list of
    human-readable fixes that were applied.
    """
    fixes: List[str] = []
    if not isinstance(values, Mapping):
        if values is not None:
            fixes.append(f"params of type {type(values).__name__} ignored")
        values = {}
    schema = schema_for(kind)
    if schema is None:
        return UnknownParams(dict(values)), fixes

    normalised = {_snake_case(str(k)): v for k, v in values.items()}
    for key in normalised:
        if schema.param(key) is None:
            fixes.append(f"{schema.kind.value}: unknown parameter {key!r} dropped")

    resolved: Dict[str, Any] = {}
    for p in schema.params:
        if p.name not in normalised:
            resolved[p.name] = p.default
            continue
        value, changed = p.coerce(normalised[p.name])
        if changed:
            fixes.append(
                f"{schema.kind.value}.{p.name}: {normalised[p.name]!r} -> {value!r}"
            )
        resolved[p.name] = value

    for fix in fixes:
        logger.debug("Parameter fixed: %s", fix)
    return schema.record(**resolved), fixes


def params_from_mapping(
    kind: Union[LayerKind, str], values: Mapping[str, Any] | None
) -> LayerParams:
    record, _ = validate_params(kind, values)
    return record


def coerce_param(
    kind: Union[LayerKind, str], name: str, value: Any
) -> Tuple[Optional[str], Any, bool]:
    """
    Validate a single parameter edit.

    Returns `(canonical_name, value, changed)`. `canonical_name` is None when
    the kind has no such parameter.
    """
    schema = schema_for(kind)
    if schema is None:
        return name, value, False
    p = schema.param(_snake_case(name))
    if p is None:
        return None, value, True
    coerced, changed = p.coerce(value)
    return p.name, coerced, changed


def params_to_mapping(params: LayerParams) -> Dict[str, Any]:
    """Plain-data view of a parameter record (colors as lists)."""
    out: Dict[str, Any] = {}
    for key, value in params.to_mapping().items():
        if isinstance(value, tuple):
            out[key] = list(value)
        else:
            out[key] = value
    return out
