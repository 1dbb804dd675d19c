# strata/graphics/materials/layers.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from strata.graphics.materials.catalog import (
    LayerKind,
    LayerParams,
    ParamDef,
    ParamType,
    PatternParams,
    UnknownParams,
    default_params,
    params_from_mapping,
    parse_kind,
)
from strata.types import Color3, parse_color

logger = logging.getLogger(__name__)


class BlendMode(str, Enum):
    REPLACE = "replace"
    MULTIPLY = "multiply"
    OVERLAY = "overlay"
    ADD = "add"
    MIX = "mix"
    SCREEN = "screen"


def parse_blend(blend: Any) -> Union[BlendMode, str]:
    """Resolve a blend mode name; unrecognised names are returned unchanged."""
    if isinstance(blend, BlendMode):
        return blend
    try:
        return BlendMode(str(blend).lower())
    except ValueError:
        return str(blend)


# Legal values of each base surface field; bad input falls back to `default`
BASE_SCHEMA: Mapping[str, ParamDef] = {
    p.name: p
    for p in (
        ParamDef("color", ParamType.COLOR, parse_color("#888888"), label="Color"),
        ParamDef("roughness", ParamType.RANGE, 0.5, label="Roughness", min=0.0, max=1.0),
        ParamDef("metalness", ParamType.RANGE, 0.0, label="Metalness", min=0.0, max=1.0),
        ParamDef("clearcoat", ParamType.RANGE, 0.0, label="Clearcoat", min=0.0, max=1.0),
        ParamDef("emissive_color", ParamType.COLOR, (0.0, 0.0, 0.0), label="Emissive"),
        ParamDef("emissive_intensity", ParamType.RANGE, 0.0, label="Emissive Intensity", min=0.0),
        ParamDef("opacity", ParamType.RANGE, 1.0, label="Opacity", min=0.0, max=1.0),
    )
}

BASE_PROPERTIES: Tuple[str, ...] = tuple(BASE_SCHEMA)

_LAYER_OPACITY = ParamDef("opacity", ParamType.RANGE, 1.0, label="Opacity", min=0.0, max=1.0)


def coerce_base(name: str, value: Any) -> Tuple[Optional[str], Any, bool]:
    """
    Validate one base surface value.

    Returns `(name, value, changed)` like `coerce_param`; `name` is None for
    keys that are not base properties.
    """
    definition = BASE_SCHEMA.get(name)
    if definition is None:
        return None, value, True
    coerced, changed = definition.coerce(value)
    return name, coerced, changed


@dataclass(frozen=True, slots=True)
class BaseSurface:
    """
    Core surface properties applied before any layer.

    Colors accept hex strings or RGB triples. Every field is brought into
    its legal range on construction; malformed values take the default.
    """

    color: Color3 = parse_color("#888888")
    roughness: float = 0.5
    metalness: float = 0.0
    clearcoat: float = 0.0
    emissive_color: Color3 = (0.0, 0.0, 0.0)
    emissive_intensity: float = 0.0
    opacity: float = 1.0

    def __post_init__(self) -> None:
        for name, definition in BASE_SCHEMA.items():
            value, changed = definition.coerce(getattr(self, name))
            if changed:
                logger.debug("Base surface %s fixed: -> %r", name, value)
            object.__setattr__(self, name, value)

    @property
    def transparent(self) -> bool:
        return self.opacity < 1.0

    def to_mapping(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in BASE_PROPERTIES}


@dataclass(frozen=True, slots=True)
class LayerSpec:
    """
    One entry in a material's pattern stack.

    `params` may be given as a plain mapping; it is validated against the
    pattern catalog and stored as the kind's typed parameter record.
    Unrecognised kinds keep their raw parameters in `UnknownParams`.
    """

    kind: Union[LayerKind, str]
    params: Any = None
    blend: Union[BlendMode, str] = BlendMode.MULTIPLY
    opacity: float = 1.0
    enabled: bool = True

    def __post_init__(self) -> None:
        kind = parse_kind(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "blend", parse_blend(self.blend))
        object.__setattr__(self, "opacity", _LAYER_OPACITY.coerce(self.opacity)[0])
        object.__setattr__(self, "enabled", bool(self.enabled))
        object.__setattr__(self, "params", _resolve_params(kind, self.params))

    @property
    def known_kind(self) -> bool:
        return isinstance(self.kind, LayerKind)

    @property
    def known_blend(self) -> bool:
        return isinstance(self.blend, BlendMode)

    @property
    def kind_name(self) -> str:
        return self.kind.value if isinstance(self.kind, LayerKind) else self.kind

    @property
    def blend_name(self) -> str:
        return self.blend.value if isinstance(self.blend, BlendMode) else self.blend


def _resolve_params(kind: Union[LayerKind, str], params: Any) -> LayerParams:
    if params is None:
        return default_params(kind)

    if not isinstance(kind, LayerKind):
        if isinstance(params, UnknownParams):
            return UnknownParams(dict(params.values))
        if isinstance(params, PatternParams):
            return UnknownParams(params.to_mapping())
        if isinstance(params, Mapping):
            return UnknownParams(dict(params))
        logger.warning("Ignoring %s params for %s layer", type(params).__name__, kind)
        return UnknownParams({})

    if isinstance(params, PatternParams):
        if params.kind is not kind:
            raise TypeError(
                f"{type(params).__name__} cannot parameterise a {kind.value} layer"
            )
        return params_from_mapping(kind, params.to_mapping())
    if isinstance(params, UnknownParams):
        return params_from_mapping(kind, params.values)
    if isinstance(params, Mapping):
        return params_from_mapping(kind, params)
    logger.warning("Ignoring %s params for %s layer", type(params).__name__, kind.value)
    return default_params(kind)


def create_layer(
    kind: Union[LayerKind, str],
    params: Mapping[str, Any] | None = None,
    *,
    blend: Union[BlendMode, str] = BlendMode.MULTIPLY,
    opacity: float = 1.0,
    enabled: bool = True,
) -> LayerSpec:
    """New layer with catalog defaults, overridden by `params`."""
    return LayerSpec(
        kind=kind, params=dict(params or {}), blend=blend, opacity=opacity, enabled=enabled
    )


@dataclass(slots=True)
class MaterialSpec:
    """Base surface plus ordered layers: the only serialisable material state."""

    base: BaseSurface = field(default_factory=BaseSurface)
    layers: List[LayerSpec] = field(default_factory=list)

    def copy(self) -> MaterialSpec:
        # Base and layers are immutable, a shallow list copy is enough
        return MaterialSpec(base=self.base, layers=list(self.layers))

    def enabled_layers(self) -> List[LayerSpec]:
        return [layer for layer in self.layers if layer.enabled]

    def with_base(self, **changes: Any) -> MaterialSpec:
        return MaterialSpec(base=replace(self.base, **changes), layers=list(self.layers))
