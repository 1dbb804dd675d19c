# strata/graphics/materials/serialization.py
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from strata.graphics.materials.catalog import params_to_mapping
from strata.graphics.materials.layers import (
    BASE_PROPERTIES,
    BaseSurface,
    LayerSpec,
    MaterialSpec,
)

logger = logging.getLogger(__name__)

# Older material files use these spellings
_BASE_ALIASES = {
    "emissive": "emissive_color",
    "emissiveColor": "emissive_color",
    "emissiveIntensity": "emissive_intensity",
}


def base_to_dict(base: BaseSurface) -> Dict[str, Any]:
    return {
        "color": list(base.color),
        "roughness": base.roughness,
        "metalness": base.metalness,
        "clearcoat": base.clearcoat,
        "emissive_color": list(base.emissive_color),
        "emissive_intensity": base.emissive_intensity,
        "opacity": base.opacity,
    }


def base_from_dict(data: Any) -> BaseSurface:
    """Base surface from plain data; unknown keys are dropped, bad values defaulted."""
    if not isinstance(data, Mapping):
        logger.warning("Expected a mapping for the base surface, got %s", type(data).__name__)
        return BaseSurface()
    values = {_BASE_ALIASES.get(k, k): v for k, v in data.items()}
    known = {k: v for k, v in values.items() if k in BASE_PROPERTIES}
    return BaseSurface(**known)


def layer_to_dict(layer: LayerSpec) -> Dict[str, Any]:
    return {
        "kind": layer.kind_name,
        "params": params_to_mapping(layer.params),
        "blend": layer.blend_name,
        "opacity": layer.opacity,
        "enabled": layer.enabled,
    }


def layer_from_dict(data: Any) -> Optional[LayerSpec]:
    """Layer from plain data, or None when the entry cannot describe a layer."""
    if not isinstance(data, Mapping):
        logger.warning("Skipping layer entry of type %s", type(data).__name__)
        return None
    kind = data.get("kind", data.get("type"))
    if kind is None:
        logger.warning("Skipping layer entry with no kind")
        return None
    params = data.get("params")
    return LayerSpec(
        kind=kind,
        params=dict(params) if isinstance(params, Mapping) else {},
        blend=data.get("blend", data.get("blend_mode", "mix")),
        opacity=data.get("opacity", 1.0),
        # Layers written before the flag existed are enabled
        enabled=data.get("enabled") is not False,
    )


def spec_to_dict(spec: MaterialSpec) -> Dict[str, Any]:
    """Plain-data form of a MaterialSpec (JSON compatible)."""
    return {
        "base": base_to_dict(spec.base),
        "layers": [layer_to_dict(layer) for layer in spec.layers],
    }


def spec_from_dict(data: Any) -> MaterialSpec:
    """
    Rebuild a MaterialSpec from plain data.

    Never raises for malformed input: a non-mapping gives the default
    material, and layer entries that cannot be read are skipped.
    """
    if not isinstance(data, Mapping):
        logger.warning("Expected a mapping for a material, got %s", type(data).__name__)
        return MaterialSpec()
    base = base_from_dict(data.get("base") or {})
    entries = data.get("layers")
    if not isinstance(entries, (list, tuple)):
        entries = ()
    layers = [layer for layer in map(layer_from_dict, entries) if layer is not None]
    return MaterialSpec(base=base, layers=layers)
