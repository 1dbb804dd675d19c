# strata/graphics/materials/presets.py
"""Built-in material definitions, immutable templates for new instances."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping

from strata.graphics.materials.layers import MaterialSpec
from strata.graphics.materials.serialization import spec_from_dict


class MaterialCategory(str, Enum):
    SOLID = "solid"
    PATTERN = "pattern"
    METAL = "metal"
    NATURAL = "natural"
    CUSTOM = "custom"


@dataclass(frozen=True)
class MaterialDefinition:
    id: str
    name: str
    category: str
    data: Mapping[str, Any]

    @property
    def spec(self) -> MaterialSpec:
        """A fresh MaterialSpec built from the definition data."""
        return spec_from_dict(self.data)


def _base(color: str, roughness: float = 0.5, metalness: float = 0.0, clearcoat: float = 0.0):
    return {"color": color, "roughness": roughness, "metalness": metalness, "clearcoat": clearcoat}


def _layer(kind: str, blend: str, opacity: float = 1.0, **params: Any):
    return {"kind": kind, "params": params, "blend": blend, "opacity": opacity, "enabled": True}


def _define(id: str, name: str, category: MaterialCategory, base, *layers) -> MaterialDefinition:
    return MaterialDefinition(
        id=id,
        name=name,
        category=category.value,
        data={"base": base, "layers": list(layers)},
    )


_SOLID = MaterialCategory.SOLID
_PATTERN = MaterialCategory.PATTERN
_METAL = MaterialCategory.METAL
_NATURAL = MaterialCategory.NATURAL

_DEFINITIONS: List[MaterialDefinition] = [
    # Solid colors
    _define("solid-white", "White", _SOLID, _base("#ffffff")),
    _define("solid-gray", "Gray", _SOLID, _base("#888888")),
    _define("solid-darkgray", "Dark Gray", _SOLID, _base("#444444")),
    _define("solid-black", "Black", _SOLID, _base("#222222")),
    _define("solid-red", "Red", _SOLID, _base("#e74c3c")),
    _define("solid-orange", "Orange", _SOLID, _base("#e67e22")),
    _define("solid-yellow", "Yellow", _SOLID, _base("#f1c40f")),
    _define("solid-green", "Green", _SOLID, _base("#2ecc71")),
    _define("solid-teal", "Teal", _SOLID, _base("#4ecdc4")),
    _define("solid-blue", "Blue", _SOLID, _base("#3498db")),
    _define("solid-purple", "Purple", _SOLID, _base("#9b59b6")),
    _define("solid-pink", "Pink", _SOLID, _base("#e91e63")),
    _define("solid-brown", "Brown", _SOLID, _base("#795548", 0.6)),
    _define("solid-beige", "Beige", _SOLID, _base("#d4c4a8")),
    # Patterns
    _define(
        "red-brick", "Red Brick", _PATTERN, _base("#b74a3a", 0.85),
        _layer("brick", "multiply", mortar_color="#888888", mortar_thickness=0.03,
               brick_width=4, brick_height=2, offset=0.5),
    ),
    _define(
        "gray-brick", "Gray Brick", _PATTERN, _base("#666666", 0.8),
        _layer("brick", "multiply", mortar_color="#444444", mortar_thickness=0.025,
               brick_width=4, brick_height=2, offset=0.5),
    ),
    _define(
        "stone-block", "Stone Block", _PATTERN, _base("#9e9e9e", 0.9),
        _layer("brick", "multiply", mortar_color="#666666", mortar_thickness=0.02,
               brick_width=2, brick_height=2, offset=0.5),
        _layer("noise", "overlay", 0.3, color2="#787878", scale=3, contrast=0.5, octaves=2),
    ),
    _define(
        "checker-bw", "Checkerboard", _PATTERN, _base("#ffffff", 0.3, clearcoat=0.2),
        _layer("checker", "replace", color2="#222222", scale=4),
    ),
    _define(
        "floor-tiles", "Floor Tiles", _PATTERN, _base("#d4c4a8", 0.4, clearcoat=0.1),
        _layer("checker", "replace", color2="#8b7355", scale=2),
    ),
    _define(
        "marble", "Marble", _PATTERN, _base("#f0f0f0", 0.2, clearcoat=0.3),
        _layer("noise", "multiply", 0.6, color2="#a0a0a0", scale=2, contrast=1.2, octaves=3),
    ),
    _define(
        "concrete", "Concrete", _PATTERN, _base("#b0b0b0", 0.9),
        _layer("noise", "overlay", 0.5, color2="#888888", scale=4, contrast=0.4, octaves=2),
    ),
    _define(
        "fabric-red", "Red Fabric", _PATTERN, _base("#c0392b", 0.9),
        _layer("weave", "overlay", 0.3, color2="#8b2a20", scale=30, thread_width=0.5),
    ),
    _define(
        "fabric-blue", "Blue Fabric", _PATTERN, _base("#2980b9", 0.9),
        _layer("weave", "overlay", 0.3, color2="#1a5276", scale=30, thread_width=0.5),
    ),
    # Natural
    _define(
        "oak-wood", "Oak Wood", _NATURAL, _base("#8b6914", 0.6, clearcoat=0.15),
        _layer("wood_grain", "multiply", grain_color="#5a4510", grain_scale=8,
               grain_strength=0.5, ring_scale=2),
    ),
    _define(
        "dark-wood", "Dark Wood", _NATURAL, _base("#4a3728", 0.5, clearcoat=0.2),
        _layer("wood_grain", "multiply", grain_color="#2a1f18", grain_scale=10,
               grain_strength=0.6, ring_scale=2.5),
    ),
    _define(
        "pine-wood", "Pine Wood", _NATURAL, _base("#c9a86c", 0.55, clearcoat=0.1),
        _layer("wood_grain", "multiply", grain_color="#9e7b4a", grain_scale=6,
               grain_strength=0.4, ring_scale=1.5),
    ),
    _define(
        "grass", "Grass", _NATURAL, _base("#4a7c23", 0.8),
        _layer("noise", "overlay", 0.5, color2="#2d5016", scale=5, contrast=0.8, octaves=2),
    ),
    _define(
        "sand", "Sand", _NATURAL, _base("#e6d5a8", 0.95),
        _layer("noise", "overlay", 0.4, color2="#c4b48a", scale=8, contrast=0.3, octaves=2),
    ),
    _define(
        "dirt", "Dirt", _NATURAL, _base("#6b4423", 0.95),
        _layer("noise", "overlay", 0.5, color2="#4a2f18", scale=4, contrast=0.6, octaves=2),
    ),
    # Metals
    _define("steel", "Steel", _METAL, _base("#8a9a9a", 0.25, 0.95)),
    _define("brushed-steel", "Brushed Steel", _METAL, _base("#9aacac", 0.4, 0.9)),
    _define("gold", "Gold", _METAL, _base("#ffd700", 0.2, 0.95)),
    _define("copper", "Copper", _METAL, _base("#b87333", 0.3, 0.9)),
    _define("bronze", "Bronze", _METAL, _base("#cd7f32", 0.35, 0.85)),
    _define("chrome", "Chrome", _METAL, _base("#e8e8e8", 0.05, 1.0)),
    _define(
        "rusted-metal", "Rusted Metal", _METAL, _base("#8b4513", 0.85, 0.4),
        _layer("noise", "overlay", 0.6, color2="#5a3510", scale=3, contrast=1.0, octaves=3),
    ),
    # Special
    _define("glass", "Glass", _SOLID, _base("#a8d8ea", 0.0, clearcoat=1.0)),
    _define("plastic-glossy", "Glossy Plastic", _SOLID, _base("#e74c3c", 0.1, clearcoat=0.8)),
    _define("rubber", "Rubber", _SOLID, _base("#2c3e50", 0.95)),
]

PRESETS: Dict[str, MaterialDefinition] = {d.id: d for d in _DEFINITIONS}


def get_preset(preset_id: str) -> MaterialDefinition:
    try:
        return PRESETS[preset_id]
    except KeyError:
        raise KeyError(f"Unknown material preset '{preset_id}'") from None


def presets_by_category(category: MaterialCategory | str) -> List[MaterialDefinition]:
    value = category.value if isinstance(category, MaterialCategory) else category
    return [d for d in _DEFINITIONS if d.category == value]


def all_categories() -> Dict[str, List[MaterialDefinition]]:
    """Definitions grouped by category, in definition order."""
    out: Dict[str, List[MaterialDefinition]] = {}
    for definition in _DEFINITIONS:
        out.setdefault(definition.category, []).append(definition)
    return out
