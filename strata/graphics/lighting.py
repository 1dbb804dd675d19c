# strata/graphics/lighting.py
"""
Per-frame lighting sync.

Only the first two directional lights and the first ambient light of a
snapshot are used; further directional lights are ignored.
"""

from __future__ import annotations

from typing import Any, List, Optional

import numpy as np

from strata.graphics.light import LightSnapshot, is_ambient, is_directional
from strata.graphics.settings import LightingDefaults
from strata.graphics.shaders.composer import (
    U_AMBIENT_COLOR,
    U_FILL_LIGHT_COLOR,
    U_FILL_LIGHT_DIRECTION,
    U_FILL_LIGHT_INTENSITY,
    U_LIGHT_COLOR,
    U_LIGHT_DIRECTION,
    U_LIGHT_INTENSITY,
    U_SHADOW_BIAS,
    U_SHADOW_ENABLED,
    U_SHADOW_MAP,
    U_SHADOW_MAP_SIZE,
    U_SHADOW_MATRIX,
)
from strata.graphics.shaders.program_types import Artifact, CompiledProgram
from strata.types import Color3, Vector3

_DEFAULTS = LightingDefaults()


def _color(value: Any) -> Color3:
    r, g, b = value
    return (float(r), float(g), float(b))


def _direction(light: Any) -> Color3:
    d = light.direction
    if not isinstance(d, Vector3):
        x, y, z = d
        d = Vector3(float(x), float(y), float(z))
    return d.normalized().as_tuple()


def _scaled(color: Any, intensity: float) -> Color3:
    r, g, b = _color(color)
    k = float(intensity)
    return (r * k, g * k, b * k)


def _write(program: CompiledProgram, name: str, value: Any) -> None:
    # Programs composed without the shadow bundle simply lack those names
    if name in program:
        program.set(name, value)


def sync_lighting(
    artifact: Optional[Artifact],
    snapshot: LightSnapshot,
    *,
    defaults: LightingDefaults = _DEFAULTS,
) -> None:
    """
    Push scene lighting and shadow state into a compiled program.

    Writes lighting/shadow uniforms only and never recompiles. Fixed-function
    artifacts (and None) are left untouched.
    """
    if not isinstance(artifact, CompiledProgram):
        return

    directional: List[Any] = []
    ambient = None
    for obj in snapshot.lights:
        if is_directional(obj):
            if len(directional) < 2:
                directional.append(obj)
        elif is_ambient(obj) and ambient is None:
            ambient = obj

    primary = directional[0] if directional else None
    fill = directional[1] if len(directional) > 1 else None

    if primary is not None:
        _write(artifact, U_LIGHT_DIRECTION, _direction(primary))
        _write(artifact, U_LIGHT_COLOR, _color(primary.color))
        _write(artifact, U_LIGHT_INTENSITY, float(primary.intensity))

    if fill is not None:
        _write(artifact, U_FILL_LIGHT_DIRECTION, _direction(fill))
        _write(artifact, U_FILL_LIGHT_COLOR, _color(fill.color))
        _write(artifact, U_FILL_LIGHT_INTENSITY, float(fill.intensity))
    else:
        _write(artifact, U_FILL_LIGHT_INTENSITY, 0.0)

    if ambient is not None:
        _write(artifact, U_AMBIENT_COLOR, _scaled(ambient.color, ambient.intensity))
    else:
        _write(artifact, U_AMBIENT_COLOR, defaults.ambient_fallback)

    _sync_shadow(artifact, primary, snapshot.receive_shadows)


def _sync_shadow(program: CompiledProgram, primary: Any, receive_shadows: bool) -> None:
    shadow = getattr(primary, "shadow", None) if primary is not None else None
    usable = (
        primary is not None
        and bool(getattr(primary, "cast_shadows", False))
        and shadow is not None
        and shadow.depth_map is not None
        and receive_shadows
    )
    if not usable:
        _write(program, U_SHADOW_ENABLED, False)
        return

    width, height = shadow.map_size
    _write(program, U_SHADOW_MAP, shadow.depth_map)
    _write(program, U_SHADOW_MATRIX, np.asarray(shadow.matrix, dtype="f4"))
    _write(program, U_SHADOW_BIAS, float(shadow.bias))
    _write(program, U_SHADOW_MAP_SIZE, (float(width), float(height)))
    _write(program, U_SHADOW_ENABLED, True)
