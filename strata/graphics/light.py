# strata/graphics/light.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Sequence, Tuple

import numpy as np

from strata.types import Color3, Vector3


@dataclass(frozen=True, eq=False)
class ShadowDescriptor:
    """
    Shadow state published by a directional light after its shadow pass.

    `depth_map` is whatever the renderer binds as a texture (a texture unit
    index or a moderngl texture). `matrix` maps world space to shadow-map
    texture space.
    """

    depth_map: Any
    matrix: np.ndarray = field(default_factory=lambda: np.eye(4, dtype="f4"))
    bias: float = 0.005
    map_size: Tuple[int, int] = (1024, 1024)


@dataclass(frozen=True)
class DirectionalLight:
    """
    Parallel light shining from `position` toward `target`.
    """

    is_directional_light: ClassVar[bool] = True

    position: Vector3 = Vector3(0.5, 1.0, 0.3)
    target: Vector3 = Vector3(0.0, 0.0, 0.0)
    color: Color3 = (1.0, 1.0, 1.0)
    intensity: float = 1.0
    cast_shadows: bool = False
    shadow: Optional[ShadowDescriptor] = None

    @property
    def direction(self) -> Vector3:
        """Unit vector from the target toward the light."""
        return (self.position - self.target).normalized()


@dataclass(frozen=True)
class AmbientLight:
    """
    Global base light level.
    """

    is_ambient_light: ClassVar[bool] = True

    color: Color3 = (1.0, 1.0, 1.0)
    intensity: float = 0.4


@dataclass(frozen=True)
class PointLight:
    """
    Omni-directional light source. Material lighting ignores it.
    """

    position: Vector3 = Vector3(0.0, 0.0, 0.0)
    color: Color3 = (1.0, 0.9, 0.7)  # Warm white
    radius: float = 128.0
    cast_shadows: bool = True


def is_directional(obj: Any) -> bool:
    return bool(getattr(obj, "is_directional_light", False))


def is_ambient(obj: Any) -> bool:
    return bool(getattr(obj, "is_ambient_light", False))


@dataclass(frozen=True)
class LightSnapshot:
    """
    Light-like objects in scene traversal order, plus whether the object
    being drawn accepts shadows.
    """

    lights: Sequence[Any] = ()
    receive_shadows: bool = True
