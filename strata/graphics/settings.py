# strata/graphics/settings.py
from __future__ import annotations

from dataclasses import dataclass, field

from strata.types import Color3, Vector3


@dataclass(frozen=True, slots=True)
class LightingDefaults:
    """
    Lighting values written into a freshly composed program.

    They stay in effect until the first `sync_lighting` call replaces them.
    """

    light_direction: Vector3 = Vector3(0.5, 1.0, 0.3).normalized()
    light_color: Color3 = (1.0, 0.98, 0.95)
    light_intensity: float = 1.0

    fill_light_direction: Vector3 = Vector3(-0.5, 0.3, 0.5).normalized()
    fill_light_color: Color3 = (0.5, 0.6, 0.8)
    fill_light_intensity: float = 0.3

    ambient_color: Color3 = (0.4, 0.4, 0.4)
    # Used by lighting sync when the scene has no ambient light
    ambient_fallback: Color3 = (0.3, 0.3, 0.3)
    # Lower bound applied in the shader so nothing renders pure black
    ambient_floor: float = 0.1

    shadow_bias: float = 0.005
    shadow_map_size: tuple[int, int] = (1024, 1024)


@dataclass(frozen=True, slots=True)
class ShadingSettings:
    """Constants baked into the generated fragment source."""

    glsl_version: str = "330 core"

    rough_specular_power: float = 16.0
    shiny_specular_power: float = 128.0
    dielectric_specular: float = 0.04
    specular_scale: float = 0.25

    clearcoat_rim_strength: float = 0.5
    clearcoat_fresnel_power: float = 3.0

    # Emit the shadow uniform bundle and PCF sampling
    shadows: bool = True
    shadow_pcf_radius: int = 1


@dataclass(frozen=True, slots=True)
class ComposerSettings:
    """Master configuration for shader composition."""

    lighting: LightingDefaults = field(default_factory=LightingDefaults)
    shading: ShadingSettings = field(default_factory=ShadingSettings)
