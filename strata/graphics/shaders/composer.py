# strata/graphics/shaders/composer.py
"""
Shader composer: turns a base surface and a layer stack into a program.

Enabled layers are re-indexed 0..N-1 in list order on every compose, so
uniform names (``u_layer{index}_{param}``) belong to one program only and
must not be reused after a recompile.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from strata.graphics.errors import Diagnostic, DiagnosticKind
from strata.graphics.materials.catalog import (
    MAX_NOISE_OCTAVES,
    PatternParams,
    schema_for,
)
from strata.graphics.materials.layers import BaseSurface, BlendMode, LayerSpec, parse_blend
from strata.graphics.materials.patterns import (
    PatternFunction,
    layer_uniform,
    pattern_function,
)
from strata.graphics.settings import ComposerSettings
from strata.graphics.shaders.chunks import (
    BLEND_FUNCTIONS,
    FACE_UV_FUNCTION,
    FRAGMENT_INPUTS,
    LIGHTING_FUNCTION,
    NOISE_FUNCTIONS,
    SHADOW_FUNCTION,
    VERTEX_SHADER,
    shading_constants,
)
from strata.graphics.shaders.program_types import (
    Artifact,
    CompiledLayer,
    CompiledProgram,
    FixedFunctionProgram,
    Uniform,
    UniformGroup,
    UniformKind,
)
from strata.types import Color3, clamp01

logger = logging.getLogger(__name__)

# Base surface
U_BASE_COLOR = "u_base_color"
U_ROUGHNESS = "u_roughness"
U_METALNESS = "u_metalness"
U_CLEARCOAT = "u_clearcoat"
U_EMISSIVE_COLOR = "u_emissive_color"
U_EMISSIVE_INTENSITY = "u_emissive_intensity"
U_OPACITY = "u_opacity"

# Lighting
U_LIGHT_DIRECTION = "u_light_direction"
U_LIGHT_COLOR = "u_light_color"
U_LIGHT_INTENSITY = "u_light_intensity"
U_FILL_LIGHT_DIRECTION = "u_fill_light_direction"
U_FILL_LIGHT_COLOR = "u_fill_light_color"
U_FILL_LIGHT_INTENSITY = "u_fill_light_intensity"
U_AMBIENT_COLOR = "u_ambient_color"

# Shadow bundle
U_SHADOW_MAP = "u_shadow_map"
U_SHADOW_MATRIX = "u_shadow_matrix"
U_SHADOW_BIAS = "u_shadow_bias"
U_SHADOW_MAP_SIZE = "u_shadow_map_size"
U_SHADOW_ENABLED = "u_shadow_enabled"

# Per draw
U_MODEL = "u_model"
U_VIEW_PROJ = "u_view_proj"
U_CAM_POS = "u_cam_pos"

# Declared by the vertex stage only
_VERTEX_UNIFORMS = frozenset({U_MODEL, U_VIEW_PROJ})

_BLEND_FUNCTIONS: Dict[BlendMode, str] = {
    BlendMode.REPLACE: "blend_replace",
    BlendMode.MULTIPLY: "blend_multiply",
    BlendMode.OVERLAY: "blend_overlay",
    BlendMode.ADD: "blend_add",
    BlendMode.MIX: "blend_mix",
    BlendMode.SCREEN: "blend_screen",
}


def resolve_blend(blend: Union[BlendMode, str]) -> BlendMode:
    """Unknown blend modes fall back to mix."""
    resolved = parse_blend(blend)
    return resolved if isinstance(resolved, BlendMode) else BlendMode.MIX


def blend_colors(
    mode: Union[BlendMode, str], base: Color3, layer: Color3, opacity: float
) -> Color3:
    """
    CPU version of the generated blend functions.

    Channel-wise `lerp(base, target, opacity)` where `target` depends on the
    mode; unknown modes behave like mix.
    """
    resolved = resolve_blend(mode)
    a = clamp01(opacity)
    out = []
    for b, lc in zip(base, layer):
        if resolved is BlendMode.MULTIPLY:
            target = b * lc
        elif resolved is BlendMode.ADD:
            target = min(b + lc, 1.0)
        elif resolved is BlendMode.SCREEN:
            target = 1.0 - (1.0 - b) * (1.0 - lc)
        elif resolved is BlendMode.OVERLAY:
            target = 2.0 * b * lc if b < 0.5 else 1.0 - 2.0 * (1.0 - b) * (1.0 - lc)
        else:
            target = lc
        out.append(b + (target - b) * a)
    return (out[0], out[1], out[2])


def compilable_layers(
    layers: Sequence[LayerSpec],
) -> Tuple[List[Tuple[int, LayerSpec]], List[Diagnostic]]:
    """
    Enabled layers the catalog can generate, paired with their list position.

    Disabled layers are dropped silently; layers of unknown kind are dropped
    with a diagnostic.
    """
    selected: List[Tuple[int, LayerSpec]] = []
    diagnostics: List[Diagnostic] = []
    for position, layer in enumerate(layers):
        if not layer.enabled:
            continue
        if schema_for(layer.kind) is None:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.UNKNOWN_PATTERN_KIND,
                    f"Unknown pattern kind {layer.kind_name!r}; layer skipped",
                    layer_index=position,
                )
            )
            continue
        selected.append((position, layer))
    return selected, diagnostics


class ShaderComposer:
    """
    Generates material programs.

    Responsibilities:
      - lay out the uniform table (base, lighting, shadow, per-draw, layers)
      - emit vertex/fragment source for the enabled layer stack
      - refresh uniform values in place when only values changed
    """

    def __init__(self, settings: Optional[ComposerSettings] = None) -> None:
        self.settings = settings or ComposerSettings()

    def compose(
        self,
        base: BaseSurface,
        layers: Sequence[LayerSpec],
        *,
        label: str = "material",
    ) -> Artifact:
        """Build a program, or a fixed-function block when no layer applies."""
        selected, diagnostics = compilable_layers(layers)
        for diag in diagnostics:
            logger.warning("%s: %s", label, diag.message)

        if not selected:
            return self.compose_fixed_function(base, diagnostics=tuple(diagnostics))

        uniforms: Dict[str, Uniform] = {}
        uniforms.update(self._base_uniforms(base))
        uniforms.update(self._lighting_uniforms())
        if self.settings.shading.shadows:
            uniforms.update(self._shadow_uniforms())
        uniforms.update(self._transform_uniforms())

        functions: List[PatternFunction] = []
        compiled: List[CompiledLayer] = []
        calls: List[str] = []

        for index, (position, layer) in enumerate(selected):
            func = pattern_function(layer.kind, index, layer.params)
            if func is None:
                continue

            for decl in func.uniforms:
                uniforms[decl.name] = Uniform(decl.kind, decl.value, UniformGroup.LAYER)
            opacity_name = layer_uniform(index, "opacity")
            uniforms[opacity_name] = Uniform(
                UniformKind.FLOAT, layer.opacity, UniformGroup.LAYER
            )

            blend = resolve_blend(layer.blend)
            if not layer.known_blend:
                diag = Diagnostic(
                    DiagnosticKind.UNKNOWN_BLEND_MODE,
                    f"Unknown blend mode {layer.blend_name!r}; using mix",
                    layer_index=position,
                )
                logger.warning("%s: %s", label, diag.message)
                diagnostics.append(diag)

            functions.append(func)
            compiled.append(
                CompiledLayer(
                    index=index,
                    source_index=position,
                    kind=layer.kind_name,
                    blend=blend.value,
                    function_name=func.name,
                    param_uniforms=tuple((d.param, d.name) for d in func.uniforms),
                    opacity_uniform=opacity_name,
                )
            )
            calls.append(
                f"    // layer {index}: {layer.kind_name} ({blend.value})\n"
                f"    layer_color = {func.name}(v_local_position, local_normal, color);\n"
                f"    color = {_BLEND_FUNCTIONS[blend]}(color, layer_color, {opacity_name});\n"
            )

        fragment = self._fragment_source(uniforms, functions, calls)
        vertex = f"#version {self.settings.shading.glsl_version}\n\n{VERTEX_SHADER}"

        logger.debug(
            "Composed %s: %d layer(s), %d uniform(s)", label, len(compiled), len(uniforms)
        )
        return CompiledProgram(
            label=label,
            vertex_source=vertex,
            fragment_source=fragment,
            uniforms=uniforms,
            layers=tuple(compiled),
            diagnostics=tuple(diagnostics),
        )

    def compose_fixed_function(
        self,
        base: BaseSurface,
        *,
        compile_error: Optional[str] = None,
        diagnostics: Tuple[Diagnostic, ...] = (),
    ) -> FixedFunctionProgram:
        return FixedFunctionProgram(
            color=base.color,
            roughness=base.roughness,
            metalness=base.metalness,
            clearcoat=base.clearcoat,
            emissive_color=base.emissive_color,
            emissive_intensity=base.emissive_intensity,
            opacity=base.opacity,
            compile_error=compile_error,
            diagnostics=diagnostics,
        )

    def refresh(
        self, artifact: Artifact, base: BaseSurface, layers: Sequence[LayerSpec]
    ) -> bool:
        """
        Write current base/layer values into an existing artifact.

        Source is never regenerated. Returns False when the layer stack no
        longer matches the artifact's layout, in which case the caller has
        to recompile.
        """
        if isinstance(artifact, FixedFunctionProgram):
            artifact.color = base.color
            artifact.roughness = base.roughness
            artifact.metalness = base.metalness
            artifact.clearcoat = base.clearcoat
            artifact.emissive_color = base.emissive_color
            artifact.emissive_intensity = base.emissive_intensity
            artifact.opacity = base.opacity
            return True

        selected, _ = compilable_layers(layers)
        if len(selected) != len(artifact.layers):
            return False
        for slot, (_, layer) in zip(artifact.layers, selected):
            if slot.kind != layer.kind_name:
                return False

        for name, uniform in self._base_uniforms(base).items():
            artifact.set(name, uniform.value)

        for slot, (_, layer) in zip(artifact.layers, selected):
            schema = schema_for(layer.kind)
            if schema is None or not isinstance(layer.params, PatternParams):
                return False
            values = layer.params.to_mapping()
            for param, uniform_name in slot.param_uniforms:
                definition = schema.param(param)
                if definition is None:
                    return False
                artifact.set(uniform_name, definition.uniform_value(values[param]))
            artifact.set(slot.opacity_uniform, layer.opacity)
        return True

    def _base_uniforms(self, base: BaseSurface) -> Dict[str, Uniform]:
        g = UniformGroup.BASE
        return {
            U_BASE_COLOR: Uniform(UniformKind.VEC3, base.color, g),
            U_ROUGHNESS: Uniform(UniformKind.FLOAT, base.roughness, g),
            U_METALNESS: Uniform(UniformKind.FLOAT, base.metalness, g),
            U_CLEARCOAT: Uniform(UniformKind.FLOAT, base.clearcoat, g),
            U_EMISSIVE_COLOR: Uniform(UniformKind.VEC3, base.emissive_color, g),
            U_EMISSIVE_INTENSITY: Uniform(UniformKind.FLOAT, base.emissive_intensity, g),
            U_OPACITY: Uniform(UniformKind.FLOAT, base.opacity, g),
        }

    def _lighting_uniforms(self) -> Dict[str, Uniform]:
        d = self.settings.lighting
        g = UniformGroup.LIGHTING
        return {
            U_LIGHT_DIRECTION: Uniform(UniformKind.VEC3, d.light_direction.as_tuple(), g),
            U_LIGHT_COLOR: Uniform(UniformKind.VEC3, d.light_color, g),
            U_LIGHT_INTENSITY: Uniform(UniformKind.FLOAT, d.light_intensity, g),
            U_FILL_LIGHT_DIRECTION: Uniform(
                UniformKind.VEC3, d.fill_light_direction.as_tuple(), g
            ),
            U_FILL_LIGHT_COLOR: Uniform(UniformKind.VEC3, d.fill_light_color, g),
            U_FILL_LIGHT_INTENSITY: Uniform(UniformKind.FLOAT, d.fill_light_intensity, g),
            U_AMBIENT_COLOR: Uniform(UniformKind.VEC3, d.ambient_color, g),
        }

    def _shadow_uniforms(self) -> Dict[str, Uniform]:
        d = self.settings.lighting
        g = UniformGroup.SHADOW
        width, height = d.shadow_map_size
        return {
            U_SHADOW_MAP: Uniform(UniformKind.SAMPLER2D, None, g),
            U_SHADOW_MATRIX: Uniform(UniformKind.MAT4, np.eye(4, dtype="f4"), g),
            U_SHADOW_BIAS: Uniform(UniformKind.FLOAT, d.shadow_bias, g),
            U_SHADOW_MAP_SIZE: Uniform(UniformKind.VEC2, (float(width), float(height)), g),
            U_SHADOW_ENABLED: Uniform(UniformKind.BOOL, False, g),
        }

    def _transform_uniforms(self) -> Dict[str, Uniform]:
        g = UniformGroup.TRANSFORM
        return {
            U_MODEL: Uniform(UniformKind.MAT4, np.eye(4, dtype="f4"), g),
            U_VIEW_PROJ: Uniform(UniformKind.MAT4, np.eye(4, dtype="f4"), g),
            U_CAM_POS: Uniform(UniformKind.VEC3, (0.0, 0.0, 0.0), g),
        }

    def _fragment_source(
        self,
        uniforms: Dict[str, Uniform],
        functions: Sequence[PatternFunction],
        calls: Sequence[str],
    ) -> str:
        shading = self.settings.shading
        declarations = "\n".join(
            u.declaration(name)
            for name, u in uniforms.items()
            if name not in _VERTEX_UNIFORMS
        )

        parts = [
            f"#version {shading.glsl_version}\n",
            shading_constants(self.settings, max_octaves=MAX_NOISE_OCTAVES),
            declarations + "\n",
            FRAGMENT_INPUTS,
        ]
        if any(f.uses_noise for f in functions):
            parts.append(NOISE_FUNCTIONS)
        parts.append(BLEND_FUNCTIONS)
        if any(f.uses_face_uv for f in functions):
            parts.append(FACE_UV_FUNCTION)
        parts.extend(f.source for f in functions)
        parts.append(LIGHTING_FUNCTION)
        if shading.shadows:
            parts.append(SHADOW_FUNCTION)
        parts.append(self._main(calls))
        return "\n".join(parts)

    def _main(self, calls: Sequence[str]) -> str:
        lines = [
            "void main() {",
            f"    vec3 color = {U_BASE_COLOR};",
            "    vec3 layer_color;",
            "    vec3 local_normal = normalize(v_flat_local_normal);",
            "    vec3 normal = normalize(v_flat_world_normal);",
            f"    vec3 view_dir = normalize({U_CAM_POS} - v_world_position);",
            "",
        ]
        body = "".join(calls)
        lines.append(body.rstrip("\n"))
        lines.append("")
        lines.append("    float shadow = 1.0;")
        if self.settings.shading.shadows:
            lines.extend(
                [
                    f"    if ({U_SHADOW_ENABLED}) {{",
                    f"        shadow = sample_shadow({U_SHADOW_MATRIX} * vec4(v_world_position, 1.0));",
                    "    }",
                ]
            )
        lines.extend(
            [
                "    vec3 lit = calculate_lighting(color, normal, view_dir, shadow);",
                "",
                f"    if ({U_CLEARCOAT} > 0.0) {{",
                "        float fresnel = pow(1.0 - max(dot(normal, view_dir), 0.0), CLEARCOAT_FRESNEL_POWER);",
                f"        lit += {U_CLEARCOAT} * fresnel * vec3(CLEARCOAT_RIM_STRENGTH);",
                "    }",
                "",
                f"    lit += {U_EMISSIVE_COLOR} * {U_EMISSIVE_INTENSITY};",
                f"    f_color = vec4(lit, {U_OPACITY});",
                "}",
            ]
        )
        return "\n".join(lines) + "\n"


def compose_material(
    base: BaseSurface,
    layers: Sequence[LayerSpec],
    settings: Optional[ComposerSettings] = None,
    *,
    label: str = "material",
) -> Artifact:
    """One-shot compose with a throwaway composer."""
    return ShaderComposer(settings).compose(base, layers, label=label)
