# strata/graphics/materials/patterns.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from strata.graphics.materials.catalog import (
    LayerKind,
    LayerParams,
    ParamType,
    PatternParams,
    schema_for,
)
from strata.graphics.shaders.program_types import UniformKind


@dataclass(frozen=True, slots=True)
class UniformDecl:
    """A uniform a pattern function reads, with its initial value."""

    name: str
    kind: UniformKind
    value: object
    param: str


@dataclass(frozen=True, slots=True)
class PatternFunction:
    name: str
    source: str
    uniforms: Tuple[UniformDecl, ...]
    uses_noise: bool
    uses_face_uv: bool


def layer_uniform(index: int, param: str) -> str:
    return f"u_layer{index}_{param}"


def function_name(kind: LayerKind, index: int) -> str:
    return f"{kind.value}_pattern_{index}"


# Each generator receives the function name and a uniform-name lookup `u`.
# Signature of every generated function:
#     vec3 f(vec3 local_pos, vec3 local_normal, vec3 base_color)


def _brick(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    vec2 uv = face_uv(local_pos, local_normal) * vec2({u("brick_width")}, {u("brick_height")});

    // Offset every other row
    if (mod(floor(uv.y), 2.0) == 1.0) {{
        uv.x += {u("offset")};
    }}

    vec2 cell = fract(uv);
    float t = {u("mortar_thickness")};
    float mortar_x = step(cell.x, t) + step(1.0 - t, cell.x);
    float mortar_y = step(cell.y, t) + step(1.0 - t, cell.y);
    float mortar = clamp(max(mortar_x, mortar_y), 0.0, 1.0);

    return mix(base_color, {u("mortar_color")}, mortar);
}}
"""


def _checker(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    vec2 uv = face_uv(local_pos, local_normal) * {u("scale")};
    float checker = mod(floor(uv.x) + floor(uv.y), 2.0);
    return mix(base_color, {u("color2")}, checker);
}}
"""


def _noise(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    int octaves = int({u("octaves")} + 0.5);
    float n = fbm(local_pos * {u("scale")}, octaves);
    n = clamp((n + 1.0) * 0.5, 0.0, 1.0);
    n = pow(n, {u("contrast")});
    return mix(base_color, {u("color2")}, n);
}}
"""


def _gradient(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    vec2 coord = face_uv(local_pos, local_normal);
    float direction = {u("direction")};
    float t;
    if (direction < 0.5) {{
        t = coord.y + 0.5;
    }} else if (direction < 1.5) {{
        t = coord.x + 0.5;
    }} else {{
        t = (coord.x + coord.y) * 0.5 + 0.5;
    }}
    t = smoothstep(0.0, 1.0, (t - 0.5) / max({u("midpoint")}, 0.001) + 0.5);
    return mix(base_color, {u("color2")}, clamp(t, 0.0, 1.0));
}}
"""


def _wood_grain(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    float grain_scale = {u("grain_scale")};
    float warp = snoise(local_pos * grain_scale * 0.5) * 0.3;
    float grain = sin((local_pos.x * {u("ring_scale")} + warp) * 3.14159 * grain_scale);
    grain = pow((grain + 1.0) * 0.5, 2.0);
    float variation = snoise(local_pos * grain_scale * 2.0) * 0.1;
    float amount = clamp(grain * {u("grain_strength")} + variation, 0.0, 1.0);
    return mix(base_color, {u("grain_color")}, amount);
}}
"""


def _weave(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    vec2 uv = face_uv(local_pos, local_normal) * {u("scale")};
    float warp = step(fract(uv.x), {u("thread_width")});
    float weft = step(fract(uv.y), {u("thread_width")});

    // Threads alternate over/under per cell
    float over_under = mod(floor(uv.x) + floor(uv.y), 2.0);
    float pattern = mix(warp, weft, over_under);
    return mix(base_color, {u("color2")}, pattern * 0.5);
}}
"""


def _stripes(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    vec2 coord = face_uv(local_pos, local_normal);
    float direction = {u("direction")};
    float axis;
    // "vertical" steps along face y, "horizontal" along face x
    if (direction < 0.5) {{
        axis = coord.y;
    }} else if (direction < 1.5) {{
        axis = coord.x;
    }} else {{
        axis = (coord.x + coord.y) * 0.707;
    }}
    float stripe = step(fract(axis * {u("scale")}), {u("thickness")});
    return mix(base_color, {u("color2")}, stripe);
}}
"""


def _dots(name: str, u: Callable[[str], str]) -> str:
    return f"""\
vec3 {name}(vec3 local_pos, vec3 local_normal, vec3 base_color) {{
    vec2 cell = fract(face_uv(local_pos, local_normal) * {u("scale")}) - 0.5;
    float size = {u("dot_size")};
    float dot_mask = 1.0 - smoothstep(size * 0.4, size * 0.5, length(cell));
    return mix(base_color, {u("color2")}, dot_mask);
}}
"""


_GENERATORS: Dict[LayerKind, Callable[[str, Callable[[str], str]], str]] = {
    LayerKind.BRICK: _brick,
    LayerKind.CHECKER: _checker,
    LayerKind.NOISE: _noise,
    LayerKind.GRADIENT: _gradient,
    LayerKind.WOOD_GRAIN: _wood_grain,
    LayerKind.WEAVE: _weave,
    LayerKind.STRIPES: _stripes,
    LayerKind.DOTS: _dots,
}


def pattern_function(
    kind: Union[LayerKind, str], layer_index: int, params: LayerParams
) -> Optional[PatternFunction]:
    """
    Generate the GLSL function for one compiled layer slot.

    Uniforms come from the layer's parameters: colors become `vec3`,
    `direction` becomes a `float` via the fixed direction coding and every
    other parameter becomes a `float`. Returns None for kinds the catalog
    does not know.
    """
    schema = schema_for(kind)
    if schema is None or not isinstance(params, PatternParams):
        return None

    generator = _GENERATORS.get(schema.kind)
    if generator is None:
        return None

    values = params.to_mapping()
    uniforms = tuple(
        UniformDecl(
            name=layer_uniform(layer_index, p.name),
            kind=UniformKind.VEC3 if p.type is ParamType.COLOR else UniformKind.FLOAT,
            value=p.uniform_value(values[p.name]),
            param=p.name,
        )
        for p in schema.params
    )

    def u(param: str) -> str:
        return layer_uniform(layer_index, param)

    name = function_name(schema.kind, layer_index)
    return PatternFunction(
        name=name,
        source=generator(name, u),
        uniforms=uniforms,
        uses_noise=schema.uses_noise,
        uses_face_uv=schema.uses_face_uv,
    )
