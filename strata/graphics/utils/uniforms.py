# strata/graphics/utils/uniforms.py
from typing import Any

import moderngl
import numpy as np

from strata.graphics.shaders.program_types import Uniform, UniformKind

# Texture unit reserved for the shadow depth map
SHADOW_TEXTURE_UNIT = 7


def pack_mat4(mat: np.ndarray) -> bytes:
    """
    Packs a 4x4 numpy matrix (casts to float32).

    numpy is row-major; pass `mat.T` for a column-major GLSL mat4.
    """
    if mat.shape != (4, 4):
        raise ValueError("Matrix must be 4x4")
    return np.ascontiguousarray(mat, dtype="f4").tobytes()


def gl_value(uniform: Uniform) -> Any:
    """
    Convert a uniform table entry to what `moderngl.Uniform` accepts.

    Matrices are written as column-major bytes. Returns None for samplers
    with nothing bound.
    """
    kind = uniform.kind
    value = uniform.value

    if kind is UniformKind.MAT4:
        return pack_mat4(np.asarray(value, dtype="f4").T)
    if kind is UniformKind.VEC3:
        x, y, z = value
        return (float(x), float(y), float(z))
    if kind is UniformKind.VEC2:
        x, y = value
        return (float(x), float(y))
    if kind is UniformKind.BOOL:
        return bool(value)
    if kind is UniformKind.SAMPLER2D:
        if value is None:
            return None
        if isinstance(value, int):
            return value
        # Texture-like objects are bound to the reserved unit
        value.use(location=SHADOW_TEXTURE_UNIT)
        return SHADOW_TEXTURE_UNIT
    return float(value)


def set_uniform(program: moderngl.Program | None, name: str, value: Any) -> None:
    if not program:
        return

    if name not in program:
        return

    member = program[name]

    if isinstance(member, moderngl.Uniform):
        if isinstance(value, bytes):
            member.write(value)
        else:
            member.value = value
