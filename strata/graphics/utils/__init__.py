# strata/graphics/utils/__init__.py
from strata.graphics.utils.uniforms import gl_value, pack_mat4, set_uniform

__all__ = [
    "gl_value",
    "pack_mat4",
    "set_uniform",
]
