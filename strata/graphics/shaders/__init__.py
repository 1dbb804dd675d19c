# strata/graphics/shaders/__init__.py
from strata.graphics.shaders.program_types import (
    CompiledLayer,
    CompiledProgram,
    FixedFunctionProgram,
    ProgramHandle,
    ShaderStages,
    Uniform,
    UniformGroup,
    UniformKind,
)

__all__ = [
    "CompiledProgram",
    "CompiledLayer",
    "FixedFunctionProgram",
    "ProgramHandle",
    "ShaderStages",
    "Uniform",
    "UniformGroup",
    "UniformKind",
]
