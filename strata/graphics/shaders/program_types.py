# strata/graphics/shaders/program_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, TypeAlias, Union

from strata.graphics.errors import Diagnostic
from strata.types import Color3


@dataclass(frozen=True, slots=True)
class ShaderStages:
    """
    All stages for a single GPU program.

    Generated material programs only ever fill vertex and fragment.
    """

    vertex: Optional[str] = None
    fragment: Optional[str] = None


@dataclass(frozen=True)
class ProgramHandle:
    """
    Wraps a program compiled by a backend.

    `program` is whatever the backend produced (a `moderngl.Program` for the
    ModernGL backend).
    """

    program: Any
    label: str


class UniformKind(str, Enum):
    """GLSL type of a uniform."""

    FLOAT = "float"
    VEC2 = "vec2"
    VEC3 = "vec3"
    MAT4 = "mat4"
    BOOL = "bool"
    SAMPLER2D = "sampler2D"


class UniformGroup(str, Enum):
    """Which subsystem owns writes to a uniform."""

    BASE = "base"
    LIGHTING = "lighting"
    SHADOW = "shadow"
    TRANSFORM = "transform"
    LAYER = "layer"


@dataclass(slots=True)
class Uniform:
    kind: UniformKind
    value: Any
    group: UniformGroup

    def declaration(self, name: str) -> str:
        return f"uniform {self.kind.value} {name};"


@dataclass(frozen=True, slots=True)
class CompiledLayer:
    """
    One layer as it was laid out in a compiled program.

    `index` is the slot in the compiled program (contiguous from 0),
    `source_index` the layer's position in the material's layer list.
    """

    index: int
    source_index: int
    kind: str
    blend: str
    function_name: str
    param_uniforms: Tuple[Tuple[str, str], ...]
    opacity_uniform: str


@dataclass(slots=True)
class CompiledProgram:
    """
    Generated program source plus its uniform table.

    Uniform names are only meaningful for the lifetime of this object; a
    recompile produces a new table.
    """

    is_fixed_function: ClassVar[bool] = False

    label: str
    vertex_source: str
    fragment_source: str
    uniforms: Dict[str, Uniform]
    layers: Tuple[CompiledLayer, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    handle: Optional[ProgramHandle] = None

    @property
    def stages(self) -> ShaderStages:
        return ShaderStages(vertex=self.vertex_source, fragment=self.fragment_source)

    def __contains__(self, name: str) -> bool:
        return name in self.uniforms

    def get(self, name: str) -> Any:
        return self.uniforms[name].value

    def set(self, name: str, value: Any) -> None:
        try:
            self.uniforms[name].value = value
        except KeyError:
            raise KeyError(f"Uniform '{name}' not in program '{self.label}'") from None

    def uniform_names(self) -> frozenset[str]:
        return frozenset(self.uniforms)

    def names_in_group(self, group: UniformGroup) -> Tuple[str, ...]:
        return tuple(n for n, u in self.uniforms.items() if u.group is group)

    @property
    def transparent(self) -> bool:
        opacity = self.uniforms.get("u_opacity")
        return opacity is not None and float(opacity.value) < 1.0


@dataclass(slots=True)
class FixedFunctionProgram:
    """
    Parameter block for materials rendered without generated source.

    Used when no layer is enabled, and as the fallback when a backend
    rejects generated source (`compile_error` is set in that case).
    """

    is_fixed_function: ClassVar[bool] = True

    color: Color3
    roughness: float
    metalness: float
    clearcoat: float
    emissive_color: Color3 = (0.0, 0.0, 0.0)
    emissive_intensity: float = 0.0
    opacity: float = 1.0
    compile_error: Optional[str] = None
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def transparent(self) -> bool:
        return self.opacity < 1.0

    @property
    def handle(self) -> None:
        return None


Artifact: TypeAlias = Union[CompiledProgram, FixedFunctionProgram]
