# strata/graphics/shaders/backend.py
from __future__ import annotations

import hashlib
import logging
from typing import Protocol, Set

import moderngl

from strata.graphics.errors import CompileTargetUnavailable
from strata.graphics.shaders.program_types import (
    CompiledProgram,
    ProgramHandle,
    ShaderStages,
)
from strata.graphics.utils.uniforms import gl_value, set_uniform

logger = logging.getLogger(__name__)


def _source_key(stages: ShaderStages) -> str:
    digest = hashlib.sha1()
    digest.update((stages.vertex or "").encode("utf-8"))
    digest.update(b"\0")
    digest.update((stages.fragment or "").encode("utf-8"))
    return digest.hexdigest()


class ProgramBackend(Protocol):
    """Turns generated source into a usable program handle."""

    def compile(self, stages: ShaderStages, *, label: str = "") -> ProgramHandle:
        """Compile/link or raise CompileTargetUnavailable."""
        ...

    def upload(self, program: CompiledProgram) -> None:
        """Write the program's uniform table to its handle."""
        ...

    def release(self, handle: ProgramHandle) -> None: ...


class ModernGLBackend:
    """
    Compiles material programs on a moderngl context.

    Responsibilities:
      - compile/link generated source
      - map driver errors to CompileTargetUnavailable
      - remember rejected source so it is never resubmitted
      - upload uniform tables before a draw
    """

    def __init__(self, gl: moderngl.Context) -> None:
        self._gl = gl
        self._rejected: Set[str] = set()

    def compile(self, stages: ShaderStages, *, label: str = "") -> ProgramHandle:
        if stages.vertex is None or stages.fragment is None:
            raise ValueError(f"Program {label!r} is missing vertex or fragment stage.")

        key = _source_key(stages)
        if key in self._rejected:
            raise CompileTargetUnavailable(
                f"Program {label!r} was already rejected by the backend", label=label
            )

        try:
            program = self._gl.program(
                vertex_shader=stages.vertex,
                fragment_shader=stages.fragment,
            )
        except moderngl.Error as e:
            self._rejected.add(key)
            raise CompileTargetUnavailable(str(e), label=label) from e

        logger.debug("Compiled program %s", label)
        return ProgramHandle(program=program, label=label)

    def was_rejected(self, stages: ShaderStages) -> bool:
        return _source_key(stages) in self._rejected

    def upload(self, program: CompiledProgram) -> None:
        if program.handle is None:
            return
        gl_program = program.handle.program
        for name, uniform in program.uniforms.items():
            value = gl_value(uniform)
            if value is None:
                continue
            set_uniform(gl_program, name, value)

    def release(self, handle: ProgramHandle) -> None:
        handle.program.release()
