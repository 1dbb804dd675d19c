import moderngl
import numpy as np
import pytest

from strata.graphics.errors import CompileTargetUnavailable
from strata.graphics.shaders.backend import ModernGLBackend
from strata.graphics.shaders.program_types import (
    ProgramHandle,
    ShaderStages,
    Uniform,
    UniformGroup,
    UniformKind,
)
from strata.graphics.utils.uniforms import SHADOW_TEXTURE_UNIT, gl_value


class FakeProgram:
    def __init__(self):
        self.released = False

    def release(self):
        self.released = True


class FakeContext:
    """Stands in for moderngl.Context; optionally fails every link."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    def program(self, vertex_shader, fragment_shader):
        self.calls += 1
        if self.fail:
            raise moderngl.Error("0:12(3): error: syntax error, unexpected '}'")
        return FakeProgram()


class FakeTexture:
    def __init__(self):
        self.location = None

    def use(self, location=0):
        self.location = location


STAGES = ShaderStages(vertex="void main() {}", fragment="void main() {}")


def test_compile_returns_handle():
    gl = FakeContext()
    backend = ModernGLBackend(gl)

    handle = backend.compile(STAGES, label="wall")
    assert handle.label == "wall"
    assert isinstance(handle.program, FakeProgram)

    backend.release(handle)
    assert handle.program.released


def test_rejected_source_is_never_resubmitted():
    gl = FakeContext(fail=True)
    backend = ModernGLBackend(gl)

    with pytest.raises(CompileTargetUnavailable) as excinfo:
        backend.compile(STAGES, label="wall")
    assert excinfo.value.label == "wall"
    assert "syntax error" in str(excinfo.value)
    assert backend.was_rejected(STAGES)

    with pytest.raises(CompileTargetUnavailable):
        backend.compile(STAGES, label="wall")
    assert gl.calls == 1


def test_missing_stage():
    backend = ModernGLBackend(FakeContext())
    with pytest.raises(ValueError):
        backend.compile(ShaderStages(vertex="void main() {}"))


def test_gl_value_matrix_is_column_major():
    mat = np.arange(16, dtype="f4").reshape(4, 4)
    data = gl_value(Uniform(UniformKind.MAT4, mat, UniformGroup.TRANSFORM))

    assert len(data) == 64
    assert np.array_equal(np.frombuffer(data, dtype="f4"), mat.T.ravel())


def test_gl_value_vectors_and_scalars():
    assert gl_value(Uniform(UniformKind.VEC3, [1, 2, 3], UniformGroup.BASE)) == (1.0, 2.0, 3.0)
    assert gl_value(Uniform(UniformKind.VEC2, (1024, 512), UniformGroup.SHADOW)) == (1024.0, 512.0)
    assert gl_value(Uniform(UniformKind.FLOAT, 1, UniformGroup.BASE)) == 1.0
    assert gl_value(Uniform(UniformKind.BOOL, 0, UniformGroup.SHADOW)) is False


def test_gl_value_samplers():
    assert gl_value(Uniform(UniformKind.SAMPLER2D, None, UniformGroup.SHADOW)) is None
    assert gl_value(Uniform(UniformKind.SAMPLER2D, 3, UniformGroup.SHADOW)) == 3

    texture = FakeTexture()
    assert gl_value(Uniform(UniformKind.SAMPLER2D, texture, UniformGroup.SHADOW)) == SHADOW_TEXTURE_UNIT
    assert texture.location == SHADOW_TEXTURE_UNIT


class FakeUniform:
    """Records what moderngl.Uniform would receive."""

    def __init__(self):
        self.value = None
        self.written = None

    def write(self, data):
        self.written = data


class FakeGLProgram:
    """Stands in for moderngl.Program; every lookup is recorded."""

    def __init__(self, names):
        self.members = {name: FakeUniform() for name in names}
        self.looked_up = []

    def __contains__(self, name):
        return name in self.members

    def __getitem__(self, name):
        self.looked_up.append(name)
        return self.members[name]


@pytest.fixture
def uploaded(monkeypatch, composer, base, brick_layer):
    """A composed program whose handle wraps a FakeGLProgram."""
    monkeypatch.setattr(moderngl, "Uniform", FakeUniform)
    program = composer.compose(base, [brick_layer])
    # Drop one table entry from the GL side, as a driver does for unused uniforms
    gl_program = FakeGLProgram(n for n in program.uniform_names() if n != "u_layer0_offset")
    program.handle = ProgramHandle(program=gl_program, label="wall")
    return program, gl_program


def test_upload_writes_matrices_column_major(uploaded):
    program, gl_program = uploaded
    mat = np.arange(16, dtype="f4").reshape(4, 4)
    program.set("u_shadow_matrix", mat)

    ModernGLBackend(FakeContext()).upload(program)

    written = gl_program.members["u_shadow_matrix"].written
    assert np.array_equal(np.frombuffer(written, dtype="f4"), mat.T.ravel())
    assert gl_program.members["u_roughness"].value == program.get("u_roughness")
    assert gl_program.members["u_layer0_mortar_color"].value == tuple(program.get("u_layer0_mortar_color"))


def test_upload_skips_unbound_sampler_and_missing_names(uploaded):
    program, gl_program = uploaded

    ModernGLBackend(FakeContext()).upload(program)

    assert "u_shadow_map" not in gl_program.looked_up
    assert gl_program.members["u_shadow_map"].value is None
    assert "u_layer0_offset" not in gl_program.looked_up


def test_upload_binds_shadow_texture(uploaded):
    program, gl_program = uploaded
    texture = FakeTexture()
    program.set("u_shadow_map", texture)

    ModernGLBackend(FakeContext()).upload(program)

    assert texture.location == SHADOW_TEXTURE_UNIT
    assert gl_program.members["u_shadow_map"].value == SHADOW_TEXTURE_UNIT


def test_upload_without_handle_is_a_no_op(composer, base, brick_layer):
    program = composer.compose(base, [brick_layer])
    ModernGLBackend(FakeContext()).upload(program)
    assert program.handle is None
