from dataclasses import dataclass

import pytest

from strata.graphics.errors import CompileTargetUnavailable
from strata.graphics.materials.layers import BaseSurface, LayerSpec
from strata.graphics.shaders.composer import ShaderComposer
from strata.graphics.shaders.program_types import ProgramHandle


@dataclass
class FakeProgram:
    label: str
    released: bool = False

    def release(self):
        self.released = True


class RecordingBackend:
    """Backend double that records compiles and can be told to reject."""

    def __init__(self, reject=False):
        self.reject = reject
        self.compiled = []
        self.released = []
        self.uploads = []

    def compile(self, stages, *, label=""):
        if self.reject:
            raise CompileTargetUnavailable("0:1(1): error: syntax error", label=label)
        self.compiled.append(stages)
        return ProgramHandle(program=FakeProgram(label), label=label)

    def upload(self, program):
        self.uploads.append(dict(program.uniforms))

    def release(self, handle):
        handle.program.release()
        self.released.append(handle)


@pytest.fixture
def composer():
    """Returns a composer with default settings."""
    return ShaderComposer()


@pytest.fixture
def base():
    return BaseSurface(color="#b74a3a", roughness=0.85)


@pytest.fixture
def brick_layer():
    return LayerSpec("brick", {"mortar_color": "#888888", "brick_width": 4})


@pytest.fixture
def noise_layer():
    return LayerSpec("noise", {"scale": 3, "octaves": 2}, blend="overlay", opacity=0.3)


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def rejecting_backend():
    return RecordingBackend(reject=True)
