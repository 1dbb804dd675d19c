import logging
import re

import pytest

from strata.graphics.errors import CompileTargetUnavailable, DiagnosticKind
from strata.graphics.light import AmbientLight, LightSnapshot
from strata.graphics.materials.catalog import LayerKind, default_params
from strata.graphics.materials.instance import DirtyState, MaterialInstance
from strata.graphics.materials.layers import BaseSurface, BlendMode, MaterialSpec, create_layer
from strata.graphics.materials.presets import get_preset
from strata.graphics.shaders.program_types import CompiledProgram, FixedFunctionProgram
from strata.types import parse_color


@pytest.fixture
def instance(base, brick_layer):
    return MaterialInstance(MaterialSpec(base=base, layers=[brick_layer]), name="Wall")


def test_new_instance_needs_compile(instance):
    assert instance.dirty_state is DirtyState.NEEDS_RECOMPILE
    assert instance.artifact is None

    artifact = instance.ensure_compiled()
    assert isinstance(artifact, CompiledProgram)
    assert instance.dirty_state is DirtyState.CLEAN
    assert instance.ensure_compiled() is artifact


def test_zero_layers_gives_fixed_function(base):
    """The fixed-function block mirrors the base surface exactly."""
    inst = MaterialInstance(MaterialSpec(base=base))
    artifact = inst.ensure_compiled()

    assert isinstance(artifact, FixedFunctionProgram)
    assert artifact.color == base.color
    assert artifact.roughness == base.roughness
    assert artifact.metalness == base.metalness
    assert artifact.clearcoat == base.clearcoat
    assert artifact.opacity == base.opacity
    assert artifact.compile_error is None


def test_roughness_edit_only_refreshes_uniforms(instance):
    program = instance.ensure_compiled()
    source = program.fragment_source

    instance.set_roughness(0.2)
    assert instance.dirty_state is DirtyState.NEEDS_UNIFORM_REFRESH

    refreshed = instance.ensure_compiled()
    assert instance.dirty_state is DirtyState.CLEAN
    assert refreshed is program
    assert refreshed.fragment_source == source
    assert refreshed.get("u_roughness") == 0.2


def test_fixed_function_refreshed_in_place(base):
    inst = MaterialInstance(MaterialSpec(base=base))
    artifact = inst.ensure_compiled()

    inst.set_color("#00ff00")
    inst.set_opacity(0.5)
    assert inst.ensure_compiled() is artifact
    assert artifact.color == (0.0, 1.0, 0.0)
    assert artifact.transparent


def test_added_layer_appears_once(instance):
    instance.ensure_compiled()

    index = instance.add_layer("noise", {"scale": 4}, blend="overlay", opacity=0.5)
    assert index == 1
    assert instance.dirty_state is DirtyState.NEEDS_RECOMPILE

    program = instance.ensure_compiled()
    assert instance.dirty_state is DirtyState.CLEAN
    source = program.fragment_source
    assert source.count("vec3 noise_pattern_1(") == 1
    assert source.count("noise_pattern_1(v_local_position") == 1
    assert program.get("u_layer1_scale") == 4.0


def test_toggling_layers_keeps_indices_contiguous(base):
    inst = MaterialInstance(
        MaterialSpec(
            base=base,
            layers=[create_layer("brick"), create_layer("checker"), create_layer("dots")],
        )
    )
    assert len(inst.ensure_compiled().layers) == 3

    inst.disable_layer(1)
    assert inst.dirty_state is DirtyState.NEEDS_RECOMPILE
    program = inst.ensure_compiled()

    assert [slot.index for slot in program.layers] == [0, 1]
    assert [slot.kind for slot in program.layers] == ["brick", "dots"]
    assert [slot.source_index for slot in program.layers] == [0, 2]
    assert "u_layer1_dot_size" in program
    assert not any(name.startswith("u_layer2_") for name in program.uniform_names())

    inst.enable_layer(1)
    program = inst.ensure_compiled()
    assert [slot.kind for slot in program.layers] == ["brick", "checker", "dots"]


def test_recompile_is_sticky(instance):
    instance.ensure_compiled()
    instance.set_layer_blend(0, "screen")
    instance.set_roughness(0.1)
    assert instance.dirty_state is DirtyState.NEEDS_RECOMPILE


def test_no_op_edit_stays_clean(instance):
    instance.ensure_compiled()
    instance.set_roughness(instance.base.roughness)
    instance.set_layer_blend(0, BlendMode.MULTIPLY)
    instance.set_layer_enabled(0, True)
    assert instance.dirty_state is DirtyState.CLEAN
    assert not instance.modified


def test_layer_param_is_clamped(instance):
    program = instance.ensure_compiled()

    instance.set_layer_param(0, "mortarThickness", 9)
    assert instance.get_layer(0).params.mortar_thickness == 0.15
    assert instance.dirty_state is DirtyState.NEEDS_UNIFORM_REFRESH

    (diag,) = instance.take_diagnostics()
    assert diag.kind is DiagnosticKind.VALIDATION
    assert diag.layer_index == 0

    assert instance.ensure_compiled() is program
    assert program.get("u_layer0_mortar_thickness") == 0.15


def test_unknown_layer_param_is_ignored(instance):
    instance.ensure_compiled()
    instance.set_layer_param(0, "sparkle", 1.0)
    assert instance.dirty_state is DirtyState.CLEAN
    assert instance.take_diagnostics()[0].kind is DiagnosticKind.VALIDATION


def test_set_layer_params_replaces_all(instance):
    instance.set_layer_params(0, {"brick_width": 8})
    params = instance.get_layer(0).params
    assert params.brick_width == 8.0
    assert params.mortar_color == default_params("brick").mortar_color


def test_layer_opacity_refreshes(instance):
    program = instance.ensure_compiled()
    instance.set_layer_opacity(0, 0.25)
    assert instance.dirty_state is DirtyState.NEEDS_UNIFORM_REFRESH
    instance.ensure_compiled()
    assert program.get("u_layer0_opacity") == 0.25


def test_set_layer_kind_resets_params(instance):
    instance.ensure_compiled()
    instance.set_layer_kind(0, "checker")
    layer = instance.get_layer(0)
    assert layer.kind is LayerKind.CHECKER
    assert layer.params == default_params("checker")
    assert instance.dirty_state is DirtyState.NEEDS_RECOMPILE


def test_move_and_remove_layers(instance):
    instance.add_layer("noise")
    instance.add_layer("dots")
    instance.move_layer(2, 0)
    assert [layer.kind_name for layer in instance.layers] == ["dots", "brick", "noise"]

    removed = instance.remove_layer(1)
    assert removed.kind is LayerKind.BRICK
    assert [layer.kind_name for layer in instance.layers] == ["dots", "noise"]


def test_bad_layer_index_is_a_no_op(instance):
    instance.ensure_compiled()
    before = instance.spec

    assert instance.get_layer(5) is None
    assert instance.get_layer(-1) is None
    assert instance.remove_layer(5) is None
    instance.move_layer(0, 3)
    instance.set_layer_param(-1, "offset", 0.2)
    instance.set_layer_params(2, {"offset": 0.2})
    instance.set_layer_enabled(7, False)
    instance.set_layer_kind(1, "dots")
    instance.set_layer_blend(1, "screen")
    instance.set_layer_opacity(1, 0.5)

    assert instance.spec == before
    assert instance.dirty_state is DirtyState.CLEAN
    assert not instance.modified
    diagnostics = instance.take_diagnostics()
    assert len(diagnostics) == 8
    assert all(d.kind is DiagnosticKind.VALIDATION for d in diagnostics)


def test_unknown_base_property_is_ignored(instance):
    instance.ensure_compiled()
    instance.set_base_property("sheen", 1.0)

    assert instance.get_base_property("sheen") is None
    assert instance.dirty_state is DirtyState.CLEAN
    assert instance.take_diagnostics()[0].kind is DiagnosticKind.VALIDATION


def test_malformed_base_values_fall_back(instance):
    instance.ensure_compiled()
    color = instance.base.color

    instance.set_color("red")
    assert instance.base.color == parse_color("#888888")

    instance.set_roughness("rough")
    assert instance.base.roughness == 0.5

    instance.set_metalness(None)
    assert instance.base.metalness == 0.0

    instance.set_opacity(3)
    assert instance.base.opacity == 1.0

    assert instance.base.color != color
    assert instance.dirty_state is DirtyState.NEEDS_UNIFORM_REFRESH
    kinds = [d.kind for d in instance.take_diagnostics()]
    assert kinds == [DiagnosticKind.VALIDATION] * 4


def test_deserialize_malformed_base():
    inst = MaterialInstance.deserialize(
        {"base": {"color": "blue", "roughness": None}, "layers": []}
    )
    assert inst.base == BaseSurface()
    assert not inst.has_layers


def test_deserialize_garbage():
    inst = MaterialInstance.deserialize(["not", "a", "material"])
    assert inst.spec == MaterialSpec()
    assert inst.name == "Custom Material"

    inst = MaterialInstance.deserialize(
        {"base": 7, "layers": [None, {"params": {}}, {"kind": "dots", "params": "big"}]}
    )
    assert inst.base == BaseSurface()
    (layer,) = inst.layers
    assert layer.params == default_params("dots")


def test_base_property_accessors(instance):
    instance.set_base_property("metalness", 0.7)
    assert instance.get_base_property("metalness") == 0.7
    instance.set_base(clearcoat=0.4, emissive_color="#ffffff", emissive_intensity=2)
    assert instance.base.clearcoat == 0.4
    assert instance.base.emissive_intensity == 2.0


def test_unknown_kind_layer_is_skipped(base, caplog):
    inst = MaterialInstance(MaterialSpec(base=base))
    inst.add_layer("marble", {"veins": 3})

    with caplog.at_level(logging.WARNING):
        artifact = inst.ensure_compiled()

    assert isinstance(artifact, FixedFunctionProgram)
    kinds = [d.kind for d in inst.take_diagnostics()]
    assert DiagnosticKind.UNKNOWN_PATTERN_KIND in kinds
    assert "marble" in caplog.text


def test_backend_rejection_falls_back_to_base(instance, rejecting_backend, caplog):
    inst = MaterialInstance(instance.spec, name="Wall", backend=rejecting_backend)

    with caplog.at_level(logging.ERROR, logger="strata.graphics.materials.instance"):
        artifact = inst.ensure_compiled()

    assert isinstance(artifact, FixedFunctionProgram)
    assert artifact.color == inst.base.color
    assert artifact.compile_error
    assert isinstance(inst.compile_error, CompileTargetUnavailable)
    assert inst.dirty_state is DirtyState.CLEAN
    assert "rejected" in caplog.text


def test_recompile_releases_previous_program(instance, backend):
    inst = MaterialInstance(instance.spec, backend=backend)
    first = inst.ensure_compiled()
    handle = first.handle
    assert handle is not None

    inst.add_layer("dots")
    second = inst.ensure_compiled()

    assert second is not first
    assert backend.released == [handle]
    assert handle.program.released
    assert first.handle is None
    assert len(backend.compiled) == 2


def test_dispose(instance, backend):
    inst = MaterialInstance(instance.spec, backend=backend)
    handle = inst.ensure_compiled().handle
    inst.dispose()

    assert inst.artifact is None
    assert handle.program.released
    with pytest.raises(RuntimeError):
        inst.ensure_compiled()


def test_serialize_round_trip(instance):
    instance.add_layer("gradient", {"direction": "horizontal"}, enabled=False)
    instance.set_color("#123456")

    data = instance.serialize()
    restored = MaterialInstance.deserialize(data)

    assert restored.spec == instance.spec
    assert restored.name == "Wall"
    assert restored.instance_id == instance.instance_id
    assert restored.modified
    assert restored.dirty_state is DirtyState.NEEDS_RECOMPILE


def test_clone_is_independent(instance):
    copy = instance.clone()
    copy.set_roughness(0.0)

    assert copy.name == "Wall (Copy)"
    assert copy.instance_id != instance.instance_id
    assert instance.base.roughness == 0.85


def test_presets_and_definitions():
    inst = MaterialInstance.from_preset("oak-wood")
    definition = get_preset("oak-wood")

    assert inst.name == "Oak Wood"
    assert inst.category == "natural"
    assert inst.definition_id == "oak-wood"
    assert inst.has_layers
    assert inst.matches_definition(definition)
    assert not inst.modified

    inst.set_layer_param(0, "grain_scale", 12)
    assert inst.modified
    assert not inst.matches_definition(definition)

    inst.reset_to_definition(definition)
    assert inst.matches_definition(definition)
    assert not inst.modified
    assert inst.dirty_state is DirtyState.NEEDS_RECOMPILE


def test_preview_color(instance):
    assert instance.preview_color == instance.base.color


def test_has_layers_ignores_disabled(base):
    inst = MaterialInstance(MaterialSpec(base=base, layers=[create_layer("brick", enabled=False)]))
    assert not inst.has_layers


def test_instance_lighting_sync(instance):
    program = instance.ensure_compiled()
    instance.sync_lighting(LightSnapshot(lights=[AmbientLight((1.0, 1.0, 1.0), 0.5)]))
    assert program.get("u_ambient_color") == (0.5, 0.5, 0.5)
    assert instance.dirty_state is DirtyState.CLEAN


def test_mark_dirty(instance):
    instance.ensure_compiled()
    instance.mark_dirty(recompile=False)
    assert instance.dirty_state is DirtyState.NEEDS_UNIFORM_REFRESH
    instance.mark_dirty()
    assert instance.dirty_state is DirtyState.NEEDS_RECOMPILE


def test_explicit_recompile_builds_new_program(instance):
    first = instance.ensure_compiled()
    second = instance.recompile()
    assert second is not first
    assert second.fragment_source == first.fragment_source


def test_instance_ids_are_unique_and_stamped(base):
    first = MaterialInstance(MaterialSpec(base=base))
    second = MaterialInstance(MaterialSpec(base=base))

    assert first.instance_id != second.instance_id
    assert re.fullmatch(r"mat_\d+_\d+", first.instance_id)


def test_deserialize_reads_camel_case_ids(instance):
    data = instance.serialize()
    data["instanceId"] = data.pop("instance_id")
    data["definitionId"] = "red-brick"
    del data["definition_id"]

    restored = MaterialInstance.deserialize(data)
    assert restored.instance_id == instance.instance_id
    assert restored.definition_id == "red-brick"


def test_compiles_and_edits_are_uploaded(instance, backend):
    inst = MaterialInstance(instance.spec, backend=backend)
    inst.ensure_compiled()
    assert len(backend.uploads) == 1

    inst.set_roughness(0.3)
    inst.ensure_compiled()
    assert len(backend.uploads) == 2
    assert backend.uploads[-1]["u_roughness"].value == 0.3

    # Clean instances are not re-uploaded
    inst.ensure_compiled()
    assert len(backend.uploads) == 2

    inst.sync_lighting(LightSnapshot(lights=[AmbientLight((1.0, 1.0, 1.0), 0.5)]))
    assert len(backend.uploads) == 3


def test_fallback_program_is_not_uploaded(instance, rejecting_backend):
    inst = MaterialInstance(instance.spec, backend=rejecting_backend)
    inst.ensure_compiled()
    assert rejecting_backend.uploads == []
