import pytest

from strata.graphics.materials.catalog import (
    DIRECTION_CODES,
    MAX_NOISE_OCTAVES,
    PATTERN_SCHEMAS,
    BrickParams,
    LayerKind,
    UnknownParams,
    coerce_param,
    default_params,
    params_from_mapping,
    params_to_mapping,
    parse_kind,
    schema_for,
    validate_params,
)
from strata.graphics.materials.patterns import layer_uniform, pattern_function
from strata.graphics.shaders.program_types import UniformKind
from strata.types import parse_color


def test_every_kind_has_a_schema():
    assert set(PATTERN_SCHEMAS) == set(LayerKind)
    for kind, schema in PATTERN_SCHEMAS.items():
        assert schema.kind is kind
        assert isinstance(default_params(kind), schema.record)


def test_parse_kind_accepts_camel_case():
    assert parse_kind("woodGrain") is LayerKind.WOOD_GRAIN
    assert parse_kind("wood_grain") is LayerKind.WOOD_GRAIN
    assert parse_kind(LayerKind.DOTS) is LayerKind.DOTS


def test_parse_kind_keeps_unknown_names():
    assert parse_kind("marble") == "marble"
    assert schema_for("marble") is None
    assert default_params("marble") == UnknownParams()


def test_brick_defaults():
    params = default_params(LayerKind.BRICK)
    assert params == BrickParams(
        mortar_color=parse_color("#666666"),
        mortar_thickness=0.03,
        brick_width=4.0,
        brick_height=2.0,
        offset=0.5,
    )


def test_validate_clamps_out_of_range_values():
    record, fixes = validate_params("brick", {"mortar_thickness": 5, "offset": -1})
    assert record.mortar_thickness == 0.15
    assert record.offset == 0.0
    assert len(fixes) == 2


def test_validate_accepts_camel_case_keys():
    record, fixes = validate_params("brick", {"mortarColor": "#000000", "brickWidth": 6})
    assert record.mortar_color == (0.0, 0.0, 0.0)
    assert record.brick_width == 6.0
    assert fixes == []


def test_validate_drops_unknown_keys():
    record, fixes = validate_params("checker", {"color2": "#ff0000", "sparkle": 3})
    assert record.color2 == (1.0, 0.0, 0.0)
    assert not hasattr(record, "sparkle")
    assert any("sparkle" in fix for fix in fixes)


def test_bad_color_falls_back_to_default():
    record, fixes = validate_params("dots", {"color2": "not-a-color"})
    assert record.color2 == parse_color("#ffffff")
    assert fixes


def test_bad_enum_option_falls_back_to_default():
    record, fixes = validate_params("gradient", {"direction": "sideways"})
    assert record.direction == "vertical"
    assert fixes


def test_numeric_direction_code_maps_to_option():
    record, _ = validate_params("stripes", {"direction": 2})
    assert record.direction == "diagonal"


def test_noise_octaves_bounded():
    record, _ = validate_params("noise", {"octaves": 10})
    assert record.octaves == float(MAX_NOISE_OCTAVES)

    record, _ = validate_params("noise", {"octaves": 0})
    assert record.octaves == 1.0


def test_nan_is_replaced_by_default():
    record, fixes = validate_params("weave", {"thread_width": float("nan")})
    assert record.thread_width == 0.5
    assert fixes


def test_coerce_param_reports_canonical_name():
    assert coerce_param("brick", "mortarThickness", 0.05) == ("mortar_thickness", 0.05, False)
    name, value, changed = coerce_param("brick", "sparkle", 1)
    assert name is None
    assert changed


def test_pattern_function_uniforms():
    """Colors become vec3 uniforms, everything else a float."""
    params = default_params("brick")
    func = pattern_function("brick", 0, params)

    kinds = {decl.name: decl.kind for decl in func.uniforms}
    assert kinds == {
        "u_layer0_mortar_color": UniformKind.VEC3,
        "u_layer0_mortar_thickness": UniformKind.FLOAT,
        "u_layer0_brick_width": UniformKind.FLOAT,
        "u_layer0_brick_height": UniformKind.FLOAT,
        "u_layer0_offset": UniformKind.FLOAT,
    }
    assert func.name == "brick_pattern_0"
    assert "vec3 brick_pattern_0(vec3 local_pos, vec3 local_normal, vec3 base_color)" in func.source
    assert func.uses_face_uv
    assert not func.uses_noise


def test_direction_uses_fixed_coding():
    for option, code in DIRECTION_CODES.items():
        record, _ = validate_params("gradient", {"direction": option})
        func = pattern_function("gradient", 3, record)
        values = {decl.name: decl.value for decl in func.uniforms}
        assert values[layer_uniform(3, "direction")] == float(code)


def test_stripe_direction_selects_axis():
    """Vertical direction steps along the face y axis, horizontal along x."""
    func = pattern_function("stripes", 0, default_params("stripes"))
    lines = [line.strip() for line in func.source.splitlines()]

    vertical = lines.index("if (direction < 0.5) {")
    horizontal = lines.index("} else if (direction < 1.5) {")
    assert lines[vertical + 1] == "axis = coord.y;"
    assert lines[horizontal + 1] == "axis = coord.x;"
    assert DIRECTION_CODES["vertical"] == 0
    assert DIRECTION_CODES["horizontal"] == 1


def test_noise_kinds_request_noise_functions():
    func = pattern_function("wood_grain", 1, default_params("wood_grain"))
    assert func.uses_noise
    assert not func.uses_face_uv


def test_unknown_kind_generates_nothing():
    assert pattern_function("marble", 0, UnknownParams({"x": 1})) is None


def test_mapping_conversion():
    record = params_from_mapping("checker", {"color2": [0.0, 0.0, 1.0], "scale": 2})
    assert params_to_mapping(record) == {"color2": [0.0, 0.0, 1.0], "scale": 2.0}
    assert params_from_mapping("checker", params_to_mapping(record)) == record
