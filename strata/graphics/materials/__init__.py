# strata/graphics/materials/__init__.py
# MaterialInstance lives in strata.graphics.materials.instance; it depends on
# the shader composer, which itself imports this package.
from strata.graphics.materials.catalog import (
    LayerKind,
    ParamDef,
    ParamType,
    PatternSchema,
    default_params,
    schema_for,
    validate_params,
)
from strata.graphics.materials.layers import (
    BaseSurface,
    BlendMode,
    LayerSpec,
    MaterialSpec,
    create_layer,
)
from strata.graphics.materials.presets import (
    MaterialCategory,
    MaterialDefinition,
    all_categories,
    get_preset,
    presets_by_category,
)
from strata.graphics.materials.serialization import spec_from_dict, spec_to_dict

__all__ = [
    "LayerKind",
    "ParamType",
    "ParamDef",
    "PatternSchema",
    "default_params",
    "schema_for",
    "validate_params",
    "BaseSurface",
    "BlendMode",
    "LayerSpec",
    "MaterialSpec",
    "create_layer",
    "MaterialCategory",
    "MaterialDefinition",
    "get_preset",
    "presets_by_category",
    "all_categories",
    "spec_to_dict",
    "spec_from_dict",
]
