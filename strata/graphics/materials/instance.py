# strata/graphics/materials/instance.py
from __future__ import annotations

import logging
import time
from dataclasses import replace
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from strata.graphics.errors import CompileTargetUnavailable, Diagnostic, DiagnosticKind
from strata.graphics.light import LightSnapshot
from strata.graphics.lighting import sync_lighting
from strata.graphics.materials.catalog import (
    LayerKind,
    PatternParams,
    coerce_param,
    validate_params,
)
from strata.graphics.materials.layers import (
    BASE_PROPERTIES,
    BaseSurface,
    BlendMode,
    LayerSpec,
    MaterialSpec,
    coerce_base,
    create_layer,
    parse_blend,
)
from strata.graphics.materials.presets import MaterialDefinition, get_preset
from strata.graphics.materials.serialization import spec_from_dict, spec_to_dict
from strata.graphics.shaders.backend import ProgramBackend
from strata.graphics.shaders.composer import ShaderComposer
from strata.graphics.shaders.program_types import (
    Artifact,
    CompiledProgram,
)
from strata.types import Color3

logger = logging.getLogger(__name__)

_instance_counter = 0


def _next_instance_id() -> str:
    global _instance_counter
    _instance_counter += 1
    # Millisecond stamp keeps ids distinct across processes
    return f"mat_{int(time.time() * 1000)}_{_instance_counter}"


class DirtyState(IntEnum):
    """Ordered so that the more expensive state wins under max()."""

    CLEAN = 0
    NEEDS_UNIFORM_REFRESH = 1
    NEEDS_RECOMPILE = 2


class MaterialInstance:
    """
    A configured material: base surface, pattern layers and one artifact.

    Edits only mark the instance dirty. The render path calls
    `ensure_compiled()` before drawing, which either rewrites uniform values
    in place or recompiles:

      - base values, layer params, layer opacity -> uniform refresh
      - add/remove/move/enable/disable, kind, blend -> recompile

    Callers must serialise access per instance.
    """

    def __init__(
        self,
        spec: Optional[MaterialSpec] = None,
        *,
        name: str = "Custom Material",
        category: str = "custom",
        definition_id: Optional[str] = None,
        composer: Optional[ShaderComposer] = None,
        backend: Optional[ProgramBackend] = None,
    ) -> None:
        self.instance_id = _next_instance_id()
        self.name = name
        self.category = category
        self.definition_id = definition_id

        self._spec = spec.copy() if spec is not None else MaterialSpec()
        self._composer = composer or ShaderComposer()
        self._backend = backend

        self._artifact: Optional[Artifact] = None
        self._state = DirtyState.NEEDS_RECOMPILE
        self._modified = False
        self._disposed = False
        self._compile_error: Optional[CompileTargetUnavailable] = None
        self._diagnostics: List[Diagnostic] = []

    @classmethod
    def from_preset(cls, preset_id: str, **kwargs: Any) -> MaterialInstance:
        definition = get_preset(preset_id)
        return cls(
            definition.spec,
            name=definition.name,
            category=definition.category,
            definition_id=definition.id,
            **kwargs,
        )

    @property
    def spec(self) -> MaterialSpec:
        """A copy of the current MaterialSpec; edit through the instance methods."""
        return self._spec.copy()

    @property
    def base(self) -> BaseSurface:
        return self._spec.base

    @property
    def layers(self) -> Tuple[LayerSpec, ...]:
        return tuple(self._spec.layers)

    @property
    def dirty_state(self) -> DirtyState:
        return self._state

    @property
    def artifact(self) -> Optional[Artifact]:
        """The live artifact, possibly stale. Use ensure_compiled() to draw."""
        return self._artifact

    @property
    def modified(self) -> bool:
        return self._modified

    @property
    def compile_error(self) -> Optional[CompileTargetUnavailable]:
        """Set when the backend rejected the last generated program."""
        return self._compile_error

    @property
    def has_layers(self) -> bool:
        return any(layer.enabled for layer in self._spec.layers)

    @property
    def preview_color(self) -> Color3:
        return self._spec.base.color

    def take_diagnostics(self) -> List[Diagnostic]:
        """Return and clear diagnostics collected from edits and compiles."""
        out, self._diagnostics = self._diagnostics, []
        return out

    def mark_dirty(self, *, recompile: bool = True) -> None:
        self._raise(
            DirtyState.NEEDS_RECOMPILE if recompile else DirtyState.NEEDS_UNIFORM_REFRESH
        )

    def _raise(self, state: DirtyState) -> None:
        self._modified = True
        self._state = max(self._state, state)

    def _validation(self, message: str, layer_index: Optional[int] = None) -> None:
        logger.debug("%s: %s", self.name, message)
        self._diagnostics.append(
            Diagnostic(DiagnosticKind.VALIDATION, message, layer_index=layer_index)
        )

    def get_base_property(self, key: str) -> Any:
        """Value of a base property, or None for names that are not one."""
        if key not in BASE_PROPERTIES:
            return None
        return getattr(self._spec.base, key)

    def set_base_property(self, key: str, value: Any) -> None:
        self.set_base(**{key: value})

    def set_base(self, **values: Any) -> None:
        """
        Update several base properties at once.

        Values are clamped or replaced by their default on the way in;
        unknown names are ignored. Each fix is recorded as a diagnostic.
        """
        accepted: Dict[str, Any] = {}
        for key, raw in values.items():
            name, value, changed = coerce_base(key, raw)
            if name is None:
                self._validation(f"unknown base property {key!r} ignored")
                continue
            if changed:
                self._validation(f"base.{name}: {raw!r} -> {value!r}")
            accepted[name] = value

        new_base = replace(self._spec.base, **accepted)
        if new_base == self._spec.base:
            return
        self._spec.base = new_base
        self._raise(DirtyState.NEEDS_UNIFORM_REFRESH)

    def set_color(self, color: Any) -> None:
        self.set_base(color=color)

    def set_roughness(self, value: float) -> None:
        self.set_base(roughness=value)

    def set_metalness(self, value: float) -> None:
        self.set_base(metalness=value)

    def set_clearcoat(self, value: float) -> None:
        self.set_base(clearcoat=value)

    def set_emissive(self, color: Any, intensity: Optional[float] = None) -> None:
        if intensity is None:
            self.set_base(emissive_color=color)
        else:
            self.set_base(emissive_color=color, emissive_intensity=intensity)

    def set_opacity(self, value: float) -> None:
        self.set_base(opacity=value)

    def _layer(self, index: int) -> Optional[LayerSpec]:
        """The layer at `index`, or None (with a diagnostic) when out of range."""
        if isinstance(index, int) and 0 <= index < len(self._spec.layers):
            return self._spec.layers[index]
        self._validation(
            f"layer index {index!r} out of range ({len(self._spec.layers)} layers)"
        )
        return None

    def _replace_layer(self, index: int, layer: LayerSpec, state: DirtyState) -> None:
        if layer == self._spec.layers[index]:
            return
        self._spec.layers[index] = layer
        self._raise(state)

    def get_layer(self, index: int) -> Optional[LayerSpec]:
        if isinstance(index, int) and 0 <= index < len(self._spec.layers):
            return self._spec.layers[index]
        return None

    def add_layer(
        self,
        kind: Union[LayerKind, str],
        params: Optional[Mapping[str, Any]] = None,
        *,
        blend: Union[BlendMode, str] = BlendMode.MULTIPLY,
        opacity: float = 1.0,
        enabled: bool = True,
    ) -> int:
        """Append a layer (catalog defaults + `params`). Returns its index."""
        _, fixes = validate_params(kind, params)
        index = len(self._spec.layers)
        for fix in fixes:
            self._validation(fix, layer_index=index)
        layer = create_layer(kind, params, blend=blend, opacity=opacity, enabled=enabled)
        self._spec.layers.append(layer)
        self._raise(DirtyState.NEEDS_RECOMPILE)
        return index

    def insert_layer(self, index: int, layer: LayerSpec) -> None:
        index = max(0, min(index, len(self._spec.layers)))
        self._spec.layers.insert(index, layer)
        self._raise(DirtyState.NEEDS_RECOMPILE)

    def remove_layer(self, index: int) -> Optional[LayerSpec]:
        layer = self._layer(index)
        if layer is None:
            return None
        del self._spec.layers[index]
        self._raise(DirtyState.NEEDS_RECOMPILE)
        return layer

    def move_layer(self, from_index: int, to_index: int) -> None:
        if self._layer(from_index) is None or self._layer(to_index) is None:
            return
        if from_index == to_index:
            return
        layer = self._spec.layers.pop(from_index)
        self._spec.layers.insert(to_index, layer)
        self._raise(DirtyState.NEEDS_RECOMPILE)

    def set_layer_enabled(self, index: int, enabled: bool) -> None:
        layer = self._layer(index)
        if layer is None:
            return
        self._replace_layer(
            index, replace(layer, enabled=bool(enabled)), DirtyState.NEEDS_RECOMPILE
        )

    def enable_layer(self, index: int) -> None:
        self.set_layer_enabled(index, True)

    def disable_layer(self, index: int) -> None:
        self.set_layer_enabled(index, False)

    def set_layer_kind(self, index: int, kind: Union[LayerKind, str]) -> None:
        """Change a layer's pattern; parameters reset to the new kind's defaults."""
        layer = self._layer(index)
        if layer is None:
            return
        new_layer = replace(layer, kind=kind, params=None)
        if new_layer.kind == layer.kind:
            return
        self._replace_layer(index, new_layer, DirtyState.NEEDS_RECOMPILE)

    def set_layer_blend(self, index: int, blend: Union[BlendMode, str]) -> None:
        layer = self._layer(index)
        if layer is None:
            return
        self._replace_layer(
            index, replace(layer, blend=parse_blend(blend)), DirtyState.NEEDS_RECOMPILE
        )

    def set_layer_opacity(self, index: int, opacity: float) -> None:
        layer = self._layer(index)
        if layer is None:
            return
        new_layer = replace(layer, opacity=opacity)
        if new_layer.opacity != opacity:
            self._validation(
                f"layer opacity {opacity!r} -> {new_layer.opacity!r}", layer_index=index
            )
        self._replace_layer(index, new_layer, DirtyState.NEEDS_UNIFORM_REFRESH)

    def set_layer_param(self, index: int, key: str, value: Any) -> None:
        """
        Set one pattern parameter.

        Out-of-range values are clamped, bad enum options and malformed
        colors fall back to the schema default, unknown keys are ignored.
        """
        layer = self._layer(index)
        if layer is None:
            return
        if not isinstance(layer.params, PatternParams):
            # Unknown kind: keep the raw value, it is never compiled
            values = layer.params.to_mapping()
            values[key] = value
            self._replace_layer(
                index, replace(layer, params=values), DirtyState.NEEDS_UNIFORM_REFRESH
            )
            return

        name, coerced, changed = coerce_param(layer.kind, key, value)
        if name is None:
            self._validation(
                f"{layer.kind_name}: unknown parameter {key!r} ignored", layer_index=index
            )
            return
        if changed:
            self._validation(
                f"{layer.kind_name}.{name}: {value!r} -> {coerced!r}", layer_index=index
            )
        new_params = replace(layer.params, **{name: coerced})
        self._replace_layer(
            index, replace(layer, params=new_params), DirtyState.NEEDS_UNIFORM_REFRESH
        )

    def set_layer_params(self, index: int, params: Mapping[str, Any]) -> None:
        """Replace all parameters of a layer; missing keys take defaults."""
        layer = self._layer(index)
        if layer is None:
            return
        record, fixes = validate_params(layer.kind, params)
        for fix in fixes:
            self._validation(fix, layer_index=index)
        self._replace_layer(
            index, replace(layer, params=record), DirtyState.NEEDS_UNIFORM_REFRESH
        )

    def ensure_compiled(self) -> Artifact:
        """
        Return the live artifact, compiling or refreshing it first if dirty.
        """
        if self._disposed:
            raise RuntimeError(f"Material '{self.name}' has been disposed")

        if self._artifact is None or self._state is DirtyState.NEEDS_RECOMPILE:
            self._compile()
        elif self._state is DirtyState.NEEDS_UNIFORM_REFRESH:
            if not self._composer.refresh(self._artifact, self._spec.base, self._spec.layers):
                logger.debug("%s: layout changed under refresh, recompiling", self.name)
                self._compile()
        if self._state is not DirtyState.CLEAN:
            self._upload()

        self._state = DirtyState.CLEAN
        assert self._artifact is not None
        return self._artifact

    def recompile(self) -> Artifact:
        self.mark_dirty()
        return self.ensure_compiled()

    def _compile(self) -> None:
        label = f"{self.name} ({self.instance_id})"
        artifact = self._composer.compose(self._spec.base, self._spec.layers, label=label)
        self._diagnostics.extend(artifact.diagnostics)
        self._compile_error = None

        if isinstance(artifact, CompiledProgram) and self._backend is not None:
            try:
                artifact.handle = self._backend.compile(artifact.stages, label=label)
            except CompileTargetUnavailable as e:
                logger.error("%s: backend rejected program, using base surface: %s", label, e)
                self._compile_error = e
                artifact = self._composer.compose_fixed_function(
                    self._spec.base,
                    compile_error=str(e),
                    diagnostics=artifact.diagnostics,
                )

        previous = self._artifact
        self._artifact = artifact
        self._release(previous)

    def _upload(self) -> None:
        artifact = self._artifact
        if self._backend is None or not isinstance(artifact, CompiledProgram):
            return
        if artifact.handle is not None:
            self._backend.upload(artifact)

    def _release(self, artifact: Optional[Artifact]) -> None:
        if not isinstance(artifact, CompiledProgram) or artifact.handle is None:
            return
        if self._backend is not None:
            self._backend.release(artifact.handle)
        artifact.handle = None

    def sync_lighting(self, snapshot: LightSnapshot) -> None:
        """Update lighting uniforms on the current artifact, never compiling."""
        sync_lighting(
            self._artifact, snapshot, defaults=self._composer.settings.lighting
        )
        self._upload()

    def dispose(self) -> None:
        self._release(self._artifact)
        self._artifact = None
        self._disposed = True

    def clone(self) -> MaterialInstance:
        cloned = MaterialInstance(
            self._spec,
            name=f"{self.name} (Copy)",
            category=self.category,
            definition_id=self.definition_id,
            composer=self._composer,
            backend=self._backend,
        )
        return cloned

    def serialize(self) -> Dict[str, Any]:
        data = spec_to_dict(self._spec)
        data.update(
            {
                "instance_id": self.instance_id,
                "definition_id": self.definition_id,
                "name": self.name,
                "category": self.category,
                "modified": self._modified,
            }
        )
        return data

    @classmethod
    def deserialize(cls, data: Any, **kwargs: Any) -> MaterialInstance:
        """
        Rebuild an instance from `serialize()` output.

        Malformed data never raises; bad fields fall back to their defaults.
        Both snake_case and camelCase id keys are read.
        """
        if not isinstance(data, Mapping):
            logger.warning("Expected a mapping for a material, got %s", type(data).__name__)
            data = {}
        definition_id = data.get("definition_id", data.get("definitionId"))
        instance = cls(
            spec_from_dict(data),
            name=str(data.get("name") or "Custom Material"),
            category=str(data.get("category") or "custom"),
            definition_id=str(definition_id) if definition_id else None,
            **kwargs,
        )
        instance_id = data.get("instance_id", data.get("instanceId"))
        if instance_id:
            instance.instance_id = str(instance_id)
        instance._modified = data.get("modified") is True
        return instance

    def matches_definition(self, definition: Union[MaterialDefinition, MaterialSpec]) -> bool:
        spec = definition.spec if isinstance(definition, MaterialDefinition) else definition
        return self._spec.base == spec.base and self._spec.layers == list(spec.layers)

    def reset_to_definition(self, definition: MaterialDefinition) -> None:
        self._spec = definition.spec.copy()
        self.definition_id = definition.id
        self._state = DirtyState.NEEDS_RECOMPILE
        self._modified = False
