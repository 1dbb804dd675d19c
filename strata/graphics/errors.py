# strata/graphics/errors.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DiagnosticKind(str, Enum):
    """Recoverable problems found while editing or composing a material."""

    VALIDATION = "validation"
    UNKNOWN_PATTERN_KIND = "unknown_pattern_kind"
    UNKNOWN_BLEND_MODE = "unknown_blend_mode"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """
    A non-fatal problem surfaced to the caller.

    `layer_index` is the position in the material's layer list, not the
    compiled slot index.
    """

    kind: DiagnosticKind
    message: str
    layer_index: Optional[int] = None


class CompileTargetUnavailable(RuntimeError):
    """The rendering backend rejected the generated program."""

    def __init__(self, message: str, *, label: str = "") -> None:
        super().__init__(message)
        self.label = label
