"""Pipeline steps for the projection engine."""

from __future__ import annotations

from graphproj.commands.project.steps.base import (
    Step as Step,
    StepValidationError as StepValidationError,
)

__all__ = [
    "Step",
    "StepValidationError",
]
