"""Base classes for projection pipeline steps."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

In = TypeVar("In")
Out = TypeVar("Out")


class StepValidationError(Exception):
    """Raised when a step's output fails validation."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class Step(ABC, Generic[In, Out]):
    """Base class for a typed pipeline step.

    Each step transforms an input of type In to an output of type Out.
    Steps run synchronously, one after the other, within a single projection run.
    """

    name: str = "step"

    @abstractmethod
    def run(self, input: In) -> Out:
        """Execute the step and return the result."""
        ...

    def _validate_output(self, output: Out) -> None:
        """Validate the step output. Raises StepValidationError on failure.

        Override in subclasses to add validation logic. Default is no-op.
        """
        pass


class MechanicalStep(Step[In, Out]):
    """A deterministic step. Fails fast on validation errors."""

    @abstractmethod
    def _execute(self, input: In) -> Out:
        """Implement the transformation."""
        ...

    def run(self, input: In) -> Out:
        output = self._execute(input)
        self._validate_output(output)
        return output
