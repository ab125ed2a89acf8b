"""Parameter vectors with shared per-element metadata."""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from random import Random
from typing import Any

MAXIMUM_INTEGER_VALUE = float(2**53)
"""Largest magnitude an integer-typed element may hold and still be exact."""


@dataclass(frozen=True, slots=True)
class Interval:
    """Inclusive numeric bound for a vector element."""

    minimum: float = 0.0
    maximum: float = 1.0

    def __post_init__(self) -> None:
        try:
            minimum = float(self.minimum)
            maximum = float(self.maximum)
        except (TypeError, ValueError) as error:
            msg = f"Interval bounds must be numeric, got {self.minimum!r}, {self.maximum!r}"
            raise ValueError(msg) from error
        if math.isnan(minimum) or math.isnan(maximum):
            msg = "Interval bounds must not be NaN."
            raise ValueError(msg)
        if minimum > maximum:
            msg = f"Interval minimum {minimum} exceeds maximum {maximum}."
            raise ValueError(msg)
        object.__setattr__(self, "minimum", minimum)
        object.__setattr__(self, "maximum", maximum)

    @property
    def range(self) -> float:
        return self.maximum - self.minimum

    def clamp(self, value: float) -> float:
        """Return ``value`` limited to the interval."""
        if value < self.minimum:
            return self.minimum
        if value > self.maximum:
            return self.maximum
        return value

    def translate_to_unit(self, value: float) -> float:
        """Map a value in the interval onto [0, 1]."""
        span = self.range
        if span == 0.0 or math.isinf(span):
            return 0.0
        return (value - self.minimum) / span

    def translate_from_unit(self, unit: float) -> float:
        """Map a value in [0, 1] back onto the interval."""
        return self.minimum + unit * self.range

    def random(self, rng: Random) -> float:
        """Sample uniformly within the interval."""
        return rng.uniform(self.minimum, self.maximum)


@dataclass(frozen=True, slots=True)
class VectorElement:
    """Label, bound and integer flag for one element of a vector."""

    label: str
    bound: Interval = field(default_factory=Interval)
    is_integer: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.label, str) or not self.label.strip():
            msg = "Vector element label must be a non-empty string."
            raise ValueError(msg)
        object.__setattr__(self, "label", self.label.strip())
        object.__setattr__(self, "is_integer", bool(self.is_integer))


@dataclass(frozen=True, slots=True)
class VectorMetadata:
    """Immutable description of each element of a family of vectors.

    A single metadata instance is usually shared by every vector created for
    the same kind of gene or allele, so equality is structural.
    """

    elements: tuple[VectorElement, ...] = ()
    _index: dict[str, int] = field(
        init=False,
        default_factory=dict,
        repr=False,
        compare=False,
    )

    def __post_init__(self) -> None:
        elements = tuple(self.elements)
        index: dict[str, int] = {}
        for position, element in enumerate(elements):
            if element.label in index:
                msg = f"Duplicate vector element label: {element.label!r}"
                raise ValueError(msg)
            index[element.label] = position
        object.__setattr__(self, "elements", elements)
        object.__setattr__(self, "_index", index)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> VectorMetadata:
        """Build metadata from ``label -> {"min", "max", "int"}`` entries.

        An optional ``"_defaults"`` entry supplies fallback values for any key
        an element omits; otherwise 0, 1 and ``False`` are used.
        """
        if not mapping:
            return cls()
        if not isinstance(mapping, Mapping):
            msg = f"Vector metadata must be a mapping, got {type(mapping).__name__}"
            raise ValueError(msg)
        defaults = mapping.get("_defaults") or {}
        if not isinstance(defaults, Mapping):
            msg = "'_defaults' must be a mapping."
            raise ValueError(msg)
        default_min = defaults.get("min", 0.0)
        default_max = defaults.get("max", 1.0)
        default_int = bool(defaults.get("int", False))

        elements: list[VectorElement] = []
        for label, spec in mapping.items():
            if label == "_defaults":
                continue
            spec = spec or {}
            if not isinstance(spec, Mapping):
                msg = f"Settings for element {label!r} must be a mapping."
                raise ValueError(msg)
            elements.append(
                VectorElement(
                    label=str(label),
                    bound=Interval(
                        spec.get("min", default_min),
                        spec.get("max", default_max),
                    ),
                    is_integer=bool(spec.get("int", default_int)),
                )
            )
        return cls(tuple(elements))

    @property
    def size(self) -> int:
        return len(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(element.label for element in self.elements)

    def label(self, index: int) -> str:
        return self.elements[index].label

    def bound(self, index: int) -> Interval:
        return self.elements[index].bound

    def is_integer(self, index: int) -> bool:
        return self.elements[index].is_integer

    def has_label(self, label: str) -> bool:
        return label in self._index

    def index_of(self, label: str) -> int:
        """Return the position of ``label``, raising ``KeyError`` if unknown."""
        try:
            return self._index[label]
        except KeyError as error:
            msg = f"Unknown vector element label: {label!r}"
            raise KeyError(msg) from error


EMPTY_METADATA = VectorMetadata()
VectorMetadata.EMPTY = EMPTY_METADATA


class Vector:
    """Fixed-length array of floats described by a shared ``VectorMetadata``.

    Every write clamps the value to the element bound; integer-typed elements
    are rounded half-up and must stay within ``MAXIMUM_INTEGER_VALUE``.
    Immutable vectors (owned by genes) reject writes with ``TypeError``.
    """

    __slots__ = ("metadata", "mutable", "_values")

    def __init__(
        self,
        metadata: VectorMetadata,
        values: Iterable[float] | None = None,
        *,
        mutable: bool = True,
    ) -> None:
        self.metadata = metadata
        self.mutable = mutable
        self._values = [0.0] * metadata.size
        source = [0.0] * metadata.size if values is None else list(values)
        if len(source) != metadata.size:
            msg = (
                f"Vector metadata describes {metadata.size} elements "
                f"but {len(source)} values were given."
            )
            raise ValueError(msg)
        for index, value in enumerate(source):
            self._store(index, value)

    @classmethod
    def random(
        cls,
        metadata: VectorMetadata,
        rng: Random,
        *,
        mutable: bool = False,
    ) -> Vector:
        """Create a vector with values sampled uniformly within each bound."""
        values = [metadata.bound(index).random(rng) for index in range(metadata.size)]
        return cls(metadata, values, mutable=mutable)

    @classmethod
    def zeros(cls, metadata: VectorMetadata) -> Vector:
        """Create a mutable vector with every element at zero, clamped to its bound."""
        return cls(metadata)

    @staticmethod
    def average(vectors: Sequence[Vector]) -> Vector:
        """Return a mutable vector holding the element-wise mean of ``vectors``."""
        if not vectors:
            msg = "Cannot average an empty collection of vectors."
            raise ValueError(msg)
        metadata = vectors[0].metadata
        totals = [0.0] * metadata.size
        for vector in vectors:
            if vector.metadata != metadata:
                msg = "Cannot average vectors with different metadata."
                raise ValueError(msg)
            for index, value in enumerate(vector._values):
                totals[index] += value
        count = len(vectors)
        return Vector(metadata, [total / count for total in totals])

    def _store(self, index: int, value: float) -> None:
        try:
            value = float(value)
        except (TypeError, ValueError) as error:
            msg = f"Vector values must be numeric, got {value!r}"
            raise ValueError(msg) from error
        if math.isnan(value):
            msg = f"Vector element {self.metadata.label(index)!r} cannot be NaN."
            raise ValueError(msg)
        value = self.metadata.bound(index).clamp(value)
        if self.metadata.is_integer(index):
            if abs(value) > MAXIMUM_INTEGER_VALUE:
                msg = (
                    f"Element {self.metadata.label(index)!r} holds integers; "
                    f"{value} exceeds the largest exact magnitude 2^53."
                )
                raise ValueError(msg)
            value = float(math.floor(value + 0.5))
        self._values[index] = value

    def _ensure_mutable(self) -> None:
        if not self.mutable:
            msg = "The values of this Vector may not be modified."
            raise TypeError(msg)

    def set(self, index: int, value: float) -> None:
        """Set one element, clamping and rounding as the metadata requires."""
        self._ensure_mutable()
        self._store(index, value)

    def set_values(self, values: Vector | Sequence[float]) -> None:
        """Copy all values from another vector or a sequence of floats."""
        self._ensure_mutable()
        if isinstance(values, Vector):
            if values.metadata == self.metadata:
                self._values[:] = values._values
                return
            values = values._values
        if len(values) != len(self._values):
            msg = "Source and destination must have the same number of elements."
            raise ValueError(msg)
        for index, value in enumerate(values):
            self._store(index, value)

    def copy(self, *, mutable: bool | None = None) -> Vector:
        """Return an independent copy sharing the same metadata."""
        clone = Vector.__new__(Vector)
        clone.metadata = self.metadata
        clone.mutable = self.mutable if mutable is None else mutable
        clone._values = list(self._values)
        return clone

    @property
    def values(self) -> tuple[float, ...]:
        return tuple(self._values)

    def get(self, label: str) -> float:
        """Return the value of the element labelled ``label``."""
        return self._values[self.metadata.index_of(label)]

    def as_dict(self) -> dict[str, float]:
        return dict(zip(self.metadata.labels, self._values))

    def difference(self, other: Vector, normalise: bool = False) -> float:
        """Sum of absolute element differences, optionally on unit-scaled values."""
        if len(other) != len(self):
            msg = "Cannot compare vectors of different lengths."
            raise ValueError(msg)
        total = 0.0
        for index, (left, right) in enumerate(zip(self._values, other._values)):
            if normalise:
                bound = self.metadata.bound(index)
                left = bound.translate_to_unit(left)
                right = bound.translate_to_unit(right)
            total += abs(left - right)
        return total

    def __getitem__(self, index: int) -> float:
        return self._values[index]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.metadata == other.metadata and self._values == other._values

    def __hash__(self) -> int:
        return hash(tuple(self._values))

    def __repr__(self) -> str:
        items = ", ".join(f"{label}={value!r}" for label, value in self.as_dict().items())
        flag = "" if self.mutable else ", immutable"
        return f"Vector({items}{flag})"


__all__ = [
    "EMPTY_METADATA",
    "Interval",
    "MAXIMUM_INTEGER_VALUE",
    "Vector",
    "VectorElement",
    "VectorMetadata",
]
