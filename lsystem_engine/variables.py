"""Tagged variable values carried by parametrized symbols.

A ``Var`` is one of three variants: ``BoolVar``, ``RealVar`` or ``IntVar``.
Values of the same variant can be ordered and (for the numeric variants)
combined arithmetically. Mixing variants is a ``VarTypeError``; there is no
implicit promotion from int to real.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from .errors import VarTypeError


@dataclass(frozen=True)
class Var:
    tag: ClassVar[str] = "var"

    value: Any

    def __str__(self) -> str:
        return str(self.value)

    # -------------------------
    # Accessors
    # -------------------------

    def bool_val(self) -> bool:
        raise VarTypeError(f"{self.tag} variable has no boolean value")

    def real_val(self) -> float:
        raise VarTypeError(f"{self.tag} variable has no real value")

    def int_val(self) -> int:
        raise VarTypeError(f"{self.tag} variable has no integer value")

    # -------------------------
    # Ordering
    # -------------------------

    def _check_same_tag(self, other: object, op: str) -> Var:
        if not isinstance(other, Var):
            raise VarTypeError(
                f"cannot apply {op!r} to {self.tag} and {type(other).__name__}"
            )
        if other.tag != self.tag:
            raise VarTypeError(f"cannot apply {op!r} to {self.tag} and {other.tag}")
        return other

    def compare_to(self, other: Var) -> int:
        """Return -1, 0 or 1; both variables must carry the same tag."""
        other = self._check_same_tag(other, "compare")
        if self.value < other.value:
            return -1
        if self.value > other.value:
            return 1
        return 0

    def greater_than(self, other: Var) -> bool:
        return self.compare_to(other) > 0

    def greater_than_or_equal(self, other: Var) -> bool:
        return self.compare_to(other) >= 0

    def less_than(self, other: Var) -> bool:
        return self.compare_to(other) < 0

    def less_than_or_equal(self, other: Var) -> bool:
        return self.compare_to(other) <= 0

    def __lt__(self, other: Var) -> bool:
        return self.less_than(other)

    def __le__(self, other: Var) -> bool:
        return self.less_than_or_equal(other)

    def __gt__(self, other: Var) -> bool:
        return self.greater_than(other)

    def __ge__(self, other: Var) -> bool:
        return self.greater_than_or_equal(other)


@dataclass(frozen=True)
class BoolVar(Var):
    tag: ClassVar[str] = "bool"

    value: bool

    def bool_val(self) -> bool:
        return self.value

    def __and__(self, other: Var) -> BoolVar:
        return BoolVar(self.value and self._check_same_tag(other, "&").value)

    def __or__(self, other: Var) -> BoolVar:
        return BoolVar(self.value or self._check_same_tag(other, "|").value)

    def __xor__(self, other: Var) -> BoolVar:
        return BoolVar(self.value != self._check_same_tag(other, "^").value)

    def __invert__(self) -> BoolVar:
        return BoolVar(not self.value)


class _NumericVar(Var):
    def real_val(self) -> float:
        return float(self.value)

    def int_val(self) -> int:
        return int(self.value)

    def _combine(self, other: Any, op: str, fn: Any) -> Var:
        other = self._check_same_tag(other, op)
        return type(self)(fn(self.value, other.value))

    def __add__(self, other: Var) -> Var:
        return self._combine(other, "+", lambda a, b: a + b)

    def __sub__(self, other: Var) -> Var:
        return self._combine(other, "-", lambda a, b: a - b)

    def __mul__(self, other: Var) -> Var:
        return self._combine(other, "*", lambda a, b: a * b)

    def __floordiv__(self, other: Var) -> Var:
        return self._combine(other, "//", lambda a, b: a // b)

    def __mod__(self, other: Var) -> Var:
        return self._combine(other, "%", lambda a, b: a % b)

    def __neg__(self) -> Var:
        return type(self)(-self.value)


@dataclass(frozen=True)
class RealVar(_NumericVar):
    tag: ClassVar[str] = "real"

    value: float

    def __truediv__(self, other: Var) -> Var:
        return self._combine(other, "/", lambda a, b: a / b)


@dataclass(frozen=True)
class IntVar(_NumericVar):
    tag: ClassVar[str] = "int"

    value: int

    def __truediv__(self, other: Var) -> Var:
        raise VarTypeError("'/' is not defined for int variables; use '//'")


def wrap(value: Any) -> Var:
    """Wrap a plain Python value into the matching variant.

    ``bool`` is checked before ``int`` since it is a subclass of it.
    """
    if isinstance(value, Var):
        return value
    if isinstance(value, bool):
        return BoolVar(value)
    if isinstance(value, int):
        return IntVar(value)
    if isinstance(value, float):
        return RealVar(value)
    raise VarTypeError(f"cannot wrap {type(value).__name__} value {value!r}")
