"""
Validation functions for attrs fields of binary records.
"""

from typing import Any

from attrs import define
from attr.validators import in_

__all__ = ["in_", "range_"]


@define(repr=False, hash=True)
class _RangeValidator:
    minimum: Any
    maximum: Any

    def __call__(self, inst: Any, attr: Any, value: Any) -> None:
        try:
            ok = self.minimum <= value <= self.maximum
        except TypeError:
            ok = False

        if not ok:
            raise ValueError(
                "'%s' must be in range [%r, %r]: %r"
                % (attr.name, self.minimum, self.maximum, value)
            )

    def __repr__(self) -> str:
        return "<range_ validator with [%r, %r]>" % (self.minimum, self.maximum)


def range_(minimum: Any, maximum: Any) -> _RangeValidator:
    """
    A validator that raises a :exc:`ValueError` if the initializer is called
    with a value outside of the closed range ``[minimum, maximum]``.
    """
    return _RangeValidator(minimum, maximum)
