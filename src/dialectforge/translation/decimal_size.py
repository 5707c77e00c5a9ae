"""
Decimal Size - digits before/after the decimal point for fixed-point types.

A DecimalSize only ever widens: ``increase_to`` takes the max against the
current value and ``combine`` builds a new size wide enough for both inputs.
A field that is None means "no constraint observed yet".
"""

from typing import Optional


class DecimalSize:
    """
    Precision/scale of a fixed-point number expressed as digit counts.

    Usage:
        size = DecimalSize(3, 0)
        size.increase_to(1, 4)
        size.precision  # 7
        size.scale      # 4
    """

    def __init__(self, before: Optional[int] = None, after: Optional[int] = None):
        self.before = max(0, before) if before is not None else None
        self.after = max(0, after) if after is not None else None

    @property
    def precision(self) -> int:
        """Total number of digits."""
        return (self.before or 0) + (self.after or 0)

    @property
    def scale(self) -> int:
        """Number of digits after the decimal point."""
        return self.after or 0

    @property
    def is_empty(self) -> bool:
        return self.precision == 0

    def increase_to(self, before: Optional[int], after: Optional[int] = None) -> "DecimalSize":
        """
        Widen in place so that the size admits ``before``/``after`` digits.

        None fields adopt the new value outright. Returns self so calls chain.
        """
        if before is not None:
            before = max(0, before)
            self.before = before if self.before is None else max(self.before, before)

        if after is not None:
            after = max(0, after)
            self.after = after if self.after is None else max(self.after, after)

        return self

    @staticmethod
    def combine(first: Optional["DecimalSize"], second: Optional["DecimalSize"]) -> Optional["DecimalSize"]:
        """Return a new size whose before/after are the max of both inputs."""
        if first is None:
            return second.copy() if second is not None else None
        if second is None:
            return first.copy()

        combined = DecimalSize(first.before, first.after)
        combined.increase_to(second.before, second.after)
        return combined

    def to_string_length(self) -> int:
        """Characters needed to render the widest value (including the point)."""
        length = (self.before or 0) + (self.after or 0)
        return length + 1 if self.scale != 0 else length

    def copy(self) -> "DecimalSize":
        return DecimalSize(self.before, self.after)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DecimalSize):
            return NotImplemented
        return (self.before or 0) == (other.before or 0) and (self.after or 0) == (other.after or 0)

    def __hash__(self) -> int:
        return hash((self.before or 0, self.after or 0))

    def __repr__(self) -> str:
        return f"DecimalSize(before={self.before}, after={self.after})"
