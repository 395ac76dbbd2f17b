"""Number Lab: a multiplication grid and a fraction explorer.

Nothing here is scored or persisted. The models own the slider ranges and
derived values; the pygame screen only draws them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

MIN_FACTOR = 1
MAX_FACTOR = 12
MIN_DENOMINATOR = 1
MAX_DENOMINATOR = 20


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, int(value)))


@dataclass(frozen=True, slots=True)
class MultiplicationGrid:
    rows: int = 4
    cols: int = 3

    def __post_init__(self) -> None:
        for name in ("rows", "cols"):
            value = getattr(self, name)
            if not MIN_FACTOR <= value <= MAX_FACTOR:
                raise ValueError(f"{name} must be in {MIN_FACTOR}..{MAX_FACTOR}, got {value}")

    @property
    def product(self) -> int:
        return self.rows * self.cols

    @property
    def equation(self) -> str:
        return f"{self.rows} × {self.cols} = {self.product}"

    def with_rows(self, rows: int) -> MultiplicationGrid:
        return replace(self, rows=_clamp(rows, MIN_FACTOR, MAX_FACTOR))

    def with_cols(self, cols: int) -> MultiplicationGrid:
        return replace(self, cols=_clamp(cols, MIN_FACTOR, MAX_FACTOR))


@dataclass(frozen=True, slots=True)
class FractionModel:
    numerator: int = 1
    denominator: int = 2

    def __post_init__(self) -> None:
        if not MIN_DENOMINATOR <= self.denominator <= MAX_DENOMINATOR:
            raise ValueError(f"denominator must be in {MIN_DENOMINATOR}..{MAX_DENOMINATOR}")
        if not 0 <= self.numerator <= self.denominator:
            raise ValueError("numerator must be in 0..denominator")

    @property
    def part(self) -> int:
        return self.numerator

    @property
    def rest(self) -> int:
        return self.denominator - self.numerator

    @property
    def decimal(self) -> str:
        """Value to two places, halves rounded up (1/8 -> "0.13")."""

        value = Decimal(self.numerator) / Decimal(self.denominator)
        return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

    def with_numerator(self, numerator: int) -> FractionModel:
        return replace(self, numerator=_clamp(numerator, 0, self.denominator))

    def with_denominator(self, denominator: int) -> FractionModel:
        # Shrinking the whole drags the part down with it.
        d = _clamp(denominator, MIN_DENOMINATOR, MAX_DENOMINATOR)
        return FractionModel(numerator=min(self.numerator, d), denominator=d)


class LabTool(str, Enum):
    MULTIPLICATION = "multiplication"
    FRACTIONS = "fractions"


class NumberLab:
    """Two tools, each with two sliders; one slider is selected at a time."""

    def __init__(self) -> None:
        self.tool = LabTool.MULTIPLICATION
        self.grid = MultiplicationGrid()
        self.fraction = FractionModel()
        self._slider = 0

    @property
    def slider(self) -> int:
        return self._slider

    def sliders(self) -> list[tuple[str, int]]:
        if self.tool is LabTool.MULTIPLICATION:
            return [("Rows", self.grid.rows), ("Cols", self.grid.cols)]
        return [("Numerator", self.fraction.numerator), ("Denominator", self.fraction.denominator)]

    def switch_tool(self) -> None:
        self.tool = LabTool.FRACTIONS if self.tool is LabTool.MULTIPLICATION else LabTool.MULTIPLICATION
        self._slider = 0

    def select(self, delta: int) -> None:
        self._slider = (self._slider + delta) % 2

    def adjust(self, delta: int) -> None:
        if self.tool is LabTool.MULTIPLICATION:
            if self._slider == 0:
                self.grid = self.grid.with_rows(self.grid.rows + delta)
            else:
                self.grid = self.grid.with_cols(self.grid.cols + delta)
        elif self._slider == 0:
            self.fraction = self.fraction.with_numerator(self.fraction.numerator + delta)
        else:
            self.fraction = self.fraction.with_denominator(self.fraction.denominator + delta)
