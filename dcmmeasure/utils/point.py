import math
from typing import Any, List, Union

Number = Union[int, float]


class MeasurementPoint:
    """A point in image pixel space. Coordinates are always stored as floats."""

    __slots__ = ("_x", "_y")

    _x: float
    _y: float

    def __init__(self, x: Number, y: Number):
        self._x = float(x)
        self._y = float(y)

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    def distance_to(self, other: "MeasurementPoint") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return math.sqrt(dx * dx + dy * dy)

    def scale(self, factor: Number) -> "MeasurementPoint":
        return MeasurementPoint(self.x * factor, self.y * factor)

    def translate(self, dx: Number, dy: Number) -> "MeasurementPoint":
        return MeasurementPoint(self.x + dx, self.y + dy)

    def __sub__(self, other: "MeasurementPoint") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, MeasurementPoint):
            return False
        return self.x == other.x and self.y == other.y

    def __repr__(self) -> str:
        return f"{self.x},{self.y}"

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __getitem__(self, idx: int) -> float:
        if idx == 0:
            return self.x
        elif idx == 1:
            return self.y
        else:
            raise IndexError

    def __json_serializable__(self) -> List[float]:
        return [self.x, self.y]


class Vector:
    __slots__ = ("x", "y")

    def __init__(self, x: float, y: float):
        self.x = x
        self.y = y

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y)

    def dot(self, other: "Vector") -> float:
        return self.x * other.x + self.y * other.y

    def __repr__(self) -> str:
        return f"Vector<{self.x},{self.y}>"
