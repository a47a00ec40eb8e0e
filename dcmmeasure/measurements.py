import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import numpy as np  # type: ignore

from .errors import DeserializationError, InvariantViolation
from .results import MeasurementResult
from .utils import MeasurementPoint

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]
PointLike = Union[MeasurementPoint, Tuple[float, float], Sequence[float]]

DEFAULT_HIT_RADIUS = 20.0
DEGREE_SIGN = "°"
SQUARED = "²"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_point(p: PointLike) -> MeasurementPoint:
    if isinstance(p, MeasurementPoint):
        return p
    x, y = p
    return MeasurementPoint(x, y)


class MeasurementKind(Enum):
    DISTANCE = "distance"
    ANGLE = "angle"
    CIRCLE = "circle"
    AREA = "area"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def required_points(self) -> int:
        """Number of points needed for this kind. For areas this is the minimum."""
        if self is MeasurementKind.ANGLE or self is MeasurementKind.AREA:
            return 3
        return 2

    @property
    def fixed_arity(self) -> bool:
        return self is not MeasurementKind.AREA

    def accepts(self, count: int) -> bool:
        if self.fixed_arity:
            return count == self.required_points
        return count >= self.required_points

    def is_complete(self, count: int) -> bool:
        return count >= self.required_points


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


_UNSET: Any = _Unset()


def linear_spacing_factor(pixel_spacing: Sequence[float]) -> float:
    """Physical length of one pixel step for a linear measurement.

    Only the first spacing entry is used. If the row and column spacings differ, a
    non axis-aligned length cannot be represented by one factor; this is logged.
    """
    row = float(pixel_spacing[0])
    if len(pixel_spacing) > 1 and not math.isclose(row, float(pixel_spacing[1])):
        log.warning(
            f"Anisotropic pixel spacing {list(pixel_spacing)}, scaling linear measurement by {row}."
        )
    return row


def area_spacing_factor(pixel_spacing: Sequence[float]) -> float:
    row = float(pixel_spacing[0])
    col = float(pixel_spacing[1]) if len(pixel_spacing) > 1 else row
    return row * col


def polygon_area(points: Sequence[MeasurementPoint]) -> float:
    """Area of the implicitly closed polygon, using the shoelace formula."""
    xs = np.array([p.x for p in points], dtype=float)
    ys = np.array([p.y for p in points], dtype=float)
    twice_area = np.dot(xs, np.roll(ys, -1)) - np.dot(np.roll(xs, -1), ys)
    return 0.5 * abs(float(twice_area))


def polygon_perimeter(points: Sequence[MeasurementPoint]) -> float:
    return sum(points[i].distance_to(points[(i + 1) % len(points)]) for i in range(len(points)))


class DicomMeasurement:
    """A single measurement annotation on an image slice.

    Measurements are immutable values. Every edit (moving a point, selecting) returns a
    new measurement, which the owner puts back into its MeasurementManager by id.

    The meaning of each point depends on the kind:

    - distance: start, end
    - angle: vertex, first arm, second arm
    - circle: center, a point on the edge
    - area: polygon vertices in order, at least three
    """

    __id: str
    __kind: MeasurementKind
    __points: Tuple[MeasurementPoint, ...]
    __label: str
    __created_at: datetime
    __is_selected: bool
    __selected_point_index: Optional[int]
    __metadata: Dict[str, Any]

    def __init__(
        self,
        id: str,
        kind: MeasurementKind,
        points: Sequence[PointLike],
        label: Optional[str] = None,
        created_at: Optional[datetime] = None,
        *,
        clock: Clock = utc_now,
        is_selected: bool = False,
        selected_point_index: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if not isinstance(kind, MeasurementKind):
            raise InvariantViolation(f"Unknown measurement kind {kind!r}.")
        self.__id = id
        self.__kind = kind
        self.__points = tuple(as_point(p) for p in points)
        self.__label = label if label is not None else kind.display_name
        self.__created_at = created_at if created_at is not None else clock()
        self.__is_selected = bool(is_selected)
        self.__selected_point_index = selected_point_index
        self.__metadata = dict(metadata or {})
        self.__check_invariants()

    def __check_invariants(self) -> None:
        count = len(self.__points)
        if not self.__kind.accepts(count):
            if self.__kind.fixed_arity:
                expected = f"exactly {self.__kind.required_points}"
            else:
                expected = f"at least {self.__kind.required_points}"
            raise InvariantViolation(
                f"{self.__kind.display_name} measurement '{self.__id}' requires {expected} points, got {count}."
            )
        index = self.__selected_point_index
        if index is not None and not 0 <= index < count:
            raise InvariantViolation(
                f"Selected point index {index} out of range for measurement '{self.__id}'."
            )

    # Factories, one per kind.

    @classmethod
    def distance(
        cls, id: str, start: PointLike, end: PointLike, label: Optional[str] = None, **kwargs: Any
    ) -> "DicomMeasurement":
        return cls(id, MeasurementKind.DISTANCE, [start, end], label, **kwargs)

    @classmethod
    def angle(
        cls,
        id: str,
        vertex: PointLike,
        arm1: PointLike,
        arm2: PointLike,
        label: Optional[str] = None,
        **kwargs: Any,
    ) -> "DicomMeasurement":
        return cls(id, MeasurementKind.ANGLE, [vertex, arm1, arm2], label, **kwargs)

    @classmethod
    def circle(
        cls, id: str, center: PointLike, edge: PointLike, label: Optional[str] = None, **kwargs: Any
    ) -> "DicomMeasurement":
        return cls(id, MeasurementKind.CIRCLE, [center, edge], label, **kwargs)

    @classmethod
    def area(
        cls, id: str, points: Sequence[PointLike], label: Optional[str] = None, **kwargs: Any
    ) -> "DicomMeasurement":
        return cls(id, MeasurementKind.AREA, points, label, **kwargs)

    @property
    def id(self) -> str:
        return self.__id

    @property
    def kind(self) -> MeasurementKind:
        return self.__kind

    @property
    def points(self) -> Tuple[MeasurementPoint, ...]:
        return self.__points

    @property
    def label(self) -> str:
        return self.__label

    @property
    def created_at(self) -> datetime:
        return self.__created_at

    @property
    def is_selected(self) -> bool:
        return self.__is_selected

    @property
    def selected_point_index(self) -> Optional[int]:
        return self.__selected_point_index

    @property
    def metadata(self) -> Dict[str, Any]:
        return dict(self.__metadata)

    def copy_with(
        self,
        *,
        id: Optional[str] = None,
        kind: Optional[MeasurementKind] = None,
        points: Optional[Sequence[PointLike]] = None,
        label: Optional[str] = None,
        created_at: Optional[datetime] = None,
        is_selected: Optional[bool] = None,
        selected_point_index: Optional[int] = _UNSET,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> "DicomMeasurement":
        """Return a copy with the given fields replaced.

        `selected_point_index` may be passed as None to clear it; leaving it out keeps the
        current value.
        """
        return DicomMeasurement(
            id if id is not None else self.__id,
            kind if kind is not None else self.__kind,
            points if points is not None else self.__points,
            label if label is not None else self.__label,
            created_at if created_at is not None else self.__created_at,
            is_selected=is_selected if is_selected is not None else self.__is_selected,
            selected_point_index=(
                self.__selected_point_index
                if selected_point_index is _UNSET
                else selected_point_index
            ),
            metadata=metadata if metadata is not None else self.__metadata,
        )

    def update_point(self, index: int, new_point: PointLike) -> "DicomMeasurement":
        if not 0 <= index < len(self.__points):
            raise InvariantViolation(
                f"Point index {index} out of range for {self.__kind.value} measurement '{self.__id}'."
            )
        points = list(self.__points)
        points[index] = as_point(new_point)
        return self.copy_with(points=points)

    def with_point(self, point: PointLike) -> "DicomMeasurement":
        """Append a vertex to an area measurement."""
        if self.__kind is not MeasurementKind.AREA:
            raise InvariantViolation(
                f"Cannot add points to {self.__kind.value} measurement '{self.__id}'."
            )
        return self.copy_with(points=self.__points + (as_point(point),))

    def select(self, point_index: Optional[int] = None) -> "DicomMeasurement":
        return self.copy_with(is_selected=True, selected_point_index=point_index)

    def deselect(self) -> "DicomMeasurement":
        return self.copy_with(is_selected=False, selected_point_index=None)

    def get_hit_point_index(
        self, position: PointLike, hit_radius: float = DEFAULT_HIT_RADIUS
    ) -> Optional[int]:
        """Index of the first point within `hit_radius` of `position`, if any."""
        position = as_point(position)
        for i, point in enumerate(self.__points):
            if point.distance_to(position) <= hit_radius:
                return i
        return None

    def calculate_value(
        self, pixel_spacing: Optional[Sequence[float]] = None, units: str = "mm"
    ) -> MeasurementResult:
        """Compute the value of this measurement.

        Args:
            pixel_spacing (Sequence[float], optional):
                Physical size of a pixel, row spacing first. An empty sequence counts as
                uncalibrated. Defaults to None.
            units (str, optional): Label of the spacing's unit. Defaults to "mm".

        Raises:
            InvariantViolation: The point count does not fit the kind.

        Returns:
            MeasurementResult: The computed result.
        """
        self.__check_invariants()
        spacing = list(pixel_spacing) if pixel_spacing else None
        kind = self.__kind
        if kind is MeasurementKind.DISTANCE:
            return self.__calculate_distance(spacing, units)
        elif kind is MeasurementKind.ANGLE:
            return self.__calculate_angle(spacing)
        elif kind is MeasurementKind.CIRCLE:
            return self.__calculate_circle(spacing, units)
        elif kind is MeasurementKind.AREA:
            return self.__calculate_area(spacing, units)
        raise AssertionError(f"Unhandled measurement kind {kind}")

    def __calculate_distance(
        self, pixel_spacing: Optional[Sequence[float]], units: str
    ) -> MeasurementResult:
        start, end = self.__points
        pixels = start.distance_to(end)
        if pixel_spacing is None:
            return MeasurementResult(MeasurementKind.DISTANCE, pixels, f"{pixels:.2f} px", "px")

        real_world = pixels * linear_spacing_factor(pixel_spacing)
        return MeasurementResult(
            MeasurementKind.DISTANCE,
            pixels,
            f"{real_world:.2f} {units}",
            units,
            real_world_value=real_world,
        )

    def __calculate_angle(self, pixel_spacing: Optional[Sequence[float]]) -> MeasurementResult:
        vertex, arm1, arm2 = self.__points
        v1 = arm1 - vertex
        v2 = arm2 - vertex
        mag1 = v1.length()
        mag2 = v2.length()
        if mag1 == 0 or mag2 == 0:
            log.debug(f"Degenerate angle '{self.__id}': an arm coincides with the vertex.")
            return MeasurementResult.invalid(
                MeasurementKind.ANGLE, "An angle arm coincides with its vertex.", DEGREE_SIGN
            )

        cosine = max(-1.0, min(1.0, v1.dot(v2) / (mag1 * mag2)))
        degrees = math.degrees(math.acos(cosine))
        return MeasurementResult(
            MeasurementKind.ANGLE,
            degrees,
            f"{degrees:.1f}{DEGREE_SIGN}",
            DEGREE_SIGN,
            # angles do not depend on calibration
            real_world_value=degrees if pixel_spacing is not None else None,
        )

    def __calculate_circle(
        self, pixel_spacing: Optional[Sequence[float]], units: str
    ) -> MeasurementResult:
        center, edge = self.__points
        radius_pixels = center.distance_to(edge)
        area_pixels = math.pi * radius_pixels * radius_pixels

        radius_real: Optional[float] = None
        if pixel_spacing is None:
            display_units = "px"
            radius, area = radius_pixels, area_pixels
        else:
            display_units = units
            radius_real = radius_pixels * linear_spacing_factor(pixel_spacing)
            radius, area = radius_real, math.pi * radius_real * radius_real

        return MeasurementResult(
            MeasurementKind.CIRCLE,
            radius_pixels,
            f"R: {radius:.2f} {display_units}\nA: {area:.2f} {display_units}{SQUARED}",
            display_units,
            real_world_value=radius_real,
            additional_data=dict(
                radius=radius,
                area=area,
                radius_pixels=radius_pixels,
                area_pixels=area_pixels,
            ),
        )

    def __calculate_area(
        self, pixel_spacing: Optional[Sequence[float]], units: str
    ) -> MeasurementResult:
        area_pixels = polygon_area(self.__points)
        extras = dict(
            area_pixels=area_pixels,
            perimeter_pixels=polygon_perimeter(self.__points),
        )
        if pixel_spacing is None:
            return MeasurementResult(
                MeasurementKind.AREA,
                area_pixels,
                f"{area_pixels:.2f} px{SQUARED}",
                "px",
                additional_data=extras,
            )

        real_world = area_pixels * area_spacing_factor(pixel_spacing)
        return MeasurementResult(
            MeasurementKind.AREA,
            area_pixels,
            f"{real_world:.2f} {units}{SQUARED}",
            units,
            real_world_value=real_world,
            additional_data=extras,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DicomMeasurement):
            return NotImplemented
        return (
            self.id == other.id
            and self.kind == other.kind
            and self.points == other.points
            and self.label == other.label
            and self.created_at == other.created_at
            and self.is_selected == other.is_selected
            and self.selected_point_index == other.selected_point_index
            and self.metadata == other.metadata
        )

    __hash__ = None  # type: ignore

    def __repr__(self) -> str:
        return f"DicomMeasurement<{self.id}: {self.kind.value}>({self.label}, {list(self.points)})"

    def __json_serializable__(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "points": [[p.x, p.y] for p in self.points],
            "label": self.label,
            "createdAt": self.created_at.isoformat(),
            "isSelected": self.is_selected,
            "selectedPointIndex": self.selected_point_index,
            "metadata": self.metadata,
        }

    to_json = __json_serializable__

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "DicomMeasurement":
        """Rebuild a measurement from the output of `to_json`.

        Raises:
            DeserializationError: If the data is malformed or violates the kind's arity.
        """
        try:
            if not isinstance(data, Mapping):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            id = data["id"]
            if not isinstance(id, str):
                raise TypeError("id must be a string")
            kind = MeasurementKind(data["kind"])
            points = [_parse_point(p) for p in data["points"]]
            label = data["label"]
            if not isinstance(label, str):
                raise TypeError("label must be a string")
            created_at = datetime.fromisoformat(data["createdAt"])
            is_selected = data.get("isSelected", False)
            if not isinstance(is_selected, bool):
                raise TypeError("isSelected must be a boolean")
            index = data.get("selectedPointIndex")
            if index is not None and (isinstance(index, bool) or not isinstance(index, int)):
                raise TypeError("selectedPointIndex must be an integer or null")
            metadata = data.get("metadata")
            if metadata is None:
                metadata = {}
            if not isinstance(metadata, Mapping):
                raise TypeError("metadata must be an object")
            return cls(
                id,
                kind,
                points,
                label,
                created_at,
                is_selected=is_selected,
                selected_point_index=index,
                metadata=metadata,
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise DeserializationError(f"Invalid measurement {data!r}: {e}") from e


def _parse_point(value: Any) -> MeasurementPoint:
    if isinstance(value, (str, bytes)) or len(value) != 2:
        raise ValueError(f"points must be [x, y] pairs, got {value!r}")
    x, y = value
    for c in (x, y):
        if isinstance(c, bool) or not isinstance(c, (int, float)):
            raise TypeError(f"point coordinates must be numbers, got {value!r}")
    return MeasurementPoint(x, y)
