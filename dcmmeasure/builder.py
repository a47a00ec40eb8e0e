import logging
from typing import Callable, List, Optional, Tuple
from uuid import uuid4

from .manager import MeasurementManager
from .measurements import (
    Clock,
    DicomMeasurement,
    MeasurementKind,
    PointLike,
    as_point,
    utc_now,
)
from .utils import MeasurementPoint

log = logging.getLogger(__name__)


def default_id() -> str:
    return uuid4().hex


class MeasurementBuilder:
    """Collects points for a measurement being drawn and commits it once it is complete.

    Distances, circles and angles are committed as soon as they have enough points. Areas
    keep collecting vertices until `commit` is called; a committed area has at least three.
    If a manager is attached, committed measurements are added to it.
    """

    def __init__(
        self,
        manager: Optional[MeasurementManager] = None,
        *,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = default_id,
    ) -> None:
        self.manager = manager
        self.clock = clock
        self.id_factory = id_factory
        self.__tool: Optional[MeasurementKind] = None
        self.__points: List[MeasurementPoint] = []

    @property
    def tool(self) -> Optional[MeasurementKind]:
        return self.__tool

    @property
    def points(self) -> Tuple[MeasurementPoint, ...]:
        return tuple(self.__points)

    @property
    def is_creating(self) -> bool:
        return self.__tool is not None and len(self.__points) > 0

    @property
    def can_commit(self) -> bool:
        return self.__tool is not None and self.__tool.is_complete(len(self.__points))

    def select_tool(self, kind: Optional[MeasurementKind]) -> None:
        """Switch tools. The draft is only discarded if the tool actually changes."""
        if kind != self.__tool:
            self.__points.clear()
        self.__tool = kind

    def add_point(self, point: PointLike) -> Optional[DicomMeasurement]:
        """Add a point to the draft.

        Returns:
            Optional[DicomMeasurement]: The committed measurement, if this point completed one.
        """
        if self.__tool is None:
            log.debug("No measurement tool selected, ignoring point.")
            return None
        self.__points.append(as_point(point))
        if self.__tool.fixed_arity and self.can_commit:
            return self.commit()
        return None

    def commit(self) -> Optional[DicomMeasurement]:
        """Build the drafted measurement and reset the draft. Returns None if it is incomplete."""
        if not self.can_commit:
            return None
        measurement = self.__build()
        self.__points.clear()
        if self.manager is not None:
            self.manager.add_measurement(measurement)
        return measurement

    def cancel(self) -> None:
        self.__points.clear()

    def __build(self) -> DicomMeasurement:
        kind = self.__tool
        points = self.__points
        id = self.id_factory()
        if kind is MeasurementKind.DISTANCE:
            return DicomMeasurement.distance(id, points[0], points[1], clock=self.clock)
        elif kind is MeasurementKind.ANGLE:
            return DicomMeasurement.angle(id, points[0], points[1], points[2], clock=self.clock)
        elif kind is MeasurementKind.CIRCLE:
            return DicomMeasurement.circle(id, points[0], points[1], clock=self.clock)
        elif kind is MeasurementKind.AREA:
            return DicomMeasurement.area(id, list(points), clock=self.clock)
        raise AssertionError(f"Unhandled measurement kind {kind}")
