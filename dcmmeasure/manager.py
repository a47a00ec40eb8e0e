import logging
from os import PathLike
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from pydicom.dataset import Dataset

from .calibration import Calibration
from .errors import DeserializationError
from .measurements import (
    DEFAULT_HIT_RADIUS,
    DicomMeasurement,
    MeasurementKind,
    PointLike,
)
from .results import MeasurementResult

log = logging.getLogger(__name__)


class Hit(NamedTuple):
    measurement: DicomMeasurement
    point_index: int


class MeasurementManager:
    """All the measurements on one image, together with the image's calibration.

    Measurements are kept in insertion order and keyed by id. The calibration is fixed for
    the lifetime of the manager; use `with_calibration` to get a recalibrated copy.
    """

    def __init__(
        self,
        pixel_spacing: Optional[Sequence[float]] = None,
        units: str = "mm",
        measurements: Iterable[DicomMeasurement] = (),
    ) -> None:
        self.__pixel_spacing: Optional[Tuple[float, ...]] = (
            tuple(float(s) for s in pixel_spacing) if pixel_spacing is not None else None
        )
        self.__units = units
        self.__measurements: Dict[str, DicomMeasurement] = {}
        for m in measurements:
            self.add_measurement(m)

    @classmethod
    def from_dataset(
        cls, dataset: Union[Dataset, str, "PathLike[str]"], units: str = "mm"
    ) -> "MeasurementManager":
        """Create an empty manager calibrated from a dicom dataset's pixel spacing."""
        calibration = Calibration.from_dataset(dataset, units)
        return cls(calibration.pixel_spacing, calibration.units)

    @property
    def pixel_spacing(self) -> Optional[Tuple[float, ...]]:
        return self.__pixel_spacing

    @property
    def units(self) -> str:
        return self.__units

    @property
    def calibration(self) -> Calibration:
        return Calibration(self.__pixel_spacing, self.__units)

    @property
    def measurements(self) -> Tuple[DicomMeasurement, ...]:
        return tuple(self.__measurements.values())

    def __len__(self) -> int:
        return len(self.__measurements)

    def __iter__(self) -> Iterator[DicomMeasurement]:
        yield from list(self.__measurements.values())

    def __contains__(self, id: object) -> bool:
        return id in self.__measurements

    def add_measurement(self, measurement: DicomMeasurement) -> None:
        """Add a measurement. An existing measurement with the same id is replaced in place."""
        if measurement.id in self.__measurements:
            log.debug(f"Replacing measurement {measurement.id}")
        else:
            log.debug(f"Adding {measurement.kind.value} measurement {measurement.id}")
        self.__measurements[measurement.id] = measurement

    def remove_measurement(self, id: str) -> bool:
        if self.__measurements.pop(id, None) is None:
            return False
        log.debug(f"Removed measurement {id}")
        return True

    def get_measurement(self, id: str) -> Optional[DicomMeasurement]:
        return self.__measurements.get(id)

    def update_measurement(self, updated: DicomMeasurement) -> bool:
        """Replace the measurement with the same id, keeping its position. Unknown ids are ignored."""
        if updated.id not in self.__measurements:
            return False
        self.__measurements[updated.id] = updated
        return True

    def get_measurements_by_type(self, kind: MeasurementKind) -> Iterator[DicomMeasurement]:
        return (m for m in self.measurements if m.kind is kind)

    def clear_measurements(self) -> None:
        self.__measurements.clear()

    def calculate_all_results(self) -> List[MeasurementResult]:
        return [
            m.calculate_value(pixel_spacing=self.__pixel_spacing, units=self.__units)
            for m in self.__measurements.values()
        ]

    def hit_test(self, position: PointLike, hit_radius: float = DEFAULT_HIT_RADIUS) -> Optional[Hit]:
        """Find the first measurement, in insertion order, with a point near `position`."""
        for m in self.__measurements.values():
            index = m.get_hit_point_index(position, hit_radius)
            if index is not None:
                return Hit(m, index)
        return None

    def select_measurement(self, id: str, point_index: Optional[int] = None) -> bool:
        """Mark one measurement (and optionally one of its points) as selected, deselecting the rest."""
        target = self.__measurements.get(id)
        if target is None:
            return False
        for m in list(self.__measurements.values()):
            if m.id != id and m.is_selected:
                self.__measurements[m.id] = m.deselect()
        self.__measurements[id] = target.select(point_index)
        return True

    def clear_selection(self) -> None:
        for m in list(self.__measurements.values()):
            if m.is_selected:
                self.__measurements[m.id] = m.deselect()

    @property
    def selected(self) -> Optional[DicomMeasurement]:
        for m in self.__measurements.values():
            if m.is_selected:
                return m
        return None

    def move_point(self, id: str, index: int, new_point: PointLike) -> bool:
        m = self.__measurements.get(id)
        if m is None:
            return False
        self.__measurements[id] = m.update_point(index, new_point)
        return True

    def with_calibration(
        self, pixel_spacing: Optional[Sequence[float]], units: Optional[str] = None
    ) -> "MeasurementManager":
        """A new manager with different calibration and the same measurements."""
        return MeasurementManager(
            pixel_spacing,
            units if units is not None else self.__units,
            self.__measurements.values(),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MeasurementManager):
            return NotImplemented
        return (
            self.pixel_spacing == other.pixel_spacing
            and self.units == other.units
            and self.measurements == other.measurements
        )

    __hash__ = None  # type: ignore

    def __repr__(self) -> str:
        return f"<MeasurementManager {self.calibration}: {list(self.__measurements.values())}>"

    def __json_serializable__(self) -> Dict[str, Any]:
        return {
            "pixelSpacing": list(self.__pixel_spacing) if self.__pixel_spacing is not None else None,
            "units": self.__units,
            "measurements": [m.to_json() for m in self.__measurements.values()],
        }

    to_json = __json_serializable__

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "MeasurementManager":
        """Restore a manager from the output of `to_json`.

        Either the whole state is restored or DeserializationError is raised; a partial
        manager is never returned.
        """
        if not isinstance(data, Mapping):
            raise DeserializationError(f"Expected measurement state object, got {type(data).__name__}")

        pixel_spacing = data.get("pixelSpacing")
        if pixel_spacing is not None:
            if isinstance(pixel_spacing, (str, bytes, Mapping)) or not isinstance(
                pixel_spacing, Sequence
            ):
                raise DeserializationError(f"Invalid pixelSpacing {pixel_spacing!r}")
            spacing = []
            for s in pixel_spacing:
                if isinstance(s, bool) or not isinstance(s, (int, float)):
                    raise DeserializationError(f"Invalid pixelSpacing {pixel_spacing!r}")
                try:
                    spacing.append(float(s))
                except OverflowError as e:
                    raise DeserializationError(f"Invalid pixelSpacing {pixel_spacing!r}") from e
            pixel_spacing = spacing

        units = data.get("units", "mm")
        if not isinstance(units, str):
            raise DeserializationError(f"Invalid units {units!r}")

        items = data.get("measurements") or []
        if not isinstance(items, list):
            raise DeserializationError(f"Invalid measurements {items!r}")
        measurements = [DicomMeasurement.from_json(item) for item in items]

        ids = [m.id for m in measurements]
        if len(set(ids)) != len(ids):
            raise DeserializationError("Measurement ids must be unique.")

        return cls(pixel_spacing, units, measurements)
