"""Geometric measurements (distance, angle, circle, area) on DICOM image slices."""

__version__ = "0.1.0"
from .errors import DeserializationError, InvariantViolation, MeasurementError
from .results import MeasurementResult
from .measurements import DicomMeasurement, MeasurementKind
from .calibration import Calibration
from .manager import Hit, MeasurementManager
from .builder import MeasurementBuilder  # usort: skip
from .utils import MeasurementPoint

__all__ = [
    "Calibration",
    "DeserializationError",
    "DicomMeasurement",
    "Hit",
    "InvariantViolation",
    "MeasurementBuilder",
    "MeasurementError",
    "MeasurementKind",
    "MeasurementManager",
    "MeasurementPoint",
    "MeasurementResult",
]
