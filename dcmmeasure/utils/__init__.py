from .point import MeasurementPoint, Vector

__all__ = ["MeasurementPoint", "Vector"]
