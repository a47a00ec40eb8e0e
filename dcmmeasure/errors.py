class MeasurementError(Exception):
    """Base class for errors raised by dcmmeasure."""


class InvariantViolation(MeasurementError, ValueError):
    """A measurement was built or edited into a shape its kind does not allow.

    This signals a logic error in the caller, eg. a distance with three points
    or an update to a point index that does not exist.
    """


class DeserializationError(MeasurementError, ValueError):
    """Serialized measurement state could not be turned back into a manager."""
