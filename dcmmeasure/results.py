from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # avoid circular import
    from .measurements import MeasurementKind


class MeasurementResult:
    """The computed value of a single measurement. Never persisted, recompute it on demand.

    `pixel_value` is a length in pixels for distances, the radius in pixels for circles,
    degrees for angles and the polygon area in square pixels for areas. `real_world_value`
    is only set when a pixel spacing was supplied.
    """

    kind: "MeasurementKind"
    pixel_value: float
    real_world_value: Optional[float]
    units: str
    display_text: str
    additional_data: Dict[str, float]
    is_valid: bool
    error: Optional[str]

    def __init__(
        self,
        kind: "MeasurementKind",
        pixel_value: float,
        display_text: str,
        units: str,
        real_world_value: Optional[float] = None,
        additional_data: Optional[Mapping[str, float]] = None,
        is_valid: bool = True,
        error: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.pixel_value = pixel_value
        self.real_world_value = real_world_value
        self.units = units
        self.display_text = display_text
        self.additional_data = dict(additional_data or {})
        self.is_valid = is_valid
        self.error = error

    @classmethod
    def invalid(cls, kind: "MeasurementKind", error: str, units: str = "") -> "MeasurementResult":
        """A result for geometry that has no meaningful value. The value is pinned to 0."""
        return cls(kind, 0.0, "Invalid", units, is_valid=False, error=error)

    @property
    def value(self) -> float:
        """The value shown to the user: the calibrated value if there is one."""
        if self.real_world_value is not None:
            return self.real_world_value
        return self.pixel_value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MeasurementResult):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.pixel_value == other.pixel_value
            and self.real_world_value == other.real_world_value
            and self.units == other.units
            and self.display_text == other.display_text
            and self.additional_data == other.additional_data
            and self.is_valid == other.is_valid
            and self.error == other.error
        )

    def __repr__(self) -> str:
        return f"MeasurementResult<{self.kind.value}>({self.display_text!r})"

    def __str__(self) -> str:
        return self.display_text

    def __json_serializable__(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "pixelValue": self.pixel_value,
            "realWorldValue": self.real_world_value,
            "units": self.units,
            "displayText": self.display_text,
            "additionalData": self.additional_data,
            "isValid": self.is_valid,
            "error": self.error,
        }
