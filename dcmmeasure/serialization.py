from json import JSONDecodeError, JSONDecoder, JSONEncoder
from typing import Any

from .errors import DeserializationError
from .manager import MeasurementManager


class MeasurementEncoder(JSONEncoder):
    def default(self, o: Any) -> Any:
        if hasattr(o, "__json_serializable__"):
            return o.__json_serializable__()
        return super().default(o)


class MeasurementDecoder(JSONDecoder):
    def decode(self, s: str, *args: Any, **kwargs: Any) -> Any:
        # only the top-level object is state; nested objects such as metadata stay plain
        result = super().decode(s, *args, **kwargs)
        if isinstance(result, dict):
            return MeasurementManager.from_json(result)
        return result


def read_manager_from_json(json: str) -> MeasurementManager:
    """Parse serialized measurement state.

    Raises:
        DeserializationError: The text is not valid JSON or not valid measurement state.
    """
    try:
        result = MeasurementDecoder().decode(json)
    except JSONDecodeError as e:
        raise DeserializationError(f"Measurement state is not valid JSON: {e}") from e
    if not isinstance(result, MeasurementManager):
        raise DeserializationError(f"Unexpected measurement data: {json}")
    return result


def dumps(o: Any, **kwargs: Any) -> str:
    return MeasurementEncoder(ensure_ascii=False, **kwargs).encode(o)


def dumps_results(manager: MeasurementManager, **kwargs: Any) -> str:
    """Compute every result of the manager and render them as a JSON list."""
    return dumps(manager.calculate_all_results(), **kwargs)
