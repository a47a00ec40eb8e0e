from datetime import datetime
from typing import Callable

from dcmmeasure import MeasurementBuilder, MeasurementKind, MeasurementManager


def counter() -> Callable[[], str]:
    ids = iter(range(1000))
    return lambda: f"m{next(ids)}"


def test_distance_commits_on_second_point(clock: Callable[[], datetime]) -> None:
    manager = MeasurementManager(pixel_spacing=[0.5])
    builder = MeasurementBuilder(manager, clock=clock, id_factory=counter())
    builder.select_tool(MeasurementKind.DISTANCE)

    assert builder.add_point((0, 0)) is None
    assert builder.is_creating
    m = builder.add_point((10, 0))
    assert m is not None
    assert m.id == "m0"
    assert m.kind is MeasurementKind.DISTANCE
    assert m.created_at == datetime.fromisoformat("2024-01-01T12:00:00+00:00")
    assert manager.get_measurement("m0") == m
    assert not builder.is_creating
    assert builder.points == ()


def test_angle_and_circle() -> None:
    builder = MeasurementBuilder(id_factory=counter())
    builder.select_tool(MeasurementKind.ANGLE)
    builder.add_point((0, 0))
    builder.add_point((1, 0))
    angle = builder.add_point((0, 1))
    assert angle is not None
    assert angle.calculate_value().display_text == "90.0°"

    builder.select_tool(MeasurementKind.CIRCLE)
    builder.add_point((0, 0))
    circle = builder.add_point((0, 5))
    assert circle is not None
    assert circle.id == "m1"
    assert circle.calculate_value().pixel_value == 5.0


def test_area_accumulates_until_commit() -> None:
    manager = MeasurementManager()
    builder = MeasurementBuilder(manager, id_factory=counter())
    builder.select_tool(MeasurementKind.AREA)
    for p in [(0, 0), (10, 0)]:
        assert builder.add_point(p) is None
    assert not builder.can_commit
    assert builder.commit() is None
    assert len(builder.points) == 2

    for p in [(10, 10), (0, 10)]:
        assert builder.add_point(p) is None
    assert builder.can_commit
    area = builder.commit()
    assert area is not None
    assert len(area.points) == 4
    assert area.calculate_value().pixel_value == 100.0
    assert len(manager) == 1
    assert builder.points == ()


def test_tool_switching() -> None:
    builder = MeasurementBuilder()
    assert builder.add_point((1, 1)) is None
    assert builder.points == ()

    builder.select_tool(MeasurementKind.AREA)
    builder.add_point((1, 1))
    builder.select_tool(MeasurementKind.AREA)
    assert len(builder.points) == 1

    builder.select_tool(MeasurementKind.DISTANCE)
    assert builder.points == ()

    builder.add_point((1, 1))
    builder.cancel()
    assert builder.points == ()
    assert builder.tool is MeasurementKind.DISTANCE

    builder.select_tool(None)
    assert builder.tool is None
    assert not builder.is_creating
