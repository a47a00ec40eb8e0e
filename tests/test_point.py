import math

import pytest
from dcmmeasure import MeasurementPoint


def test_point() -> None:
    k = MeasurementPoint(1, 2)
    assert type(k.x) == float
    assert k[0] == 1.0 and k[1] == 2.0
    with pytest.raises(IndexError):
        k[2]

    with pytest.raises(AttributeError):
        k.x = 5  # type: ignore


def test_distance() -> None:
    p = MeasurementPoint(0, 0)
    q = MeasurementPoint(3, 4)
    assert p.distance_to(q) == 5.0
    assert q.distance_to(p) == p.distance_to(q)
    assert p.distance_to(p) == 0.0
    assert MeasurementPoint(-2.5, 7).distance_to(MeasurementPoint(1.5, 4)) == pytest.approx(5.0)


def test_point_equality() -> None:
    assert MeasurementPoint(1, 2) == MeasurementPoint(1.0, 2.0)
    assert MeasurementPoint(1, 2) != MeasurementPoint(2, 1)
    assert MeasurementPoint(1, 2) != (1, 2)
    assert len({MeasurementPoint(1, 2), MeasurementPoint(1.0, 2.0)}) == 1


def test_scale_and_translate() -> None:
    p = MeasurementPoint(2, -3)
    assert p.scale(2) == MeasurementPoint(4, -6)
    assert p.translate(1, 1) == MeasurementPoint(3, -2)
    # originals are untouched
    assert p == MeasurementPoint(2, -3)


def test_vector() -> None:
    v = MeasurementPoint(4, 5) - MeasurementPoint(1, 1)
    assert (v.x, v.y) == (3.0, 4.0)
    assert v.length() == 5.0
    assert math.isclose(v.dot(v), 25.0)
