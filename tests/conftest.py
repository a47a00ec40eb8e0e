from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from pydicom import dcmwrite
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.uid import ExplicitVRLittleEndian, generate_uid

from dcmmeasure import DicomMeasurement, MeasurementManager, MeasurementPoint

SECONDARY_CAPTURE = "1.2.840.10008.5.1.4.1.1.7"


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """A clock that ticks one second per call, starting at a fixed instant."""
    start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    ticks: Iterator[int] = iter(range(10**6))
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def sample_measurements(clock: Callable[[], datetime]) -> list:
    return [
        DicomMeasurement.distance("d1", MeasurementPoint(0, 0), MeasurementPoint(10, 0), clock=clock),
        DicomMeasurement.angle(
            "a1",
            MeasurementPoint(0, 0),
            MeasurementPoint(1, 0),
            MeasurementPoint(0, 1),
            clock=clock,
        ),
        DicomMeasurement.circle(
            "c1",
            MeasurementPoint(50, 50),
            MeasurementPoint(55, 50),
            label="Lesion",
            clock=clock,
            metadata={"series": 3},
        ),
        DicomMeasurement.area(
            "p1",
            [MeasurementPoint(100, 100), MeasurementPoint(104, 100), MeasurementPoint(104, 103)],
            clock=clock,
        ),
    ]


@pytest.fixture
def manager(sample_measurements: list) -> MeasurementManager:
    m = MeasurementManager(pixel_spacing=[0.5, 0.5], units="mm")
    for measurement in sample_measurements:
        m.add_measurement(measurement)
    return m


@pytest.fixture
def calibrated_dataset() -> Dataset:
    ds = Dataset()
    ds.SOPClassUID = SECONDARY_CAPTURE
    ds.SOPInstanceUID = generate_uid()
    ds.Modality = "OT"
    ds.PixelSpacing = [0.7, 0.7]
    return ds


@pytest.fixture
def calibrated_dicom_file(calibrated_dataset: Dataset, tmpdir: Any) -> Path:
    file_meta = FileMetaDataset()
    file_meta.MediaStorageSOPClassUID = calibrated_dataset.SOPClassUID
    file_meta.MediaStorageSOPInstanceUID = calibrated_dataset.SOPInstanceUID
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian
    calibrated_dataset.file_meta = file_meta
    path = Path(str(tmpdir)) / "slice.dcm"
    dcmwrite(path, calibrated_dataset, enforce_file_format=True)
    return path
