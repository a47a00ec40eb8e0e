from pathlib import Path

import pytest
from pydicom import dcmread, dcmwrite
from pydicom.dataset import Dataset

from dcmmeasure import Calibration


def test_from_dataset(calibrated_dataset: Dataset) -> None:
    calibration = Calibration.from_dataset(calibrated_dataset, "mm")
    assert calibration.is_calibrated
    assert calibration.pixel_spacing == pytest.approx((0.7, 0.7))
    assert calibration.units == "mm"
    assert str(calibration) == "[0.7, 0.7] mm/px"


def test_imager_pixel_spacing_fallback() -> None:
    ds = Dataset()
    ds.ImagerPixelSpacing = [0.143, 0.143]
    calibration = Calibration.from_dataset(ds, "mm")
    assert calibration.pixel_spacing == pytest.approx((0.143, 0.143))


def test_pixel_spacing_takes_precedence() -> None:
    ds = Dataset()
    ds.PixelSpacing = [0.2, 0.3]
    ds.ImagerPixelSpacing = [0.143, 0.143]
    assert Calibration.from_dataset(ds).pixel_spacing == pytest.approx((0.2, 0.3))


def test_uncalibrated_dataset() -> None:
    calibration = Calibration.from_dataset(Dataset(), "cm")
    assert not calibration.is_calibrated
    assert calibration.pixel_spacing is None
    assert calibration.units == "cm"
    assert str(calibration) == "uncalibrated"


def test_from_file(calibrated_dicom_file: Path) -> None:
    calibration = Calibration.from_dataset(calibrated_dicom_file)
    assert calibration.pixel_spacing == pytest.approx((0.7, 0.7))
    assert Calibration.from_dataset(str(calibrated_dicom_file)).is_calibrated


def test_single_valued_pixel_spacing() -> None:
    ds = Dataset()
    ds.PixelSpacing = 0.5
    calibration = Calibration.from_dataset(ds)
    assert calibration.pixel_spacing == pytest.approx((0.5,))
    assert str(calibration) == "[0.5] mm/px"


def test_single_valued_pixel_spacing_from_file(calibrated_dicom_file: Path) -> None:
    ds = dcmread(calibrated_dicom_file)
    ds.PixelSpacing = 0.25
    dcmwrite(calibrated_dicom_file, ds, enforce_file_format=True)
    assert Calibration.from_dataset(calibrated_dicom_file).pixel_spacing == pytest.approx((0.25,))
