import logging
from os import PathLike
from typing import NamedTuple, Optional, Tuple, Union

from pydicom import dcmread
from pydicom.dataset import Dataset
from pydicom.multival import MultiValue

log = logging.getLogger(__name__)

SPACING_KEYWORDS = ("PixelSpacing", "ImagerPixelSpacing")


class Calibration(NamedTuple):
    """Converts pixel measurements into physical ones. Units are an opaque label."""

    pixel_spacing: Optional[Tuple[float, ...]] = None
    units: str = "mm"

    @property
    def is_calibrated(self) -> bool:
        return bool(self.pixel_spacing)

    @classmethod
    def from_dataset(
        cls, dataset: Union[Dataset, str, "PathLike[str]"], units: str = "mm"
    ) -> "Calibration":
        """Read the pixel spacing of a dicom slice.

        Args:
            dataset (Union[Dataset, str, PathLike]): The dataset, or a path to it.
            units (str, optional): Label for the spacing's unit. Defaults to "mm".

        Returns:
            Calibration: The calibration. Uncalibrated if the dataset has no spacing.
        """
        if isinstance(dataset, (str, PathLike)):
            dataset = dcmread(dataset, stop_before_pixels=True)

        assert isinstance(dataset, Dataset)
        for keyword in SPACING_KEYWORDS:
            value = dataset.get(keyword)
            if value:
                # a single-valued element is read back as a bare DSfloat
                if not isinstance(value, (MultiValue, list, tuple)):
                    value = [value]
                log.debug(f"Using {keyword} {list(value)}")
                return cls(tuple(float(v) for v in value), units)

        log.info(f"No pixel spacing in dataset {dataset.get('SOPInstanceUID', '')}, measurements will be in pixels.")
        return cls(None, units)

    def __str__(self) -> str:
        if not self.is_calibrated:
            return "uncalibrated"
        return f"{list(self.pixel_spacing or ())} {self.units}/px"
