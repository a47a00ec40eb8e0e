import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from pydicom.errors import InvalidDicomError

from dcmmeasure import serialization
from dcmmeasure.calibration import Calibration
from dcmmeasure.errors import DeserializationError
from dcmmeasure.manager import MeasurementManager

log = logging.getLogger(f"{__package__}.{__name__}")


def log_config() -> logging.Logger:
    log.setLevel(logging.INFO)
    FORMAT = "%(levelname)s: %(message)s"
    formatter = logging.Formatter(FORMAT)
    # 2 handlers for the same logger:
    h1 = logging.StreamHandler(sys.stdout)
    h1.setLevel(logging.DEBUG)
    # filter out everything that is above INFO level (WARN, ERROR, ...)
    h1.addFilter(lambda record: record.levelno <= logging.INFO)
    h1.setFormatter(formatter)
    log.addHandler(h1)
    h2 = logging.StreamHandler(sys.stderr)
    # take only warnings and error logs
    h2.setLevel(logging.WARNING)
    h2.setFormatter(formatter)
    log.addHandler(h2)
    return log


def load_state(path: Optional[Path]) -> MeasurementManager:
    if path is None:
        text = "\n".join(sys.stdin.readlines())
    else:
        text = path.read_text(encoding="utf-8")
    if not text.strip():
        return MeasurementManager()
    return serialization.read_manager_from_json(text)


def results(args: Any) -> str:
    try:
        manager = load_state(args.state)
    except (DeserializationError, OSError) as e:
        log.fatal(f"Unable to read measurement state: {e}")
        sys.exit(1)
    output = serialization.dumps_results(manager, indent=args.indent)
    print(output)
    return output


def calibrate(args: Any) -> str:
    try:
        manager = load_state(args.state)
    except (DeserializationError, OSError) as e:
        log.fatal(f"Unable to read measurement state: {e}")
        sys.exit(1)
    try:
        calibration = Calibration.from_dataset(args.dicom_file, args.units or manager.units)
    except (InvalidDicomError, OSError) as e:
        log.fatal(f"Unable to read {args.dicom_file}: {e}")
        sys.exit(1)
    if not calibration.is_calibrated:
        log.warning(f"{args.dicom_file} has no pixel spacing, measurements will be in pixels.")
    output = serialization.dumps(
        manager.with_calibration(calibration.pixel_spacing, calibration.units), indent=args.indent
    )
    print(output)
    return output


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        "dcmmeasure",
        description="Command-line interface to dcmmeasure.",
        epilog="""Examples:
        python -m dcmmeasure results -s measurements.json
        python -m dcmmeasure calibrate -d slice.dcm -s measurements.json > calibrated.json
        """,
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.set_defaults(func=lambda x: log.info(parser.format_help()))

    subparsers = parser.add_subparsers()

    results_parser = subparsers.add_parser("results", help="Compute measurement results.")
    results_parser.add_argument(
        "-s",
        "--state",
        dest="state",
        type=Path,
        help="Measurement state in JSON format. Omit to read from stdin.",
    )
    results_parser.set_defaults(func=results)

    calibrate_parser = subparsers.add_parser(
        "calibrate", help="Recalibrate measurements using the pixel spacing of a dicom file."
    )
    calibrate_parser.add_argument(
        "-d",
        "--dicom-file",
        dest="dicom_file",
        type=Path,
        required=True,
        help="Dicom slice the measurements were made on.",
    )
    calibrate_parser.add_argument(
        "-s",
        "--state",
        dest="state",
        type=Path,
        help="Measurement state in JSON format. Omit to read from stdin.",
    )
    calibrate_parser.add_argument(
        "-u",
        "--units",
        dest="units",
        help="Unit label for the pixel spacing. Defaults to the units of the input state.",
    )
    calibrate_parser.set_defaults(func=calibrate)

    for p in (results_parser, calibrate_parser):
        p.add_argument("--indent", type=int, default=None, help="Indent the JSON output.")
    return parser


def parse_and_run(argv: Optional[List[str]] = None) -> Any:
    args = make_parser().parse_args(argv)
    return args.func(args)  # call the default function


def console_entry() -> None:
    log_config()
    parse_and_run()


if __name__ == "__main__":
    console_entry()
