#!/usr/bin/env python3
"""Run Shaka Packager with sources and destination on S3, HTTP(S) or local disk."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import (
    ENV_LOG_DIR,
    ENV_PACKAGER_BINARY,
    ENV_S3_ENDPOINT_URL,
    ENV_SERVICE_ACCESS_TOKEN,
    ENV_STAGING_DIR,
    OutputFormat,
    PackageFormatOptions,
    PackagerSettings,
)
from .exceptions import ConfigurationError, PackagingError
from .logging_config import configure_logging
from .pipeline import do_package
from .tracks import parse_input_options

LOGGER = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser(settings: PackagerSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="abr-packager",
        description=(
            "Run shaka-packager with sources on S3, HTTP(S) or local disk and "
            "publish the ABR package to S3 or a local folder."
        ),
    )
    parser.add_argument(
        "dest",
        help="Destination folder URL (supported protocols: s3, local file).",
    )
    parser.add_argument(
        "source",
        nargs="?",
        default=None,
        help="Source folder URL (supported protocols: s3, http, https, local file).",
    )
    parser.add_argument(
        "-i",
        "--input",
        dest="inputs",
        action="append",
        default=[],
        metavar="SPEC",
        help="Input on the format [a|v|t]:<key>=<filename>[:label]; may be repeated.",
    )
    parser.add_argument(
        "--staging-dir",
        type=Path,
        default=settings.staging_dir,
        help=f"Staging directory (env {ENV_STAGING_DIR}, default: %(default)s).",
    )
    parser.add_argument(
        "--shaka-executable",
        default=settings.shaka_executable,
        help=f"Path to the Shaka Packager binary (env {ENV_PACKAGER_BINARY}, default: %(default)s).",
    )
    parser.add_argument(
        "--no-implicit-audio",
        action="store_true",
        help="Do not include audio unless an audio input is specified.",
    )
    parser.add_argument(
        "--s3-endpoint-url",
        default=settings.s3_endpoint_url,
        help=f"Custom S3 endpoint URL (env {ENV_S3_ENDPOINT_URL}).",
    )
    parser.add_argument(
        "--service-access-token",
        default=settings.service_access_token,
        help=f"Bearer token sent when downloading HTTP(S) inputs (env {ENV_SERVICE_ACCESS_TOKEN}).",
    )
    parser.add_argument(
        "--dash-only",
        action="store_true",
        help="Package only DASH, do not write HLS playlists.",
    )
    parser.add_argument(
        "--hls-only",
        action="store_true",
        help="Package only HLS, do not write a DASH manifest.",
    )
    parser.add_argument(
        "--segment-single-file",
        action="store_true",
        help="Write one file per stream and address segments by byte range.",
    )
    parser.add_argument(
        "--segment-single-file-name",
        default=None,
        metavar="TEMPLATE",
        help="Single-file output name; must contain $KEY$ (default: $KEY$.mp4 or $KEY$.ts).",
    )
    parser.add_argument(
        "--segment-duration",
        type=float,
        default=None,
        help="Target segment duration in seconds.",
    )
    parser.add_argument(
        "--output-format",
        choices=[fmt.value for fmt in OutputFormat],
        default=OutputFormat.MP4.value,
        help="Segment container: fragmented mp4 or MPEG-2 ts (default: %(default)s).",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: %(default)s).",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=settings.log_dir,
        help=f"Also write a log file into this directory (env {ENV_LOG_DIR}).",
    )
    return parser


def format_options_from_args(args: argparse.Namespace) -> PackageFormatOptions:
    return PackageFormatOptions(
        dash_only=args.dash_only,
        hls_only=args.hls_only,
        segment_single_file=args.segment_single_file,
        segment_single_file_template=args.segment_single_file_name,
        segment_duration=args.segment_duration,
        output_format=OutputFormat(args.output_format),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = PackagerSettings.from_env()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, log_dir=args.log_dir)

    if not args.inputs:
        print("Need at least one input!\n", file=sys.stderr)
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    try:
        inputs = parse_input_options(args.inputs)
        LOGGER.info("Inputs: %s", ", ".join(f"{item.kind.value}:{item.key}={item.filename}" for item in inputs))
        LOGGER.info("dest: %s, source: %s", args.dest, args.source)
        do_package(
            inputs,
            args.dest,
            source=args.source,
            staging_dir=args.staging_dir,
            no_implicit_audio=args.no_implicit_audio,
            package_format_options=format_options_from_args(args),
            shaka_executable=args.shaka_executable,
            service_access_token=args.service_access_token,
            s3_endpoint_url=args.s3_endpoint_url,
            max_download_workers=settings.max_download_workers,
        )
    except ConfigurationError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return EXIT_USAGE
    except PackagingError as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
