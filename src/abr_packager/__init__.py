"""Public package interface for the ABR packager."""
from .config import OutputFormat, PackageFormatOptions, PackagerSettings
from .exceptions import (
    ConfigurationError,
    DownloadError,
    PackagerExecutionError,
    PackagingError,
    UploadError,
)
from .packager import PackagerJob, PackagerStream, create_shaka_args, select_audio_source
from .pipeline import PackagingRun, do_package
from .publishing import LocalPublisher, PackagePublisher, S3Publisher, publisher_for
from .tracks import StreamInput, StreamKind, parse_input_option, parse_input_options

__all__ = [
    "ConfigurationError",
    "DownloadError",
    "LocalPublisher",
    "OutputFormat",
    "PackageFormatOptions",
    "PackagePublisher",
    "PackagerExecutionError",
    "PackagerJob",
    "PackagerSettings",
    "PackagerStream",
    "PackagingError",
    "PackagingRun",
    "S3Publisher",
    "StreamInput",
    "StreamKind",
    "UploadError",
    "create_shaka_args",
    "do_package",
    "parse_input_option",
    "parse_input_options",
    "publisher_for",
    "select_audio_source",
]
