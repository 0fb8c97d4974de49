"""
Logging utilities for Lightsift
Provides structured logging and batch progress tracking
"""

import logging
import sys
from typing import Optional, Dict, Any
from datetime import datetime
import json

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def _format_message(self, message: str, **kwargs) -> str:
        """Format message with metadata"""
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str, sort_keys=True)}"
        return message

    def bind(self, **kwargs) -> 'StructuredLogger':
        """Child logger with extra default metadata"""
        return StructuredLogger(self.logger.name, {**self.metadata, **kwargs})

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class ProcessingStats:
    """Tracks batch processing statistics"""

    def __init__(self, operation: str = "processing"):
        """Initialize processing statistics"""
        self.operation = operation
        self.start_time = datetime.now()
        self.total_files = 0
        self.processed_files = 0
        self.succeeded_files = 0
        self.failed_files = 0
        self.scene_counts: Dict[str, int] = {}
        self.errors = []
        self.processing_times = []

    def set_total(self, total: int):
        """Set total number of files to process"""
        self.total_files = total

    def add_result(self, success: bool, scene_type: Optional[str] = None,
                   processing_time: Optional[float] = None):
        """
        Add a processing result

        Args:
            success: Whether the file was processed
            scene_type: Detected scene label, for analysis batches
            processing_time: Time taken to process file
        """
        self.processed_files += 1

        if success:
            self.succeeded_files += 1
        else:
            self.failed_files += 1

        if scene_type:
            self.scene_counts[scene_type] = self.scene_counts.get(scene_type, 0) + 1

        if processing_time:
            self.processing_times.append(processing_time)

    def add_error(self, file_path: str, error: str):
        """Add an error"""
        self.errors.append({
            'file': file_path,
            'error': error,
            'time': datetime.now()
        })

    def get_elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return (datetime.now() - self.start_time).total_seconds()

    def get_average_processing_time(self) -> float:
        """Get average processing time per file"""
        if not self.processing_times:
            return 0.0
        return sum(self.processing_times) / len(self.processing_times)

    def get_summary(self) -> Dict[str, Any]:
        """Get processing summary"""
        elapsed = self.get_elapsed_time()

        return {
            'operation': self.operation,
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'succeeded_files': self.succeeded_files,
            'failed_files': self.failed_files,
            'scene_counts': self.scene_counts,
            'errors': len(self.errors),
            'elapsed_time': elapsed,
            'average_time_per_file': self.get_average_processing_time(),
            'files_per_second': self.processed_files / elapsed if elapsed > 0 else 0
        }

    def print_summary(self):
        """Print processing summary to console"""
        summary = self.get_summary()

        print("\n" + "=" * 60)
        print(f"{self.operation.upper()} SUMMARY")
        print("=" * 60)
        print(f"Total files:      {summary['total_files']}")
        print(f"Processed:        {summary['processed_files']}")
        print(f"Succeeded:        {summary['succeeded_files']}")
        print(f"Failed:           {summary['failed_files']}")

        if summary['scene_counts']:
            print("\nScene types:")
            for scene, count in sorted(summary['scene_counts'].items()):
                print(f"  - {scene}: {count}")

        print(f"\nElapsed time:     {summary['elapsed_time']:.1f}s")
        print(f"Avg time/file:    {summary['average_time_per_file']:.2f}s")
        print("=" * 60)

        if self.errors:
            print("\nERRORS:")
            for error in self.errors[:10]:
                print(f"  - {error['file']}: {error['error']}")
            if len(self.errors) > 10:
                print(f"  ... and {len(self.errors) - 10} more errors")


def setup_console_logging(level: str = "INFO", color: bool = True,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Log records go to stderr so command output on stdout stays parseable.

    Args:
        level: Logging level name
        color: Whether to use colored output
        fmt: Format string for the plain formatter
    """
    console_handler = logging.StreamHandler(sys.stderr)

    if color and sys.stderr.isatty():
        try:
            import colorlog
            formatter = colorlog.ColoredFormatter(
                '%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s',
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            )
        except ImportError:
            # colorlog is an optional extra
            formatter = logging.Formatter(fmt)
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, '_lightsift_console', False):
            root_logger.removeHandler(handler)
    console_handler._lightsift_console = True

    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.addHandler(console_handler)
