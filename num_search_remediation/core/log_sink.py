"""
File-backed audit log sinks.

Each sink is a plain text file under one directory. Appends are flushed
and synced before returning so partial progress survives a crash.
"""
import os
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class LogSink:
    """Append/overwrite-only text files keyed by sink name."""

    def __init__(self, log_dir: str = "."):
        """
        Initialize log sink.

        Args:
            log_dir: Directory holding the sink files
        """
        self.log_dir = Path(log_dir)

    def path_for(self, name: str) -> Path:
        """Get the file path for a sink, creating the log directory if needed."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        return self.log_dir / name

    def truncate(self, name: str) -> None:
        """Empty a sink, creating it if needed."""
        self.path_for(name).write_text("", encoding="utf-8")
        logger.debug("sink_truncated", sink=name)

    def append_line(self, name: str, text: str) -> None:
        """Append one line to a sink and sync it to disk."""
        with open(self.path_for(name), "a", encoding="utf-8") as f:
            f.write(text + "\n")
            f.flush()
            os.fsync(f.fileno())

    def overwrite(self, name: str, text: str) -> None:
        """Replace a sink's contents."""
        with open(self.path_for(name), "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
