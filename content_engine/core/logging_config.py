"""
Log setup shared by the API server and the scripts.

Records go to the console as plain text and to a per-day CSV file under
`log_dir`. The CSV rows carry the step, source and error fields that the
pipeline passes through `extra=`, so a failed ingestion or workflow run can
be filtered without parsing free text.
"""

import csv
import io
import logging
import os
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import List, Optional

DEFAULT_LOG_DIR = Path(__file__).parent.parent.parent / "logs"
RETENTION_DAYS = 30

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CSV_FIELDS = ["timestamp", "level", "module", "message", "step_id", "source", "error"]
EXTRA_FIELDS = ("step_id", "source", "error")

# Chatty HTTP and SDK loggers, kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


class CsvFormatter(logging.Formatter):
    """
    One CSV row per record, columns as in CSV_FIELDS.

    Pass the pipeline fields as extras:
        logger.error("ingest failed", extra={"source": "faqs.json", "error": str(e)})
    """

    def row(self, record: logging.LogRecord) -> List[str]:
        base = [
            self.formatTime(record, self.datefmt),
            record.levelname,
            record.name,
            record.getMessage(),
        ]
        return base + [str(getattr(record, name, "")) for name in EXTRA_FIELDS]

    def format(self, record):
        buffer = io.StringIO()
        csv.writer(buffer, quoting=csv.QUOTE_MINIMAL).writerow(self.row(record))
        return buffer.getvalue().rstrip("\r\n")


class CsvRotatingFileHandler(TimedRotatingFileHandler):
    """Rotates at midnight; every freshly opened empty file starts with the header row."""

    def _open(self):
        needs_header = not os.path.exists(self.baseFilename) or os.path.getsize(self.baseFilename) == 0
        stream = super()._open()
        if needs_header:
            stream.write(",".join(CSV_FIELDS) + "\n")
            stream.flush()
        return stream


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> None:
    """Attach the console and CSV handlers to the root logger once per process."""
    root_logger = logging.getLogger()
    if any(isinstance(h, CsvRotatingFileHandler) for h in root_logger.handlers):
        return

    log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    stamp = datetime.now().strftime("%Y_%m_%d")
    csv_handler = CsvRotatingFileHandler(
        filename=log_dir / f"content_engine_{stamp}.csv",
        when="midnight",
        interval=1,
        backupCount=RETENTION_DAYS,
        encoding="utf-8",
    )
    csv_handler.setFormatter(CsvFormatter(datefmt=DATE_FORMAT))
    root_logger.addHandler(csv_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
