"""Run report sink: a text file on disk plus one row in the remote report table."""

import json
import logging
from datetime import datetime
from pathlib import Path

from src.core.errors import StoreError
from src.core.schemas import JobType, RunReport
from src.storage.base import RecordStore

logger = logging.getLogger(__name__)


def report_filename(job_type: JobType, when: datetime) -> str:
    """``Run-Report-<type>-<ISO timestamp>.txt`` with ':' and '.' replaced by '-'."""
    stamp = when.isoformat().replace(":", "-").replace(".", "-")
    return f"Run-Report-{job_type.value}-{stamp}.txt"


def format_report_text(report: RunReport) -> str:
    lines = [
        "========================================",
        f"  {report.job_type.value.upper()} EXTRACTION REPORT",
        "========================================",
        f"Job type:           {report.job_type.value}",
        f"Run date:           {report.run_date.isoformat()}",
        f"Status:             {report.status.value}",
        f"Fingerprint:        {report.fingerprint}",
        "",
        f"Expected records:   {report.total_expected}",
        f"Processed records:  {report.total_processed}",
        f"New inserts:        {report.total_inserted}",
        f"Duplicates skipped: {report.duplicates_skipped}",
        f"Pages fetched:      {report.pages_fetched}",
    ]
    if report.error_log:
        lines += ["", f"Error: {report.error_log}"]
    lines += [
        "",
        "Filters:",
        json.dumps(report.filters, indent=2, sort_keys=True, default=str),
        "",
    ]
    return "\n".join(lines)


class ReportSink:
    """Writes each finished run to ``reports_dir`` and to the record store."""

    def __init__(self, reports_dir: str | Path, store: RecordStore) -> None:
        self._reports_dir = Path(reports_dir)
        self._store = store

    def write_local(self, report: RunReport) -> Path:
        self._reports_dir.mkdir(parents=True, exist_ok=True)
        path = self._reports_dir / report_filename(report.job_type, report.run_date)
        path.write_text(format_report_text(report), encoding="utf-8")
        return path

    async def publish(self, report: RunReport) -> Path:
        """Write the local file, then the remote row. A remote failure is only logged."""
        path = self.write_local(report)
        logger.info("Report saved to %s", path)
        try:
            await self._store.insert_run_report(report)
        except StoreError as e:
            logger.error("Failed to save remote report row: %s", e)
        return path
