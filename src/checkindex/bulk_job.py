"""
Bulk Job Manager for the checkindex system.

Accepts a CSV list of domains, checks them in the background in batches of
10 and exports the results as CSV, preserving any extra columns of the
uploaded file.
"""

import asyncio
import re
import uuid
from typing import Optional, Union

from .domain import normalize_domain
from .enums import JobStatus
from .models import BulkJob, BulkJobResult, iso_timestamp
from .orchestrator import CheckOrchestrator
from .scheduler import Clock, SystemClock

MAX_DOMAINS = 10_000
MAX_FILE_SIZE = 5 * 1024 * 1024
BATCH_SIZE = 10

_SEPARATORS = frozenset({",", ";", "\t"})
_LINE_SPLIT = re.compile(r"\r?\n")
_HEADER_PATTERN = re.compile(r"^(domain|url|site|host|name)", re.IGNORECASE)
EXPORT_COLUMNS = ["domain", "indexed", "confidence", "method"]


def parse_csv(text: str) -> list[list[str]]:
    """
    Parse CSV text into rows of trimmed cells.

    Blank lines are dropped. Commas, semicolons and tabs separate cells
    outside double quotes; quote characters themselves are not kept.
    """
    rows = []
    for line in _LINE_SPLIT.split(text):
        if not line.strip():
            continue

        cells = []
        current = []
        in_quotes = False
        for ch in line:
            if ch == '"':
                in_quotes = not in_quotes
            elif ch in _SEPARATORS and not in_quotes:
                cells.append("".join(current).strip())
                current = []
            else:
                current.append(ch)
        cells.append("".join(current).strip())
        rows.append(cells)
    return rows


def is_header_row(row: list[str]) -> bool:
    """A first row whose first cell is not domain-like is a header."""
    first = row[0] if row else ""
    return "." not in first or bool(_HEADER_PATTERN.match(first))


def _csv_field(value: str) -> str:
    return f'"{value}"' if "," in value else value


class BulkJobManager:
    """
    Creates bulk jobs and processes them as detached asyncio tasks.

    Jobs live in memory for the lifetime of the manager.
    """

    def __init__(
        self,
        orchestrator: CheckOrchestrator,
        logger=None,
        clock: Optional[Clock] = None,
    ) -> None:
        """
        Initialize the bulk job manager.

        Args:
            orchestrator: Performs the per-domain checks
            logger: Optional audit logger
            clock: Time source for job timestamps
        """
        self._orchestrator = orchestrator
        self._logger = logger
        self._clock = clock or SystemClock()
        self._jobs: dict[str, BulkJob] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def create_job(self, csv_text: str) -> Union[BulkJob, str]:
        """
        Validate a CSV upload and start processing it.

        Must be called from a running event loop.

        Args:
            csv_text: Raw CSV; the first column holds the domains

        Returns:
            The job (status ``processing``), or an error message
        """
        if len(csv_text.encode("utf-8")) > MAX_FILE_SIZE:
            return f"File too large (max {MAX_FILE_SIZE} bytes)"

        rows = parse_csv(csv_text)
        if not rows:
            return "CSV is empty"

        headers: list[str] = []
        if is_header_row(rows[0]):
            headers = rows[0]
            rows = rows[1:]

        if not rows:
            return "No data rows found"
        if len(rows) > MAX_DOMAINS:
            return f"Too many domains (max {MAX_DOMAINS})"

        domains: list[str] = []
        extras: dict[str, list[str]] = {}
        seen = set()
        for row in rows:
            raw = row[0] if row else ""
            if not raw:
                continue
            domain = normalize_domain(raw)
            if domain in seen:
                continue
            seen.add(domain)
            domains.append(domain)
            if len(row) > 1:
                extras[domain] = row[1:]

        if not domains:
            return "No valid domains found"

        job = BulkJob(
            id=str(uuid.uuid4()),
            total=len(domains),
            created_at=iso_timestamp(self._clock.now()),
            extras=extras,
            headers=headers,
        )
        self._jobs[job.id] = job

        job.status = JobStatus.PROCESSING
        self._tasks[job.id] = asyncio.get_running_loop().create_task(
            self._process(job, domains)
        )

        self._log_info(
            f"Bulk job {job.id} created",
            {"job_id": job.id, "total": job.total},
        )
        return job

    def get_job(self, job_id: str) -> Optional[BulkJob]:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[BulkJob]:
        return list(self._jobs.values())

    async def wait(self, job_id: str) -> Optional[BulkJob]:
        """Wait for a job's background task to finish and return the job."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._jobs.get(job_id)

    async def _process(self, job: BulkJob, domains: list[str]) -> None:
        try:
            for start in range(0, len(domains), BATCH_SIZE):
                batch = domains[start:start + BATCH_SIZE]
                results = await asyncio.gather(
                    *(self._orchestrator.check(domain) for domain in batch)
                )

                for domain, result in zip(batch, results):
                    job.results.append(BulkJobResult(
                        domain=domain,
                        indexed=result.indexed,
                        confidence=result.confidence.value,
                        method=result.method.value,
                    ))
                    job.processed += 1

            job.status = JobStatus.COMPLETED
            job.completed_at = iso_timestamp(self._clock.now())
            self._log_info(
                f"Bulk job {job.id} completed",
                {"job_id": job.id, "processed": job.processed},
            )
        except Exception as e:
            job.status = JobStatus.FAILED
            job.completed_at = iso_timestamp(self._clock.now())
            if self._logger:
                self._logger.log_error(
                    "BulkJobManager",
                    f"Bulk job {job.id} failed",
                    error=e,
                    additional_data={"job_id": job.id, "processed": job.processed},
                )
        finally:
            self._tasks.pop(job.id, None)

    def export_csv(self, job: BulkJob) -> str:
        """
        Export job results as CSV text.

        Extra columns of the upload follow the four result columns, headed
        by the original header names when a header row was present.
        """
        columns = list(EXPORT_COLUMNS)
        if job.extras and len(job.headers) > 1:
            columns.extend(job.headers[1:])

        lines = [",".join(columns)]
        for result in job.results:
            row = [
                result.domain,
                "true" if result.indexed else "false",
                result.confidence,
                result.method,
            ]
            row.extend(job.extras.get(result.domain, []))
            lines.append(",".join(_csv_field(value) for value in row))

        return "\n".join(lines)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info("BulkJobManager", message, data)
