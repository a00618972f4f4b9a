"""Query fingerprints: the dedup key for extraction jobs."""

import hashlib
import json
from typing import Any

from src.core.schemas import JobType


def compute_fingerprint(job_type: JobType | str, filters: dict[str, Any]) -> str:
    """Return a SHA-256 hex digest of (job_type, filters).

    Keys are sorted at every level, so dicts that differ only in key order
    produce the same fingerprint.
    """
    kind = job_type.value if isinstance(job_type, JobType) else str(job_type)
    canonical = json.dumps(
        {"job_type": kind, "filters": filters},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
