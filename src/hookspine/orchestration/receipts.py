"""Receipt writer - persists run and evaluation results as JSON.

Layout under ``reports_dir``::

    receipts/<execution_id>.json                 one per workflow run
    evaluations/<YYYYmmddTHHMMSS>-<id8>.json      one per evaluation pass

Files are written atomically (temp file in the target directory, then
``os.replace``) so a reader never sees a partial receipt. A failed write is
logged and swallowed: receipts never change the outcome of a run.
"""

from __future__ import annotations

import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any

from hookspine.core.logging import get_logger
from hookspine.orchestration.results import EvaluationResult, ExecutionResult

logger = get_logger(__name__)


class ReceiptWriter:
    """Writes ExecutionResult / EvaluationResult receipts under one directory."""

    def __init__(self, reports_dir: Path | str):
        self.reports_dir = Path(reports_dir)

    @property
    def receipts_dir(self) -> Path:
        return self.reports_dir / "receipts"

    @property
    def evaluations_dir(self) -> Path:
        return self.reports_dir / "evaluations"

    def write_execution(self, result: ExecutionResult) -> Path | None:
        path = self.receipts_dir / f"{result.execution_id}.json"
        return self._write(path, result.to_dict(), kind="execution")

    def write_evaluation(self, result: EvaluationResult) -> Path | None:
        stamp = result.started_at.strftime("%Y%m%dT%H%M%S")
        path = self.evaluations_dir / f"{stamp}-{uuid.uuid4().hex[:8]}.json"
        return self._write(path, result.to_dict(), kind="evaluation")

    def _write(self, path: Path, payload: dict[str, Any], *, kind: str) -> Path | None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2, sort_keys=True, default=str)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("receipt.write_failed", kind=kind, path=str(path), error=str(e))
            return None

        logger.debug("receipt.written", kind=kind, path=str(path))
        return path
