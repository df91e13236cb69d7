"""Registration of captured artifacts (HAR files, screenshots, exports) as evidence."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from observability.evidence import EvidenceLedger, EvidenceRecord

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """Copies artifacts into the trace-scoped artifact directory and records evidence."""

    def __init__(self, artifacts_dir: str | Path, ledger: EvidenceLedger) -> None:
        """Initialize the registry with its storage directory and evidence ledger."""
        self.artifacts_dir = Path(artifacts_dir)
        self._ledger = ledger

    def register(
        self,
        trace_id: str,
        source_path: str | Path,
        label: str | None = None,
    ) -> EvidenceRecord:
        """Copy an artifact for a trace and record ``artifact`` evidence.

        Raises:
            FileNotFoundError: If the source file does not exist.
        """
        source = Path(source_path)
        if not source.is_file():
            raise FileNotFoundError(f"Artifact not found: {source}")

        destination_dir = self.artifacts_dir / trace_id
        destination_dir.mkdir(parents=True, exist_ok=True)
        destination = destination_dir / f"{int(time.time() * 1000)}-{source.name}"
        shutil.copy2(source, destination)
        logger.info("Artifact copied for trace %s: %s", trace_id, destination)

        metadata = {"source": str(source), "size_bytes": destination.stat().st_size}
        if label:
            metadata["label"] = label
        return self._ledger.record(
            trace_id,
            "artifact",
            str(destination.resolve()),
            "recorded",
            metadata,
        )
