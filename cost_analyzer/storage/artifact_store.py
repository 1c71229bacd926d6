"""Deterministic, collision-free storage for tool artifacts and reports"""

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

from .schema import ArtifactKind, ArtifactReference

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[\s/\\:*?\"<>|]+")

REPORT_FILENAME = "report.md"


def subject_slug(subject: str, sub_category: str) -> str:
    """
    Build the path segment for a subject.

    Whitespace and path-unsafe characters collapse to a single underscore,
    so "Amazon Elastic Compute Cloud - Compute" in us-east-1 becomes
    "Amazon_Elastic_Compute_Cloud_-_Compute-us-east-1".
    """
    name = _UNSAFE_CHARS.sub("_", subject.strip()) or "unknown"
    category = _UNSAFE_CHARS.sub("_", sub_category.strip()) or "global"
    return f"{name}-{category}"


@dataclass(frozen=True)
class ArtifactLocation:
    """Address of one tool call's artifacts; every path derives from these four fields"""

    execution_id: str
    subject: str
    tool_name: str
    call_id: str

    def directory(self, root: Path) -> Path:
        return root / self.execution_id / self.subject / self.tool_name

    def data_path(self, root: Path) -> Path:
        return self.directory(root) / f"{self.call_id}-data.json"

    def chart_path(self, root: Path) -> Path:
        return self.directory(root) / f"{self.call_id}-chart.png"


class ArtifactStore:
    """Owns every file written beneath the output root"""

    def __init__(self, output_root: Union[str, Path]):
        """
        Initialize the artifact store.

        Args:
            output_root: Directory under which all execution folders are created
        """
        self.root = Path(output_root).resolve()
        logger.info(f"Artifact store rooted at {self.root}")

    def execution_dir(self, execution_id: str) -> Path:
        return self.root / execution_id

    def report_path(self, execution_id: str) -> Path:
        return self.execution_dir(execution_id) / REPORT_FILENAME

    def step_report_path(self, execution_id: str, subject: str, report_id: str) -> Path:
        # Several steps may share a subject; report_id keeps their reports apart
        return self.execution_dir(execution_id) / f"{subject}-{report_id}-analysis.md"

    def write_data(self, location: ArtifactLocation, datapoints: Any) -> ArtifactReference:
        """
        Persist a tool's raw datapoints as JSON.

        Args:
            location: Address of the tool call
            datapoints: JSON-serializable payload

        Returns:
            Reference to the written file
        """
        path = location.data_path(self.root)
        payload = json.dumps(datapoints, indent=2, default=str).encode("utf-8")
        self._write_atomic(path, payload)
        logger.info(f"Datapoints saved to: {path}")
        return self._reference(ArtifactKind.DATA, path, location)

    def write_chart(self, location: ArtifactLocation, image_bytes: bytes) -> ArtifactReference:
        """
        Persist a rendered chart image.

        Args:
            location: Address of the tool call
            image_bytes: PNG bytes produced by the renderer

        Returns:
            Reference to the written file
        """
        path = location.chart_path(self.root)
        self._write_atomic(path, image_bytes)
        logger.info(f"Chart saved to: {path}")
        return self._reference(ArtifactKind.CHART, path, location)

    def write_report(self, execution_id: str, markdown: str) -> ArtifactReference:
        """Write the compiled report for an execution"""
        path = self.report_path(execution_id)
        self._write_atomic(path, markdown.encode("utf-8"))
        logger.info(f"Report generated: {path}")
        return ArtifactReference(
            kind=ArtifactKind.REPORT,
            path=str(path),
            relative_path=path.relative_to(self.root).as_posix(),
            subject="*",
            execution_id=execution_id,
        )

    def write_step_report(
        self, execution_id: str, subject: str, report_id: str, markdown: str
    ) -> ArtifactReference:
        """Write the report for a single step next to the execution's artifacts"""
        path = self.step_report_path(execution_id, subject, report_id)
        self._write_atomic(path, markdown.encode("utf-8"))
        logger.info(f"Step report generated: {path}")
        return ArtifactReference(
            kind=ArtifactKind.REPORT,
            path=str(path),
            relative_path=path.relative_to(self.root).as_posix(),
            subject=subject,
            execution_id=execution_id,
        )

    def link(self, reference: ArtifactReference, from_execution_id: str) -> str:
        """Relative link to an artifact from an execution's report directory"""
        target = Path(reference.path)
        link = os.path.relpath(target, self.execution_dir(from_execution_id))
        link = Path(link).as_posix()
        return link if link.startswith("..") else f"./{link}"

    def list_artifacts(self, execution_id: str) -> List[Path]:
        """Every file persisted under an execution identity"""
        base = self.execution_dir(execution_id)
        if not base.exists():
            return []
        return sorted(p for p in base.rglob("*") if p.is_file() and not p.name.startswith("."))

    def _reference(
        self, kind: ArtifactKind, path: Path, location: ArtifactLocation
    ) -> ArtifactReference:
        return ArtifactReference(
            kind=kind,
            path=str(path),
            relative_path=path.relative_to(self.root).as_posix(),
            tool_name=location.tool_name,
            subject=location.subject,
            execution_id=location.execution_id,
            call_id=location.call_id,
        )

    def _write_atomic(self, path: Path, payload: bytes) -> None:
        # Readers see either the previous file or the complete new one
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        tmp_path: Optional[Path] = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
