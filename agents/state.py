# Session and Run State Definitions
# Defines the immutable snapshots exposed to presentation and the state that flows through the run graph

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, TypedDict

from agents.errors import DocumentReadError
from agents.schemas import ArticleAnalysis, SynthesisReport

PDF_MEDIA_TYPE = "application/pdf"


class ProcessStatus(str, Enum):
    """Processing states of a session."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    ERROR = "error"


class ResultTab(str, Enum):
    """Result views offered once a run completed."""

    INDIVIDUAL = "individual"
    MATRIX = "matrix"
    SYNTHESIS = "synthesis"


@dataclass(frozen=True)
class UploadedDocument:
    """
    A user-selected file.

    Either ``content`` holds the uploaded bytes or ``path`` points to a file
    that is read on demand.
    """

    name: str
    media_type: str
    content: bytes | None = field(default=None, repr=False)
    path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path, media_type: str = PDF_MEDIA_TYPE) -> "UploadedDocument":
        path = Path(path)
        return cls(name=path.name, media_type=media_type, path=path)

    @property
    def is_pdf(self) -> bool:
        return self.media_type == PDF_MEDIA_TYPE

    def read(self) -> bytes:
        """Return the raw bytes of the document."""
        if self.content is not None:
            return self.content
        if self.path is None:
            raise DocumentReadError(f"Document '{self.name}' has no content")
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise DocumentReadError(f"Could not read '{self.name}': {e}") from e


@dataclass(frozen=True)
class Progress:
    """Extraction progress; only meaningful while extracting."""

    current: int = 0
    total: int = 0

    @property
    def percent(self) -> float:
        return (self.current / self.total) * 100 if self.total else 0.0


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Immutable view of a session at one version.

    Every transition of a session produces a new snapshot; subscribers and the
    presentation layer only ever see these.
    """

    session_id: str
    version: int
    status: ProcessStatus
    progress: Progress
    files: tuple[str, ...]
    report: SynthesisReport | None = None
    error: str | None = None
    notice: str | None = None
    active_tab: ResultTab = ResultTab.INDIVIDUAL
    updated_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "session_id": self.session_id,
            "version": self.version,
            "status": self.status.value,
            "progress": {
                "current": self.progress.current,
                "total": self.progress.total,
                "percent": round(self.progress.percent, 1),
            },
            "files": list(self.files),
            "has_report": self.report is not None,
            "error": self.error,
            "notice": self.notice,
            "active_tab": self.active_tab.value,
            "updated_at": self.updated_at,
        }


SnapshotListener = Callable[[SessionSnapshot], None]


class RunState(TypedDict):
    """The state that flows through the run graph."""

    run_id: int
    documents: list[UploadedDocument]
    analyses: list[ArticleAnalysis]
    report: SynthesisReport | None
    status: str  # "running", "extracted", "completed", "error", "abandoned"
    error: str | None


def create_initial_run_state(run_id: int, documents: list[UploadedDocument]) -> RunState:
    """Factory function to create a properly initialized RunState."""
    return RunState(
        run_id=run_id,
        documents=list(documents),
        analyses=[],
        report=None,
        status="running",
        error=None,
    )
