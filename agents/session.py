# Research Session - owner of the processing state
# All mutations go through transition methods; every transition publishes a new immutable snapshot

import asyncio
import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import replace
from uuid import uuid4

import config
from agents.errors import (
    FILE_LIMIT_NOTICE,
    GENERIC_PROCESSING_ERROR,
    InputLimitError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from agents.observability import tracer
from agents.orchestrator import SynthesisOrchestrator
from agents.schemas import SynthesisReport
from agents.state import (
    ProcessStatus,
    Progress,
    ResultTab,
    SessionSnapshot,
    SnapshotListener,
    UploadedDocument,
)

logger = logging.getLogger(__name__)

EDITABLE_STATES = (ProcessStatus.IDLE, ProcessStatus.ERROR)
RUNNING_STATES = (ProcessStatus.EXTRACTING, ProcessStatus.SYNTHESIZING)


class ResearchSession:
    """
    The in-memory equivalent of one page session.

    State machine:

        idle ──start──▶ extracting ──▶ synthesizing ──▶ completed
                            │               │
                            └──────┬────────┘
                                   ▼
                                 error ──start──▶ extracting

    ``reset`` returns to idle from any state. A run in flight is not
    cancelled; its late results are dropped because they belong to an older
    run id.
    """

    def __init__(self, llm_client, session_id: str | None = None, max_files: int | None = None):
        self.session_id = session_id or uuid4().hex
        self.max_files = max_files or config.MAX_FILES

        self._documents: tuple[UploadedDocument, ...] = ()
        self._listeners: list[SnapshotListener] = []
        self._lock = threading.Lock()
        self._run_id = 0
        self._task: asyncio.Task | None = None
        self.last_activity = time.monotonic()

        self._snapshot = SessionSnapshot(
            session_id=self.session_id,
            version=0,
            status=ProcessStatus.IDLE,
            progress=Progress(),
            files=(),
        )

        self.orchestrator = SynthesisOrchestrator(
            llm_client,
            progress_callback=self._on_progress,
            is_active=self._is_active_run,
        )

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def status(self) -> ProcessStatus:
        return self._snapshot.status

    @property
    def report(self) -> SynthesisReport | None:
        return self._snapshot.report

    @property
    def documents(self) -> tuple[UploadedDocument, ...]:
        return self._documents

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: SnapshotListener) -> SnapshotListener:
        """Register a listener called with every new snapshot. Returns the listener."""
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, **changes) -> SessionSnapshot:
        with self._lock:
            self._snapshot = replace(
                self._snapshot,
                version=self._snapshot.version + 1,
                files=tuple(doc.name for doc in self._documents),
                **changes,
            )
            snapshot = self._snapshot
        self.touch()

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning(f"Snapshot listener failed for session {self.session_id}: {e}")
        return snapshot

    # =========================================================================
    # Transitions
    # =========================================================================

    def add_files(self, documents: Iterable[UploadedDocument]) -> SessionSnapshot:
        """
        Add a batch of files to the selection.

        Non-PDF files are silently dropped. If the batch would take the
        selection above ``max_files``, nothing is added, a notice is published
        and InputLimitError is raised.
        """
        self._require(EDITABLE_STATES, "add files")

        accepted = [doc for doc in documents if doc.is_pdf]
        attempted_total = len(self._documents) + len(accepted)

        if attempted_total > self.max_files:
            logger.info(
                f"Session {self.session_id}: rejected {len(accepted)} files "
                f"({attempted_total} > {self.max_files})"
            )
            self._publish(notice=FILE_LIMIT_NOTICE.format(limit=self.max_files))
            raise InputLimitError(self.max_files, attempted_total)

        self._documents = self._documents + tuple(accepted)
        return self._publish(notice=None)

    def remove_file(self, index: int) -> SessionSnapshot:
        self._require(EDITABLE_STATES, "remove files")

        if not 0 <= index < len(self._documents):
            raise IndexError(f"No selected file at index {index}")

        removed = self._documents[index]
        self._documents = self._documents[:index] + self._documents[index + 1:]
        logger.info(f"Session {self.session_id}: removed '{removed.name}'")
        return self._publish(notice=None)

    def select_tab(self, tab: ResultTab | str) -> SessionSnapshot:
        return self._publish(active_tab=ResultTab(tab))

    def begin_run(self) -> int:
        """
        Enter the extracting state for the current selection.

        Returns:
            The id of the new run, to be passed to ``execute_run``
        """
        self._require(EDITABLE_STATES, "start")
        if not self._documents:
            raise InvalidTransitionError("start without files", self.status.value)

        self._run_id += 1
        self._publish(
            status=ProcessStatus.EXTRACTING,
            progress=Progress(0, len(self._documents)),
            report=None,
            error=None,
            notice=None,
        )
        return self._run_id

    async def execute_run(self, run_id: int) -> SessionSnapshot:
        """Drive the run started by ``begin_run`` to completed or error."""
        documents = list(self._documents)

        try:
            with tracer.trace_operation(
                "synthesis_run", session_id=self.session_id, run_id=run_id, documents=len(documents)
            ):
                final_state = await self.orchestrator.run(run_id, documents)
        except Exception as e:
            logger.error(f"Session {self.session_id}: run {run_id} crashed: {e}", exc_info=True)
            final_state = {"status": "error", "error": str(e), "report": None}

        if not self._is_active_run(run_id):
            logger.info(f"Session {self.session_id}: discarding result of stale run {run_id}")
            return self._snapshot

        if final_state["status"] == "completed":
            return self._publish(
                status=ProcessStatus.COMPLETED,
                progress=Progress(),
                report=final_state["report"],
                active_tab=ResultTab.INDIVIDUAL,
            )

        logger.error(
            f"Session {self.session_id}: run {run_id} failed: {final_state.get('error')}"
        )
        return self._publish(
            status=ProcessStatus.ERROR,
            progress=Progress(),
            report=None,
            error=GENERIC_PROCESSING_ERROR,
        )

    async def start(self) -> SessionSnapshot:
        """Start a run and wait for it to finish."""
        run_id = self.begin_run()
        return await self.execute_run(run_id)

    def start_in_background(self) -> SessionSnapshot:
        """Start a run as an asyncio task on the running loop; returns the extracting snapshot."""
        run_id = self.begin_run()
        snapshot = self._snapshot
        self._task = asyncio.get_running_loop().create_task(self.execute_run(run_id))
        return snapshot

    def reset(self) -> SessionSnapshot:
        """Discard files, report, error and progress and return to idle."""
        self._run_id += 1
        self._documents = ()
        logger.info(f"Session {self.session_id}: reset")
        return self._publish(
            status=ProcessStatus.IDLE,
            progress=Progress(),
            report=None,
            error=None,
            notice=None,
            active_tab=ResultTab.INDIVIDUAL,
        )

    # =========================================================================
    # Orchestrator callbacks
    # =========================================================================

    def _is_active_run(self, run_id: int) -> bool:
        return run_id == self._run_id and self.status in RUNNING_STATES

    def _on_progress(self, run_id: int, status: ProcessStatus, current: int, total: int) -> None:
        if not self._is_active_run(run_id):
            return
        if status == ProcessStatus.SYNTHESIZING:
            self._publish(status=status, progress=Progress())
        else:
            self._publish(status=status, progress=Progress(current, total))

    def _require(self, allowed: tuple[ProcessStatus, ...], action: str) -> None:
        if self.status not in allowed:
            raise InvalidTransitionError(action, self.status.value)

    # =========================================================================
    # Lifetime
    # =========================================================================

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def close(self) -> None:
        """
        Release everything the session holds once its page session is over.

        A run in flight keeps its request but its result is never published.
        """
        self._run_id += 1
        self._documents = ()
        self._listeners.clear()
        logger.info(f"Session {self.session_id}: closed")


class SessionRegistry:
    """
    In-memory registry of live sessions. Nothing survives a restart.

    Sessions leave the registry when they are discarded explicitly or, with
    ``idle_ttl`` set, when ``evict_idle`` finds them untouched for longer than
    that many seconds.
    """

    def __init__(self, client_factory, idle_ttl: float | None = None):
        self._client_factory = client_factory
        self.idle_ttl = idle_ttl
        self._sessions: dict[str, ResearchSession] = {}

    def create(self) -> ResearchSession:
        session = ResearchSession(self._client_factory())
        self._sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id}")
        return session

    def get(self, session_id: str) -> ResearchSession:
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        session.touch()
        return session

    def discard(self, session_id: str) -> bool:
        """Close and forget a session. Returns False if it was not registered."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def evict_idle(self, now: float | None = None, keep=None) -> list[str]:
        """
        Discard every session idle for longer than ``idle_ttl``.

        Args:
            now: Monotonic clock reading to compare against (defaults to now)
            keep: Optional predicate on the session id; sessions it accepts stay

        Returns:
            The ids of the evicted sessions
        """
        if not self.idle_ttl:
            return []

        now = time.monotonic() if now is None else now
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_activity > self.idle_ttl
            and not (keep and keep(session_id))
        ]
        for session_id in expired:
            self.discard(session_id)

        if expired:
            logger.info(f"Evicted {len(expired)} idle sessions")
        return expired

    def __len__(self) -> int:
        return len(self._sessions)
