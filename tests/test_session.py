# Tests for ResearchSession - the processing state machine
# Covers transitions, the file cap, reset and stale-run handling

import asyncio
from dataclasses import FrozenInstanceError
from datetime import date

import pytest

from agents.errors import (
    GENERIC_PROCESSING_ERROR,
    InputLimitError,
    InvalidTransitionError,
    LLMRequestError,
    SessionNotFoundError,
)
from agents.session import ResearchSession, SessionRegistry
from agents.state import ProcessStatus, ResultTab, UploadedDocument
from conftest import ScriptedLLMClient, analysis_payload, make_pdf
from presentation import build_markdown_report, export_filename


def record_statuses(session: ResearchSession) -> list:
    statuses = []
    session.subscribe(lambda snapshot: statuses.append(snapshot.status))
    return statuses


class TestSelection:
    """Adding and removing files."""

    def test_initial_state(self, scripted_client):
        session = ResearchSession(scripted_client)

        assert session.status == ProcessStatus.IDLE
        assert session.snapshot.files == ()
        assert session.report is None
        assert session.snapshot.active_tab == ResultTab.INDIVIDUAL

    def test_add_files_keeps_order(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)

        snapshot = session.add_files(two_pdfs)

        assert snapshot.files == ("a.pdf", "b.pdf")

    def test_non_pdf_files_are_dropped(self, scripted_client):
        session = ResearchSession(scripted_client)
        text = UploadedDocument(name="notes.txt", media_type="text/plain", content=b"x")

        snapshot = session.add_files([make_pdf("a.pdf"), text])

        assert snapshot.files == ("a.pdf",)

    def test_twenty_files_allowed(self, scripted_client):
        session = ResearchSession(scripted_client)

        snapshot = session.add_files([make_pdf(f"{i}.pdf") for i in range(20)])

        assert len(snapshot.files) == 20

    def test_exceeding_cap_leaves_selection_unchanged(self, scripted_client):
        session = ResearchSession(scripted_client)
        session.add_files([make_pdf(f"{i}.pdf") for i in range(19)])
        before = session.snapshot.files

        with pytest.raises(InputLimitError) as exc_info:
            session.add_files([make_pdf("x.pdf"), make_pdf("y.pdf")])

        assert session.snapshot.files == before
        assert session.snapshot.notice == "Limite máximo de 20 arquivos permitido."
        assert exc_info.value.attempted_total == 21

    def test_notice_cleared_by_next_valid_change(self, scripted_client):
        session = ResearchSession(scripted_client, max_files=1)
        session.add_files([make_pdf("a.pdf")])
        with pytest.raises(InputLimitError):
            session.add_files([make_pdf("b.pdf")])

        snapshot = session.remove_file(0)

        assert snapshot.notice is None

    def test_remove_file(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        session.add_files(two_pdfs)

        snapshot = session.remove_file(0)

        assert snapshot.files == ("b.pdf",)

    def test_remove_invalid_index(self, scripted_client):
        session = ResearchSession(scripted_client)

        with pytest.raises(IndexError):
            session.remove_file(0)


class TestRuns:
    """Starting runs and their outcomes."""

    @pytest.mark.asyncio
    async def test_successful_run_transitions(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        session.add_files(two_pdfs)
        statuses = record_statuses(session)

        snapshot = await session.start()

        assert snapshot.status == ProcessStatus.COMPLETED
        assert statuses[0] == ProcessStatus.EXTRACTING
        assert ProcessStatus.SYNTHESIZING in statuses
        assert statuses[-1] == ProcessStatus.COMPLETED
        assert statuses.index(ProcessStatus.SYNTHESIZING) > statuses.index(ProcessStatus.EXTRACTING)
        assert [a.filename for a in session.report.analyses] == ["a.pdf", "b.pdf"]

    @pytest.mark.asyncio
    async def test_progress_counts_documents(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        session.add_files(two_pdfs)
        progress = []
        session.subscribe(
            lambda s: progress.append((s.progress.current, s.progress.total))
            if s.status == ProcessStatus.EXTRACTING else None
        )

        await session.start()

        assert progress == [(0, 2), (1, 2), (2, 2)]

    @pytest.mark.asyncio
    async def test_failure_anywhere_yields_error_without_report(self, two_pdfs):
        client = ScriptedLLMClient(analyses=[analysis_payload("A"), LLMRequestError("boom")])
        session = ResearchSession(client)
        session.add_files(two_pdfs)

        snapshot = await session.start()

        assert snapshot.status == ProcessStatus.ERROR
        assert snapshot.error == GENERIC_PROCESSING_ERROR
        assert snapshot.report is None
        assert snapshot.files == ("a.pdf", "b.pdf")

    @pytest.mark.asyncio
    async def test_retry_after_error(self, two_pdfs):
        client = ScriptedLLMClient(
            analyses=[LLMRequestError("boom"), analysis_payload("A"), analysis_payload("B")]
        )
        session = ResearchSession(client)
        session.add_files(two_pdfs)
        await session.start()

        snapshot = await session.start()

        assert snapshot.status == ProcessStatus.COMPLETED
        assert snapshot.error is None

    @pytest.mark.asyncio
    async def test_removed_file_is_not_processed(self, scripted_client):
        session = ResearchSession(scripted_client)
        session.add_files([make_pdf("a.pdf"), make_pdf("gone.pdf"), make_pdf("b.pdf")])
        session.remove_file(1)

        await session.start()

        assert len(scripted_client.calls_for("article_analysis")) == 2
        assert [a.filename for a in session.report.analyses] == ["a.pdf", "b.pdf"]

    @pytest.mark.asyncio
    async def test_start_without_files(self, scripted_client):
        session = ResearchSession(scripted_client)

        with pytest.raises(InvalidTransitionError):
            await session.start()

        assert scripted_client.calls == []

    @pytest.mark.asyncio
    async def test_completed_session_rejects_changes(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        session.add_files(two_pdfs)
        await session.start()

        with pytest.raises(InvalidTransitionError):
            session.add_files([make_pdf("c.pdf")])
        with pytest.raises(InvalidTransitionError):
            await session.start()

    @pytest.mark.asyncio
    async def test_start_while_running_is_rejected(self, two_pdfs):
        client = ScriptedLLMClient(analyses=[analysis_payload("A"), analysis_payload("B")], hold=True)
        session = ResearchSession(client)
        session.add_files(two_pdfs)
        session.start_in_background()
        await asyncio.to_thread(client.entered.wait, 5)

        with pytest.raises(InvalidTransitionError):
            session.start_in_background()

        client.release.set()
        await session._task
        assert session.status == ProcessStatus.COMPLETED


class TestReset:
    """Reset and late results of abandoned runs."""

    @pytest.mark.asyncio
    async def test_reset_from_completed(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        session.add_files(two_pdfs)
        await session.start()

        snapshot = session.reset()

        assert snapshot.status == ProcessStatus.IDLE
        assert snapshot.files == ()
        assert snapshot.report is None
        assert snapshot.error is None

    @pytest.mark.asyncio
    async def test_reset_from_error(self, two_pdfs):
        session = ResearchSession(ScriptedLLMClient(analyses=[LLMRequestError("boom")]))
        session.add_files(two_pdfs)
        await session.start()

        snapshot = session.reset()

        assert snapshot.status == ProcessStatus.IDLE
        assert snapshot.error is None
        assert snapshot.files == ()

    @pytest.mark.asyncio
    async def test_late_results_after_reset_are_discarded(self):
        client = ScriptedLLMClient(analyses=[analysis_payload("A")], hold=True)
        session = ResearchSession(client)
        session.add_files([make_pdf("a.pdf")])
        session.start_in_background()
        await asyncio.to_thread(client.entered.wait, 5)

        session.reset()
        client.release.set()
        await session._task

        assert session.status == ProcessStatus.IDLE
        assert session.report is None
        assert client.calls_for("synthesis") == []


class TestSnapshots:
    """Observer contract."""

    def test_versions_increase(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        versions = []
        session.subscribe(lambda s: versions.append(s.version))

        session.add_files(two_pdfs)
        session.remove_file(0)
        session.select_tab("matrix")

        assert versions == sorted(versions)
        assert len(set(versions)) == 3

    def test_snapshots_are_immutable(self, scripted_client):
        session = ResearchSession(scripted_client)

        with pytest.raises(FrozenInstanceError):
            session.snapshot.status = ProcessStatus.COMPLETED

    def test_unsubscribe(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)
        seen = []
        listener = session.subscribe(seen.append)
        session.unsubscribe(listener)

        session.add_files(two_pdfs)

        assert seen == []

    def test_failing_listener_does_not_break_transition(self, scripted_client, two_pdfs):
        session = ResearchSession(scripted_client)

        def broken(snapshot):
            raise RuntimeError("listener down")

        session.subscribe(broken)
        snapshot = session.add_files(two_pdfs)

        assert snapshot.files == ("a.pdf", "b.pdf")

    def test_select_tab(self, scripted_client):
        session = ResearchSession(scripted_client)

        assert session.select_tab(ResultTab.SYNTHESIS).active_tab == ResultTab.SYNTHESIS

    def test_select_unknown_tab(self, scripted_client):
        with pytest.raises(ValueError):
            ResearchSession(scripted_client).select_tab("charts")


class TestEndToEnd:
    """Two PDFs through analysis, synthesis and export."""

    @pytest.mark.asyncio
    async def test_two_pdf_example(self):
        common = {"authors": "X", "year": "2020", "problem": "p1", "methodology": "m1",
                  "findings": "f1", "critique": "c1"}
        client = ScriptedLLMClient(
            analyses=[{"title": "A", **common}, {"title": "B", **common}],
            synthesis={"matrix": "| A | B |\n|---|---|\n| x | y |", "narrative": "n1", "conflicts": "c1"},
        )
        session = ResearchSession(client)
        session.add_files([make_pdf("a.pdf"), make_pdf("b.pdf")])

        snapshot = await session.start()

        assert snapshot.status == ProcessStatus.COMPLETED
        assert [a.title for a in snapshot.report.analyses] == ["A", "B"]

        markdown = build_markdown_report(snapshot.report)
        assert "### Artigo 1: A" in markdown
        assert "### Artigo 2: B" in markdown
        assert markdown.index("### Artigo 1: A") < markdown.index("### Artigo 2: B")
        assert build_markdown_report(snapshot.report) == markdown
        assert export_filename(date(2024, 5, 1)) == export_filename(date(2024, 5, 1))


class TestSessionRegistry:
    """Tests for the in-memory registry."""

    def test_create_and_get(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client)

        session = registry.create()

        assert registry.get(session.session_id) is session
        assert len(registry) == 1

    def test_unknown_session(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client)

        with pytest.raises(SessionNotFoundError):
            registry.get("nope")

    def test_discard(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client)
        session = registry.create()

        registry.discard(session.session_id)

        assert len(registry) == 0

    def test_discard_unknown_session(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client)

        assert registry.discard("nope") is False

    def test_discard_releases_documents_and_listeners(self, scripted_client, two_pdfs):
        registry = SessionRegistry(lambda: scripted_client)
        session = registry.create()
        session.add_files(two_pdfs)
        seen = []
        session.subscribe(seen.append)

        assert registry.discard(session.session_id) is True

        assert session.documents == ()
        session.select_tab("matrix")
        assert seen == []

    def test_evict_idle_sessions(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client, idle_ttl=60)
        stale = registry.create()
        fresh = registry.create()
        fresh.last_activity = stale.last_activity + 50

        evicted = registry.evict_idle(now=stale.last_activity + 61)

        assert evicted == [stale.session_id]
        assert registry.get(fresh.session_id) is fresh
        with pytest.raises(SessionNotFoundError):
            registry.get(stale.session_id)

    def test_evict_idle_respects_keep(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client, idle_ttl=60)
        session = registry.create()

        evicted = registry.evict_idle(
            now=session.last_activity + 120, keep=lambda sid: sid == session.session_id
        )

        assert evicted == []
        assert len(registry) == 1

    def test_no_eviction_without_ttl(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client)
        session = registry.create()

        assert registry.evict_idle(now=session.last_activity + 10**6) == []

    def test_get_refreshes_activity(self, scripted_client):
        registry = SessionRegistry(lambda: scripted_client, idle_ttl=60)
        session = registry.create()
        session.last_activity -= 3600

        registry.get(session.session_id)

        assert registry.evict_idle() == []

    @pytest.mark.asyncio
    async def test_late_result_of_closed_session_is_dropped(self, two_pdfs):
        client = ScriptedLLMClient(
            analyses=[analysis_payload("A"), analysis_payload("B")], hold=True
        )
        registry = SessionRegistry(lambda: client)
        session = registry.create()
        session.add_files(two_pdfs)
        run_id = session.begin_run()
        seen = []
        session.subscribe(seen.append)

        task = asyncio.create_task(session.execute_run(run_id))
        await asyncio.to_thread(client.entered.wait, 5)
        registry.discard(session.session_id)
        client.release.set()
        await task

        assert session.status == ProcessStatus.EXTRACTING
        assert session.report is None
        assert seen == []
