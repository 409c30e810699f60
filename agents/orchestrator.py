# Synthesis Orchestrator - LangGraph State Machine
# Runs the per-document extraction loop and the final synthesis call

import asyncio
import logging
from collections.abc import Callable
from typing import Literal

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from agents.analyzer import ArticleAnalyzerAgent
from agents.errors import ProcessingError
from agents.observability import trace_step
from agents.schemas import SynthesisReport
from agents.state import ProcessStatus, RunState, UploadedDocument, create_initial_run_state
from agents.synthesizer import SynthesisAgent

logger = logging.getLogger(__name__)

# (run_id, status, current, total)
ProgressCallback = Callable[[int, ProcessStatus, int, int], None]


class SynthesisOrchestrator:
    """
    Orchestrates one run using LangGraph.

    ┌─────────┐  extracted   ┌────────────┐
    │ extract │─────────────▶│ synthesize │──▶ END
    └────┬────┘              └────────────┘
         │ error / abandoned
         └──────────────────────────────────▶ END

    - Documents are analyzed strictly one at a time, in selection order.
    - The first failing document ends the run; remaining documents are skipped.
    - ``is_active(run_id)`` lets the owner abandon a run (e.g. after a reset);
      an abandoned run stops before its next request and reports nothing.
    """

    def __init__(
        self,
        llm_client,
        progress_callback: ProgressCallback | None = None,
        is_active: Callable[[int], bool] | None = None,
    ):
        self.llm_client = llm_client
        self.progress_callback = progress_callback
        self.is_active = is_active or (lambda run_id: True)

        self.analyzer = ArticleAnalyzerAgent(llm_client)
        self.synthesizer = SynthesisAgent(llm_client)

        self.graph = self._build_graph()

    def _build_graph(self) -> CompiledStateGraph:
        workflow = StateGraph(RunState)

        workflow.add_node("extract", self._run_extract)
        workflow.add_node("synthesize", self._run_synthesize)

        workflow.set_entry_point("extract")
        workflow.add_conditional_edges(
            "extract",
            self._should_synthesize,
            {"synthesize": "synthesize", "end": END},
        )
        workflow.add_edge("synthesize", END)

        return workflow.compile()

    def _should_synthesize(self, state: RunState) -> Literal["synthesize", "end"]:
        if state["status"] == "extracted":
            return "synthesize"
        logger.info(f"Run {state['run_id']} ends after extraction (status: {state['status']})")
        return "end"

    @trace_step("extract", "analyze_documents")
    async def _run_extract(self, state: RunState) -> RunState:
        run_id = state["run_id"]
        documents = state["documents"]
        total = len(documents)
        analyses = []

        for index, document in enumerate(documents, start=1):
            if not self.is_active(run_id):
                logger.info(f"Run {run_id} abandoned before document {index}/{total}")
                return {**state, "analyses": analyses, "status": "abandoned"}

            self._report_progress(run_id, ProcessStatus.EXTRACTING, index, total)
            logger.info(f"Analyzing document {index}/{total}: {document.name}")

            try:
                analysis = await asyncio.to_thread(self.analyzer.analyze, document)
            except ProcessingError as e:
                logger.error(f"Run {run_id} failed on document {index}/{total}: {e}")
                return {**state, "analyses": analyses, "status": "error", "error": str(e)}

            analyses.append(analysis)

        return {**state, "analyses": analyses, "status": "extracted"}

    @trace_step("synthesize", "synthesize_report")
    async def _run_synthesize(self, state: RunState) -> RunState:
        run_id = state["run_id"]
        analyses = state["analyses"]

        if not self.is_active(run_id):
            logger.info(f"Run {run_id} abandoned before synthesis")
            return {**state, "status": "abandoned"}

        self._report_progress(run_id, ProcessStatus.SYNTHESIZING, len(analyses), len(analyses))

        try:
            content = await asyncio.to_thread(self.synthesizer.synthesize, analyses)
        except ProcessingError as e:
            logger.error(f"Run {run_id} failed during synthesis: {e}")
            return {**state, "status": "error", "error": str(e)}

        report = SynthesisReport(
            analyses=tuple(analyses),
            matrix_markdown=content.matrix,
            narrative_synthesis=content.narrative,
            conflicts=content.conflicts,
        )
        return {**state, "report": report, "status": "completed"}

    def _report_progress(self, run_id: int, status: ProcessStatus, current: int, total: int):
        """Report progress through the callback if available."""
        if self.progress_callback:
            try:
                self.progress_callback(run_id, status, current, total)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    async def run(self, run_id: int, documents: list[UploadedDocument]) -> RunState:
        """
        Run extraction and synthesis over ``documents``.

        Returns:
            Final RunState; ``status`` is "completed", "error" or "abandoned"
        """
        initial_state = create_initial_run_state(run_id, documents)
        logger.info(f"Starting run {run_id} over {len(documents)} documents")

        try:
            final_state = await self.graph.ainvoke(initial_state)
        except Exception as e:
            logger.error(f"Run {run_id} crashed: {e}", exc_info=True)
            return {**initial_state, "status": "error", "error": str(e)}

        logger.info(
            f"Run {run_id} finished with status '{final_state['status']}' "
            f"({len(final_state['analyses'])}/{len(documents)} documents analyzed)"
        )
        return final_state


def create_orchestrator(llm_client, progress_callback=None, is_active=None) -> SynthesisOrchestrator:
    """Factory function to create a SynthesisOrchestrator."""
    return SynthesisOrchestrator(llm_client, progress_callback, is_active)
