# Synthesis Agent
# Role: Combines all article analyses into a comparative matrix, a narrative synthesis and a conflicts section

from collections.abc import Sequence

from pydantic import ValidationError

from agents.base import BaseAgent
from agents.errors import ProcessingError, ResponseParseError, SynthesisError
from agents.prompts import SYNTHESIS_SCHEMA, build_synthesis_prompt
from agents.schemas import ArticleAnalysis, SynthesisContent


class SynthesisAgent(BaseAgent):
    """Synthesis requestor: every analysis of a run in, three text artifacts out."""

    def __init__(self, llm_client):
        super().__init__(llm_client, name="synthesizer")

    def synthesize(self, analyses: Sequence[ArticleAnalysis]) -> SynthesisContent:
        if not analyses:
            raise SynthesisError("Nothing to synthesize: no analyses")

        prompt = build_synthesis_prompt(list(analyses))

        try:
            data = self._call_llm(prompt, SYNTHESIS_SCHEMA, task_type="synthesis")
            content = SynthesisContent.model_validate(data)
        except ValidationError as e:
            cause = ResponseParseError(f"Synthesis response does not match schema: {e}")
            raise SynthesisError("Synthesis failed", cause) from e
        except ProcessingError as e:
            raise SynthesisError("Synthesis failed", e) from e
        except Exception as e:
            self.logger.error("Unexpected error during synthesis", exc_info=True)
            raise SynthesisError("Synthesis failed", e) from e

        self.logger.info(f"Synthesized {len(analyses)} analyses")
        return content
