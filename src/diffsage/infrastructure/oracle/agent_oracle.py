"""pydantic-ai backed implementation of the review oracle."""

from __future__ import annotations

import logging

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from pydantic import BaseModel, Field
from pydantic_ai.exceptions import ModelHTTPError

from diffsage.domain.llm.value_objects import LLMUsage, ModelConfig, RunUsage
from diffsage.domain.review.entities import Finding, ReviewFile
from diffsage.domain.review.value_objects import ReviewSummary
from diffsage.infrastructure.llm_providers.factory import create_agent
from diffsage.infrastructure.oracle.prompts import (
    OBJECTIVE_SYSTEM_PROMPT,
    REVIEW_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    TITLE_SYSTEM_PROMPT,
    WALKTHROUGH_SYSTEM_PROMPT,
    render_changes,
    render_findings,
    render_review_files,
)
from diffsage.shared.constants import RETRYABLE_MESSAGE_MARKERS, RETRYABLE_STATUS_CODES
from diffsage.shared.exceptions import TransientOracleError
from diffsage.shared.types import FilePath, FindingCategory

logger = logging.getLogger(__name__)

# =============================================================================
# OUTPUT SCHEMAS
# =============================================================================


class TitleOutput(BaseModel):
    title: str = Field(description="A concise, descriptive title for the changes.")


class ObjectiveOutput(BaseModel):
    objective: str = Field(description="A one-sentence objective for the changes.")


class WalkthroughOutput(BaseModel):
    walkthrough: str = Field(
        description="A step-by-step walkthrough of the changes in Markdown."
    )


class FindingOutput(BaseModel):
    """One review comment as produced by the model."""

    path: str
    start_line: int
    end_line: int
    body: str
    category: str
    replacements: list[str] = []
    implementation_instruction: str | None = None


class FindingsOutput(BaseModel):
    findings: list[FindingOutput] = []


class SummaryOutput(BaseModel):
    summary: str = Field(description="A Markdown summary of the review findings.")
    short_summary: str = Field(description="A one-sentence summary of the review.")


_CATEGORY_MAP: dict[str, FindingCategory] = {
    "bug": FindingCategory.BUG,
    "potential_issue": FindingCategory.BUG,
    "structural-improvement": FindingCategory.STRUCTURAL_IMPROVEMENT,
    "refactor_suggestion": FindingCategory.STRUCTURAL_IMPROVEMENT,
    "style-nit": FindingCategory.STYLE_NIT,
    "nitpick": FindingCategory.STYLE_NIT,
    "confirmation": FindingCategory.CONFIRMATION,
    "verification": FindingCategory.CONFIRMATION,
    "other": FindingCategory.OTHER,
}


def to_category(raw: str) -> FindingCategory:
    """Map a model-supplied category string, defaulting to OTHER."""
    return _CATEGORY_MAP.get(raw.strip().lower(), FindingCategory.OTHER)


def to_finding(output: FindingOutput) -> Finding:
    return Finding(
        path=FilePath(output.path),
        start_line=output.start_line,
        end_line=output.end_line,
        body=output.body,
        category=to_category(output.category),
        replacements=tuple(output.replacements),
        implementation_instruction=output.implementation_instruction or None,
    )


_OVERLOAD_STATUS_CODES = frozenset({503, 529})


def to_transient_error(operation: str, error: Exception) -> TransientOracleError:
    """Classify a raw model failure as retryable or not."""
    reason = str(error) or type(error).__name__
    lowered = reason.lower()
    overloaded = "overloaded" in lowered
    if isinstance(error, ModelHTTPError):
        retryable = error.status_code in RETRYABLE_STATUS_CODES
        overloaded = overloaded or error.status_code in _OVERLOAD_STATUS_CODES
        reason = f"HTTP {error.status_code}: {reason}"
    else:
        retryable = any(marker in lowered for marker in RETRYABLE_MESSAGE_MARKERS)
    return TransientOracleError(
        operation, reason, retryable=retryable, overloaded=overloaded
    )


# =============================================================================
# ORACLE
# =============================================================================


@dataclass
class AgentOracle:
    """Review oracle that asks a pydantic-ai Agent for each piece of content.

    The provider is fixed by ``config.model`` (a pydantic-ai model string).
    Every failure is raised as ``TransientOracleError``; retrying is left to
    the caller.
    """

    config: ModelConfig
    output_retries: int = 3
    _usage: LLMUsage = field(default_factory=LLMUsage, init=False)

    @property
    def usage(self) -> LLMUsage:
        """Token usage accumulated over every completed call."""
        return self._usage

    async def title(self, files: Sequence[ReviewFile]) -> str:
        output = await self._run(
            "title", TitleOutput, TITLE_SYSTEM_PROMPT, render_changes(files)
        )
        return output.title

    async def objective(self, files: Sequence[ReviewFile]) -> str:
        output = await self._run(
            "objective", ObjectiveOutput, OBJECTIVE_SYSTEM_PROMPT, render_changes(files)
        )
        return output.objective

    async def walkthrough(self, files: Sequence[ReviewFile]) -> str:
        output = await self._run(
            "walkthrough",
            WalkthroughOutput,
            WALKTHROUGH_SYSTEM_PROMPT,
            render_changes(files),
        )
        return output.walkthrough

    async def findings_batch(self, files: Sequence[ReviewFile]) -> list[Finding]:
        output = await self._run(
            "findings_batch",
            FindingsOutput,
            REVIEW_SYSTEM_PROMPT,
            render_review_files(files),
        )
        return [to_finding(item) for item in output.findings]

    async def findings_stream(self, files: Sequence[ReviewFile]) -> AsyncIterator[Finding]:
        """Yield findings as the model writes them.

        A finding is yielded once the model has moved on to the next one, so
        only complete items are ever produced; the trailing item is yielded
        when the run finishes.
        """
        agent = create_agent(
            config=self.config,
            output_type=FindingsOutput,
            system_prompt=REVIEW_SYSTEM_PROMPT,
            output_retries=self.output_retries,
            name="findings_stream",
        )
        emitted = 0
        try:
            async with agent.run_stream(render_review_files(files)) as result:
                async for partial in result.stream_output(debounce_by=None):
                    complete = partial.findings[:-1]
                    while emitted < len(complete):
                        yield to_finding(complete[emitted])
                        emitted += 1
                final = await result.get_output()
                self._record(result.usage())
        except Exception as e:
            raise to_transient_error("findings_stream", e) from e

        for item in final.findings[emitted:]:
            yield to_finding(item)

    async def summary(self, findings: Sequence[Finding]) -> ReviewSummary:
        output = await self._run(
            "summary", SummaryOutput, SUMMARY_SYSTEM_PROMPT, render_findings(findings)
        )
        return ReviewSummary(long=output.summary, short=output.short_summary)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _run[T](
        self, operation: str, output_type: type[T], system_prompt: str, prompt: str
    ) -> T:
        agent = create_agent(
            config=self.config,
            output_type=output_type,
            system_prompt=system_prompt,
            output_retries=self.output_retries,
            name=operation,
        )
        try:
            result = await agent.run(prompt)
        except Exception as e:
            raise to_transient_error(operation, e) from e
        self._record(result.usage())
        logger.debug("Oracle %s completed (%s)", operation, self.config.model)
        return result.output

    def _record(self, run_usage: RunUsage) -> None:
        self._usage = self._usage + LLMUsage.from_run(run_usage)
