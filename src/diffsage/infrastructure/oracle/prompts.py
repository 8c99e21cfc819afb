"""Prompt templates for the review oracle."""

from __future__ import annotations

import json

from collections.abc import Sequence

from diffsage.domain.review.entities import Finding, ReviewFile

# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

TITLE_SYSTEM_PROMPT = """\
You are an expert software engineer. Based on the file diffs you are given, \
write a concise and descriptive title for the code changes, as if it were a \
pull request title.
"""

OBJECTIVE_SYSTEM_PROMPT = """\
You are an expert software engineer. Based on the file diffs you are given, \
write a concise, one-sentence objective for the code changes.
"""

WALKTHROUGH_SYSTEM_PROMPT = """\
You are an expert software engineer. Based on the file diffs you are given, \
write a high-level, step-by-step walkthrough of the code changes. It should be \
a narrative that explains the purpose and impact of the changes, formatted as \
Markdown.
"""

SUMMARY_SYSTEM_PROMPT = """\
You are an expert code reviewer. Based on a list of review comments, provide a \
high-level summary of the findings.

- summary: a comprehensive summary in Markdown, grouped by category \
(bugs, structural improvements, style nits).
- short_summary: one sentence summarizing the overall review.
"""

REVIEW_SYSTEM_PROMPT = """\
You are an expert code reviewer. Analyze the changed files and report findings.

Each finding has:
- path: the file the finding is about, exactly as given
- start_line / end_line: 1-indexed line numbers from the numbered full content
- body: the review comment in Markdown
- category: one of bug, structural-improvement, style-nit, confirmation, other
- replacements: optional, a list with a single string holding the complete \
code that replaces lines start_line..end_line ("" to delete them)
- implementation_instruction: optional, imperative instructions an automated \
agent could follow to apply the fix

CATEGORY DEFINITIONS:
- bug: actual defects, security vulnerabilities, logic errors, missing error \
handling, or code that fails at runtime.
- structural-improvement: changes to source code structure, performance, or \
maintainability that do not change external behavior.
- style-nit: minor stylistic preferences with no functional impact.
- confirmation: acknowledging a correct implementation or a good change. \
Never include replacements.
- other: feature additions, behavior changes, dependency or documentation \
updates. Never include replacements.

DOCUMENTATION AND CONFIGURATION FILES:
- Formatting improvements and accuracy confirmations are confirmation.
- Content changes are other.
- Factual errors, missing or insecure values are bug.

RULES FOR REPLACEMENTS:
1. Only bug and structural-improvement findings carry replacements, and they \
must then also carry an implementation_instruction. style-nit may carry one.
2. The replacement must be complete, syntactically valid code for the whole \
range, with no explanatory text.
3. When removing code, make the range cover the complete block so the result \
still parses.
4. Order findings from the bottom of each file to the top (highest line \
numbers first) so replacements can be applied one after another.

DO NOT COMMENT ON trivial naming preferences, standard language features used \
correctly, or obvious self-explanatory changes.

If you find no issues, return an empty list of findings.
"""

# =============================================================================
# USER PROMPTS
# =============================================================================


def render_changes(files: Sequence[ReviewFile]) -> str:
    """Diff-only view of the files, for title, objective and walkthrough."""
    sections = [f"File: {f.path}\nDiff:\n{f.unified_diff}" for f in files]
    return "Here are the file changes:\n\n" + "\n\n".join(sections)


def number_lines(content: str) -> str:
    """Prefix each line with its 1-indexed number, right-aligned to 3 columns."""
    return "\n".join(
        f"{index:>3}: {line}" for index, line in enumerate(content.split("\n"), 1)
    )


def render_review_files(files: Sequence[ReviewFile]) -> str:
    """Diff plus numbered full content per file, for the findings calls."""
    sections = []
    for f in files:
        sections.append(
            f"File: {f.path}\n\n"
            f"Diff:\n{f.unified_diff}\n\n"
            f"Full Content with Line Numbers:\n{number_lines(f.full_content)}\n\n"
            "Use the line numbers shown before the colon for start_line and "
            "end_line."
        )
    return "Here are the files to review:\n\n" + "\n\n".join(sections)


def render_findings(findings: Sequence[Finding]) -> str:
    """JSON listing of findings, for the summary call."""
    payload = [f.to_payload() for f in findings]
    return "Here are the review comments:\n" + json.dumps(payload, indent=2)
