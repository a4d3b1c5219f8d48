"""Post-generation checks for the answer markdown and citation marker formats.

Model output cannot be forced to follow either format, so these checks only
report: they log non-compliance and count it, and never raise.
"""

from __future__ import annotations

import logging
import re
from collections import Counter

from woodchat.models.schemas import FormatReport

logger = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(r"^### \d+\. \*\*[^*]+\*\*\s*$")
CITATION_LINE_RE = re.compile(
    r"^\{\{timestamp:\d{2}:\d{2}\}\}\{\{title:[^}]+\}\}"
    r"\{\{url:[^}]+\}\}\{\{description:[^}]+\}\}$"
)

format_counters: Counter[str] = Counter()


def validate_answer_format(answer: str) -> FormatReport:
    """Check an answer against the section header and bullet rules."""
    issues: list[str] = []
    headers = 0
    for lineno, line in enumerate(answer.splitlines(), start=1):
        stripped = line.strip()
        if stripped.startswith("###"):
            if SECTION_HEADER_RE.match(stripped):
                headers += 1
            else:
                issues.append(f"line {lineno}: malformed section header")
        elif stripped.startswith("- ") and "**" in stripped:
            issues.append(f"line {lineno}: bold text inside bullet")
        elif stripped.startswith("#"):
            issues.append(f"line {lineno}: header without '### ' prefix")

    if headers == 0:
        issues.insert(0, "no '### ' section headers")

    report = FormatReport(compliant=not issues, section_headers=headers, issues=issues)
    format_counters["answers_checked"] += 1
    if not report.compliant:
        format_counters["answers_noncompliant"] += 1
        logger.warning(
            "Answer format non-compliant (%d issues): %s",
            len(issues),
            "; ".join(issues[:5]),
        )
    return report


def citation_line_stats(raw: str) -> tuple[int, int]:
    """Count (conforming, dropped) non-empty lines of extractor output."""
    conforming = dropped = 0
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if CITATION_LINE_RE.match(stripped):
            conforming += 1
        else:
            dropped += 1

    format_counters["citation_lines"] += conforming
    format_counters["citation_lines_dropped"] += dropped
    if dropped:
        logger.warning(
            "Citation output: %d conforming lines, %d dropped", conforming, dropped
        )
    return conforming, dropped


def snapshot() -> dict[str, int]:
    return {
        "answers_checked": format_counters["answers_checked"],
        "answers_noncompliant": format_counters["answers_noncompliant"],
        "citation_lines": format_counters["citation_lines"],
        "citation_lines_dropped": format_counters["citation_lines_dropped"],
    }
