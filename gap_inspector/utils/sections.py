"""
Best-effort splitting of the flow's answer into summary / gaps /
recommendations.

The flow answers in free text, so this is a heuristic: each pattern is
matched once and independently, first match wins, and marker-free text
comes back as a summary with empty lists.
"""
import re
from dataclasses import asdict, dataclass, field
from typing import List

SUMMARY_PATTERN = re.compile(r"^(.*?)(?=\n[ \t\r]*\n|\bgaps:|\brecommendations:|\Z)", re.IGNORECASE | re.DOTALL)
GAPS_PATTERN = re.compile(r"\bgaps:[ \t]*(.*?)(?=\brecommendations:|\Z)", re.IGNORECASE | re.DOTALL)
RECOMMENDATIONS_PATTERN = re.compile(r"\brecommendations:[ \t]*(.*)\Z", re.IGNORECASE | re.DOTALL)

BULLET_PATTERN = re.compile(r"^[-•*]\s*")


@dataclass
class SectionedReport:
    summary: str = ""
    gaps: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _split_items(block: str) -> List[str]:
    items = []
    for line in block.splitlines():
        item = BULLET_PATTERN.sub("", line.strip(), count=1).strip()
        if item:
            items.append(item)
    return items


def parse_sections(text: str) -> SectionedReport:
    """
    Slice an analysis answer into its sections

    Args:
        text: Accumulated answer text from the flow

    Returns:
        SectionedReport; empty when text is empty
    """
    report = SectionedReport()
    if not text:
        return report

    summary_match = SUMMARY_PATTERN.match(text)
    if summary_match:
        report.summary = summary_match.group(1).strip()

    gaps_match = GAPS_PATTERN.search(text)
    if gaps_match:
        report.gaps = _split_items(gaps_match.group(1))

    recommendations_match = RECOMMENDATIONS_PATTERN.search(text)
    if recommendations_match:
        report.recommendations = _split_items(recommendations_match.group(1))

    return report
