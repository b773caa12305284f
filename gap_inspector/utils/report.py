"""
Answer extraction and plain-text report rendering
"""
from datetime import datetime
from typing import Any, Optional

from gap_inspector.utils.sections import SectionedReport


def extract_output_text(response: Any) -> str:
    """
    Pull the chat answer out of a Langflow run payload

    Looks at outputs[0].outputs[0] and prefers `results.message.text`,
    falling back to the first entry of `messages`.
    """
    try:
        first_output = response["outputs"][0]["outputs"][0]
    except (KeyError, IndexError, TypeError):
        return ""

    message = (first_output.get("results") or {}).get("message")
    if message:
        if isinstance(message, dict):
            return message.get("text") or ""
        return str(message)

    messages = first_output.get("messages") or []
    if messages:
        first = messages[0]
        if isinstance(first, dict):
            return first.get("text") or first.get("message") or ""
        return str(first)

    return ""


def render_report(sections: SectionedReport, generated_at: Optional[datetime] = None) -> str:
    """Render sections in the downloadable text format"""
    generated_at = generated_at or datetime.now()

    lines = ["=== REQUIREMENTS GAP ANALYSIS REPORT ===", ""]
    lines.append(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")

    lines.append("--- SUMMARY ---")
    lines.append(sections.summary)
    lines.append("")

    lines.append("--- IDENTIFIED GAPS ---")
    if sections.gaps:
        lines.extend(f"{i}. {gap}" for i, gap in enumerate(sections.gaps, 1))
    else:
        lines.append("No gaps identified")
    lines.append("")

    lines.append("--- RECOMMENDATIONS ---")
    if sections.recommendations:
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(sections.recommendations, 1))
    else:
        lines.append("No recommendations")

    return "\n".join(lines) + "\n"
