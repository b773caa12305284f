"""
Report rendering endpoint
"""
from fastapi import APIRouter

from gap_inspector.errors import RelayError
from gap_inspector.models.requests import ReportRequest
from gap_inspector.utils.report import render_report
from gap_inspector.utils.sections import parse_sections

router = APIRouter()


@router.post("/api/report")
async def build_report(body: ReportRequest):
    """
    Section an analysis answer and render the downloadable text report

    Returns:
        sections: summary, gaps and recommendations
        report: Plain-text report
    """
    text = (body.text or "").strip()
    if not text:
        raise RelayError(400, "text is required")

    sections = parse_sections(text)
    return {
        "success": True,
        "sections": sections.to_dict(),
        "report": render_report(sections),
    }
