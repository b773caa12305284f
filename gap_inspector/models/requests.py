"""
Pydantic request models
"""
from pydantic import BaseModel
from typing import Optional


class AnalyzeRequest(BaseModel):
    input_value: Optional[str] = None
    file_path: Optional[str] = None
    session_id: Optional[str] = None

    # Form fields; used to compose input_value when it is not given
    confluence_url: Optional[str] = None
    github_url: Optional[str] = None
    branch_name: Optional[str] = None
    instructions: Optional[str] = None


class ReportRequest(BaseModel):
    text: Optional[str] = None
