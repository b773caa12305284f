"""
Chat message composition for the analysis flow
"""
from typing import Optional

from gap_inspector.errors import RelayError

DEFAULT_BRANCH = "main"


def build_analysis_query(
    github_url: str,
    confluence_url: Optional[str] = None,
    branch_name: Optional[str] = None,
    instructions: Optional[str] = None,
    has_file: bool = False,
) -> str:
    """
    Fold the form fields into the single chat message the flow expects.

    The flow reads the Confluence link, repository and branch out of the
    message itself, so everything goes into one string.

    Raises:
        RelayError: 400 when the requirements source or repository is missing
    """
    confluence_url = (confluence_url or "").strip()
    github_url = (github_url or "").strip()
    branch_name = (branch_name or "").strip() or DEFAULT_BRANCH
    instructions = (instructions or "").strip()

    if not confluence_url and not has_file:
        raise RelayError(400, "Please provide either a Confluence URL or upload a requirements file")
    if not github_url:
        raise RelayError(400, "Please enter a GitHub repository URL")
    if "github.com" not in github_url:
        raise RelayError(400, "Please enter a valid GitHub repository URL")

    query = "Analyze the requirements "
    if confluence_url:
        query += f"from {confluence_url} "
    else:
        query += "from the uploaded document "

    query += f"for the project against the codebase at {github_url} {branch_name} branch"

    if instructions:
        query += f".\n\nAdditional instructions: {instructions}"

    return query
