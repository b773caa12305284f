"""
Requirement Gap Inspector relay: FastAPI front for a Langflow analysis flow
"""

__version__ = "1.0.0"
