"""Response schemas."""
from agcredit.schemas.analysis import AnalysisResponse, ErrorResponse

__all__ = ["AnalysisResponse", "ErrorResponse"]
