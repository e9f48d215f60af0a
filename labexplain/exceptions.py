class AnalysisInputError(Exception):
    """Raised when the caller passes malformed report text or patient metadata."""
