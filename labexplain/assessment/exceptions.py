class ReferenceRangeError(Exception):
    """Raised when the reference range table is missing or malformed."""
