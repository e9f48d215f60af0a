class PromptError(Exception):
    """Raised when the prompt template cannot be loaded or rendered."""
