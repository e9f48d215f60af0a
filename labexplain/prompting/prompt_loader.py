from pathlib import Path

from labexplain.prompting.exceptions import PromptError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"
_REQUIRED_PLACEHOLDERS = ("{safety_preamble}", "{patient_meta}", "{lab_results}")


def load_prompt_template(path: Path | None = None) -> str:
    """Load the lab explanation prompt template from a file.

    Args:
        path: Path to the prompt template file.
              Defaults to the bundled lab_explanation_prompt.txt.

    Returns:
        The raw template string with placeholders.

    Raises:
        PromptError: if the file cannot be read or lacks a placeholder.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "lab_explanation_prompt.txt"
    try:
        template = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptError(f"Failed to load prompt template: {exc}") from exc

    missing = [p for p in _REQUIRED_PLACEHOLDERS if p not in template]
    if missing:
        raise PromptError(f"Prompt template is missing placeholders: {missing}")
    return template
