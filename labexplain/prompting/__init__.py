from labexplain.prompting.exceptions import PromptError
from labexplain.prompting.prompt_builder import SAFETY_PREAMBLE, PromptBuilder
from labexplain.prompting.prompt_loader import load_prompt_template

__all__ = ["SAFETY_PREAMBLE", "PromptBuilder", "PromptError", "load_prompt_template"]
