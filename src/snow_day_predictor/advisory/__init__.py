"""External LLM advisory opinion."""

from .client import LLMAdvisoryClient, build_prompt, parse_advisory

__all__ = ["LLMAdvisoryClient", "build_prompt", "parse_advisory"]
