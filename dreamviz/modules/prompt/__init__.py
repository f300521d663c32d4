"""Prompt engineering module."""

from dreamviz.modules.prompt.models import PromptPackage
from dreamviz.modules.prompt.service import DreamPromptEngineer

__all__ = ["PromptPackage", "DreamPromptEngineer"]
