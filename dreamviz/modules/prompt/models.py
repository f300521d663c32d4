"""Data models for the prompt engineering layer."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TEXT_FIELDS = ("sora_prompt", "emotional_tone", "color_palette", "camera_style", "motion_style")
_LIST_FIELDS = ("narrative_beats", "visual_keywords", "negative_prompts")


class PromptPackage(BaseModel):
    """Structured creative brief driving video generation.

    Absent text is always ``""`` and absent lists are always ``[]``;
    list entries are stripped and blanks dropped.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    sora_prompt: str = ""
    narrative_beats: list[str] = Field(default_factory=list)  # chronological
    visual_keywords: list[str] = Field(default_factory=list)
    emotional_tone: str = ""
    color_palette: str = ""
    negative_prompts: list[str] = Field(default_factory=list)
    camera_style: str = ""
    motion_style: str = ""

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _blank_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _clean_list(cls, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)):
            return []
        items = []
        for item in value:
            if item is None or isinstance(item, (dict, list)):
                continue
            text = str(item).strip()
            if text:
                items.append(text)
        return items
