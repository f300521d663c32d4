"""Layer 2: turns a raw transcription into a structured prompt for video generation."""

from __future__ import annotations

import base64
import json
import mimetypes
from pathlib import Path
from typing import Any, Optional

from dreamviz.config import Settings, get_settings
from dreamviz.errors import PromptEngineeringError
from dreamviz.logging_config import get_logger
from dreamviz.modules.prompt.models import PromptPackage
from dreamviz.modules.prompt.schema import SYSTEM_PROMPT, build_user_instruction, response_format
from dreamviz.openai_support import as_payload, build_client, retry_transport, transport_errors

logger = get_logger(__name__)


class DreamPromptEngineer:
    """Extracts narrative beats and visual anchors via the Responses API."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    async def engineer_prompt(self, narrative: str, image_path: Optional[Path] = None) -> PromptPackage:
        """Build a PromptPackage from ``narrative``, optionally guided by an image."""
        if narrative is None:
            raise ValueError("narrative must not be None")

        payload = self.build_request(narrative, image_path)
        response = await self._create(payload)
        text = extract_output_text(response)
        try:
            structured = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PromptEngineeringError(f"Failed to parse structured JSON from response: {text[:200]}") from exc
        if not isinstance(structured, dict):
            raise PromptEngineeringError("Structured response is not a JSON object")

        prompt = PromptPackage.model_validate(structured)
        logger.info(
            "prompt_engineered",
            beats=len(prompt.narrative_beats),
            keywords=len(prompt.visual_keywords),
            with_image=image_path is not None,
        )
        return prompt

    def build_request(self, narrative: str, image_path: Optional[Path] = None) -> dict[str, Any]:
        user_content: list[dict[str, Any]] = [
            {"type": "input_text", "text": build_user_instruction(narrative, with_image=image_path is not None)},
        ]
        if image_path is not None:
            user_content.append({"type": "input_image", "image_url": _image_data_url(Path(image_path))})

        return {
            "model": self._settings.openai_text_model,
            "input": [
                {"role": "system", "content": [{"type": "input_text", "text": SYSTEM_PROMPT}]},
                {"role": "user", "content": user_content},
            ],
            "text": {"format": response_format()},
        }

    @retry_transport
    async def _create(self, payload: dict[str, Any]) -> dict[str, Any]:
        client = build_client(self._settings)
        with transport_errors("Prompt engineering request"):
            response = await client.responses.create(**payload)
        return as_payload(response)


def extract_output_text(response: dict[str, Any]) -> str:
    """First non-blank ``output_text`` block of a Responses API payload."""
    output = response.get("output")
    if not isinstance(output, list):
        raise PromptEngineeringError("Unexpected response payload: missing output array")
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content, list):
            continue
        for block in content:
            if isinstance(block, dict) and block.get("type") == "output_text":
                text = str(block.get("text") or "").strip()
                if text:
                    return text
    raise PromptEngineeringError("No JSON text found in responses output")


def _image_data_url(path: Path) -> str:
    if not path.is_file():
        raise ValueError(f"Image file is not readable: {path}")
    mime, _ = mimetypes.guess_type(path.name)
    encoded = base64.b64encode(path.read_bytes()).decode()
    return f"data:{mime or 'image/png'};base64,{encoded}"
