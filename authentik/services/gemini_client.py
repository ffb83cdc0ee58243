from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from google import genai
from google.genai import types
from google.genai.errors import ClientError

from authentik.services.errors import RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "data" / "prompts"

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class GeminiConfigurationError(ServiceError):
    pass


class GeminiPromptError(ServiceError):
    pass


def prompt_path(name: str) -> Path:
    return PROMPTS_DIR / name


def _raise_for_client_error(err: ClientError) -> None:
    status_code = getattr(err, "code", None) or getattr(err, "status_code", None)
    if status_code == 429 or "RESOURCE_EXHAUSTED" in str(err):
        raise RateLimitedError("Limite da API do Gemini atingido.") from err
    raise err


class GeminiClient:
    """Thin async wrapper over google-genai for text, vision and image editing calls."""

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_TEXT_MODEL,
        image_model_name: str = DEFAULT_IMAGE_MODEL,
        client: Optional[genai.Client] = None,
    ) -> None:
        if not api_key and client is None:
            raise GeminiConfigurationError("Missing Gemini API key.")
        self.model_name = model_name
        self.image_model_name = image_model_name
        self._client = client or genai.Client(api_key=api_key)

    def _load_system_prompt(self, file_path: Path) -> str:
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError as not_found_error:
            raise GeminiPromptError(f"Prompt file not found: {file_path}") from not_found_error
        except OSError as io_error:
            raise GeminiPromptError(f"Unable to read prompt file: {io_error}") from io_error

    def _serialize_prompt(self, user_prompt: str | dict[str, str | int | float | list | dict]) -> str:
        if isinstance(user_prompt, str):
            return user_prompt
        try:
            return json.dumps(user_prompt, indent=2, ensure_ascii=False)
        except TypeError:
            return str(user_prompt)

    async def generate_text(
        self,
        user_prompt: str | dict[str, str | int | float | list | dict],
        system_prompt_path: Path,
    ) -> str:
        config = types.GenerateContentConfig(
            system_instruction=self._load_system_prompt(system_prompt_path),
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=self._serialize_prompt(user_prompt),
                config=config,
            )
        except ClientError as err:
            _raise_for_client_error(err)
        return response.text or ""

    async def analyze_image(
        self,
        image_bytes: bytes,
        system_prompt_path: Path,
        mime_type: str = "image/jpeg",
    ) -> str:
        config = types.GenerateContentConfig(
            system_instruction=self._load_system_prompt(system_prompt_path),
            response_mime_type="application/json",
        )
        contents = [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            "Analyze this photo.",
        ]
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except ClientError as err:
            _raise_for_client_error(err)
        return response.text or ""

    async def edit_image(
        self,
        image_bytes: bytes,
        instruction_path: Path,
        mime_type: str = "image/jpeg",
    ) -> Optional[bytes]:
        """Returns the first image part of the response, or None when the model sent only text."""
        contents = [
            self._load_system_prompt(instruction_path),
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ]
        config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])
        try:
            response = await self._client.aio.models.generate_content(
                model=self.image_model_name,
                contents=contents,
                config=config,
            )
        except ClientError as err:
            _raise_for_client_error(err)

        for candidate in response.candidates or []:
            content = candidate.content
            for part in (content.parts if content else None) or []:
                inline = part.inline_data
                if inline is not None and inline.data:
                    return inline.data

        logger.warning("Image model returned no image data")
        return None
