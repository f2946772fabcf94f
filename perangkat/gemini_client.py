import asyncio
import json
import logging
import re
from typing import Any, Optional

from google import genai
from google.genai import types

from perangkat.config import Config

logger = logging.getLogger(__name__)

_BUSY_MARKERS = ("429", "RESOURCE_EXHAUSTED", "503", "overloaded", "UNAVAILABLE")


class AssistantError(RuntimeError):
    pass


class GeminiClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key or Config.GEMINI_API_KEY
        self.model = model or Config.GEMINI_MODEL
        if not api_key:
            logger.warning("GEMINI_API_KEY not set, AI drafting disabled")
            self.client = None
        else:
            self.client = genai.Client(api_key=api_key)

    async def generate_content(self, prompt: str, config: Optional[types.GenerateContentConfig] = None) -> str:
        if not self.client:
            raise AssistantError("API Key Gemini belum diatur.")

        attempts = max(1, Config.GEMINI_MAX_ATTEMPTS)
        for attempt in range(attempts):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=config,
                )
                return response.text or ""
            except Exception as e:
                error_str = str(e)
                busy = any(marker in error_str for marker in _BUSY_MARKERS)
                if busy and attempt < attempts - 1:
                    wait_time = 5 * (attempt + 1)
                    logger.warning("Gemini busy (attempt %s/%s), retrying in %ss: %s", attempt + 1, attempts, wait_time, error_str[:100])
                    await asyncio.sleep(wait_time)
                    continue
                logger.error("Gemini request failed: %s", error_str)
                raise AssistantError("QUOTA_EXHAUSTED" if busy else f"Gagal menghubungi AI: {error_str}") from e
        raise AssistantError("Gagal menghubungi AI")

    async def generate_json(self, prompt: str, schema: Any) -> Any:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        text = await self.generate_content(prompt, config=config)
        return parse_json_response(text)


def parse_json_response(text: str) -> Any:
    # Ambil bagian JSON saja, kadang model membungkusnya dengan ```json
    match = re.search(r"(\{.*\}|\[.*\])", text or "", re.DOTALL)
    if not match:
        raise AssistantError("AI tidak memberikan format data yang benar.")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AssistantError("AI memberikan format JSON yang tidak valid.") from e


gemini_client = GeminiClient()
