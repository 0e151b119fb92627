from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from ..config import BACKEND_OPENROUTER, ExtractionConfig
from ..domain.models import OrderRecord
from ..domain.pricing import DEFAULT_SCHEDULE, PriceSchedule
from ..errors import ExtractionError
from ..logging import get_logger
from .parser import parse_order_payload, scavenge_json_object
from .photos import Photo

LOG = get_logger("extraction-vision")

OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"


def _prompt(service_name: str) -> str:
    return f"""
You are processing a commercial laundry batch for the laundry service "{service_name}".
You receive two photos:
1) WEIGHT PHOTO: an analog scale with a dial. Read the needle position in kilograms.
2) CUSTOMER PHOTO: a shipping label. Read the customer name, full delivery address
   and the Shopify order number (usually printed as "#1234" or "Order 1234").

Rules:
- laundry_weight_kg: a number in kg with at most one decimal. If the dial cannot be
  read with reasonable certainty, return the string "DATA_UNCLEAR". Never guess.
- delivery_address: keep line breaks of the label as "\\n".
- shopify_order_number: digits only, without "#". Empty string if absent.
- Empty string for any text field you cannot read. Do not fabricate.
- extraction_confidence_score: your overall confidence in the extracted data, 0.0 to 1.0.

Return ONLY one JSON object with exactly these keys:
{{"customer_name": string, "delivery_address": string, "shopify_order_number": string,
  "laundry_weight_kg": number | "DATA_UNCLEAR", "extraction_confidence_score": number}}
""".strip()


def _default_clock() -> int:
    return int(time.time() * 1000)


class VisionExtractor:
    """Extractor backed by a vision chat model (OpenAI SDK or OpenRouter HTTP)."""

    def __init__(
        self,
        config: ExtractionConfig,
        *,
        schedule: PriceSchedule = DEFAULT_SCHEDULE,
        client: Any = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.config = config
        self.schedule = schedule
        self._client = client
        self._clock = clock or _default_clock

    # ---- Extractor ----------------------------------------------------------
    def extract(self, service_name: str, weight_photo: Photo, customer_photo: Photo) -> OrderRecord:
        if not self.config.api_key and self._client is None:
            raise ExtractionError(f"No API key configured for backend '{self.config.backend}'")
        images = (weight_photo.data_url(), customer_photo.data_url())
        LOG.info(
            "Extracting with backend=%s model=%s (photos %s + %s bytes)",
            self.config.backend,
            self.config.model_name,
            weight_photo.byte_size,
            customer_photo.byte_size,
        )
        t0 = time.perf_counter()
        if self.config.backend == BACKEND_OPENROUTER:
            text = self._call_openrouter(service_name, images)
        else:
            text = self._call_openai(service_name, images)
        LOG.info("Model answered in %.2fs", time.perf_counter() - t0)

        payload = scavenge_json_object(text or "")
        if payload is None:
            preview = (text or "")[:300]
            LOG.error("Model output not valid JSON; first 300 chars: %r", preview)
            raise ExtractionError("model did not return a JSON object")
        return parse_order_payload(
            payload,
            service_name=service_name,
            timestamp=self._clock(),
            images=images,
            schedule=self.schedule,
        )

    # ---- helpers ------------------------------------------------------------
    def _messages(self, service_name: str, images: Tuple[str, str]) -> List[Dict[str, Any]]:
        return [
            {
                "role": "system",
                "content": "You are a strict JSON generator. Output ONLY a single JSON object. No prose, no markdown fences.",
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": _prompt(service_name)},
                    {"type": "text", "text": "WEIGHT PHOTO:"},
                    {"type": "image_url", "image_url": {"url": images[0]}},
                    {"type": "text", "text": "CUSTOMER PHOTO:"},
                    {"type": "image_url", "image_url": {"url": images[1]}},
                ],
            },
        ]

    def _call_openai(self, service_name: str, images: Tuple[str, str]) -> Optional[str]:
        http_client: Optional[httpx.Client] = None
        client = self._client
        if client is None:
            http_client = httpx.Client(
                http2=True,
                timeout=httpx.Timeout(connect=10.0, read=self.config.timeout_seconds, write=30.0, pool=10.0),
            )
            client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                http_client=http_client,
                max_retries=0,
            )
        try:
            completion = client.chat.completions.create(
                model=self.config.model_name,
                messages=self._messages(service_name, images),
                response_format={"type": "json_object"},
                temperature=0.0,
                timeout=self.config.timeout_seconds,
            )
        except (APIConnectionError, APITimeoutError) as e:
            LOG.error("Network/timeout while calling OpenAI: %s", e)
            raise ExtractionError(f"OpenAI request failed: {e}") from e
        except APIStatusError as e:
            body = getattr(getattr(e, "response", None), "text", None)
            LOG.error("OpenAI API returned %s. Body preview: %r", getattr(e, "status_code", "?"), (body[:300] if body else None))
            raise ExtractionError(f"OpenAI returned HTTP {getattr(e, 'status_code', '?')}") from e
        finally:
            if http_client is not None:
                http_client.close()

        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise ExtractionError("OpenAI returned no choices")
        usage = getattr(completion, "usage", None)
        usage_dict = {k: getattr(usage, k, None) if usage else None for k in ("prompt_tokens", "completion_tokens", "total_tokens")}
        LOG.debug("Chat completion id=%s usage=%s", getattr(completion, "id", None), usage_dict)
        return choices[0].message.content

    def _call_openrouter(self, service_name: str, images: Tuple[str, str]) -> Optional[str]:
        payload = {
            "model": self.config.model_name,
            "messages": self._messages(service_name, images),
            "temperature": 0.0,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(
                OPENROUTER_ENDPOINT,
                headers=headers,
                json=payload,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as exc:
            LOG.error("OpenRouter request failed: %s", exc)
            raise ExtractionError(f"OpenRouter request failed: {exc}") from exc

        if resp.status_code >= 400:
            LOG.error("OpenRouter HTTP %s: %s", resp.status_code, resp.text[:500])
            raise ExtractionError(f"OpenRouter returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ExtractionError("OpenRouter returned a non-JSON body") from exc
        if not isinstance(body, dict):
            LOG.error("OpenRouter returned an unexpected body: %s", json.dumps(body)[:500])
            raise ExtractionError("OpenRouter returned an unexpected body")
        choices = body.get("choices") or []
        if not choices:
            LOG.error("OpenRouter returned no choices: %s", json.dumps(body)[:500])
            raise ExtractionError("OpenRouter returned no choices")
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            LOG.error("OpenRouter returned an unexpected body: %s", json.dumps(body)[:500])
            raise ExtractionError("OpenRouter returned an unexpected body")
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if content is not None and not isinstance(content, str):
            raise ExtractionError("OpenRouter returned non-text content")
        return content
