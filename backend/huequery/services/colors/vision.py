"""
Vision-model color classification through the Gemini REST API.

Asks the model which hex colors the query's color word takes on the query's
subject in a given image, and parses a {"colors": [...]} JSON reply.
"""

import base64
import json
import re
import threading
import time
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from huequery.services.reliability import UpstreamError
from .color_math import is_valid_hex, normalize_hex
from .lexicon import split_color_and_subject

API_ROOT = "https://generativelanguage.googleapis.com/v1beta"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse text as JSON, or the first {...} block embedded in it."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        match = _JSON_OBJECT.search(text)
        if not match:
            return None
        try:
            return json.loads(match.group(0))
        except ValueError:
            return None


def normalize_hex_list(colors: Any) -> List[str]:
    """Keep only well-formed hex strings, normalized to #RRGGBB."""
    if not isinstance(colors, list):
        return []
    return [normalize_hex(color) for color in colors if is_valid_hex(color)]


def build_prompt(query: str) -> str:
    """Build the color question for an image matched to query."""
    color, subject = split_color_and_subject(query)
    target_color = color or "main"
    target_subject = subject or query
    return (
        f'Return only JSON. Question: What hex color values is "{target_color}" '
        f'on the "{target_subject}"?\n'
        'Schema: {"colors":["#RRGGBB", ...]}\n'
        'Rules: 2-5 colors, no extra text.'
    )


def _model_score(name: str) -> int:
    if "flash" in name:
        return 3
    if "pro" in name:
        return 2
    return 1


class GeminiModelResolver:
    """Resolves which generateContent-capable model to call, cached for a while."""

    def __init__(self,
                 api_key: str,
                 preferred_model: str,
                 session: Optional[requests.Session] = None,
                 cache_seconds: float = 600,
                 request_timeout: float = 5.0):
        self.api_key = api_key
        self.preferred_model = preferred_model
        self.session = session or requests.Session()
        self.cache_seconds = cache_seconds
        self.request_timeout = request_timeout
        self._cached_model: Optional[str] = None
        self._cached_at = 0.0
        self._lock = threading.Lock()

    def choose_model(self, models: List[Dict[str, Any]]) -> str:
        """Pick the preferred model if listed, else the best ranked one."""
        supported = [
            model for model in models
            if 'generateContent' in (model.get('supportedGenerationMethods') or [])
        ]

        preferred_name = f"models/{self.preferred_model}"
        for model in supported:
            if model.get('name') == preferred_name:
                return self.preferred_model

        ranked = sorted(
            (model['name'] for model in supported
             if model.get('name') and 'embedding' not in model['name']),
            key=lambda name: -_model_score(name)
        )
        return ranked[0].replace('models/', '') if ranked else self.preferred_model

    def resolve(self) -> Optional[str]:
        """Return a model name, or None if no key is configured or listing fails."""
        if not self.api_key:
            return None

        with self._lock:
            now = time.time()
            if self._cached_model and now - self._cached_at < self.cache_seconds:
                return self._cached_model

            try:
                response = self.session.get(
                    f"{API_ROOT}/models",
                    params={'key': self.api_key},
                    timeout=self.request_timeout
                )
            except requests.RequestException as e:
                logger.warning(f"Gemini model list request failed: {e}")
                return None

            if not response.ok:
                logger.warning(f"Gemini model list request failed: {response.status_code}")
                return None

            payload = response.json()
            models = payload.get('models') if isinstance(payload.get('models'), list) else []

            self._cached_model = self.choose_model(models)
            self._cached_at = now
            logger.info(f"[Gemini] Using model: {self._cached_model}")
            return self._cached_model


class GeminiVisionClient:
    """Sends an image plus the color question to generateContent."""

    def __init__(self,
                 api_key: str,
                 resolver: GeminiModelResolver,
                 session: Optional[requests.Session] = None,
                 request_timeout: float = 10.0):
        self.api_key = api_key
        self.resolver = resolver
        self.session = session or requests.Session()
        self.request_timeout = request_timeout

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def describe_colors(self, image_bytes: bytes, content_type: str, query: str) -> List[str]:
        """
        Ask the model for the colors of the query subject in an image.

        Returns:
            Normalized hex colors (possibly empty)

        Raises:
            UpstreamError: If the API call fails
        """
        model = self.resolver.resolve()
        if not model:
            return []

        body = {
            'contents': [
                {
                    'role': 'user',
                    'parts': [
                        {'text': build_prompt(query)},
                        {'inlineData': {
                            'mimeType': content_type,
                            'data': base64.b64encode(image_bytes).decode('ascii')
                        }}
                    ]
                }
            ]
        }

        try:
            response = self.session.post(
                f"{API_ROOT}/models/{model}:generateContent",
                params={'key': self.api_key},
                json=body,
                timeout=self.request_timeout
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Gemini API request failed: {e}")

        if not response.ok:
            raise UpstreamError(f"Gemini API error: {response.status_code} {response.text[:200]}")

        payload = response.json()
        candidates = payload.get('candidates') or [{}]
        parts = (candidates[0].get('content') or {}).get('parts') or []
        text = "".join(part.get('text', '') for part in parts)

        parsed = extract_json_object(text)
        if not isinstance(parsed, dict):
            return []
        return normalize_hex_list(parsed.get('colors'))
