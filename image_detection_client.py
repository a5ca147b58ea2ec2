"""
Client for the external image-detection (dosha/disease) service.

The service is treated as an opaque remote API: an image goes in, a JSON
payload (or a bare markdown string) comes out. The markdown answer is
post-processed into a ParsedResult with remedy/recommended/avoid lists.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from models import ImageDetectionResponse, ImageDetectionResult, ParsedResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

_BULLET = re.compile(r"^[\-\*•]\s*")

_DISEASE = re.compile(r"(?:🩺\s*)?(?:\*\*)?Predicted Disease:?\*?\*?\s*(.+?)(?:\n|\Z)", re.IGNORECASE)
_REMEDY = re.compile(
    r"(?:🌿\s*)?(?:\*\*)?Remedy:?\*?\*?\s*\n([\s\S]*?)(?=\n\n|(?:✅|🚫|📖|🧾)\s*\*\*|\Z)", re.IGNORECASE
)
_RECOMMENDED = re.compile(
    r"(?:✅\s*)?(?:\*\*)?Recommended\s*\(Pathya\):?\*?\*?\s*\n([\s\S]*?)(?=\n\n|(?:🚫|📖|🧾)\s*\*\*|\Z)",
    re.IGNORECASE,
)
_AVOID = re.compile(
    r"(?:🚫\s*)?(?:\*\*)?Avoid\s*\(Apathya\):?\*?\*?\s*\n([\s\S]*?)(?=\n\n|(?:📖|🧾)\s*\*\*|\Z)", re.IGNORECASE
)
_SOURCE = re.compile(r"(?:📖\s*)?(?:\*\*)?Source:?\*?\*?\s*(.+?)(?:\n|\Z)", re.IGNORECASE)
_LOGS = re.compile(r"(?:🧾\s*)?(?:\*\*)?Logs:?\*?\*?\s*([\s\S]*)\Z", re.IGNORECASE)


class ImageDetectionError(Exception):
    """Raised when the remote detection service cannot produce an answer."""


def _list_items(block: str) -> List[str]:
    items = []
    for line in block.split("\n"):
        item = _BULLET.sub("", line).strip()
        if item and not item.startswith("**"):
            items.append(item)
    return items


def parse_detection_markdown(markdown: str) -> ParsedResult:
    """
    Extract the known sections from a detection answer.

    Emoji and bold markers around the headings are optional. When no
    "Predicted Disease" line is found, the whole text is kept as raw_text.
    """
    text = markdown.replace("\\n", "\n")
    result = ParsedResult()

    match = _DISEASE.search(text)
    if match:
        result.disease = match.group(1).strip()

    match = _REMEDY.search(text)
    if match:
        result.remedy = _list_items(match.group(1))

    match = _RECOMMENDED.search(text)
    if match:
        result.recommended = _list_items(match.group(1))

    match = _AVOID.search(text)
    if match:
        result.avoid = _list_items(match.group(1))

    match = _SOURCE.search(text)
    if match:
        result.source = match.group(1).strip()

    match = _LOGS.search(text)
    if match:
        result.logs = match.group(1).strip()

    if not result.disease:
        logger.warning("Could not parse disease from detection answer, keeping raw text")
        result.raw_text = text

    return result


def parse_detection_response(response: ImageDetectionResponse) -> Optional[ParsedResult]:
    """Parse the markdown carried by a response; None when there is no data."""
    data = response.data
    if data is None:
        return None
    if data.markdown:
        return parse_detection_markdown(data.markdown)
    return parse_detection_markdown(json.dumps(data.model_dump(exclude_none=True), indent=2, ensure_ascii=False))


def _coerce_payload(payload: Any) -> Dict[str, Any]:
    """Map the shapes the service is known to answer with onto ImageDetectionResponse."""
    if isinstance(payload, str):
        return {"success": True, "data": {"markdown": payload}}
    if isinstance(payload, dict):
        data = payload.get("data")
        # gradio style: {"data": ["<markdown>"]}
        if isinstance(data, list):
            first = data[0] if data else None
            if isinstance(first, str):
                payload = {**payload, "data": {"markdown": first}}
            elif isinstance(first, dict):
                payload = {**payload, "data": first}
            else:
                payload = {**payload, "data": None}
        return payload
    raise ImageDetectionError(f"Unexpected detection payload type: {type(payload).__name__}")


class ImageDetectionClient:
    """Thin async client around the remote classifier endpoint."""

    def __init__(self, config: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            config: image_detection configuration section (url, timeout, api_key)
            transport: optional httpx transport, used by tests
        """
        self.url = config.get("url")
        self.timeout = float(config.get("timeout", DEFAULT_TIMEOUT))
        self.api_key = config.get("api_key")
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def detect(self, image: bytes, filename: str = "image.png", content_type: str = "image/png") -> ImageDetectionResponse:
        """Send one image to the classifier and return its validated answer."""
        if not self.enabled:
            raise ImageDetectionError("Image detection service URL is not configured")

        logger.info(f"Sending {len(image)} bytes to image detection service")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.url,
                    files={"img": (filename, image, content_type)},
                    headers=self._headers(),
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Image detection service returned {e.response.status_code}")
            raise ImageDetectionError(f"Detection service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Image detection request failed: {e}")
            raise ImageDetectionError(f"Detection service unreachable: {e}") from e

        if "application/json" in resp.headers.get("content-type", ""):
            payload = resp.json()
        else:
            payload = resp.text

        try:
            response = ImageDetectionResponse.model_validate(_coerce_payload(payload))
        except ValidationError as e:
            raise ImageDetectionError(f"Malformed detection response: {e}") from e

        if response.success is False or (response.error and response.data is None):
            logger.warning(f"Image detection reported an error: {response.error}")
        return response


__all__ = [
    "ImageDetectionClient",
    "ImageDetectionError",
    "ImageDetectionResult",
    "parse_detection_markdown",
    "parse_detection_response",
]
