import base64
import logging
from typing import Dict, List

import requests

from haulcalc.core.config import settings
from haulcalc.core.exceptions import OCRError

logger = logging.getLogger("haulcalc.ocr")

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

OCR_PROMPT = (
    "Extract all visible text from this image. "
    "Return text only and preserve line breaks where possible."
)


def _gemini_generate_content(parts: List[Dict], temperature: float = 0.0, max_output_tokens: int = 2048) -> str:
    if not settings.GEMINI_API_KEY:
        raise OCRError("GEMINI_API_KEY not configured on server")

    url = GEMINI_URL.format(model=settings.GEMINI_MODEL)
    payload = {
        "contents": [
            {
                "role": "user",
                "parts": parts
            }
        ],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens
        }
    }

    try:
        response = requests.post(
            url,
            params={"key": settings.GEMINI_API_KEY},
            json=payload,
            timeout=settings.OCR_TIMEOUT_SECONDS
        )
    except requests.exceptions.RequestException as e:
        logger.warning("Gemini request failed: %s", e)
        raise OCRError(f"OCR request failed: {e}") from e

    if response.status_code != 200:
        logger.warning("Gemini returned %s: %s", response.status_code, response.text[:500])
        raise OCRError(f"OCR request failed with status {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise OCRError("OCR response was not valid JSON") from e

    candidates = data.get("candidates", [])
    if not candidates:
        return ""

    content = candidates[0].get("content", {})
    parts_out = content.get("parts", [])
    return "".join(part.get("text", "") for part in parts_out if isinstance(part, dict))


def extract_text_from_image(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """
    Run OCR on an image and return the raw text.

    :param image_bytes: encoded image
    :param mime_type: content type of the image
    :return: recognised text, possibly empty
    :raises OCRError: when the OCR service is unavailable or fails
    """
    parts = [
        {"text": OCR_PROMPT},
        {
            "inlineData": {
                "mimeType": mime_type,
                "data": base64.b64encode(image_bytes).decode("utf-8")
            }
        }
    ]
    text = _gemini_generate_content(parts)
    logger.info("OCR returned %d characters", len(text))
    return text
