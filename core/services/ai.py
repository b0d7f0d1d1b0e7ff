"""
Gemini generation client.

Thin adapter around the ``google-generativeai`` SDK. It sends a prepared
``contents`` payload and hands back the first candidate's text, or ``None``
when the provider answered without usable text (no candidates, a blocked
prompt, an empty part, or a timeout). Network and API failures are raised
as ``UpstreamUnavailable``.
"""

import logging
from typing import List, Optional

import google.generativeai as genai
import requests
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from core.services.exceptions import UpstreamUnavailable


logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-1.5-flash"
DEFAULT_TIMEOUT_SECONDS = 60.0


def extract_text(response) -> Optional[str]:
    """
    Return the text of the first part of the first candidate.

    Args:
        response: A ``GenerateContentResponse`` (or anything shaped like one).

    Returns:
        Stripped text, or None if the response carries nothing usable.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return None

    text = (getattr(parts[0], "text", "") or "").strip()
    return text or None


class GeminiClient:
    """
    Generation client bound to one API key, model and timeout.

    Build one per request (or share one) and pass it to ``StudyAssistant``;
    tests substitute any object exposing the same ``generate`` method.
    """

    # Academic material trips the default filters far too often
    SAFETY_SETTINGS = {
        HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
        HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
        HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
        HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
    }

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL_NAME,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout

    def _build_model(self, json_output: bool):
        if not self.api_key:
            raise UpstreamUnavailable(
                "GOOGLE_API_KEY is not configured. "
                "Please set it in your .env file or environment."
            )
        genai.configure(api_key=self.api_key)

        if json_output:
            generation_config = genai.GenerationConfig(
                temperature=0.3,
                top_p=0.95,
                max_output_tokens=8192,
                response_mime_type="application/json",
            )
        else:
            generation_config = genai.GenerationConfig(
                temperature=0.4,
                top_p=0.95,
                max_output_tokens=4096,
            )

        return genai.GenerativeModel(
            model_name=self.model_name,
            generation_config=generation_config,
            safety_settings=self.SAFETY_SETTINGS,
        )

    def generate(self, contents: List[dict], json_output: bool = False) -> Optional[str]:
        """
        Send ``contents`` to Gemini and return the answer text.

        Args:
            contents: Multi-turn payload of ``{"role", "parts"}`` dicts.
            json_output: Ask the model for an ``application/json`` response.

        Returns:
            The answer text, or None if the provider produced none in time.

        Raises:
            UpstreamUnavailable: Network or API error from the provider.
        """
        model = self._build_model(json_output)
        logger.debug(f"Sending {len(contents)} turn(s) to {self.model_name}")

        try:
            response = model.generate_content(
                contents,
                request_options={"timeout": self.timeout},
            )
        except (google_exceptions.DeadlineExceeded, requests.exceptions.Timeout, TimeoutError) as e:
            logger.warning(f"Gemini request timed out after {self.timeout}s: {e}")
            return None
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Gemini API error: {e}")
            raise UpstreamUnavailable(f"Gemini API error: {e}") from e
        except (auth_exceptions.GoogleAuthError, requests.exceptions.RequestException, ConnectionError) as e:
            # Transport failures below the API layer (REST transport, credentials)
            logger.error(f"Gemini transport error: {e}")
            raise UpstreamUnavailable(f"Could not reach Gemini: {e}") from e

        text = extract_text(response)
        if text is None:
            feedback = getattr(response, "prompt_feedback", None)
            logger.warning(f"Gemini returned no usable text (prompt_feedback={feedback})")
        return text
