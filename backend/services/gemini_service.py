"""
Gemini AI Analysis
Location extraction from free text and disaster image verification
through the google-genai client
"""
import hashlib
import logging
import mimetypes

import requests
from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

LOCATION_SYSTEM_PROMPT = (
    "You are an assistant for a disaster response web app. When asked for disaster "
    "locations, output ONLY a concise, point-wise list of the most recent, exact locations "
    "affected (district, city, village, or area), each with a one-line description if needed. "
    "Do not include explanations, context, or historical summaries. Do not restrict the "
    "output to one type of disaster."
)

LOCATION_FAILURE_MESSAGE = (
    "Could not extract place names. Please try with a shorter or clearer description."
)


class GeminiService:
    """
    Thin client for Gemini text and image analysis

    Every public method returns text and never raises; failures come back as
    a user-facing message, matching what the frontend displays.
    """

    MAX_DESCRIPTION_CHARS = 500
    CACHE_TTL_SECONDS = 3600

    def __init__(self, api_key, cache_manager, text_model='gemini-2.5-flash',
                 vision_model='gemini-2.5-flash', timeout=30, user_agent='DisasterResponseApp/1.0',
                 client=None):
        """
        Args:
            api_key (str): GEMINI_API_KEY; without it every call returns the failure message
            cache_manager: CacheManager instance
            timeout (int): Seconds, for both the image download and the Gemini call
            client: Pre-built genai.Client (tests pass a mock)
        """
        self.cache_manager = cache_manager
        self.text_model = text_model
        self.vision_model = vision_model
        self.timeout = timeout
        self.user_agent = user_agent

        self.client = client
        if self.client is None and api_key:
            self.client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=timeout * 1000)
            )
            logger.info("Gemini client initialized")
        elif self.client is None:
            logger.warning("GEMINI_API_KEY not set - AI analysis disabled")

    @staticmethod
    def _digest(*parts):
        return hashlib.sha256('\x1f'.join(parts).encode()).hexdigest()[:32]

    def extract_location(self, description):
        """
        Extract affected place names from a disaster description

        Args:
            description (str): Free text

        Returns:
            str: Point-wise list of locations, or a failure message
        """
        cache_key = f"gemini_location_{self._digest(description)}"
        cached = self.cache_manager.get(cache_key)
        if cached:
            return cached

        if len(description) > self.MAX_DESCRIPTION_CHARS:
            prompt = (
                f"{LOCATION_SYSTEM_PROMPT}\nThe following description is long. Extract only the "
                f"most recent, exact locations affected by the related disaster, in a concise, "
                f"point-wise list. Description: \"{description[:self.MAX_DESCRIPTION_CHARS]}...\""
            )
        else:
            prompt = f"{LOCATION_SYSTEM_PROMPT}\n{description}"

        try:
            location = self.generate(self.text_model, prompt)
        except Exception as e:
            logger.error(f"Gemini location extraction error: {e}")
            return LOCATION_FAILURE_MESSAGE

        self.cache_manager.set(cache_key, location, ttl_seconds=self.CACHE_TTL_SECONDS)
        return location

    def verify_image(self, image_url, description=''):
        """
        Ask Gemini whether an image shows a real disaster scene

        Args:
            image_url (str): Publicly reachable image URL (validated by the caller)
            description (str): Optional context from the report

        Returns:
            str: Analysis text, or a failure message
        """
        description = description or ''
        cache_key = f"gemini_verify_{self._digest(image_url, description)}"
        cached = self.cache_manager.get(cache_key)
        if cached:
            return cached

        short_description = description
        if len(short_description) > self.MAX_DESCRIPTION_CHARS:
            short_description = short_description[:self.MAX_DESCRIPTION_CHARS] + '...'

        context = f"Context: {short_description} " if short_description else ''
        prompt = (
            f"Analyze this image. {context}(1) Does it show a real disaster scene? If yes, "
            f"explain the disaster context clearly and simply (what, where, how severe). "
            f"(2) Does the image appear manipulated, fake, or AI-generated? If so, mention it. "
            f"Keep the answer concise but informative."
        )

        try:
            image_bytes, mime_type = self._download_image(image_url)
            result = self.generate(self.vision_model, [
                prompt,
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
            ])
        except Exception as e:
            logger.error(f"Gemini image verify error: {e}")
            return (
                "Could not analyze the image. Please check the image URL or try again later. "
                f"Error: {e}"
            )

        self.cache_manager.set(cache_key, result, ttl_seconds=self.CACHE_TTL_SECONDS)
        return result

    def _download_image(self, image_url):
        response = requests.get(image_url, headers={'User-Agent': self.user_agent},
                                timeout=self.timeout)
        response.raise_for_status()

        mime_type = mimetypes.guess_type(image_url)[0] or response.headers.get('Content-Type', '')
        mime_type = mime_type.split(';')[0].strip()
        if not mime_type.startswith('image/'):
            raise ValueError("Invalid or unsupported image URL/type.")

        return response.content, mime_type

    def generate(self, model, contents):
        """
        Run generate_content and return the response text

        Raises:
            ValueError: No API key configured or empty response
        """
        if self.client is None:
            raise ValueError("GEMINI_API_KEY is not configured")

        response = self.client.models.generate_content(model=model, contents=contents)
        if not response.text:
            raise ValueError("Gemini returned no text")
        return response.text
