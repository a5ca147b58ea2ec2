"""
Google Gemini API client producing assistant replies for the chat
"""

from __future__ import annotations

import base64
import logging
from typing import Optional, Dict, Any, List

import google.generativeai as genai
from google.generativeai.types import HarmCategory, HarmBlockThreshold

from models import Message
from services.message_renderer import resolve_image_attachment

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are Vaidya, a friendly Ayurvedic wellness assistant. Answer clearly, "
    "mention when something needs a doctor, and describe images the user shares."
)


class AssistantUnavailableError(Exception):
    """Raised when Gemini cannot produce a reply."""


def decode_data_url(url: str) -> Optional[Dict[str, Any]]:
    """Turn a ``data:<mime>;base64,<payload>`` URL into a Gemini inline blob."""
    if not url.startswith("data:") or ";base64," not in url:
        return None
    header, payload = url[5:].split(";base64,", 1)
    return {"mime_type": header or "application/octet-stream", "data": base64.b64decode(payload)}


class GeminiClient:
    """Client for interacting with Google Gemini API"""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize Gemini client

        Args:
            config: Gemini configuration dictionary
        """
        self.config = config
        self.api_key = config["api_key"]
        self.model_name = config.get("model_name", "gemini-1.5-flash")
        self.temperature = config.get("temperature", 0.7)
        self.max_tokens = config.get("max_tokens", 1000)
        self.top_p = config.get("top_p", 0.8)
        self.top_k = config.get("top_k", 40)
        self.context_length = int(config.get("context_length", 10))
        self.system_prompt = config.get("system_prompt", DEFAULT_SYSTEM_PROMPT)

        # Configure API
        genai.configure(api_key=self.api_key)

        # Initialize model
        self.model = self._initialize_model()

    def _initialize_model(self):
        """Initialize the Gemini model with safety settings"""

        generation_config = {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "top_k": self.top_k,
            "max_output_tokens": self.max_tokens,
        }

        safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        }

        try:
            model = genai.GenerativeModel(
                model_name=self.model_name,
                generation_config=generation_config,
                safety_settings=safety_settings,
                system_instruction=self.system_prompt,
            )
            logger.info(f"Gemini model '{self.model_name}' initialized successfully")
            return model
        except Exception as e:
            logger.error(f"Failed to initialize Gemini model: {str(e)}")
            raise

    def build_history(self, history: List[Message]) -> List[Dict[str, Any]]:
        """Convert stored messages to Gemini chat history (text turns only)."""
        api_history = []
        window = self.context_length * 2
        recent = history[-window:] if window > 0 else []
        for msg in recent:
            if not msg.content:
                continue
            api_history.append({
                "role": "model" if msg.role == "assistant" else "user",
                "parts": [msg.content],
            })
        return api_history

    def build_parts(self, message: Message) -> List[Any]:
        parts: List[Any] = []
        image = resolve_image_attachment(message.attachments)
        if image is not None:
            blob = decode_data_url(image.url)
            if blob is not None:
                parts.append(blob)
        parts.append(message.content or "Please describe this image.")
        return parts

    async def generate_reply(self, conversation_id: str, history: List[Message], message: Message) -> str:
        """
        Generate a reply to ``message`` given the earlier turns of the conversation.

        Args:
            conversation_id: conversation the message belongs to (for logging)
            history: earlier messages, oldest first, not including ``message``
            message: the user message to answer

        Returns:
            Reply text

        Raises:
            AssistantUnavailableError: when Gemini fails or answers with nothing
        """
        logger.info(f"Generating reply in conversation {conversation_id} (history: {len(history)} messages)")
        try:
            chat_session = self.model.start_chat(history=self.build_history(history))
            response = await chat_session.send_message_async(self.build_parts(message))
            reply = (response.text or "").strip()
        except Exception as e:
            logger.exception(f"Error generating reply in conversation {conversation_id}: {str(e)}")
            raise AssistantUnavailableError(str(e)) from e

        if not reply:
            logger.warning(f"Empty response from Gemini in conversation {conversation_id}")
            raise AssistantUnavailableError("Empty response from model")
        return reply
