"""Video and audio generation tools (MoneyPrinterTurbo).

Script, search-term and voice results are generated locally; ``create_video``
returns a task handle for a render that runs elsewhere.
"""

import time
import uuid
from typing import Any

from shared.logging import get_logger
from shared.models import InvocationContext, ToolCategory, ToolDescriptor
from shared.schema import object_schema
from providers.base import ToolProvider

logger = get_logger(__name__)

SECONDS_PER_WORD = 0.5
DEFAULT_LANGUAGE = "English"
VIDEO_ASPECTS = ["16:9", "9:16", "1:1"]


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _require(params: dict[str, Any], name: str) -> Any:
    value = params.get(name)
    if value is None or value == "":
        raise ValueError(f"{name} is required")
    return value


class MoneyPrinterToolsProvider(ToolProvider):
    """
    MoneyPrinterTurbo provider.

    Provides tools for:
    - Video scripts and material search terms
    - Video creation tasks
    - Voice synthesis
    """

    name = "MoneyPrinterTurbo"

    def _define_tools(self) -> None:
        video = ToolCategory.VIDEO_GENERATION.value

        self._add_tool(ToolDescriptor(
            name="generate_video_script",
            description="Generate a video script based on a subject and parameters",
            input_schema=object_schema(
                {
                    "video_subject": {"type": "string", "description": "The subject/topic for the video"},
                    "language": {"type": "string", "description": "Language for the script", "default": ""},
                    "paragraph_number": {
                        "type": "integer",
                        "description": "Number of paragraphs",
                        "default": 1,
                        "minimum": 1,
                        "maximum": 10,
                    },
                },
                required=["video_subject"],
            ),
            category=video,
        ), self.generate_script)

        self._add_tool(ToolDescriptor(
            name="generate_video_terms",
            description="Generate search terms for finding relevant video materials",
            input_schema=object_schema(
                {
                    "video_subject": {"type": "string", "description": "The video subject"},
                    "video_script": {"type": "string", "description": "The video script content"},
                    "amount": {
                        "type": "integer",
                        "description": "Number of search terms",
                        "default": 5,
                        "minimum": 1,
                        "maximum": 20,
                    },
                },
                required=["video_subject", "video_script"],
            ),
            category=video,
        ), self.generate_terms)

        self._add_tool(ToolDescriptor(
            name="create_video",
            description="Create a complete video with script, voice, and visual elements",
            input_schema=object_schema(
                {
                    "video_subject": {"type": "string", "description": "The video subject/topic"},
                    "video_script": {"type": "string", "description": "Pre-written script (optional)"},
                    "video_aspect": {
                        "type": "string",
                        "enum": VIDEO_ASPECTS,
                        "description": "Video aspect ratio",
                        "default": "9:16",
                    },
                    "voice_name": {"type": "string", "description": "Voice to use for narration"},
                    "bgm_type": {"type": "string", "description": "Background music type", "default": "random"},
                    "subtitle_enabled": {"type": "boolean", "description": "Enable subtitles", "default": True},
                },
                required=["video_subject"],
            ),
            category=video,
        ), self.create_video)

        self._add_tool(ToolDescriptor(
            name="synthesize_voice",
            description="Convert text to speech using various voice options",
            input_schema=object_schema(
                {
                    "text": {"type": "string", "description": "Text to convert to speech"},
                    "voice_name": {"type": "string", "description": "Voice to use for synthesis"},
                    "voice_rate": {
                        "type": "number",
                        "description": "Speech rate (0.5-2.0)",
                        "default": 1.0,
                        "minimum": 0.5,
                        "maximum": 2.0,
                    },
                    "voice_volume": {
                        "type": "number",
                        "description": "Voice volume (0.0-1.0)",
                        "default": 1.0,
                        "minimum": 0.0,
                        "maximum": 1.0,
                    },
                },
                required=["text", "voice_name"],
            ),
            category=ToolCategory.AUDIO_GENERATION.value,
        ), self.synthesize_voice)

    async def generate_script(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        subject = _require(params, "video_subject")
        language = params.get("language") or DEFAULT_LANGUAGE
        paragraphs = params.get("paragraph_number", 1)

        script = (
            f'Generated script for "{subject}" with {paragraphs} paragraphs in {language}. '
            "This is a comprehensive video script that covers the key aspects of the topic "
            "with engaging content suitable for video production."
        )
        word_count = len(script.split(" "))

        return {
            "script": script,
            "word_count": word_count,
            "estimated_duration": word_count * SECONDS_PER_WORD,
            "language": language,
            "subject": subject,
        }

    async def generate_terms(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        subject = _require(params, "video_subject")
        _require(params, "video_script")
        amount = params.get("amount", 5)

        base = subject.lower().split(" ")[0] or "video"
        terms = [f"{base}_term_{i + 1}" for i in range(amount)]

        return {"terms": terms, "subject": subject, "amount": amount}

    async def create_video(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        subject = _require(params, "video_subject")
        aspect = params.get("video_aspect", "9:16")
        if aspect not in VIDEO_ASPECTS:
            raise ValueError(f"Unsupported video aspect: {aspect}")

        task_id = f"video_{_timestamp_ms()}_{uuid.uuid4().hex[:9]}"
        logger.info("Video task created", task_id=task_id, request_id=context.request_id)

        return {
            "task_id": task_id,
            "status": "initiated",
            "estimated_completion": "5-10 minutes",
            "subject": subject,
            "aspect": aspect,
            "settings": {
                "voice_name": params.get("voice_name", ""),
                "bgm_type": params.get("bgm_type", "random"),
                "subtitle_enabled": params.get("subtitle_enabled", True),
            },
        }

    async def synthesize_voice(self, params: dict[str, Any], context: InvocationContext) -> dict[str, Any]:
        text = _require(params, "text")
        voice_name = _require(params, "voice_name")
        rate = params.get("voice_rate", 1.0)
        volume = params.get("voice_volume", 1.0)
        if rate <= 0:
            raise ValueError("voice_rate must be positive")

        word_count = len(text.split(" "))

        return {
            "audio_file": f"voice_{_timestamp_ms()}.wav",
            "duration": word_count * SECONDS_PER_WORD / rate,
            "format": "wav",
            "voice_used": voice_name,
            "settings": {"rate": rate, "volume": volume},
        }
