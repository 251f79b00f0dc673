import json
import logging
import re
from typing import Any, Dict, List

from lib.error_handler import AppError
from lib.models import (
    PRAYER_TAGS,
    VALID_PRAYER_TYPES,
    PrayerAnalysis,
    PrayerPointResult,
    PrayerType,
)

logger = logging.getLogger(__name__)

MAX_TAGS = 2
CLEANUP_TEMPERATURE = 0.1
ANALYSIS_TEMPERATURE = 0.3

LEADING_BULLET = re.compile(r'^[-•]\s*', re.MULTILINE)

TRANSCRIPTION_PROMPT = (
    "Please correct transcription errors in punctuation or misheard words. "
    "Use line breaks only for clear paragraph shifts. Do not paraphrase or summarize."
)

TITLE_PROMPT = "Title: A concise title for the prayer, with a maximum character limit of 10."

def filter_tags(tags: List[Any]) -> List[str]:
    """Keep vocabulary tags in their original order, at most MAX_TAGS"""
    return [tag for tag in tags if isinstance(tag, str) and tag in PRAYER_TAGS][:MAX_TAGS]

def normalize_prayer_point(prayer_point: Dict[str, Any]) -> PrayerPointResult:
    prayer_type = prayer_point.get('prayerType')
    if prayer_type not in VALID_PRAYER_TYPES:
        prayer_type = PrayerType.REQUEST

    return PrayerPointResult(
        title=str(prayer_point.get('title') or '').strip(),
        prayer_type=prayer_type,
        content=str(prayer_point.get('content') or '').strip()
    )

def normalize_line_endings(text: str) -> str:
    return text.replace('\r\n', '\n').replace('\r', '\n')

class PrayerAnalysisService:
    def __init__(self, openai_client, cleanup_model: str = 'gpt-4o-mini', analysis_model: str = 'gpt-4o'):
        self.client = openai_client
        self.cleanup_model = cleanup_model
        self.analysis_model = analysis_model

    def _build_tag_prompt(self) -> str:
        return f"Tags: A list of up to 4 relevant tags for the prayer, selected from this list: {', '.join(PRAYER_TAGS)}"

    def _build_prayer_point_prompt(self, max_prayer_points: int) -> str:
        return f"""Prayer Points:
From the prayer text below, extract the **smallest number of distinct prayer points** possible, with max {max_prayer_points} points, following these rules:

- GENERAL STRATEGY:
  - Focus on **thematic grouping**. Most prayers only contain one or two core themes.
  - Do NOT create new topics unless the speaker radically shifts focus.
  - Group emotionally and contextually connected sentences together.

- GROUPING GUIDELINES:
  - If a speaker lists items under a life context (e.g., "this summer"), treat the list and related reflections as **one topic**.
  - Merge lines that refer to the same person or situation.
  - Do NOT split based on punctuation, bullets, or formatting.

- FILTERING:
  - Ignore generic prayers without context or action (e.g., "Bless everyone", "Thank you for today").

Return each prayer point in this JSON format:
{{
  "title": string, // ≤25 words
  "prayerType": one of {VALID_PRAYER_TYPES},
  "content": string // Up to 7 original sentences
}}"""

    def _build_rules(self, has_transcription: bool) -> str:
        example = {"title": "string"}
        if has_transcription:
            example["content"] = "string"
        example["tags"] = ["string"]
        example["prayerPoints"] = [
            {"title": "string", "prayerType": "string", "content": "string"}
        ]
        return (
            "- No offensive or fabricated content.\n"
            "- Respond only in valid JSON format as shown:\n"
            f"{json.dumps(example, indent=2)}"
        )

    def _build_system_prompt(self, has_transcription: bool, max_prayer_points: int) -> str:
        """Build the analysis system prompt"""
        return (
            "You are a prayer analysis assistant that extracts meaningful prayer topics from transcribed user prayers. "
            "Prayers are often emotional, repetitive, or nonlinear.\n"
            "Your job is to extract the fewest possible topics by identifying emotional or thematic unity.\n\n"
            f"{TITLE_PROMPT}\n"
            f"{self._build_tag_prompt()}\n"
            f"{self._build_prayer_point_prompt(max_prayer_points)}\n"
            "##Rules:\n"
            f"{self._build_rules(has_transcription)}"
        )

    async def clean_transcription(self, content: str) -> str:
        """Fix punctuation and misheard words in a speech-to-text transcript"""
        logger.info("Cleaning transcription...")
        response = await self.client.generate_response(
            messages=[
                {"role": "system", "content": "You are a careful copy editor."},
                {"role": "user", "content": f"{TRANSCRIPTION_PROMPT}\n\n{content}"}
            ],
            model=self.cleanup_model,
            temperature=CLEANUP_TEMPERATURE
        )

        cleaned = (response or '').strip() or content
        return LEADING_BULLET.sub('', normalize_line_endings(cleaned))

    def _parse_analysis(self, raw: str) -> Dict[str, Any]:
        try:
            result = json.loads(raw or '{}')
        except json.JSONDecodeError as e:
            raise AppError(f"Invalid JSON response from AI service: {str(e)}", code='internal') from e

        if not isinstance(result, dict):
            raise AppError("Invalid response structure", code='internal')

        title = result.get('title')
        if not isinstance(title, str) or not title or not isinstance(result.get('tags'), list):
            raise AppError("Invalid response structure", code='internal')

        return result

    async def analyze(
        self,
        content: str,
        has_transcription: bool = False,
        max_prayer_points: int = 10
    ) -> PrayerAnalysis:
        """
        Analyze prayer content into a title, tags and prayer points
        """
        cleaned_transcript = content
        if has_transcription:
            cleaned_transcript = await self.clean_transcription(content)

        raw = await self.client.generate_response(
            messages=[
                {"role": "system", "content": self._build_system_prompt(has_transcription, max_prayer_points)},
                {"role": "user", "content": f"Analyze this prayer: {cleaned_transcript}"}
            ],
            model=self.analysis_model,
            temperature=ANALYSIS_TEMPERATURE,
            json_response=True
        )
        result = self._parse_analysis(raw)
        logger.info(f"Raw analysis tags: {result['tags']}")

        prayer_points = result.get('prayerPoints')
        if not isinstance(prayer_points, list):
            logger.warning("No prayer points list in analysis response")
            prayer_points = []

        processed_points = []
        for prayer_point in prayer_points:
            if not isinstance(prayer_point, dict):
                logger.warning(f"Skipping malformed prayer point: {prayer_point}")
                continue
            processed_points.append(normalize_prayer_point(prayer_point))

        return PrayerAnalysis(
            title=result['title'].strip(),
            cleaned_transcription=normalize_line_endings(cleaned_transcript) if has_transcription else None,
            tags=filter_tags(result['tags']),
            prayer_points=processed_points[:max_prayer_points]
        )
