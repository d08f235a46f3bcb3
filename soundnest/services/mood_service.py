"""
Mood Service
Turns free text into a mood recommendation and matching public songs
"""

from typing import Dict, List, Tuple
import logging

from sqlalchemy.orm import Session, joinedload
from starlette.concurrency import run_in_threadpool

from soundnest.database.models import Category, Song, SessionLocal
from soundnest.errors import ValidationError
from soundnest.models.serializers import song_to_dict
from soundnest.services.inference_client import MoodInferenceClient
from soundnest.services.mood_mapper import DEFAULT_MOOD, MOOD_TABLE, map_mood, normalize_label
from soundnest.services.pagination import page_bounds

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000


class MoodService:
    """Service for mood-based recommendations"""

    def __init__(self, inference: MoodInferenceClient):
        self.inference = inference

    def _suggestions(self, categories: Tuple[str, ...], limit: int) -> List[Dict]:
        """Public songs in the given categories, in category priority order then newest first"""
        db: Session = SessionLocal()
        try:
            songs = db.query(Song).join(Category, Category.id == Song.category_id).options(
                joinedload(Song.category),
                joinedload(Song.creator)
            ).filter(
                Song.is_public.is_(True),
                Category.name.in_(categories)
            ).order_by(Song.created_at.desc()).all()

            priority = {name: index for index, name in enumerate(categories)}
            songs.sort(key=lambda s: priority.get(s.category.name if s.category else None, len(priority)))
            return [song_to_dict(s) for s in songs[:limit]]
        finally:
            db.close()

    async def recommend(self, text: str, limit: int = 10) -> Dict:
        """
        Detect the mood of text and recommend music for it.

        Args:
            text: Free text describing how the user feels
            limit: Maximum number of suggested songs

        Returns:
            Dictionary with the detected label, the mapped recommendation,
            its categories and suggested songs
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text is required")
        text = text.strip()
        if len(text) > MAX_TEXT_LENGTH:
            raise ValidationError(f"text must be at most {MAX_TEXT_LENGTH} characters")
        _, limit, _ = page_bounds(1, limit)

        label, model = await self.inference.detect(text)
        mood = map_mood(label)
        emotion = normalize_label(label)
        if emotion not in MOOD_TABLE:
            emotion = DEFAULT_MOOD

        suggestions = await run_in_threadpool(self._suggestions, mood.categories, limit)
        logger.info(f"Mood detected: {label or 'none'} via {model or 'no model'} -> {mood.tag}")
        return {
            "input": text,
            "modelLabel": label,
            "emotion": emotion,
            "recommendation": mood.to_dict(),
            "categories": list(mood.categories),
            "suggestions": suggestions,
        }
