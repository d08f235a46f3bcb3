"""
Mood Mapper
Static lookup from an inferred emotion label to a recommendation bundle
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class MoodRecommendation:
    categories: Tuple[str, ...]
    display_name: str
    tag: str

    def to_dict(self) -> Dict:
        return {"name": self.display_name, "tag": self.tag}


def _entry(name: str, tag: str, *categories: str) -> MoodRecommendation:
    return MoodRecommendation(categories=(tag,) + categories, display_name=name, tag=tag)


# Keys are lower-cased model labels: the emotion model (GoEmotions / Ekman
# labels) and the binary sentiment fallback (positive / negative)
MOOD_TABLE: Dict[str, MoodRecommendation] = {
    "joy": _entry("Party Hits", "party", "happy", "energetic"),
    "happy": _entry("Party Hits", "party", "happy"),
    "amusement": _entry("Feel Good Pop", "happy", "party"),
    "excitement": _entry("Hype Mix", "energetic", "party"),
    "optimism": _entry("Uplift Vibes", "motivational", "happy"),
    "admiration": _entry("Feel Good Pop", "happy", "inspirational"),
    "approval": _entry("Feel Good Pop", "happy"),
    "gratitude": _entry("Warm Acoustic", "acoustic", "happy"),
    "pride": _entry("Victory Lap", "motivational", "energetic"),
    "relief": _entry("Exhale", "calm", "chill"),
    "caring": _entry("Warm Acoustic", "acoustic", "romantic"),
    "love": _entry("Romantic Evening", "romantic", "acoustic"),
    "desire": _entry("Romantic Evening", "romantic"),
    "curiosity": _entry("Fresh Finds", "inspirational", "chill"),
    "realization": _entry("Deep Focus", "focus", "calm"),
    "surprise": _entry("Trending Now", "energetic", "party"),
    "neutral": _entry("Lo-fi Chill Beats", "chill", "focus"),
    "confusion": _entry("Deep Focus", "focus", "chill"),
    "sadness": _entry("Motivation Mix", "motivational", "sad", "calm"),
    "grief": _entry("Gentle Healing", "calm", "sad", "acoustic"),
    "remorse": _entry("Fresh Start", "inspirational", "calm"),
    "disappointment": _entry("Fresh Start", "inspirational", "motivational"),
    "embarrassment": _entry("Shake It Off", "happy", "party"),
    "anger": _entry("Calm Down", "calm", "chill"),
    "annoyance": _entry("Lo-fi Chill Beats", "chill", "calm"),
    "disapproval": _entry("Clean Slate", "inspirational", "chill"),
    "disgust": _entry("Clean Slate", "inspirational", "calm"),
    "fear": _entry("Comfort & Calm", "calm", "acoustic"),
    "nervousness": _entry("Lo-fi Chill Beats", "chill", "focus"),
    "nostalgia": _entry("Throwback Tapes", "nostalgic", "acoustic"),
    "positive": _entry("Feel Good Pop", "happy", "party"),
    "negative": _entry("Comfort & Calm", "calm", "motivational"),
    "default": _entry("Lo-fi Chill Beats", "chill", "calm"),
}

DEFAULT_MOOD = "default"


def normalize_label(label: Any) -> Optional[str]:
    if not isinstance(label, str):
        return None
    cleaned = label.strip().lower()
    return cleaned or None


def map_mood(label: Optional[str]) -> MoodRecommendation:
    """Recommendation bundle for label; unknown, empty or missing labels get the default entry"""
    key = normalize_label(label)
    return MOOD_TABLE.get(key, MOOD_TABLE[DEFAULT_MOOD]) if key else MOOD_TABLE[DEFAULT_MOOD]


def pick_top_label(response: Any) -> Optional[str]:
    """
    Highest scoring label from a classification response, lower-cased.

    The inference API answers either [[{label, score}, ...]] or
    [{label, score}, ...]; anything else yields None.
    """
    if not isinstance(response, list) or not response:
        return None
    group = response[0] if isinstance(response[0], list) else response

    best_label = None
    best_score = None
    for item in group:
        if not isinstance(item, dict):
            continue
        label = normalize_label(item.get("label"))
        if label is None:
            continue
        try:
            score = float(item.get("score") or 0)
        except (TypeError, ValueError):
            score = 0.0
        if best_score is None or score > best_score:
            best_label, best_score = label, score
    return best_label
