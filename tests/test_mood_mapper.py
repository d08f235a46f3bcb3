"""Tests for the emotion label to recommendation table."""

from soundnest.services.mood_mapper import DEFAULT_MOOD, MOOD_TABLE, map_mood, pick_top_label


def test_joy_maps_to_party_playlist():
    mood = map_mood("joy")

    assert "party" in mood.categories
    assert "happy" in mood.categories
    assert mood.to_dict() == {"name": "Party Hits", "tag": "party"}


def test_label_case_and_whitespace_are_ignored():
    assert map_mood("  SADNESS ") == MOOD_TABLE["sadness"]


def test_unknown_and_missing_labels_use_default():
    default = MOOD_TABLE[DEFAULT_MOOD]
    for label in ("xyz-unknown", "", "   ", None, 42):
        assert map_mood(label) == default


def test_every_entry_has_categories():
    for label, mood in MOOD_TABLE.items():
        assert mood.categories, label
        assert mood.display_name, label
        assert mood.tag == mood.categories[0]


def test_pick_top_label_nested_response():
    response = [[
        {"label": "sadness", "score": 0.2},
        {"label": "Joy", "score": 0.7},
        {"label": "anger", "score": 0.1},
    ]]
    assert pick_top_label(response) == "joy"


def test_pick_top_label_flat_response():
    response = [{"label": "NEGATIVE", "score": 0.9}, {"label": "POSITIVE", "score": 0.1}]
    assert pick_top_label(response) == "negative"


def test_pick_top_label_rejects_unusable_responses():
    assert pick_top_label(None) is None
    assert pick_top_label([]) is None
    assert pick_top_label({"error": "Model is loading"}) is None
    assert pick_top_label([[{"score": 0.9}]]) is None
