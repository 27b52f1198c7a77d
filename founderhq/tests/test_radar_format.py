"""
Tests for radar signal validation and normalization.
"""
from founderhq.features.radar.service import DEFAULT_PRIORITY, format_radar_signals


def _signal(**overrides):
    signal = {
        "signal_type": "market_shift",
        "title": "Title",
        "description": "Description",
        "recommended_action": "Do it",
        "priority_score": 64,
        "why_now": "Now",
        "relevance_to_idea": "High",
        "risk_level": "high",
    }
    signal.update(overrides)
    return signal


def test_non_list_payload_returns_empty():
    assert format_radar_signals(None) == []
    assert format_radar_signals({"signals": []}) == []
    assert format_radar_signals("signals") == []


def test_valid_signal_is_normalized():
    [formatted] = format_radar_signals([_signal(title="  Padded  ", priority_score=64.5)])
    assert formatted["title"] == "Padded"
    assert formatted["priority_score"] == 64
    assert formatted["metadata"] == {"why_now": "Now", "relevance_to_idea": "High", "risk_level": "high"}


def test_missing_or_blank_required_fields_are_dropped():
    signals = [
        _signal(title=None),
        _signal(description="   "),
        {k: v for k, v in _signal().items() if k != "recommended_action"},
        _signal(recommended_action=42),
        _signal(),
    ]
    assert len(format_radar_signals(signals)) == 1


def test_unknown_signal_type_is_dropped():
    formatted = format_radar_signals([_signal(signal_type="rumor"), _signal(signal_type="meme_format")])
    assert [s["signal_type"] for s in formatted] == ["meme_format"]


def test_priority_defaults():
    formatted = format_radar_signals([
        _signal(priority_score=None),
        _signal(priority_score="high"),
        _signal(priority_score=True),
        _signal(priority_score="71.6"),
    ])
    assert [s["priority_score"] for s in formatted] == [DEFAULT_PRIORITY, DEFAULT_PRIORITY, DEFAULT_PRIORITY, 72]


def test_risk_level_defaults_to_medium():
    [formatted] = format_radar_signals([_signal(risk_level="extreme")])
    assert formatted["metadata"]["risk_level"] == "medium"


def test_existing_metadata_is_merged():
    [formatted] = format_radar_signals([_signal(metadata={"source": "reddit"}, why_now="")])
    assert formatted["metadata"]["source"] == "reddit"
    assert formatted["metadata"]["why_now"] is None


def test_non_dict_entries_are_skipped():
    assert len(format_radar_signals(["nope", 3, _signal()])) == 1
