import copy
import logging

import pytest

from teamsync.services.analysis import (
    InvalidFormat,
    aggregate,
    analyze,
    classify_sentiment,
    detect_action_items,
    meeting_duration,
    normalize,
    parse_categories,
    score_clarity,
    word_count,
)


def _utt(speaker, text, start=0, end=1000):
    return {"speaker": speaker, "text": text, "start": start, "end": end}


def _scenario():
    return {
        "id": "t1",
        "filename": "standup.mp3",
        "utterances": [
            _utt("A", "This is great", 0, 1000),
            _utt("B", "uh that seems bad", 1000, 3000),
        ],
    }


def test_two_speaker_scenario():
    result = analyze(_scenario())
    assert result["sentimentTrend"] == [
        {"index": 0, "sentiment": "Positive"},
        {"index": 1, "sentiment": "Negative"},
    ]
    assert result["speakerMetrics"]["A"]["interruptions"] == 0
    assert result["speakerMetrics"]["B"]["interruptions"] == 1
    assert result["meetingPerformance"]["duration"] == {"hours": 0, "minutes": 0, "seconds": 3}
    assert result["speakerDistribution"] == {"A": "42.86%", "B": "57.14%"}
    assert result["conversationDynamics"] == {"interruptions": 1, "turnTaking": 2}
    assert result["meetingPerformance"]["engagement"] == [
        {"speaker": "A", "engagement": 3},
        {"speaker": "B", "engagement": 4},
    ]


def test_result_key_order():
    result = analyze(_scenario())
    assert list(result) == [
        "keyTopics",
        "speakerMetrics",
        "overallSentiment",
        "clarityMetrics",
        "confusingSegments",
        "speakerDistribution",
        "sentimentTrend",
        "conversationDynamics",
        "actionItems",
        "meetingPerformance",
        "mainPoints",
    ]


def test_normalize_strips_punctuation_and_lowercases():
    t = {"utterances": [_utt("A", "  Hello, World! It's 5pm.  ")]}
    normalize(t)
    assert t["utterances"][0]["text"] == "hello world its 5pm"
    assert t["utterances"][0]["speaker"] == "A"


def test_normalize_is_idempotent():
    t = {"utterances": [_utt("A", "Ünïcode — dashes & CAPS!!"), _utt("B", "  ok  ")]}
    once = copy.deepcopy(normalize(t))
    assert once["utterances"][0]["text"] == "ncode  dashes  caps"
    assert normalize(copy.deepcopy(once)) == once


def test_normalize_keeps_unicode_whitespace():
    t = {"utterances": [_utt("A", "caf\u00e9\u00a0au lait")]}
    assert normalize(t)["utterances"][0]["text"] == "caf\u00a0au lait"


def test_rejected_transcript_is_left_untouched():
    t = {"utterances": [_utt("A", "Keep ME!"), _utt(["B"], "Also me.")]}
    with pytest.raises(InvalidFormat):
        normalize(t)
    assert t["utterances"][0]["text"] == "Keep ME!"


@pytest.mark.parametrize(
    "bad",
    [
        {},
        {"utterances": None},
        {"utterances": "A: hi"},
        {"utterances": {"0": _utt("A", "hi")}},
        {"utterances": [{"speaker": "A", "start": 0, "end": 1}]},
        {"utterances": ["hi"]},
        ["not", "a", "transcript"],
        {"utterances": [_utt(["A"], "hi")]},
        {"utterances": [_utt({"name": "A"}, "hi")]},
        {"utterances": [_utt(7, "hi")]},
    ],
)
def test_invalid_shape_is_rejected(bad):
    with pytest.raises(InvalidFormat):
        analyze(bad)


def test_word_count_keeps_empty_tokens():
    assert word_count("a b c") == 3
    assert word_count("a  b") == 3
    assert word_count("") == 1


def test_interruptions_follow_speaker_changes():
    utterances = [_utt("A", "one"), _utt("A", "two"), _utt("B", "three"), _utt("A", "four")]
    metrics, total = aggregate(utterances)
    assert metrics["A"].interruptions == 1
    assert metrics["B"].interruptions == 1
    assert metrics["A"].turnCount == 3
    assert total == 4


def test_first_utterance_never_interrupts():
    metrics, _ = aggregate([_utt("Z", "hello there")])
    assert metrics["Z"].interruptions == 0


@pytest.mark.parametrize(
    "text,expected",
    [
        ("this is great", "Positive"),
        ("good job", "Positive"),
        ("that was poor", "Negative"),
        ("this was good but honestly kind of bad", "Negative"),
        ("nothing to report", "Neutral"),
        ("", "Neutral"),
    ],
)
def test_classify_sentiment(text, expected):
    assert classify_sentiment(text) == expected


def test_bad_overrides_good_after_normalization():
    result = analyze({"utterances": [_utt("A", "This was good but honestly kind of bad")]})
    assert result["sentimentTrend"] == [{"index": 0, "sentiment": "Negative"}]


def test_clarity_counts_fillers():
    rec = score_clarity("uh um like you know this is fine")
    assert rec.fillerWords == 4
    assert rec.clarityScore == 80


def test_clarity_uses_word_boundaries():
    assert score_clarity("umbrella likely uhh").fillerWords == 0
    assert score_clarity("You Know what, UM").fillerWords == 2


@pytest.mark.parametrize("fillers", range(0, 26))
def test_clarity_score_stays_in_range(fillers):
    rec = score_clarity(" ".join(["so"] + ["um"] * fillers))
    assert rec.fillerWords == fillers
    assert rec.clarityScore == max(0, 100 - 5 * fillers)
    assert 0 <= rec.clarityScore <= 100


def test_confusing_segments():
    t = {"utterances": [_utt("A", "uh um " * 6 + "so"), _utt("B", "crystal clear")]}
    result = analyze(t, ["clarity"])
    assert [c["clarityScore"] for c in result["clarityMetrics"]] == [40, 100]
    assert result["confusingSegments"] == [
        {"index": 0, "speaker": "A", "text": "uh um " * 5 + "uh um so", "clarityScore": 40}
    ]


def test_action_items_keep_order_and_text():
    t = {
        "utterances": [
            _utt("A", "We SHOULD ship it."),
            _utt("B", "Sounds fine"),
            _utt("A", "I need to check the build"),
        ]
    }
    normalize(t)
    assert detect_action_items(t["utterances"]) == ["we should ship it", "i need to check the build"]


def test_key_topics_and_main_points_use_first_three():
    t = {"utterances": [_utt("A", f"Point {i}!") for i in range(5)]}
    result = analyze(t)
    assert result["mainPoints"] == ["point 0", "point 1", "point 2"]
    assert result["keyTopics"] == "point 0 point 1 point 2"


def test_distribution_sums_to_hundred():
    t = {
        "utterances": [
            _utt("A", "one two three"),
            _utt("B", "four five six seven"),
            _utt("C", "eight"),
            _utt("A", "nine ten"),
        ]
    }
    dist = analyze(t)["speakerDistribution"]
    total = sum(float(v.rstrip("%")) for v in dist.values())
    assert abs(total - 100) <= 0.01
    assert all(v.endswith("%") for v in dist.values())


def test_turn_taking_matches_utterance_count():
    t = {"utterances": [_utt("A", "x"), _utt("B", "y"), _utt("B", "z")]}
    assert analyze(t)["conversationDynamics"]["turnTaking"] == 3


def test_empty_transcript():
    result = analyze({"utterances": []})
    assert result["speakerDistribution"] == {}
    assert result["sentimentTrend"] == []
    assert result["conversationDynamics"] == {"interruptions": 0, "turnTaking": 0}
    assert result["overallSentiment"] == {"Positive": 0, "Negative": 0, "Neutral": 0}
    assert result["meetingPerformance"] == {
        "duration": {"hours": 0, "minutes": 0, "seconds": 0},
        "engagement": [],
    }
    assert result["keyTopics"] == ""
    assert result["mainPoints"] == []


def test_duration_sums_spans():
    utterances = [_utt("A", "x", 0, 3_600_000), _utt("B", "y", 0, 61_500)]
    assert meeting_duration(utterances) == {"hours": 1, "minutes": 1, "seconds": 1}


def test_duration_failure_drops_meeting_performance(caplog):
    t = {"utterances": [_utt("A", "good"), {"speaker": "B", "text": "fine", "start": "soon", "end": None}]}
    with caplog.at_level(logging.WARNING, logger="teamsync.analysis"):
        result = analyze(t)
    assert "meetingPerformance" not in result
    assert result["conversationDynamics"]["turnTaking"] == 2
    assert any("meetingPerformance" in r.getMessage() for r in caplog.records)


def test_reversed_timestamps_drop_meeting_performance():
    result = analyze({"utterances": [_utt("A", "hi", 5000, 1000)]})
    assert "meetingPerformance" not in result


def test_filter_gates_only_filterable_sections():
    result = analyze(_scenario(), [])
    for key in ("speakerMetrics", "overallSentiment", "clarityMetrics", "confusingSegments"):
        assert key not in result
    for key in (
        "keyTopics",
        "speakerDistribution",
        "sentimentTrend",
        "conversationDynamics",
        "actionItems",
        "meetingPerformance",
        "mainPoints",
    ):
        assert key in result


def test_filter_selects_sentiment():
    result = analyze(_scenario(), ["sentiment"])
    assert result["overallSentiment"] == {"Positive": 1, "Negative": 1, "Neutral": 0}
    assert "speakerMetrics" not in result


def test_parse_categories():
    assert parse_categories(None) is None
    assert parse_categories("") == set()
    assert parse_categories("clarity, sentiment") == {"clarity", "sentiment"}
    assert parse_categories(["keyTopics", "speakerMetrics,clarity"]) == {"keyTopics", "speakerMetrics", "clarity"}
    with pytest.raises(InvalidFormat):
        parse_categories("mood")


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), -float("inf")])
def test_non_finite_timestamps_drop_meeting_performance(bad):
    result = analyze({"utterances": [_utt("A", "hi", 0, 1000), {"speaker": "B", "text": "ok", "start": 0, "end": bad}]})
    assert "meetingPerformance" not in result
    assert result["conversationDynamics"]["turnTaking"] == 2


def test_huge_integer_timestamps_still_sum():
    result = analyze({"utterances": [_utt("A", "hi", 0, 10 ** 400)]})
    assert set(result["meetingPerformance"]["duration"]) == {"hours", "minutes", "seconds"}
