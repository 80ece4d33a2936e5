"""
analysis.py — meeting metrics derived from a speaker-labelled transcript

Pipeline over the ordered utterances of one transcript:
  - normalize: validate shape, clean text in place
  - aggregate: per-speaker word/turn/interruption counts
  - classifiers: sentiment, clarity, action items (per utterance)
  - summarizers: distribution, trend, dynamics, duration, excerpts
  - analyze: assemble everything into one JSON-ready mapping

Pure and synchronous; no configuration, no I/O.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Set, Tuple, Union

logger = logging.getLogger("teamsync.analysis")

CATEGORIES = ("keyTopics", "speakerMetrics", "sentiment", "clarity")

POSITIVE = "Positive"
NEGATIVE = "Negative"
NEUTRAL = "Neutral"

CONFUSING_BELOW = 50
MAIN_POINTS_COUNT = 3

# ASCII letters and digits only; any Unicode whitespace (NBSP included) survives
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")
_FILLER_PATTERN = re.compile(r"\b(?:uh|um|like|you know)\b", re.IGNORECASE)

_POSITIVE_WORDS = ("good", "great")
_NEGATIVE_WORDS = ("bad", "poor")
_ACTION_WORDS = ("should", "need to")


class InvalidFormat(ValueError):
    """Transcript is missing `utterances` or has the wrong shape."""


class DurationError(ValueError):
    """Utterance timestamps cannot be summed into a duration."""


@dataclass
class SpeakerMetrics:
    wordCount: int = 0
    turnCount: int = 0
    interruptions: int = 0


@dataclass
class ClarityRecord:
    fillerWords: int
    clarityScore: int

    @property
    def confusing(self) -> bool:
        return self.clarityScore < CONFUSING_BELOW


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

def normalize_text(text: str) -> str:
    return _NON_ALNUM.sub("", text).lower().strip()


def normalize(transcript: Any) -> MutableMapping[str, Any]:
    """Validate the transcript and rewrite each utterance's text in place.

    Every utterance is checked before any text is rewritten, so a rejected
    transcript is left as it was. Callers that need the raw text must keep
    their own copy.
    """
    if not isinstance(transcript, MutableMapping):
        raise InvalidFormat("transcript must be an object")
    utterances = transcript.get("utterances")
    if utterances is None:
        raise InvalidFormat("transcript has no 'utterances'")
    if not isinstance(utterances, list):
        raise InvalidFormat("'utterances' must be a list")
    for i, utt in enumerate(utterances):
        if not isinstance(utt, MutableMapping):
            raise InvalidFormat(f"utterance {i} must be an object")
        if not isinstance(utt.get("text"), str):
            raise InvalidFormat(f"utterance {i} has no text")
        speaker = utt.get("speaker")
        if speaker is not None and not isinstance(speaker, str):
            raise InvalidFormat(f"utterance {i} has a non-string speaker: {speaker!r}")
    for utt in utterances:
        utt["text"] = normalize_text(utt["text"])
    return transcript


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

def word_count(text: str) -> int:
    # Split on single spaces: "a  b" is three tokens and "" is one.
    return len(text.split(" "))


def aggregate(utterances: List[Mapping[str, Any]]) -> Tuple[Dict[str, SpeakerMetrics], int]:
    """Per-speaker counts in one left-to-right pass, plus the total word count."""
    metrics: Dict[str, SpeakerMetrics] = {}
    total_words = 0
    previous: Optional[Any] = None
    for i, utt in enumerate(utterances):
        speaker = utt.get("speaker")
        m = metrics.setdefault(speaker, SpeakerMetrics())
        words = word_count(utt["text"])
        m.wordCount += words
        m.turnCount += 1
        total_words += words
        if i > 0 and speaker != previous:
            m.interruptions += 1
        previous = speaker
    return metrics, total_words


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------

def classify_sentiment(text: str) -> str:
    label = NEUTRAL
    if any(w in text for w in _POSITIVE_WORDS):
        label = POSITIVE
    # Checked second so that bad/poor wins over good/great.
    if any(w in text for w in _NEGATIVE_WORDS):
        label = NEGATIVE
    return label


def score_clarity(text: str) -> ClarityRecord:
    fillers = len(_FILLER_PATTERN.findall(text))
    return ClarityRecord(fillerWords=fillers, clarityScore=max(0, 100 - 5 * fillers))


def is_action_item(text: str) -> bool:
    return any(w in text for w in _ACTION_WORDS)


def detect_action_items(utterances: List[Mapping[str, Any]]) -> List[str]:
    return [u["text"] for u in utterances if is_action_item(u["text"])]


# ---------------------------------------------------------------------------
# Summarizers
# ---------------------------------------------------------------------------

def speaker_distribution(metrics: Mapping[str, SpeakerMetrics], total_words: int) -> Dict[str, str]:
    """Share of words per speaker, e.g. {"A": "62.50%"}."""
    out: Dict[str, str] = {}
    for speaker, m in metrics.items():
        pct = (m.wordCount / total_words * 100) if total_words > 0 else 0.0
        out[speaker] = f"{pct:.2f}%"
    return out


def sentiment_trend(utterances: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [{"index": i, "sentiment": classify_sentiment(u["text"])} for i, u in enumerate(utterances)]


def overall_sentiment(utterances: List[Mapping[str, Any]]) -> Dict[str, int]:
    counts = {POSITIVE: 0, NEGATIVE: 0, NEUTRAL: 0}
    for u in utterances:
        counts[classify_sentiment(u["text"])] += 1
    return counts


def clarity_metrics(utterances: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for i, u in enumerate(utterances):
        rec = score_clarity(u["text"])
        items.append({"index": i, "speaker": u.get("speaker"), **asdict(rec)})
    return items


def confusing_segments(utterances: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for i, u in enumerate(utterances):
        rec = score_clarity(u["text"])
        if rec.confusing:
            items.append({
                "index": i,
                "speaker": u.get("speaker"),
                "text": u["text"],
                "clarityScore": rec.clarityScore,
            })
    return items


def conversation_dynamics(metrics: Mapping[str, SpeakerMetrics], utterances: List[Any]) -> Dict[str, int]:
    return {
        "interruptions": sum(m.interruptions for m in metrics.values()),
        "turnTaking": len(utterances),
    }


def _span_ms(utt: Mapping[str, Any], index: int) -> Union[int, float]:
    start = utt.get("start")
    end = utt.get("end")
    for name, value in (("start", start), ("end", end)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DurationError(f"utterance {index} has a non-numeric '{name}': {value!r}")
        if isinstance(value, float) and not math.isfinite(value):
            raise DurationError(f"utterance {index} has a non-finite '{name}': {value!r}")
    if end < start:
        raise DurationError(f"utterance {index} ends before it starts ({start} > {end})")
    return end - start


def meeting_duration(utterances: List[Mapping[str, Any]]) -> Dict[str, int]:
    """Sum of per-utterance spans, as whole hours/minutes/seconds.

    Overlaps and gaps between utterances are not accounted for, so this is
    total speaking time rather than wall-clock length.
    """
    total = sum(_span_ms(u, i) for i, u in enumerate(utterances))
    if isinstance(total, float) and not math.isfinite(total):
        raise DurationError(f"total duration overflows: {total!r}")
    return {
        "hours": int(total // 3_600_000),
        "minutes": int((total % 3_600_000) // 60_000),
        "seconds": int((total % 60_000) // 1000),
    }


def main_points(utterances: List[Mapping[str, Any]], count: int = MAIN_POINTS_COUNT) -> List[str]:
    return [u["text"] for u in utterances[:count]]


def key_topics(utterances: List[Mapping[str, Any]], count: int = MAIN_POINTS_COUNT) -> str:
    return " ".join(main_points(utterances, count))


def engagement(metrics: Mapping[str, SpeakerMetrics]) -> List[Dict[str, Any]]:
    return [{"speaker": speaker, "engagement": m.wordCount} for speaker, m in metrics.items()]


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

def parse_categories(raw: Union[None, str, Iterable[str]]) -> Optional[Set[str]]:
    """Turn "a,b" or ["a", "b,c"] into a category set; None means all."""
    if raw is None:
        return None
    values = [raw] if isinstance(raw, str) else list(raw)
    selected: Set[str] = set()
    for value in values:
        for part in value.split(","):
            name = part.strip()
            if not name:
                continue
            if name not in CATEGORIES:
                raise InvalidFormat(f"unknown category '{name}' (expected one of: {', '.join(CATEGORIES)})")
            selected.add(name)
    return selected


def analyze(transcript: Any, categories: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Compute the full metric set for one transcript.

    `categories` gates speakerMetrics, sentiment (overallSentiment) and
    clarity (clarityMetrics, confusingSegments); the remaining sections are
    always present. `meetingPerformance` is dropped if the timestamps are
    unusable.
    """
    selected = set(CATEGORIES) if categories is None else parse_categories(categories)
    utterances = normalize(transcript)["utterances"]

    metrics, total_words = aggregate(utterances)

    result: Dict[str, Any] = {"keyTopics": key_topics(utterances)}
    if "speakerMetrics" in selected:
        result["speakerMetrics"] = {speaker: asdict(m) for speaker, m in metrics.items()}
    if "sentiment" in selected:
        result["overallSentiment"] = overall_sentiment(utterances)
    if "clarity" in selected:
        result["clarityMetrics"] = clarity_metrics(utterances)
        result["confusingSegments"] = confusing_segments(utterances)

    result["speakerDistribution"] = speaker_distribution(metrics, total_words)
    result["sentimentTrend"] = sentiment_trend(utterances)
    result["conversationDynamics"] = conversation_dynamics(metrics, utterances)
    result["actionItems"] = detect_action_items(utterances)

    try:
        result["meetingPerformance"] = {
            "duration": meeting_duration(utterances),
            "engagement": engagement(metrics),
        }
    except (DurationError, TypeError, KeyError, ValueError, OverflowError) as e:
        logger.warning(f"meeting duration unavailable, omitting meetingPerformance: {e}", exc_info=True)

    result["mainPoints"] = main_points(utterances)
    return result
