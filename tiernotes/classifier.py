import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple

import openai

from .config import Settings
from .errors import ClassificationError

log = logging.getLogger(__name__)

TIERS = ("easy", "medium", "hard")

PLACEHOLDERS = {
    "easy": "Foundational overview.",
    "medium": "Detailed process analysis.",
    "hard": "Advanced structural implications.",
}

# keyword lists and their per-match weight
SCORING = {
    "easy": (
        ["is", "are", "defined", "basic", "simple", "who", "what", "fact", "example"],
        1,
    ),
    "medium": (
        ["how", "process", "function", "connect", "result", "method",
         "application", "interaction", "system", "because"],
        3,
    ),
    "hard": (
        ["theory", "critique", "advanced", "implication", "analysis",
         "framework", "mechanism", "structure", "significant", "hypothesis"],
        5,
    ),
}

HARD_SCORE_THRESHOLD = 5
MEDIUM_SCORE_THRESHOLD = 3
LONG_SENTENCE_LENGTH = 200
PARAGRAPH_SIZE = 4

# a run of non-terminators followed by one or more terminators
_SENTENCE = re.compile(r"[^.!?]+[.!?]+")
_JSON_DECODER = json.JSONDecoder()

CLASSIFY_PROMPT = """Sort the lecture notes below into three difficulty tiers.
- easy: definitions, basic facts and simple examples
- medium: processes, methods, applications and how things connect
- hard: theory, analysis, frameworks, mechanisms and implications

Return only a JSON object with exactly the keys "easy", "medium" and "hard".
Each value is a string of prose written from the notes, with paragraphs
separated by a blank line.

Notes:
---
{text}
---
"""


@dataclass(frozen=True)
class TieredText:
    """Paragraph-joined prose for each tier, ready for rendering."""

    easy: str
    medium: str
    hard: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


FALLBACK = TieredText(**PLACEHOLDERS)


def split_sentences(text: str, min_length: int = 25) -> List[str]:
    """
    Split text on terminal punctuation, keeping sentences whose trimmed
    length is at least `min_length`. Trailing text without a terminator is
    dropped.
    """
    sentences = (m.group().strip() for m in _SENTENCE.finditer(text or ""))
    return [s for s in sentences if len(s) >= min_length]


def make_paragraphs(sentences: List[str], size: int = PARAGRAPH_SIZE) -> str:
    paragraphs = [
        " ".join(sentences[i:i + size]) for i in range(0, len(sentences), size)
    ]
    return "\n\n".join(paragraphs)


class TextClassifier(ABC):
    """Assigns the content of sanitized notes to the easy/medium/hard tiers."""

    @abstractmethod
    def classify(self, text: str) -> TieredText:
        raise NotImplementedError


class HeuristicClassifier(TextClassifier):
    """
    Deterministic keyword scoring.

    Each sentence is scored by substring matches against the weighted
    keyword lists, then placed with a fixed policy:

    - hard if the hard score reaches 5 or the sentence is over 200 chars
    - medium if the medium score reaches 3, or both medium and easy
      keywords appear
    - easy otherwise
    """

    def __init__(self, min_sentence_length: int = 25):
        self.min_sentence_length = min_sentence_length

    def score_sentence(self, sentence: str) -> Tuple[int, int, int]:
        lowered = sentence.lower()
        scores = []
        for tier in TIERS:
            words, weight = SCORING[tier]
            scores.append(sum(weight for w in words if w in lowered))
        return scores[0], scores[1], scores[2]

    def assign_tier(self, sentence: str) -> str:
        easy, medium, hard = self.score_sentence(sentence)
        if hard >= HARD_SCORE_THRESHOLD or len(sentence) > LONG_SENTENCE_LENGTH:
            return "hard"
        if medium >= MEDIUM_SCORE_THRESHOLD or (medium > 0 and easy > 0):
            return "medium"
        return "easy"

    def bucket(self, text: str) -> Dict[str, List[str]]:
        buckets: Dict[str, List[str]] = {tier: [] for tier in TIERS}
        for sentence in split_sentences(text, self.min_sentence_length):
            buckets[self.assign_tier(sentence)].append(sentence)
        return buckets

    def classify(self, text: str) -> TieredText:
        buckets = self.bucket(text)
        log.info(
            "Heuristic split: %d easy, %d medium, %d hard sentence(s)",
            *(len(buckets[t]) for t in TIERS),
        )
        return TieredText(**{
            tier: make_paragraphs(buckets[tier]) if buckets[tier] else PLACEHOLDERS[tier]
            for tier in TIERS
        })


def extract_json_object(raw: str) -> dict:
    """
    Pull the JSON object out of free-form model output.

    Decoding starts at the first "{" and stops at the end of that object;
    commentary or markdown fences on either side are ignored.
    """
    raw = raw or ""
    start = raw.find("{")
    if start < 0:
        raise ClassificationError("No JSON object found in model response")
    try:
        data, _ = _JSON_DECODER.raw_decode(raw, start)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Model response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ClassificationError("Model response JSON is not an object")
    return data


def _tier_value(data: dict, tier: str) -> str:
    value = data.get(tier)
    if isinstance(value, list):
        value = make_paragraphs([str(v).strip() for v in value if str(v).strip()])
    if not isinstance(value, str) or not value.strip():
        raise ClassificationError(f"Model response is missing the {tier!r} tier")
    return value.strip()


class DelegatedClassifier(TextClassifier):
    """
    Delegates tier assignment to a chat-completion model.

    Never raises: any API failure or unusable response is logged and
    replaced with placeholder text for every tier.
    """

    MIN_INPUT_LENGTH = 50

    def __init__(self, client, model: str = "gpt-3.5-turbo", max_input_chars: int = 15000):
        self.client = client
        self.model = model
        self.max_input_chars = max_input_chars

    def classify(self, text: str) -> TieredText:
        try:
            return self._classify(text)
        except ClassificationError as e:
            log.warning("Delegated classification failed, using fallback: %s", e)
        except openai.RateLimitError:
            log.warning("OpenAI API quota exceeded, using fallback tiers")
        except openai.APIError as e:
            log.warning("OpenAI API error, using fallback tiers: %s", e)
        except Exception:
            log.exception("Unexpected error during delegated classification")
        return FALLBACK

    def _classify(self, text: str) -> TieredText:
        text = text or ""
        if len(text) < self.MIN_INPUT_LENGTH:
            raise ClassificationError(
                f"Input too short to classify ({len(text)} chars)"
            )

        prompt = CLASSIFY_PROMPT.format(text=text[:self.max_input_chars])
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": "You are a teaching assistant that organizes lecture notes."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.0,
        )
        raw = completion.choices[0].message.content or ""
        data = extract_json_object(raw)
        return TieredText(**{tier: _tier_value(data, tier) for tier in TIERS})


def build_classifier(settings: Settings, client: Optional[object] = None) -> TextClassifier:
    """Construct the classifier selected by CLASSIFIER_MODE."""
    if settings.classifier_mode == "delegated":
        if client is None:
            client = openai.OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.llm_timeout,
            )
        log.info("Using delegated classifier (model=%s)", settings.llm_model)
        return DelegatedClassifier(
            client,
            model=settings.llm_model,
            max_input_chars=settings.llm_max_input_chars,
        )
    log.info("Using heuristic classifier (min sentence length=%d)", settings.min_sentence_length)
    return HeuristicClassifier(min_sentence_length=settings.min_sentence_length)
