import json
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from tiernotes.classifier import (
    FALLBACK,
    PLACEHOLDERS,
    DelegatedClassifier,
    HeuristicClassifier,
    TieredText,
    build_classifier,
    extract_json_object,
    make_paragraphs,
    split_sentences,
)
from tiernotes.config import Settings
from tiernotes.errors import ClassificationError

EASY = "A cell is the smallest unit of life here."
MEDIUM = "Explain how the process works in steps today."
HARD = "Because the process connects outcomes, this is the theory framework, an advanced nuance."
LONG = "Lorem ipsum dolor sit amet " * 9 + "."

NOTES = " ".join([EASY, MEDIUM, HARD, "Too short.", LONG, "Dangling text without an end"])


def mock_client(content):
    """Mock OpenAI client returning `content` from chat.completions.create."""
    client = MagicMock()
    client.chat.completions.create.return_value = MagicMock(
        choices=[MagicMock(message=MagicMock(content=content))]
    )
    return client


# ---------------------- Sentences & paragraphs ---------------------- #

def test_split_sentences_drops_short_and_unterminated():
    sentences = split_sentences(NOTES, min_length=25)
    assert sentences == [EASY, MEDIUM, HARD, LONG.strip()]


def test_split_sentences_keeps_grouped_terminators():
    assert split_sentences("Is this really the whole answer?! Yes it is.", 20) == [
        "Is this really the whole answer?!"
    ]


def test_make_paragraphs_groups_four_sentences():
    sentences = [f"Sentence {i}." for i in range(6)]
    assert make_paragraphs(sentences) == (
        "Sentence 0. Sentence 1. Sentence 2. Sentence 3.\n\nSentence 4. Sentence 5."
    )


# ---------------------- HeuristicClassifier ---------------------- #

@pytest.mark.parametrize("sentence, tier", [
    (EASY, "easy"),
    (MEDIUM, "medium"),
    (HARD, "hard"),
    (LONG.strip(), "hard"),
])
def test_assign_tier(sentence, tier):
    assert HeuristicClassifier().assign_tier(sentence) == tier


def test_score_sentence_uses_weights():
    easy, medium, hard = HeuristicClassifier().score_sentence(HARD)
    # is, because/process/connect, theory/framework/advanced
    assert easy == 1
    assert medium == 9
    assert hard == 15


def test_every_sentence_lands_in_one_bucket():
    classifier = HeuristicClassifier()
    buckets = classifier.bucket(NOTES)
    placed = [s for tier in ("easy", "medium", "hard") for s in buckets[tier]]
    assert sorted(placed) == sorted(split_sentences(NOTES, 25))
    assert all(len(s) >= 25 for s in placed)


def test_heuristic_is_deterministic():
    classifier = HeuristicClassifier()
    assert classifier.classify(NOTES) == classifier.classify(NOTES)


def test_heuristic_classify_builds_paragraphs():
    result = HeuristicClassifier().classify(NOTES)
    assert result.easy == EASY
    assert result.medium == MEDIUM
    assert result.hard == f"{HARD} {LONG.strip()}"


def test_heuristic_empty_buckets_get_placeholders():
    result = HeuristicClassifier().classify(EASY)
    assert result == TieredText(
        easy=EASY,
        medium=PLACEHOLDERS["medium"],
        hard=PLACEHOLDERS["hard"],
    )


def test_heuristic_min_length_is_configurable():
    result = HeuristicClassifier(min_sentence_length=50).classify(EASY)
    assert result.easy == PLACEHOLDERS["easy"]


# ---------------------- extract_json_object ---------------------- #

def test_extract_json_ignores_commentary():
    raw = 'Sure! Here you go:\n```json\n{"easy": "a", "medium": "b", "hard": "c"}\n```\nEnjoy.'
    assert extract_json_object(raw) == {"easy": "a", "medium": "b", "hard": "c"}

    trailing_braces = '{"easy": "a", "medium": "b", "hard": "c"}\nLet me know if you want {more}.'
    assert extract_json_object(trailing_braces) == {"easy": "a", "medium": "b", "hard": "c"}


@pytest.mark.parametrize("raw", ["no json here", "{not: valid}", ""])
def test_extract_json_rejects_garbage(raw):
    with pytest.raises(ClassificationError):
        extract_json_object(raw)


# ---------------------- DelegatedClassifier ---------------------- #

def test_delegated_parses_model_output():
    payload = {"easy": "Basics.", "medium": "Processes.", "hard": "Theory."}
    client = mock_client("Result:\n" + json.dumps(payload))
    result = DelegatedClassifier(client, model="test-model").classify(NOTES)

    assert result == TieredText(**payload)
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"


def test_delegated_joins_list_values():
    payload = {"easy": ["One.", "Two."], "medium": "Processes.", "hard": "Theory."}
    result = DelegatedClassifier(mock_client(json.dumps(payload))).classify(NOTES)
    assert result.easy == "One. Two."


def test_delegated_truncates_input():
    client = mock_client('{"easy": "a", "medium": "b", "hard": "c"}')
    text = "x" * 100 + "y" * 100
    DelegatedClassifier(client, max_input_chars=100).classify(text)

    prompt = client.chat.completions.create.call_args.kwargs["messages"][-1]["content"]
    assert "x" * 100 in prompt
    assert "y" not in prompt.split("---")[1]


def test_delegated_short_input_skips_call():
    client = mock_client('{"easy": "a", "medium": "b", "hard": "c"}')
    assert DelegatedClassifier(client).classify("Too short.") == FALLBACK
    client.chat.completions.create.assert_not_called()


@pytest.mark.parametrize("content", [
    "I could not do that.",
    '{"easy": "a", "medium": "b"}',
    '{"easy": "a", "medium": "", "hard": "c"}',
    '["easy", "medium", "hard"]',
])
def test_delegated_bad_output_falls_back(content):
    assert DelegatedClassifier(mock_client(content)).classify(NOTES) == FALLBACK


def test_delegated_api_errors_fall_back():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = MagicMock()
    client.chat.completions.create.side_effect = openai.RateLimitError(
        "quota", response=httpx.Response(429, request=request), body=None
    )
    assert DelegatedClassifier(client).classify(NOTES) == FALLBACK

    client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)
    assert DelegatedClassifier(client).classify(NOTES) == FALLBACK


# ---------------------- build_classifier ---------------------- #

def test_build_classifier_heuristic():
    classifier = build_classifier(Settings(min_sentence_length=30))
    assert isinstance(classifier, HeuristicClassifier)
    assert classifier.min_sentence_length == 30


def test_build_classifier_delegated_uses_injected_client():
    client = MagicMock()
    settings = Settings(classifier_mode="delegated", openai_api_key="sk-test", llm_model="m")
    classifier = build_classifier(settings, client=client)
    assert isinstance(classifier, DelegatedClassifier)
    assert classifier.client is client
    assert classifier.model == "m"


def test_build_classifier_delegated_bounds_call_with_timeout():
    settings = Settings(
        classifier_mode="delegated",
        openai_api_key="sk-test",
        llm_timeout=12.5,
    )
    with patch("tiernotes.classifier.openai.OpenAI") as mock_openai:
        classifier = build_classifier(settings)

    mock_openai.assert_called_once_with(api_key="sk-test", timeout=12.5)
    assert classifier.client is mock_openai.return_value
