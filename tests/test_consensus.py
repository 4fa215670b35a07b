"""Tests for src/consensus.py."""

import pytest

from src.consensus import (
    MajorityVote,
    WeightedSummarize,
    build_strategy,
    clean_answer,
    cluster_responses,
    pick_majority,
    split_fragments,
)
from src.models import CandidateResponse


def _responses(*texts: str) -> list[CandidateResponse]:
    return [CandidateResponse(model_id=f"vendor/m{i}", text=t) for i, t in enumerate(texts, start=1)]


# --- weighted summarize ---------------------------------------------------


def test_combine_repeats_text_by_weight(feedback_store, fake_summarizer):
    feedback_store.record_feedback("A", 1)
    feedback_store.record_feedback("A", 1)
    assert feedback_store.weight_of("A") == 3
    strategy = WeightedSummarize(feedback_store, fake_summarizer)

    combined = strategy.combine([CandidateResponse(model_id="A", text="x")])

    assert combined.split() == ["x", "x", "x"]


def test_combine_separates_responses_by_blank_line(feedback_store, fake_summarizer):
    feedback_store.record_feedback("vendor/m2", 1)
    strategy = WeightedSummarize(feedback_store, fake_summarizer)

    combined = strategy.combine(_responses("alpha", "beta"))

    assert combined == "alpha\n\nbeta beta"


@pytest.mark.parametrize("ratings", [[-1], [-1, -1], [-1, -1, -1]])
def test_combine_floors_non_positive_weight_at_one(feedback_store, fake_summarizer, ratings):
    for rating in ratings:
        feedback_store.record_feedback("vendor/m1", rating)
    strategy = WeightedSummarize(feedback_store, fake_summarizer)

    assert strategy.combine(_responses("kept")) == "kept"


async def test_weighted_build_summarizes_and_trims(feedback_store, fake_summarizer):
    strategy = WeightedSummarize(feedback_store, fake_summarizer)

    result = await strategy.build("q", _responses("one", "two"))

    fake_summarizer.summarize.assert_awaited_once_with("one\n\ntwo")
    assert result.answer == "A concise summary."
    assert result.contributing_model_ids == ["vendor/m1", "vendor/m2"]
    assert result.report_models is True


async def test_weighted_build_does_not_change_weights(feedback_store, fake_summarizer):
    strategy = WeightedSummarize(feedback_store, fake_summarizer)
    await strategy.build("q", _responses("one"))
    assert feedback_store.snapshot() == {}


async def test_weighted_build_propagates_summarizer_failure(feedback_store, fake_summarizer):
    fake_summarizer.summarize.side_effect = RuntimeError("summarizer down")
    strategy = WeightedSummarize(feedback_store, fake_summarizer)
    with pytest.raises(RuntimeError, match="summarizer down"):
        await strategy.build("q", _responses("one"))


# --- majority vote ----------------------------------------------------------


def test_near_duplicates_cluster_together():
    clusters = cluster_responses(_responses("Paris is the capital.", "Paris is the capital!", "Lyon is a city."))

    assert [(c.representative, c.count) for c in clusters] == [
        ("Paris is the capital.", 2),
        ("Lyon is a city.", 1),
    ]
    assert pick_majority(clusters).representative == "Paris is the capital."


def test_representative_is_not_replaced():
    clusters = cluster_responses(_responses("Paris is the capital!", "Paris is the capital."))
    assert clusters[0].representative == "Paris is the capital!"


def test_first_matching_cluster_wins():
    # "abcdefgXij" is within 0.8 of both representatives; it joins the first one.
    clusters = cluster_responses(_responses("abcdefghij", "abcdefgXYZ", "abcdefgXij"))
    assert [c.count for c in clusters] == [2, 1]
    assert clusters[0].model_ids == ["vendor/m1", "vendor/m3"]


def test_tie_goes_to_first_seen_cluster():
    clusters = cluster_responses(_responses("zzzzzzzzzz", "alpha alpha", "zzzzzzzzzy", "alpha alphb"))
    assert [c.count for c in clusters] == [2, 2]
    assert pick_majority(clusters).representative == "zzzzzzzzzz"


def test_strictly_larger_later_cluster_wins():
    clusters = cluster_responses(_responses("solo answer", "other text", "other texts"))
    assert pick_majority(clusters).representative == "other text"


def test_cluster_threshold_is_inclusive():
    # 1 - 2/10 == 0.8 exactly
    clusters = cluster_responses(_responses("abcdefghij", "abcdefghXY"), threshold=0.8)
    assert len(clusters) == 1


async def test_majority_vote_build():
    strategy = MajorityVote()

    result = await strategy.build(
        "What is the capital of France?",
        _responses("Paris is the capital.", "Paris is the capital!", "Lyon is a city."),
    )

    assert result.answer == "Paris is the capital."
    assert result.contributing_model_ids == ["vendor/m1", "vendor/m2"]
    assert result.report_models is False


# --- post-processing ---------------------------------------------------------


def test_clean_answer_strips_prompt_echo_case_insensitively():
    answer = clean_answer("What is the capital of France?", "what is the capital of france? Paris")
    assert answer == "Paris"


def test_clean_answer_strips_echo_with_dotted_capital_i():
    assert clean_answer("İzmir nerede?", "İZMİR NEREDE? Ege kıyısında") == "Ege kıyısında"


def test_clean_answer_keeps_text_when_lowercasing_changes_length():
    # "İ".lower() is two code points
    assert clean_answer("i̇zmir?", "İzmir?Ege kıyısında") == "İzmir?Ege kıyısında"


def test_clean_answer_strips_answer_label():
    assert clean_answer("q", "Answer: Paris") == "Paris"
    assert clean_answer("q", "ANSWER:   Paris") == "Paris"


def test_clean_answer_echo_then_label_then_dedupe():
    text = "What is the capital of France? Answer: Paris. Paris. It is big"
    assert clean_answer("What is the capital of France?", text) == "Paris It is big"


def test_split_on_dashes_hash_and_sentence_end():
    assert split_fragments("Intro --- # Heading. Body") == "Intro Heading Body"


def test_split_keeps_period_without_following_whitespace():
    assert split_fragments("Paris is the capital.") == "Paris is the capital."


def test_split_truncates_to_first_twenty_fragments():
    text = ". ".join(f"s{i}" for i in range(25))
    assert split_fragments(text) == " ".join(f"s{i}" for i in range(20))


def test_split_of_blank_text_is_empty():
    assert split_fragments(" --- # ") == ""


@pytest.mark.parametrize(
    "text",
    [
        "Paris is the capital.",
        "Intro --- # Heading. Body",
        "One. Two. One. Three",
        ". ".join(f"s{i}" for i in range(30)),
        "Answer: yes",
    ],
)
def test_split_fragments_is_idempotent(text):
    once = split_fragments(text)
    assert split_fragments(once) == once


# --- factory -----------------------------------------------------------------


def test_build_strategy_by_name(feedback_store, fake_summarizer):
    assert isinstance(build_strategy("majority_vote"), MajorityVote)
    strategy = build_strategy("weighted_summarize", feedback=feedback_store, summarizer=fake_summarizer)
    assert isinstance(strategy, WeightedSummarize)
    assert strategy.uses_relevance_filter is True


def test_build_strategy_weighted_needs_collaborators():
    with pytest.raises(ValueError, match="feedback store"):
        build_strategy("weighted_summarize")


def test_build_strategy_unknown_name():
    with pytest.raises(ValueError, match="Unknown consensus strategy"):
        build_strategy("coin_flip")
