"""Tests for the operator disposition prompt."""

from unittest.mock import Mock

import pytest

from repo_archiver.prompt import Disposition, build_question, prompt_disposition


def test_archive_answer(make_repository):
    ask = Mock(return_value="A")

    assert prompt_disposition(make_repository(), ask=ask) is Disposition.ARCHIVE


def test_skip_answer(make_repository):
    ask = Mock(return_value="S")

    assert prompt_disposition(make_repository(), ask=ask) is Disposition.SKIP


def test_question_mentions_name_and_last_push(make_repository):
    question = build_question(make_repository("billing-v1"))

    assert "billing-v1" in question
    assert "2019-05-17" in question
    assert question.endswith("(A)rchive, (S)kip: ")


def test_unrecognized_input_repeats_identical_question(make_repository):
    ask = Mock(side_effect=["x", "a", " A", "", "archive", "S"])

    result = prompt_disposition(make_repository(), ask=ask)

    assert result is Disposition.SKIP
    assert ask.call_count == 6
    questions = {call.args[0] for call in ask.call_args_list}
    assert len(questions) == 1


def test_many_invalid_answers_do_not_grow_the_stack(make_repository):
    answers = ["?"] * 5000 + ["A"]
    ask = Mock(side_effect=answers)

    assert prompt_disposition(make_repository(), ask=ask) is Disposition.ARCHIVE


def test_end_of_input_propagates(make_repository):
    ask = Mock(side_effect=EOFError)

    with pytest.raises(EOFError):
        prompt_disposition(make_repository(), ask=ask)
