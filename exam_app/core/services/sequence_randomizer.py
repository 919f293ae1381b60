"""Session-stable shuffling of questions and their answer options."""

from __future__ import annotations

from dataclasses import replace
import random
from typing import Sequence, TypeVar

from exam_app.core.models import Question

T = TypeVar("T")


class SequenceRandomizer:
    """Produces unbiased permutations without touching the input sequences."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def shuffled(self, items: Sequence[T]) -> list[T]:
        """Return a new list holding ``items`` in uniformly random order.

        ``random.Random.shuffle`` is a Fisher-Yates shuffle, so this is O(n)
        and unbiased. Lists of length 0 or 1 come back unchanged.
        """
        result = list(items)
        if len(result) > 1:
            self._rng.shuffle(result)
        return result

    def prepare_questions(self, questions: Sequence[Question]) -> tuple[Question, ...]:
        """Shuffle the question order and, independently, each option list.

        Correctness is judged on option values rather than positions, so the
        shuffled options keep the same canonical answer.
        """
        ordered = self.shuffled(questions)
        return tuple(self._shuffle_options(question) for question in ordered)

    def _shuffle_options(self, question: Question) -> Question:
        if not question.type.has_options or len(question.options) < 2:
            return question
        return replace(question, options=tuple(self.shuffled(question.options)))
