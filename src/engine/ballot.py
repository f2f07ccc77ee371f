from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from src.engine.errors import ValidationError

SubmitFn = Callable[[int, str], object]


@dataclass
class Ballot:
    """One participant's pass through the fixed question sequence.

    A question is submitted once; moving back never re-submits or retracts.
    """

    event_id: int
    participant_name: str
    question_count: int = 5
    current: int = 1
    selections: dict[int, str] = field(default_factory=dict)
    submitted: set[int] = field(default_factory=set)

    @classmethod
    def resume(
        cls,
        event_id: int,
        participant_name: str,
        previous: dict[int, str],
        question_count: int = 5,
    ) -> Ballot:
        answered = {q: m for q, m in previous.items() if 1 <= q <= question_count}
        ballot = cls(
            event_id=event_id,
            participant_name=participant_name,
            question_count=question_count,
            selections=dict(answered),
            submitted=set(answered),
        )
        pending = [q for q in range(1, question_count + 1) if q not in answered]
        ballot.current = pending[0] if pending else question_count
        return ballot

    @property
    def selected(self) -> str | None:
        return self.selections.get(self.current)

    @property
    def is_locked(self) -> bool:
        return self.current in self.submitted

    @property
    def is_complete(self) -> bool:
        return len(self.submitted) >= self.question_count

    @property
    def progress(self) -> float:
        return self.current / self.question_count

    def select(self, model_name: str) -> None:
        if self.is_locked:
            raise ValidationError(f"Question {self.current} has already been submitted")
        self.selections[self.current] = model_name

    def back(self) -> None:
        if self.current > 1:
            self.current -= 1

    def advance(self, submit: SubmitFn) -> None:
        """Submit the current choice if needed, then move to the next question.

        The position only changes after submit returns; an exception from
        submit leaves the ballot where it was.
        """
        choice = self.selected
        if not choice:
            raise ValidationError("Please select an AI model before proceeding")
        if self.current not in self.submitted:
            submit(self.current, choice)
            self.submitted.add(self.current)
        if self.current < self.question_count:
            self.current += 1
