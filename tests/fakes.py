"""Deterministic stand-ins for the question source and evaluator."""
from typing import Any, Dict, List, Optional


def make_eval(score: float = 7.0, **overrides: Any) -> Dict[str, Any]:
    """Evaluator payload with every dimension defaulting to ``score``."""

    payload: Dict[str, Any] = {
        "technical": score,
        "depth": score,
        "clarity": score,
        "problem_solving": score,
        "communication": score,
        "overall": score,
        "strengths": ["Clear structure"],
        "weaknesses": ["Few concrete examples"],
        "improvements": ["Add a concrete example from your own work"],
        "major_technical_errors": [],
        "summary": "Solid answer.",
    }
    payload.update(overrides)
    return payload


class FakeQuestionSource:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.fail_on: Optional[int] = None

    def __call__(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(kwargs)
        number = len(kwargs["history"]) + 1
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise RuntimeError("question source unavailable")
        return {
            "question": f"Question {number} for {kwargs['role']}?",
            "topic": f"topic-{number}",
            "difficulty": kwargs["difficulty"],
        }


class FakeEvaluator:
    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.script: List[Any] = []

    def __call__(self, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append(kwargs)
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return make_eval(7.0)
