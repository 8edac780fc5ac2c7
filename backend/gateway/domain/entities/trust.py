"""Trust evaluation results and progress events."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TrustVerdict:
    """Outcome of the context trust evaluation for one request.

    ``tool_result_updates`` maps a ``tool_call_id`` to the sanitized
    content that replaces the original tool result before the upstream call.
    """

    context_is_trusted: bool
    tool_result_updates: dict[str, str] = field(default_factory=dict)

    @classmethod
    def trusted(cls) -> "TrustVerdict":
        return cls(context_is_trusted=True)


@dataclass(frozen=True)
class TrustProgress:
    """One question/answer round of the dual-model sanitization loop."""

    question: str
    options: tuple[str, ...]
    answer: int | None

    def render(self) -> str:
        options_text = "\n".join(f"  {idx}: {opt}" for idx, opt in enumerate(self.options))
        answer = self.answer if self.answer is not None else "unknown"
        return f"Question: {self.question}\nOptions:\n{options_text}\nAnswer: {answer}\n\n"
