from dataclasses import dataclass
from typing import Literal, Protocol, Sequence


Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


class AIClient(Protocol):
    """Recommendation backend: one request, one complete response string.

    Implementations raise on transport or provider errors; the orchestrator owns
    the timeout and turns any failure into the deterministic fallback.
    """

    async def complete(self, messages: Sequence[ChatMessage]) -> str: ...
