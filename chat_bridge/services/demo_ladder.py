"""Canned conversation used while the engine is unreachable.

The widget stays demonstrably functional without its backend: each visitor
turn advances one step through a fixed table until the terminal ``complete``
step ends the chat. The cursor is stored on each session (``demo_step``), so
concurrent demo chats never share a position.
"""

from dataclasses import dataclass

from chat_bridge.core.settings import BusinessConfig

COMPLETE_STATE = "complete"


@dataclass(frozen=True)
class DemoStep:
    """One canned bot turn; ``text`` may use ``{name}`` and ``{phone}``."""

    state: str
    text: str


DEMO_STEPS: tuple[DemoStep, ...] = (
    DemoStep(
        "issue_discovery",
        "Hi there! Welcome to {name}. What can we help you with today?",
    ),
    DemoStep("system_type", "Got it. What type of system needs attention?"),
    DemoStep("system_age", "Thanks! About how old is that system?"),
    DemoStep("time_preference", "When would you like a technician to come out?"),
    DemoStep(
        "offer_slot",
        "I have an opening tomorrow between 8 and 10 AM. Does that work for you?",
    ),
    DemoStep(
        COMPLETE_STATE,
        "You're all set! This was a demo, so nothing was booked. "
        "Call us at {phone} and we'll get you on the schedule.",
    ),
)


class DemoLadder:
    """Finite table of demo steps rendered for one business."""

    def __init__(
        self, business: BusinessConfig, steps: tuple[DemoStep, ...] = DEMO_STEPS
    ) -> None:
        if not steps or steps[-1].state != COMPLETE_STATE:
            raise ValueError("demo ladder must end with a 'complete' step")
        self._business = business
        self._steps = steps

    def __len__(self) -> int:
        return len(self._steps)

    def first(self) -> tuple[int, DemoStep]:
        return 0, self._render(self._steps[0])

    def advance(self, cursor: int) -> tuple[int, DemoStep]:
        """Next step after ``cursor``; stays on the terminal step once reached."""
        next_cursor = min(max(cursor, -1) + 1, len(self._steps) - 1)
        return next_cursor, self._render(self._steps[next_cursor])

    def is_complete(self, cursor: int) -> bool:
        return cursor >= len(self._steps) - 1

    def _render(self, step: DemoStep) -> DemoStep:
        return DemoStep(
            state=step.state,
            text=step.text.format(
                name=self._business.name, phone=self._business.fallback_phone
            ),
        )
