"""
folio/analyst.py  —  Free-text questions about the trade history

The analyst gets a serialised slice of the most recent trades plus the
user's question and answers in free text. The text generator is
pluggable; without one a fixed demo answer is returned.
"""

import json
import logging
from dataclasses import asdict
from typing import Iterable, Optional, Protocol

from folio.models import Trade

logger = logging.getLogger(__name__)

TRADE_LIMIT = 50
DEMO_ANSWER = ("Demo mode: no text generator is configured. Configure one to get "
               "answers about your trades.")


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


def build_prompt(trades: Iterable[Trade], question: str, limit: int = TRADE_LIMIT) -> str:
    recent = sorted(trades, key=lambda t: t.date, reverse=True)[:limit]
    payload = [{**asdict(t), "side": t.side.value} for t in recent]
    return (
        "You are a portfolio analyst. Use only the trades below to answer.\n"
        f"Trades (most recent {len(payload)}):\n"
        f"{json.dumps(payload, indent=1)}\n\n"
        f"Question: {question.strip()}\n"
    )


def ask_analyst(trades: Iterable[Trade], question: str,
                generator: Optional[TextGenerator] = None) -> str:
    if not question.strip():
        return "Please ask a question."
    if generator is None:
        return DEMO_ANSWER
    try:
        return generator.generate(build_prompt(trades, question))
    except Exception as e:   # generator backends raise their own error types
        logger.warning("Analyst request failed: %s", e)
        return f"The analyst could not answer right now: {e}"
