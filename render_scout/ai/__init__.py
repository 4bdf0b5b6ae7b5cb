# File: render_scout/ai/__init__.py
"""render_scout.ai: удалённый классификатор и шлюз-арбитр с кэшем."""

from .client import GroqClient
from .gateway import AiTieBreaker, parse_label

__all__ = ["GroqClient", "AiTieBreaker", "parse_label"]
