# render_scout/render/intents.py
"""Keyword-based intent tags for interactive elements."""
from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Iterable, List, Optional

from render_scout.crawler.models import InteractiveElement

_LOGIN_TEXT = re.compile(r"login|sign in")
_LOGIN_HREF = re.compile(r"login|signin")
_SIGNUP_TEXT = re.compile(r"register|sign up")
_SIGNUP_HREF = re.compile(r"signup|register")
_LOGOUT_TEXT = re.compile(r"logout|sign out")
_PURCHASE_TEXT = re.compile(r"cart|buy|checkout|add to cart")
_PURCHASE_HREF = re.compile(r"checkout|cart")
_CONTACT_TEXT = re.compile(r"contact|support|help")
_SUBMIT_TEXT = re.compile(r"submit|next|continue")


def label_intent(el: InteractiveElement) -> Optional[str]:
    """Return the first matching intent tag, or ``None`` for plain elements."""
    text = el.text.lower()
    placeholder = el.placeholder.lower()
    name = el.name.lower()
    type_ = el.type.lower()
    tag = el.tag.lower()
    href = el.href.lower()

    if _LOGIN_TEXT.search(text) or _LOGIN_HREF.search(href):
        return "auth_login"
    if _SIGNUP_TEXT.search(text) or _SIGNUP_HREF.search(href):
        return "auth_signup"
    if _LOGOUT_TEXT.search(text):
        return "auth_logout"
    if "search" in text or "search" in placeholder or (tag == "input" and type_ == "search"):
        return "search_input"
    if _PURCHASE_TEXT.search(text) or _PURCHASE_HREF.search(href):
        return "purchase_action"
    if _CONTACT_TEXT.search(text):
        return "contact_action"
    if tag == "form" and _LOGIN_TEXT.search(f"{name} {placeholder} {text}"):
        return "auth_login"
    if tag == "button" and _SUBMIT_TEXT.search(text):
        return "submit_action"
    return None


def summarize_intents(elements: Iterable[InteractiveElement], top: int = 5) -> List[Dict[str, object]]:
    counts = Counter(el.intent for el in elements if el.intent)
    return [{"intent": intent, "count": count} for intent, count in counts.most_common(top)]


__all__ = ["label_intent", "summarize_intents"]
