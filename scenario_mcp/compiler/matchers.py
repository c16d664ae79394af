"""Intent matchers.

Each matcher takes one sentence and returns at most one Action. Trigger
words are looked up in the lower-cased sentence; literals are extracted
from the original sentence so they keep their case.
"""
from __future__ import annotations

import re
from collections.abc import Callable

from scenario_mcp.compiler import actions
from scenario_mcp.compiler.actions import Action

Matcher = Callable[[str], Action | None]

_URL_RE = re.compile(r"https?://[^\s'\"<>]+", re.IGNORECASE)
_QUOTED_RE = re.compile(r"'([^']+)'|\"([^\"]+)\"")
_CLICK_RE = re.compile(r"click\s+(?:on\s+)?(?:the\s+)?['\"]([^'\"]+)['\"]", re.IGNORECASE)
_INPUT_RE = re.compile(
    r"(?:type|input|enter)\s+['\"]([^'\"]+)['\"]\s+(?:in|into)\s+(?:the\s+)?['\"]([^'\"]+)['\"]",
    re.IGNORECASE,
)
_ASSERTION_RE = re.compile(r"(?:should|expect|verify|check).*?['\"]([^'\"]+)['\"]", re.IGNORECASE)
_WAIT_RE = re.compile(r"(\d+)\s*(?:second|sec|s)", re.IGNORECASE)

_URL_TRAILING = ".,;:!?"


def _trim_url(url: str) -> str:
    # A closing paren is kept only while it balances an opening one in the URL.
    while url:
        stripped = url.rstrip(_URL_TRAILING)
        if stripped.endswith(")") and stripped.count(")") > stripped.count("("):
            stripped = stripped[:-1]
        if stripped == url:
            break
        url = stripped
    return url


def _has_any(lowered: str, triggers: tuple[str, ...]) -> bool:
    return any(trigger in lowered for trigger in triggers)


def match_navigation(sentence: str) -> Action | None:
    if not _has_any(sentence.lower(), ("visit", "go to", "navigate to")):
        return None

    url_match = _URL_RE.search(sentence)
    if url_match:
        url = _trim_url(url_match.group(0))
        if url:
            return actions.navigate(url)

    # Falls back to any quoted literal, even one meant as a click target.
    quoted = _QUOTED_RE.search(sentence)
    if quoted:
        return actions.navigate(quoted.group(1) or quoted.group(2))
    return None


def match_click(sentence: str) -> Action | None:
    if "click" not in sentence.lower():
        return None
    match = _CLICK_RE.search(sentence)
    if match:
        return actions.click(match.group(1))
    return None


def match_input(sentence: str) -> Action | None:
    if not _has_any(sentence.lower(), ("type", "input", "enter")):
        return None
    match = _INPUT_RE.search(sentence)
    if match:
        return actions.input_text(field=match.group(2), text=match.group(1))
    return None


def match_assertion(sentence: str) -> Action | None:
    lowered = sentence.lower()
    if not _has_any(lowered, ("should", "expect", "verify", "check")):
        return None
    match = _ASSERTION_RE.search(sentence)
    if not match:
        return None

    text = match.group(1)
    if _has_any(lowered, ("visible", "see", "display")):
        return actions.assert_visible(text)
    if _has_any(lowered, ("exist", "present")):
        return actions.assert_exists(text)
    return None


def match_wait(sentence: str) -> Action | None:
    if "wait" not in sentence.lower():
        return None
    match = _WAIT_RE.search(sentence)
    if match:
        return actions.wait(int(match.group(1)))
    return None


# Priority order; every matcher runs on every sentence.
MATCHERS: tuple[Matcher, ...] = (
    match_navigation,
    match_click,
    match_input,
    match_assertion,
    match_wait,
)
