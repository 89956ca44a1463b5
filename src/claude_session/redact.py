"""Secret scrubbing for rendered transcripts before they leave the machine.

Patterns must stay hyperscan-compatible: no backreferences, no lookaround.
"""

from __future__ import annotations

from functools import lru_cache

import hyperscan

REDACTED = "[REDACTED]"

SECRET_PATTERNS: dict[str, bytes] = {
    "anthropic": br"sk-ant-[A-Za-z0-9_-]{20,}",
    "openai_project": br"sk-proj-[A-Za-z0-9_-]{20,}",
    "openai": br"sk-[A-Za-z0-9_-]{20,}",
    "aws_access_key": br"(?:AKIA|ASIA)[0-9A-Z]{16}",
    "github_token": br"(?:ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9_]{36}",
    "github_pat": br"github_pat_[A-Za-z0-9_]{22,}",
    "stripe": br"(?:sk|rk)_live_[0-9a-zA-Z]{24}",
    "slack_token": br"xox(?:a|b|p|o|s|r)-(?:\d+-)+[a-zA-Z0-9]+",
    "slack_webhook": br"https://hooks\.slack\.com/services/T[a-zA-Z0-9_]+/B[a-zA-Z0-9_]+/[a-zA-Z0-9_]+",
    "google_api_key": br"AIza[0-9A-Za-z_-]{35}",
    "private_key": br"-----BEGIN (?:RSA |DSA |EC |OPENSSH |PGP )?PRIVATE KEY(?: BLOCK)?-----",
}


@lru_cache(maxsize=1)
def _database() -> hyperscan.Database:
    expressions = list(SECRET_PATTERNS.values())
    db = hyperscan.Database()
    db.compile(
        expressions=expressions,
        ids=list(range(len(expressions))),
        elements=len(expressions),
        flags=[hyperscan.HS_FLAG_UTF8 | hyperscan.HS_FLAG_SOM_LEFTMOST] * len(expressions),
    )
    return db


def _merge_spans(spans: list[tuple[int, int]]) -> list[tuple[int, int]]:
    merged: list[tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def find_secret_spans(text: str) -> list[tuple[int, int]]:
    """Character spans of secrets in ``text``, merged and in order."""
    data = text.encode("utf-8")
    hits: list[tuple[int, int]] = []

    def on_match(id: int, start: int, end: int, flags: int, context: list) -> None:
        context.append((start, end))

    _database().scan(data, match_event_handler=on_match, context=hits)
    # hyperscan reports byte offsets
    return [
        (len(data[:start].decode("utf-8")), len(data[:end].decode("utf-8")))
        for start, end in _merge_spans(hits)
    ]


def redact_secrets(text: str, *, redact: bool = True) -> str:
    if not redact or not text:
        return text
    for start, end in reversed(find_secret_spans(text)):
        text = text[:start] + REDACTED + text[end:]
    return text
