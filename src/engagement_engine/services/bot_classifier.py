"""Heuristic bot/fraud classification for engagement events."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Final, Protocol

from engagement_engine.core.settings import settings
from engagement_engine.db.time import utcnow

MAX_BOT_SCORE: Final[int] = 100


class InteractionHistory(Protocol):
    """Source of recent interaction counts used by the velocity rule."""

    def count_recent(self, user_id: str, ip_address: str, since: datetime) -> int:
        ...


@dataclass(frozen=True)
class BotPatternTable:
    """Static user-agent signatures and score weights for the classifier."""

    patterns: tuple[str, ...] = (
        "bot", "crawler", "spider", "scraper",
        "facebook", "twitter", "linkedin",
        "curl", "wget", "python", "java",
        "phantom", "selenium", "headless",
        "puppeteer", "playwright", "webdriver", "automation",
    )
    browser_token: str = "Mozilla"
    pattern_weight: int = 30
    missing_or_short_weight: int = 20
    no_browser_token_weight: int = 15
    compatible_without_msie_weight: int = 10
    automation_hint_weight: int = 50
    velocity_floor_score: int = 75
    _compiled: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        compiled = tuple(re.compile(re.escape(p), re.IGNORECASE) for p in self.patterns)
        object.__setattr__(self, "_compiled", compiled)

    def first_match(self, user_agent: str) -> str | None:
        for pattern, regex in zip(self.patterns, self._compiled, strict=True):
            if regex.search(user_agent):
                return pattern
        return None


DEFAULT_BOT_PATTERNS: Final[BotPatternTable] = BotPatternTable()


@dataclass(frozen=True)
class ClientHints:
    """Automation signals reported by the client itself (advisory)."""

    webdriver: bool = False
    headless: bool = False
    is_automated: bool = False

    @property
    def automated(self) -> bool:
        return self.webdriver or self.headless or self.is_automated


@dataclass(frozen=True)
class BotVerdict:
    """Outcome of classifying one interaction."""

    is_bot: bool
    bot_score: int
    reasons: Sequence[str] = ()


class BotClassifier:
    """Scores a single interaction as human or automated.

    Score contributions are additive. A user-agent signature match, a client
    automation hint, or a velocity burst forces the bot decision outright;
    otherwise the event is a bot when the score reaches the threshold.
    """

    def __init__(
        self,
        patterns: BotPatternTable = DEFAULT_BOT_PATTERNS,
        *,
        score_threshold: int | None = None,
        min_user_agent_length: int | None = None,
        velocity_window_seconds: int | None = None,
        velocity_burst_threshold: int | None = None,
    ) -> None:
        self.patterns = patterns
        self.score_threshold = (
            settings.bot_score_threshold if score_threshold is None else score_threshold
        )
        self.min_user_agent_length = (
            settings.min_user_agent_length
            if min_user_agent_length is None
            else min_user_agent_length
        )
        self.velocity_window = timedelta(
            seconds=settings.velocity_window_seconds
            if velocity_window_seconds is None
            else velocity_window_seconds
        )
        self.velocity_burst_threshold = (
            settings.velocity_burst_threshold
            if velocity_burst_threshold is None
            else velocity_burst_threshold
        )

    def score_user_agent(self, user_agent: str | None) -> tuple[int, bool, list[str]]:
        """Return ``(score, forced, reasons)`` for the user-agent heuristics."""
        table = self.patterns
        ua = user_agent or ""
        score = 0
        forced = False
        reasons: list[str] = []

        match = table.first_match(ua) if ua else None
        if match is not None:
            score += table.pattern_weight
            forced = True
            reasons.append(f"user_agent_pattern:{match}")

        if not ua or len(ua) < self.min_user_agent_length:
            score += table.missing_or_short_weight
            reasons.append("user_agent_missing_or_short")
        if table.browser_token not in ua:
            score += table.no_browser_token_weight
            reasons.append("user_agent_missing_browser_token")
        if "compatible" in ua and "MSIE" not in ua:
            score += table.compatible_without_msie_weight
            reasons.append("user_agent_compatible_without_msie")
        return score, forced, reasons

    def classify(
        self,
        ip_address: str,
        user_agent: str | None,
        user_id: str,
        client_hints: ClientHints | None = None,
        *,
        history: InteractionHistory | None = None,
        now: datetime | None = None,
    ) -> BotVerdict:
        """Classify one interaction.

        Args:
            ip_address: Caller IP address.
            user_agent: Raw User-Agent header, if any.
            user_id: Authenticated user identifier.
            client_hints: Client-reported automation flags.
            history: Ledger view used for the velocity rule; skipped when None.
            now: Classification instant (defaults to current UTC time).

        Returns:
            The immutable verdict for this interaction.
        """
        score, forced, reasons = self.score_user_agent(user_agent)

        hints = client_hints or ClientHints()
        if hints.automated:
            score += self.patterns.automation_hint_weight
            forced = True
            reasons.append("client_automation_hint")

        if history is not None:
            since = (now or utcnow()) - self.velocity_window
            # The interaction being classified counts toward its own burst.
            recent = history.count_recent(user_id, ip_address, since) + 1
            if recent > self.velocity_burst_threshold:
                forced = True
                score = max(score, self.patterns.velocity_floor_score)
                reasons.append(f"velocity:{recent}")

        score = max(0, min(MAX_BOT_SCORE, score))
        return BotVerdict(
            is_bot=forced or score >= self.score_threshold,
            bot_score=score,
            reasons=tuple(reasons),
        )
