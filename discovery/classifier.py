"""Rule-based URL classification.

The rule table is plain data: an ordered tuple of ``ClassificationRule``
entries evaluated against the lowercased URL, first match wins. Exclusions
are checked first, then localized (Spanish) core content, then the primary
language tiers from highest priority down. URLs matching nothing fall back to
a score based on locale and host.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence
from urllib.parse import urlsplit

EXCLUDED_CATEGORY = "excluded"
LOCALE_MARKER = "/es/"


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    pattern: re.Pattern[str]
    priority: int
    category: str

    def matches(self, url: str) -> bool:
        return self.pattern.search(url) is not None


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    url: str
    excluded: bool
    priority: int
    category: str
    reason: str


def _rule(pattern: str, priority: int, category: str) -> ClassificationRule:
    return ClassificationRule(re.compile(pattern), priority, category)


def _exclude(pattern: str) -> ClassificationRule:
    return _rule(pattern, 0, EXCLUDED_CATEGORY)


_EXCLUSION_PATTERNS: tuple[str, ...] = (
    r"/search\?",
    r"/login",
    r"/register",
    r"/logout",
    r"/api/",
    r"/admin/",
    r"/wp-admin/",
    r"/wp-content/",
    r"\.(pdf|jpg|jpeg|png|gif|mp4|mp3|zip|doc|docx)$",
    r"/tags?/",
    r"/categor(y|ies)/",
    r"/events?/",
    r"/news/",
    r"/press/",
    r"/media/",
    r"/donate/",
    r"/donation/",
    r"/fundraising/",
    r"/contact/",
    r"/about-us/",
    r"/careers/",
    # Interactive tools render client-side and carry no parseable text.
    r"/diabetes-risk-test",
    r"/diabetes-prevention-application",
    r"/\d{4}/\d{2}/",
    r"/page/\d+",
    r"/p/\d+",
    r"#",
    r"\?",
)

SPANISH_RULES: tuple[ClassificationRule, ...] = (
    _rule(r"/es/sobre-la-diabetes/tipo-[12]", 90, "spanish-core-education"),
    _rule(r"/es/sobre-la-diabetes/prediabetes", 90, "spanish-core-education"),
    _rule(r"/es/sobre-la-diabetes/diabetes-gestacional", 85, "spanish-core-education"),
    _rule(r"/es/sobre-la-diabetes/complicaciones", 85, "spanish-core-education"),
    _rule(r"/es/vivir-con-diabetes/tipo-[12]", 90, "spanish-management"),
    _rule(r"/es/vivir-con-diabetes/recien-diagnosticado", 90, "spanish-management"),
    _rule(r"/es/vivir-con-diabetes/tratamiento", 85, "spanish-management"),
    _rule(r"/es/sobre-la-diabetes/", 80, "spanish-education"),
    _rule(r"/es/vivir-con-diabetes/", 80, "spanish-management"),
    _rule(r"/es/alimentacion-nutricion/", 75, "spanish-nutrition"),
    _rule(r"/es/salud-bienestar/", 70, "spanish-wellness"),
)

HIGH_PRIORITY_RULES: tuple[ClassificationRule, ...] = (
    _rule(r"/about-diabetes/type-[12]", 95, "core-education"),
    _rule(r"/about-diabetes/prediabetes", 95, "core-education"),
    _rule(r"/about-diabetes/gestational", 90, "core-education"),
    _rule(r"/about-diabetes/complications", 90, "core-education"),
    _rule(r"/living-with-diabetes/type-[12]", 95, "management"),
    _rule(r"/living-with-diabetes/newly-diagnosed", 95, "management"),
    _rule(r"/living-with-diabetes/treatment", 90, "management"),
    _rule(r"/advocacy/diabetes-statistics", 90, "advocacy-statistics"),
    _rule(r"/advocacy/about-ada", 90, "advocacy-mission"),
    _rule(r"/advocacy/mission", 90, "advocacy-mission"),
    _rule(r"/advocacy/insulin-access", 90, "advocacy-critical"),
    _rule(r"/advocacy/cgm", 85, "advocacy-education"),
    _rule(r"/advocacy/amputation-prevention", 85, "advocacy-education"),
    _rule(r"/advocacy/medicare", 85, "advocacy-policy"),
    _rule(r"/advocacy/medicaid", 85, "advocacy-policy"),
)

MEDIUM_HIGH_RULES: tuple[ClassificationRule, ...] = (
    _rule(r"/about-diabetes/", 85, "education"),
    _rule(r"/living-with-diabetes/", 85, "management"),
    _rule(r"/food-nutrition/", 80, "nutrition"),
    _rule(r"/health-wellness/", 75, "wellness"),
    _rule(r"/getting-sick-with-diabetes/", 80, "sick-care"),
    _rule(r"/hypoglycemia", 85, "emergency"),
    _rule(r"/advocacy/health-equity", 80, "advocacy-equity"),
    _rule(r"/advocacy/discrimination", 80, "advocacy-rights"),
    _rule(r"/advocacy/workplace", 75, "advocacy-workplace"),
    _rule(r"/advocacy/school", 75, "advocacy-education"),
    _rule(r"/advocacy/research", 75, "advocacy-research"),
    _rule(r"/advocacy/prevention", 75, "advocacy-prevention"),
)

MEDIUM_RULES: tuple[ClassificationRule, ...] = (
    _rule(r"/tools-resources/", 60, "resources"),
    _rule(r"/pregnancy/", 65, "pregnancy"),
    _rule(r"/advocacy/", 60, "advocacy-general"),
    _rule(r"/es/defensa/", 60, "spanish-advocacy"),
)


def build_exclusion_rules(target_domain: str) -> tuple[ClassificationRule, ...]:
    """Exclusions for ``target_domain``; subdomains other than ``www`` are non-content."""

    domain = re.escape(target_domain.lower())
    subdomains = _exclude(rf"^https?://(?!www\.{domain}(?:[:/]|$))[^/?#]+\.{domain}(?:[:/?#]|$)")
    return (subdomains,) + tuple(_exclude(pattern) for pattern in _EXCLUSION_PATTERNS)


def build_rule_table(target_domain: str) -> tuple[ClassificationRule, ...]:
    """Return the full ordered rule table for ``target_domain``."""

    return (
        build_exclusion_rules(target_domain)
        + SPANISH_RULES
        + HIGH_PRIORITY_RULES
        + MEDIUM_HIGH_RULES
        + MEDIUM_RULES
    )


class UrlClassifier:
    """Score and categorise URLs with a first-match-wins rule table."""

    def __init__(self, target_domain: str, rules: Sequence[ClassificationRule] | None = None) -> None:
        self._target_domain = target_domain.lower()
        self._rules = tuple(rules) if rules is not None else build_rule_table(self._target_domain)

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def classify(self, url: str) -> ClassificationResult:
        url_lower = url.lower()
        for rule in self._rules:
            if not rule.matches(url_lower):
                continue
            if rule.category == EXCLUDED_CATEGORY:
                return ClassificationResult(url, True, 0, EXCLUDED_CATEGORY, "matched exclude pattern")
            return ClassificationResult(
                url, False, rule.priority, rule.category, f"matched {rule.category} pattern"
            )
        return self._fallback(url, url_lower)

    def classify_all(self, urls: Iterable[str]) -> list[ClassificationResult]:
        return [self.classify(url) for url in urls]

    def _fallback(self, url: str, url_lower: str) -> ClassificationResult:
        if LOCALE_MARKER in url_lower:
            return ClassificationResult(
                url, False, 50, "spanish-general", "Spanish content (accessibility important)"
            )
        if self._on_target_domain(url_lower):
            return ClassificationResult(url, False, 40, "general", f"{self._target_domain} domain")
        return ClassificationResult(url, False, 10, "other", "low relevance")

    def _on_target_domain(self, url_lower: str) -> bool:
        try:
            host = urlsplit(url_lower).hostname or ""
        except ValueError:
            # Unparseable URLs (e.g. an unclosed IPv6 bracket) are never on the target domain.
            return False
        return host == self._target_domain or host.endswith("." + self._target_domain)


__all__ = [
    "ClassificationResult",
    "ClassificationRule",
    "EXCLUDED_CATEGORY",
    "UrlClassifier",
    "build_exclusion_rules",
    "build_rule_table",
]
