"""
Bounty suggestion scoring.

Scorers turn GitHub issue metadata into a suggested complexity and amount.
They are pure: no database access and no network calls, so any strategy can
be swapped in behind the same interface.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Iterable, List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_datetime

COMPLEXITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}

CRITICAL_LABELS = ["critical", "security", "breaking", "urgent", "p0"]
HIGH_LABELS = ["high", "important", "feature", "enhancement", "p1"]
LOW_LABELS = ["documentation", "good first issue", "beginner", "easy", "p3"]

DEFAULT_REASONING = "Standard complexity assessment based on available information."


@dataclass
class BountySuggestion:
    issue_id: Optional[int]
    complexity: str
    suggested_amount: int
    confidence: float
    reasoning: str

    def as_dict(self):
        return asdict(self)


def label_names(issue: dict) -> List[str]:
    # GitHub sends label objects; callers may also pass plain names
    names = []
    for label in issue.get("labels") or []:
        if isinstance(label, dict):
            label = label.get("name") or ""
        names.append(str(label).lower())
    return names


def issue_age_days(issue: dict, now: Optional[datetime] = None) -> float:
    created = issue.get("created_at")
    if not created:
        return 0.0
    created_at = parse_datetime(created) if isinstance(created, str) else created
    if created_at is None:
        return 0.0
    if timezone.is_naive(created_at):
        created_at = timezone.make_aware(created_at, dt_timezone.utc)
    now = now or timezone.now()
    return (now - created_at).total_seconds() / 86400


def _matches_any(labels: List[str], keywords: List[str]) -> bool:
    return any(keyword in label for label in labels for keyword in keywords)


class IssueScorer:
    """Interface for bounty suggestion strategies."""

    def score(self, issue: dict) -> BountySuggestion:
        raise NotImplementedError


class LabelScorer(IssueScorer):
    """
    Heuristic scorer combining labels, issue text, discussion volume and age.

    Labels pick the base tier; the title and body then nudge the amount up for
    refactoring or feature work and down for plain bug reports.
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    def score(self, issue: dict) -> BountySuggestion:
        complexity = "medium"
        amount = 50
        confidence = 0.7
        reasoning = []

        labels = label_names(issue)
        if _matches_any(labels, CRITICAL_LABELS):
            complexity, amount, confidence = "critical", 200, 0.9
            reasoning.append("Critical issue detected from labels. High priority and likely complex.")
        elif _matches_any(labels, HIGH_LABELS):
            complexity, amount, confidence = "high", 100, 0.8
            reasoning.append("High priority issue or feature request. Moderate to high complexity expected.")
        elif _matches_any(labels, LOW_LABELS):
            complexity, amount, confidence = "low", 25, 0.85
            reasoning.append("Good first issue or documentation task. Lower complexity expected.")

        text = f"{issue.get('title') or ''} {issue.get('body') or ''}".lower()

        if any(word in text for word in ("refactor", "architecture", "performance")):
            if complexity == "medium":
                complexity = "high"
            amount += 25
            reasoning.append("Technical refactoring or performance work detected.")

        if complexity == "medium" and any(word in text for word in ("bug", "error", "broken")):
            amount -= 10
            reasoning.append("Bug report - potentially straightforward fix.")

        if any(word in text for word in ("implement", "add", "create")):
            amount += 15
            reasoning.append("New feature implementation - additional complexity.")

        comments = issue.get("comments") or 0
        if comments > 10:
            amount += 20
            confidence -= 0.1
            reasoning.append("High comment activity suggests complexity or unclear requirements.")
        elif comments == 0:
            confidence -= 0.2
            reasoning.append("No discussion yet - requirements may need clarification.")

        if issue_age_days(issue, self.now) > 30:
            amount += 10
            reasoning.append("Long-standing issue - may have hidden complexity.")

        confidence = round(max(0.3, min(0.95, confidence)), 2)

        return BountySuggestion(
            issue_id=issue.get("id"),
            complexity=complexity,
            suggested_amount=int(round(amount)),
            confidence=confidence,
            reasoning=" ".join(reasoning) or DEFAULT_REASONING,
        )


class SimpleLabelScorer(IssueScorer):
    """Base amount from a single label, scaled by discussion volume and age."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    def score(self, issue: dict) -> BountySuggestion:
        labels = label_names(issue)
        if "critical" in labels:
            complexity, amount = "critical", 500
        elif "feature" in labels:
            complexity, amount = "high", 200
        elif "good first issue" in labels:
            complexity, amount = "low", 25
        else:
            complexity, amount = "medium", 50

        multiplier = 1.0
        if (issue.get("comments") or 0) > 10:
            multiplier *= 1.5
        if issue_age_days(issue, self.now) > 30:
            multiplier *= 1.3

        return BountySuggestion(
            issue_id=issue.get("id"),
            complexity=complexity,
            suggested_amount=int(round(amount * multiplier)),
            confidence=0.7,
            reasoning=f"Base amount {amount} for {complexity} issue, multiplier {round(multiplier, 2)}.",
        )


def analyze_issues(issues: Iterable[dict], scorer: Optional[IssueScorer] = None) -> dict:
    """Score every issue and summarize, highest complexity and amount first."""
    scorer = scorer or LabelScorer()
    suggestions = [scorer.score(issue) for issue in issues]
    suggestions.sort(key=lambda s: (COMPLEXITY_ORDER[s.complexity], s.suggested_amount), reverse=True)

    total = len(suggestions)
    average_confidence = sum(s.confidence for s in suggestions) / total if total else 0
    breakdown = {level: 0 for level in ("critical", "high", "medium", "low")}
    for suggestion in suggestions:
        breakdown[suggestion.complexity] += 1

    return {
        "assignments": [s.as_dict() for s in suggestions],
        "summary": {
            "total_issues": total,
            "total_suggested_value": sum(s.suggested_amount for s in suggestions),
            "average_confidence": round(average_confidence, 2),
            "complexity_breakdown": breakdown,
        },
    }
