from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from config.category_labels import EN_LABELS, CategoryLabelSet, resolve_category_key
from survey_insights.core import CategoryScore


@dataclass(frozen=True)
class NarrativeContext:
    """Aggregate-only inputs for narrative artifacts. Never carries per-respondent data."""

    organization_name: str
    assessment_title: str
    total_participants: int
    completion_rate: float
    category_scores: tuple[CategoryScore, ...] = ()
    expected_participants: int = 0
    labels: CategoryLabelSet = field(default=EN_LABELS)

    def by_level(self, level: str) -> list[CategoryScore]:
        return [c for c in self.category_scores if c.risk_level == level]


_ANALYSIS_TEMPLATES: dict[str, dict[str, str]] = {
    "demands_and_pace": {
        "high": "Employees report significant work overload and excessive pace; demands need urgent review.",
        "medium": "Some teams show signs of pressure from demands that call for monitoring and targeted adjustments.",
        "low": "Workload is balanced and employees consider the pace of work adequate.",
    },
    "autonomy_clarity_change": {
        "high": "Employees report low autonomy and unclear roles, which drives insecurity and stress.",
        "medium": "Role communication and delegation of responsibilities can be improved.",
        "low": "Employees understand their responsibilities and have adequate autonomy to carry them out.",
    },
    "leadership_recognition": {
        "high": "There is significant dissatisfaction with leadership and a lack of recognition, hurting motivation.",
        "medium": "The relationship with leaders can improve, especially around feedback and recognition.",
        "low": "Employees are satisfied with their leaders and feel recognized.",
    },
    "relationships_communication": {
        "high": "Working relationships show conflict and poor communication, affecting the organizational climate.",
        "medium": "There are isolated communication and relationship challenges between teams.",
        "low": "The environment is collaborative and communication between teams works well.",
    },
    "work_life_health": {
        "high": "Employees struggle to balance work and personal life, with visible effects on health.",
        "medium": "Some groups show signs of work-life imbalance that deserve attention.",
        "low": "Employees manage to keep a healthy balance between work and personal life.",
    },
    "violence_harassment": {
        "high": "ALERT: concerning reports related to violence or harassment were identified. Immediate action is required.",
        "medium": "Some situations require investigation and preventive action on workplace respect.",
        "low": "The workplace is perceived as respectful and safe.",
    },
}

_RECOMMENDATION_TEMPLATES: dict[str, list[str]] = {
    "demands_and_pace": [
        "Review how tasks are distributed across teams",
        "Introduce a policy of regular breaks",
        "Assess the need for hiring or redistribution",
    ],
    "autonomy_clarity_change": [
        "Document and communicate roles and responsibilities",
        "Train managers in effective delegation",
        "Set clear processes for communicating change",
    ],
    "leadership_recognition": [
        "Run a continuous feedback program",
        "Create a formal recognition program",
        "Train leaders in people management",
    ],
    "relationships_communication": [
        "Hold non-violent communication workshops",
        "Open transparent communication channels",
        "Promote cross-team integration activities",
    ],
    "work_life_health": [
        "Adopt a right-to-disconnect policy",
        "Offer a wellbeing and quality-of-life program",
        "Allow flexible hours where possible",
    ],
    "violence_harassment": [
        "Review and strengthen the reporting channel",
        "Run mandatory training on workplace respect",
        "Investigate reported cases urgently",
    ],
}

OVERALL_RECOMMENDATIONS = (
    "Run quarterly follow-up surveys",
    "Keep an open communication channel with employees",
    "Train leaders in psychosocial risk management",
    "Document every action taken for audit purposes",
)

_ACTION_TEMPLATES: dict[str, list[dict[str, str]]] = {
    "demands_and_pace": [
        {
            "priority": "high",
            "title": "Review task distribution",
            "description": "Analyse workload per employee and rebalance demands across the team.",
            "timeline": "2-4 weeks",
            "responsible": "Area managers",
            "expectedImpact": "30% fewer overload complaints",
        },
        {
            "priority": "medium",
            "title": "Schedule regular breaks",
            "description": "Set a policy of regular breaks during the working day.",
            "timeline": "1-2 weeks",
            "responsible": "HR",
            "expectedImpact": "20% increase in productivity",
        },
    ],
    "autonomy_clarity_change": [
        {
            "priority": "high",
            "title": "Define roles and responsibilities",
            "description": "Document and communicate the responsibilities of each role.",
            "timeline": "3-4 weeks",
            "responsible": "Management + HR",
            "expectedImpact": "40% fewer role conflicts",
        },
    ],
    "leadership_recognition": [
        {
            "priority": "high",
            "title": "Continuous feedback program",
            "description": "Run regular feedback cycles between leaders and teams.",
            "timeline": "4-6 weeks",
            "responsible": "Leadership",
            "expectedImpact": "25% increase in engagement",
        },
    ],
    "relationships_communication": [
        {
            "priority": "medium",
            "title": "Communication workshops",
            "description": "Train teams in non-violent communication and conflict resolution.",
            "timeline": "4-8 weeks",
            "responsible": "HR + Consultancy",
            "expectedImpact": "35% improvement in organizational climate",
        },
    ],
    "work_life_health": [
        {
            "priority": "high",
            "title": "Right-to-disconnect policy",
            "description": "Limit work communication outside working hours.",
            "timeline": "2-3 weeks",
            "responsible": "Board + HR",
            "expectedImpact": "50% reduction in burnout",
        },
    ],
    "violence_harassment": [
        {
            "priority": "high",
            "title": "Confidential reporting channel",
            "description": "Set up or strengthen a safe channel for harassment reports.",
            "timeline": "1-2 weeks",
            "responsible": "Compliance + HR",
            "expectedImpact": "100% coverage of reported cases",
        },
    ],
    "anchors": [
        {
            "priority": "medium",
            "title": "Recognition program",
            "description": "Recognize and value employee contributions.",
            "timeline": "4-6 weeks",
            "responsible": "HR + Leadership",
            "expectedImpact": "20% increase in overall satisfaction",
        },
        {
            "priority": "medium",
            "title": "In-depth climate research",
            "description": "Run interviews or focus groups to understand sources of dissatisfaction.",
            "timeline": "2-3 weeks",
            "responsible": "HR",
            "expectedImpact": "80% of dissatisfaction causes identified",
        },
    ],
}

DEFAULT_ACTION: dict[str, str] = {
    "id": "default",
    "priority": "low",
    "category": "General",
    "title": "Maintain continuous monitoring",
    "description": "Keep tracking indicators and running periodic surveys.",
    "timeline": "Continuous",
    "responsible": "HR",
    "expectedImpact": "Current levels maintained",
}


def analysis_for(category: str, risk_level: str) -> str:
    return _ANALYSIS_TEMPLATES.get(category, {}).get(risk_level, "No analysis available for this category.")


def recommendations_for(category: str, risk_level: str) -> list[str]:
    if risk_level == "low":
        return ["Keep current practices", "Continue periodic monitoring"]
    return list(_RECOMMENDATION_TEMPLATES.get(category, ["Develop a specific action plan for this area"]))


def _executive_summary(ctx: NarrativeContext) -> str:
    high = ctx.by_level("high")
    medium = ctx.by_level("medium")
    parts = [
        f'The assessment "{ctx.assessment_title}" at {ctx.organization_name} had '
        f"{ctx.total_participants} participants and a completion rate of {ctx.completion_rate}%."
    ]
    if high:
        parts.append(
            f"{len(high)} high-risk area(s) require immediate attention: " + ", ".join(c.label for c in high) + "."
        )
    else:
        parts.append("No high-risk areas were identified.")
    if medium:
        parts.append(
            f"{len(medium)} area(s) show medium risk and should be monitored: " + ", ".join(c.label for c in medium) + "."
        )
    return "\n\n".join(parts)


def _conclusion(ctx: NarrativeContext) -> str:
    base = "This report presents the psychosocial risk diagnosis for the organization."
    if ctx.by_level("high"):
        return f"{base} High-risk areas must be handled first to ensure compliance and employee wellbeing."
    if len(ctx.by_level("low")) == len(ctx.category_scores):
        return f"{base} Indicators are healthy; current practices should be maintained."
    return f"{base} Medium-risk areas need attention to prevent indicators from deteriorating."


def template_report(ctx: NarrativeContext) -> dict[str, Any]:
    """Deterministic report built from aggregate scores alone."""
    priorities: list[dict[str, str]] = []
    for c in ctx.by_level("high"):
        priorities.append(
            {
                "priority": "high",
                "action": f"Implement corrective measures for {c.label}",
                "timeline": "30 days",
                "responsible": "HR + Management",
            }
        )
    for c in ctx.by_level("medium"):
        priorities.append(
            {
                "priority": "medium",
                "action": f"Develop an improvement plan for {c.label}",
                "timeline": "60 days",
                "responsible": "HR",
            }
        )
    if not priorities:
        priorities.append(
            {
                "priority": "low",
                "action": "Maintain continuous monitoring of indicators",
                "timeline": "Continuous",
                "responsible": "HR",
            }
        )

    return {
        "executiveSummary": _executive_summary(ctx),
        "riskAnalysis": [
            {
                "category": c.category,
                "categoryName": c.label,
                "score": c.average_score,
                "riskLevel": c.risk_level,
                "analysis": analysis_for(c.category, c.risk_level),
                "recommendations": recommendations_for(c.category, c.risk_level),
            }
            for c in ctx.category_scores
        ],
        "overallRecommendations": list(OVERALL_RECOMMENDATIONS),
        "actionPriorities": priorities,
        "conclusion": _conclusion(ctx),
    }


def template_action_plan(
    high_risk_categories: list[dict[str, Any]],
    labels: CategoryLabelSet = EN_LABELS,
) -> list[dict[str, str]]:
    """Deterministic action items keyed off the caller's high-risk categories."""
    actions: list[dict[str, str]] = []
    for item in high_risk_categories:
        key = resolve_category_key(str(item.get("category", "")))
        for action in _ACTION_TEMPLATES.get(key, []):
            actions.append({"id": f"action-{len(actions) + 1}", "category": labels.label(key), **action})
    if not actions:
        actions.append(dict(DEFAULT_ACTION))
    return actions
