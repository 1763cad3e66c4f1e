from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class CategoryLabelSet:
    """Display labels for category/theme keys, versioned so stored reports stay explainable."""

    name: str
    version: str
    labels: Mapping[str, str]
    risk_levels: Mapping[str, str]
    aliases: Mapping[str, str] = field(default_factory=dict)

    def label(self, key: str) -> str:
        return self.labels.get(key, key)

    def risk_label(self, level: str) -> str:
        return self.risk_levels.get(level, level)


RISK_CATEGORY_KEYS = (
    "demands_and_pace",
    "autonomy_clarity_change",
    "leadership_recognition",
    "relationships_communication",
    "work_life_health",
    "violence_harassment",
    "anchors",
    "suggestions",
)

CLIMATE_THEME_KEYS = (
    "wellbeing",
    "workload",
    "leadership",
    "climate_safety",
    "satisfaction",
    "open_feedback",
)

EN_LABELS = CategoryLabelSet(
    name="en",
    version="2024.1",
    labels={
        "demands_and_pace": "Work Demands and Pace",
        "autonomy_clarity_change": "Autonomy, Clarity and Change",
        "leadership_recognition": "Leadership and Recognition",
        "relationships_communication": "Relationships, Climate and Communication",
        "work_life_health": "Work-Life Balance and Health",
        "violence_harassment": "Violence, Harassment and Fear of Retaliation",
        "anchors": "Anchors (Satisfaction, Health, Retention)",
        "suggestions": "Suggestions",
        "wellbeing": "Wellbeing",
        "workload": "Workload",
        "leadership": "Leadership",
        "climate_safety": "Climate and Safety",
        "satisfaction": "Satisfaction (NPS)",
        "open_feedback": "Open Feedback",
    },
    risk_levels={"high": "High", "medium": "Medium", "low": "Low"},
    aliases={
        "demands and pace": "demands_and_pace",
        "time management and overload": "demands_and_pace",
        "autonomy and clarity": "autonomy_clarity_change",
        "relationships and communication": "relationships_communication",
        "work-life balance": "work_life_health",
        "violence and harassment": "violence_harassment",
        "satisfaction and engagement": "anchors",
        "anchors": "anchors",
    },
)

PT_BR_LABELS = CategoryLabelSet(
    name="pt-BR",
    version="2024.1",
    labels={
        "demands_and_pace": "Demandas e Ritmo de Trabalho",
        "autonomy_clarity_change": "Autonomia, Clareza e Mudanças",
        "leadership_recognition": "Liderança e Reconhecimento",
        "relationships_communication": "Relações, Clima e Comunicação",
        "work_life_health": "Equilíbrio Trabalho–Vida e Saúde",
        "violence_harassment": "Violência, Assédio e Medo de Repressão",
        "anchors": "Âncoras (Satisfação, Saúde, Permanência)",
        "suggestions": "Sugestões",
        "wellbeing": "Bem-estar",
        "workload": "Carga de Trabalho",
        "leadership": "Liderança",
        "climate_safety": "Clima & Segurança",
        "satisfaction": "Satisfação (NPS)",
        "open_feedback": "Feedback Aberto",
    },
    risk_levels={"high": "Alto", "medium": "Médio", "low": "Baixo"},
    aliases={
        "demandas e ritmo": "demands_and_pace",
        "gestão do tempo e sobrecarga": "demands_and_pace",
        "autonomia e clareza": "autonomy_clarity_change",
        "relações e comunicação": "relationships_communication",
        "equilíbrio trabalho-vida e saúde": "work_life_health",
        "equilíbrio vida-trabalho": "work_life_health",
        "violência e assédio": "violence_harassment",
        "âncoras": "anchors",
        "satisfação e engajamento": "anchors",
    },
)

LABEL_SETS: dict[str, CategoryLabelSet] = {
    EN_LABELS.name: EN_LABELS,
    PT_BR_LABELS.name: PT_BR_LABELS,
}


def get_label_set(name: str | None) -> CategoryLabelSet:
    return LABEL_SETS.get(str(name or "").strip(), EN_LABELS)


def _fold(value: str) -> str:
    text = str(value or "").replace("–", "-")
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii").lower()
    return re.sub(r"\s+", " ", text).strip()


def resolve_category_key(value: str, label_sets: Mapping[str, CategoryLabelSet] | None = None) -> str:
    """Map a category key, display label or alias (any configured language) back to its key."""
    raw = str(value or "").strip()
    sets = list((label_sets or LABEL_SETS).values())
    if any(raw in s.labels for s in sets):
        return raw
    folded = _fold(raw)
    for label_set in sets:
        for key, label in label_set.labels.items():
            if _fold(label) == folded or _fold(key) == folded:
                return key
        for alias, key in label_set.aliases.items():
            if _fold(alias) == folded:
                return key
    return raw
