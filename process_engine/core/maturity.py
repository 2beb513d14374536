"""Process maturity scoring.

Scores a process 0-100 across six dimensions and maps the total onto a
five-level scale:

    master_data        20   title, description, department, owner
    structure          20   step count and connectedness
    step_details       20   share of steps with description / checklist
    responsibilities   15   share of steps with an assigned role
    documentation      10   attached media
    regulatory         15   regulatory framework assigned
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models.process_graph import ProcessMeta, ProcessVersion

MATURITY_LEVELS = [
    (90, 5, "optimised"),
    (75, 4, "managed"),
    (50, 3, "defined"),
    (25, 2, "repeatable"),
    (0, 1, "initial"),
]


@dataclass
class MaturityDimension:
    name: str
    score: int
    max_score: int
    label: str

    @property
    def status(self) -> str:
        if self.score >= self.max_score:
            return "complete"
        return "incomplete" if self.score > 0 else "missing"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "max_score": self.max_score,
            "status": self.status,
            "label": self.label,
        }


@dataclass
class ProcessMaturity:
    total_percent: int
    level: int
    level_label: str
    dimensions: List[MaturityDimension] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_percent": self.total_percent,
            "level": self.level,
            "level_label": self.level_label,
            "dimensions": [d.to_dict() for d in self.dimensions],
        }


def _share(count: int, total: int, points: int) -> int:
    """Points proportional to count/total, rounded down."""
    if total <= 0:
        return 0
    return min(points, (count * points) // total)


def maturity_level(total_percent: int):
    """(level, label) for a total score."""
    for threshold, level, label in MATURITY_LEVELS:
        if total_percent >= threshold:
            return level, label
    return 1, "initial"


def calculate_process_maturity(
    meta: ProcessMeta,
    version: Optional[ProcessVersion] = None,
    media_count: int = 0,
) -> ProcessMaturity:
    """Score a process from its header and (optionally) its current version.

    Args:
        meta: Process header
        version: Current version; without it graph dimensions score 0
        media_count: Number of attached documents/images

    Returns:
        ProcessMaturity with per-dimension scores
    """
    nodes = version.model.nodes if version is not None else []
    edges = version.model.edges if version is not None else []

    master = 0
    if meta.title:
        master += 5
    if meta.description and len(meta.description) > 20:
        master += 5
    if meta.responsible_department_id:
        master += 5
    if meta.owner_user_id:
        master += 5

    structure = 0
    if len(nodes) >= 3:
        structure += 10
    if len(nodes) >= 6:
        structure += 5
    if edges:
        structure += 5

    described = sum(1 for n in nodes if n.description and len(n.description) > 10)
    with_checklist = sum(1 for n in nodes if n.checklist)
    details = _share(described, len(nodes), 10) + _share(with_checklist, len(nodes), 10)

    with_role = sum(1 for n in nodes if n.roleId)
    roles = _share(with_role, len(nodes), 15)

    media = 0
    if media_count >= 1:
        media += 5
    if media_count >= 3:
        media += 5

    regulatory = 15 if meta.regulatory_framework else 0

    dimensions = [
        MaturityDimension("master_data", master, 20, "Title, description, department and owner"),
        MaturityDimension("structure", structure, 20, "Number of steps and their connections"),
        MaturityDimension("step_details", details, 20, "Step descriptions and checklists"),
        MaturityDimension("responsibilities", roles, 15, "Role assigned per step"),
        MaturityDimension("documentation", media, 10, "Attachments, evidence and images"),
        MaturityDimension("regulatory", regulatory, 15, "Mapped to standards and regulations"),
    ]

    total = min(100, sum(d.score for d in dimensions))
    level, label = maturity_level(total)
    return ProcessMaturity(total_percent=total, level=level, level_label=label, dimensions=dimensions)


__all__ = [
    "MaturityDimension",
    "ProcessMaturity",
    "maturity_level",
    "calculate_process_maturity",
]
