from __future__ import annotations

"""Question catalog loader (YAML).

Catalog files look like:

    version: 1
    questions:
      - id: table-001
        category: table
        difficulty: 1
        prompt: ...
        choices: [..., ...]
        correct_index: 2
        explanation:
          - {label: Step 1, content: ...}
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import CatalogError
from ..models import ExplanationStep, Question
from .categories import CATEGORY_MAP


def _default_catalog_path() -> str:
    return str(Path(__file__).resolve().parents[1] / "resources" / "catalog" / "sample.yml")


def _parse_question(raw: Dict[str, Any]) -> Question:
    qid = raw.get("id")
    if not qid:
        raise CatalogError(f"Question without id: {raw!r}")
    category = str(raw.get("category", ""))
    if category not in CATEGORY_MAP:
        raise CatalogError(f"Question {qid}: unknown category '{category}'")
    try:
        difficulty = int(raw.get("difficulty", 1))
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"Question {qid}: difficulty must be an integer") from exc
    if not 1 <= difficulty <= 3:
        raise CatalogError(f"Question {qid}: difficulty must be in 1..3, got {difficulty}")
    choices = tuple(str(c) for c in raw.get("choices", []) or [])
    try:
        correct_index = int(raw.get("correct_index", 0))
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"Question {qid}: correct_index must be an integer") from exc
    if choices and not 0 <= correct_index < len(choices):
        raise CatalogError(f"Question {qid}: correct_index {correct_index} out of range")
    steps = tuple(
        ExplanationStep(label=str(s.get("label", "")), content=str(s.get("content", "")))
        for s in raw.get("explanation", []) or []
    )
    return Question(
        id=str(qid),
        category=category,
        difficulty=difficulty,
        prompt=str(raw.get("prompt", "")),
        choices=choices,
        correct_index=correct_index,
        explanation=steps,
        common_mistakes=tuple(str(m) for m in raw.get("common_mistakes", []) or []),
        image_uri=str(raw.get("image_uri", "")),
    )


def load_catalog(path: str | None = None) -> List[Question]:
    """Load and validate a question catalog. Ids must be unique."""
    p = path or _default_catalog_path()
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise CatalogError(f"Catalog file not found: {p}") from exc
    questions: List[Question] = []
    seen: set[str] = set()
    for raw in data.get("questions") or []:
        q = _parse_question(raw or {})
        if q.id in seen:
            raise CatalogError(f"Duplicate question id: {q.id}")
        seen.add(q.id)
        questions.append(q)
    return questions


def questions_by_category(catalog: List[Question], category: str) -> List[Question]:
    return [q for q in catalog if q.category == category]


class YamlCatalog:
    """Catalog provider backed by a YAML file, loaded once."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._questions: Optional[List[Question]] = None

    def questions(self) -> List[Question]:
        if self._questions is None:
            self._questions = load_catalog(self.path)
        return list(self._questions)
