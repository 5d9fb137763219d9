"""Recover curricular entities and their relations from a generated script."""

from __future__ import annotations

import re

from curriculum_sql.models import CurricularEntity, CurricularItems, EvaluableItem

ENTITY_INSERT_RE = re.compile(r"INSERT INTO entidades.*?VALUES\s*([\s\S]*?);", re.IGNORECASE)
ENTITY_TUPLE_RE = re.compile(
    r"\(\s*(\d+)\s*,\s*(?:'([^']*)'|NULL)\s*,\s*'((?:[^']|'')*)'\s*,\s*'[^']+'\s*,\s*'([^']*)'\s*\)"
)
RELATION_INSERT_RE = re.compile(r"INSERT INTO relaciones.*?VALUES\s*([\s\S]*?);", re.IGNORECASE)
RELATION_TUPLE_RE = re.compile(
    r"\(\(SELECT id FROM entidades WHERE temp_id='([^']*)'\),\s*"
    r"\(SELECT id FROM entidades WHERE temp_id='([^']*)'\),\s*'[^']*'\)"
)

COMPETENCY_TYPES = {20, 13}
CRITERION_TYPE = 2
KNOWLEDGE_TYPES = {18, 3}


def _unescape(value: str) -> str:
    return value.replace("''", "'")


def _iter_entity_tuples(sql: str):
    for insert_match in ENTITY_INSERT_RE.finditer(sql):
        yield from ENTITY_TUPLE_RE.finditer(insert_match.group(1))


def parse_entities(sql: str) -> dict[str, CurricularEntity]:
    """Return entities keyed by ``temp_id``; later rows win on collisions."""
    entities: dict[str, CurricularEntity] = {}
    for match in _iter_entity_tuples(sql):
        tipo, codigo, nombre, temp_id = match.groups()
        if not temp_id:
            continue
        entities[temp_id] = CurricularEntity(
            tipo=int(tipo),
            codigo=_unescape(codigo) if codigo else None,
            nombre=_unescape(nombre),
            temp_id=temp_id,
        )
    return entities


def parse_relations(sql: str) -> dict[str, list[str]]:
    """Return child ``temp_id`` lists keyed by parent ``temp_id``."""
    relations: dict[str, list[str]] = {}
    for insert_match in RELATION_INSERT_RE.finditer(sql):
        for match in RELATION_TUPLE_RE.finditer(insert_match.group(1)):
            parent_id, child_id = match.groups()
            relations.setdefault(parent_id, []).append(child_id)
    return relations


def _descendants_of_type(
    start_id: str,
    target_type: int,
    entities: dict[str, CurricularEntity],
    relations: dict[str, list[str]],
    visited: frozenset[str] = frozenset(),
) -> list[CurricularEntity]:
    if start_id in visited:
        return []
    visited = visited | {start_id}

    found: list[CurricularEntity] = []
    for child_id in relations.get(start_id, []):
        child = entities.get(child_id)
        if child is None:
            continue
        if child.tipo == target_type:
            found.append(child)
        found.extend(_descendants_of_type(child_id, target_type, entities, relations, visited))
    return found


def parse_evaluable_items(sql: str) -> list[EvaluableItem]:
    """Group evaluation criteria under the competencies they belong to.

    Specific competencies (tipo 20) and learning outcomes (tipo 13) are
    parents; every criterion (tipo 2) reachable through ``relaciones`` is a
    child, de-duplicated by ``temp_id``. Parents without criteria are skipped.
    """
    entities = parse_entities(sql)
    relations = parse_relations(sql)

    items: list[EvaluableItem] = []
    for temp_id, entity in entities.items():
        if entity.tipo not in COMPETENCY_TYPES:
            continue
        children = _descendants_of_type(temp_id, CRITERION_TYPE, entities, relations)
        unique_children = list({child.temp_id: child for child in children}.values())
        if unique_children:
            items.append(EvaluableItem(parent=entity, children=unique_children))
    return items


def extract_curricular_items(sql: str) -> CurricularItems:
    """Collect competency, criterion, and knowledge names from a script."""
    competencies: list[str] = []
    criteria: list[str] = []
    knowledge: list[str] = []

    for match in _iter_entity_tuples(sql):
        tipo = int(match.group(1))
        nombre = _unescape(match.group(3))
        if tipo in COMPETENCY_TYPES:
            competencies.append(nombre)
        elif tipo == CRITERION_TYPE:
            criteria.append(nombre)
        elif tipo in KNOWLEDGE_TYPES:
            knowledge.append(nombre)

    return CurricularItems(
        competencies=list(dict.fromkeys(competencies)),
        criteria=list(dict.fromkeys(criteria)),
        knowledge=list(dict.fromkeys(knowledge)),
    )
