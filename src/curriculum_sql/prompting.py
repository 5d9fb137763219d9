from __future__ import annotations

SQL_HEADER = """DROP TABLE IF EXISTS relaciones CASCADE;
DROP TABLE IF EXISTS entidades CASCADE;
DROP TABLE IF EXISTS tipo_elemento CASCADE;

CREATE TABLE tipo_elemento (
   id INTEGER PRIMARY KEY,
   descripcion TEXT
);
INSERT INTO tipo_elemento (id, descripcion) VALUES
   (0, 'Área/Materia/Asignatura/Módulo'),
   (1, 'Bloques'),
   (2, 'Criterios evaluación'),
   (3, 'Contenidos'),
   (4, 'Estándares'),
   (5, 'Competencias clave / Competencias profesionales, personales y sociales'),
   (6, 'Objetivos área'),
   (7, 'Objetivos etapa'),
   (13, 'Resultados aprendizaje'),
   (17, 'Indicadores'),
   (18, 'Saberes básicos'),
   (19, 'Descriptores'),
   (20, 'Competencias específicas');

CREATE TABLE entidades (
   id SERIAL PRIMARY KEY,
   tipo INTEGER NOT NULL REFERENCES tipo_elemento(id),
   codigo TEXT,
   nombre TEXT NOT NULL,
   traza_evalua TEXT NOT NULL
);

CREATE TABLE relaciones (
   id SERIAL PRIMARY KEY,
   id_origen INTEGER NOT NULL REFERENCES entidades(id),
   id_destino INTEGER NOT NULL REFERENCES entidades(id),
   tipo_relacion TEXT NOT NULL
);

-- Temporary column that keeps relation subqueries unambiguous
ALTER TABLE entidades ADD COLUMN temp_id TEXT UNIQUE;
"""

ELEMENT_TYPES: dict[int, str] = {
    0: "Área/Materia/Asignatura/Módulo",
    1: "Bloques",
    2: "Criterios evaluación",
    3: "Contenidos",
    4: "Estándares",
    5: "Competencias clave / Competencias profesionales, personales y sociales",
    6: "Objetivos área",
    7: "Objetivos etapa",
    13: "Resultados aprendizaje",
    17: "Indicadores",
    18: "Saberes básicos",
    19: "Descriptores",
    20: "Competencias específicas",
}


def build_generation_prompt(curriculum: str) -> str:
    """Build the prompt that turns curriculum text into ``INSERT`` statements."""
    type_lines = "\n".join(f"    - ({type_id}, '{label}')" for type_id, label in ELEMENT_TYPES.items())
    return f"""
You are an expert system that turns the text of an educational curriculum into a
PostgreSQL script made only of INSERT statements.

Generate ONLY the INSERT statements for the `entidades` and `relaciones` tables,
plus the final statement that drops the temporary column.

Assume these tables already exist and that `entidades` has a temporary `temp_id` column:
---
CREATE TABLE entidades (
   id SERIAL PRIMARY KEY,
   tipo INTEGER NOT NULL,
   codigo TEXT,
   nombre TEXT NOT NULL,
   traza_evalua TEXT NOT NULL,
   temp_id TEXT UNIQUE
);

CREATE TABLE relaciones (
   id SERIAL PRIMARY KEY,
   id_origen INTEGER NOT NULL,
   id_destino INTEGER NOT NULL,
   tipo_relacion TEXT NOT NULL
);
---

**Mandatory rules**

1. **`tipo` assignment (highest priority)**: use the exact type id for every entity:
{type_lines}
2. **Strict syntax**: every INSERT and ALTER statement ends with a semicolon.
   Escape single quotes inside text values by doubling them ('').
3. **Completeness**: one `INSERT INTO entidades ...` per curricular element. Omit nothing.
4. **`temp_id`**: every entity gets a unique, readable `temp_id`
   (e.g. 'MODULO_SISTEMAS', 'RA_1_1', 'CRITERIO_1_1_A', 'BLOQUE_1', 'SABER_B1_1').
5. **Relations through `temp_id`**: relation subqueries use `temp_id` only, in this shape:
   `INSERT INTO relaciones (id_origen, id_destino, tipo_relacion) VALUES ((SELECT id FROM entidades WHERE temp_id='ORIGIN'), (SELECT id FROM entidades WHERE temp_id='TARGET'), 'relation_type');`
6. **Literal names**: keep names and codes exactly as written. Specific competencies
   (tipo 20) are coded 'CE' + number (CE1, CE2, ...).
7. **`traza_evalua`**: 't' for key competencies (5), objectives (6, 7), contents and
   knowledge (3, 18) and descriptors (19); 'e' for evaluation criteria (2); '0' otherwise,
   specific competencies (20) included.
8. **Relations**:
   - every learning outcome (13) gets a `tiene_criterio` relation to each of its criteria (2);
   - every specific competency (20) gets a `tiene_descriptor` relation to each of its descriptors (19);
   - every block (1) gets an `incluye_saber` relation to each of its contents/knowledge items (3 or 18).
9. **Contents and knowledge**: "Saberes básicos" use tipo 18, "Contenidos" use tipo 3.
   Without an explicit code, use `S.<parent_block_code>.<position>`.
10. **Cleanup**: finish the script with `ALTER TABLE entidades DROP COLUMN temp_id;`
11. **Output**: plain SQL only, no Markdown code fences. Start directly with `INSERT INTO entidades`.

CURRICULUM:
---
{curriculum}
---
"""


def build_sql_refinement_prompt(current_sql: str, user_request: str) -> str:
    return f"""
You are a PostgreSQL expert. Apply the correction requested by the user to the SQL script below.

Rules:
1. Read the base script and the request.
2. Apply the requested change as precisely as possible, keeping the rest of the script intact.
3. Keep every original syntax rule, in particular `temp_id` in relation subqueries and
   doubled single quotes ('').
4. ALWAYS return the COMPLETE modified script.
5. No explanations, comments or Markdown. Plain SQL only.

BASE SCRIPT:
---
{current_sql}
---

USER REQUEST:
---
"{user_request}"
---
"""


def build_text_refinement_prompt(current_text: str, user_request: str) -> str:
    return f"""
You are a text editing assistant. Apply the modification requested by the user to the base text.

Rules:
1. Apply the requested correction as precisely as possible.
2. ALWAYS return the COMPLETE modified text, never only the changed part or a confirmation.
3. Do not explain your changes. Return the final text only.

BASE TEXT:
---
{current_text}
---

USER REQUEST:
---
"{user_request}"
---
"""
