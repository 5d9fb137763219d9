from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from curriculum_sql.models import HistoryRecord, ScriptArtifact
from curriculum_sql.prompting import SQL_HEADER

SCRIPT_BODY = """INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (0, 'MAT', 'Matemáticas Aplicadas', '0', 'MATERIA');
INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (20, 'CE1', 'Resolver problemas', '0', 'CE_1');
INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (19, 'STEM1', 'Descriptor STEM1', 't', 'DESC_STEM1');
INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (2, '1.1', 'Interpretar el enunciado', 'e', 'CRIT_1_1');
INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (2, '1.2', 'Comprobar la solución', 'e', 'CRIT_1_2');
INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (1, 'B1', 'Bloque 1', '0', 'BLOQUE_1');
INSERT INTO entidades (tipo, codigo, nombre, traza_evalua, temp_id) VALUES (18, 'S.B1.1', 'Números', 't', 'SABER_B1_1');
INSERT INTO relaciones (id_origen, id_destino, tipo_relacion) VALUES ((SELECT id FROM entidades WHERE temp_id='CE_1'), (SELECT id FROM entidades WHERE temp_id='DESC_STEM1'), 'tiene_descriptor');
INSERT INTO relaciones (id_origen, id_destino, tipo_relacion) VALUES ((SELECT id FROM entidades WHERE temp_id='CE_1'), (SELECT id FROM entidades WHERE temp_id='CRIT_1_1'), 'tiene_criterio');
INSERT INTO relaciones (id_origen, id_destino, tipo_relacion) VALUES ((SELECT id FROM entidades WHERE temp_id='DESC_STEM1'), (SELECT id FROM entidades WHERE temp_id='CRIT_1_2'), 'tiene_criterio');
INSERT INTO relaciones (id_origen, id_destino, tipo_relacion) VALUES ((SELECT id FROM entidades WHERE temp_id='CE_1'), (SELECT id FROM entidades WHERE temp_id='CRIT_1_1'), 'tiene_criterio');
INSERT INTO relaciones (id_origen, id_destino, tipo_relacion) VALUES ((SELECT id FROM entidades WHERE temp_id='BLOQUE_1'), (SELECT id FROM entidades WHERE temp_id='SABER_B1_1'), 'incluye_saber');
ALTER TABLE entidades DROP COLUMN temp_id;
"""


@pytest.fixture
def script_body() -> str:
    return SCRIPT_BODY


@pytest.fixture
def script_artifact() -> ScriptArtifact:
    return ScriptArtifact(header=SQL_HEADER, body=SCRIPT_BODY, file_name="Matemáticas_Aplicadas")


@pytest.fixture
def history_record() -> HistoryRecord:
    return HistoryRecord(
        record_id="record000001",
        owner_id="teacher-1",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        subject="Matemáticas",
        course="1º ESO",
        region="Madrid",
        file_name="Matemáticas_Aplicadas",
        sql=f"{SQL_HEADER}\n{SCRIPT_BODY}",
    )
