"""
Application-wide constants for the thesis observation workflow.

Defines the stages that take part in the observation/correction cycle, the
``log_acciones`` action codes written for each stage, and the file-type ids
of the ``dic_tipo_archivo`` catalogue referenced by the stage rules.
"""

from typing import Final

# ---------------------------------------------------------------------------
# Stages that participate in the observe/correct cycle
# ---------------------------------------------------------------------------

ETAPAS_CICLO: Final[tuple[int, ...]] = (2, 3, 4, 11, 14, 16)

# Stages that need an unobserved first presentation before the cycle starts
ETAPAS_DOS_FASES: Final[frozenset[int]] = frozenset({14, 16})

# Stages whose metadata snapshot keeps ``conclusiones``
ETAPAS_CON_CONCLUSIONES: Final[frozenset[int]] = frozenset({11, 14, 16})

ETAPA_BORRADOR: Final[int] = 11
ETAPA_PRE_SUSTENTACION: Final[int] = 14
ETAPA_SUSTENTACION: Final[int] = 16

# ---------------------------------------------------------------------------
# log_acciones action codes
# ---------------------------------------------------------------------------

# "envio de correcciones etapa N"
ACCION_CORRECCION: Final[dict[int, int]] = {
    2: 7,
    3: 12,
    4: 16,
    11: 40,
    14: 52,
    16: 66,
}

# "primera presentación EN"
ACCION_PRIMERA_PRESENTACION: Final[dict[int, int]] = {
    14: 49,
    16: 63,
}

# ---------------------------------------------------------------------------
# Observation approval flag (tbl_observaciones.visto_bueno)
# ---------------------------------------------------------------------------

VISTO_BUENO_PENDIENTE: Final[int] = 0
VISTO_BUENO_APROBADO: Final[int] = 1

# ---------------------------------------------------------------------------
# File types (dic_tipo_archivo ids)
# ---------------------------------------------------------------------------

TIPOS_PROYECTO: Final[tuple[int, ...]] = (1, 2, 3, 4, 5)
TIPOS_PROYECTO_OBLIGATORIOS: Final[frozenset[int]] = frozenset({1, 2, 3})

TIPOS_BORRADOR: Final[tuple[int, ...]] = (7, 8, 10, 11, 12, 13)
TIPO_TURNITIN_BORRADOR: Final[int] = 10

TIPOS_PRE_SUSTENTACION_INICIAL: Final[tuple[int, ...]] = (17, 18)
TIPOS_PRE_SUSTENTACION_CORRECCION: Final[tuple[int, ...]] = (14, 15, 16, 17, 18)

TIPOS_TESIS_FINAL: Final[tuple[int, ...]] = (20, 21)

# Acta de reunión: the only dictamen type that records meeting time and place
TIPO_ACTA_REUNION: Final[int] = 15
