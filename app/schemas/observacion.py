"""
Pydantic v2 schemas for the Observaciones module (read side).

Covers:
- Single observation with its author.
- Correction status of one stage (GET /estado).
- Observations grouped by stage (GET /all).
- File-type catalogue for the upload form (GET /tipos-archivos).
- First-presentation check for E16.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Observation rows
# ---------------------------------------------------------------------------


class UsuarioResumen(BaseModel):
    """Author block embedded in every observation."""

    id: int
    nombres: str | None = None
    apellidos: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ObservacionResponse(BaseModel):
    """Single reviewer observation."""

    id: int
    id_tramite: int
    id_etapa: int
    id_usuario: int
    id_rol: int | None = None
    servicio: str | None = None
    visto_bueno: int = Field(..., description="0 = pendiente, 1 = aprobado.")
    observacion: str | None = None
    fecha: datetime
    usuario: UsuarioResumen | None = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Status of one stage
# ---------------------------------------------------------------------------


class EstadoObservacionesResponse(BaseModel):
    """Correction status derived from observations and the action log."""

    tramite_id: int
    etapa: int
    tiene_correcciones: bool = Field(
        ..., description="True si existen observaciones pendientes por corregir."
    )
    numero_observaciones: int = Field(
        ..., ge=0, description="Observaciones pendientes (visto_bueno = 0)."
    )
    correcciones_enviadas: int = Field(
        ..., ge=0, description="Correcciones registradas en log_acciones."
    )
    total_envios: int = Field(
        ...,
        ge=0,
        description="Correcciones más la primera presentación (solo E14/E16).",
    )
    ya_envio_correccion: bool
    observaciones: list[ObservacionResponse] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tramite_id": 152,
                "etapa": 3,
                "tiene_correcciones": True,
                "numero_observaciones": 3,
                "correcciones_enviadas": 2,
                "total_envios": 2,
                "ya_envio_correccion": False,
                "observaciones": [],
            }
        }
    )


class ObservacionesPorEtapaResponse(BaseModel):
    """Every observation of a trámite up to its current stage, grouped by stage."""

    observaciones_por_etapa: dict[int, list[ObservacionResponse]] = Field(
        default_factory=dict
    )
    total_observaciones: int = Field(..., ge=0)
    etapas_con_observaciones: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Upload form catalogue
# ---------------------------------------------------------------------------


class TipoArchivoResponse(BaseModel):
    """One entry of the upload form for a stage."""

    id: int
    nombre: str
    descripcion: str | None = None
    obligatorio: bool
    max_size: int = Field(..., description="Tamaño máximo en MB.")


class PrimeraPresentacionEstadoResponse(BaseModel):
    tramite_id: int
    ya_hizo_primera_e16: bool
