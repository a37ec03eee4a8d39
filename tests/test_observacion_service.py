"""
Observation state engine tests.

Test blocks:
  1. Parity stages (E2, E3, E4, E11)
  2. Two-phase stages (E14, E16)
  3. Observations grouped by stage
  4. First-presentation check
"""

import pytest

from app.services import log_accion_service, observacion_service
from app.utils.constants import VISTO_BUENO_APROBADO, VISTO_BUENO_PENDIENTE
from app.utils.exceptions import UnsupportedStage


# ── 1. Parity stages ─────────────────────────────────────────────────────────


class TestEstadoEtapasParidad:
    def test_no_observations_no_corrections(self, db, tramite):
        estado = observacion_service.compute_estado(db, tramite.id, 2)

        assert estado.tiene_correcciones is False
        assert estado.numero_observaciones == 0
        assert estado.ya_envio_correccion is True
        assert estado.observaciones == []

    def test_pending_observations_without_submission(self, db, tramite, add_observacion):
        add_observacion(2)
        add_observacion(2)

        estado = observacion_service.compute_estado(db, tramite.id, 2)

        assert estado.tiene_correcciones is True
        assert estado.numero_observaciones == 2
        assert estado.correcciones_enviadas == 0
        assert estado.ya_envio_correccion is False

    def test_submissions_reaching_pending_count(self, db, tramite, add_observacion, add_log):
        add_observacion(3)
        add_observacion(3)
        add_log(3, 12)
        add_log(3, 12)

        estado = observacion_service.compute_estado(db, tramite.id, 3)

        assert estado.tiene_correcciones is True
        assert estado.correcciones_enviadas == 2
        assert estado.ya_envio_correccion is True

    def test_submissions_below_pending_count(self, db, tramite, add_observacion, add_log):
        for _ in range(3):
            add_observacion(2)
        add_log(2, 7)
        add_log(2, 7)

        estado = observacion_service.compute_estado(db, tramite.id, 2)

        assert estado.numero_observaciones == 3
        assert estado.correcciones_enviadas == 2
        assert estado.ya_envio_correccion is False

        add_log(2, 7)
        estado = observacion_service.compute_estado(db, tramite.id, 2)

        assert estado.correcciones_enviadas == 3
        assert estado.ya_envio_correccion is True

    def test_approved_observations_are_not_pending(self, db, tramite, add_observacion):
        add_observacion(4, visto_bueno=VISTO_BUENO_APROBADO)
        add_observacion(4, visto_bueno=VISTO_BUENO_PENDIENTE)

        estado = observacion_service.compute_estado(db, tramite.id, 4)

        assert estado.numero_observaciones == 1
        assert len(estado.observaciones) == 2

    def test_actions_of_other_stage_are_ignored(self, db, tramite, add_observacion, add_log):
        add_observacion(11)
        add_log(4, 16)
        add_log(11, 7)

        estado = observacion_service.compute_estado(db, tramite.id, 11)

        assert estado.correcciones_enviadas == 0
        assert estado.ya_envio_correccion is False

    def test_observations_newest_first_with_author(self, db, tramite, add_observacion, revisor):
        primera = add_observacion(2, texto="primera")
        segunda = add_observacion(2, texto="segunda")

        estado = observacion_service.compute_estado(db, tramite.id, 2)

        assert [o.id for o in estado.observaciones] == [segunda.id, primera.id]
        assert estado.observaciones[0].usuario.nombres == revisor.nombres

    @pytest.mark.parametrize("etapa", [1, 5, 13])
    def test_unsupported_stage(self, db, tramite, etapa):
        with pytest.raises(UnsupportedStage):
            observacion_service.compute_estado(db, tramite.id, etapa)


# ── 2. Two-phase stages ──────────────────────────────────────────────────────


class TestEstadoEtapasDosFases:
    def test_nothing_sent_yet(self, db, tramite):
        estado = observacion_service.compute_estado(db, tramite.id, 16)

        assert estado.tiene_correcciones is False
        assert estado.total_envios == 0
        assert estado.ya_envio_correccion is False

    def test_first_presentation_without_observations(self, db, tramite, add_log):
        add_log(16, 63)

        estado = observacion_service.compute_estado(db, tramite.id, 16)

        assert estado.tiene_correcciones is False
        assert estado.correcciones_enviadas == 0
        assert estado.total_envios == 1
        assert estado.ya_envio_correccion is True

    def test_observed_after_first_presentation_needs_one_more(
        self, db, tramite, add_observacion, add_log
    ):
        add_log(16, 63)
        add_observacion(16)

        estado = observacion_service.compute_estado(db, tramite.id, 16)

        assert estado.tiene_correcciones is True
        assert estado.total_envios == 1
        assert estado.ya_envio_correccion is False

        add_log(16, 66)
        estado = observacion_service.compute_estado(db, tramite.id, 16)

        assert estado.total_envios == 2
        assert estado.ya_envio_correccion is True

    def test_e14_first_presentation_counts_towards_total(
        self, db, tramite, add_observacion, add_log
    ):
        add_log(14, 49)
        add_log(14, 52)
        add_observacion(14)

        estado = observacion_service.compute_estado(db, tramite.id, 14)

        assert estado.correcciones_enviadas == 1
        assert estado.total_envios == 2
        assert estado.ya_envio_correccion is True

    def test_repeated_first_presentation_counts_once(self, db, tramite, add_observacion, add_log):
        add_log(14, 49)
        add_log(14, 49)
        add_observacion(14)

        estado = observacion_service.compute_estado(db, tramite.id, 14)

        assert estado.total_envios == 1
        assert estado.ya_envio_correccion is False

    def test_e14_correction_without_first_presentation(self, db, tramite, add_log):
        add_log(14, 52)

        estado = observacion_service.compute_estado(db, tramite.id, 14)

        assert estado.tiene_correcciones is False
        assert estado.correcciones_enviadas == 1
        assert estado.total_envios == 1
        assert estado.ya_envio_correccion is True


# ── 3. Grouped observations ──────────────────────────────────────────────────


def test_all_observaciones_grouped_up_to_current_stage(db, tramite, add_observacion):
    add_observacion(2)
    add_observacion(4)
    add_observacion(4)
    add_observacion(11)
    add_observacion(16)

    resultado = observacion_service.compute_all_observaciones(db, tramite.id, 11)

    assert resultado.etapas_con_observaciones == [2, 4, 11]
    assert resultado.total_observaciones == 4
    assert len(resultado.observaciones_por_etapa[4]) == 2
    assert 16 not in resultado.observaciones_por_etapa


def test_all_observaciones_ignores_stages_outside_cycle(db, tramite, add_observacion):
    add_observacion(5)

    resultado = observacion_service.compute_all_observaciones(db, tramite.id, 16)

    assert resultado.total_observaciones == 0
    assert resultado.etapas_con_observaciones == []


def test_all_observaciones_before_cycle(db, tramite):
    resultado = observacion_service.compute_all_observaciones(db, tramite.id, 1)

    assert resultado.total_observaciones == 0
    assert resultado.observaciones_por_etapa == {}


# ── 4. First-presentation check ──────────────────────────────────────────────


def test_ya_hizo_primera_presentacion(db, tramite, add_log):
    assert observacion_service.ya_hizo_primera_presentacion(db, tramite.id) is False

    add_log(16, 63)

    assert observacion_service.ya_hizo_primera_presentacion(db, tramite.id) is True
    assert log_accion_service.count_actions(db, tramite.id, 16, 63) == 1
