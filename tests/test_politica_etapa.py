"""
Stage policy tests.

Test blocks:
  1. Required file types per stage (and the E14 switch)
  2. Obligatory flags
  3. Action codes
  4. dic_tipo_archivo catalogue lookup
"""

import pytest

from app.services import politica_etapa
from app.utils.exceptions import UnsupportedStage


# ── 1. Required file types ───────────────────────────────────────────────────


@pytest.mark.parametrize("etapa", [2, 3, 4])
def test_proyecto_stages_use_tipos_1_to_5(etapa):
    assert politica_etapa.required_file_types(etapa) == (1, 2, 3, 4, 5)


def test_borrador_stage_types():
    assert politica_etapa.required_file_types(11) == (7, 8, 10, 11, 12, 13)


def test_e14_switches_set_after_first_submission():
    assert politica_etapa.required_file_types(14, ya_envio_correccion=False) == (17, 18)
    assert politica_etapa.required_file_types(14, ya_envio_correccion=True) == (14, 15, 16, 17, 18)


def test_e16_types_do_not_depend_on_flag():
    assert politica_etapa.required_file_types(16) == (20, 21)
    assert politica_etapa.required_file_types(16, ya_envio_correccion=True) == (20, 21)


@pytest.mark.parametrize("etapa", [1, 5, 13, 17, 0])
def test_unsupported_stage_raises(etapa):
    with pytest.raises(UnsupportedStage) as exc_info:
        politica_etapa.required_file_types(etapa)
    assert exc_info.value.code == "UNSUPPORTED_STAGE"
    assert exc_info.value.status_code == 400


# ── 2. Obligatory flags ──────────────────────────────────────────────────────


def test_proyecto_obligatory_types():
    assert [t for t in range(1, 6) if politica_etapa.is_obligatory(3, t)] == [1, 2, 3]


def test_borrador_only_turnitin_is_obligatory():
    assert [t for t in (7, 8, 10, 11, 12, 13) if politica_etapa.is_obligatory(11, t)] == [10]


def test_e14_first_pass_requires_initial_types_only():
    assert politica_etapa.is_obligatory(14, 17)
    assert politica_etapa.is_obligatory(14, 18)
    assert not politica_etapa.is_obligatory(14, 15)


def test_e14_nothing_obligatory_after_submission():
    assert not any(
        politica_etapa.is_obligatory(14, t, ya_envio_correccion=True)
        for t in (14, 15, 16, 17, 18)
    )


def test_e16_all_obligatory_then_none():
    assert politica_etapa.is_obligatory(16, 20)
    assert politica_etapa.is_obligatory(16, 21)
    assert not politica_etapa.is_obligatory(16, 20, ya_envio_correccion=True)


# ── 3. Action codes ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "etapa, codigo",
    [(2, 7), (3, 12), (4, 16), (11, 40), (14, 52), (16, 66)],
)
def test_correction_action_codes(etapa, codigo):
    assert politica_etapa.correction_action_code(etapa) == codigo


def test_first_presentation_codes():
    assert politica_etapa.first_presentation_action_code(14) == 49
    assert politica_etapa.first_presentation_action_code(16) == 63
    assert politica_etapa.first_presentation_action_code(2) is None


def test_correction_code_for_unknown_stage():
    with pytest.raises(UnsupportedStage):
        politica_etapa.correction_action_code(5)


# ── 4. Catalogue lookup ──────────────────────────────────────────────────────


def test_get_tipos_archivo_joins_dictionary(db, catalogos):
    tipos = politica_etapa.get_tipos_archivo(db, 2)

    assert [t.id for t in tipos] == [1, 2, 3, 4, 5]
    assert [t.obligatorio for t in tipos] == [True, True, True, False, False]
    assert all(t.max_size == 4 for t in tipos)
    assert tipos[0].nombre == "Tipo 1"


def test_get_tipos_archivo_skips_missing_dictionary_rows(db):
    # Empty dictionary: nothing to join, no error.
    assert politica_etapa.get_tipos_archivo(db, 16) == []
