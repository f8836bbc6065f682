import pytest

from Palm_Task.utils.normalization import clean_search, normalize_code, normalize_text


def test_normalize_code_strips_periods_and_spaces():
    assert normalize_code("123.45 ") == "12345"
    assert normalize_code(" 1 2.3 ") == "123"
    assert normalize_code("") == ""


def test_normalize_code_ignores_case():
    assert normalize_code("pdv.001") == normalize_code("PDV001")


def test_normalize_text_drops_accents_case_and_punctuation():
    assert normalize_text("Café") == normalize_text("CAFE") == "cafe"
    assert normalize_text("  Açúcar   União - 1kg! ") == "acucar uniao 1kg"


@pytest.mark.parametrize("value", ["Café Pilão 500g", "  A.B  c ", "ÀÉÎÕÜ ç", "", "x__y"])
def test_normalizers_are_idempotent(value):
    assert normalize_text(normalize_text(value)) == normalize_text(value)
    assert normalize_code(normalize_code(value)) == normalize_code(value)


def test_clean_search():
    assert clean_search("Bar do Zé!") == "bar do zé"
