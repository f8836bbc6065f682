import pytest

from Palm_Task.domain.models import ProductImage
from Palm_Task.services.image_lookup_service import ImageResolver, build_image_index, resolve_image
from Palm_Task.utils.normalization import normalize_text


def _img(id, name, url):
    return ProductImage(id=id, name=name, image_url=url, normalized_name=normalize_text(name))


@pytest.fixture
def images():
    return [
        _img("p1", "Coffee", "https://img/coffee.png"),
        _img("p2", "Sugar", "https://img/sugar.png"),
        _img("3", "Café Pilão Tradicional 500g", "https://img/pilao.png"),
        _img("4", "Café Pilão Extra Forte 500g", "https://img/pilao-forte.png"),
    ]


@pytest.fixture
def resolver(images):
    return ImageResolver(images)


def test_index_has_ids_and_normalized_names(images):
    index = build_image_index(images)
    assert index["p1"] == "https://img/coffee.png"
    assert index["coffee"] == "https://img/coffee.png"
    assert index["cafe pilao tradicional 500g"] == "https://img/pilao.png"


def test_exact_key(resolver):
    m = resolver.match("p2")
    assert m.method == "exact"
    assert m.url == "https://img/sugar.png"


def test_normalized_name_ignores_case_and_accents(resolver):
    m = resolver.match("  COFFEE ")
    assert m.method == "normalized"
    assert m.url == "https://img/coffee.png"
    assert resolver.resolve("Café Pilão Tradicional 500G!") == "https://img/pilao.png"


def test_token_fallback_picks_first_product_in_feed_order(resolver):
    m = resolver.match("Café Pilão 500g")
    assert m.method == "tokens"
    assert m.url == "https://img/pilao.png"
    assert m.matched_name == "Café Pilão Tradicional 500g"


def test_token_fallback_needs_every_long_token(resolver):
    assert resolver.resolve("Pilão Forte") == "https://img/pilao-forte.png"
    assert resolver.resolve("Pilão Descafeinado") is None


def test_short_tokens_only_do_not_match(resolver):
    assert resolver.resolve("a b c") is None


def test_blank_or_unknown_name_is_none(resolver):
    assert resolver.resolve("") is None
    assert resolver.resolve("   ") is None
    assert resolver.resolve("Guaraná 2L") is None
    assert resolver.match("").method == "none"


def test_module_level_resolve_matches_resolver(images, resolver):
    index = build_image_index(images)
    for name in ["p1", "sugar", "Café Pilão 500g", "nothing here"]:
        assert resolve_image(name, index, images) == resolver.resolve(name)


def test_empty_catalog_never_matches():
    resolver = ImageResolver([])
    assert resolver.resolve("Coffee") is None
    assert resolver.suggest("Coffee") == []


def test_unresolved_lists_distinct_misses_in_order(resolver):
    names = ["Coffee", "Guaraná", "Sugar", "Guaraná", "Água 500ml"]
    assert resolver.unresolved(names) == ["Guaraná", "Água 500ml"]


def test_suggest_ranks_close_names(resolver):
    hits = resolver.suggest("Cofee")
    assert hits
    assert hits[0][0] == "Coffee"
    assert all(score >= 60 for _, score in hits)
    assert resolver.suggest("") == []


def test_punctuation_only_names_never_match_each_other():
    resolver = ImageResolver([_img("p1", "***", "https://img/stars.png")])

    assert "" not in resolver.index
    assert resolver.resolve("???") is None
    assert resolver.resolve("p1") == "https://img/stars.png"
