from Palm_Task.domain.models import PRIORITY_HIGH, PRIORITY_NORMAL
from Palm_Task.services.feed_decoders import (
    DEFAULT_CATEGORY,
    DEFAULT_CLUSTER,
    DEFAULT_PDV_NAME,
    decode_tasks,
    parse_consultants_csv,
    parse_int,
    parse_non_buyers_csv,
    parse_product_images_csv,
    parse_sku_map_csv,
    parse_tasks_csv,
    split_mix,
)

from conftest import CONSULTANTS_CSV, IMAGES_CSV, NON_BUYERS_CSV, SKU_MAP_CSV, TASKS_CSV

HEADER = ["h"] * 14


def _task_row(**cols):
    row = [""] * 14
    for idx, value in cols.items():
        row[int(idx[1:])] = value
    return row


def test_parse_int_behaves_like_leading_integer():
    assert parse_int("12") == 12
    assert parse_int(" 7 pts") == 7
    assert parse_int("3.9") == 3
    assert parse_int("abc") == 0
    assert parse_int("") == 0


def test_split_mix():
    assert split_mix("3/10") == (3, 10)
    assert split_mix("310") == (0, 0)
    assert split_mix("") == (0, 0)
    assert split_mix("x/4") == (0, 4)
    assert split_mix("12/4") == (4, 4)


def test_task_feed_columns():
    tasks = parse_tasks_csv(TASKS_CSV)
    assert [t.id for t in tasks] == ["h1", "h2", "h3"]

    t = tasks[0]
    assert t.due_label == "Hoje"
    assert t.sector_code == "305"
    assert t.pdv_code == "123.45"
    assert t.pdv_name == "Bar do Zé"
    assert t.cluster == "Centro"
    assert (t.bought_count, t.mix_total, t.missing_count) == (3, 10, 7)
    assert t.description == 'Levar "combo", conferir'
    assert t.hash_id == "h1"
    assert t.operation == "Venda"
    assert t.coins == 120
    assert (t.category, t.subject, t.flag_score) == ("BEER", "Mix", "Sim")
    assert t.is_non_buyer is False
    assert t.associated_skus == ()


def test_priority_threshold():
    rows = [HEADER, _task_row(c8="a", c10="100"), _task_row(c8="b", c10="99")]
    high, normal = decode_tasks(rows)
    assert high.priority == PRIORITY_HIGH
    assert normal.priority == PRIORITY_NORMAL


def test_blank_task_fields_get_defaults_and_index_id():
    rows = [HEADER, _task_row(c1="305", c10="lots")]
    (t,) = decode_tasks(rows)
    assert t.id == "0"
    assert t.pdv_name == DEFAULT_PDV_NAME
    assert t.cluster == DEFAULT_CLUSTER
    assert t.category == DEFAULT_CATEGORY
    assert t.coins == 0
    assert (t.bought_count, t.mix_total) == (0, 0)


def test_short_and_blank_task_rows():
    rows = [HEADER, ["Hoje", "305", "777"], [""], _task_row(c8="x")]
    tasks = decode_tasks(rows)
    assert [t.id for t in tasks] == ["0", "x"]
    assert tasks[0].pdv_code == "777"


def test_negative_coins_are_clamped():
    (t,) = decode_tasks([HEADER, _task_row(c8="a", c10="-5")])
    assert t.coins == 0


def test_duplicate_task_ids_keep_last_row():
    rows = [HEADER, _task_row(c8="dup", c10="1"), _task_row(c8="dup", c10="2")]
    (t,) = decode_tasks(rows)
    assert t.coins == 2


def test_header_only_feed_is_empty():
    assert decode_tasks([HEADER]) == []
    assert decode_tasks([]) == []


def test_non_buyers_drop_rows_without_code():
    nbs = parse_non_buyers_csv(NON_BUYERS_CSV)
    assert len(nbs) == 1
    assert nbs[0].pdv_code == "123.45"
    assert nbs[0].normalized_code == "12345"
    assert nbs[0].fantasy_name == "Bar do Zé"


def test_non_buyers_need_three_columns():
    assert parse_non_buyers_csv("h\n305,123\n") == []


def test_sku_map_splits_and_trims():
    maps = parse_sku_map_csv(SKU_MAP_CSV)
    assert maps[0].hash_id == "h1"
    assert maps[0].skus == ("Coffee", "Sugar")
    assert parse_sku_map_csv('h\nx," , ,A,,B "\n')[0].skus == ("A", "B")


def test_sku_map_drops_incomplete_rows_and_keeps_last_duplicate():
    text = "h\nonly_hash\nh9,\nh1,A\nh1,B\n"
    maps = parse_sku_map_csv(text)
    assert [(m.hash_id, m.skus) for m in maps] == [("h1", ("B",))]


def test_product_images():
    imgs = parse_product_images_csv(IMAGES_CSV)
    assert [i.id for i in imgs] == ["p1", "p2", "3"]
    assert imgs[2].normalized_name == "cafe pilao tradicional 500g"

    assert parse_product_images_csv("h\n1,,http://x\n2,Name,\n") == []


def test_consultants_avatar_sentinel_and_required_fields():
    cons = parse_consultants_csv(CONSULTANTS_CSV)
    by_id = {c.id: c for c in cons}
    assert by_id["c1"].password == "1234"
    assert by_id["c1"].avatar_url == "https://img.example/ana.jpg"
    assert by_id["c1"].name == "Ana Souza"
    assert by_id["c2"].avatar_url == ""
    assert by_id["c2"].requires_password is False
    assert all(c.avatar_data_uri is None for c in cons)

    assert parse_consultants_csv("h\n,305,,,X\nc9,,,,Y\nc8,1,2,3\n") == []
    assert parse_consultants_csv("h\nc1,305,,http://a,Ana\n")[0].avatar_url == ""
