from Palm_Task.domain.models import NonBuyer, Task, TaskSkuMap
from Palm_Task.services.reconciliation_service import non_buyer_codes, reconcile, sku_lookup


def _task(id, pdv_code, hash_id=""):
    return Task(id=id, sector_code="305", pdv_code=pdv_code, pdv_name="X", hash_id=hash_id)


def test_non_buyer_flag_uses_normalized_codes():
    tasks = [_task("a", "123.45 "), _task("b", "999"), _task("c", "1 2345")]
    nbs = [NonBuyer(sector="305", pdv_code="12345")]

    out = reconcile(tasks, nbs, [])

    assert [t.is_non_buyer for t in out] == [True, False, True]


def test_associated_skus_by_hash_id():
    tasks = [_task("a", "1", hash_id="h1"), _task("b", "2", hash_id="h2"), _task("c", "3")]
    sku_map = [TaskSkuMap("h1", ("Coffee", "Sugar"))]

    out = reconcile(tasks, [], sku_map)

    assert out[0].associated_skus == ("Coffee", "Sugar")
    assert out[1].associated_skus == ()
    assert out[2].associated_skus == ()


def test_inputs_are_left_untouched_and_order_kept():
    tasks = [_task("a", "1", hash_id="h1"), _task("b", "2")]
    out = reconcile(tasks, [NonBuyer("305", "1")], [TaskSkuMap("h1", ("A",))])

    assert [t.id for t in out] == ["a", "b"]
    assert tasks[0].is_non_buyer is False
    assert tasks[0].associated_skus == ()


def test_running_twice_gives_same_result():
    tasks = [_task("a", "1", hash_id="h1")]
    nbs = [NonBuyer("305", "1")]
    sku_map = [TaskSkuMap("h1", ("A",))]

    once = reconcile(tasks, nbs, sku_map)
    assert reconcile(once, nbs, sku_map) == once


def test_empty_inputs():
    assert reconcile([], [], []) == []
    assert non_buyer_codes([]) == set()
    assert sku_lookup([]) == {}


def test_sku_lookup_later_entry_wins():
    lookup = sku_lookup([TaskSkuMap("h", ("A",)), TaskSkuMap("h", ("B",))])
    assert lookup == {"h": ("B",)}
