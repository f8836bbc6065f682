from Palm_Task.domain.models import NonBuyer, Task
from Palm_Task.services.performance_service import distribution, high_value_tasks, summarize, top_skus


def _task(id, coins, cluster="", skus=(), non_buyer=False):
    return Task(id=id, sector_code="305", pdv_code=id, pdv_name="X", cluster=cluster,
                coins=coins, associated_skus=skus, is_non_buyer=non_buyer)


def test_distribution_counts_blank_as_outros():
    tasks = [_task("1", 0, "Centro"), _task("2", 0, "Centro"), _task("3", 0, ""), _task("4", 0, "Sul")]
    entries = distribution(tasks, "cluster")

    assert entries[0].label == "Centro"
    assert entries[0].value == 2
    assert entries[0].percent == 50.0
    assert {e.label for e in entries} == {"Centro", "Outros", "Sul"}
    assert distribution([], "cluster") == []


def test_top_skus_by_task_count_with_average_coins():
    tasks = [
        _task("1", 100, skus=("Coffee", "Sugar")),
        _task("2", 51, skus=("Coffee",)),
        _task("3", 10, skus=("Tea",)),
    ]
    stats = top_skus(tasks, limit=2)

    assert [s.name for s in stats] == ["Coffee", "Sugar"]
    assert stats[0].count == 2
    assert stats[0].avg_coins == 76


def test_high_value_tasks_threshold_and_order():
    tasks = [_task("1", 99), _task("2", 100), _task("3", 300), _task("4", 150), _task("5", 120)]
    assert [t.id for t in high_value_tasks(tasks)] == ["3", "4", "5"]


def test_summarize():
    tasks = [_task("1", 100, "Centro", non_buyer=True), _task("2", 20, "Sul")]
    summary = summarize(tasks, [NonBuyer("305", "1")])

    assert summary.task_count == 2
    assert summary.total_coins == 120
    assert summary.non_buyer_count == 1
    assert summary.non_buyer_task_count == 1
    assert [t.id for t in summary.high_value_tasks] == ["1"]
    assert summary.by_category[0].label == "Outros"
