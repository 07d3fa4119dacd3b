import threading

from photo_sorter.stats import StatsAggregator, Progress


def test_counters_are_thread_safe():
    stats = StatsAggregator()
    progress = Progress()

    def work():
        for i in range(500):
            stats.record(i % 5 != 0)
            stats.increment_unsupported(".TXT")
            progress.update()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snapshot = stats.snapshot()
    assert snapshot.success_count == 8 * 400
    assert snapshot.failure_count == 8 * 100
    assert snapshot.unsupported_exts == {".txt": 8 * 500}
    assert snapshot.unsupported_count == 8 * 500
    assert progress.status() == (8 * 500, 0)


def test_snapshot_is_a_copy():
    stats = StatsAggregator()
    stats.set_total_files(3)
    stats.increment_ignored(".DS_Store")
    snapshot = stats.snapshot()

    stats.increment_ignored(".ds_store")
    stats.increment_success()

    assert snapshot.total_files == 3
    assert snapshot.ignored_exts == {".ds_store": 1}
    assert snapshot.success_count == 0
    assert stats.snapshot().ignored_count == 2


def test_progress_percentage():
    progress = Progress()
    assert progress.percentage() == 0.0

    progress.set_total(4)
    progress.update()
    progress.update(2)

    assert progress.status() == (3, 4)
    assert progress.percentage() == 75.0
