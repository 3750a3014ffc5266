from stagewise.utils.retry import compute_backoff


def test_compute_backoff_growth():
    first = compute_backoff(1, base=2, jitter=0)
    second = compute_backoff(2, base=2, jitter=0)
    assert second > first


def test_compute_backoff_cap():
    assert compute_backoff(20, base=2, jitter=0, cap=30) == 30
