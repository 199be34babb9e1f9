from covid.dsa import merge_sort, top_k


def test_merge_sort_with_comparator():
    out = merge_sort([5, 1, 4, 2, 3], lambda a, b: a < b)
    assert out == [1, 2, 3, 4, 5]
    assert merge_sort([], lambda a, b: a < b) == []


def test_merge_sort_is_stable():
    rows = [("b", 1), ("a", 2), ("c", 1), ("d", 2)]
    out = merge_sort(rows, lambda x, y: x[1] > y[1])
    assert out == [("a", 2), ("d", 2), ("b", 1), ("c", 1)]


def test_merge_sort_does_not_modify_input():
    rows = [3, 1, 2]
    merge_sort(rows, lambda a, b: a < b)
    assert rows == [3, 1, 2]


def test_top_k():
    rows = [("a", 3), ("b", 9), ("c", 1), ("d", 9), ("e", 5)]
    assert top_k(rows, 3, key=lambda r: r[1]) == [("b", 9), ("d", 9), ("e", 5)]
    assert top_k(rows, 10, key=lambda r: r[1])[-1] == ("c", 1)
    assert top_k(rows, 0, key=lambda r: r[1]) == []
