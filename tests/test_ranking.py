import pandas as pd

from dashboard_core.ranking import rank_top_n


def test_sums_per_key_and_sorts_descending():
    df = pd.DataFrame({"k": ["a", "b", "a", "c"], "v": [1, 5, 3, 2]})
    ranked = rank_top_n(df, key="k", measure="v")
    assert [(r.key, r.value) for r in ranked] == [("b", 5.0), ("a", 4.0), ("c", 2.0)]


def test_ties_keep_first_encounter_order():
    df = pd.DataFrame({"k": ["x", "y", "z", "w"], "v": [2, 3, 2, 2]})
    ranked = rank_top_n(df, key="k", measure="v")
    assert [r.key for r in ranked] == ["y", "x", "z", "w"]


def test_limit_and_blank_keys():
    df = pd.DataFrame({"k": ["N/A", "", "a", "b", "c", None], "v": [100, 100, 1, 2, 3, 100]})
    ranked = rank_top_n(df, key="k", measure="v", n=2)
    assert [r.key for r in ranked] == ["c", "b"]


def test_fewer_keys_than_n():
    df = pd.DataFrame({"k": ["a"], "v": [1]})
    assert len(rank_top_n(df, key="k", measure="v", n=10)) == 1


def test_label_column():
    df = pd.DataFrame({"k": ["P1", "P1"], "name": ["Widget (P1)", "Widget (P1)"], "v": [1, 2]})
    ranked = rank_top_n(df, key="k", measure="v", label="name")
    assert ranked[0].label == "Widget (P1)"
    assert ranked[0].value == 3.0


def test_empty_frame():
    assert rank_top_n(pd.DataFrame(columns=["k", "v"]), key="k", measure="v") == []
