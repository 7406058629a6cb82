from geodistance.utils.paths import ABSENT, extract, extract_path, extract_value


def test_extract_path():
    assert extract_path("MLGeo") == ["MLGeo"]
    assert extract_path("[a][b][c]") == ["a", "b", "c"]
    assert extract_path("[single]") == ["single"]
    # only fully bracketed references are split
    assert extract_path("[a]b") == ["[a]b"]


def test_extract_nested():
    assert extract({"a": {"b": 5}}, "[a][b]") == 5
    assert extract({"a": 1}, "a") == 1


def test_extract_missing_is_absent():
    assert extract({"a": {}}, "[a][c]") is ABSENT
    assert extract({}, "x") is ABSENT
    # intermediate value is not a mapping
    assert extract({"a": "text"}, "[a][b]") is ABSENT


def test_absent_is_distinct_from_none():
    assert extract_value({"a": None}, ["a"]) is None
    assert extract_value({"a": None}, ["a", "b"]) is ABSENT
    assert not ABSENT
    assert repr(ABSENT) == "ABSENT"
