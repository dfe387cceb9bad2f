"""地名标准化测试。"""

import pytest

from bill_verifier.modules.reconcile.locality import PROVINCES, compact_city, is_province, normalize_province


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("广东", "广东"),
        ("广东省", "广东"),
        (" 广 东 ", "广东"),
        ("粤", "广东"),
        ("xinjiang", "新疆"),
        ("Shanghai", "上海"),
        ("新疆维吾尔自治区", "新疆"),
        ("内蒙古自治区", "内蒙古"),
        ("内蒙", "内蒙古"),
        ("上海市嘉定区", "上海"),
        ("嘉定", "上海"),
        ("苏州", "江苏"),
        ("苏州市", "江苏"),
        ("浦东新区", "上海"),
        ("海南省", "海南"),
    ],
)
def test_normalize_province(raw, expected):
    assert normalize_province(raw) == expected


def test_unknown_suffix_is_stripped():
    assert normalize_province("火星市") == "火星"


def test_unresolved_text_returned_trimmed():
    assert normalize_province("  某某县 ") == "某某县"


def test_empty_input():
    assert normalize_province("") == ""
    assert normalize_province(None) == ""


def test_normalize_is_idempotent_on_canonical_names():
    for province in PROVINCES:
        assert normalize_province(province) == province
        assert normalize_province(normalize_province(province)) == province


def test_longer_keyword_wins():
    assert normalize_province("内蒙古包头") == "内蒙古"
    assert normalize_province("黑龙江省哈尔滨市") == "黑龙江"


def test_compact_city_and_is_province():
    assert compact_city(" 上 海 ") == "上海"
    assert compact_city(None) == ""
    assert is_province("上海")
    assert not is_province("嘉定")
