from farmreport.utils.numeric import coerce_float, coerce_int, max_optional, min_optional, percent


def test_percent_rounds_half_up():
    assert percent(1, 8) == 12.5
    assert percent(1, 3) == 33.33
    assert percent(2, 3) == 66.67
    assert percent(1, 800) == 0.13  # 0.125


def test_percent_floors_denominator():
    assert percent(3, 0) == 300.0
    assert percent(0, 0) == 0.0


def test_coercions():
    assert coerce_float("12.5") == 12.5
    assert coerce_float("nan") is None
    assert coerce_float(True) is None
    assert coerce_float("abc") is None
    assert coerce_int("7") == 7
    assert coerce_int("7.9") == 7
    assert coerce_int(None) is None


def test_optional_min_max():
    assert min_optional(None, 3) == 3
    assert min_optional(2, None) == 2
    assert min_optional(2, 1) == 1
    assert max_optional(None, None) is None
    assert max_optional(2, 5) == 5
