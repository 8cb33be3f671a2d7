from reelsmith.utils.timefmt import format_ruler, format_time, ruler_ticks


def test_format_time_edge_cases():
    assert format_time(-1.0) == "00:00.000"  # negative clamps
    assert format_time(0.0) == "00:00.000"
    assert format_time(0.9996) == "00:01.000"
    assert format_time(61.0) == "01:01.000"
    assert format_time(3600 + 62.5).startswith("61:02")


def test_format_time_precision():
    assert format_time(1.2344) == "00:01.234"
    assert format_time(1.2345) == "00:01.235"  # rounds up (half-up)


def test_format_ruler():
    assert format_ruler(0) == "0:00"
    assert format_ruler(9.9) == "0:09"
    assert format_ruler(125) == "2:05"
    assert format_ruler(-3) == "0:00"


def test_ruler_ticks_interval_follows_zoom():
    # 100 px/s -> ticks every second
    assert ruler_ticks(3, 100) == [0.0, 1.0, 2.0, 3.0]
    # 50 px/s -> 2s spacing keeps labels 100px apart
    assert ruler_ticks(5, 50) == [0.0, 2.0, 4.0, 6.0]
    # 5 px/s -> 15s spacing
    assert ruler_ticks(40, 5)[:3] == [0.0, 15.0, 30.0]


def test_ruler_ticks_empty():
    assert ruler_ticks(0, 100) == []
    assert ruler_ticks(10, 0) == []
