from app.utils import (
    chunked,
    is_steam_id64,
    minutes_to_hours,
    sanitize_query_name,
    seconds_to_hours,
    unique_query_names,
)


def test_chunked_keeps_remainder():
    assert list(chunked(list(range(23)), 10)) == [
        list(range(10)),
        list(range(10, 20)),
        [20, 21, 22],
    ]


def test_chunked_empty_input_yields_nothing():
    assert list(chunked([], 10)) == []


def test_sanitize_query_name_strips_punctuation():
    assert sanitize_query_name("Half-Life 2: Episode One") == "HalfLife2EpisodeOne"


def test_unique_query_names_suffixes_collisions():
    names = unique_query_names("search", ["Portal 2", "Portal: 2", "ポータル"])

    assert names == ["search_Portal2", "search_Portal2_1", "search_q2"]


def test_seconds_to_hours_rounds_half_up():
    assert seconds_to_hours(5400) == 2
    assert seconds_to_hours(9000) == 3
    assert seconds_to_hours(5399) == 1
    assert seconds_to_hours(0) is None
    assert seconds_to_hours(None) is None


def test_minutes_to_hours_treats_tiny_playtime_as_absent():
    assert minutes_to_hours(150) == 3
    assert minutes_to_hours(20) is None
    assert minutes_to_hours(0) is None


def test_is_steam_id64():
    assert is_steam_id64("76561197960287930")
    assert not is_steam_id64("7656119796028793")
    assert not is_steam_id64("gabelogannewell")
    assert not is_steam_id64("76561197960287930\n")
    full_width = "".join(chr(ord(digit) + 0xFEE0) for digit in "76561197960287930")
    assert not is_steam_id64(full_width)
