import re

from saved_search_trigger.encoding import url_encode


def test_unreserved_characters_pass_through():
    assert url_encode("Report-1_a.b~C") == "Report-1_a.b~C"


def test_spaces_and_specials_use_lowercase_hex():
    assert url_encode("Report X") == "Report%20X"
    assert url_encode("a/b?c=d&e") == "a%2fb%3fc%3dd%26e"
    assert url_encode("50%") == "50%25"


def test_non_ascii_is_encoded_per_utf8_byte():
    assert url_encode("é") == "%c3%a9"


def test_encoded_names_stay_path_safe():
    names = ["Saved Alert 1 CHANGEME", "weird: [name] (x) #1", "tab\there", "üñí©ødé", "", "%%"]
    for name in names:
        assert re.fullmatch(r"[A-Za-z0-9._~%-]*", url_encode(name))


def test_distinct_names_encode_distinctly():
    assert url_encode("a b") != url_encode("a%20b")
