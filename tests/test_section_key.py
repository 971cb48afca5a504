import pytest

from occupancy.errors import ValidationError
from occupancy.records import SectionKey


def test_parse_single_letter_token():
    key = SectionKey.parse("C3")
    assert key == SectionKey("C", 3)
    assert key.token == "C3"
    assert str(key) == "C3"


def test_parse_multi_letter_token():
    assert SectionKey.parse("ab12") == SectionKey("AB", 12)


@pytest.mark.parametrize("token", ["", "3", "C", "C-3", None])
def test_parse_rejects_malformed_tokens(token):
    with pytest.raises(ValidationError):
        SectionKey.parse(token)


def test_keys_sort_by_letter_then_number():
    keys = [SectionKey("B", 1), SectionKey("A", 10), SectionKey("A", 2)]
    assert sorted(keys) == [SectionKey("A", 2), SectionKey("A", 10), SectionKey("B", 1)]
