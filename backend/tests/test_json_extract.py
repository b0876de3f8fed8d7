import json

import pytest

from sitesmith.services.json_extract import extract_json_object, strip_fences


def test_object_surrounded_by_prose():
    raw = 'Sure, here you go: {"core": {"purpose": "x"}} Let me know if you need more.'
    assert extract_json_object(raw) == {"core": {"purpose": "x"}}


def test_fenced_object():
    raw = '```json\n{"a": 1}\n```'
    assert extract_json_object(strip_fences(raw)) == {"a": 1}


def test_no_braces_raises_value_error():
    with pytest.raises(ValueError):
        extract_json_object("I could not do that.")


def test_invalid_json_raises_decode_error():
    with pytest.raises(json.JSONDecodeError):
        extract_json_object("{not: json}")


def test_non_object_is_rejected():
    with pytest.raises(ValueError):
        extract_json_object("} [1, 2] {")


def test_strip_fences_leaves_plain_text():
    assert strip_fences("  export default 1  ") == "export default 1"
