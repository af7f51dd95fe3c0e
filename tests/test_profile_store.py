import json

import pytest

from invoice_variants.profile_store import ProfileStore

PROFILES = {
    "company": {"name": "Acme Supplies", "currency": "USD", "logo": "logos/acme.png", "primary_color": "#2c3e50"},
    "buyers": [
        {"name": "Globex", "address": "12 Elm St"},
        {"name": "Initech", "email": "ap@initech.test"},
    ],
    "logos": ["logos/a.png", "/abs/b.png"],
}


def _write(tmp_path, data):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_pools(tmp_path):
    pools = ProfileStore(_write(tmp_path, PROFILES)).load()

    assert pools.company.name == "Acme Supplies"
    assert pools.company.primary_color == "#2c3e50"
    assert pools.company.logo == str(tmp_path / "logos" / "acme.png")
    assert [b.name for b in pools.buyers] == ["Globex", "Initech"]
    assert pools.buyers[0].address == "12 Elm St"
    assert pools.logos == [str(tmp_path / "logos" / "a.png"), "/abs/b.png"]


def test_empty_pools(tmp_path):
    pools = ProfileStore(_write(tmp_path, {})).load()
    assert pools.company is None
    assert pools.buyers == []
    assert pools.logos == []


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ProfileStore(tmp_path / "nope.json").load()


def test_invalid_json(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        ProfileStore(path).load()


@pytest.mark.parametrize("data, message", [
    ({"buyers": [{"name": "ok"}, {"email": "x@y"}]}, "Buyer #2"),
    ({"buyers": {"name": "x"}}, "must be a list"),
    ({"logos": [""]}, "logos[0]"),
    ({"company": {"email": "x@y"}}, "has no 'name'"),
    ([], "top-level JSON object"),
])
def test_bad_entries(tmp_path, data, message):
    with pytest.raises(ValueError) as ei:
        ProfileStore(_write(tmp_path, data)).load()
    assert message in str(ei.value)
