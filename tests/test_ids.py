"""Tests for the resource id model and the remap table."""

import json

import pytest

from resopt.ids import RemapTable, ResourceId, group_by_type


class TestResourceId:
    """Field extraction and value semantics."""

    def test_fields(self):
        rid = ResourceId(0x7f0a0123)
        assert rid.package_id == 0x7f
        assert rid.type_id == 0x0a
        assert rid.entry_id == 0x0123

    def test_compared_and_hashed_by_value(self):
        assert ResourceId(0x7f010000) == ResourceId(0x7f010000)
        assert len({ResourceId(0x7f010000), ResourceId(0x7f010000)}) == 1
        assert ResourceId(0x7f010000) < ResourceId(0x7f010001)

    def test_parse(self):
        assert ResourceId.parse("0x7f010002").value == 0x7f010002
        assert ResourceId.parse(2130771970).value == 0x7f010002
        rid = ResourceId(5)
        assert ResourceId.parse(rid) is rid

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            ResourceId.parse("not-an-id")

    @pytest.mark.parametrize("value", [-1, 0x1_0000_0000])
    def test_out_of_range(self, value):
        with pytest.raises(ValueError):
            ResourceId(value)

    def test_str_is_hex(self):
        assert str(ResourceId(0x7f010000)) == "0x7f010000"
        assert int(ResourceId(0x7f010000)) == 0x7f010000


def test_group_by_type_keeps_first_seen_order():
    ids = [ResourceId(v) for v in (0x7f020001, 0x7f010000, 0x7f020000, 0x7f010005)]
    groups = group_by_type(ids)
    assert list(groups) == [0x02, 0x01]
    assert groups[0x02] == [ResourceId(0x7f020001), ResourceId(0x7f020000)]


class TestRemapTable:
    """Read-only mapping behaviour."""

    def test_lookup_by_int_and_id(self):
        table = RemapTable({0x7f010000: 0x7f010010})
        assert table[0x7f010000] == 0x7f010010
        assert table[ResourceId(0x7f010000)] == 0x7f010010
        assert ResourceId(0x7f010000) in table
        assert 0x7f010001 not in table
        assert "0x7f010000" not in table

    def test_preserves_insertion_order(self):
        table = RemapTable([(3, 30), (1, 10), (2, 20)])
        assert list(table) == [3, 1, 2]
        assert len(table) == 3

    def test_is_read_only(self):
        table = RemapTable({1: 2})
        with pytest.raises(TypeError):
            table[3] = 4
        assert not hasattr(table, "pop")

    def test_from_json_object(self, tmp_path):
        path = tmp_path / "table.json"
        path.write_text(json.dumps({"0x7f010000": "0x7f010010", "0x7f020000": 2130837504}))
        table = RemapTable.from_json(path)
        assert table[0x7f010000] == 0x7f010010
        assert table[0x7f020000] == 0x7f020000

    def test_from_json_pairs(self, tmp_path):
        path = tmp_path / "table.json"
        path.write_text(json.dumps([["0x7f010000", "0x7f010001"]]))
        assert dict(RemapTable.from_json(path)) == {0x7f010000: 0x7f010001}

    def test_from_json_rejects_bad_pairs(self, tmp_path):
        path = tmp_path / "table.json"
        path.write_text(json.dumps([[1, 2, 3]]))
        with pytest.raises(ValueError):
            RemapTable.from_json(path)

    def test_to_dict(self):
        assert RemapTable({1: 2}).to_dict() == {"0x00000001": "0x00000002"}
