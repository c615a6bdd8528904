import dataclasses

import pytest

from cuscaler.core.scaling_group import Group, GroupSpec, \
    parse_group_spec, parse_node_group_spec


class TestScalingGroup:
    def test_group_is_immutable(self):
        group = Group(group_id="1", group_name="group-1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            group.group_name = "group-2"
        assert {group: 1}[Group(group_id="1", group_name="group-1")] == 1

    def test_node_group_name(self):
        assert Group("1", "group-1").node_group_name() == "group-1"
        assert Group("1", "group-1", rule_name="rule-1").node_group_name() \
            == "rule-1---group-1"

    @pytest.mark.parametrize("value,expected", [
        ("group-1", GroupSpec(group_name="group-1")),
        ("rule-1---group-1", GroupSpec(group_name="group-1",
                                       rule_name="rule-1")),
        ("---group-1", GroupSpec(group_name="group-1", rule_name="")),
    ])
    def test_parse_group_spec(self, value, expected):
        assert parse_group_spec(value) == expected

    def test_parse_group_spec_with_too_many_tokens(self):
        with pytest.raises(ValueError):
            parse_group_spec("a---b---c")

    def test_parse_node_group_spec(self):
        assert parse_node_group_spec("1:10:rule-1---group-1") == \
            (1, 10, "rule-1---group-1")
        assert parse_node_group_spec("0:0:group:with:colons") == \
            (0, 0, "group:with:colons")

    @pytest.mark.parametrize("value", [
        "group-1",
        "1:group-1",
        "a:10:group-1",
        "-1:10:group-1",
        "5:1:group-1",
        "1:10:",
    ])
    def test_parse_wrong_node_group_spec(self, value):
        with pytest.raises(ValueError):
            parse_node_group_spec(value)


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(["-v", __file__]))
