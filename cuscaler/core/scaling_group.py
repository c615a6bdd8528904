import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Separator between the rule name and the group name of a node group name
GROUP_RULE_SEPARATOR = "---"


class InstanceState(Enum):
    RUNNING = "running"
    CREATING = "creating"
    PENDING = "pending"
    DELETING = "deleting"
    DELETED = "deleted"
    FAILED = "failed"


@dataclass(frozen=True)
class Group:
    """A scaling group managed by the provider.

    rule_name selects one of the scaling rules of the group when the group
    has more than one of them. It is empty for groups configured with the
    plain group name.
    """
    group_id: str
    group_name: str
    rule_name: str = ""
    min_size: int = 0
    max_size: int = 0

    def node_group_name(self) -> str:
        if self.rule_name:
            return "{}{}{}".format(
                self.rule_name, GROUP_RULE_SEPARATOR, self.group_name)
        return self.group_name


@dataclass(frozen=True)
class Instance:
    instance_id: str
    state: InstanceState
    # set when the upstream status can not be mapped to a known state
    error_message: Optional[str] = None


@dataclass(frozen=True)
class GroupSpec:
    group_name: str
    rule_name: str = ""


def parse_group_spec(value: str) -> GroupSpec:
    """Parse a node group name of the form <rule_name>---<group_name>.

    A name without the separator is the group name itself.
    """
    if GROUP_RULE_SEPARATOR not in value:
        return GroupSpec(group_name=value)
    tokens = value.split(GROUP_RULE_SEPARATOR)
    if len(tokens) != 2:
        raise ValueError("Wrong group configuration: {}".format(value))
    return GroupSpec(group_name=tokens[1], rule_name=tokens[0])


def parse_node_group_spec(value: str) -> Tuple[int, int, str]:
    """Parse a static node group spec of the form <min>:<max>:<name>."""
    tokens = value.split(":", 2)
    if len(tokens) != 3:
        raise ValueError(
            "Wrong node group spec: {}, expected <min>:<max>:<name>.".format(
                value))
    try:
        min_size = int(tokens[0])
        max_size = int(tokens[1])
    except ValueError:
        raise ValueError(
            "Wrong node group spec: {}, the bounds must be integers.".format(
                value)) from None
    name = tokens[2]
    if min_size < 0:
        raise ValueError(
            "Wrong node group spec: {}, min size must be non-negative.".format(
                value))
    if max_size < min_size:
        raise ValueError(
            "Wrong node group spec: {}, max size must not be less than "
            "min size.".format(value))
    if not name:
        raise ValueError(
            "Wrong node group spec: {}, the name is empty.".format(value))
    return min_size, max_size, name
