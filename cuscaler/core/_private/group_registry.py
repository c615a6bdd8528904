import logging
from typing import List

from cuscaler.core.scaling_group import Group

logger = logging.getLogger(__name__)


class GroupRegistry:
    """The scaling groups under management.

    Not thread safe by itself. The instance to group cache serializes
    all the access with its own lock.
    """
    def __init__(self):
        self._groups = []

    def register(self, group: Group):
        self._groups.append(group)
        logger.info("Registered scaling group: {} ({})".format(
            group.node_group_name(), group.group_id))

    def groups(self) -> List[Group]:
        return list(self._groups)

    def __len__(self):
        return len(self._groups)
