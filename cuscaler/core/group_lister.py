import logging
from typing import List

from cuscaler.core.scaling_group import Instance

logger = logging.getLogger(__name__)


class GroupLister:
    """Interface for listing the live members of a scaling group.

    **Important**: This is an INTERNAL API that is only exposed for the purpose
    of plugging a scaling group service into the instance to group cache.
    The cache calls list_members once per registered group on every rebuild.
    """

    def list_members(self, group_id: str) -> List[Instance]:
        """Return the current member instances of the group.

        Raise an exception if the members cannot be listed; the cache
        treats this as a failure of the whole rebuild.
        """
        raise NotImplementedError
