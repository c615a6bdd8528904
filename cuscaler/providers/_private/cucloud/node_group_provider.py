import logging
from threading import RLock
from typing import Any, Dict, List, Optional

from cuscaler.core._private.constants import KUBERNETES_MASTER_NODE_LABEL
from cuscaler.core._private.core_utils import synchronized
from cuscaler.core.scaling_group import Group, parse_group_spec, \
    parse_node_group_spec
from cuscaler.providers._private.cucloud.scaling_manager import \
    CucloudScalingManager

logger = logging.getLogger(__name__)


def build_group_from_spec(spec: str, groups: List[Group]) -> Group:
    """Match a node group spec to one of the listed scaling groups.

    The size bounds of the group come from the scaling group itself.
    """
    try:
        _, _, name = parse_node_group_spec(spec)
        group_spec = parse_group_spec(name)
    except ValueError as e:
        raise RuntimeError(
            "Failed to parse node group spec: {}".format(str(e))) from None
    for group in groups:
        if group.group_name == group_spec.group_name:
            return Group(
                group_id=group.group_id,
                group_name=group.group_name,
                rule_name=group_spec.rule_name,
                min_size=group.min_size,
                max_size=group.max_size)
    raise RuntimeError(
        "No scaling group found, spec: {}".format(name))


class CucloudNodeGroupProvider:
    """The node groups of a cluster backed by CUCloud scaling groups."""

    def __init__(self,
                 provider_config: Dict[str, Any],
                 node_group_specs: List[str],
                 manager: Optional[CucloudScalingManager] = None):
        if not node_group_specs:
            raise RuntimeError("No scaling group specified.")
        self.provider_config = provider_config
        self.manager = manager or CucloudScalingManager(provider_config)
        self.lock = RLock()
        self._groups: List[Group] = []
        self._build_groups(node_group_specs)

    def _build_groups(self, specs: List[str]):
        groups = self.manager.list_scaling_groups()
        for spec in specs:
            try:
                group = build_group_from_spec(spec, groups)
            except RuntimeError:
                logger.warning(
                    "Failed to add node group with spec: {}".format(spec))
                raise
            self._add_group(group)

    @synchronized
    def _add_group(self, group: Group):
        self._groups.append(group)
        self.manager.register_group(group)

    @synchronized
    def node_groups(self) -> List[Group]:
        return list(self._groups)

    def node_group_for_node(self,
                            node_name: str,
                            provider_id: Optional[str] = None,
                            labels: Optional[Dict[str, str]] = None
                            ) -> Optional[Group]:
        """Return the group of a node, or None if the node is not managed."""
        if labels and KUBERNETES_MASTER_NODE_LABEL in labels:
            return None
        instance_id = provider_id
        if not instance_id:
            # nodes of old clusters have no provider id
            logger.warning(
                "Node {} has no provider id, use the node name "
                "as instance id.".format(node_name))
            instance_id = node_name
        return self.manager.get_group_for_instance(instance_id)

    def target_size(self, group: Group) -> int:
        return self.manager.get_desired_size(group)

    def increase_size(self, group: Group, delta: int):
        if delta <= 0:
            raise ValueError("Size increase must be positive.")
        size = self.manager.get_desired_size(group)
        if size + delta > group.max_size:
            raise ValueError(
                "Size increase too large - desired: {} max: {}".format(
                    size + delta, group.max_size))
        self.manager.increase_size(group, delta)

    def delete_nodes(self, group: Group, instance_ids: List[str]):
        size = self.manager.get_desired_size(group)
        if size - len(instance_ids) < group.min_size:
            raise ValueError(
                "Min size reached for group {}, nodes will not be "
                "deleted.".format(group.node_group_name()))
        for instance_id in instance_ids:
            owner = self.manager.get_group_for_instance(instance_id)
            if owner is None or owner.group_id != group.group_id:
                raise ValueError(
                    "Instance {} doesn't belong to group {}.".format(
                        instance_id, group.node_group_name()))
        self.manager.delete_instances(group, instance_ids)
