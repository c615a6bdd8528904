import logging
from typing import Any, Dict, Optional

from cuscaler.core.scaling_group import Group, Instance, InstanceState

logger = logging.getLogger(__name__)

CUCLOUD_NODE_STATUS_RUNNING = "running"
CUCLOUD_NODE_STATUS_DELETING = "deleting"
CUCLOUD_NODE_STATUS_DELETED = "deleted"
CUCLOUD_NODE_STATUS_CREATING = "creating"
CUCLOUD_NODE_STATUS_PENDING = "pending"
CUCLOUD_NODE_STATUS_FAILED = "failed"

# Scale nodes in these status are gone and not members of the group
CUCLOUD_NODE_STATUS_TERMINATED = [
    CUCLOUD_NODE_STATUS_DELETED, CUCLOUD_NODE_STATUS_FAILED]

_NODE_STATUS_TO_STATE = {
    CUCLOUD_NODE_STATUS_RUNNING: InstanceState.RUNNING,
    CUCLOUD_NODE_STATUS_CREATING: InstanceState.CREATING,
    CUCLOUD_NODE_STATUS_PENDING: InstanceState.CREATING,
    CUCLOUD_NODE_STATUS_DELETING: InstanceState.DELETING,
}


def to_instance(scale_node: Dict[str, Any]) -> Optional[Instance]:
    """Convert a scale node of a scaling group to an instance.

    Returns None for the nodes which don't count as members: the nodes
    without a provider id yet and the nodes already deleted or failed.
    """
    provider_id = scale_node.get("providerID")
    if not provider_id:
        logger.info("Ignore instance without instance id, "
                    "maybe instance is joining.")
        return None
    status = scale_node.get("status")
    if status in CUCLOUD_NODE_STATUS_TERMINATED:
        return None
    state = _NODE_STATUS_TO_STATE.get(status)
    if state is None:
        return Instance(
            instance_id=provider_id,
            state=InstanceState.FAILED,
            error_message="Invalid instance state: {}".format(status))
    return Instance(instance_id=provider_id, state=state)


def is_complete_scaling_group(scaling_group: Dict[str, Any]) -> bool:
    return (scaling_group.get("auto_scale") is not None and
            scaling_group.get("node_config") is not None and
            scaling_group.get("disk") is not None)


def to_group(scaling_group: Dict[str, Any], rule_name: str = "") -> Group:
    auto_scale = scaling_group.get("auto_scale") or {}
    return Group(
        group_id="{}".format(scaling_group["id"]),
        group_name=scaling_group.get("name", ""),
        rule_name=rule_name,
        min_size=auto_scale.get("node_min", 0),
        max_size=auto_scale.get("node_max", 0))
