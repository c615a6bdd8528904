import logging
from typing import Any, Dict, List, Optional

from cuscaler.core._private.instance_group_cache import InstanceGroupCache
from cuscaler.core.group_lister import GroupLister
from cuscaler.core.scaling_group import Group, Instance, InstanceState
from cuscaler.providers._private.cucloud.api_client import \
    CucloudApiClient, SCALE_TYPE_AUTO
from cuscaler.providers._private.cucloud.config import \
    get_cache_refresh_interval, get_request_timeout
from cuscaler.providers._private.cucloud.utils import \
    is_complete_scaling_group, to_group, to_instance

logger = logging.getLogger(__name__)


def _make_api_client(provider_config: Dict[str, Any]) -> CucloudApiClient:
    return CucloudApiClient(
        endpoint=provider_config["endpoint"],
        access_key=provider_config["access_key"],
        secret_key=provider_config["secret_key"],
        region_id=provider_config["region_id"],
        cluster_id=provider_config["cluster_id"],
        timeout=get_request_timeout(provider_config))


class CucloudScalingManager(GroupLister):
    """Scaling actions and instance lookups against the scaling groups
    of a managed Kubernetes cluster."""

    def __init__(self,
                 provider_config: Dict[str, Any],
                 api_client: Optional[CucloudApiClient] = None,
                 start_refresh: bool = True):
        self.provider_config = provider_config
        self.api_client = api_client or _make_api_client(provider_config)
        self.cache = InstanceGroupCache(self)
        if start_refresh:
            self.cache.start_refresh(
                get_cache_refresh_interval(provider_config))

    def list_members(self, group_id: str) -> List[Instance]:
        return self.get_instances(group_id)

    def get_group_for_instance(self, instance_id: str) -> Optional[Group]:
        return self.cache.find_group(instance_id)

    def register_group(self, group: Group):
        self.cache.register(group)

    def list_scaling_groups(self) -> List[Group]:
        try:
            scaling_groups = self.api_client.list_scaling_groups()
        except Exception as e:
            logger.error(
                "Failed to list scaling groups. error: {}".format(str(e)))
            raise
        if not scaling_groups:
            logger.info("No scaling group yet.")
            return []

        groups = []
        for scaling_group in scaling_groups:
            if not is_complete_scaling_group(scaling_group):
                continue
            group = to_group(scaling_group)
            groups.append(group)
            logger.info("Found scaling group: {}".format(group.group_name))
        return groups

    def get_instances(self, group_id: str) -> List[Instance]:
        scaling_group = self.api_client.describe_scaling_group(group_id)
        instances = []
        for scale_node in scaling_group.get("scale_node") or []:
            instance = to_instance(scale_node)
            if instance is not None:
                instances.append(instance)
        return instances

    def get_desired_size(self, group: Group) -> int:
        try:
            instances = self.get_instances(group.group_id)
        except Exception as e:
            logger.error(
                "Failed to list scaling group instances. group: {}, "
                "error: {}".format(group.group_id, str(e)))
            raise RuntimeError("Failed to get instance list.") from e
        return len([instance for instance in instances
                    if instance.state != InstanceState.DELETING])

    def increase_size(self, group: Group, delta: int):
        try:
            self.api_client.create_scaling_group_instances(
                group.group_id, delta, SCALE_TYPE_AUTO, group.rule_name)
        except Exception as e:
            logger.error(
                "Failed to create scaling instances. group: {}, "
                "error: {}".format(group.group_id, str(e)))
            raise

    def delete_instances(self, group: Group, instance_ids: List[str]):
        try:
            self.api_client.delete_scaling_group_instances(
                group.group_id, instance_ids, group.rule_name,
                SCALE_TYPE_AUTO)
        except Exception as e:
            logger.error(
                "Failed to delete scaling instances. group: {}, "
                "error: {}".format(group.group_id, str(e)))
            raise

    def stop(self):
        self.cache.stop_refresh()
