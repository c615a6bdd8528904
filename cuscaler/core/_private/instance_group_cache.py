import logging
import threading
from typing import Dict, Optional, Set

from cuscaler.core._private.constants import CUSCALER_CACHE_REFRESH_INTERVAL_S
from cuscaler.core._private.core_utils import synchronized
from cuscaler.core._private.group_registry import GroupRegistry
from cuscaler.core._private.prometheus_metrics import CachePrometheusMetrics
from cuscaler.core.group_lister import GroupLister
from cuscaler.core.scaling_group import Group

logger = logging.getLogger(__name__)


class ResolutionError(RuntimeError):
    pass


class InstanceGroupCache:
    """A thread safe cache of which scaling group each instance belongs to.

    Lookups which miss both the instance map and the set of instances
    known to be outside of any managed group rebuild the instance map from
    the members of all the registered groups. An instance still not found
    after the rebuild is remembered in the known absent set so that the
    nodes outside of the groups (the control plane nodes for example) don't
    cause a rebuild on every lookup.

    A single lock covers the lookups, the rebuilds and the registration.
    A rebuild calls the group lister with the lock held, so a slow lister
    blocks all the lookups until it returns.
    """

    def __init__(self,
                 lister: GroupLister,
                 registry: Optional[GroupRegistry] = None,
                 metrics: Optional[CachePrometheusMetrics] = None):
        self.lister = lister
        self.registry = registry if registry is not None else GroupRegistry()
        self.metrics = metrics or CachePrometheusMetrics()
        self.lock = threading.Lock()
        self._instance_to_group: Dict[str, Group] = {}
        self._known_absent: Set[str] = set()
        self._stop_event = threading.Event()
        self._refresh_thread = None

    @synchronized
    def register(self, group: Group):
        """Add a group to manage. Its members are not known
        until the next rebuild."""
        self.registry.register(group)

    @synchronized
    def find_group(self, instance_id: str) -> Optional[Group]:
        """Return the group of the instance or None if the instance
        belongs to no managed group."""
        group = self._instance_to_group.get(instance_id)
        if group is not None:
            self.metrics.cache_hits.inc()
            return group
        if instance_id in self._known_absent:
            self.metrics.negative_cache_hits.inc()
            return None

        self._regenerate()

        group = self._instance_to_group.get(instance_id)
        if group is not None:
            return group
        logger.debug(
            "Instance {} belongs to no managed scaling group.".format(
                instance_id))
        self._known_absent.add(instance_id)
        return None

    @synchronized
    def regenerate(self):
        """Rebuild the instance map from the members of all the groups."""
        self._regenerate()

    def _regenerate(self):
        new_cache = {}
        for group in self.registry.groups():
            try:
                instances = self.lister.list_members(group.group_id)
            except Exception as e:
                self.metrics.resync_failures.inc()
                raise ResolutionError(
                    "Failed to list the instances of scaling group {}: "
                    "{}".format(group.group_id, str(e))) from e
            for instance in instances:
                new_cache[instance.instance_id] = group

        self._instance_to_group = new_cache
        self._known_absent.difference_update(new_cache.keys())
        self.metrics.resyncs.inc()
        self.metrics.cached_instances.set(len(new_cache))
        logger.debug("Instance group cache regenerated with {} "
                     "instances of {} groups.".format(
                        len(new_cache), len(self.registry)))

    def start_refresh(self, interval_s: int = CUSCALER_CACHE_REFRESH_INTERVAL_S):
        """Start the background thread which rebuilds the cache
        at a fixed interval, beginning immediately."""
        if self._refresh_thread is not None:
            return
        self._stop_event.clear()
        self._refresh_thread = threading.Thread(
            target=self._refresh_loop, args=(interval_s,),
            name="instance-group-cache-refresh")
        # ensure the thread will not block the process from exiting.
        self._refresh_thread.daemon = True
        self._refresh_thread.start()

    def stop_refresh(self, timeout: Optional[float] = None):
        self._stop_event.set()
        thread = self._refresh_thread
        if thread is not None:
            thread.join(timeout)
            self._refresh_thread = None

    def _refresh_loop(self, interval_s):
        while not self._stop_event.is_set():
            try:
                self.regenerate()
            except ResolutionError as e:
                logger.error(
                    "Failed to regenerate instance group cache: {}".format(
                        str(e)))
            except Exception:
                logger.exception(
                    "Error happened when regenerating instance group cache.")
            self._stop_event.wait(interval_s)
