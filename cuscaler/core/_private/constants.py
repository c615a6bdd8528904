import os
import sys


def env_integer(key, default):
    if key in os.environ:
        val = os.environ[key]
        if val == "inf":
            return sys.maxsize
        else:
            return int(val)
    return default


LOGGER_FORMAT = (
    "%(asctime)s\t%(levelname)s %(filename)s:%(lineno)s -- %(message)s")
LOGGER_FORMAT_HELP = f"The logging format. default='{LOGGER_FORMAT}'"
LOGGER_LEVEL_INFO = "info"
LOGGER_LEVEL_HELP = ("The logging level threshold, choices=['debug', 'info',"
                     " 'warning', 'error', 'critical'], default='info'")

LOGGING_ROTATE_MAX_BYTES = 512 * 1024 * 1024  # 512MB.
LOGGING_ROTATE_BACKUP_COUNT = 5  # 5 Backup files at max.

# Interval of the background rebuild of the instance to group cache
CUSCALER_CACHE_REFRESH_INTERVAL_S = env_integer(
    "CUSCALER_CACHE_REFRESH_INTERVAL_S", 3600)

# Timeout of a single call to the scaling group API
CUSCALER_REQUEST_TIMEOUT_S = env_integer("CUSCALER_REQUEST_TIMEOUT_S", 10)

# Environment variables which supply the API credentials when they
# are not given in the provider configuration
CUCLOUD_ACCESS_KEY_ENV = "CUCLOUD_ACCESS_KEY"
CUCLOUD_SECRET_KEY_ENV = "CUCLOUD_SECRET_KEY"

# Label which marks a control plane node
KUBERNETES_MASTER_NODE_LABEL = "node-role.kubernetes.io/master"
