import copy
import json
import logging
import os
from typing import Any, Dict, Optional

import jsonschema
import yaml

import cuscaler.core
from cuscaler.core._private.constants import CUCLOUD_ACCESS_KEY_ENV, \
    CUCLOUD_SECRET_KEY_ENV, CUSCALER_CACHE_REFRESH_INTERVAL_S, \
    CUSCALER_REQUEST_TIMEOUT_S

logger = logging.getLogger(__name__)

CUSCALER_CONFIG_SCHEMA_PATH = os.path.join(
    os.path.dirname(cuscaler.core.__file__), "config-schema.json")

PROVIDER_REQUIRED_KEYS = [
    "endpoint", "access_key", "secret_key", "region_id", "cluster_id"]


def validate_config(config: Dict[str, Any]) -> None:
    """Validate the config against the JSON schema and the required
    provider keys."""
    if not isinstance(config, dict):
        raise ValueError("Config {} is not a dictionary".format(config))

    with open(CUSCALER_CONFIG_SCHEMA_PATH) as f:
        schema = json.load(f)

    try:
        jsonschema.validate(config, schema)
    except jsonschema.ValidationError as e:
        # The validate method shows a very long message of the schema
        # and the instance data, show the short message only
        raise RuntimeError(
            "JSON schema validation error: {}.".format(e.message)) from None

    validate_provider_config(config["provider"])


def validate_provider_config(provider_config: Dict[str, Any]) -> None:
    config_dict = {key: provider_config.get(key)
                   for key in PROVIDER_REQUIRED_KEYS}
    provider_config_failed = False
    for key, value in config_dict.items():
        if not value:
            provider_config_failed = True
            logger.info("{} must be defined in the provider config, "
                        "please refer to config-schema.json.".format(key))
    if provider_config_failed:
        raise RuntimeError("{} provider must be provided the right config, "
                           "please refer to config-schema.json.".format(
                            provider_config.get("type")))


def with_credentials_from_environment(
        provider_config: Dict[str, Any]) -> Dict[str, Any]:
    """Fill the missing credentials from the environment variables."""
    provider_config = copy.deepcopy(provider_config)
    if not provider_config.get("access_key"):
        access_key = os.environ.get(CUCLOUD_ACCESS_KEY_ENV)
        if access_key:
            provider_config["access_key"] = access_key
    if not provider_config.get("secret_key"):
        secret_key = os.environ.get(CUCLOUD_SECRET_KEY_ENV)
        if secret_key:
            provider_config["secret_key"] = secret_key
    return provider_config


def prepare_config(config: Dict[str, Any]) -> Dict[str, Any]:
    config = copy.deepcopy(config)
    if "provider" in config:
        config["provider"] = with_credentials_from_environment(
            config["provider"])
    config.setdefault("node_groups", [])
    return config


def load_config(config_file: str) -> Dict[str, Any]:
    with open(config_file) as f:
        config = yaml.safe_load(f.read())
    if config is None:
        raise RuntimeError(
            "The config file {} is empty.".format(config_file))
    config = prepare_config(config)
    validate_config(config)
    return config


def get_cache_refresh_interval(provider_config: Dict[str, Any]) -> int:
    return provider_config.get(
        "cache_refresh_interval_s", CUSCALER_CACHE_REFRESH_INTERVAL_S)


def get_request_timeout(provider_config: Dict[str, Any]) -> Optional[float]:
    return provider_config.get(
        "request_timeout_s", CUSCALER_REQUEST_TIMEOUT_S)
