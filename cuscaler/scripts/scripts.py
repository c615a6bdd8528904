import json
import logging
import os
import sys

import click
from requests.structures import CaseInsensitiveDict

import cuscaler

from cuscaler.core._private import constants
from cuscaler.core._private import logging_utils
from cuscaler.core._private.signer import HEADER_SIGN, InvalidInputError, \
    make_signed_headers, verify_sign
from cuscaler.providers._private.cucloud.config import load_config
from cuscaler.providers._private.cucloud.node_group_provider import \
    CucloudNodeGroupProvider
from cuscaler.providers._private.cucloud.scaling_manager import \
    CucloudScalingManager
from cuscaler.scripts.utils import NaturalOrderGroup

logger = logging.getLogger(__name__)


def _load_json_option(value, name):
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except ValueError as e:
        raise click.BadParameter(
            "Invalid JSON: {}".format(str(e)), param_hint=name)
    if not isinstance(parsed, dict):
        raise click.BadParameter(
            "A JSON object is expected.", param_hint=name)
    return parsed


def _make_node_group_provider(config_file):
    config = load_config(config_file)
    provider_config = config["provider"]
    # short-lived commands don't need the background refresh
    manager = CucloudScalingManager(provider_config, start_refresh=False)
    return CucloudNodeGroupProvider(
        provider_config, config["node_groups"], manager=manager)


@click.group(cls=NaturalOrderGroup)
@click.option(
    "--logging-level",
    required=False,
    default=constants.LOGGER_LEVEL_INFO,
    type=str,
    help=constants.LOGGER_LEVEL_HELP)
@click.option(
    "--logging-format",
    required=False,
    default=constants.LOGGER_FORMAT,
    type=str,
    help=constants.LOGGER_FORMAT_HELP)
@click.option(
    "--log-file",
    required=False,
    type=str,
    help="Also write the logs to this file, rotated by size.")
@click.version_option(version=cuscaler.__version__)
def cli(logging_level, logging_format, log_file):
    level = logging.getLevelName(logging_level.upper())
    logging_utils.setup_logger(level, logging_format)
    if log_file:
        log_file = os.path.abspath(log_file)
        logging_utils.setup_component_logger(
            logging_level=level,
            logging_format=logging_format,
            log_dir=os.path.dirname(log_file),
            filename=os.path.basename(log_file),
            max_bytes=constants.LOGGING_ROTATE_MAX_BYTES,
            backup_count=constants.LOGGING_ROTATE_BACKUP_COUNT)


@cli.command()
@click.argument("config_file", required=True, type=str)
def groups(config_file):
    """Show the managed node groups."""
    provider = _make_node_group_provider(config_file)
    for group in provider.node_groups():
        click.echo("{}\t{}\tmin={}\tmax={}".format(
            group.node_group_name(), group.group_id,
            group.min_size, group.max_size))


@cli.command(name="find-group")
@click.argument("config_file", required=True, type=str)
@click.argument("instance_id", required=True, type=str)
def find_group(config_file, instance_id):
    """Show the node group which the instance belongs to."""
    provider = _make_node_group_provider(config_file)
    group = provider.node_group_for_node(instance_id, provider_id=instance_id)
    if group is None:
        click.echo("Instance {} belongs to no managed node group.".format(
            instance_id))
        return
    click.echo(group.node_group_name())


@cli.command()
@click.option(
    "--access-key",
    required=True,
    type=str,
    envvar=constants.CUCLOUD_ACCESS_KEY_ENV,
    help="The access key of the API credential.")
@click.option(
    "--secret-key",
    required=True,
    type=str,
    envvar=constants.CUCLOUD_SECRET_KEY_ENV,
    help="The secret key of the API credential.")
@click.option(
    "--body",
    required=False,
    type=str,
    help="The request body in JSON.")
@click.option(
    "--request-time",
    required=False,
    type=str,
    help="The request time in milliseconds. Current time if not specified.")
def sign(access_key, secret_key, body, request_time):
    """Print the signed headers of a request."""
    body = _load_json_option(body, "--body")
    try:
        headers = make_signed_headers(
            body, access_key, secret_key, request_time=request_time)
    except InvalidInputError as e:
        raise click.UsageError(str(e))
    click.echo(json.dumps(headers, indent=2))


@cli.command()
@click.option(
    "--secret-key",
    required=True,
    type=str,
    envvar=constants.CUCLOUD_SECRET_KEY_ENV,
    help="The secret key of the API credential.")
@click.option(
    "--body",
    required=False,
    type=str,
    help="The request body in JSON.")
@click.option(
    "--headers",
    required=True,
    type=str,
    help="The request headers in JSON, including the sign header.")
def verify(secret_key, body, headers):
    """Verify the sign header of a request."""
    body = _load_json_option(body, "--body")
    headers = _load_json_option(headers, "--headers")
    if not verify_sign(body, headers, secret_key):
        click.echo("Verify sign failed: {}".format(
            CaseInsensitiveDict(headers).get(HEADER_SIGN)))
        sys.exit(1)
    click.echo("Verify sign succeeded.")


def main():
    return cli()


if __name__ == "__main__":
    main()
