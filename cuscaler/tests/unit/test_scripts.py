import json
import logging
from logging.handlers import RotatingFileHandler
from unittest import mock

import pytest
import yaml
from click.testing import CliRunner

from cuscaler.core._private.signer import verify_sign
from cuscaler.scripts.scripts import cli

TEST_SECRET_KEY = "test-secret-key"

TEST_CONFIG = {
    "provider": {
        "type": "cucloud",
        "endpoint": "https://gateway.example.com",
        "access_key": "test-access-key",
        "secret_key": TEST_SECRET_KEY,
        "region_id": "region-1",
        "cluster_id": "cluster-1",
    },
    "node_groups": [
        "1:5:rule-1---group-1",
    ],
}

SCALING_GROUP = {
    "id": 1,
    "name": "group-1",
    "auto_scale": {"node_min": 1, "node_max": 5},
    "node_config": {},
    "disk": {},
    "scale_node": [{"providerID": "i-1", "status": "running"}],
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "cuscaler.yaml"
    path.write_text(yaml.safe_dump(TEST_CONFIG))
    return str(path)


@pytest.fixture
def api_client():
    with mock.patch("cuscaler.providers._private.cucloud.scaling_manager."
                    "CucloudApiClient") as client_class:
        client = client_class.return_value
        client.list_scaling_groups.return_value = [SCALING_GROUP]
        client.describe_scaling_group.return_value = SCALING_GROUP
        yield client


class TestScripts:
    def test_sign_and_verify(self):
        runner = CliRunner()
        body = json.dumps({"delta": 1, "rule_name": "rule-1"})
        result = runner.invoke(cli, [
            "sign", "--access-key", "ak", "--secret-key", TEST_SECRET_KEY,
            "--body", body, "--request-time", "1690000000000"])
        assert result.exit_code == 0, result.output
        headers = json.loads(result.output)
        assert headers["requestTime"] == "1690000000000"
        assert verify_sign(json.loads(body), headers, TEST_SECRET_KEY)

        result = runner.invoke(cli, [
            "verify", "--secret-key", TEST_SECRET_KEY,
            "--body", body, "--headers", json.dumps(headers)])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, [
            "verify", "--secret-key", "other-secret",
            "--body", body, "--headers", json.dumps(headers)])
        assert result.exit_code == 1

    def test_verify_failure_shows_sign_of_any_case(self):
        runner = CliRunner()
        body = json.dumps({"delta": 1})
        result = runner.invoke(cli, [
            "sign", "--access-key", "ak", "--secret-key", TEST_SECRET_KEY,
            "--body", body, "--request-time", "1690000000000"])
        assert result.exit_code == 0, result.output
        headers = json.loads(result.output)
        sign = headers.pop("sign")
        headers["SIGN"] = sign

        result = runner.invoke(cli, [
            "verify", "--secret-key", "other-secret",
            "--body", body, "--headers", json.dumps(headers)])
        assert result.exit_code == 1
        assert "Verify sign failed: {}".format(sign) in result.output

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "cuscaler.log"
        runner = CliRunner()
        logger = logging.getLogger("cuscaler")
        try:
            result = runner.invoke(cli, [
                "--log-file", str(log_file), "sign", "--access-key", "ak",
                "--secret-key", TEST_SECRET_KEY])
            assert result.exit_code == 0, result.output
            assert log_file.exists()
            assert any(isinstance(handler, RotatingFileHandler)
                       for handler in logger.handlers)
        finally:
            for handler in list(logger.handlers):
                if isinstance(handler, RotatingFileHandler):
                    logger.removeHandler(handler)
                    handler.close()

    def test_sign_with_invalid_body(self):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "sign", "--access-key", "ak", "--secret-key", TEST_SECRET_KEY,
            "--body", "[1, 2]"])
        assert result.exit_code != 0

    def test_groups(self, config_file, api_client):
        runner = CliRunner()
        result = runner.invoke(cli, ["groups", config_file])
        assert result.exit_code == 0, result.output
        assert "rule-1---group-1\t1\tmin=1\tmax=5" in result.output

    def test_find_group(self, config_file, api_client):
        runner = CliRunner()
        result = runner.invoke(cli, ["find-group", config_file, "i-1"])
        assert result.exit_code == 0, result.output
        assert "rule-1---group-1" in result.output

        result = runner.invoke(cli, ["find-group", config_file, "i-9"])
        assert result.exit_code == 0, result.output
        assert "belongs to no managed node group" in result.output


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(["-v", __file__]))
