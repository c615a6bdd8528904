import json
from unittest import mock

import pytest
import requests

from cuscaler.core._private.signer import verify_sign
from cuscaler.providers._private.cucloud.api_client import CucloudApiClient, \
    CucloudApiError, check_response

TEST_ENDPOINT = "https://gateway.example.com/base/"
TEST_ACCESS_KEY = "test-access-key"
TEST_SECRET_KEY = "test-secret-key"

GROUPS_URL = ("https://gateway.example.com/csk-open/api/csk/region-1/"
              "clusters/cluster-1/scalingGroups")


def _make_response(status_code=200, payload=None, url=GROUPS_URL, text=None):
    response = requests.Response()
    response.status_code = status_code
    if text is None:
        text = json.dumps(payload)
    response._content = text.encode("utf-8")
    response.url = url
    response.headers["X-Gateway-Route-No"] = "route-1"
    return response


def _success(result):
    return _make_response(payload={
        "code": 200, "result": result, "message": "ok", "requestId": "req-1"})


@pytest.fixture
def session():
    return mock.MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return CucloudApiClient(
        endpoint=TEST_ENDPOINT,
        access_key=TEST_ACCESS_KEY,
        secret_key=TEST_SECRET_KEY,
        region_id="region-1",
        cluster_id="cluster-1",
        timeout=3,
        session=session)


class TestCucloudApiClient:
    def test_missing_credential(self, session):
        with pytest.raises(ValueError):
            CucloudApiClient(TEST_ENDPOINT, "", TEST_SECRET_KEY,
                             "region-1", "cluster-1", session=session)

    def test_render_uri(self, client):
        uri = client.render_uri(
            "/api/{region_id}/clusters/{cluster_id}/groups/{group_id}",
            path_params={"group_id": 7})
        assert uri == "/api/region-1/clusters/cluster-1/groups/7"

    def test_list_scaling_groups(self, client, session):
        session.request.return_value = _success(
            {"total": 1, "items": [{"id": 1, "name": "group-1"}]})
        groups = client.list_scaling_groups()
        assert groups == [{"id": 1, "name": "group-1"}]

        args, kwargs = session.request.call_args
        assert args == ("GET", GROUPS_URL)
        assert kwargs["json"] is None
        assert kwargs["timeout"] == 3
        headers = kwargs["headers"]
        assert headers["accessKey"] == TEST_ACCESS_KEY
        assert headers["signedHeader"] == "1"
        assert "Content-Type" not in headers
        assert verify_sign({}, headers, TEST_SECRET_KEY)

    def test_list_scaling_groups_empty(self, client, session):
        session.request.return_value = _success(None)
        assert client.list_scaling_groups() == []

    def test_get_signs_query_parameters(self, client, session):
        session.request.return_value = _success({})
        client._request("GET", "/path?page=1&name=abc")
        args, kwargs = session.request.call_args
        assert args[1] == "https://gateway.example.com/path?page=1&name=abc"
        assert verify_sign({"page": "1", "name": "abc"}, kwargs["headers"],
                           TEST_SECRET_KEY)
        assert not verify_sign({}, kwargs["headers"], TEST_SECRET_KEY)

    def test_describe_scaling_group(self, client, session):
        scaling_group = {"id": 7, "name": "group-7", "scale_node": []}
        session.request.return_value = _success(
            {"scalingGroup": scaling_group})
        assert client.describe_scaling_group("7") == scaling_group
        args, _ = session.request.call_args
        assert args == ("GET", GROUPS_URL + "/7")

    def test_create_scaling_group_instances(self, client, session):
        session.request.return_value = _success(None)
        client.create_scaling_group_instances("7", 2, rule_name="rule-1")

        args, kwargs = session.request.call_args
        assert args == ("POST", GROUPS_URL + "/7/instances")
        body = {"delta": 2, "scale_type": "auto", "rule_name": "rule-1"}
        assert kwargs["json"] == body
        headers = kwargs["headers"]
        assert headers["Content-Type"] == "application/json"
        # the content type is added after signing
        signed_headers = dict(headers)
        del signed_headers["Content-Type"]
        assert verify_sign(body, signed_headers, TEST_SECRET_KEY)

    def test_delete_scaling_group_instances(self, client, session):
        session.request.return_value = _success(None)
        client.delete_scaling_group_instances("7", ["i-1", "i-2"], "rule-1")

        args, kwargs = session.request.call_args
        assert args == ("DELETE", GROUPS_URL + "/7/instances")
        body = {"instanceIds": ["i-1", "i-2"], "rule_name": "rule-1",
                "scale_type": "auto"}
        assert kwargs["json"] == body
        signed_headers = dict(kwargs["headers"])
        del signed_headers["Content-Type"]
        assert verify_sign(body, signed_headers, TEST_SECRET_KEY)

    def test_transport_error_is_raised(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(requests.ConnectionError):
            client.list_scaling_groups()


class TestCheckResponse:
    def test_success(self):
        assert check_response(_success({"a": 1})) == {"a": 1}
        response = _make_response(payload={"code": "200", "result": [1]})
        assert check_response(response) == [1]

    def test_http_error(self):
        response = _make_response(status_code=503, text="unavailable")
        with pytest.raises(CucloudApiError) as e:
            check_response(response)
        assert e.value.status_code == 503
        assert "unavailable" in str(e.value)
        assert "route-1" in str(e.value)

    def test_error_code(self):
        response = _make_response(payload={
            "code": 400, "message": "bad group", "requestId": "req-2"})
        with pytest.raises(CucloudApiError) as e:
            check_response(response)
        assert e.value.code == "400"
        assert e.value.request_id == "req-2"
        assert "bad group" in str(e.value)

    def test_invalid_body(self):
        response = _make_response(text="not json")
        with pytest.raises(CucloudApiError):
            check_response(response)


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(["-v", __file__]))
