import logging
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urljoin, urlsplit

import requests

from cuscaler.core._private.constants import CUSCALER_REQUEST_TIMEOUT_S
from cuscaler.core._private.signer import make_signed_headers

logger = logging.getLogger(__name__)

LIST_SCALING_GROUPS_URI = \
    "/csk-open/api/csk/{region_id}/clusters/{cluster_id}/scalingGroups"
DESCRIBE_SCALING_GROUP_URI = \
    "/csk-open/api/csk/{region_id}/clusters/{cluster_id}/scalingGroups/{group_id}"
SCALING_GROUP_INSTANCES_URI = \
    "/csk-open/api/csk/{region_id}/clusters/{cluster_id}/scalingGroups/{group_id}/instances"

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_JSON_CONTENT_TYPE_VALUE = "application/json"
HEADER_GATEWAY_ROUTE = "X-Gateway-Route-No"

RESPONSE_CODE_SUCCESS = "200"

SCALE_TYPE_AUTO = "auto"
SCALE_TYPE_HAND = "hand"
SCALE_TYPE_CRON = "cron"
SCALE_TYPE_TARGET = "target"
SCALE_TYPE_ONCE = "once"


class CucloudApiError(RuntimeError):
    def __init__(self, url, status_code, code=None, message=None,
                 request_id=None, body=None, route=None):
        self.url = url
        self.status_code = status_code
        self.code = code
        self.message = message
        self.request_id = request_id
        self.body = body
        self.route = route
        super().__init__(str(self))

    def __str__(self):
        return ("API call to [{}], requestId [{}], api router [{}], got HTTP "
                "response status code {} error code \"{}\": {}").format(
            self.url, self.request_id, self.route, self.status_code,
            self.code or "", self.message or self.body)


def _get_code_str(code) -> str:
    if isinstance(code, float) and code.is_integer():
        code = int(code)
    return "{}".format(code)


def check_response(response: requests.Response) -> Any:
    """Return the result of a successful call or raise CucloudApiError."""
    route = response.headers.get(HEADER_GATEWAY_ROUTE)
    if not 200 <= response.status_code <= 299:
        raise CucloudApiError(
            response.url, response.status_code,
            body=response.text, route=route)
    try:
        envelope = response.json()
    except ValueError:
        raise CucloudApiError(
            response.url, response.status_code,
            message="Invalid response body", body=response.text,
            route=route) from None
    code = _get_code_str(envelope.get("code"))
    if code != RESPONSE_CODE_SUCCESS:
        raise CucloudApiError(
            response.url, response.status_code, code=code,
            message=envelope.get("message"),
            request_id=envelope.get("requestId"),
            body=response.text, route=route)
    return envelope.get("result")


class CucloudApiClient:
    """Client of the scaling group API of the managed Kubernetes service.

    Each request is signed with the secret key of the credential. The
    client has no retry policy, a failed call raises to the caller.
    """

    def __init__(self,
                 endpoint: str,
                 access_key: str,
                 secret_key: str,
                 region_id: str,
                 cluster_id: str,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        if not access_key or not secret_key:
            raise ValueError(
                "Authentication is not supplied for the client.")
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.region_id = region_id
        self.cluster_id = cluster_id
        self.timeout = timeout if timeout is not None \
            else CUSCALER_REQUEST_TIMEOUT_S
        self.session = session or requests.Session()

    def render_uri(self, uri: str,
                   path_params: Optional[Dict[str, Any]] = None) -> str:
        uri = uri.replace("{region_id}", self.region_id)
        uri = uri.replace("{cluster_id}", self.cluster_id)
        for k, v in (path_params or {}).items():
            uri = uri.replace("{" + k + "}", "{}".format(v))
        return uri

    def _request(self, method: str, uri: str,
                 body: Optional[Dict[str, Any]] = None) -> Any:
        url = urljoin(self.endpoint, uri)
        sign_body = dict(body) if body else {}
        if method == "GET":
            # query parameters of a GET request are signed as the body
            sign_body.update(parse_qsl(urlsplit(url).query))
        headers = make_signed_headers(
            sign_body, self.access_key, self.secret_key)
        if method in ("POST", "DELETE"):
            headers[HEADER_CONTENT_TYPE] = HEADER_JSON_CONTENT_TYPE_VALUE

        logger.debug("Calling {} {}".format(method, url))
        response = self.session.request(
            method, url, json=body if method != "GET" else None,
            headers=headers, timeout=self.timeout)
        return check_response(response)

    def list_scaling_groups(self) -> List[Dict[str, Any]]:
        uri = self.render_uri(LIST_SCALING_GROUPS_URI)
        result = self._request("GET", uri)
        if not result:
            return []
        return result.get("items") or []

    def describe_scaling_group(self, group_id: str) -> Dict[str, Any]:
        uri = self.render_uri(
            DESCRIBE_SCALING_GROUP_URI, path_params={"group_id": group_id})
        result = self._request("GET", uri)
        if result is None:
            raise CucloudApiError(
                urljoin(self.endpoint, uri), 200,
                message="Empty result of scaling group {}".format(group_id))
        return result.get("scalingGroup", result)

    def create_scaling_group_instances(
            self, group_id: str, delta: int,
            scale_type: str = SCALE_TYPE_AUTO, rule_name: str = ""):
        uri = self.render_uri(
            SCALING_GROUP_INSTANCES_URI, path_params={"group_id": group_id})
        body = {
            "delta": delta,
            "scale_type": scale_type,
            "rule_name": rule_name,
        }
        return self._request("POST", uri, body)

    def delete_scaling_group_instances(
            self, group_id: str, instance_ids: List[str],
            rule_name: str = "", scale_type: str = SCALE_TYPE_AUTO):
        uri = self.render_uri(
            SCALING_GROUP_INSTANCES_URI, path_params={"group_id": group_id})
        body = {
            "instanceIds": list(instance_ids),
            "rule_name": rule_name,
            "scale_type": scale_type,
        }
        return self._request("DELETE", uri, body)
