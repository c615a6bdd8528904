"""Request signing for the scaling group API.

Every request carries a ``sign`` header which is the HMAC-SHA256 of a
canonical string built from the request parameters. The canonical string
is the sorted list of ``key=value`` tokens joined with ``&``, where string
values are double quoted, numbers are written the way Go prints a float64
and any other value is written as the compact JSON of Go.

The receiving side checks the signature with the Go implementation, so the
canonical string must be reproduced byte for byte.

When the request is marked as signed (``signedHeader: 1``), all of the
request headers except ``sign`` take part in the signature. Otherwise only
the ``requestTime`` header does.
"""
import hashlib
import hmac
import json
import logging
import math
import numbers
import time
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from requests.structures import CaseInsensitiveDict

logger = logging.getLogger(__name__)

HEADER_ALGORITHM = "algorithm"
HEADER_ALGORITHM_VALUE = "HmacSHA256"
HEADER_ACCESS_KEY = "accessKey"
HEADER_REQUEST_TIME = "requestTime"
HEADER_SIGN = "sign"
HEADER_SIGNED = "signedHeader"
SIGNED_HEADER_VALUE = "1"

# Go writes the shortest float form with an exponent from this decimal
# exponent upwards
_SHORTEST_FLOAT_PRECISION = 6

# Range of the JSON numbers written without an exponent
_JSON_FIXED_MIN = 1e-6
_JSON_FIXED_MAX = 1e21

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class InvalidInputError(ValueError):
    pass


class AuthenticationFailure(RuntimeError):
    pass


def _shortest_digits(value: float):
    # the shortest digits which round trip, as "-", "12345", point position
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digits)
    return ("-" if sign else ""), digits, len(digits) + exponent


def _fixed_form(prefix: str, digits: str, point: int) -> str:
    if point <= 0:
        return "{}0.{}{}".format(prefix, "0" * -point, digits)
    if point >= len(digits):
        return prefix + digits + "0" * (point - len(digits))
    return "{}{}.{}".format(prefix, digits[:point], digits[point:])


def _exponent_form(prefix: str, digits: str, point: int,
                   exponent_digits: int) -> str:
    exponent = point - 1
    mantissa = digits[0]
    if len(digits) > 1:
        mantissa += "." + digits[1:]
    return "{}{}e{}{}".format(
        prefix, mantissa, "-" if exponent < 0 else "+",
        str(abs(exponent)).zfill(exponent_digits))


def _to_float(value) -> float:
    try:
        return float(value)
    except OverflowError:
        raise InvalidInputError(
            "Number {} is out of the float range.".format(value)) from None


def _format_number(value) -> str:
    """Write a number as a float64 printed with the %v verb of Go.

    The receiving side decodes the request parameters from JSON, so every
    number is a float64 there, integers included.
    """
    value = _to_float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    prefix, digits, point = _shortest_digits(value)
    exponent = point - 1
    if exponent < -4 or exponent >= _SHORTEST_FLOAT_PRECISION:
        return _exponent_form(prefix, digits, point, 2)
    return _fixed_form(prefix, digits, point)


def _format_json_number(value) -> str:
    value = _to_float(value)
    if not math.isfinite(value):
        raise ValueError("Unsupported number value: {}".format(value))
    prefix, digits, point = _shortest_digits(value)
    if value != 0 and not (_JSON_FIXED_MIN <= abs(value) < _JSON_FIXED_MAX):
        return _exponent_form(prefix, digits, point, 1)
    return _fixed_form(prefix, digits, point)


def _format_json_string(value: str) -> str:
    text = json.dumps(value, ensure_ascii=False)
    for c, escaped in _JSON_ESCAPES.items():
        text = text.replace(c, escaped)
    return text


def _format_structured(value) -> str:
    """Write a value as the compact JSON with sorted object keys that
    the encoding/json package of Go produces for the decoded value."""
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return _format_json_string(value)
    if isinstance(value, numbers.Real):
        return _format_json_number(value)
    if isinstance(value, Mapping):
        for key in value:
            if not isinstance(key, str):
                raise TypeError(
                    "Keys must be str, not {}.".format(type(key).__name__))
        return "{" + ",".join(
            "{}:{}".format(_format_json_string(key),
                           _format_structured(value[key]))
            for key in sorted(value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(
            _format_structured(item) for item in value) + "]"
    raise TypeError("Object of type {} is not JSON serializable.".format(
        type(value).__name__))


def _format_token(key: str, value: Any) -> str:
    if isinstance(value, str):
        return '{}="{}"'.format(key, value)
    # bool is a number in Python but is signed as structured data
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return "{}={}".format(key, _format_number(value))
    return "{}={}".format(key, _format_structured(value))


def _is_signed(headers: Mapping[str, Any]) -> bool:
    return headers.get(HEADER_SIGNED) == SIGNED_HEADER_VALUE


def _get_sign_params(body: Optional[Mapping[str, Any]],
                     headers: Optional[Mapping[str, Any]],
                     already_signed: Optional[bool] = None) -> Dict[str, Any]:
    params = dict(body) if body else {}
    headers = CaseInsensitiveDict(headers or {})
    if already_signed is None:
        already_signed = _is_signed(headers)

    if already_signed:
        # header names keep the spelling they were set with
        for key, value in headers.items():
            if key.lower() == HEADER_SIGN.lower():
                continue
            params[key] = value
    elif HEADER_REQUEST_TIME in headers:
        params[HEADER_REQUEST_TIME] = headers[HEADER_REQUEST_TIME]
    return params


def build_string_to_sign(body: Optional[Mapping[str, Any]],
                         headers: Optional[Mapping[str, Any]],
                         already_signed: Optional[bool] = None) -> str:
    params = _get_sign_params(body, headers, already_signed)
    return "&".join(
        _format_token(key, params[key]) for key in sorted(params))


def generate_sign(body: Optional[Mapping[str, Any]],
                  secret_key: str,
                  headers: Optional[Mapping[str, Any]],
                  already_signed: Optional[bool] = None) -> str:
    """Compute the request signature.

    Args:
        body: The request parameters. It is not modified.
        secret_key: The shared secret used as the HMAC key.
        headers: The request headers. Header names are matched case
            insensitively.
        already_signed: Whether all the headers take part in the signature.
            Derived from the ``signedHeader`` header if not specified.

    Returns:
        The lowercase hex HMAC-SHA256 of the canonical string.
    """
    if not secret_key:
        raise InvalidInputError(
            "Generate sign parameters error: secret key must not be empty.")
    string_to_sign = build_string_to_sign(body, headers, already_signed)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Parameters to be signed: {}".format(string_to_sign))
    return hmac.new(
        secret_key.encode("utf-8"),
        string_to_sign.encode("utf-8"),
        hashlib.sha256).hexdigest()


def verify_sign(body: Optional[Mapping[str, Any]],
                headers: Optional[Mapping[str, Any]],
                secret_key: str,
                already_signed: Optional[bool] = None) -> bool:
    """Check the ``sign`` header against the signature computed from the
    same request. Never raises: any failure is a verification failure."""
    try:
        sign = CaseInsensitiveDict(headers or {}).get(HEADER_SIGN)
        if not sign:
            logger.debug(
                "Verify sign failed: no sign in the request headers.")
            return False
        expected = generate_sign(body, secret_key, headers, already_signed)
        matched = hmac.compare_digest(
            str(sign).encode("utf-8"), expected.encode("utf-8"))
    except Exception as e:
        logger.debug("Verify sign failed: {}".format(str(e)))
        return False
    if not matched:
        logger.debug("Verify sign failed: signature mismatch.")
    return matched


def check_sign(body: Optional[Mapping[str, Any]],
               headers: Optional[Mapping[str, Any]],
               secret_key: str,
               already_signed: Optional[bool] = None) -> None:
    if not verify_sign(body, headers, secret_key, already_signed):
        raise AuthenticationFailure("Request signature verification failed.")


def get_request_time() -> str:
    return str(time.time_ns() // 1000000)


def make_signed_headers(body: Optional[Mapping[str, Any]],
                        access_key: str,
                        secret_key: str,
                        request_time: Optional[str] = None) -> Dict[str, str]:
    """Make the authentication headers of an outbound request."""
    headers = {
        HEADER_ALGORITHM: HEADER_ALGORITHM_VALUE,
        HEADER_ACCESS_KEY: access_key,
        HEADER_SIGNED: SIGNED_HEADER_VALUE,
        HEADER_REQUEST_TIME: request_time or get_request_time(),
    }
    headers[HEADER_SIGN] = generate_sign(body, secret_key, headers)
    return headers
