import logging

import requests
from requests import Response
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from ..constants import API_PREFIX, CLIENT_TIMEOUT


def do_request(
    server: str,
    url: str,
    method: str = "GET",
    params: dict | None = None,
    headers: dict[str, str] | None = None,
) -> Response | None:
    """
    Send a request to a port lease server.

    Args:
        server: Base URL of the server (e.g., "http://ci-host:8080")
        url: Path below the API prefix (e.g., "/allocations")
        method: HTTP method
        params: Optional JSON body

    Returns:
        The Response, or None if the server could not be reached
    """
    # If no server set, request will fail
    if not server:
        return None

    if not headers:
        headers = {"Content-Type": "application/json"}

    request_args = {
        "url": f"{server.rstrip('/')}{API_PREFIX}{url}",
        "headers": headers,
        "method": method,
        "timeout": CLIENT_TIMEOUT,
    }

    if params:
        request_args["json"] = params

    logging.info(f"Request to port lease server: {request_args['method']} {request_args['url']}")

    try:
        return requests.request(**request_args)
    except RequestsConnectionError:
        logging.error("Failed to establish a new connection. Connection refused.")
    except Timeout:
        logging.error("Request timed out.")
    except RequestException as err:
        logging.error(f"An error occurred while making the request: {err}")

    return None


def _json_data(r: Response | None):
    if r is None or not r.ok:
        if r is not None:
            logging.error(f"Port lease server returned {r.status_code}: {r.text}")
        return None
    return r.json().get("data")


def request_allocation(server: str, size: int) -> int | None:
    """Lease size ports from a remote server. Returns the base port or None on failure."""
    data = _json_data(do_request(server, "/allocations", method="POST", params={"size": size}))
    if not data:
        return None
    return data["base"]


def renew_allocation(server: str, base: int, seconds: int | None = None) -> dict | None:
    params = {"seconds": seconds} if seconds is not None else None
    return _json_data(do_request(server, f"/allocations/{base}", method="PUT", params=params))


def release_allocation(server: str, base: int) -> bool:
    r = do_request(server, f"/allocations/{base}", method="DELETE")
    return r is not None and r.ok


def get_status(server: str) -> dict | None:
    return _json_data(do_request(server, "/status"))
