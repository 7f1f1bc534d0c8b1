import logging
import time

from flask import current_app, request
from flask_restx import Namespace, Resource

from ..errors import ExhaustedError, InvalidArgument, PortLeaseError
from ..functions.allocator import PortAllocator

allocation_namespace = Namespace("allocations", description="Endpoint to lease port ranges")
health_namespace = Namespace("health", description="Endpoint for liveness checks")
status_namespace = Namespace("status", description="Endpoint to retrieve allocator status")

ALLOCATOR_KEY = "PORT_LEASES_ALLOCATOR"
STARTED_AT_KEY = "PORT_LEASES_STARTED_AT"


def _get_allocator() -> PortAllocator:
    return current_app.config[ALLOCATOR_KEY]


def _get_request_value(name: str):
    """Read a parameter from the JSON body, falling back to the query string."""
    body = request.get_json(silent=True)
    if isinstance(body, dict) and name in body:
        return body[name]
    return request.args.get(name)


def _parse_int_param(name: str, value, required: bool = True):
    """
    Parse an integer request parameter.

    Returns:
        Tuple of (value, error) where error is a response tuple or None
    """
    if value is None or value == "":
        if required:
            return None, ({"success": False, "error": f"'{name}' parameter required"}, 400)
        return None, None

    invalid = ({"success": False, "error": f"'{name}' must be an integer"}, 400)
    if isinstance(value, bool):
        return None, invalid
    # JSON numbers like 3.0 are accepted, 3.7 is not truncated
    if isinstance(value, float) and not value.is_integer():
        return None, invalid

    try:
        return int(value), None
    except (TypeError, ValueError, OverflowError):
        return None, invalid


def _error_response(err: PortLeaseError):
    """Map allocator errors onto HTTP status codes."""
    if isinstance(err, InvalidArgument):
        status = 400
    elif isinstance(err, ExhaustedError):
        status = 409
    else:
        logging.error(f"Allocator failure: {type(err).__name__}: {err}")
        status = 500
    return {"success": False, "error": str(err), "type": type(err).__name__}, status


@allocation_namespace.route("", methods=["POST", "GET"])
class AllocationListAPI(Resource):
    def get(self):
        try:
            leases = _get_allocator().leases()
        except PortLeaseError as err:
            return _error_response(err)
        return {"success": True, "data": [lease.to_dict() for lease in leases]}

    def post(self):
        size, error = _parse_int_param("size", _get_request_value("size"))
        if error:
            return error

        try:
            record = _get_allocator().allocate_lease(size)
        except PortLeaseError as err:
            return _error_response(err)
        return {"success": True, "data": record.to_dict()}, 201


@allocation_namespace.route("/<int:base>", methods=["PUT", "DELETE"])
class AllocationAPI(Resource):
    def put(self, base):
        seconds, error = _parse_int_param("seconds", _get_request_value("seconds"), required=False)
        if error:
            return error

        try:
            record = _get_allocator().renew(base, lease_seconds=seconds)
        except PortLeaseError as err:
            return _error_response(err)

        if record is None:
            return {"success": False, "error": f"No lease at port {base}"}, 404
        return {"success": True, "data": record.to_dict()}

    def delete(self, base):
        try:
            released = _get_allocator().release(base)
        except PortLeaseError as err:
            return _error_response(err)

        if not released:
            return {"success": False, "error": f"No lease at port {base}"}, 404
        return {"success": True}


@health_namespace.route("", methods=["GET"])
class HealthAPI(Resource):
    def get(self):
        return {"success": True}


@status_namespace.route("", methods=["GET"])
class StatusAPI(Resource):
    """
    Retrieve the live leases together with the allocator window and lease
    settings, plus how long this server has been running.
    """

    def get(self):
        allocator = _get_allocator()
        try:
            leases = allocator.leases()
        except PortLeaseError as err:
            return _error_response(err)

        config = allocator.config
        started_at = current_app.config.get(STARTED_AT_KEY, time.time())
        return {
            "success": True,
            "data": {
                "active_leases": [lease.to_dict() for lease in leases],
                "low": config.low,
                "high": config.high,
                "lease_seconds": config.lease_seconds,
                "state_dir": str(config.state_dir),
                "uptime_seconds": int(time.time() - started_at),
            },
        }
