import logging
import threading

from flask import Flask, jsonify, render_template, request
from jsonschema import ValidationError, validate

from services import config
from services.errors import ActivityNotFound, SchedulingError, UnknownActivityReference
from services.network import (
    ActivityNetwork,
    build_network,
    entries_from_rows,
    get_activity,
    update_activity,
)
from services.scheduling import analyze as analyze_network
from services.scheduling import solve

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Stored network for the page; replaced wholesale on submit, emptied on reset
PROJECT = {"network": ActivityNetwork(), "issues": []}
_solve_lock = threading.Lock()

ROW_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": ["string", "null"]},
        "eventName": {"type": ["string", "null"]},
        "duration": {"type": ["string", "number", "null"]},
        "length": {"type": ["string", "number", "null"]},
        "precedingEvents": {"type": ["string", "array", "null"]},
        "preceding": {"type": ["string", "array", "null"]},
    },
}

SUBMIT_SCHEMA = {
    "type": "object",
    "properties": {"events": {"type": "array", "items": ROW_SCHEMA}},
    "required": ["events"],
}

NETWORK_SCHEMA = {
    "type": "object",
    "properties": {
        "activities": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "minimum": 1},
                    "name": {"type": "string"},
                    "duration": {"type": ["string", "number"]},
                },
                "required": ["id", "duration"],
            },
        },
        "links": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "from": {"type": "integer", "minimum": 1},
                    "to": {"type": "integer", "minimum": 1},
                },
                "required": ["from", "to"],
            },
        },
    },
    "required": ["activities"],
}

EDIT_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "duration": {"type": ["string", "number"]},
    },
    "additionalProperties": False,
}


def _fail(message, status=400):
    return jsonify({"ok": False, "error": message}), status


def _issue_dict(issue):
    return {
        "type": type(issue).__name__,
        "position": getattr(issue, "position", None),
        "error": str(issue),
    }


def _check_size(rows):
    if len(rows) > config.MAX_ACTIVITIES:
        raise SchedulingError(f"Too many events: {len(rows)} > {config.MAX_ACTIVITIES}.")


def _read_events():
    data = request.get_json(force=True, silent=True) or {}
    validate(instance=data, schema=SUBMIT_SCHEMA)
    rows = data["events"]
    _check_size(rows)
    return build_network(entries_from_rows(rows))


def _stored_payload():
    network = PROJECT["network"]
    return {
        "ok": True,
        "result": analyze_network(network),
        "issues": [_issue_dict(i) for i in PROJECT["issues"]],
    }


@app.get("/")
def home():
    return render_template("index.html")


@app.get("/api/health")
def health():
    return jsonify({"ok": True})


@app.post("/api/analyze")
def analyze():
    try:
        built = _read_events()
        result = analyze_network(built.network)
    except ValidationError as e:
        return _fail(e.message)
    except UnknownActivityReference as e:
        logger.exception("Inconsistent network")
        return _fail(str(e), 422)
    except SchedulingError as e:
        return _fail(str(e))
    return jsonify({"ok": True, "result": result,
                    "issues": [_issue_dict(i) for i in built.issues]})


@app.post("/api/solve")
def solve_records():
    data = request.get_json(force=True, silent=True) or {}
    try:
        validate(instance=data, schema=NETWORK_SCHEMA)
        _check_size(data["activities"])
        result = analyze_network(ActivityNetwork.from_dict(data))
    except ValidationError as e:
        return _fail(e.message)
    except UnknownActivityReference as e:
        logger.exception("Inconsistent network")
        return _fail(str(e), 422)
    except SchedulingError as e:
        return _fail(str(e))
    return jsonify({"ok": True, "result": result})


@app.get("/api/network")
def get_network():
    with _solve_lock:
        return jsonify(_stored_payload())


@app.post("/api/network")
def set_network():
    with _solve_lock:
        try:
            built = _read_events()
            solved = solve(built.network)
        except ValidationError as e:
            return _fail(e.message)
        except SchedulingError as e:
            # previous network stays on display
            return _fail(str(e))

        PROJECT["network"] = solved
        PROJECT["issues"] = built.issues
        logger.info("Stored network with %d events", len(solved))
        return jsonify(_stored_payload())


@app.delete("/api/network")
def reset_network():
    with _solve_lock:
        PROJECT["network"] = ActivityNetwork()
        PROJECT["issues"] = []
    return jsonify({"ok": True})


@app.get("/api/activities/<int:activity_id>")
def get_event(activity_id):
    try:
        activity = get_activity(PROJECT["network"], activity_id)
    except ActivityNotFound as e:
        return _fail(str(e), 404)
    return jsonify({"ok": True, "activity": activity.to_dict()})


@app.patch("/api/activities/<int:activity_id>")
def edit_event(activity_id):
    data = request.get_json(force=True, silent=True) or {}
    with _solve_lock:
        try:
            validate(instance=data, schema=EDIT_SCHEMA)
            network, needs_solve = update_activity(
                PROJECT["network"], activity_id,
                name=data.get("name"), duration=data.get("duration"))
            if needs_solve:
                network = solve(network)
        except ValidationError as e:
            return _fail(e.message)
        except ActivityNotFound as e:
            return _fail(str(e), 404)
        except SchedulingError as e:
            return _fail(str(e))

        PROJECT["network"] = network
        payload = _stored_payload()
        payload["activity"] = get_activity(network, activity_id).to_dict()
        return jsonify(payload)


if __name__ == "__main__":
    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)
