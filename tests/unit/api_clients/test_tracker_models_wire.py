"""Unit tests for tracker models against the wire format."""

import copy
import json

import pytest

from worktrack.api_clients.request_builder import encode_json_body
from worktrack.api_clients.response_decoder import ResponseDecoder
from worktrack.api_clients.tracker_models import Issue, Queue, Reference, User
from worktrack.api_clients.transport import RawResponse

ISSUE_PAYLOAD = {
    "self": "https://tracker.example.com/v3/issues/TREK-9844",
    "id": "593cd211ef7e8a332414f2a7",
    "key": "TREK-9844",
    "version": 7,
    "summary": "subtask",
    "aliases": ["JUNE-2"],
    "description": "<p>Some description</p>",
    "sprint": [{"id": 4, "display": "Sprint 4"}],
    "type": {"id": "2", "key": "task", "display": "Task"},
    "priority": {"id": "2", "key": "normal", "display": "Normal"},
    "createdAt": "2017-06-11T05:16:01.339+0000",
    "followers": [
        {"id": "1120000000016876", "display": "Ann", "passportUid": 1120000000016876}
    ],
    "votes": 0,
    "assignee": {"id": 1120000000049224, "display": "Bob"},
    "queue": {"id": 111, "key": "TREK", "display": "Trek"},
    "status": {"id": "1", "key": "open", "display": "Open"},
    "favorite": False,
    "tags": ["backend"],
}

QUEUE_PAYLOAD = {
    "self": "https://tracker.example.com/v3/queues/TEST",
    "id": 3,
    "key": "TEST",
    "version": 5,
    "name": "Test",
    "description": "Queue created for testing",
    "lead": {"id": "1120000000016876", "display": "Ann"},
    "assignAuto": False,
    "defaultType": {"id": "1", "key": "bug", "display": "Bug"},
    "defaultPriority": {"id": "3", "key": "normal", "display": "Normal"},
}


def with_unknown_fields(payload):
    noisy = copy.deepcopy(payload)
    noisy["unknownTopLevel"] = {"nested": True}
    for value in noisy.values():
        if isinstance(value, dict):
            value["unknownNested"] = 1
    return noisy


def reencode(model):
    dumped = model.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.loads(encode_json_body(dumped))


def decode(payload, model_type):
    raw = RawResponse(
        status_code=200,
        headers={"content-type": "application/json"},
        body=json.dumps(payload).encode("utf-8"),
    )
    return ResponseDecoder().decode(raw, model_type).data


class TestWireRoundTrip:
    """Decoded responses dump back to the payload minus unknown fields."""

    @pytest.mark.parametrize(
        "model_type,payload",
        [(Issue, ISSUE_PAYLOAD), (Queue, QUEUE_PAYLOAD)],
        ids=["issue", "queue"],
    )
    def test_decode_dump_encode_preserves_payload(self, model_type, payload):
        model = decode(with_unknown_fields(payload), model_type)

        assert reencode(model) == payload

    def test_numeric_ids_keep_their_type(self):
        queue = decode(QUEUE_PAYLOAD, Queue)
        issue = decode(ISSUE_PAYLOAD, Issue)

        assert queue.id == 3
        assert issue.queue.id == 111
        assert issue.assignee.id == 1120000000049224
        assert issue.followers[0].id == "1120000000016876"

    @pytest.mark.parametrize("model_type", [Reference, User])
    def test_string_ids_stay_strings(self, model_type):
        assert model_type.model_validate({"id": "42"}).id == "42"
