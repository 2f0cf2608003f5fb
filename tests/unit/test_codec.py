"""
Unit tests for the JSON payload codec.
"""

import json

import pytest

from conftest import FailingJob
from jobqueue.worker.codec import DeserializationError, JsonPayloadCodec
from jobqueue.worker.items import EchoJob, WorkItem


class Unregistered(WorkItem):
    async def perform(self) -> None:
        return None


class TestJsonPayloadCodec:
    """Tests for JsonPayloadCodec."""

    @pytest.fixture
    def codec(self) -> JsonPayloadCodec:
        return JsonPayloadCodec()

    def test_encode_envelope(self, codec: JsonPayloadCodec):
        payload = codec.encode(EchoJob(message="hi"))

        assert json.loads(payload) == {"job_type": "echo", "data": {"message": "hi"}}

    def test_decode_restores_item(self, codec: JsonPayloadCodec):
        item = codec.decode(codec.encode(FailingJob(reason="boom")))

        assert isinstance(item, FailingJob)
        assert item.reason == "boom"

    def test_encode_unregistered_raises(self, codec: JsonPayloadCodec):
        with pytest.raises(TypeError):
            codec.encode(Unregistered())

    def test_decode_invalid_json(self, codec: JsonPayloadCodec):
        with pytest.raises(DeserializationError, match="Job failed to load"):
            codec.decode(b"not json")

    def test_decode_unknown_type(self, codec: JsonPayloadCodec):
        payload = json.dumps({"job_type": "no_such_job", "data": {}}).encode()

        with pytest.raises(DeserializationError, match="no_such_job"):
            codec.decode(payload)

    def test_decode_invalid_data(self, codec: JsonPayloadCodec):
        payload = json.dumps({"job_type": "echo", "data": {"unexpected": 1}}).encode()

        with pytest.raises(DeserializationError):
            codec.decode(payload)
