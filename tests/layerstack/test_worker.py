import logging
import queue
from typing import Optional

import pytest

from layerstack import Document
from layerstack.api.surface import RasterSurface
from layerstack.codec import encode
from layerstack.errors import Cancelled
from layerstack.worker import CancellationToken, CodecSession, CodecWorker, handle

logger = logging.getLogger(__name__)


class RecordingWorker(object):
    """Collects requests instead of running them."""

    def __init__(self) -> None:
        self.requests: list = []
        self.stopped = False
        self.joined = False

    def put(self, request: dict, cancel_token: CancellationToken) -> None:
        self.requests.append((request, cancel_token))

    def stopit(self) -> None:
        self.stopped = True

    def join(self, timeout: Optional[float] = None) -> None:
        self.joined = True

    def is_alive(self) -> bool:
        return not self.joined


def test_cancellation_token() -> None:
    token = CancellationToken()
    assert not token.cancelled
    token.check()
    token.cancel()
    assert token.cancelled
    with pytest.raises(Cancelled):
        token.check()


def test_handle_parse(document: Document) -> None:
    request = {"type": "parse", "id": 3, "data": {"buffer": encode(document)}}
    response = handle(request)
    assert response["id"] == 3
    assert response["success"]
    assert isinstance(response["result"], Document)
    assert response["result"].find("Blue") is not None


def test_handle_export(document: Document) -> None:
    request = {
        "type": "export",
        "id": 4,
        "data": {"document": document, "compression": 0, "include_hidden": False},
    }
    response = handle(request)
    assert response["success"]
    assert response["result"].startswith(b"8BPS")


def test_handle_get_layer_image(document: Document) -> None:
    red = document[1]
    request = {
        "type": "getLayerImage",
        "id": 5,
        "data": {"document": document, "layerId": red.layer_id},
    }
    response = handle(request)
    assert response["success"]
    assert isinstance(response["result"], RasterSurface)
    assert response["result"] == red.surface
    assert response["result"] is not red.surface


@pytest.mark.parametrize(
    "request_, message",
    [
        ({"type": "render", "id": 1}, "Unknown message type: render"),
        ({"type": "parse", "id": 1, "data": {"buffer": b"nope"}}, ""),
        ({"type": "parse", "id": 1, "data": {}}, "buffer"),
    ],
)
def test_handle_failure(request_: dict, message: str) -> None:
    response = handle(request_)
    assert response["id"] == 1
    assert not response["success"]
    assert "result" not in response
    assert message in response["error"]


def test_handle_get_layer_image_errors(document: Document) -> None:
    data = {"document": document, "layerId": document[2].layer_id}
    response = handle({"type": "getLayerImage", "id": 2, "data": data})
    assert not response["success"]

    data = {"document": document, "layerId": -1}
    response = handle({"type": "getLayerImage", "id": 2, "data": data})
    assert not response["success"]


def test_handle_cancelled(document: Document) -> None:
    token = CancellationToken()
    token.cancel()
    request = {"type": "export", "id": 6, "data": {"document": document}}
    response = handle(request, token)
    assert not response["success"]
    assert response["error"] == "Operation cancelled"


def test_session_latest_wins(document: Document) -> None:
    accepted: list = []
    worker = RecordingWorker()
    session = CodecSession(accepted.append, worker=worker)  # type: ignore[arg-type]
    data = encode(document)

    first = session.parse(data)
    second = session.parse(data)
    assert second["id"] == first["id"] + 1
    assert session.latest_id == second["id"]
    (_, first_token), (_, second_token) = worker.requests
    assert first_token.cancelled
    assert not second_token.cancelled

    for request, token in worker.requests:
        session.accept(handle(request, token))
    assert len(accepted) == 1
    assert accepted[0]["id"] == second["id"]
    assert session.latest_id is None
    assert session.document is accepted[0]["result"]


def test_session_stale_response() -> None:
    session = CodecSession(worker=RecordingWorker())  # type: ignore[arg-type]
    assert not session.accept({"id": 1, "success": True, "result": None})
    request = session.request("getLayerImage", {})
    assert not session.accept({"id": request["id"] + 1, "success": True})
    assert session.accept({"id": request["id"], "success": False, "error": "x"})
    assert session.document is None


def test_session_cancel_and_close(document: Document) -> None:
    worker = RecordingWorker()
    session = CodecSession(worker=worker)  # type: ignore[arg-type]
    session.document = document
    request = session.export(compression=1)
    assert worker.requests[0][0]["data"]["document"] is document
    assert worker.requests[0][0]["data"]["compression"] == 1

    session.cancel()
    assert worker.requests[0][1].cancelled
    assert session.latest_id is None
    assert not session.accept(handle(*worker.requests[0]))
    assert request["type"] == "export"

    session.get_layer_image(document[0].layer_id)
    session.close()
    assert worker.stopped
    assert worker.joined
    assert worker.requests[1][1].cancelled


def test_codec_worker(document: Document) -> None:
    responses: queue.Queue = queue.Queue()
    worker = CodecWorker(responses.put)
    worker.start()
    try:
        worker.put({"type": "parse", "id": 1, "data": {"buffer": encode(document)}})
        worker.put({"type": "bogus", "id": 2})
        first = responses.get(timeout=30)
        second = responses.get(timeout=30)
    finally:
        worker.stopit()
        worker.join(timeout=5)
    assert first["id"] == 1 and first["success"]
    assert second["id"] == 2 and not second["success"]
    assert not worker.is_alive()


def test_session_with_worker_thread(document: Document) -> None:
    responses: queue.Queue = queue.Queue()
    session = CodecSession(responses.put)
    try:
        session.parse(encode(document))
        response = responses.get(timeout=30)
    finally:
        session.close()
    assert not session._worker.is_alive()
    assert response["success"]
    assert session.document is response["result"]
    assert [layer.name for layer in session.document] == [
        "Background",
        "Red",
        "Group",
    ]
