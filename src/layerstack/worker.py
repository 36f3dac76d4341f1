"""
Background codec worker.

PSD decoding and encoding can take a while on large documents, so they run
on a :py:class:`CodecWorker` thread fed through a queue. Requests and
responses are plain dicts::

    {"type": "parse" | "export" | "getLayerImage", "id": 1, "data": {...}}
    {"id": 1, "success": True, "result": ...}
    {"id": 1, "success": False, "error": "..."}

:py:class:`CodecSession` issues request ids, cancels the request it
supersedes and drops responses that are no longer the latest.

Example::

    session = CodecSession(callback=print)
    with open('input.psd', 'rb') as f:
        session.parse(f.read())
    ...
    session.document
    session.close()
"""

import itertools
import logging
import queue
import threading
from typing import Any, Callable, Optional

from layerstack.api.document import Document
from layerstack.api.layers import RasterLayer
from layerstack.codec import decode, encode
from layerstack.errors import Cancelled, LayerStackError, ModelError
from layerstack.registry import new_registry

logger = logging.getLogger(__name__)

HANDLERS, register = new_registry()


class CancellationToken(object):
    """
    Cooperative cancellation flag shared between a caller and a codec call.

    The decoder and encoder call :py:meth:`check` between layers.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """
        :raise Cancelled: if :py:meth:`cancel` was called.
        """
        if self._event.is_set():
            raise Cancelled("Operation cancelled")


@register("parse")
def _parse(data: dict, cancel_token: CancellationToken) -> Document:
    return decode(
        data["buffer"],
        encoding=data.get("encoding", "macroman"),
        cancel_token=cancel_token,
    )


@register("export")
def _export(data: dict, cancel_token: CancellationToken) -> bytes:
    options = dict(
        (key, data[key])
        for key in ("preview", "compression", "encoding", "include_hidden")
        if key in data
    )
    return encode(data["document"], cancel_token=cancel_token, **options)


@register("getLayerImage")
def _get_layer_image(data: dict, cancel_token: CancellationToken) -> Any:
    layer = data["document"].find_layer(data["layerId"])
    if not isinstance(layer, RasterLayer):
        raise ModelError("Layer %r has no pixels" % layer.layer_id)
    return layer.surface.copy()


def handle(request: dict, cancel_token: Optional[CancellationToken] = None) -> dict:
    """
    Run a single request and build its response.

    Failures, cancellation included, are reported in the response rather
    than raised.
    """
    request_id = request.get("id")
    request_type = request.get("type")
    if cancel_token is None:
        cancel_token = CancellationToken()
    try:
        cancel_token.check()
        handler = HANDLERS.get(request_type)
        if handler is None:
            raise ValueError("Unknown message type: %s" % request_type)
        result = handler(request.get("data") or {}, cancel_token)
    except (LayerStackError, ValueError, KeyError) as e:
        logger.info("Request %r (%s) failed: %s" % (request_id, request_type, e))
        return {"id": request_id, "success": False, "error": str(e)}
    except Exception as e:
        logger.exception("Unexpected failure in request %r" % (request_id,))
        return {"id": request_id, "success": False, "error": str(e)}
    return {"id": request_id, "success": True, "result": result}


class CodecWorker(threading.Thread):
    """
    Thread that runs codec requests one at a time.

    :param callback: called with every response, on the worker thread.
    """

    def __init__(self, callback: Callable[[dict], Any]):
        super(CodecWorker, self).__init__()
        self.queue: queue.Queue = queue.Queue()
        self.daemon = True
        self.callback = callback
        self.name = "CODEC-WORKER"
        self._stopper = threading.Event()

    def put(
        self, request: dict, cancel_token: Optional[CancellationToken] = None
    ) -> CancellationToken:
        """
        Queue a request.

        :return: the :py:class:`CancellationToken` of the request.
        """
        if cancel_token is None:
            cancel_token = CancellationToken()
        self.queue.put((request, cancel_token))
        return cancel_token

    def stopit(self) -> None:
        self._stopper.set()
        self.queue.put(None)

    def run(self) -> None:
        while not self._stopper.is_set():
            try:
                item = self.queue.get(True, 1)
            except queue.Empty:
                continue
            try:
                if item is None:
                    continue
                request, cancel_token = item
                logger.debug("Handling request %r" % request.get("id"))
                response = handle(request, cancel_token)
                try:
                    self.callback(response)
                except Exception:
                    logger.exception("Response callback failed")
            finally:
                self.queue.task_done()

        # exiting thread
        self._stopper.clear()


class CodecSession(object):
    """
    Latest-wins front end of a :py:class:`CodecWorker`.

    Every new request cancels the one before it. Only the response of the
    latest request is accepted, and a successful parse replaces
    :py:attr:`document` in a single assignment.

    :param callback: called with each accepted response.
    :param worker: worker to use, a new one is started on the first request
        when omitted.
    """

    def __init__(
        self,
        callback: Optional[Callable[[dict], Any]] = None,
        worker: Optional[CodecWorker] = None,
    ):
        self.callback = callback
        self.document: Optional[Document] = None
        self._worker = worker
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._latest_id: Optional[int] = None
        self._latest_type: Optional[str] = None
        self._latest_token: Optional[CancellationToken] = None

    @property
    def latest_id(self) -> Optional[int]:
        """Id of the request whose response is still awaited."""
        return self._latest_id

    def request(self, request_type: str, data: dict) -> dict:
        """
        Issue a request, cancelling the pending one.

        :return: the request dict.
        """
        cancel_token = CancellationToken()
        with self._lock:
            if self._latest_token is not None:
                logger.debug("Cancelling superseded request %r" % self._latest_id)
                self._latest_token.cancel()
            request = {"type": request_type, "id": next(self._ids), "data": data}
            self._latest_id = request["id"]
            self._latest_type = request_type
            self._latest_token = cancel_token
        self._get_worker().put(request, cancel_token)
        return request

    def parse(self, buffer: bytes, encoding: str = "macroman") -> dict:
        return self.request("parse", {"buffer": buffer, "encoding": encoding})

    def export(self, document: Optional[Document] = None, **kwargs: Any) -> dict:
        """
        Request the PSD bytes of `document`, the session document by default.

        :param kwargs: see :py:func:`layerstack.codec.encode`.
        """
        data = dict(kwargs)
        data["document"] = document if document is not None else self.document
        return self.request("export", data)

    def get_layer_image(self, layer_id: int) -> dict:
        return self.request(
            "getLayerImage", {"document": self.document, "layerId": layer_id}
        )

    def cancel(self) -> None:
        """Cancel the pending request, its response will be discarded."""
        with self._lock:
            if self._latest_token is not None:
                self._latest_token.cancel()
            self._latest_id = None
            self._latest_type = None
            self._latest_token = None

    def accept(self, response: dict) -> bool:
        """
        Take a response from the worker.

        :return: False when the response is stale and was discarded.
        """
        with self._lock:
            if self._latest_id is None or response.get("id") != self._latest_id:
                logger.debug("Discarding stale response %r" % response.get("id"))
                return False
            request_type = self._latest_type
            self._latest_id = None
            self._latest_type = None
            self._latest_token = None
            if response.get("success") and request_type == "parse":
                self.document = response["result"]
        if self.callback is not None:
            self.callback(response)
        return True

    def close(self, timeout: Optional[float] = 10) -> None:
        """Cancel the pending request, stop the worker and wait for it."""
        self.cancel()
        worker = self._worker
        if worker is None:
            return
        worker.stopit()
        if worker is not threading.current_thread():
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("Codec worker did not stop within %s seconds" % timeout)

    def _get_worker(self) -> CodecWorker:
        with self._lock:
            if self._worker is None:
                self._worker = CodecWorker(self.accept)
                self._worker.start()
            return self._worker
