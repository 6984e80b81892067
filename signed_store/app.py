"""
signed_store.app
----------------
HTTP front end. Maps verbs on /{key} to the verification gate and the
content store, and their errors to status codes:

    GET    /{key}  200 body | 404 no such file
    POST   /{key}  204 | 401 unsigned or untrusted body | 500 store failure
    DELETE /{key}  204 | 404 no such file

Store calls block on the filesystem, so they run in the worker thread pool.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional
import time

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from signed_store.constants import SIGNED_MESSAGE_MEDIA_TYPE
from signed_store.errors import ObjectNotFoundError, StorageError, VerificationError
from signed_store.logger import get_logger
from signed_store.reaper import Reaper
from signed_store.storage import ContentStore
from signed_store.verifier import VerificationGate

log = get_logger("signed_store.http")

USAGE = (
    "upload:   $ signed-store sign --key secret.json </path/to/file | curl http://{host}/file-name --data-binary @-\n"
    "download: $ curl http://{host}/file-name\n"
    "delete:   $ curl -XDELETE http://{host}/file-name\n"
)


def create_app(gate: VerificationGate, store: ContentStore, sweep_interval: Optional[float] = None) -> FastAPI:
    """
    Build the service. When `sweep_interval` is given, a Reaper runs for the
    lifetime of the app.
    """
    reaper = Reaper(store, sweep_interval) if sweep_interval else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if reaper is not None:
            reaper.start()
        yield
        if reaper is not None:
            reaper.stop(timeout=5)

    app = FastAPI(title="signed-store", description="Signed object store", lifespan=lifespan)
    app.state.gate = gate
    app.state.store = store
    app.state.reaper = reaper

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        log.info(f"[HTTP] {request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
        return response

    @app.get("/", response_class=PlainTextResponse)
    async def index(request: Request):
        host = request.headers.get("host") or "$YOUR_SERVER_HOST"
        return USAGE.format(host=host)

    @app.get("/{key:path}")
    async def get_file(key: str):
        try:
            handle = await run_in_threadpool(store.open, key)
        except ObjectNotFoundError:
            return PlainTextResponse("no such file\n", status_code=404)
        except StorageError as e:
            log.error(f"failed to read file: {e}")
            return PlainTextResponse("failed to read file\n", status_code=500)

        return StreamingResponse(
            handle.iter_chunks(),
            media_type=SIGNED_MESSAGE_MEDIA_TYPE,
            headers={"Content-Length": str(handle.size)},
        )

    @app.post("/{key:path}")
    async def post_file(key: str, request: Request):
        body = await request.body()
        try:
            signer = gate.verify(body)
        except VerificationError as e:
            log.info(f"[HTTP] rejected upload to {key!r}: {e}")
            return PlainTextResponse("request body must signed by registered key\n", status_code=401)

        try:
            await run_in_threadpool(store.save, key, body)
        except StorageError as e:
            log.error(f"failed to store file: {e}")
            return PlainTextResponse("failed to store file\n", status_code=500)

        log.info(f"[HTTP] stored {key!r} signed by {signer.fingerprint}")
        return Response(status_code=204)

    @app.delete("/{key:path}")
    async def delete_file(key: str):
        try:
            await run_in_threadpool(store.delete, key)
        except ObjectNotFoundError:
            return PlainTextResponse("no such file\n", status_code=404)
        except StorageError as e:
            log.error(f"failed to delete file: {e}")
            return PlainTextResponse("failed to delete file\n", status_code=500)
        return Response(status_code=204)

    return app
