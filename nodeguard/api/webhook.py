"""
Validating admission webhook server for Node create/delete/update.

Receives AdmissionReview requests from the API server and answers with the decision
engine's verdict. The engine (policy source + audit emitter) is built once per process;
the policy itself is fetched on every non no-op request.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from nodeguard.api.admission import (
    AdmissionDecodeError,
    allowed,
    denied,
    errored,
    parse_review,
    to_decision_request,
)
from nodeguard.audit import KubernetesEventEmitter
from nodeguard.authz.policy import ConfigMapPolicySource, PolicyFetchError
from nodeguard.config import load_webhook_config
from nodeguard.pipeline.decision import DecisionEngine

logger = logging.getLogger(__name__)

VALIDATE_PATH = "/validate-v1-node"

_engine: Optional[DecisionEngine] = None
_engine_lock = threading.Lock()


def build_engine() -> DecisionEngine:
    cfg = load_webhook_config()
    source = ConfigMapPolicySource(
        forbidden_users=cfg.forbidden_users,
        config_map_name=cfg.config_map_name,
        default_namespace=cfg.config_map_namespace,
        timeout_seconds=cfg.policy_fetch_timeout_seconds,
    )
    emitter = KubernetesEventEmitter(namespace=cfg.event_namespace, component=cfg.event_component)
    return DecisionEngine(policy_source=source, emitter=emitter, namespace=cfg.config_map_namespace)


def get_engine() -> DecisionEngine:
    """Return the process-wide engine (thread-safe lazy init)."""
    global _engine
    if _engine is not None:
        return _engine
    with _engine_lock:
        if _engine is None:
            _engine = build_engine()
        return _engine


def set_engine(engine: Optional[DecisionEngine]) -> None:
    """Swap the engine (tests, embedding). `None` rebuilds from config on next use."""
    global _engine
    with _engine_lock:
        _engine = engine


def review_response(payload: Any, engine: DecisionEngine) -> Dict[str, Any]:
    """
    Core handling for one AdmissionReview payload.

    Decode problems become 400 results, policy fetch failures 500 results; neither is
    ever reported as a policy denial.
    """
    uid = ""
    if isinstance(payload, dict) and isinstance(payload.get("request"), dict):
        uid = str(payload["request"].get("uid") or "")

    try:
        review = parse_review(payload)
        req = review.request
        uid = req.uid
        decision_request = to_decision_request(req)
    except AdmissionDecodeError as e:
        logger.warning("Rejecting undecodable admission request uid=%s: %s", uid, str(e))
        return errored(uid, 400, str(e))

    try:
        verdict = engine.evaluate(decision_request, dry_run=req.dry_run)
    except PolicyFetchError as e:
        return errored(uid, 500, f"failed to fetch allowed reasons: {e}")

    if verdict.allowed:
        return allowed(uid, verdict.message)
    return denied(uid, verdict.message)


app = FastAPI(title="Node operation validator webhook")


@app.on_event("startup")
def _startup_log_config() -> None:
    cfg = load_webhook_config()
    logger.info(
        "Webhook config: config_map=%s/%s forbidden_users=%d fetch_timeout=%.1fs event_namespace=%s",
        cfg.config_map_namespace,
        cfg.config_map_name,
        len(cfg.forbidden_users),
        cfg.policy_fetch_timeout_seconds,
        cfg.event_namespace,
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming HTTP requests."""
    start_time = time.time()
    logger.debug("%s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


@app.get("/readyz")
def readyz() -> Dict[str, Any]:
    return {"ok": True}


@app.post(VALIDATE_PATH)
async def validate_node(request: Request) -> JSONResponse:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    # Sync engine call (k8s client is blocking); keep it off the event loop.
    body = await run_in_threadpool(review_response, payload, get_engine())
    return JSONResponse(status_code=200, content=body)


def run(
    host: str = "0.0.0.0",
    port: int = 9443,
    *,
    tls_cert_file: Optional[str] = None,
    tls_key_file: Optional[str] = None,
) -> None:
    import uvicorn

    cfg = load_webhook_config()

    # Configure logging for the application
    log_level = cfg.log_level.upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    cert = tls_cert_file or cfg.tls_cert_file
    key = tls_key_file or cfg.tls_key_file
    ssl_kwargs: Dict[str, Any] = {}
    if cert and key and os.path.exists(cert) and os.path.exists(key):
        ssl_kwargs = {"ssl_certfile": cert, "ssl_keyfile": key}
    else:
        # The API server only calls webhooks over TLS; plain HTTP is for local dev.
        logger.warning("TLS cert/key not found (%s, %s); serving plain HTTP", cert, key)

    logger.info("Starting webhook server on %s:%d (log_level=%s, tls=%s)", host, port, log_level, bool(ssl_kwargs))
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level, **ssl_kwargs)
