from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from runtime.context import ScanSession
from scanner.errors import CapabilityUnsupported, NoCameraFound, PermissionDenied, ScanError
from ..api_models import (
    ClearResponse,
    DecodeRequest,
    DecodeResponse,
    HistoryResponse,
    RecordsResponse,
    ScanControlResponse,
    StatusResponse,
    TorchRequest,
    TorchResponse,
    VisibilityRequest,
)

router = APIRouter()

# Acquisition errors surface with a stable status code; anything else is a 500
ERROR_STATUS = {
    PermissionDenied: 403,
    CapabilityUnsupported: 403,
    NoCameraFound: 404,
}


def _session(request: Request) -> ScanSession:
    return request.app.state.session


def _raise_for(error: ScanError) -> None:
    status_code = 500
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break
    raise HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )


def _control_response(session: ScanSession) -> dict:
    scanner = session.scanner
    return {"state": scanner.state.value, "active": scanner.is_active}


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    """
    Session status for clients polling the scanner.

    - state: idle|acquiring|active|stopped
    - capabilities: probe result (backend, secure context, inflate support)
    - torch_supported / torch_enabled
    - retry_armed: a user interaction will retry a denied camera request
    - last_error: error code of the most recent failed start
    - record_count, last_outcome
    """
    return _session(request).status()


@router.post("/scan/start", response_model=ScanControlResponse)
def scan_start(request: Request):
    session = _session(request)
    try:
        session.scanner.start()
    except ScanError as e:
        _raise_for(e)
    return _control_response(session)


@router.post("/scan/stop", response_model=ScanControlResponse)
def scan_stop(request: Request):
    session = _session(request)
    session.scanner.stop()
    return _control_response(session)


@router.post("/interaction", response_model=ScanControlResponse)
def interaction(request: Request):
    """Report a user gesture; consumes an armed permission retry."""
    session = _session(request)
    if session.scanner.notify_user_interaction():
        logging.info("Camera permission retry succeeded")
    return _control_response(session)


@router.post("/visibility", response_model=ScanControlResponse)
def visibility(body: VisibilityRequest, request: Request):
    session = _session(request)
    session.scanner.handle_visibility_change(body.hidden)
    return _control_response(session)


@router.post("/torch", response_model=TorchResponse)
def torch(body: TorchRequest, request: Request):
    scanner = _session(request).scanner
    applied = scanner.set_torch(body.enabled)
    return {"applied": applied, "enabled": scanner.torch_enabled}


@router.get("/records", response_model=RecordsResponse)
def list_records(request: Request):
    """Records ordered most recently seen first."""
    store = _session(request).store
    records = store.to_snapshot_payload()
    return {"count": len(records), "records": records}


@router.delete("/records", response_model=ClearResponse)
def clear_records(request: Request):
    session = _session(request)
    cleared = len(session.store)
    session.processor.clear()
    logging.info(f"Cleared {cleared} records")
    return {"cleared": cleared}


@router.get("/history", response_model=HistoryResponse)
def history(request: Request):
    entries = [entry.to_dict() for entry in _session(request).processor.history.entries()]
    return {"count": len(entries), "entries": entries}


@router.post("/decode", response_model=DecodeResponse)
def decode(body: DecodeRequest, request: Request):
    """Run a manually entered payload through the same processing as a scan."""
    session = _session(request)
    outcome = session.processor.handle(body.raw)
    session.record_outcome(outcome)
    return outcome.to_dict()
