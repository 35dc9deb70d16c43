# clinic_booking/utils/resp.py
"""
Response envelope for every booking endpoint.

  success: {"ok": true,  "data": ..., "meta": {...}}   meta only when given
  failure: {"ok": false, "error": {"msg", "code", "details"}}
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _send(payload: Dict[str, Any], status_code: int) -> JSONResponse:
    # slots carry date/time/Decimal/enum values
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(payload))


def ok(
    data: Any = None,
    *,
    meta: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> JSONResponse:
    payload: Dict[str, Any] = {"ok": True, "data": data}
    if meta is not None:
        payload["meta"] = meta
    return _send(payload, status_code)


def err(
    msg: str = "Something went wrong",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    details: Any = None,
) -> JSONResponse:
    return _send(
        {
            "ok": False,
            "error": {
                "msg": msg,
                "code": code,
                "details": details
            },
        }, status_code)
