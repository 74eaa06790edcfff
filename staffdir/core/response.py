# staffdir/core/response.py

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import uuid


def make_meta(pagination=None):
    return {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "trace_id": str(uuid.uuid4()),
        "pagination": pagination
    }


def success(data=None, message="Operation completed", pagination=None, code=200):
    return JSONResponse(
        status_code=code,
        content=jsonable_encoder({
            "status": "ok",
            "message": message,
            "data": data,
            "meta": make_meta(pagination)
        })
    )


def error(code=400, message="Error", details=None):
    return JSONResponse(
        status_code=code,
        content=jsonable_encoder({
            "status": "error",
            "code": code,
            "message": message,
            "details": details,
            "meta": make_meta()
        })
    )
