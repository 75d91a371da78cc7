# app/api/responses.py
from decimal import Decimal
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# kwoty jako stringi "19.99", bez gubienia precyzji na floatach
_ENCODERS = {Decimal: lambda d: format(d, "f")}


def envelope(
    data: Any = None,
    message: str = "",
    status: str = "success",
    status_code: int = 200,
) -> JSONResponse:
    body = {"status": status, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, custom_encoder=_ENCODERS),
    )


def error(message: str, status_code: int, data: Any = None) -> JSONResponse:
    return envelope(data=data, message=message, status="error", status_code=status_code)
