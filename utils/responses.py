from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data=None, status=200):
    return JSONResponse(
        status_code=status,
        content=jsonable_encoder(data if data is not None else {}),
    )


def error_response(error, status=400, **extra):
    return JSONResponse(
        status_code=status,
        content={
            "error": error,
            **extra,
        }
    )
