from typing import Any, Dict


def ok(data: Any, message: str = "OK") -> Dict[str, Any]:
    """Return a success envelope."""
    return {"success": True, "data": data, "message": message}


def err(code: int | str, message: str) -> Dict[str, Any]:
    """Return an error envelope."""
    from ..middlewares.request_id import request_id_ctx

    return {
        "success": False,
        "data": None,
        "message": message,
        "code": code,
        "request_id": request_id_ctx.get(None),
    }
