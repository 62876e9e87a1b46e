from typing import Any, Optional


def envelope(data: Any, status_code: int = 200) -> dict:
    return {"status_code": status_code, "success": True, "error": None, "data": data}


def error_envelope(status_code: int, message: str, details: Optional[Any] = None) -> dict:
    error = {"message": message}
    if details is not None:
        error["details"] = details
    return {"status_code": status_code, "success": False, "error": error, "data": None}
