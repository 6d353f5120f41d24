def ok(data=None):
    """Standard success envelope."""
    return {"ok": True, "data": data, "error": None}


def error(code: str = "internal_error", message: str = "An internal error occurred", details: dict | None = None):
    """Standard error envelope."""
    err = {"code": code, "message": message}
    if details:
        err["details"] = details
    return {"ok": False, "data": None, "error": err}
