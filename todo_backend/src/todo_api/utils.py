from __future__ import annotations

from typing import Any, Dict, List


# PUBLIC_INTERFACE
def validation_errors(raw_errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Flatten pydantic/fastapi error details into the API's [{field, message}] list.

    Args:
        raw_errors: ``RequestValidationError.errors()`` output.

    Returns:
        One entry per error, in order. ``field`` is the last named element of the
        error location (the camelCase field name for bodies, the parameter name for
        query and path values). Pydantic's "Value error, " prefix is dropped so
        messages raised by our validators come through unchanged.
    """
    errors: List[Dict[str, str]] = []
    for err in raw_errors:
        loc = [part for part in err.get("loc", ()) if isinstance(part, str)]
        field = loc[-1] if loc else ""
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message})
    return errors
