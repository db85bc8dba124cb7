"""
Diary Backend — Request Parsing Helpers
========================================

What:  Lenient query-parameter parsing and JSON body decoding shared by routes.

Query parameters are taken as raw strings rather than typed FastAPI Query()
params: a missing or malformed `limit`/`days` falls back to its default
instead of producing a validation error.
"""

import json
import re
from typing import Any, Dict, Optional

from starlette.requests import Request

from diary_api.exceptions import MSG_BAD_PAYLOAD, BadRequestError

LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """
    Parse a positive integer query value, falling back to `default`.

    Only the leading integer is read, so trailing text is ignored.

    Examples:
        parse_positive_int("7", 30)    → 7
        parse_positive_int(None, 30)   → 30
        parse_positive_int("abc", 30)  → 30
        parse_positive_int("0", 30)    → 30
        parse_positive_int("7.5", 30)  → 7
        parse_positive_int("10abc", 30) → 10
    """
    if raw is None:
        return default
    match = LEADING_INT.match(raw)
    if match is None:
        return default
    try:
        value = int(match.group(1))
    except ValueError:
        # longer than the interpreter's int-from-string digit limit
        return default
    return value if value > 0 else default


async def read_json_object(request: Request) -> Dict[str, Any]:
    """
    Decode the request body as a JSON object.

    Raises:
        BadRequestError: Body is empty, not valid JSON, or not a JSON object.
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        raise BadRequestError(message=MSG_BAD_PAYLOAD, context={"bytes": len(body)})
    if not isinstance(payload, dict):
        raise BadRequestError(
            message=MSG_BAD_PAYLOAD,
            context={"json_type": type(payload).__name__},
        )
    return payload
