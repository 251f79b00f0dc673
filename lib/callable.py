# Helpers for the callable function protocol:
#   request  {"data": ...}  with "Authorization: Bearer <token>"
#   success  {"result": ...}
#   failure  {"error": {"status": "INVALID_ARGUMENT", "message": "..."}}
from typing import Any, Dict, Optional, Tuple

from lib.error_handler import AppError

def parse_callable_body(body: Any) -> Dict[str, Any]:
    """Extract the data payload from a callable request body"""
    if not isinstance(body, dict) or 'data' not in body:
        raise AppError("Bad Request", code='invalid-argument')
    data = body['data']
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise AppError("Bad Request", code='invalid-argument')
    return data

def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()

def callable_result(result: Any) -> Tuple[Dict[str, Any], int]:
    return {'result': result}, 200

def callable_error(error: AppError) -> Tuple[Dict[str, Any], int]:
    return {
        'error': {
            'status': error.status,
            'message': error.message
        }
    }, error.status_code
