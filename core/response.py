"""
Standardized API response helpers for consistent data structure
"""
import math
from typing import Any, Dict, Optional
from datetime import datetime


def success_response(
    data: Any = None,
    message: str = "Operation successful",
    meta: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create a success response"""
    return {
        "success": True,
        "message": message,
        "data": data,
        "meta": meta,
        "timestamp": datetime.utcnow().isoformat()
    }


def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create an error response"""
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details,
        "timestamp": datetime.utcnow().isoformat()
    }


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, int]:
    """Pagination block shared by the admin listing endpoints"""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0
    }
