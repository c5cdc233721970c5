# -*- coding: utf-8 -*-
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

from flask import jsonify


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INVALID_STATE = "invalid_state"
    STORE_READ_FAILURE = "store_read_failure"
    STORE_WRITE_FAILURE = "store_write_failure"


# 错误类型 → HTTP 状态码，未列出的一律 500
HTTP_STATUS = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.INVALID_STATE: 400,
}


@dataclass(frozen=True)
class Result:
    """service 层的统一返回值：成功带 value，失败带 error + message。"""

    ok: bool
    value: Any = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result":
        return cls(ok=False, error=kind, message=message)

    @property
    def status_code(self) -> int:
        if self.ok:
            return 200
        return HTTP_STATUS.get(self.error, 500)


def json_error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def json_result(result: Result):
    """把 Result 转成接口层的 {success, data?, error?} 包装。"""
    if not result.ok:
        return json_error(result.message, result.status_code)

    body = {"success": True}
    if result.value is not None:
        body["data"] = result.value
    return jsonify(body), 200
