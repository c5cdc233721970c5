# -*- coding: utf-8 -*-
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import Request, current_app
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models import OperationLog, User

# ---- 对象类型常量 ----
OBJECT_TYPE_PROJECT = "project"
OBJECT_TYPE_FRAMEWORK = "framework"

# ---- 动作类型常量 ----
ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"
ACTION_DESIGN_CONFIRM = "design_confirm"
ACTION_PENDING_ENTRY = "pending_entry"
ACTION_ARCHIVE = "archive"
ACTION_CANCEL_ARCHIVE = "cancel_archive"
ACTION_CHANGE = "change"


def _jsonable(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if data is None:
        return None
    out = {}
    for k, v in data.items():
        if hasattr(v, "isoformat"):
            v = v.isoformat()
        elif v is not None and not isinstance(v, (str, int, float, bool, list, dict)):
            v = str(v)
        out[k] = v
    return out


def log_operation(
    *,
    operator: Optional[User] = None,
    object_type: str,
    object_id: str,
    action: str,
    old_data: Optional[Dict[str, Any]] = None,
    new_data: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> OperationLog:
    """
    统一操作日志记录入口。

    :param operator: 执行操作的用户对象（可为 None）
    :param object_type: 对象类型，如 "project" / "framework"
    :param object_id: 对象主键 ID
    :param action: 动作类型，如 "design_confirm" / "archive"
    :param old_data: 变更前的数据快照（字典）
    :param new_data: 变更后的数据快照（字典）
    :param request: Flask 的 request 对象，用于获取 IP（可选）
    """
    ip_address = request.remote_addr if request is not None else None

    detail: Dict[str, Any] = {}
    if old_data is not None:
        detail["old"] = _jsonable(old_data)
    if new_data is not None:
        detail["new"] = _jsonable(new_data)

    log = OperationLog(
        operator_id=operator.id if operator is not None else None,
        object_type=object_type,
        object_id=object_id,
        action=action,
        detail_json=json.dumps(detail, ensure_ascii=False) if detail else None,
        ip_address=ip_address,
    )

    db.session.add(log)
    db.session.commit()
    return log


def record_operation(**kwargs: Any) -> Optional[OperationLog]:
    """业务已经提交之后再写日志：写失败只记错误，不影响接口返回成功。"""
    try:
        return log_operation(**kwargs)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(
            "写操作日志失败 %s/%s %s: %s",
            kwargs.get("object_type"), kwargs.get("object_id"), kwargs.get("action"), exc,
        )
        return None
