from __future__ import annotations

from datetime import datetime
from typing import Optional, Dict, Any

import json
from flask import Blueprint, jsonify, request

from .auth import login_required
from .models import OperationLog

logs_bp = Blueprint('logs', __name__, url_prefix='/api/logs')

# 类型 / 动作的中文显示
OBJECT_TYPE_LABELS: Dict[str, str] = {
    "project": "项目",
    "framework": "计件项目",
}

ACTION_LABELS: Dict[str, str] = {
    "create": "创建",
    "update": "修改",
    "delete": "删除",
    "design_confirm": "设计确认",
    "pending_entry": "项目补录",
    "archive": "归档",
    "cancel_archive": "取消归档",
    "change": "项目变更",
}

# 字段中文名，用于详情展示
FIELD_LABELS: Dict[str, str] = {
    "status": "状态",
    "confirmed": "设计已确认",
    "is_pending_entry": "待补录",
    "contract_amount": "合同金额",
    "archived": "已归档",
    "code": "编号",
    "name": "名称",
    "manager_id": "项目经理 ID",
    "manager_name": "项目经理",
    "biz_manager": "商务经理",
    "group": "所属部门",
    "client_dept": "客户部门",
    "change_type": "变更类型",
    "change_date": "变更日期",
    "cost_budget": "成本预算",
    "labor_budget_hours": "人力预算（人天）",
    "travel_budget": "差旅预算",
    "outsource_budget": "外包预算",
}

MAX_ROWS = 200


def _parse_date(s: Optional[str]):
    """简单的日期解析：期望格式 YYYY-MM-DD，不合法返回 None。"""
    if not s:
        return None
    try:
        return datetime.strptime(s, '%Y-%m-%d').date()
    except ValueError:
        return None


def _label(field: str) -> str:
    return FIELD_LABELS.get(field, field)


def _fmt_value(v: Any) -> str:
    if isinstance(v, bool):
        return "是" if v else "否"
    return "" if v is None else str(v)


def build_detail_display(detail_json: Optional[str]) -> str:
    """
    根据 detail_json 生成适合人看的说明，例如：
    “待补录：否 → 是； 合同金额：0 → 15000”
    """
    if not detail_json:
        return ""

    try:
        data = json.loads(detail_json)
    except ValueError:
        # 解析失败就直接原样显示
        return detail_json

    old = data.get("old")
    new = data.get("new")
    pieces = []

    if old is not None and new is not None:
        keys = sorted(set(old.keys()) | set(new.keys()))
        for k in keys:
            ov = old.get(k)
            nv = new.get(k)
            if ov == nv:
                continue
            pieces.append(f"{_label(k)}：{_fmt_value(ov)} → {_fmt_value(nv)}")
    elif new is not None:
        for k, v in new.items():
            pieces.append(f"{_label(k)}：{_fmt_value(v)}")
    elif old is not None:
        for k, v in old.items():
            pieces.append(f"{_label(k)}：{_fmt_value(v)}")

    return "；".join(pieces)


def _to_dict(log: OperationLog) -> Dict[str, Any]:
    return {
        "id": log.id,
        "operator_id": log.operator_id,
        "operator_name": (log.operator.real_name or log.operator.username) if log.operator else None,
        "object_type": log.object_type,
        "object_type_label": OBJECT_TYPE_LABELS.get(log.object_type, log.object_type),
        "object_id": log.object_id,
        "action": log.action,
        "action_label": ACTION_LABELS.get(log.action, log.action),
        "detail": build_detail_display(log.detail_json),
        "ip_address": log.ip_address,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }


@logs_bp.route('', methods=['GET'])
@login_required
def list_logs():
    """操作日志列表，按时间倒序，最多 200 条。"""
    object_type = (request.args.get('object_type') or '').strip()
    action = (request.args.get('action') or '').strip()
    operator_id = (request.args.get('operator_id') or '').strip()
    object_id = (request.args.get('object_id') or '').strip()
    date_from = _parse_date((request.args.get('date_from') or '').strip())
    date_to = _parse_date((request.args.get('date_to') or '').strip())

    query = OperationLog.query

    if object_type:
        query = query.filter(OperationLog.object_type == object_type)
    if action:
        query = query.filter(OperationLog.action == action)
    if operator_id:
        query = query.filter(OperationLog.operator_id == operator_id)
    if object_id:
        query = query.filter(OperationLog.object_id == object_id)
    if date_from:
        query = query.filter(OperationLog.created_at >= datetime.combine(date_from, datetime.min.time()))
    if date_to:
        query = query.filter(OperationLog.created_at <= datetime.combine(date_to, datetime.max.time()))

    logs = query.order_by(OperationLog.created_at.desc(), OperationLog.id.desc()).limit(MAX_ROWS).all()

    return jsonify({'success': True, 'data': [_to_dict(log) for log in logs]})
