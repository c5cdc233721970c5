# -*- coding: utf-8 -*-

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from . import db
from .auth import login_required
from .errors import Result, json_error, json_result
from .operation_log import (
    record_operation,
    OBJECT_TYPE_PROJECT,
    ACTION_DESIGN_CONFIRM,
    ACTION_PENDING_ENTRY,
    ACTION_ARCHIVE,
    ACTION_CANCEL_ARCHIVE,
    ACTION_CHANGE,
)
from .services import ProjectLifecycleService, ProjectService, notify
from .store import RecordStore

projects_bp = Blueprint('projects', __name__, url_prefix='/api/projects')


def get_lifecycle_service() -> ProjectLifecycleService:
    """每个请求用当前的 db.session 构造一个 service"""
    return ProjectLifecycleService(RecordStore(db.session))


def split_arg(name: str):
    """逗号分隔的多选参数：status=a,b → ['a', 'b']"""
    raw = (request.args.get(name) or '').strip()
    if not raw:
        return None
    return [s.strip() for s in raw.split(',') if s.strip()]


def int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def json_body():
    """解析请求体，必须是 JSON 对象，否则返回 None"""
    data = request.get_json(silent=True)
    if data is None and not request.data:
        return {}
    return data if isinstance(data, dict) else None


def _log_failure(label: str, result: Result) -> None:
    if result.status_code >= 500:
        current_app.logger.error("%s: %s", label, result.message)
    else:
        current_app.logger.warning("%s: %s", label, result.message)


def _after_success(project_id: str, action: str, event_code: str, new_data: dict,
                   description: str | None = None) -> None:
    """成功后记录操作日志并发送通知；两者失败都不影响接口结果"""
    record_operation(
        operator=g.user,
        object_type=OBJECT_TYPE_PROJECT,
        object_id=project_id,
        action=action,
        new_data=new_data,
        request=request,
    )

    project = get_lifecycle_service().get_project(project_id)
    info = project.value if project.ok else {}
    notify(
        event_code,
        project_name=info.get("name"),
        project_code=info.get("code"),
        operator_name=g.user.real_name or g.user.username,
        message=description,
    )


# 项目列表

@projects_bp.route('', methods=['GET'])
@login_required
def list_projects():
    """获取项目列表"""
    result = ProjectService(db).list_projects(
        name=(request.args.get('name') or '').strip() or None,
        statuses=split_arg('status'),
        manager_ids=split_arg('manager'),
        groups=split_arg('group'),
        framework_ids=split_arg('framework'),
        show_archived=request.args.get('showArchived') == 'true',
        current=int_arg('current', 1),
        page_size=int_arg('pageSize', current_app.config.get('DEFAULT_PAGE_SIZE', 10)),
    )
    if not result.ok:
        _log_failure('获取项目列表失败', result)
        return json_result(result)

    return jsonify({
        'success': True,
        'data': result.value['data'],
        'total': result.value['total'],
    })


# 项目详情

@projects_bp.route('/<project_id>', methods=['GET'])
@login_required
def get_project(project_id: str):
    result = get_lifecycle_service().get_project(project_id)
    if not result.ok:
        _log_failure('获取项目详情失败', result)
    return json_result(result)


# 设计确认

@projects_bp.route('/<project_id>/design-confirm', methods=['POST'])
@login_required
def design_confirm(project_id: str):
    """提交设计确认申请"""
    body = json_body()
    if body is None:
        return json_error('请求体必须是 JSON 对象', 400)
    if 'confirmed' not in body:
        return json_error('缺少必填字段：confirmed', 400)

    description = body.get('description')
    result = get_lifecycle_service().submit_design_confirm(
        project_id,
        body['confirmed'],
        description=description,
        acting_user_id=g.user.id,
    )
    if not result.ok:
        _log_failure('提交设计确认申请失败', result)
        return json_result(result)

    _after_success(
        project_id, ACTION_DESIGN_CONFIRM, 'PROJECT_DESIGN_CONFIRM',
        {"confirmed": body['confirmed']}, description,
    )
    return json_result(result)


# 补录

@projects_bp.route('/<project_id>/pending-entry', methods=['POST'])
@login_required
def pending_entry(project_id: str):
    """提交项目补录申请"""
    body = json_body()
    if body is None:
        return json_error('请求体必须是 JSON 对象', 400)
    # 0 是合法金额，只检查字段是否存在
    if body.get('contractAmount') is None:
        return json_error('缺少必填字段：contractAmount', 400)

    description = body.get('description')
    result = get_lifecycle_service().submit_pending_entry(
        project_id,
        body['contractAmount'],
        description=description,
        acting_user_id=g.user.id,
    )
    if not result.ok:
        _log_failure('提交项目补录申请失败', result)
        return json_result(result)

    _after_success(
        project_id, ACTION_PENDING_ENTRY, 'PROJECT_PENDING_ENTRY',
        {"is_pending_entry": True, "contract_amount": body['contractAmount']},
        description,
    )
    return json_result(result)


# 归档 / 取消归档

@projects_bp.route('/<project_id>/archive', methods=['POST'])
@login_required
def archive(project_id: str):
    """提交项目归档申请"""
    body = json_body()
    if body is None:
        return json_error('请求体必须是 JSON 对象', 400)

    description = body.get('description')
    result = get_lifecycle_service().submit_archive(
        project_id,
        description=description,
        acting_user_id=g.user.id,
    )
    if not result.ok:
        _log_failure('提交项目归档申请失败', result)
        return json_result(result)

    _after_success(
        project_id, ACTION_ARCHIVE, 'PROJECT_ARCHIVE',
        {"archived": True}, description,
    )
    return json_result(result)


@projects_bp.route('/<project_id>/cancel-archive', methods=['POST'])
@login_required
def cancel_archive(project_id: str):
    """取消项目归档"""
    result = get_lifecycle_service().cancel_archive(project_id, acting_user_id=g.user.id)
    if not result.ok:
        _log_failure('取消项目归档失败', result)
        return json_result(result)

    _after_success(
        project_id, ACTION_CANCEL_ARCHIVE, 'PROJECT_CANCEL_ARCHIVE',
        {"archived": False},
    )
    return json_result(result)


# 项目变更

@projects_bp.route('/<project_id>/changes', methods=['GET'])
@login_required
def list_changes(project_id: str):
    """获取项目变更记录"""
    result = ProjectService(db).list_changes(project_id)
    if not result.ok:
        _log_failure('获取项目变更记录失败', result)
    return json_result(result)


@projects_bp.route('/<project_id>/changes', methods=['POST'])
@login_required
def submit_change(project_id: str):
    """提交项目变更申请"""
    body = json_body()
    if body is None:
        return json_error('请求体必须是 JSON 对象', 400)

    result = ProjectService(db).submit_change(project_id, body, g.user.id)
    if not result.ok:
        _log_failure('提交项目变更申请失败', result)
        return json_result(result)

    change = result.value
    record_operation(
        operator=g.user,
        object_type=OBJECT_TYPE_PROJECT,
        object_id=project_id,
        action=ACTION_CHANGE,
        new_data={k: change[k] for k in ('change_type', 'change_date', 'contract_amount')},
        request=request,
    )
    return json_result(result)
