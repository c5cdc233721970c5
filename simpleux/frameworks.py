# -*- coding: utf-8 -*-

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from . import db
from .auth import login_required
from .errors import json_error, json_result
from .operation_log import (
    record_operation,
    OBJECT_TYPE_FRAMEWORK,
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
)
from .projects import get_lifecycle_service, int_arg, split_arg
from .services import FrameworkService

frameworks_bp = Blueprint('frameworks', __name__, url_prefix='/api/frameworks')


# 计件项目列表 / 新建

@frameworks_bp.route('', methods=['GET'])
@login_required
def list_frameworks():
    """获取计件项目列表"""
    result = FrameworkService(db).list_frameworks(
        keyword=(request.args.get('keyword') or '').strip() or None,
        manager_ids=split_arg('manager'),
        groups=split_arg('group'),
        client_depts=split_arg('clientDept'),
        current=int_arg('current', 1),
        page_size=int_arg('pageSize', current_app.config.get('DEFAULT_PAGE_SIZE', 10)),
    )
    if not result.ok:
        current_app.logger.error('获取计件项目列表失败: %s', result.message)
        return json_result(result)

    return jsonify({
        'success': True,
        'data': result.value['data'],
        'total': result.value['total'],
    })


@frameworks_bp.route('', methods=['POST'])
@login_required
def create_framework():
    """创建计件项目"""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('请求体必须是 JSON 对象', 400)

    result = FrameworkService(db).create_framework(body, g.user.id)
    if not result.ok:
        current_app.logger.warning('创建计件项目失败: %s', result.message)
        return json_result(result)

    record_operation(
        operator=g.user,
        object_type=OBJECT_TYPE_FRAMEWORK,
        object_id=result.value['id'],
        action=ACTION_CREATE,
        new_data={k: result.value[k] for k in ('code', 'name', 'manager_id', 'group')},
        request=request,
    )
    return json_result(result)


# 计件项目详情 / 更新 / 删除

@frameworks_bp.route('/<framework_id>', methods=['GET'])
@login_required
def get_framework(framework_id: str):
    """获取计件项目详情"""
    return json_result(FrameworkService(db).get_framework(framework_id))


@frameworks_bp.route('/<framework_id>', methods=['PUT'])
@login_required
def update_framework(framework_id: str):
    """更新计件项目（编号不可修改）"""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return json_error('请求体必须是 JSON 对象', 400)

    service = FrameworkService(db)
    before = service.get_framework(framework_id)

    result = service.update_framework(framework_id, body, g.user.id)
    if not result.ok:
        current_app.logger.warning('更新计件项目失败: %s', result.message)
        return json_result(result)

    fields = ('name', 'manager_id', 'manager_name', 'biz_manager', 'group', 'client_dept')
    record_operation(
        operator=g.user,
        object_type=OBJECT_TYPE_FRAMEWORK,
        object_id=framework_id,
        action=ACTION_UPDATE,
        old_data={k: before.value[k] for k in fields} if before.ok else None,
        new_data={k: result.value[k] for k in fields},
        request=request,
    )
    return json_result(result)


@frameworks_bp.route('/<framework_id>', methods=['DELETE'])
@login_required
def delete_framework(framework_id: str):
    """删除计件项目：有关联项目时不允许删除"""
    result = FrameworkService(db).delete_framework(framework_id, g.user.id)
    if not result.ok:
        current_app.logger.warning('删除计件项目失败: %s', result.message)
        return json_result(result)

    record_operation(
        operator=g.user,
        object_type=OBJECT_TYPE_FRAMEWORK,
        object_id=framework_id,
        action=ACTION_DELETE,
        old_data={'code': result.value['code'], 'name': result.value['name']},
        request=request,
    )
    return jsonify({'success': True})


@frameworks_bp.route('/<framework_id>/has-projects', methods=['GET'])
@login_required
def has_projects(framework_id: str):
    """检查计件项目是否有关联的项目"""
    result = get_lifecycle_service().has_associated_projects(framework_id)
    if not result.ok:
        current_app.logger.error('检查计件项目关联项目失败: %s', result.message)
        return json_result(result)
    return jsonify({'success': True, 'hasProjects': result.value})
