# -*- coding: utf-8 -*-
import uuid
from datetime import datetime
from decimal import Decimal

from . import db


def _new_id():
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    # 显示名（钉钉同步过来的真实姓名）
    real_name = db.Column(db.String(100))
    role = db.Column(db.String(50), default='member')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "real_name": self.real_name,
            "role": self.role,
        }


class FrameworkAgreement(db.Model):
    """计件项目（框架协议），一个计件项目下可以挂多个项目"""
    __tablename__ = 'frameworks'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    # 系统生成的编号 FRAM-YYYYMMDD-XXXX，创建后不可修改
    code = db.Column(db.String(30), unique=True, nullable=False)
    name = db.Column(db.String(200), nullable=False)

    # 项目经理（必须是已存在的用户）
    manager_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    manager_name = db.Column(db.String(100))
    biz_manager = db.Column(db.String(100))
    # 所属部门
    group = db.Column(db.String(100), nullable=False)
    client_dept = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.String(36))
    updated_by = db.Column(db.String(36))

    manager = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "manager_id": self.manager_id,
            "manager_name": self.manager_name,
            "biz_manager": self.biz_manager,
            "group": self.group,
            "client_dept": self.client_dept,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "created_by": self.created_by,
            "updated_by": self.updated_by,
        }


class Project(db.Model):
    """项目。

    status / is_pending_entry / archived_at 是三个互相独立的字段，
    不是同一个状态机：设计确认只改 status，补录只改 is_pending_entry 和金额，
    归档只改 archived_at。
    """
    __tablename__ = 'projects'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    code = db.Column(db.String(50))
    name = db.Column(db.String(200), nullable=False)

    status = db.Column(db.String(20), nullable=False, default='待确认')
    # 待补录：业绩金额等待财务修正
    is_pending_entry = db.Column(db.Boolean, nullable=False, default=False)
    contract_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # 归档时间，为空表示未归档
    archived_at = db.Column(db.DateTime, nullable=True)
    archived_by = db.Column(db.String(36))
    unarchived_by = db.Column(db.String(36))
    actual_end_date = db.Column(db.Date, nullable=True)

    # 项目经理 / 所属部门，列表筛选用
    manager_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    manager_name = db.Column(db.String(100))
    group = db.Column(db.String(100))

    framework_id = db.Column(db.String(36), db.ForeignKey('frameworks.id'), nullable=True, index=True)
    framework = db.relationship('FrameworkAgreement', backref='projects')

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def archived(self):
        return self.archived_at is not None

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "status": self.status,
            "is_pending_entry": bool(self.is_pending_entry),
            # 金额按字符串输出，避免 float 丢精度
            "contract_amount": str(self.contract_amount or Decimal("0.00")),
            "archived": self.archived,
            "archived_at": _iso(self.archived_at),
            "actual_end_date": _iso(self.actual_end_date),
            "manager_id": self.manager_id,
            "manager_name": self.manager_name,
            "group": self.group,
            "framework_id": self.framework_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ProjectChange(db.Model):
    """项目变更申请记录，只新增不修改，不会改动 projects 表本身"""
    __tablename__ = 'project_changes'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    project_id = db.Column(db.String(36), db.ForeignKey('projects.id'), nullable=False, index=True)

    # project / demand
    change_type = db.Column(db.String(20), nullable=False, default='project')
    change_date = db.Column(db.Date, nullable=False)

    # 变更后的金额 / 预算，未填为空
    contract_amount = db.Column(db.Numeric(14, 2))
    cost_budget = db.Column(db.Numeric(14, 2))
    labor_budget_hours = db.Column(db.Numeric(14, 2))
    travel_budget = db.Column(db.Numeric(14, 2))
    outsource_budget = db.Column(db.Numeric(14, 2))

    description = db.Column(db.Text, nullable=False)
    attachment_url = db.Column(db.String(500))
    # 审批单号，审批流接入前一直为空
    approval_id = db.Column(db.String(64))

    created_by = db.Column(db.String(36), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "change_type": self.change_type,
            "change_date": _iso(self.change_date),
            "contract_amount": _money(self.contract_amount),
            "cost_budget": _money(self.cost_budget),
            "labor_budget_hours": _money(self.labor_budget_hours),
            "travel_budget": _money(self.travel_budget),
            "outsource_budget": _money(self.outsource_budget),
            "description": self.description,
            "attachment_url": self.attachment_url,
            "approval_id": self.approval_id,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }


class OperationLog(db.Model):
    __tablename__ = 'operation_logs'

    id = db.Column(db.Integer, primary_key=True)

    operator_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    # 对象类型：project / framework
    object_type = db.Column(db.String(50), nullable=False)
    object_id = db.Column(db.String(36), nullable=False)
    action = db.Column(db.String(50), nullable=False)
    # {"old": {...}, "new": {...}}
    detail_json = db.Column(db.Text)
    ip_address = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    operator = db.relationship('User')


def _iso(value):
    return value.isoformat() if value is not None else None


def _money(value):
    return str(value) if value is not None else None
