# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ErrorKind, Result
from ..models import Project, ProjectChange
from ..store import RecordStore, StoreError
from .lifecycle_service import PROJECT_NOT_FOUND, parse_amount

CHANGE_TYPES = ("project", "demand")

# 请求体字段 → project_changes 列
CHANGE_AMOUNT_FIELDS = {
    "contractAmount": "contract_amount",
    "costBudget": "cost_budget",
    "laborBudgetHours": "labor_budget_hours",
    "travelBudget": "travel_budget",
    "outsourceBudget": "outsource_budget",
}


class ProjectService:
    """项目列表查询 + 项目变更申请。

    变更申请只追加 project_changes 记录，不改 projects 表：
    金额 / 预算真正生效要等审批通过，这里不做审批。
    """

    def __init__(self, db: SQLAlchemy, store: Optional[RecordStore] = None) -> None:
        self.db = db
        self.store = store or RecordStore(db.session)

    # ------------------------------------------------------------------
    # 项目列表
    # ------------------------------------------------------------------

    def list_projects(
        self,
        name: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        manager_ids: Optional[Iterable[str]] = None,
        groups: Optional[Iterable[str]] = None,
        framework_ids: Optional[Iterable[str]] = None,
        show_archived: bool = False,
        current: int = 1,
        page_size: int = 10,
    ) -> Result:
        query = Project.query

        if name:
            query = query.filter(Project.name.ilike(f"%{name}%"))
        if statuses:
            query = query.filter(Project.status.in_(list(statuses)))
        if manager_ids:
            query = query.filter(Project.manager_id.in_(list(manager_ids)))
        if groups:
            query = query.filter(Project.group.in_(list(groups)))
        if framework_ids:
            query = query.filter(Project.framework_id.in_(list(framework_ids)))
        # 默认不显示已归档项目
        if not show_archived:
            query = query.filter(Project.archived_at.is_(None))

        current = max(current or 1, 1)
        page_size = max(page_size or 10, 1)

        try:
            total = query.count()
            rows = (
                query.order_by(Project.created_at.desc(), Project.id.desc())
                .offset((current - 1) * page_size)
                .limit(page_size)
                .all()
            )
        except SQLAlchemyError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"获取项目列表失败: {exc}")

        return Result.success({"data": [p.to_dict() for p in rows], "total": total})

    # ------------------------------------------------------------------
    # 项目变更
    # ------------------------------------------------------------------

    def list_changes(self, project_id: str) -> Result:
        """按变更日期倒序返回项目的变更记录，项目不存在时返回空列表。"""
        try:
            rows = (
                ProjectChange.query
                .filter(ProjectChange.project_id == project_id)
                .order_by(ProjectChange.change_date.desc(), ProjectChange.created_at.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"获取项目变更记录失败: {exc}")
        return Result.success([c.to_dict() for c in rows])

    def submit_change(
        self,
        project_id: str,
        data: Dict[str, Any],
        acting_user_id: Optional[str],
    ) -> Result:
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        description = str(data.get("description") or "").strip()
        if not description:
            return Result.failure(ErrorKind.VALIDATION_ERROR, "缺少必填字段：description")

        change_type = data.get("changeType") or "project"
        if change_type not in CHANGE_TYPES:
            return Result.failure(ErrorKind.VALIDATION_ERROR, "变更类型必须是 project 或 demand")

        change_date = _parse_date(data.get("changeDate"))
        if change_date is None:
            return Result.failure(ErrorKind.VALIDATION_ERROR, "变更日期格式应为 YYYY-MM-DD")

        amounts = {}
        for field, column in CHANGE_AMOUNT_FIELDS.items():
            raw = data.get(field)
            if raw is None:
                continue
            amount = parse_amount(raw)
            if amount is None:
                return Result.failure(
                    ErrorKind.VALIDATION_ERROR, f"{field} 必须是不小于 0、最多两位小数的数字"
                )
            amounts[column] = amount

        try:
            found = self.store.project_exists(project_id)
        except StoreError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"提交项目变更申请失败: {exc}")
        if not found:
            return Result.failure(ErrorKind.NOT_FOUND, PROJECT_NOT_FOUND)

        change = ProjectChange(
            project_id=project_id,
            change_type=change_type,
            change_date=change_date,
            description=description,
            attachment_url=data.get("attachmentUrl") or None,
            created_by=acting_user_id,
            **amounts,
        )

        try:
            self.db.session.add(change)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            return Result.failure(ErrorKind.STORE_WRITE_FAILURE, f"提交项目变更申请失败: {exc}")

        return Result.success(change.to_dict())


def _parse_date(value: Any) -> Optional[date]:
    """空值取今天；其它必须是 YYYY-MM-DD 字符串，不合法返回 None。"""
    if value in (None, ""):
        return date.today()
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None
