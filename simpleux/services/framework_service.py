# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import ErrorKind, Result
from ..models import FrameworkAgreement, User
from ..store import RecordStore, StoreError

CODE_PREFIX = "FRAM"
FRAMEWORK_NOT_FOUND = "计件项目不存在"
# 编号后缀固定 4 位
MAX_SEQ = 9999
CREATE_ATTEMPTS = 3


def format_code(day: date, seq: int) -> str:
    """FRAM-YYYYMMDD-XXXX"""
    return f"{CODE_PREFIX}-{day.strftime('%Y%m%d')}-{seq:04d}"


class FrameworkService:
    """计件项目（框架协议）的增删改查。

    说明：
        - code 只在创建时生成一次，之后任何更新都不会改它
        - manager_id 必须指向已存在的用户
        - 有关联项目的计件项目不允许删除
    """

    def __init__(self, db: SQLAlchemy, store: Optional[RecordStore] = None) -> None:
        self.db = db
        self.store = store or RecordStore(db.session)

    # ------------------------------------------------------------------
    # 编号生成
    # ------------------------------------------------------------------

    def generate_code(self, today: Optional[date] = None) -> Optional[str]:
        """取当天已用的最大流水号 + 1；当天 9999 个号用完时返回 None。"""
        today = today or date.today()
        prefix = format_code(today, 0)[:-4]

        # 按字符串比较 "-10000" 会排在 "-9999" 前面，先按长度再按编号排
        last = (
            self.db.session.query(FrameworkAgreement.code)
            .filter(FrameworkAgreement.code.like(f"{prefix}%"))
            .order_by(func.length(FrameworkAgreement.code).desc(), FrameworkAgreement.code.desc())
            .limit(1)
            .scalar()
        )
        seq = 1
        if last:
            try:
                seq = int(last.rsplit("-", 1)[-1]) + 1
            except ValueError:
                seq = 1
        if seq > MAX_SEQ:
            return None
        return format_code(today, seq)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def list_frameworks(
        self,
        keyword: Optional[str] = None,
        manager_ids: Optional[Iterable[str]] = None,
        groups: Optional[Iterable[str]] = None,
        client_depts: Optional[Iterable[str]] = None,
        current: int = 1,
        page_size: int = 10,
    ) -> Result:
        query = FrameworkAgreement.query

        if keyword:
            pattern = f"%{keyword.lower()}%"
            query = query.filter(or_(
                func.lower(FrameworkAgreement.name).like(pattern),
                func.lower(FrameworkAgreement.code).like(pattern),
            ))
        if manager_ids:
            query = query.filter(FrameworkAgreement.manager_id.in_(list(manager_ids)))
        if groups:
            query = query.filter(FrameworkAgreement.group.in_(list(groups)))
        if client_depts:
            query = query.filter(FrameworkAgreement.client_dept.in_(list(client_depts)))

        current = max(current or 1, 1)
        page_size = max(page_size or 10, 1)

        try:
            total = query.count()
            rows = (
                query.order_by(FrameworkAgreement.created_at.desc(), FrameworkAgreement.code.desc())
                .offset((current - 1) * page_size)
                .limit(page_size)
                .all()
            )
        except SQLAlchemyError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"获取计件项目列表失败: {exc}")

        return Result.success({"data": [f.to_dict() for f in rows], "total": total})

    def get_framework(self, framework_id: str) -> Result:
        try:
            framework = self.db.session.get(FrameworkAgreement, framework_id)
        except SQLAlchemyError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"获取计件项目详情失败: {exc}")
        if framework is None:
            return Result.failure(ErrorKind.NOT_FOUND, FRAMEWORK_NOT_FOUND)
        return Result.success(framework.to_dict())

    # ------------------------------------------------------------------
    # 创建 / 更新 / 删除
    # ------------------------------------------------------------------

    def create_framework(self, data: Dict[str, Any], acting_user_id: Optional[str]) -> Result:
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        error = self._validate(data)
        if error is not None:
            return error

        # 两个请求同时拿到同一个流水号时，唯一约束会报错，换下一个号重试
        for _ in range(CREATE_ATTEMPTS):
            try:
                code = self.generate_code()
            except SQLAlchemyError as exc:
                return Result.failure(ErrorKind.STORE_READ_FAILURE, f"生成计件项目编号失败: {exc}")
            if code is None:
                return Result.failure(ErrorKind.INVALID_STATE, "今日计件项目编号已用完")

            framework = FrameworkAgreement(
                code=code,
                created_by=acting_user_id,
                updated_by=acting_user_id,
            )
            self._apply(framework, data)

            try:
                self.db.session.add(framework)
                self.db.session.commit()
            except IntegrityError:
                self.db.session.rollback()
                continue
            except SQLAlchemyError as exc:
                self.db.session.rollback()
                return Result.failure(ErrorKind.STORE_WRITE_FAILURE, f"创建计件项目失败: {exc}")

            return Result.success(framework.to_dict())

        return Result.failure(ErrorKind.STORE_WRITE_FAILURE, "创建计件项目失败: 编号冲突，请重试")

    def update_framework(
        self,
        framework_id: str,
        data: Dict[str, Any],
        acting_user_id: Optional[str],
    ) -> Result:
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        framework = self.db.session.get(FrameworkAgreement, framework_id)
        if framework is None:
            return Result.failure(ErrorKind.NOT_FOUND, FRAMEWORK_NOT_FOUND)

        error = self._validate(data)
        if error is not None:
            return error

        # code 不可修改，即使请求体里带了也忽略
        self._apply(framework, data)
        framework.updated_by = acting_user_id
        framework.updated_at = datetime.utcnow()

        try:
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            return Result.failure(ErrorKind.STORE_WRITE_FAILURE, f"更新计件项目失败: {exc}")

        return Result.success(framework.to_dict())

    def delete_framework(self, framework_id: str, acting_user_id: Optional[str]) -> Result:
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        framework = self.db.session.get(FrameworkAgreement, framework_id)
        if framework is None:
            return Result.failure(ErrorKind.NOT_FOUND, FRAMEWORK_NOT_FOUND)

        try:
            has_projects = self.store.framework_has_projects(framework_id)
        except StoreError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"检查计件项目关联项目失败: {exc}")
        if has_projects:
            return Result.failure(ErrorKind.INVALID_STATE, "该计件项目下已有关联项目，不能删除")

        snapshot = framework.to_dict()
        try:
            self.db.session.delete(framework)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            return Result.failure(ErrorKind.STORE_WRITE_FAILURE, f"删除计件项目失败: {exc}")

        return Result.success(snapshot)

    # ------------------------------------------------------------------
    # 内部工具
    # ------------------------------------------------------------------

    def _validate(self, data: Dict[str, Any]) -> Optional[Result]:
        name = str(data.get("name") or "").strip()
        manager_id = data.get("managerId")
        group = str(data.get("group") or "").strip()

        if not name or not manager_id or not group:
            return Result.failure(ErrorKind.VALIDATION_ERROR, "缺少必填字段")

        if self.db.session.get(User, manager_id) is None:
            return Result.failure(ErrorKind.VALIDATION_ERROR, "项目经理不存在")
        return None

    @staticmethod
    def _apply(framework: FrameworkAgreement, data: Dict[str, Any]) -> None:
        framework.name = str(data["name"]).strip()
        framework.manager_id = data["managerId"]
        framework.manager_name = data.get("managerName") or None
        framework.group = str(data["group"]).strip()
        framework.biz_manager = data.get("bizManager") or None
        framework.client_dept = data.get("clientDept") or None
