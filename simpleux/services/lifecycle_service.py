# -*- coding: utf-8 -*-
from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..errors import ErrorKind, Result
from ..models import Project
from ..store import RecordStore, StoreError


# 项目状态常量（与 models.Project.status 的默认值兼容）
STATUS_PENDING_CONFIRMATION = "待确认"
STATUS_CONFIRMED = "已确认"

PROJECT_NOT_FOUND = "项目不存在"


class ProjectLifecycleService:
    """项目生命周期相关的业务服务。

    设计确认（status）、补录（is_pending_entry + contract_amount）、
    归档（archived_at）是三个互不影响的字段，每个操作只改自己那一个。

    所有方法都返回 Result，不抛业务异常：
        - 未登录 → UNAUTHENTICATED（在访问数据库之前检查）
        - 项目不存在 → NOT_FOUND
        - 参数不合法 → VALIDATION_ERROR
        - 当前状态不允许 → INVALID_STATE
        - 数据库错误 → STORE_READ_FAILURE / STORE_WRITE_FAILURE
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> Result:
        try:
            project = self.store.get_project(project_id)
        except StoreError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"获取项目详情失败: {exc}")
        if project is None:
            return Result.failure(ErrorKind.NOT_FOUND, PROJECT_NOT_FOUND)
        return Result.success(project.to_dict())

    def has_associated_projects(self, framework_id: str) -> Result:
        """计件项目下是否挂有项目。计件项目不存在时同样返回 False。"""
        try:
            return Result.success(self.store.framework_has_projects(framework_id))
        except StoreError as exc:
            return Result.failure(
                ErrorKind.STORE_READ_FAILURE, f"检查计件项目关联项目失败: {exc}"
            )

    # ------------------------------------------------------------------
    # 设计确认
    # ------------------------------------------------------------------

    def submit_design_confirm(
        self,
        project_id: str,
        confirmed: Any,
        description: Optional[str] = None,
        acting_user_id: Optional[str] = None,
    ) -> Result:
        """confirmed=True → 已确认，False → 待确认。

        description / acting_user_id 目前不写入 projects 表。
        """
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")
        if not isinstance(confirmed, bool):
            return Result.failure(ErrorKind.VALIDATION_ERROR, "confirmed 必须是布尔值")

        new_status = STATUS_CONFIRMED if confirmed else STATUS_PENDING_CONFIRMATION
        return self._update(
            project_id,
            {"status": new_status, "updated_at": datetime.utcnow()},
            failure_label="提交设计确认申请失败",
        )

    # ------------------------------------------------------------------
    # 补录
    # ------------------------------------------------------------------

    def submit_pending_entry(
        self,
        project_id: str,
        contract_amount: Any,
        description: Optional[str] = None,
        acting_user_id: Optional[str] = None,
    ) -> Result:
        """标记为待补录并覆盖业绩金额。

        无论之前是否已是待补录都置为 True；清除标记属于审批流程，不在这里做。
        """
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        amount = parse_amount(contract_amount)
        if amount is None:
            return Result.failure(
                ErrorKind.VALIDATION_ERROR, "合同金额必须是不小于 0、最多两位小数的数字"
            )

        return self._update(
            project_id,
            {
                "is_pending_entry": True,
                "contract_amount": amount,
                "updated_at": datetime.utcnow(),
            },
            failure_label="提交项目补录申请失败",
        )

    # ------------------------------------------------------------------
    # 归档 / 取消归档
    # ------------------------------------------------------------------

    def submit_archive(
        self,
        project_id: str,
        description: Optional[str] = None,
        acting_user_id: Optional[str] = None,
    ) -> Result:
        """归档：写入 archived_at 和实际结束日期，不改 status。"""
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        now = datetime.utcnow()
        return self._guarded_update(
            project_id,
            {
                "archived_at": now,
                "archived_by": acting_user_id,
                "actual_end_date": date.today(),
                "updated_at": now,
            },
            Project.archived_at.is_(None),
            failure_label="提交项目归档申请失败",
            invalid_state_message="项目已归档",
            value={"success": True},
        )

    def cancel_archive(
        self,
        project_id: str,
        acting_user_id: Optional[str] = None,
    ) -> Result:
        """取消归档。项目未归档时返回 INVALID_STATE，重复调用第二次也会失败。"""
        if not acting_user_id:
            return Result.failure(ErrorKind.UNAUTHENTICATED, "未登录")

        return self._guarded_update(
            project_id,
            {
                "archived_at": None,
                "unarchived_by": acting_user_id,
                "updated_at": datetime.utcnow(),
            },
            Project.archived_at.is_not(None),
            failure_label="取消项目归档失败",
            invalid_state_message="项目未归档，无需取消",
            value={"id": project_id, "archived": False},
        )

    # ------------------------------------------------------------------
    # 内部工具
    # ------------------------------------------------------------------

    def _update(self, project_id: str, values: dict, failure_label: str) -> Result:
        try:
            rowcount = self.store.update_project(project_id, values)
        except StoreError as exc:
            return Result.failure(ErrorKind.STORE_WRITE_FAILURE, f"{failure_label}: {exc}")

        if rowcount == 0:
            return Result.failure(ErrorKind.NOT_FOUND, PROJECT_NOT_FOUND)
        return Result.success({"success": True})

    def _guarded_update(
        self,
        project_id: str,
        values: dict,
        condition,
        failure_label: str,
        invalid_state_message: str,
        value: dict,
    ) -> Result:
        """带状态条件的单条 UPDATE；影响 0 行时再查一次区分“不存在”和“状态不对”。"""
        try:
            rowcount = self.store.update_project(project_id, values, condition)
        except StoreError as exc:
            return Result.failure(ErrorKind.STORE_WRITE_FAILURE, f"{failure_label}: {exc}")

        if rowcount:
            return Result.success(value)

        try:
            found = self.store.project_exists(project_id)
        except StoreError as exc:
            return Result.failure(ErrorKind.STORE_READ_FAILURE, f"{failure_label}: {exc}")

        if not found:
            return Result.failure(ErrorKind.NOT_FOUND, PROJECT_NOT_FOUND)
        return Result.failure(ErrorKind.INVALID_STATE, invalid_state_message)


# 与 projects.contract_amount 的 Numeric(14, 2) 一致
AMOUNT_CENT = Decimal("0.01")
AMOUNT_LIMIT = Decimal(10) ** 12


def parse_amount(value: Any) -> Optional[Decimal]:
    """把接口传入的金额转成 Decimal。

    非数字、NaN/inf、负数、超过两位小数、整数部分超过 12 位的都返回 None，
    保证写进去的值和读出来的值完全一致。
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0 or amount >= AMOUNT_LIMIT:
        return None
    if amount != amount.quantize(AMOUNT_CENT):
        return None
    return amount
