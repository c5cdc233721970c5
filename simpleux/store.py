# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Project


class StoreError(Exception):
    """数据库读写失败，message 为底层驱动返回的错误信息。"""


class RecordStore:
    """projects 表的读写封装。

    service 层通过构造函数拿到它，不直接碰 db.session：
        - 单条读取 / 单条更新（按主键）
        - 按外键判断是否存在关联项目
    每个方法只发一次 SQL。
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_project(self, project_id: str) -> Optional[Project]:
        try:
            return self.session.get(Project, project_id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def project_exists(self, project_id: str) -> bool:
        try:
            return bool(self.session.execute(
                select(exists().where(Project.id == project_id))
            ).scalar())
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def update_project(
        self,
        project_id: str,
        values: Dict[str, Any],
        *conditions,
    ) -> int:
        """UPDATE projects SET ... WHERE id = :id [AND conditions]，返回影响行数。"""
        stmt = (
            update(Project)
            .where(Project.id == project_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(str(exc)) from exc
        return result.rowcount

    def framework_has_projects(self, framework_id: str) -> bool:
        try:
            return bool(self.session.execute(
                select(exists().where(Project.framework_id == framework_id))
            ).scalar())
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
