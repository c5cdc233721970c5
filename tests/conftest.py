"""
Shared fixtures: an in-memory SQLite app per test.

Run:  pytest tests/ -v
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from simpleux import create_app, db
from simpleux.models import FrameworkAgreement, Project, User
from simpleux.services import ProjectLifecycleService
from simpleux.store import RecordStore


@pytest.fixture
def app():
    app = create_app('config.TestConfig')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    u = User(
        username='zhangsan',
        email='zhangsan@example.com',
        real_name='张三',
        password_hash=generate_password_hash('secret123'),
    )
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def auth_client(client, user):
    """已登录的 test client"""
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
    return client


@pytest.fixture
def service(app):
    return ProjectLifecycleService(RecordStore(db.session))


@pytest.fixture
def make_project(app):
    def _make(**kwargs):
        values = dict(
            name='测试项目',
            code='PRJ-001',
            status='待确认',
            is_pending_entry=False,
            contract_amount=Decimal('0'),
        )
        values.update(kwargs)
        project = Project(**values)
        db.session.add(project)
        db.session.commit()
        return project.id
    return _make


@pytest.fixture
def make_framework(app, user):
    def _make(**kwargs):
        values = dict(
            code='FRAM-20260101-0001',
            name='运维计件',
            manager_id=user.id,
            manager_name=user.real_name,
            group='交付一部',
        )
        values.update(kwargs)
        framework = FrameworkAgreement(**values)
        db.session.add(framework)
        db.session.commit()
        return framework.id
    return _make


def reload_project(project_id):
    """丢掉 identity map 里的缓存，重新从数据库读"""
    db.session.expire_all()
    return db.session.get(Project, project_id)


@pytest.fixture
def reload(app):
    return reload_project
