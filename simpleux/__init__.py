# -*- coding: utf-8 -*-
import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

db = SQLAlchemy()


def create_app(config_object='config.Config', **overrides):
    app = Flask(__name__)

    app.config.from_object(config_object)
    app.config.update(overrides)

    app.logger.setLevel(
        getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    )

    db.init_app(app)

    # 登录/注册
    from .auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # 项目生命周期（设计确认 / 补录 / 归档）
    from .projects import projects_bp
    app.register_blueprint(projects_bp)

    # 计件项目
    from .frameworks import frameworks_bp
    app.register_blueprint(frameworks_bp)

    # 操作日志
    from .logs import logs_bp
    app.register_blueprint(logs_bp)

    # 健康检查
    from .health import health_bp
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    return app


def _register_error_handlers(app):
    """所有错误统一返回 {success: false, error: ...} 的 JSON 包装"""
    from .errors import json_error

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc):
        message = {
            400: '请求格式错误',
            404: '接口不存在',
            405: '不支持的请求方法',
        }.get(exc.code, exc.description)
        return json_error(message, exc.code)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        app.logger.exception("未处理的异常: %s", exc)
        return json_error('服务器内部错误', 500)
