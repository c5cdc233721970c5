import os


class Config:
    # 用于 session 签名，正式环境必须通过环境变量设置
    SECRET_KEY = os.environ.get('SIMPLEUX_SECRET_KEY', 'dev-only-change-me')

    # 数据库连接串（SQLAlchemy URI），正式环境指向 Supabase 的 Postgres
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'SIMPLEUX_DATABASE_URI',
        'sqlite:///simpleux.db',
    )

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 日志级别：DEBUG / INFO / WARNING / ERROR
    LOG_LEVEL = os.environ.get('SIMPLEUX_LOG_LEVEL', 'INFO')

    # 通知后端：dummy（只写日志）/ ding（钉钉群机器人）
    NOTIFICATION_BACKEND = os.environ.get('NOTIFICATION_BACKEND', 'dummy')

    # ===== 钉钉群机器人配置 =====
    # 钉钉机器人 webhook（完整 URL）
    DINGTALK_WEBHOOK_URL = os.environ.get('DINGTALK_WEBHOOK_URL', '')
    # 如果在钉钉机器人里启用了“加签”，在这里填入 secret；没启用就留空
    DINGTALK_SECRET = os.environ.get('DINGTALK_SECRET', '')

    # 计件项目列表默认分页大小
    DEFAULT_PAGE_SIZE = 10


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    NOTIFICATION_BACKEND = 'dummy'
