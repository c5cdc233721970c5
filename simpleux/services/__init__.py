# -*- coding: utf-8 -*-
"""
service 层。

- 业务逻辑从视图（blueprint）中抽离出来，视图只做参数解析和 JSON 包装
- service 通过构造函数拿到数据库句柄，方便单元测试
"""

from .lifecycle_service import ProjectLifecycleService
from .framework_service import FrameworkService
from .project_service import ProjectService
from .notification_service import (
    NotificationService,
    DummyNotificationService,
    DingTalkRobotNotificationService,
    get_notification_service,
    notify,
)
