# simpleux/services/notification_service.py

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from typing import Any, Dict, Protocol
from urllib.parse import urlencode

import requests
from flask import current_app


# 项目事件代码 → 中文名
EVENT_LABELS = {
    "PROJECT_DESIGN_CONFIRM": "设计确认",
    "PROJECT_PENDING_ENTRY": "项目补录",
    "PROJECT_ARCHIVE": "项目归档",
    "PROJECT_CANCEL_ARCHIVE": "取消归档",
}


class NotificationService(Protocol):
    """通知服务接口协议：业务只依赖这一层"""

    def send(self, event_code: str, params: Dict[str, Any] | None = None) -> None:
        ...


class DummyNotificationService:
    """占位实现：只写日志，开发/测试环境用"""

    def send(self, event_code: str, params: Dict[str, Any] | None = None) -> None:
        current_app.logger.info(
            "[Notification:Dummy] event=%s, params=%s", event_code, params
        )


class DingTalkRobotNotificationService:
    """钉钉群自定义机器人通知实现"""

    def __init__(self, webhook: str, secret: str | None = None, timeout: float = 5) -> None:
        self.webhook = webhook
        self.secret = secret or ""
        self.timeout = timeout

    def _build_signed_url(self) -> str:
        """如果配置了 secret，则按钉钉规范做 timestamp + sign"""
        if not self.secret:
            return self.webhook

        timestamp = str(int(time.time() * 1000))
        string_to_sign = f"{timestamp}\n{self.secret}".encode("utf-8")
        h = hmac.new(self.secret.encode("utf-8"), string_to_sign, hashlib.sha256)
        sign = base64.b64encode(h.digest()).decode("utf-8")
        query = urlencode({"timestamp": timestamp, "sign": sign})
        if "?" in self.webhook:
            return f"{self.webhook}&{query}"
        return f"{self.webhook}?{query}"

    def build_payload(self, event_code: str, params: Dict[str, Any]) -> Dict[str, Any]:
        event_label = EVENT_LABELS.get(event_code, event_code)

        md_lines = [f"### 项目事件：**{event_label}**"]
        if params.get("project_name"):
            md_lines.append(f"> 项目名称：{params['project_name']}")
        if params.get("project_code"):
            md_lines.append(f"> 项目编号：{params['project_code']}")
        if params.get("operator_name"):
            md_lines.append(f"> 操作人：{params['operator_name']}")
        if params.get("message"):
            md_lines.append(f"> 说明：{params['message']}")

        return {
            "msgtype": "markdown",
            "markdown": {
                "title": f"项目事件：{event_label}",
                "text": "\n".join(md_lines),
            },
            "at": {"atMobiles": [], "isAtAll": False},
        }

    def send(self, event_code: str, params: Dict[str, Any] | None = None) -> None:
        payload = self.build_payload(event_code, params or {})
        try:
            resp = requests.post(self._build_signed_url(), json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            current_app.logger.warning("[Notification:DingTalk] send_error exc=%r", exc)
            return

        if resp.status_code != 200:
            current_app.logger.warning(
                "[Notification:DingTalk] http_error status=%s, body=%s",
                resp.status_code, resp.text,
            )


def build_notification_service(config) -> NotificationService:
    """根据 Flask 配置构造通知服务；钉钉配置不完整时回退到 Dummy。"""
    backend = (config.get("NOTIFICATION_BACKEND") or "dummy").lower()
    webhook = config.get("DINGTALK_WEBHOOK_URL")

    if backend == "ding" and webhook:
        return DingTalkRobotNotificationService(
            webhook=webhook,
            secret=config.get("DINGTALK_SECRET"),
        )
    return DummyNotificationService()


def get_notification_service() -> NotificationService:
    """每个 app 一个实例，挂在 app.extensions 上"""
    service = current_app.extensions.get("simpleux_notifier")
    if service is None:
        service = build_notification_service(current_app.config)
        current_app.extensions["simpleux_notifier"] = service
    return service


def notify(event_code: str, **params: Any) -> None:
    """发送通知，失败只记日志，不影响业务请求。"""
    try:
        get_notification_service().send(event_code, params)
    except Exception as exc:
        current_app.logger.warning(
            "[Notification] error event=%s, params=%s, exc=%r", event_code, params, exc
        )
