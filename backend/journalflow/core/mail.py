import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, Optional

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from tenacity import retry, stop_after_attempt, wait_exponential

from journalflow.core.config import ResendConfig, SMTPConfig

logger = logging.getLogger("journalflow.mail")

# 通知类型 -> 邮件模板
TEMPLATE_BY_TYPE: dict[str, str] = {
    "submission_received": "submission_received.html",
    "reviewer_assigned": "reviewer_assigned.html",
    "review_submitted": "review_submitted.html",
    "decision_made": "decision_made.html",
    "revision_requested": "decision_made.html",
    "paper_published": "paper_published.html",
    "submission_withdrawn": "submission_withdrawn.html",
    "review_reminder": "review_reminder.html",
}


class EmailService:
    _SENTINEL = object()

    def __init__(
        self,
        *,
        smtp_config: SMTPConfig | None | object = _SENTINEL,
        resend_config: ResendConfig | None | object = _SENTINEL,
    ):
        # 中文注释:
        # - smtp_config / resend_config 支持依赖注入，方便单测与不同环境切换。
        # - 若调用方显式传 None，则视为禁用该 provider。
        if smtp_config is self._SENTINEL:
            smtp_config = SMTPConfig.from_env()
        if resend_config is self._SENTINEL:
            resend_config = ResendConfig.from_env()

        self.smtp_config: SMTPConfig | None = smtp_config  # type: ignore[assignment]
        self.resend_config: ResendConfig | None = resend_config  # type: ignore[assignment]

        if self.resend_config:
            resend.api_key = self.resend_config.api_key

        templates_dir = Path(__file__).resolve().parent / "templates"
        self._jinja = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def is_configured(self) -> bool:
        return bool(self.smtp_config or self.resend_config)

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        return self._jinja.get_template(template_name).render(**context)

    def send_email(
        self,
        *,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> bool:
        """
        发送邮件（同步）。

        中文注释:
        - Resend 已配置时优先走 Resend（带重试）。
        - 否则走 SMTP；两者都未配置时直接返回 False（只记录日志）。
        """
        if self.resend_config:
            try:
                self._send_with_retry(to_email, subject, html_body, text_body)
                return True
            except Exception as e:
                logger.warning("[Resend] send failed: %s", e)
                return False

        if self.smtp_config:
            try:
                msg = MIMEMultipart("alternative")
                msg["Subject"] = subject
                msg["From"] = self.smtp_config.from_email
                msg["To"] = to_email

                if text_body:
                    msg.attach(MIMEText(text_body, "plain", "utf-8"))
                msg.attach(MIMEText(html_body, "html", "utf-8"))

                with smtplib.SMTP(self.smtp_config.host, self.smtp_config.port) as server:
                    if self.smtp_config.use_starttls:
                        server.starttls()
                    if self.smtp_config.user and self.smtp_config.password:
                        server.login(self.smtp_config.user, self.smtp_config.password)
                    server.sendmail(self.smtp_config.from_email, [to_email], msg.as_string())
                return True
            except Exception as e:
                logger.warning("[SMTP] send failed: %s", e)
                return False

        return False

    def send_template_email(
        self,
        *,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
        text_body: str | None = None,
    ) -> bool:
        if not self.is_configured():
            return False
        try:
            html = self.render_template(template_name, context)
        except Exception as e:
            logger.warning("[Email] template render failed: %s", e)
            return False
        return self.send_email(to_email=to_email, subject=subject, html_body=html, text_body=text_body)

    def send_notification_email(
        self,
        *,
        to_email: str,
        notification_type: str,
        subject: str,
        context: Dict[str, Any],
    ) -> bool:
        """
        按通知类型选择模板发送；站内信的 message 同时作为纯文本正文。
        """
        template_name: Optional[str] = TEMPLATE_BY_TYPE.get(notification_type)
        if not template_name:
            return False
        return self.send_template_email(
            to_email=to_email,
            subject=subject,
            template_name=template_name,
            context=context,
            text_body=str(context.get("message") or "") or None,
        )

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
    def _send_with_retry(self, to_email: str, subject: str, html_content: str, text_content: str | None = None):
        params = {
            "from": self.resend_config.sender if self.resend_config else "noreply@journal.example",
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            params["text"] = text_content
        return resend.Emails.send(params)
