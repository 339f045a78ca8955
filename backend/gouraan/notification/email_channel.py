"""
邮件通知渠道 - SMTP 发送邮件
"""
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from gouraan_core.notification.channel import ChannelMessage, INotificationChannel

logger = logging.getLogger(__name__)

# 通知类型 → 邮件模板名
EMAIL_TEMPLATES = {
    "booking_confirmation": "booking-confirmation",
    "booking_cancelled": "booking-cancelled",
    "payment_success": "payment-success",
    "payment_failed": "payment-failed",
    "flight_reminder": "flight-reminder",
    "promotional": "promotional",
    "system_alert": "system-alert",
}


def get_email_template(notification_type: str) -> str:
    return EMAIL_TEMPLATES.get(notification_type, "default")


class EmailChannel(INotificationChannel):
    """SMTP 邮件通知渠道"""

    channel_type = "email"

    def __init__(
        self,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        sender_email: str = "",
        use_tls: bool = True,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender_email = sender_email or smtp_user
        self.use_tls = use_tls

    def send(self, recipient: str, message: ChannelMessage) -> bool:
        """发送邮件

        message.extra 可选：content_type（html 或 plain）、cc、template
        """
        extra = message.extra
        try:
            content_type = extra.get("content_type", "plain")

            msg = MIMEMultipart()
            msg["From"] = self.sender_email
            msg["To"] = recipient
            msg["Subject"] = message.subject
            if template := extra.get("template"):
                msg["X-Template"] = template

            if cc := extra.get("cc"):
                msg["Cc"] = cc
            msg.attach(MIMEText(message.content, content_type, "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {recipient}: {message.subject}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {recipient}: {e}")
            return False
