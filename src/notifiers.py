"""Notification handlers for scanner alerts."""

import os
import re
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests

from models import RankedRepo
from utils.logging_config import get_logger

logger = get_logger("notifiers")


def format_alert_text(repos: list[RankedRepo]) -> str:
    """Plain-text body listing newly trending repositories."""
    lines = ["New fast-growing repositories on GitHub:", ""]
    for ranked in repos:
        entity = ranked.entity
        lines.append(f"* {entity.full_name} ({ranked.category})")
        lines.append(
            f"  {entity.stars:,} stars in {ranked.days_old} days, "
            f"{ranked.velocity_score:.1f} stars/day"
        )
        if entity.description:
            lines.append(f"  {entity.description}")
        lines.append(f"  {entity.html_url}")
        lines.append("")
    lines.append("You are receiving this because you subscribed to Spark Finder alerts.")
    return "\n".join(lines)


class EmailNotifier:
    """Send alert emails via SMTP."""

    def __init__(
        self,
        smtp_server: str,
        smtp_port: int,
        username: str,
        password: str,
        from_addr: str,
    ):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.from_addr = from_addr

    def notify(self, repos: list[RankedRepo], to_addrs: list[str]) -> bool:
        """Email the alert to every recipient.

        Returns:
            True if the email was sent.
        """
        if not to_addrs or not repos:
            return False

        msg = MIMEMultipart("alternative")
        date_str = datetime.now().strftime("%Y-%m-%d")
        msg["Subject"] = f"Spark Finder: {len(repos)} new trending repositories ({date_str})"
        msg["From"] = self.from_addr
        # Recipients go in the envelope only so subscribers do not see each other.
        msg["To"] = self.from_addr
        msg.attach(MIMEText(format_alert_text(repos), "plain", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.from_addr, to_addrs, msg.as_string())
            logger.info("Alert email sent to %d subscribers", len(to_addrs))
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending alert email: %s", e)
            return False


class WebhookNotifier:
    """Send alerts via webhook (POST JSON)."""

    def __init__(self, url: str):
        self.url = url

    def notify(self, repos: list[RankedRepo], to_addrs: list[str] = None) -> bool:
        payload = {
            "timestamp": datetime.now().isoformat(),
            "count": len(repos),
            "repos": [r.to_dict() for r in repos],
        }

        try:
            response = requests.post(
                self.url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=30,
            )
            response.raise_for_status()
            logger.info("Webhook sent to %s", self.url)
            return True
        except requests.RequestException as e:
            logger.error("Error sending webhook: %s", e)
            return False


def expand_env_vars(value: str) -> str:
    """Expand ``${VAR}`` patterns from the environment; non-strings pass through."""
    if not isinstance(value, str):
        return value

    def replace(match):
        return os.environ.get(match.group(1), "")

    return re.sub(r"\$\{([^}]+)\}", replace, value)


def create_notifiers(config: dict) -> list:
    """Create notifier instances from the ``email`` and ``webhook`` config sections.

    Returns:
        List of enabled notifier instances.
    """
    notifiers = []

    email_cfg = config.get("email", {})
    if email_cfg.get("enabled", False):
        notifiers.append(
            EmailNotifier(
                smtp_server=expand_env_vars(email_cfg.get("smtp_server", "")),
                smtp_port=email_cfg.get("smtp_port", 587),
                username=expand_env_vars(email_cfg.get("username", "")),
                password=expand_env_vars(email_cfg.get("password", "")),
                from_addr=expand_env_vars(email_cfg.get("from_addr", "")),
            )
        )

    webhook_cfg = config.get("webhook", {})
    if webhook_cfg.get("enabled", False):
        notifiers.append(WebhookNotifier(url=expand_env_vars(webhook_cfg.get("url", ""))))

    return notifiers
