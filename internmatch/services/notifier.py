"""
Email Notifier - plain SMTP delivery of lifecycle notifications.

Notifications are fire and forget: a failed delivery is logged and the
request that triggered it still succeeds.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional

from internmatch.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


TEMPLATES = {
    "application_received": (
        "New application for {internship_title}",
        "Hello {company_name},\n\n"
        "{student_name} has applied to your internship \"{internship_title}\".\n\n"
        "Review applicants: {frontend_url}/company/applicants\n"
    ),
    "application_status_changed": (
        "Your application for {internship_title} is now {status}",
        "Hello {student_name},\n\n"
        "Your application to \"{internship_title}\" has been updated to: {status}.\n"
        "{feedback_block}\n"
        "View your applications: {frontend_url}/applications\n"
    ),
    "resume_scan_rejected": (
        "Your resume {file_name} could not be accepted",
        "Hello {student_name},\n\n"
        "The file \"{file_name}\" did not pass our security scan and cannot be\n"
        "attached to applications.\n"
        "{message}\n\n"
        "Upload a new resume: {frontend_url}/profile\n"
    ),
    "resume_scan_clean": (
        "Your resume {file_name} is ready",
        "Hello {student_name},\n\n"
        "\"{file_name}\" passed our security scan and can now be attached to applications.\n"
    ),
}


def render_template(kind: str, context: dict, frontend_url: str = "") -> tuple:
    """Render (subject, body) for a notification kind. Missing keys render empty."""
    subject, body = TEMPLATES[kind]
    values = _Defaults(context)
    values.setdefault("frontend_url", frontend_url)
    feedback = context.get("feedback")
    values.setdefault("feedback_block", f"\nFeedback from the company:\n{feedback}\n" if feedback else "")
    return subject.format_map(values), body.format_map(values)


class _Defaults(dict):
    def __missing__(self, key):
        return ""


class EmailNotifier:
    """
    Sends templated emails over SMTP.

    `schedule` defers the actual delivery (FastAPI's BackgroundTasks.add_task
    in the request path); without it the email is sent inline.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 schedule: Optional[Callable] = None):
        self.settings = settings or get_settings()
        self.schedule = schedule

    def notify(self, recipient_email: Optional[str], kind: str, context: dict) -> None:
        if not recipient_email:
            logger.info("No recipient for %s notification, skipping", kind)
            return
        if not self.settings.email_enabled:
            logger.debug("Email disabled, not sending %s to %s", kind, recipient_email)
            return

        subject, body = render_template(kind, context, self.settings.frontend_url)
        if self.schedule is not None:
            self.schedule(self._deliver, recipient_email, subject, body)
        else:
            self._deliver(recipient_email, subject, body)

    def _deliver(self, recipient: str, subject: str, body: str) -> None:
        msg = MIMEMultipart()
        msg["From"] = self.settings.email_sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port,
                              timeout=self.settings.smtp_timeout_seconds) as server:
                server.starttls()
                if self.settings.smtp_user:
                    server.login(self.settings.smtp_user, self.settings.smtp_password)
                server.sendmail(msg["From"], [recipient], msg.as_string())
            logger.info("Email sent to %s", recipient)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send email to %s: %s", recipient, e)
