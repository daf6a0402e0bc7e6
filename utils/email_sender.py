"""
Email sending utilities for Plastic Clever Schools Evidence Review

This module contains the function for sending HTML emails through
Flask-Mail using the shared email template.
"""

from flask import render_template, current_app as app
from flask_mail import Message


def send_html_email(subject, recipients, email_title, email_content, details=None, button_text=None, button_url=None, sender=None):
    """Render the shared template and send one HTML email; returns True when handed to the mail server"""
    try:
        mail = app.mail

        if not app.config.get("MAIL_SERVER") and not app.config.get("MAIL_SUPPRESS_SEND"):
            app.logger.info(f"Mail server not configured, skipping email: {subject}")
            return False

        base_url = app.config.get("BASE_URL", "https://localhost:5000")

        html_content = render_template(
            "email_template.html",
            subject=subject,
            email_title=email_title,
            email_content=email_content,
            details=details,
            button_text=button_text,
            button_url=button_url,
            base_url=base_url,
        )

        # Plain-text alternative
        text_content = f"{email_title}\n\n{email_content}"
        if details:
            text_content += f"\n\nDetails:\n{details}"
        if button_url:
            text_content += f"\n\n{button_text or 'View'}: {button_url}"
        text_content += "\n\n---\nPlastic Clever Schools\nThis is an automated message, please do not reply."

        msg = Message(
            subject=subject,
            recipients=recipients if isinstance(recipients, list) else [recipients],
            sender=sender or app.config.get("MAIL_DEFAULT_SENDER") or app.config.get("MAIL_USERNAME") or "noreply@localhost",
            html=html_content,
            body=text_content,
        )

        mail.send(msg)
        app.logger.info(f"Email sent: {subject} -> {recipients}")
        return True

    except Exception as e:
        app.logger.warning(f"Failed to send email '{subject}': {e}")
        return False
