import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formatdate

from peereval.core.config.settings import get_settings

logger = logging.getLogger(__name__)

def send_email(to_email: str, subject: str, html_content: str) -> bool:
    """
    Send an HTML email using SMTP

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_content: HTML body of the email

    Returns:
        True when the SMTP server accepted the message
    """
    settings = get_settings()
    try:
        msg = MIMEMultipart()
        msg['From'] = settings.DEFAULT_FROM_EMAIL
        msg['To'] = to_email
        msg['Subject'] = subject
        msg['Date'] = formatdate(localtime=True)

        # Attach HTML content
        msg.attach(MIMEText(html_content, 'html'))

        with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=30) as server:
            if settings.EMAIL_USE_TLS:
                server.starttls()
            if settings.EMAIL_HOST_USER:
                server.login(settings.EMAIL_HOST_USER, settings.EMAIL_HOST_PASSWORD)
            server.sendmail(settings.EMAIL_HOST_USER or settings.DEFAULT_FROM_EMAIL, to_email, msg.as_string())

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {str(e)}", exc_info=True)
        return False

def create_password_reset_email(reset_link: str, expiry_minutes: int = 60) -> str:
    """
    Create HTML email content for a password reset link
    """
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>Reset your password</title>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background-color: #2f5fa8; color: white; padding: 10px; text-align: center; }}
            .content {{ padding: 20px; background-color: #f9f9f9; }}
            .button {{ display: inline-block; padding: 12px 24px; margin: 20px 0;
                      background-color: #2f5fa8; color: white; text-decoration: none; border-radius: 4px; }}
            .footer {{ font-size: 12px; text-align: center; margin-top: 20px; color: #1f2e6a; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h2>Password Reset</h2>
            </div>
            <div class="content">
                <p>Hello,</p>
                <p>You've requested to reset your password for your PeerEval account.</p>
                <p>Use the link below to choose a new password:</p>

                <p><a class="button" href="{reset_link}">Reset password</a></p>

                <p>This link is valid for {expiry_minutes} minutes and can only be used once.</p>
                <p>If you didn't request a password reset, please ignore this email.</p>
            </div>
            <div class="footer">
                <p>This is an automated message, please do not reply directly to this email.</p>
            </div>
        </div>
    </body>
    </html>
    """
