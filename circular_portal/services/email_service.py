# circular_portal/services/email_service.py
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from flask import current_app


def send_email(to_email, subject, body_text, body_html=None):
    """
    Sends one message over SMTP using the MAIL_* settings.
    Without a MAIL_SERVER (or with MAIL_SUPPRESS_SEND) the message is only
    logged and counted as sent. Returns True on success, never raises.
    """
    if not to_email:
        current_app.logger.error(f"No recipient for email '{subject}'.")
        return False

    if current_app.config.get('MAIL_SUPPRESS_SEND') or not current_app.config.get('MAIL_SERVER'):
        current_app.logger.info(f"SIMULATED: email to {to_email} | Subject: {subject} | Body: {body_text[:500]}")
        return True

    sender = current_app.config.get('MAIL_DEFAULT_SENDER') or current_app.config.get('MAIL_USERNAME')
    msg_obj = MIMEMultipart('alternative')
    msg_obj['From'] = sender
    msg_obj['To'] = to_email
    msg_obj['Subject'] = subject
    msg_obj.attach(MIMEText(body_text, 'plain'))
    if body_html:
        msg_obj.attach(MIMEText(body_html, 'html'))

    try:
        mail_port = current_app.config.get('MAIL_PORT', 587)
        use_tls = current_app.config.get('MAIL_USE_TLS', True)
        use_ssl = current_app.config.get('MAIL_USE_SSL', False)
        if use_ssl: server = smtplib.SMTP_SSL(current_app.config['MAIL_SERVER'], mail_port, timeout=10)
        else: server = smtplib.SMTP(current_app.config['MAIL_SERVER'], mail_port, timeout=10)
        try:
            if use_tls and not use_ssl: server.starttls()
            if current_app.config.get('MAIL_USERNAME') and current_app.config.get('MAIL_PASSWORD'):
                server.login(current_app.config['MAIL_USERNAME'], current_app.config['MAIL_PASSWORD'])
            server.sendmail(sender, [to_email], msg_obj.as_string())
        finally:
            server.quit()
        current_app.logger.info(f"Email '{subject}' sent to {to_email}.")
        return True
    except Exception as e:
        current_app.logger.error(f"Failed to send email '{subject}' to {to_email}: {e}", exc_info=True)
        return False
