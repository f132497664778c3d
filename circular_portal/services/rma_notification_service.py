# circular_portal/services/rma_notification_service.py
import logging

import requests
from flask import current_app

from . import email_service

CHANNEL_WEBHOOK = 'webhook'
CHANNEL_EMAIL = 'email'
CHANNEL_NONE = 'none'

CLAIM_FIELD_LABELS = (
    ('full_name', 'Full name'),
    ('company_name', 'Company'),
    ('email', 'Email'),
    ('phone', 'Phone'),
    ('address', 'Address'),
    ('delivery_address', 'Delivery address'),
    ('recipient_contact_number', 'Recipient contact number'),
    ('country_of_purchase', 'Country of purchase'),
    ('number_of_products', 'Number of products'),
    ('product_make_model', 'Make / model'),
    ('manufacturer_serial_number', 'Manufacturer serial number'),
    ('in_house_serial_number', 'In-house serial number'),
    ('fault_description', 'Fault description'),
)


class RmaNotificationService:
    """
    Handles a submitted warranty claim: records it as an RMA request log,
    then tells the back office. An HTTPS webhook is tried first; a 2xx reply
    approves the request. Otherwise the configured admins are emailed and the
    request stays 'submitted'. There are no retries.
    """

    def __init__(self, storage, app=None):
        self.storage = storage
        self.logger = app.logger if app is not None else logging.getLogger(__name__)

    def get_admin_settings(self):
        return self.storage.get_setting('admin_settings') or {}

    def get_webhook_url(self):
        return self.get_admin_settings().get('rma_webhook_url') or current_app.config.get('RMA_WEBHOOK_URL')

    def submit_request(self, current_user, claim):
        """
        `claim` is a validated WarrantyClaimSchema. Returns (request_log, pending_user_created).
        Notification problems are logged and never raised.
        """
        payload = claim.model_dump(mode='json')
        owner, pending_created = current_user, False
        if claim.email.strip().lower() != (current_user.get('email') or '').lower() and not claim.track_under_current_account:
            existing = self.storage.get_user_by_email(claim.email)
            if existing and existing['is_active']:
                # claims never move into another customer's live account
                self.logger.info(f"Claim email {claim.email} belongs to active user {existing['id']}; "
                                 f"keeping the claim under user {current_user['id']}")
            else:
                owner, pending_created = self.storage.get_or_create_pending_user(
                    email=claim.email,
                    name=claim.full_name,
                    company=claim.company_name,
                    phone_number=claim.phone,
                )
                if pending_created:
                    self._send_new_user_alert(owner, current_user)

        request_log = self.storage.create_rma_request_log({
            'user_id': owner['id'],
            'submitted_by_user_id': current_user['id'],
            'email': claim.email,
            'full_name': claim.full_name,
            'company_name': claim.company_name,
            'payload': payload,
            'status': 'submitted',
        })
        self.logger.info(f"RMA request {request_log['request_number']} submitted by user {current_user['id']} for user {owner['id']}")

        try:
            request_log = self.dispatch(request_log)
        except Exception as e:
            self.logger.error(f"Notification for RMA request {request_log['request_number']} failed: {e}", exc_info=True)
        return request_log, pending_created

    def dispatch(self, request_log):
        webhook_url = self.get_webhook_url()
        if webhook_url and webhook_url.lower().startswith('https://'):
            reason = self._post_webhook(webhook_url, request_log)
            if reason is None:
                return self.storage.update_rma_request_log(request_log['id'], {
                    'status': 'approved',
                    'notification_channel': CHANNEL_WEBHOOK,
                    'notification_detail': f"Delivered to {webhook_url}",
                })
        elif webhook_url:
            reason = "Webhook URL is not HTTPS; skipped"
            self.logger.warning(f"Ignoring non-HTTPS RMA webhook URL: {webhook_url}")
        else:
            reason = "No webhook configured"
        return self._notify_by_email(request_log, reason)

    def _post_webhook(self, url, request_log):
        """Returns None on a 2xx response, otherwise the failure reason."""
        body = {
            'event': 'rma_request.submitted',
            'request_number': request_log['request_number'],
            'submitted_at': request_log['created_at'],
            'user_id': request_log['user_id'],
            'submitted_by_user_id': request_log['submitted_by_user_id'],
            'claim': request_log['payload'],
        }
        timeout = current_app.config.get('RMA_WEBHOOK_TIMEOUT', 10)
        try:
            response = requests.post(url, json=body, timeout=timeout)
        except requests.RequestException as e:
            self.logger.warning(f"RMA webhook request to {url} failed: {e}")
            return f"Webhook request failed: {e}"
        if 200 <= response.status_code < 300:
            self.logger.info(f"RMA webhook accepted request {request_log['request_number']} (HTTP {response.status_code})")
            return None
        self.logger.warning(f"RMA webhook returned HTTP {response.status_code} for {request_log['request_number']}")
        return f"Webhook returned HTTP {response.status_code}"

    def _recipients(self, setting_key):
        recipients = [email for email in self.get_admin_settings().get(setting_key) or [] if email]
        if not recipients and current_app.config.get('ADMIN_EMAIL'):
            recipients = [current_app.config['ADMIN_EMAIL']]
        return recipients

    def _notify_by_email(self, request_log, reason):
        recipients = self._recipients('rma_notification_emails')
        if not recipients:
            self.logger.error(f"No RMA notification recipients configured; request {request_log['request_number']} was not forwarded.")
            return self.storage.update_rma_request_log(request_log['id'], {
                'notification_channel': CHANNEL_NONE,
                'notification_detail': f"{reason}; no email recipients configured",
            })

        claim = request_log['payload']
        subject = f"New warranty claim {request_log['request_number']} from {claim.get('company_name') or claim.get('full_name')}"
        lines = [f"A warranty claim was submitted ({reason.lower()}).", ""]
        lines += [f"{label}: {claim.get(field)}" for field, label in CLAIM_FIELD_LABELS if claim.get(field) not in (None, '')]
        body = "\n".join(lines)

        sent = [recipient for recipient in recipients if email_service.send_email(recipient, subject, body)]
        return self.storage.update_rma_request_log(request_log['id'], {
            'notification_channel': CHANNEL_EMAIL,
            'notification_detail': f"{reason}; emailed {len(sent)} of {len(recipients)} recipients: {', '.join(sent) or 'none'}",
        })

    def _send_new_user_alert(self, new_user, submitted_by):
        subject = f"Pending account created for {new_user['email']}"
        body = (
            f"A warranty claim created a pending account that needs approval.\n\n"
            f"Name: {new_user['name']}\nCompany: {new_user['company']}\nEmail: {new_user['email']}\n"
            f"Submitted by user {submitted_by['id']} ({submitted_by.get('email')})"
        )
        for recipient in self._recipients('new_user_alert_emails'):
            email_service.send_email(recipient, subject, body)
