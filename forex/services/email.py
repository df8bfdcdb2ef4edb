import html
import logging
import os
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from anyio import to_thread

from forex.config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for the request workflow notification emails"""

    def __init__(self, settings: Settings):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.email_from = settings.EMAIL_FROM
        self.dashboard_url = settings.DASHBOARD_URL

        # Path to templates
        self.template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "emails")

    def _get_template(self, template_name):
        """Read an HTML template from file"""
        try:
            with open(os.path.join(self.template_dir, f"{template_name}.html"), "r") as f:
                return f.read()
        except OSError as e:
            logger.error("Error reading email template %s: %s", template_name, e)
            return None

    def _render(self, template, request, **values):
        """Fill placeholders; every value is HTML-escaped"""
        content = template.replace("{{request_code}}", html.escape(request.get("request_code", "")))
        content = content.replace("{{applicant_name}}", html.escape(request.get("applicant_name", "")))
        content = content.replace("{{status}}", html.escape(str(request.get("request_status", ""))))
        content = content.replace("{{dashboard_url}}", self.dashboard_url)
        content = content.replace("{{year}}", str(datetime.now().year))
        for key, value in values.items():
            content = content.replace("{{" + key + "}}", html.escape(str(value)))
        return content

    def _deliver(self, msg):
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

    async def send_email(self, to_emails, subject, html_content, cc_emails=None):
        """General method to send an email (Mocked if no credentials)"""
        to_emails = [address for address in to_emails if address]
        cc_emails = [address for address in (cc_emails or []) if address]
        if not to_emails:
            logger.warning("No recipients for email %r; skipped", subject)
            return False

        if not self.smtp_user or not self.smtp_password:
            logger.info("MOCK EMAIL to %s (cc %s): %s [%d bytes]",
                        ", ".join(to_emails), ", ".join(cc_emails), subject, len(html_content))
            return True

        try:
            msg = MIMEMultipart()
            msg['From'] = self.email_from
            msg['To'] = ", ".join(to_emails)
            if cc_emails:
                msg['Cc'] = ", ".join(cc_emails)
            msg['Subject'] = subject

            msg.attach(MIMEText(html_content, 'html'))

            # smtplib blocks; a deadline abandons the worker thread instead of waiting on it
            await to_thread.run_sync(self._deliver, msg, abandon_on_cancel=True)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email %r to %s: %s", subject, ", ".join(to_emails), e)
            return False

    async def send_request_submitted(self, request, applicant_email, desk_emails, cc_emails=None):
        """Acknowledge a new request to its creator and tell the forex desk"""
        template = self._get_template("request_submitted")
        if not template:
            return False

        currency = request.get("fcy_requested", {}).get("short_code", "")
        content = self._render(
            template,
            request,
            amount=f"{request.get('fcy_requested_amount', 0):,.2f}",
            currency=currency,
            branch=request.get("branch", {}).get("name", "N/A"),
        )
        return await self.send_email(
            [applicant_email] + list(desk_emails),
            f"Forex Request Submitted: {request.get('request_code')}",
            content,
            cc_emails,
        )

    async def send_request_authorized(self, request, desk_emails, cc_emails=None):
        template = self._get_template("request_authorized")
        if not template:
            return False

        authorizer = _full_name(request.get("authorizer"))
        content = self._render(template, request, authorizer=authorizer or "N/A")
        return await self.send_email(
            list(desk_emails),
            f"Forex Request Authorized: {request.get('request_code')}",
            content,
            cc_emails,
        )

    async def send_request_approved(self, request, requester_email, requester_name):
        """Tell the requester which currencies and amounts were approved"""
        template = self._get_template("request_approved")
        if not template:
            return False

        content = self._render(template, request, name=requester_name)
        content = content.replace("{{approved_lines}}", _approved_lines(request))
        return await self.send_email(
            [requester_email],
            f"Forex Request Approved: {request.get('request_code')}",
            content,
        )

    async def send_request_rejected(self, request, requester_email, requester_name):
        template = self._get_template("request_rejected")
        if not template:
            return await self.send_email(
                [requester_email],
                f"Forex Request Rejected: {request.get('request_code')}",
                f"Your request {request.get('request_code')} has been rejected.",
            )

        content = self._render(
            template,
            request,
            name=requester_name,
            rejection_reason=request.get("rejection_reason") or "No reason provided",
        )
        return await self.send_email(
            [requester_email],
            f"Forex Request Rejected: {request.get('request_code')}",
            content,
        )


def _full_name(actor):
    if not actor or "profile" not in actor:
        return ""
    profile = actor["profile"]
    parts = [profile.get("first_name"), profile.get("middle_name"), profile.get("last_name")]
    return " ".join(part for part in parts if part)


def _approved_lines(request):
    """HTML rows pairing each approved amount with its currency by id"""
    codes = {str(currency["_id"]): currency.get("short_code", "") for currency in request.get("approved_currencies", [])}
    rows = []
    for currency_id, amount in zip(request.get("approved_currency_ids") or [], request.get("approved_amounts") or []):
        rows.append(f"<tr><td>{html.escape(codes.get(str(currency_id), str(currency_id)))}</td><td>{amount:,.2f}</td></tr>")
    return "".join(rows)
