import asyncio
import smtplib
from email.message import EmailMessage

from shared.config import settings
from shared.errors import NotificationError


class SMTPMailer:
    """Sends HTML mail over SMTP. The blocking client runs in a worker thread."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_ssl: bool = False,
        sender: str = "orders@storefront.local",
        sender_name: str = "",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout

    def _build(self, recipient: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f'"{self.sender_name}" <{self.sender}>' if self.sender_name else self.sender
        msg["To"] = recipient
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage) -> None:
        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with server:
            if not self.use_ssl:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, recipient: str, subject: str, html: str) -> None:
        if not self.host:
            raise NotificationError("No SMTP host configured (EMAIL_HOST)")
        msg = self._build(recipient, subject, html)
        try:
            await asyncio.to_thread(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {recipient} failed: {exc}") from exc


def build_mailer() -> SMTPMailer:
    return SMTPMailer(
        host=settings.EMAIL_HOST,
        port=settings.EMAIL_PORT,
        username=settings.EMAIL_USER,
        password=settings.EMAIL_PASS,
        use_ssl=settings.EMAIL_SECURE,
        sender=settings.EMAIL_FROM,
        sender_name=settings.SHOP_NAME,
    )
