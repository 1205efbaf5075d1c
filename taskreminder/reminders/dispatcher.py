import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Optional

from taskreminder.core.config import Settings, settings as core_settings
from .config import settings as reminder_settings
from .exceptions import TransportError

logger = logging.getLogger(__name__)


class SMTPTransport:
    """Outbound reminder mail over SMTP (implicit TLS on 465, STARTTLS otherwise)."""

    def __init__(
        self,
        server: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None,
        timeout: float = 30,
    ):
        if not server:
            raise ValueError("SMTP_SERVER is required but not configured")
        self.server = server
        self.port = int(port)
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == 465:
            conn = smtplib.SMTP_SSL(self.server, self.port, timeout=self.timeout, context=context)
        else:
            conn = smtplib.SMTP(self.server, self.port, timeout=self.timeout)
        try:
            if self.port != 465:
                conn.starttls(context=context)
            if self.username and self.password:
                conn.login(self.username, self.password)
        except Exception:
            conn.close()
            raise
        return conn

    def verify(self) -> bool:
        """Startup health check: connect and authenticate, then hang up."""
        try:
            with self._connect() as conn:
                conn.noop()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ [SMTP] Connection check failed for {self.server}:{self.port}: {e!r}")
            return False
        logger.info(f"✅ [SMTP] Server {self.server}:{self.port} is ready to send emails")
        return True

    def send(self, sender: Optional[str], to: str, subject: str, body: str) -> None:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = sender or self.from_email
        msg["To"] = to
        try:
            with self._connect() as conn:
                conn.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            # socket.timeout is an OSError, so a stalled server lands here too
            raise TransportError(f"sending to {to} failed: {e!r}") from e


class ConsoleTransport:
    """Development transport: logs the reminder instead of delivering it."""

    def __init__(self, from_email: Optional[str] = None):
        self.from_email = from_email or "reminders@localhost"

    def verify(self) -> bool:
        logger.info("📧 [Console] Console transport active, reminders will be logged only")
        return True

    def send(self, sender: Optional[str], to: str, subject: str, body: str) -> None:
        logger.info(f"📧 [Console] Would send email from {sender or self.from_email} to {to}")
        logger.info(f"📧 [Console] Subject: {subject}")
        logger.info(f"📧 [Console] Body: {body}")


def build_transport(cfg: Optional[Settings] = None, timeout: Optional[float] = None):
    cfg = cfg or core_settings
    if not cfg.SMTP_SERVER:
        logger.warning("⚠️  [Dispatch] SMTP_SERVER not configured - falling back to console transport")
        return ConsoleTransport(from_email=cfg.FROM_EMAIL)
    return SMTPTransport(
        server=cfg.SMTP_SERVER,
        port=cfg.SMTP_PORT,
        username=cfg.SMTP_USERNAME,
        password=cfg.SMTP_PASSWORD,
        from_email=cfg.FROM_EMAIL,
        timeout=timeout if timeout is not None else reminder_settings.SEND_TIMEOUT_SECONDS,
    )
