import asyncio
import smtplib
from email.message import EmailMessage

from loguru import logger

from ...digest.render import build_digest_html, build_digest_text, format_display_date
from ...domain.models import Digest


class EmailNotifier:
    """Send the digest as a text + HTML e-mail over SMTP with SSL."""

    name = "email"

    def __init__(self, host: str, port: int, user: str, password: str, recipient: str, timeout: float = 30.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.recipient = recipient
        self.timeout = timeout

    def build_message(self, digest: Digest, date: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = (
            f"Tech Newsletter - {format_display_date(date)} "
            f"({digest.total_curated} curated articles)"
        )
        message["From"] = f"Tech Newsletter <{self.user}>"
        message["To"] = self.recipient
        message.set_content(build_digest_text(digest, date))
        message.add_alternative(build_digest_html(digest, date), subtype="html")
        return message

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def notify(self, digest: Digest, date: str) -> None:
        message = self.build_message(digest, date)
        await asyncio.to_thread(self._send, message)
        logger.info(f"[notify] E-mail sent to {self.recipient}")
