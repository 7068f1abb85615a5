"""Outbound email over SMTP."""
import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from app.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


class Mailer:
    """Sends plain-text messages; every transport failure becomes ``EmailDeliveryError``."""

    def __init__(self, host='localhost', port=25, username=None, password=None,
                 sender=None, use_tls=False, timeout=10):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config['MAIL_HOST'],
            port=config['MAIL_PORT'],
            username=config.get('MAIL_USERNAME'),
            password=config.get('MAIL_PASSWORD'),
            sender=config.get('MAIL_FROM'),
            use_tls=config.get('MAIL_USE_TLS', False),
            timeout=config.get('MAIL_TIMEOUT', 10),
        )

    def build_message(self, recipient, subject, body):
        msg = EmailMessage()
        msg['Subject'] = subject
        msg['From'] = self.sender or self.username
        msg['To'] = recipient
        msg.set_content(body)
        return msg

    def send(self, recipient, subject, body):
        msg = self.build_message(recipient, subject, body)
        logger.info('Sending email to %s: %s', recipient, subject)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error('Email to %s failed: %s', recipient, exc)
            raise EmailDeliveryError() from exc


def init_mailer(app):
    app.extensions['mailer'] = Mailer.from_config(app.config)


def get_mailer():
    return current_app.extensions['mailer']


def send_email(recipient, subject, body):
    get_mailer().send(recipient, subject, body)
