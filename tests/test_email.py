# File: tests/test_email.py

import smtplib

import pytest

from app.errors import EmailDeliveryError
from app.services.email import Mailer


class RecordingSMTP:
    sent = []
    fail = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        if RecordingSMTP.fail:
            raise smtplib.SMTPConnectError(421, 'unavailable')
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, msg):
        RecordingSMTP.sent.append(msg)


@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.sent = []
    RecordingSMTP.fail = False
    monkeypatch.setattr(smtplib, 'SMTP', RecordingSMTP)
    return RecordingSMTP


def test_send_builds_plain_text_message(smtp):
    mailer = Mailer(host='mail.test', port=2525, sender='Natours <hello@natours.io>')
    mailer.send('a@x.com', 'Hello', 'Body text')

    msg = smtp.sent[0]
    assert msg['To'] == 'a@x.com'
    assert msg['From'] == 'Natours <hello@natours.io>'
    assert msg['Subject'] == 'Hello'
    assert 'Body text' in msg.get_content()


def test_transport_failure_is_email_delivery_error(smtp):
    smtp.fail = True
    with pytest.raises(EmailDeliveryError):
        Mailer().send('a@x.com', 'Hello', 'Body text')


def test_mailer_from_config():
    mailer = Mailer.from_config({
        'MAIL_HOST': 'smtp.test', 'MAIL_PORT': 587, 'MAIL_USE_TLS': True, 'MAIL_FROM': 'x@y.z',
    })
    assert (mailer.host, mailer.port, mailer.use_tls, mailer.sender) == ('smtp.test', 587, True, 'x@y.z')
