"""
Adapter pour les notifications.

Les boutiques et les acheteurs sont prévenus par email des événements
de leurs commandes. L'abstraction permet aux tests de capturer les
messages au lieu de les envoyer.
"""

from __future__ import annotations

import abc
import smtplib
from email.message import EmailMessage

from marketplace import config


class AbstractNotifications(abc.ABC):
    @abc.abstractmethod
    def send(self, destination: str, message: str) -> None:
        raise NotImplementedError


class EmailNotifications(AbstractNotifications):
    """Envoi SMTP, configuré par SMTP_HOST / SMTP_PORT."""

    def __init__(self, smtp_host: str | None = None, smtp_port: int | None = None):
        défaut = config.get_smtp_host_and_port()
        self.smtp_host = smtp_host or défaut["smtp_host"]
        self.smtp_port = smtp_port or défaut["smtp_port"]
        self.expéditeur = config.get_expéditeur_notifications()

    def send(self, destination: str, message: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = "Votre commande sur la marketplace"
        msg["From"] = self.expéditeur
        msg["To"] = destination
        msg.set_content(message)
        with smtplib.SMTP(self.smtp_host, self.smtp_port) as smtp:
            smtp.send_message(msg)
