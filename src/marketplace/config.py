"""
Configuration de l'application.

Toutes les valeurs viennent des variables d'environnement ; un fichier
`.env` à la racine du projet est chargé s'il existe. Les valeurs par défaut
permettent de lancer l'application en local sans configuration.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def get_database_uri() -> str:
    return os.environ.get("DATABASE_URL", "sqlite:///marketplace.db")


def get_supabase_url() -> str:
    return os.environ.get("SUPABASE_URL", "http://localhost:54321").rstrip("/")


def get_supabase_service_role_key() -> str:
    return os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")


def get_smtp_host_and_port() -> dict:
    host = os.environ.get("SMTP_HOST", "localhost")
    port = 11025 if host == "localhost" else 587
    return dict(smtp_host=host, smtp_port=int(os.environ.get("SMTP_PORT", port)))


def get_expéditeur_notifications() -> str:
    return os.environ.get("NOTIFICATIONS_FROM", "commandes@example.com")


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
