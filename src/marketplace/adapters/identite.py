"""
Adapter pour le fournisseur d'identité.

L'authentification est déléguée à Supabase Auth : on ne fait que
vérifier un jeton Bearer et récupérer l'identifiant d'authentification
(`auth_id`) du compte. Le profil applicatif est ensuite lu dans la table
`users` par l'entrypoint.
"""

from __future__ import annotations

import abc
import logging

import httpx

from marketplace import config

logger = logging.getLogger(__name__)


class AbstractIdentité(abc.ABC):
    @abc.abstractmethod
    def vérifier_jeton(self, jeton: str) -> str | None:
        """Retourne l'auth_id associé au jeton, ou None si le jeton est invalide."""
        raise NotImplementedError


class SupabaseIdentité(AbstractIdentité):
    def __init__(
        self,
        url: str | None = None,
        clé_service: str | None = None,
        timeout: float = 10,
    ):
        self.url = url or config.get_supabase_url()
        self.clé_service = clé_service or config.get_supabase_service_role_key()
        self.timeout = timeout

    def vérifier_jeton(self, jeton: str) -> str | None:
        headers = {
            "Authorization": f"Bearer {jeton}",
            "apikey": self.clé_service,
        }
        with httpx.Client(timeout=self.timeout) as client:
            response = client.get(f"{self.url}/auth/v1/user", headers=headers)
        if response.status_code != 200:
            logger.info("Jeton refusé par le fournisseur d'identité (%d)", response.status_code)
            return None
        return response.json().get("id")
