"""
Commands du domaine.

Les commands représentent des intentions : quelque chose que
le système doit faire. Contrairement aux events (faits passés),
les commands sont des demandes qui peuvent échouer.
"""

from dataclasses import dataclass
from typing import Optional


class Command:
    """Classe de base pour toutes les commands."""
    pass


@dataclass(frozen=True)
class ArticleDemandé:
    """Une ligne du panier telle que l'acheteur l'a envoyée."""

    id_article: str
    quantité: int
    id_variation: Optional[str] = None


@dataclass(frozen=True)
class CréerCommande(Command):
    """Demande de création d'une commande à partir d'un panier."""

    id_acheteur: str
    articles: tuple[ArticleDemandé, ...]
    adresse_livraison: str
    est_livrable: bool
    commentaire: str = ""


@dataclass(frozen=True)
class ModifierStatutCommande(Command):
    id_commande: str
    statut: str
    id_demandeur: str
    rôle_demandeur: str


@dataclass(frozen=True)
class SupprimerCommande(Command):
    id_commande: str
    id_demandeur: str
    rôle_demandeur: str
