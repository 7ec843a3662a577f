"""
Events du domaine.

Les events représentent des faits qui se sont produits dans le système.
Ils sont immuables et nommés au passé (quelque chose s'est passé).
"""

from dataclasses import dataclass


class Event:
    """Classe de base pour tous les events du domaine."""
    pass


@dataclass(frozen=True)
class CommandeCréée(Event):
    """Une commande a été enregistrée et réglée."""

    id_commande: str
    numéro: str
    id_acheteur: str
    prix: int
    ids_boutiques: tuple[str, ...]


@dataclass(frozen=True)
class StockÉpuisé(Event):
    """Le stock d'une variation est tombé à zéro après une commande."""

    id_variation: str
    id_article: str
    id_boutique: str


@dataclass(frozen=True)
class StatutCommandeModifié(Event):
    id_commande: str
    numéro: str
    id_acheteur: str
    ancien_statut: str
    nouveau_statut: str
