"""
Modèle de domaine des commandes de la marketplace.

Ce module contient les entités manipulées par le processus de commande :
les comptes (acheteurs, boutiques, administrateur), les articles et leurs
variations, et l'agrégat Commande avec ses lignes.

Les montants sont des entiers (francs CFA, pas de centimes).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from marketplace.domain import events


RÔLE_ADMINISTRATEUR = "Administrateur"

STATUT_EN_ATTENTE = "En attente"
STATUT_ANNULÉE = "Annulée"

STATUTS_COMMANDE = (
    STATUT_EN_ATTENTE,
    "En préparation",
    "Prête pour livraison",
    "En cours de livraison",
    "Livrée",
    STATUT_ANNULÉE,
    "Remboursée",
)

STATUTS_SUPPRIMABLES = (STATUT_EN_ATTENTE, STATUT_ANNULÉE)


# --- Exceptions ---


class Introuvable(Exception):
    """Une entité référencée n'existe pas."""
    pass


class ArticleIntrouvable(Introuvable):
    pass


class VariationIntrouvable(Introuvable):
    pass


class CompteIntrouvable(Introuvable):
    pass


class CommandeIntrouvable(Introuvable):
    pass


class StockInsuffisant(Exception):
    """Levée quand la quantité demandée dépasse le stock disponible."""
    pass


class StatutInvalide(Exception):
    pass


class SuppressionImpossible(Exception):
    """Levée quand le statut de la commande interdit sa suppression."""
    pass


class AccèsRefusé(Exception):
    pass


def maintenant() -> datetime:
    return datetime.now(timezone.utc)


# --- Comptes ---


class Utilisateur:
    """
    Compte de la plateforme.

    Un même type porte les acheteurs, les boutiques (vendeurs) et le compte
    administrateur qui encaisse les frais de service. Le solde n'est jamais
    modifié en mémoire : il est incrémenté en base par le repository.
    """

    def __init__(
        self,
        id: str,
        nom: str,
        email: str,
        rôle: str = "Client",
        solde: int = 0,
        auth_id: Optional[str] = None,
    ):
        self.id = id
        self.nom = nom
        self.email = email
        self.rôle = rôle
        self.solde = solde
        self.auth_id = auth_id

    def __repr__(self) -> str:
        return f"<Utilisateur {self.id} {self.rôle}>"

    @property
    def est_administrateur(self) -> bool:
        return self.rôle == RÔLE_ADMINISTRATEUR


# --- Catalogue ---


class Variation:
    """
    Déclinaison achetable d'un article (couleur, taille) avec son propre stock.

    Un prix à 0 ou absent signifie « pas de prix propre » : c'est alors le
    prix de l'article qui s'applique.
    """

    def __init__(
        self,
        id: str,
        id_article: str,
        stock: int = 0,
        prix: Optional[int] = None,
        couleur: Optional[str] = None,
        taille: Optional[str] = None,
    ):
        self.id = id
        self.id_article = id_article
        self.stock = stock
        self.prix = prix
        self.couleur = couleur
        self.taille = taille

    def __repr__(self) -> str:
        return f"<Variation {self.id}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Variation):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def a_un_prix_propre(self) -> bool:
        return bool(self.prix)

    def peut_fournir(self, quantité: int) -> bool:
        return self.stock >= quantité


class Article:
    """Produit mis en vente par une boutique."""

    def __init__(
        self,
        id: str,
        nom: str,
        prix: int,
        id_boutique: str,
        prix_promotion: Optional[int] = None,
        est_en_promotion: bool = False,
        variations: Optional[list[Variation]] = None,
    ):
        self.id = id
        self.nom = nom
        self.prix = prix
        self.id_boutique = id_boutique
        self.prix_promotion = prix_promotion
        self.est_en_promotion = est_en_promotion
        self.variations = variations or []

    def __repr__(self) -> str:
        return f"<Article {self.id}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Article):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def variation(self, id_variation: str) -> Optional[Variation]:
        return next((v for v in self.variations if v.id == id_variation), None)

    @property
    def stock_total(self) -> int:
        return sum(v.stock for v in self.variations)


# --- Commandes ---


class LigneCommande:
    """
    Ligne d'une commande.

    Le prix unitaire est figé au moment de l'achat : il ne doit jamais être
    recalculé, même si le prix de l'article change ensuite.
    """

    def __init__(
        self,
        id: str,
        id_article: str,
        quantité: int,
        prix_unitaire: int,
        id_variation: Optional[str] = None,
    ):
        self.id = id
        self.id_article = id_article
        self.id_variation = id_variation
        self.quantité = quantité
        self.prix_unitaire = prix_unitaire

    def __repr__(self) -> str:
        return f"<LigneCommande {self.id_article} x{self.quantité}>"

    @property
    def sous_total(self) -> int:
        return self.prix_unitaire * self.quantité


class Commande:
    """
    Agrégat racine d'une commande passée par un acheteur.

    Les lignes sont créées en même temps que la commande et ne changent
    plus ensuite ; seul le statut évolue.
    """

    def __init__(
        self,
        id: str,
        numéro: str,
        id_acheteur: str,
        adresse_livraison: str,
        prix: int,
        est_livrable: bool = False,
        commentaire: str = "",
        statut: str = STATUT_EN_ATTENTE,
        lignes: Optional[list[LigneCommande]] = None,
        créée_le: Optional[datetime] = None,
    ):
        self.id = id
        self.numéro = numéro
        self.id_acheteur = id_acheteur
        self.adresse_livraison = adresse_livraison
        self.prix = prix
        self.est_livrable = est_livrable
        self.commentaire = commentaire
        self.statut = statut
        self.lignes = lignes or []
        self.créée_le = créée_le or maintenant()
        self.modifiée_le = self.créée_le
        self.événements: list[events.Event] = []

    def __repr__(self) -> str:
        return f"<Commande {self.numéro}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commande):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def passer(
        cls,
        id: str,
        numéro: str,
        id_acheteur: str,
        adresse_livraison: str,
        prix: int,
        lignes: list[LigneCommande],
        ids_boutiques: list[str],
        est_livrable: bool = False,
        commentaire: str = "",
    ) -> Commande:
        """Crée une nouvelle commande en attente et émet CommandeCréée."""
        commande = cls(
            id=id,
            numéro=numéro,
            id_acheteur=id_acheteur,
            adresse_livraison=adresse_livraison,
            prix=prix,
            est_livrable=est_livrable,
            commentaire=commentaire,
            lignes=lignes,
        )
        commande.événements.append(
            events.CommandeCréée(
                id_commande=id,
                numéro=numéro,
                id_acheteur=id_acheteur,
                prix=prix,
                ids_boutiques=tuple(ids_boutiques),
            )
        )
        return commande

    @property
    def est_supprimable(self) -> bool:
        return self.statut in STATUTS_SUPPRIMABLES

    def appartient_à(self, id_utilisateur: str) -> bool:
        return self.id_acheteur == id_utilisateur

    def modifier_statut(self, statut: str) -> None:
        if statut not in STATUTS_COMMANDE:
            raise StatutInvalide(f"Statut inconnu : {statut}")
        ancien = self.statut
        self.statut = statut
        self.modifiée_le = maintenant()
        self.événements.append(
            events.StatutCommandeModifié(
                id_commande=self.id,
                numéro=self.numéro,
                id_acheteur=self.id_acheteur,
                ancien_statut=ancien,
                nouveau_statut=statut,
            )
        )
