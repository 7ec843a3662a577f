"""
Règles de prix d'une commande.

Fonctions pures, sans I/O : prix unitaire effectif, frais de service
prélevés par la plateforme, frais de livraison, et le chiffrage complet
d'un panier qui les combine. Le format des numéros de commande est aussi
défini ici ; le comptage des commandes de l'année relève de la service layer.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from marketplace.domain.model import (
    Article,
    StockInsuffisant,
    Variation,
    VariationIntrouvable,
)


# Frais de service par unité : (prix unitaire plafond exclu, frais)
PALIERS_FRAIS_SERVICE = (
    (15_000, 300),
    (50_000, 500),
)
FRAIS_SERVICE_MAXIMUM = 1_000

# L'ordre compte : la première localité trouvée dans l'adresse l'emporte.
TARIFS_LIVRAISON = (
    ("libreville", 2_500),
    ("akanda", 2_000),
    ("owendo", 3_000),
)
TARIF_LIVRAISON_PAR_DÉFAUT = 3_000
PLAFOND_LIVRAISON = 8_000


def prix_promotionnel(article: Article) -> Optional[int]:
    """Prix promotionnel applicable, ou None (article hors promotion ou sans prix promo)."""
    if article.est_en_promotion and article.prix_promotion is not None:
        return article.prix_promotion
    return None


def résoudre_prix_unitaire(
    article: Article,
    id_variation: Optional[str],
    quantité: int,
) -> tuple[int, Optional[Variation]]:
    """
    Détermine le prix unitaire à facturer et vérifie le stock.

    Le prix promotionnel l'emporte toujours, y compris sur le prix propre
    d'une variation. Un article marqué en promotion sans prix promotionnel
    est facturé comme s'il n'était pas en promotion. Sans variation, la
    quantité est comparée au stock cumulé de toutes les variations de
    l'article (s'il en a).
    """
    promotion = prix_promotionnel(article)
    if id_variation is None:
        if article.variations and article.stock_total < quantité:
            raise StockInsuffisant(f"Stock insuffisant pour l'article {article.id}")
        if promotion is not None:
            return promotion, None
        return article.prix, None

    variation = article.variation(id_variation)
    if variation is None:
        raise VariationIntrouvable(f"Variation {id_variation} introuvable")
    if not variation.peut_fournir(quantité):
        raise StockInsuffisant(f"Stock insuffisant pour la variation {variation.id}")

    if promotion is not None:
        return promotion, variation
    if variation.a_un_prix_propre:
        return variation.prix, variation
    return article.prix, variation


def frais_par_unité(prix_unitaire: int) -> int:
    for plafond, frais in PALIERS_FRAIS_SERVICE:
        if prix_unitaire < plafond:
            return frais
    return FRAIS_SERVICE_MAXIMUM


def calculer_frais(prix_unitaire: int, quantité: int) -> tuple[int, int]:
    """Retourne (frais de service, bénéfice de la boutique) pour une ligne."""
    frais = frais_par_unité(prix_unitaire) * quantité
    return frais, prix_unitaire * quantité - frais


def calculer_frais_livraison(adresse: str, nombre_boutiques: int) -> int:
    adresse = adresse.lower()
    base = next(
        (tarif for localité, tarif in TARIFS_LIVRAISON if localité in adresse),
        TARIF_LIVRAISON_PAR_DÉFAUT,
    )
    return min(base * nombre_boutiques, PLAFOND_LIVRAISON)


def formater_numéro_commande(année: int, rang: int) -> str:
    """CMD-24-00001 pour la première commande de 2024."""
    return f"CMD-{année % 100:02d}-{rang:05d}"


def numéro_de_secours(année: int, horodatage_ms: int) -> str:
    return f"CMD-{année % 100:02d}-{str(horodatage_ms)[-5:]}"


# --- Chiffrage d'un panier ---


@dataclass(frozen=True)
class LigneChiffrée:
    id_article: str
    id_variation: Optional[str]
    id_boutique: str
    quantité: int
    prix_unitaire: int
    frais: int
    bénéfice: int

    @property
    def sous_total(self) -> int:
        return self.prix_unitaire * self.quantité


@dataclass
class Chiffrage:
    """Détail financier d'une commande avant son enregistrement."""

    lignes: list[LigneChiffrée] = field(default_factory=list)
    frais_livraison: int = 0

    @property
    def sous_total(self) -> int:
        return sum(ligne.sous_total for ligne in self.lignes)

    @property
    def total(self) -> int:
        return self.sous_total + self.frais_livraison

    @property
    def frais_plateforme(self) -> int:
        return sum(ligne.frais for ligne in self.lignes)

    @property
    def ids_boutiques(self) -> list[str]:
        return list(dict.fromkeys(ligne.id_boutique for ligne in self.lignes))

    @property
    def bénéfices_par_boutique(self) -> dict[str, int]:
        bénéfices: dict[str, int] = defaultdict(int)
        for ligne in self.lignes:
            bénéfices[ligne.id_boutique] += ligne.bénéfice
        return dict(bénéfices)


def chiffrer_commande(
    demandes: Iterable[tuple[Article, Optional[str], int]],
    adresse_livraison: str,
) -> Chiffrage:
    """
    Chiffre un panier : prix, frais et bénéfices par ligne, puis livraison.

    `demandes` contient des triplets (article chargé, id de variation ou None,
    quantité). Une variation demandée sur plusieurs lignes est vérifiée sur
    la quantité cumulée ; de même pour un article demandé sans variation
    sur plusieurs lignes, pour qu'aucune écriture ne puisse échouer ensuite
    faute de stock.
    """
    chiffrage = Chiffrage()
    par_variation: dict[str, int] = defaultdict(int)
    sans_variation: dict[str, int] = defaultdict(int)

    for article, id_variation, quantité in demandes:
        if id_variation is None:
            déjà_demandé, clé = sans_variation, article.id
        else:
            déjà_demandé, clé = par_variation, id_variation
        cumul = déjà_demandé[clé] + quantité
        prix_unitaire, _ = résoudre_prix_unitaire(article, id_variation, cumul)
        déjà_demandé[clé] = cumul

        frais, bénéfice = calculer_frais(prix_unitaire, quantité)
        chiffrage.lignes.append(
            LigneChiffrée(
                id_article=article.id,
                id_variation=id_variation,
                id_boutique=article.id_boutique,
                quantité=quantité,
                prix_unitaire=prix_unitaire,
                frais=frais,
                bénéfice=bénéfice,
            )
        )

    chiffrage.frais_livraison = calculer_frais_livraison(
        adresse_livraison, len(chiffrage.ids_boutiques)
    )
    return chiffrage
