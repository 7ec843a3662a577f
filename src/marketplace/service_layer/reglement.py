"""
Règlement d'une commande : mouvements de stock et crédit des soldes.

Appelé par le handler de création de commande, à l'intérieur de la même
transaction que l'enregistrement de la commande. Chaque mouvement est un
UPDATE atomique ; si l'un d'eux échoue, l'exception remonte et le Unit of
Work annule l'ensemble (commande, lignes, stocks, soldes).
"""

from __future__ import annotations

import logging

from marketplace.domain import events, model
from marketplace.domain.tarification import Chiffrage
from marketplace.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class ErreurPersistance(Exception):
    """Une écriture en base a échoué pendant l'enregistrement d'une commande."""
    pass


def appliquer_règlement(
    commande: model.Commande,
    chiffrage: Chiffrage,
    id_administrateur: str,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Décrémente les stocks des variations commandées, crédite le bénéfice
    de chaque boutique et les frais de service du compte administrateur.
    """
    for ligne in chiffrage.lignes:
        if ligne.id_variation is None:
            continue
        restant = uow.articles.décrémenter_stock(ligne.id_variation, ligne.quantité)
        if restant == 0:
            commande.événements.append(
                events.StockÉpuisé(
                    id_variation=ligne.id_variation,
                    id_article=ligne.id_article,
                    id_boutique=ligne.id_boutique,
                )
            )

    try:
        for id_boutique, bénéfice in chiffrage.bénéfices_par_boutique.items():
            uow.utilisateurs.incrémenter_solde(id_boutique, bénéfice)
        uow.utilisateurs.incrémenter_solde(id_administrateur, chiffrage.frais_plateforme)
    except model.CompteIntrouvable as e:
        raise ErreurPersistance(f"Erreur mise à jour solde : {e}") from e

    logger.debug(
        "Règlement de %s : %d boutique(s), frais plateforme %d",
        commande.numéro,
        len(chiffrage.bénéfices_par_boutique),
        chiffrage.frais_plateforme,
    )
