"""
Numérotation des commandes.

Le numéro est séquentiel par année civile : CMD-24-00001, CMD-24-00002...
(99 999 commandes par an au maximum).

Le comptage puis le formatage ne sont pas atomiques : deux commandes
passées au même instant peuvent recevoir le même numéro. Aucune contrainte
d'unicité n'est posée sur la colonne `numero`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from marketplace.domain import model, tarification
from marketplace.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def générer_numéro_commande(
    uow: AbstractUnitOfWork,
    maintenant: Optional[datetime] = None,
) -> str:
    """
    Retourne le prochain numéro de commande de l'année.

    Si le comptage échoue, on retombe sur un suffixe tiré de l'horodatage
    pour ne pas bloquer le passage de commande ; un doublon est alors
    possible et accepté.
    """
    maintenant = maintenant or model.maintenant()
    try:
        nombre = uow.commandes.compter_pour_année(maintenant.year)
    except SQLAlchemyError:
        logger.exception("Erreur lors du comptage des commandes de %d", maintenant.year)
        return tarification.numéro_de_secours(
            maintenant.year, int(maintenant.timestamp() * 1000)
        )
    return tarification.formater_numéro_commande(maintenant.year, nombre + 1)
