"""
Handlers pour les commands et events.

Les handlers sont les fonctions qui traitent les commands et events
transitant par le message bus.

- Command handlers : exécutent une action (peuvent échouer)
- Event handlers : réagissent à un fait passé (ne doivent pas échouer)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from marketplace.domain import commands, events, model, tarification
from marketplace.service_layer import numerotation, reglement

if TYPE_CHECKING:
    from marketplace.adapters.notifications import AbstractNotifications
    from marketplace.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


# --- Exceptions ---


class ErreurConfiguration(Exception):
    """Levée quand la plateforme n'est pas provisionnée (pas d'administrateur)."""
    pass


# --- Command Handlers ---


def créer_commande(
    cmd: commands.CréerCommande,
    uow: AbstractUnitOfWork,
) -> str:
    """
    Enregistre une commande et règle les boutiques et la plateforme.

    Toutes les vérifications (articles, variations, stocks) sont faites
    avant la première écriture. L'enregistrement de la commande, de ses
    lignes, les mouvements de stock et le crédit des soldes forment une
    seule transaction.

    Retourne l'identifiant de la commande créée.
    """
    id_commande = str(uuid.uuid4())
    with uow:
        administrateur = uow.utilisateurs.get_administrateur()
        if administrateur is None:
            raise ErreurConfiguration("Aucun administrateur trouvé")

        demandes = []
        for demandé in cmd.articles:
            article = uow.articles.get(demandé.id_article)
            if article is None:
                raise model.ArticleIntrouvable(
                    f"Article {demandé.id_article} introuvable"
                )
            demandes.append((article, demandé.id_variation, demandé.quantité))

        chiffrage = tarification.chiffrer_commande(demandes, cmd.adresse_livraison)
        numéro = numerotation.générer_numéro_commande(uow)

        commande = model.Commande.passer(
            id=id_commande,
            numéro=numéro,
            id_acheteur=cmd.id_acheteur,
            adresse_livraison=cmd.adresse_livraison,
            prix=chiffrage.total,
            est_livrable=cmd.est_livrable,
            commentaire=cmd.commentaire,
            ids_boutiques=chiffrage.ids_boutiques,
            lignes=[
                model.LigneCommande(
                    id=str(uuid.uuid4()),
                    id_article=ligne.id_article,
                    id_variation=ligne.id_variation,
                    quantité=ligne.quantité,
                    prix_unitaire=ligne.prix_unitaire,
                )
                for ligne in chiffrage.lignes
            ],
        )
        try:
            uow.commandes.add(commande)
            reglement.appliquer_règlement(commande, chiffrage, administrateur.id, uow)
            uow.commit()
        except SQLAlchemyError as e:
            raise reglement.ErreurPersistance(f"Erreur création commande : {e}") from e

    logger.info(
        "Commande %s créée : %d ligne(s), total %d dont livraison %d",
        numéro, len(chiffrage.lignes), chiffrage.total, chiffrage.frais_livraison,
    )
    return id_commande


def _boutiques_de_la_commande(
    commande: model.Commande, uow: AbstractUnitOfWork
) -> set[str]:
    ids = set()
    for ligne in commande.lignes:
        article = uow.articles.get(ligne.id_article)
        if article is not None:
            ids.add(article.id_boutique)
    return ids


def modifier_statut_commande(
    cmd: commands.ModifierStatutCommande,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Change le statut d'une commande.

    Autorisé pour l'administrateur, l'acheteur, et toute boutique
    propriétaire d'au moins un article de la commande.
    """
    with uow:
        commande = uow.commandes.get(cmd.id_commande)
        if commande is None:
            raise model.CommandeIntrouvable("Commande introuvable")

        autorisé = (
            cmd.rôle_demandeur == model.RÔLE_ADMINISTRATEUR
            or commande.appartient_à(cmd.id_demandeur)
            or cmd.id_demandeur in _boutiques_de_la_commande(commande, uow)
        )
        if not autorisé:
            raise model.AccèsRefusé("Accès refusé pour modifier cette commande")

        commande.modifier_statut(cmd.statut)
        uow.commit()


def supprimer_commande(
    cmd: commands.SupprimerCommande,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Supprime une commande en attente ou annulée.

    Le stock des variations est restitué pour une commande encore
    en attente. Les soldes déjà crédités ne sont pas repris.
    """
    with uow:
        commande = uow.commandes.get(cmd.id_commande)
        if commande is None:
            raise model.CommandeIntrouvable("Commande introuvable")

        if cmd.rôle_demandeur != model.RÔLE_ADMINISTRATEUR and not commande.appartient_à(
            cmd.id_demandeur
        ):
            raise model.AccèsRefusé("Accès refusé pour supprimer cette commande")

        if not commande.est_supprimable:
            raise model.SuppressionImpossible(
                f'Impossible de supprimer une commande avec le statut "{commande.statut}". '
                'Seules les commandes "En attente" ou "Annulée" peuvent être supprimées.'
            )

        if commande.statut == model.STATUT_EN_ATTENTE:
            for ligne in commande.lignes:
                if ligne.id_variation is not None:
                    uow.articles.incrémenter_stock(ligne.id_variation, ligne.quantité)

        numéro = commande.numéro
        uow.commandes.delete(commande)
        uow.commit()
    logger.info("Commande %s supprimée", numéro)


# --- Event Handlers ---


def publier_commande_créée(
    event: events.CommandeCréée,
    uow: AbstractUnitOfWork,
) -> None:
    """
    Publie la création d'une commande vers l'extérieur.

    Placeholder : pas de broker pour l'instant, on se contente de tracer.
    """
    logger.info(
        "Commande publiée : %s (acheteur %s, total %d)",
        event.numéro, event.id_acheteur, event.prix,
    )


def notifier_boutiques_nouvelle_commande(
    event: events.CommandeCréée,
    uow: AbstractUnitOfWork,
    notifications: AbstractNotifications,
) -> None:
    with uow:
        destinataires = [
            boutique.email
            for boutique in map(uow.utilisateurs.get, event.ids_boutiques)
            if boutique is not None
        ]
    for email in destinataires:
        notifications.send(
            destination=email,
            message=f"Nouvelle commande {event.numéro} contenant vos articles",
        )


def notifier_stock_épuisé(
    event: events.StockÉpuisé,
    uow: AbstractUnitOfWork,
    notifications: AbstractNotifications,
) -> None:
    """Prévient la boutique qu'une de ses variations n'a plus de stock."""
    with uow:
        boutique = uow.utilisateurs.get(event.id_boutique)
        email = boutique.email if boutique else None
    if email is None:
        logger.warning("Boutique %s introuvable pour la rupture de stock", event.id_boutique)
        return
    notifications.send(
        destination=email,
        message=f"Rupture de stock pour la variation {event.id_variation} "
                f"de l'article {event.id_article}",
    )


def notifier_acheteur_statut(
    event: events.StatutCommandeModifié,
    uow: AbstractUnitOfWork,
    notifications: AbstractNotifications,
) -> None:
    with uow:
        acheteur = uow.utilisateurs.get(event.id_acheteur)
        email = acheteur.email if acheteur else None
    if email is None:
        return
    notifications.send(
        destination=email,
        message=f"Votre commande {event.numéro} est passée "
                f"de « {event.ancien_statut} » à « {event.nouveau_statut} »",
    )
