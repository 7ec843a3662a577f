"""
Bootstrap : assemblage de l'application (Composition Root).

Ce module construit le message bus avec toutes ses dépendances.
C'est le seul endroit de l'application qui connaît les
implémentations concrètes de chaque abstraction ; les tests
y injectent leurs fakes.
"""

from __future__ import annotations

from typing import Any

from marketplace.adapters import identite, notifications, orm
from marketplace.domain import commands, events
from marketplace.service_layer import handlers, messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow: unit_of_work.AbstractUnitOfWork | None = None,
    notifications_adapter: notifications.AbstractNotifications | None = None,
    identité: identite.AbstractIdentité | None = None,
    **extra_dependencies: Any,
) -> messagebus.MessageBus:
    """
    Construit et retourne un MessageBus configuré.

    En production, utilise les implémentations concrètes.
    En test, on injecte des fakes via les paramètres.
    """
    if start_orm:
        orm.start_mappers()

    if uow is None:
        uow = unit_of_work.SqlAlchemyUnitOfWork()

    if notifications_adapter is None:
        notifications_adapter = notifications.EmailNotifications()

    if identité is None:
        identité = identite.SupabaseIdentité()

    dependencies: dict[str, Any] = {
        "notifications": notifications_adapter,
        "identité": identité,
        **extra_dependencies,
    }

    return messagebus.MessageBus(
        uow=uow,
        event_handlers=EVENT_HANDLERS,
        command_handlers=COMMAND_HANDLERS,
        dependencies=dependencies,
    )


# --- Routage des messages vers les handlers ---

EVENT_HANDLERS: dict[type[events.Event], list] = {
    events.CommandeCréée: [
        handlers.publier_commande_créée,
        handlers.notifier_boutiques_nouvelle_commande,
    ],
    events.StockÉpuisé: [handlers.notifier_stock_épuisé],
    events.StatutCommandeModifié: [handlers.notifier_acheteur_statut],
}

COMMAND_HANDLERS: dict[type[commands.Command], Any] = {
    commands.CréerCommande: handlers.créer_commande,
    commands.ModifierStatutCommande: handlers.modifier_statut_commande,
    commands.SupprimerCommande: handlers.supprimer_commande,
}
