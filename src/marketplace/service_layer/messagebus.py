"""
Message Bus.

Point central de dispatch des commands et events vers leurs handlers.

1. Une command entre dans le bus (CréerCommande, ModifierStatutCommande...)
2. Son unique handler est exécuté ; son résultat est retourné à l'appelant
3. Les events émis par les commandes vues pendant la transaction sont
   collectés et traités à leur tour (notifications, publication)

Une erreur de command remonte à l'appelant ; une erreur d'event handler
est loggée et n'interrompt ni les autres handlers ni la requête.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, Union

from marketplace.domain import commands, events
from marketplace.service_layer import unit_of_work

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


def injecter_dépendances(handler: Callable, dépendances: dict[str, Any]) -> Callable:
    """
    Lie à l'avance les dépendances attendues par un handler.

    Le premier paramètre est le message ; les suivants sont résolus
    par nom dans le dictionnaire de dépendances.
    """
    paramètres = list(inspect.signature(handler).parameters)[1:]
    à_injecter = {nom: dépendances[nom] for nom in paramètres if nom in dépendances}
    return functools.partial(handler, **à_injecter)


class MessageBus:
    """
    Message Bus avec injection de dépendances.

    Les dépendances (uow, notifications, identité...) sont injectées
    une fois pour toutes à la construction du bus.
    """

    def __init__(
        self,
        uow: unit_of_work.AbstractUnitOfWork,
        event_handlers: dict[type[events.Event], list[Callable]],
        command_handlers: dict[type[commands.Command], Callable],
        dependencies: dict[str, Any] | None = None,
    ):
        self.uow = uow
        self.dependencies = dependencies or {}
        injectables = {"uow": uow, **self.dependencies}
        self.event_handlers = {
            type_event: [injecter_dépendances(h, injectables) for h in handlers]
            for type_event, handlers in event_handlers.items()
        }
        self.command_handlers = {
            type_cmd: injecter_dépendances(handler, injectables)
            for type_cmd, handler in command_handlers.items()
        }

    def handle(self, message: Message) -> list[Any]:
        """
        Traite un message et tous les événements qui en découlent.

        Retourne les résultats des commands traitées (en pratique un seul).
        """
        queue: list[Message] = [message]
        results: list[Any] = []
        while queue:
            message = queue.pop(0)
            if isinstance(message, events.Event):
                self._handle_event(message, queue)
            elif isinstance(message, commands.Command):
                results.append(self._handle_command(message, queue))
            else:
                raise ValueError(f"Message de type inconnu : {type(message)}")
        return results

    def _handle_event(self, event: events.Event, queue: list[Message]) -> None:
        for handler in self.event_handlers.get(type(event), []):
            try:
                logger.debug("Traitement de l'event %s avec %s", event, handler.func.__name__)
                handler(event)
                queue.extend(self.uow.collect_new_events())
            except Exception:
                logger.exception("Erreur lors du traitement de l'event %s", event)

    def _handle_command(self, command: commands.Command, queue: list[Message]) -> Any:
        logger.debug("Traitement de la command %s", command)
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Aucun handler pour la command {type(command)}")
        result = handler(command)
        queue.extend(self.uow.collect_new_events())
        return result
