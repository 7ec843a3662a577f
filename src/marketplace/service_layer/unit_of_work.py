"""
Pattern Unit of Work.

Le Unit of Work (UoW) gère la notion de transaction atomique.
Il coordonne l'écriture en base de données et la collecte
des événements émis par les agrégats au cours de la transaction.

Le UoW agit comme un context manager :
    with uow:
        # ... opérations sur les repositories ...
        uow.commit()

Tout ce qui n'a pas été commité est annulé à la sortie du bloc :
une commande à moitié enregistrée (en-tête sans lignes, stock décrémenté
sans solde crédité) ne peut pas subsister.
"""

from __future__ import annotations

import abc
import threading

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from marketplace import config
from marketplace.adapters import repository

DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_engine(
        config.get_database_uri(),
        isolation_level="SERIALIZABLE",
    )
)


class AbstractUnitOfWork(abc.ABC):
    """
    Interface abstraite du Unit of Work.

    Fournit les repositories `commandes`, `articles` et `utilisateurs`
    et gère commit/rollback. Le rollback est automatique si commit()
    n'est pas appelé (grâce au __exit__ du context manager).
    """

    commandes: repository.AbstractCommandeRepository
    articles: repository.AbstractArticleRepository
    utilisateurs: repository.AbstractUtilisateurRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args: object) -> None:
        self.rollback()

    def commit(self) -> None:
        self._commit()

    def collect_new_events(self):
        """
        Collecte tous les événements émis par les commandes vues
        pendant cette transaction.
        """
        for commande in self.commandes.seen:
            while commande.événements:
                yield commande.événements.pop(0)

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    Implémentation concrète du UoW avec SQLAlchemy.

    Crée une session à l'entrée du context manager,
    la ferme à la sortie. Rollback automatique si pas de commit.

    Une même instance est partagée par toutes les requêtes (via le bus) :
    la session et les repositories sont donc propres à chaque thread.
    """

    def __init__(self, session_factory: sessionmaker = DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory
        self._local = threading.local()

    @property
    def session(self) -> Session:
        return self._local.session

    @property
    def commandes(self) -> repository.SqlAlchemyCommandeRepository:
        return self._local.commandes

    @property
    def articles(self) -> repository.SqlAlchemyArticleRepository:
        return self._local.articles

    @property
    def utilisateurs(self) -> repository.SqlAlchemyUtilisateurRepository:
        return self._local.utilisateurs

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        session = self.session_factory()
        self._local.session = session
        self._local.commandes = repository.SqlAlchemyCommandeRepository(session)
        self._local.articles = repository.SqlAlchemyArticleRepository(session)
        self._local.utilisateurs = repository.SqlAlchemyUtilisateurRepository(session)
        return super().__enter__()

    def __exit__(self, *args: object) -> None:
        super().__exit__(*args)
        self.session.close()

    def _commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
