"""
Pattern Repository.

Le repository fournit une abstraction sur la couche de persistance.
Il expose une interface de type collection (add, get) qui masque
les détails de l'accès aux données.

Trois repositories coexistent dans le même Unit of Work :
- les commandes, agrégat qui émet les événements (tracking via `seen`) ;
- les articles et leurs variations, en lecture, plus les mouvements de stock ;
- les comptes utilisateurs, en lecture, plus le crédit des soldes.

Les mouvements de stock et de solde sont des UPDATE atomiques exécutés
en base (`stock = stock - :q`), jamais une lecture suivie d'une écriture.
"""

from __future__ import annotations

import abc
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from marketplace.adapters import orm
from marketplace.domain import model


class AbstractCommandeRepository(abc.ABC):
    """
    Interface abstraite du repository de commandes.

    Le pattern Template Method est utilisé : les méthodes publiques
    (add, get) gèrent le tracking via `seen`, puis délèguent
    aux méthodes abstraites préfixées _ que les sous-classes implémentent.
    """

    seen: set[model.Commande]

    def __init__(self) -> None:
        # `seen` trace les commandes consultées pendant la transaction,
        # ce qui permet au Unit of Work de collecter leurs événements.
        self.seen: set[model.Commande] = set()

    def add(self, commande: model.Commande) -> None:
        self._add(commande)
        self.seen.add(commande)

    def get(self, id_commande: str) -> model.Commande | None:
        commande = self._get(id_commande)
        if commande:
            self.seen.add(commande)
        return commande

    def delete(self, commande: model.Commande) -> None:
        self._delete(commande)

    @abc.abstractmethod
    def _add(self, commande: model.Commande) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, id_commande: str) -> model.Commande | None:
        raise NotImplementedError

    @abc.abstractmethod
    def _delete(self, commande: model.Commande) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def compter_pour_année(self, année: int) -> int:
        """Nombre de commandes créées pendant l'année civile donnée."""
        raise NotImplementedError


class AbstractArticleRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, id_article: str) -> model.Article | None:
        raise NotImplementedError

    @abc.abstractmethod
    def décrémenter_stock(self, id_variation: str, quantité: int) -> int:
        """
        Retire `quantité` du stock de la variation et retourne le stock restant.

        Lève StockInsuffisant si le stock ne suffit plus au moment de
        l'écriture : le stock ne devient jamais négatif.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def incrémenter_stock(self, id_variation: str, quantité: int) -> None:
        raise NotImplementedError


class AbstractUtilisateurRepository(abc.ABC):
    @abc.abstractmethod
    def get(self, id_utilisateur: str) -> model.Utilisateur | None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_administrateur(self) -> model.Utilisateur | None:
        raise NotImplementedError

    @abc.abstractmethod
    def incrémenter_solde(self, id_utilisateur: str, montant: int) -> None:
        """Crédite le solde ; lève CompteIntrouvable si le compte n'existe pas."""
        raise NotImplementedError


# --- Implémentations SQLAlchemy ---


class SqlAlchemyCommandeRepository(AbstractCommandeRepository):
    def __init__(self, session: Session):
        super().__init__()
        self.session = session

    def _add(self, commande: model.Commande) -> None:
        self.session.add(commande)

    def _get(self, id_commande: str) -> model.Commande | None:
        return self.session.get(model.Commande, id_commande)

    def _delete(self, commande: model.Commande) -> None:
        self.session.delete(commande)

    def compter_pour_année(self, année: int) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(orm.commandes)
            .where(orm.commandes.c.created_at >= datetime(année, 1, 1))
            .where(orm.commandes.c.created_at < datetime(année + 1, 1, 1))
        ).scalar_one()


class SqlAlchemyArticleRepository(AbstractArticleRepository):
    def __init__(self, session: Session):
        self.session = session

    def get(self, id_article: str) -> model.Article | None:
        return self.session.get(model.Article, id_article)

    def décrémenter_stock(self, id_variation: str, quantité: int) -> int:
        résultat = self.session.execute(
            update(orm.variations)
            .where(orm.variations.c.id == id_variation)
            .where(orm.variations.c.stock >= quantité)
            .values(
                stock=orm.variations.c.stock - quantité,
                updated_at=model.maintenant(),
            )
        )
        if résultat.rowcount == 0:
            raise model.StockInsuffisant(
                f"Stock insuffisant pour la variation {id_variation}"
            )
        return self.session.execute(
            select(orm.variations.c.stock).where(orm.variations.c.id == id_variation)
        ).scalar_one()

    def incrémenter_stock(self, id_variation: str, quantité: int) -> None:
        résultat = self.session.execute(
            update(orm.variations)
            .where(orm.variations.c.id == id_variation)
            .values(
                stock=orm.variations.c.stock + quantité,
                updated_at=model.maintenant(),
            )
        )
        if résultat.rowcount == 0:
            raise model.VariationIntrouvable(f"Variation non trouvée : {id_variation}")


class SqlAlchemyUtilisateurRepository(AbstractUtilisateurRepository):
    def __init__(self, session: Session):
        self.session = session

    def get(self, id_utilisateur: str) -> model.Utilisateur | None:
        return self.session.get(model.Utilisateur, id_utilisateur)

    def get_administrateur(self) -> model.Utilisateur | None:
        return (
            self.session.query(model.Utilisateur)
            .filter_by(rôle=model.RÔLE_ADMINISTRATEUR)
            .first()
        )

    def incrémenter_solde(self, id_utilisateur: str, montant: int) -> None:
        résultat = self.session.execute(
            update(orm.users)
            .where(orm.users.c.id == id_utilisateur)
            .values(solde=orm.users.c.solde + montant, updated_at=model.maintenant())
        )
        if résultat.rowcount == 0:
            raise model.CompteIntrouvable(f"Utilisateur non trouvé : {id_utilisateur}")
