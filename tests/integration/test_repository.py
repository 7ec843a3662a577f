"""
Tests d'intégration des repositories et du Unit of Work avec SQLite en mémoire.

Ces tests vérifient que le mapping ORM fonctionne correctement :
- Sauvegarder et recharger un article avec ses variations, une commande avec ses lignes
- Les mouvements de stock et de solde sont des UPDATE atomiques
- Un échec pendant le règlement annule toute la transaction
"""

import threading
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from marketplace.adapters import orm, repository
from marketplace.domain import commands, model
from marketplace.service_layer import handlers, reglement, unit_of_work

from fabriques import créer_article, créer_utilisateur


def make_session_factory():
    """Crée une base SQLite en mémoire avec les tables."""
    engine = create_engine("sqlite:///:memory:")
    orm.metadata.create_all(engine)
    return sessionmaker(bind=engine)


def make_session():
    return make_session_factory()()


def stock(session, id_variation: str) -> int:
    return session.execute(
        select(orm.variations.c.stock).where(orm.variations.c.id == id_variation)
    ).scalar_one()


def solde(session, id_utilisateur: str) -> int:
    return session.execute(
        select(orm.users.c.solde).where(orm.users.c.id == id_utilisateur)
    ).scalar_one()


def nouvelle_commande(id_acheteur: str, article: model.Article, créée_le=None) -> model.Commande:
    return model.Commande(
        id=f"cmd-{article.id[:8]}",
        numéro="CMD-24-00001",
        id_acheteur=id_acheteur,
        adresse_livraison="Libreville",
        prix=22_500,
        est_livrable=True,
        lignes=[
            model.LigneCommande(
                id=f"ligne-{article.id[:8]}",
                id_article=article.id,
                id_variation=article.variations[0].id if article.variations else None,
                quantité=2,
                prix_unitaire=10_000,
            )
        ],
        créée_le=créée_le,
    )


class TestArticleRepository:
    def test_sauvegarder_et_recharger_un_article(self):
        session = make_session()
        boutique = créer_utilisateur("Boutique")
        article = créer_article(
            boutique.id, prix=10_000, variations=[(5, None), (2, 12_000)],
            prix_promotion=9_000, est_en_promotion=True,
        )
        session.add_all([boutique, article])
        session.commit()
        session.expunge_all()

        rechargé = repository.SqlAlchemyArticleRepository(session).get(article.id)

        assert rechargé is not None
        assert rechargé.id_boutique == boutique.id
        assert rechargé.est_en_promotion is True
        assert rechargé.prix_promotion == 9_000
        assert {(v.stock, v.prix) for v in rechargé.variations} == {(5, None), (2, 12_000)}

    def test_get_retourne_none_si_article_inexistant(self):
        session = make_session()
        assert repository.SqlAlchemyArticleRepository(session).get("inexistant") is None

    def test_décrémenter_stock_retourne_le_restant(self):
        session = make_session()
        article = créer_article("boutique-1", prix=1_000, variations=[(5, None)])
        session.add(article)
        session.commit()
        repo = repository.SqlAlchemyArticleRepository(session)

        restant = repo.décrémenter_stock(article.variations[0].id, 5)

        assert restant == 0

    def test_le_stock_ne_devient_jamais_négatif(self):
        session = make_session()
        article = créer_article("boutique-1", prix=1_000, variations=[(3, None)])
        session.add(article)
        session.commit()
        id_variation = article.variations[0].id
        repo = repository.SqlAlchemyArticleRepository(session)

        with pytest.raises(model.StockInsuffisant):
            repo.décrémenter_stock(id_variation, 4)

        assert stock(session, id_variation) == 3

    def test_incrémenter_stock(self):
        session = make_session()
        article = créer_article("boutique-1", prix=1_000, variations=[(3, None)])
        session.add(article)
        session.commit()
        id_variation = article.variations[0].id

        repository.SqlAlchemyArticleRepository(session).incrémenter_stock(id_variation, 2)

        assert stock(session, id_variation) == 5

    def test_incrémenter_le_stock_d_une_variation_inconnue(self):
        session = make_session()
        with pytest.raises(model.VariationIntrouvable):
            repository.SqlAlchemyArticleRepository(session).incrémenter_stock("inconnue", 1)


class TestUtilisateurRepository:
    def test_incrémenter_solde(self):
        session = make_session()
        boutique = créer_utilisateur("Boutique", solde=1_000)
        session.add(boutique)
        session.commit()

        repository.SqlAlchemyUtilisateurRepository(session).incrémenter_solde(boutique.id, 19_400)

        assert solde(session, boutique.id) == 20_400

    def test_compte_inconnu(self):
        session = make_session()
        with pytest.raises(model.CompteIntrouvable):
            repository.SqlAlchemyUtilisateurRepository(session).incrémenter_solde("inconnu", 100)

    def test_get_administrateur(self):
        session = make_session()
        admin = créer_utilisateur("Administrateur")
        session.add_all([créer_utilisateur("Client"), admin, créer_utilisateur("Boutique")])
        session.commit()

        trouvé = repository.SqlAlchemyUtilisateurRepository(session).get_administrateur()

        assert trouvé.id == admin.id
        assert trouvé.est_administrateur

    def test_pas_d_administrateur(self):
        session = make_session()
        session.add(créer_utilisateur("Client"))
        session.commit()

        assert repository.SqlAlchemyUtilisateurRepository(session).get_administrateur() is None


class TestCommandeRepository:
    def test_sauvegarder_et_recharger_une_commande(self):
        session = make_session()
        acheteur = créer_utilisateur()
        article = créer_article("boutique-1", prix=10_000, variations=[(5, None)])
        session.add_all([acheteur, article])
        commande = nouvelle_commande(acheteur.id, article)
        repository.SqlAlchemyCommandeRepository(session).add(commande)
        session.commit()
        session.expunge_all()

        rechargée = repository.SqlAlchemyCommandeRepository(session).get(commande.id)

        assert rechargée.numéro == "CMD-24-00001"
        assert rechargée.id_acheteur == acheteur.id
        assert rechargée.est_livrable is True
        assert rechargée.statut == "En attente"
        assert rechargée.événements == []
        [ligne] = rechargée.lignes
        assert (ligne.id_article, ligne.id_variation) == (article.id, article.variations[0].id)
        assert (ligne.quantité, ligne.prix_unitaire) == (2, 10_000)

    def test_colonnes_de_la_base_existante(self):
        session = make_session()
        article = créer_article("boutique-1", prix=10_000)
        session.add(article)
        commande = nouvelle_commande("acheteur-1", article)
        session.add(commande)
        session.commit()

        ligne = session.execute(
            select(orm.commandes.c.numero, orm.commandes.c.isLivrable, orm.commandes.c.user_id)
        ).one()

        assert tuple(ligne) == ("CMD-24-00001", True, "acheteur-1")

    def test_supprimer_une_commande_supprime_ses_lignes(self):
        session = make_session()
        article = créer_article("boutique-1", prix=10_000)
        session.add(article)
        repo = repository.SqlAlchemyCommandeRepository(session)
        commande = nouvelle_commande("acheteur-1", article)
        repo.add(commande)
        session.commit()

        repo.delete(repo.get(commande.id))
        session.commit()

        assert session.execute(select(orm.commande_articles)).all() == []
        assert repo.get(commande.id) is None

    def test_compter_pour_année(self):
        session = make_session()
        for année in (2023, 2024, 2024):
            article = créer_article("boutique-1", prix=1_000)
            session.add(article)
            session.add(nouvelle_commande(
                "acheteur-1", article, créée_le=datetime(année, 6, 1, tzinfo=timezone.utc)
            ))
        session.commit()
        repo = repository.SqlAlchemyCommandeRepository(session)

        assert repo.compter_pour_année(2023) == 1
        assert repo.compter_pour_année(2024) == 2
        assert repo.compter_pour_année(2025) == 0


# --- Unit of Work ---


def insérer_plateforme(session_factory, id_boutique_article=None):
    """Un administrateur, une boutique et un article avec une variation en stock."""
    session = session_factory()
    admin = créer_utilisateur("Administrateur")
    boutique = créer_utilisateur("Boutique")
    article = créer_article(
        id_boutique_article or boutique.id, prix=10_000, variations=[(5, None)]
    )
    session.add_all([admin, boutique, article])
    session.commit()
    ids = admin.id, boutique.id, article.id, article.variations[0].id
    session.close()
    return ids


class TestUnitOfWork:
    def test_commande_enregistrée_et_réglée(self):
        session_factory = make_session_factory()
        id_admin, id_boutique, id_article, id_variation = insérer_plateforme(session_factory)
        uow = unit_of_work.SqlAlchemyUnitOfWork(session_factory)

        id_commande = handlers.créer_commande(
            commands.CréerCommande(
                id_acheteur="acheteur-1",
                articles=(commands.ArticleDemandé(id_article, 2, id_variation),),
                adresse_livraison="Libreville",
                est_livrable=True,
            ),
            uow,
        )

        session = session_factory()
        [(prix,)] = session.execute(
            select(orm.commandes.c.prix).where(orm.commandes.c.id == id_commande)
        ).all()
        assert prix == 22_500
        assert stock(session, id_variation) == 3
        assert solde(session, id_boutique) == 19_400
        assert solde(session, id_admin) == 600

    def test_rollback_sans_commit(self):
        session_factory = make_session_factory()
        _, _, _, id_variation = insérer_plateforme(session_factory)
        uow = unit_of_work.SqlAlchemyUnitOfWork(session_factory)

        with uow:
            uow.articles.décrémenter_stock(id_variation, 2)

        assert stock(session_factory(), id_variation) == 5

    def test_échec_du_règlement_annule_toute_la_commande(self):
        session_factory = make_session_factory()
        id_admin, _, id_article, id_variation = insérer_plateforme(
            session_factory, id_boutique_article="boutique-sans-compte"
        )
        uow = unit_of_work.SqlAlchemyUnitOfWork(session_factory)

        with pytest.raises(reglement.ErreurPersistance):
            handlers.créer_commande(
                commands.CréerCommande(
                    id_acheteur="acheteur-1",
                    articles=(commands.ArticleDemandé(id_article, 2, id_variation),),
                    adresse_livraison="Libreville",
                    est_livrable=True,
                ),
                uow,
            )

        session = session_factory()
        assert session.execute(select(orm.commandes)).all() == []
        assert session.execute(select(orm.commande_articles)).all() == []
        assert stock(session, id_variation) == 5
        assert solde(session, id_admin) == 0

    def test_chaque_thread_a_sa_propre_session(self):
        uow = unit_of_work.SqlAlchemyUnitOfWork(make_session_factory())
        a_dans_le_bloc = threading.Event()
        b_dans_le_bloc = threading.Event()
        sessions = {}

        def requête_a():
            with uow:
                sessions["a_entrée"] = uow.session
                a_dans_le_bloc.set()
                b_dans_le_bloc.wait(timeout=5)
                sessions["a_après"] = uow.session
                sessions["a_commandes"] = uow.commandes.session

        def requête_b():
            a_dans_le_bloc.wait(timeout=5)
            with uow:
                sessions["b"] = uow.session
                b_dans_le_bloc.set()

        threads = [threading.Thread(target=requête_a), threading.Thread(target=requête_b)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert sessions["a_après"] is sessions["a_entrée"]
        assert sessions["a_commandes"] is sessions["a_entrée"]
        assert sessions["b"] is not sessions["a_entrée"]
