"""
Views (lecture) pour le pattern CQRS.

Les views sont des fonctions de lecture pure qui interrogent
directement la base de données, sans passer par le modèle de domaine.
Elles renvoient des dictionnaires prêts à être sérialisés en JSON,
avec les noms de champs exposés par l'API (`numero`, `isLivrable`,
`commande_articles`...).
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import text

from marketplace.service_layer import unit_of_work

COLONNES_COMMANDE = (
    "c.id, c.numero, c.user_id, c.commentaire, c.statut, c.\"isLivrable\","
    " c.prix, c.adresse_livraison, c.created_at, c.updated_at"
)

SELECT_LIGNES = (
    "SELECT ca.id, ca.commande_id, ca.article_id, ca.variation_id, ca.quantite,"
    " ca.prix_unitaire, a.nom AS article_nom, a.prix AS article_prix,"
    " a.user_id AS article_user_id, v.couleur, v.taille, v.prix AS variation_prix"
    " FROM commande_articles ca"
    " JOIN articles a ON a.id = ca.article_id"
    " LEFT JOIN variations v ON v.id = ca.variation_id"
)


def _sérialiser(ligne: Any) -> dict:
    return {
        clé: valeur.isoformat() if isinstance(valeur, datetime) else valeur
        for clé, valeur in ligne._mapping.items()
    }


def _en_tête_commande(ligne: Any) -> dict:
    donnée = _sérialiser(ligne)
    donnée["isLivrable"] = bool(donnée["isLivrable"])
    return donnée


def _ligne_commande(ligne: Any) -> dict:
    donnée = _sérialiser(ligne)
    return {
        "id": donnée["id"],
        "commande_id": donnée["commande_id"],
        "article_id": donnée["article_id"],
        "variation_id": donnée["variation_id"],
        "quantite": donnée["quantite"],
        "prix_unitaire": donnée["prix_unitaire"],
        "articles": {
            "id": donnée["article_id"],
            "nom": donnée["article_nom"],
            "prix": donnée["article_prix"],
            "user_id": donnée["article_user_id"],
        },
        "variations": None if donnée["variation_id"] is None else {
            "id": donnée["variation_id"],
            "couleur": donnée["couleur"],
            "taille": donnée["taille"],
            "prix": donnée["variation_prix"],
        },
    }


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


def profil(auth_id: str, uow: unit_of_work.AbstractUnitOfWork) -> Optional[dict]:
    """Profil applicatif du compte authentifié, ou None s'il n'existe pas."""
    with uow:
        résultat = uow.session.execute(
            text("SELECT id, auth_id, name, email, role FROM users WHERE auth_id = :auth_id"),
            dict(auth_id=auth_id),
        ).first()
        return _sérialiser(résultat) if résultat else None


def commande(id_commande: str, uow: unit_of_work.AbstractUnitOfWork) -> Optional[dict]:
    """Commande avec ses lignes jointes aux articles et variations."""
    with uow:
        en_tête = uow.session.execute(
            text(f"SELECT {COLONNES_COMMANDE} FROM commandes c WHERE c.id = :id"),
            dict(id=id_commande),
        ).first()
        if en_tête is None:
            return None
        lignes = uow.session.execute(
            text(SELECT_LIGNES + " WHERE ca.commande_id = :id"),
            dict(id=id_commande),
        )
        résultat = _en_tête_commande(en_tête)
        résultat["commande_articles"] = [_ligne_commande(l) for l in lignes]
        return résultat


def articles_commande(
    id_commande: str, uow: unit_of_work.AbstractUnitOfWork
) -> Optional[dict]:
    """Lignes d'une commande et totaux (nombre de lignes, quantité, sous-total)."""
    détail = commande(id_commande, uow)
    if détail is None:
        return None
    lignes = détail["commande_articles"]
    return {
        "commande_id": détail["id"],
        "numero": détail["numero"],
        "statut": détail["statut"],
        "user_id": détail["user_id"],
        "articles": lignes,
        "summary": {
            "total_articles": len(lignes),
            "total_quantite": sum(l["quantite"] for l in lignes),
            "sous_total": sum(l["prix_unitaire"] * l["quantite"] for l in lignes),
        },
    }


def commandes_utilisateur(
    id_utilisateur: str,
    uow: unit_of_work.AbstractUnitOfWork,
    page: int = 1,
    limit: int = 10,
    statut: Optional[str] = None,
) -> dict:
    """Commandes passées par un acheteur, les plus récentes d'abord."""
    filtre = "c.user_id = :id_utilisateur"
    paramètres: dict[str, Any] = dict(id_utilisateur=id_utilisateur)
    if statut:
        filtre += " AND c.statut = :statut"
        paramètres["statut"] = statut

    with uow:
        total = uow.session.execute(
            text(f"SELECT COUNT(*) FROM commandes c WHERE {filtre}"), paramètres
        ).scalar_one()
        en_têtes = uow.session.execute(
            text(
                f"SELECT {COLONNES_COMMANDE} FROM commandes c WHERE {filtre}"
                " ORDER BY c.created_at DESC LIMIT :limit OFFSET :offset"
            ),
            dict(paramètres, limit=limit, offset=(page - 1) * limit),
        ).all()
        commandes = []
        for en_tête in en_têtes:
            lignes = uow.session.execute(
                text(SELECT_LIGNES + " WHERE ca.commande_id = :id"),
                dict(id=en_tête.id),
            )
            résultat = _en_tête_commande(en_tête)
            résultat["commande_articles"] = [_ligne_commande(l) for l in lignes]
            commandes.append(résultat)

    return {"commandes": commandes, "pagination": _pagination(page, limit, total)}


def commandes_boutique(
    id_boutique: str,
    uow: unit_of_work.AbstractUnitOfWork,
    page: int = 1,
    limit: int = 10,
    statut: Optional[str] = None,
) -> dict:
    """
    Commandes contenant au moins un article de la boutique.

    Chaque commande ne présente que les lignes de cette boutique :
    une boutique ne voit pas ce que l'acheteur a pris chez les autres.
    """
    filtre = (
        "c.id IN (SELECT ca.commande_id FROM commande_articles ca"
        " JOIN articles a ON a.id = ca.article_id WHERE a.user_id = :id_boutique)"
    )
    paramètres: dict[str, Any] = dict(id_boutique=id_boutique)
    if statut:
        filtre += " AND c.statut = :statut"
        paramètres["statut"] = statut

    with uow:
        total = uow.session.execute(
            text(f"SELECT COUNT(*) FROM commandes c WHERE {filtre}"), paramètres
        ).scalar_one()
        en_têtes = uow.session.execute(
            text(
                f"SELECT {COLONNES_COMMANDE}, u.name AS acheteur_nom, u.email AS acheteur_email"
                f" FROM commandes c JOIN users u ON u.id = c.user_id WHERE {filtre}"
                " ORDER BY c.created_at DESC LIMIT :limit OFFSET :offset"
            ),
            dict(paramètres, limit=limit, offset=(page - 1) * limit),
        ).all()
        commandes = []
        for en_tête in en_têtes:
            lignes = uow.session.execute(
                text(SELECT_LIGNES + " WHERE ca.commande_id = :id AND a.user_id = :id_boutique"),
                dict(id=en_tête.id, id_boutique=id_boutique),
            )
            résultat = _en_tête_commande(en_tête)
            résultat["users"] = {
                "id": résultat.pop("user_id"),
                "name": résultat.pop("acheteur_nom"),
                "email": résultat.pop("acheteur_email"),
            }
            résultat["commande_articles"] = [_ligne_commande(l) for l in lignes]
            commandes.append(résultat)

    return {"commandes": commandes, "pagination": _pagination(page, limit, total)}
