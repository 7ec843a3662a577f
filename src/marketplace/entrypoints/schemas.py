"""
Schémas de validation des requêtes HTTP (Pydantic).

Les noms de champs sont ceux du contrat JSON de l'API ; la conversion
vers les commands du domaine se fait ici pour que l'entrypoint Flask
reste un simple adaptateur.
"""

from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StrictBool, StrictInt, ValidationError

from marketplace.domain import commands


class ArticleDemandéSchema(BaseModel):
    article_id: UUID
    variation_id: Optional[UUID] = None
    quantite: StrictInt = Field(ge=1)


class CréerCommandeSchema(BaseModel):
    commentaire: str = ""
    isLivrable: StrictBool
    adresse_livraison: str = Field(max_length=255)
    articles: list[ArticleDemandéSchema] = Field(min_length=1)

    def vers_commande(self, id_acheteur: str) -> commands.CréerCommande:
        return commands.CréerCommande(
            id_acheteur=id_acheteur,
            articles=tuple(
                commands.ArticleDemandé(
                    id_article=str(a.article_id),
                    id_variation=str(a.variation_id) if a.variation_id else None,
                    quantité=a.quantite,
                )
                for a in self.articles
            ),
            adresse_livraison=self.adresse_livraison,
            est_livrable=self.isLivrable,
            commentaire=self.commentaire,
        )


class ModifierStatutSchema(BaseModel):
    statut: Literal[
        "En attente",
        "En préparation",
        "Prête pour livraison",
        "En cours de livraison",
        "Livrée",
        "Annulée",
        "Remboursée",
    ]


def erreurs_par_champ(erreur: ValidationError) -> list[dict]:
    """[{"field": "articles.0.quantite", "message": "..."}]"""
    return [
        {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
        for e in erreur.errors()
    ]
