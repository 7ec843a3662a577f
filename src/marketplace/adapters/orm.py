"""
Mapping ORM avec SQLAlchemy (classical mapping).

On définit les tables séparément, puis on mappe les classes
du domaine sur ces tables. Cela permet au modèle de domaine
de rester ignorant de la persistance (persistence ignorance).

Les noms de tables et de colonnes sont ceux de la base existante
(`commandes`, `commande_articles`, `isLivrable`...) ; le mapping
traduit vers les attributs du domaine.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    event,
)
from sqlalchemy.orm import registry, relationship

from marketplace.domain import model

metadata = MetaData()
mapper_registry = registry(metadata=metadata)

# --- Définition des tables ---

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("auth_id", String(36), unique=True, nullable=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("role", String(255), nullable=False),
    Column("solde", Integer, nullable=False, server_default="0"),
    Column("phone", String(255), nullable=True),
    Column("address", String(255), nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

articles = Table(
    "articles",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("nom", String(255), nullable=False),
    Column("prix", Integer, nullable=False),
    Column("prix_promotion", Integer, nullable=True),
    Column("is_promotion", Boolean, nullable=False, server_default="0"),
    Column("user_id", String(36), ForeignKey("users.id"), nullable=False, index=True),
    Column("categorie", String(255), nullable=True),
    Column("image_principale", String(255), nullable=True),
)

variations = Table(
    "variations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("article_id", String(36), ForeignKey("articles.id"), nullable=False, index=True),
    Column("couleur", String(255), nullable=True),
    Column("taille", String(255), nullable=True),
    Column("stock", Integer, nullable=False, server_default="0"),
    Column("prix", Integer, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)

commandes = Table(
    "commandes",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("numero", String(255), nullable=False),
    Column("user_id", String(36), ForeignKey("users.id"), nullable=False, index=True),
    Column("commentaire", String(255), nullable=False, server_default=""),
    Column("statut", String(64), nullable=False),
    Column("isLivrable", Boolean, nullable=False),
    Column("prix", Integer, nullable=False),
    Column("adresse_livraison", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

commande_articles = Table(
    "commande_articles",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("commande_id", String(36), ForeignKey("commandes.id"), nullable=False, index=True),
    Column("article_id", String(36), ForeignKey("articles.id"), nullable=False, index=True),
    Column("variation_id", String(36), ForeignKey("variations.id"), nullable=True),
    Column("quantite", Integer, nullable=False),
    Column("prix_unitaire", Integer, nullable=False),
)


def start_mappers() -> None:
    """
    Configure le mapping entre les classes du domaine et les tables SQL.

    Les colonnes `solde` et `stock` sont mappées pour la lecture ; leurs
    modifications passent exclusivement par des UPDATE atomiques dans le
    repository, jamais par l'objet chargé en mémoire.

    Sans effet si le mapping est déjà en place (import de l'app Flask
    puis fixture de test, par exemple).
    """
    if mapper_registry.mappers:
        return
    mapper_registry.map_imperatively(
        model.Utilisateur,
        users,
        properties={
            "nom": users.c.name,
            "rôle": users.c.role,
        },
        exclude_properties=["phone", "address", "updated_at"],
    )
    variations_mapper = mapper_registry.map_imperatively(
        model.Variation,
        variations,
        properties={
            "id_article": variations.c.article_id,
        },
        exclude_properties=["updated_at"],
    )
    mapper_registry.map_imperatively(
        model.Article,
        articles,
        properties={
            "id_boutique": articles.c.user_id,
            "est_en_promotion": articles.c.is_promotion,
            "variations": relationship(variations_mapper),
        },
        exclude_properties=["categorie", "image_principale"],
    )
    lignes_mapper = mapper_registry.map_imperatively(
        model.LigneCommande,
        commande_articles,
        properties={
            "id_article": commande_articles.c.article_id,
            "id_variation": commande_articles.c.variation_id,
            "quantité": commande_articles.c.quantite,
        },
    )
    mapper_registry.map_imperatively(
        model.Commande,
        commandes,
        properties={
            "numéro": commandes.c.numero,
            "id_acheteur": commandes.c.user_id,
            "est_livrable": commandes.c.isLivrable,
            "créée_le": commandes.c.created_at,
            "modifiée_le": commandes.c.updated_at,
            "lignes": relationship(lignes_mapper, cascade="all, delete-orphan"),
        },
    )


@event.listens_for(model.Commande, "load")
def receive_load(commande: model.Commande, _: object) -> None:
    """Initialise la liste d'événements quand une Commande est chargée depuis la BDD."""
    commande.événements = []
