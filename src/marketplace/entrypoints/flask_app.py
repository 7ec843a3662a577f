"""
Point d'entrée Flask.

L'API Flask est un thin adapter : elle authentifie l'appelant,
valide le corps de la requête, convertit en command pour le message
bus, et traduit les résultats et les erreurs en réponses HTTP.
Les lectures passent directement par les views (CQRS).

L'API ne contient aucune logique métier.
"""

from __future__ import annotations

import functools
import logging

from flask import Flask, g, jsonify, request
from pydantic import ValidationError

from marketplace import config
from marketplace.domain import commands, model
from marketplace.entrypoints import schemas
from marketplace.service_layer import bootstrap, handlers
from marketplace.views import views

logging.basicConfig(level=config.get_log_level())
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.json.ensure_ascii = False
bus = bootstrap.bootstrap()


# --- Authentification ---


def exiger_utilisateur(vue):
    """
    Résout le jeton Bearer en profil applicatif, disponible dans `g.profil`.

    401 si le jeton est absent ou refusé, 403 si aucun compte
    `users` n'est rattaché à l'identité.
    """

    @functools.wraps(vue)
    def enveloppe(*args, **kwargs):
        jeton = request.headers.get("Authorization", "").replace("Bearer ", "", 1).strip()
        if not jeton:
            return jsonify({"error": "Non autorisé : token manquant"}), 401

        auth_id = bus.dependencies["identité"].vérifier_jeton(jeton)
        if not auth_id:
            return jsonify({"error": "Non autorisé : token invalide"}), 401

        profil = views.profil(auth_id, bus.uow)
        if profil is None:
            return jsonify({"error": "Accès interdit : utilisateur non trouvé"}), 403

        g.profil = profil
        return vue(*args, **kwargs)

    return enveloppe


def _est_administrateur() -> bool:
    return g.profil["role"] == model.RÔLE_ADMINISTRATEUR


def _entier(nom: str, défaut: int) -> int:
    try:
        valeur = int(request.args.get(nom, défaut))
    except ValueError:
        return défaut
    return valeur if valeur > 0 else défaut


# --- Écriture ---


@app.route("/api/commandes/create", methods=["POST"])
@exiger_utilisateur
def créer_commande_endpoint():
    """
    POST /api/commandes/create
    Body JSON : { commentaire?, isLivrable, adresse_livraison, articles: [...] }

    Crée la commande, décrémente les stocks et crédite les soldes.
    """
    try:
        corps = schemas.CréerCommandeSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"errors": schemas.erreurs_par_champ(e)}), 400

    try:
        results = bus.handle(corps.vers_commande(id_acheteur=g.profil["id"]))
    except (model.Introuvable, model.StockInsuffisant) as e:
        return jsonify({"error": str(e)}), 400
    except handlers.ErreurConfiguration as e:
        return jsonify({"error": str(e)}), 500
    except Exception as e:
        logger.exception("Erreur /api/commandes/create")
        return jsonify({
            "error": "Erreur lors de la création de la commande",
            "details": str(e),
        }), 500

    id_commande = results.pop(0)
    return jsonify({
        "message": "Commande créée avec succès",
        "commande": views.commande(id_commande, bus.uow),
    }), 201


@app.route("/api/commandes/<id_commande>/update-status", methods=["PATCH"])
@exiger_utilisateur
def modifier_statut_endpoint(id_commande: str):
    try:
        corps = schemas.ModifierStatutSchema.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"errors": schemas.erreurs_par_champ(e)}), 400

    try:
        bus.handle(commands.ModifierStatutCommande(
            id_commande=id_commande,
            statut=corps.statut,
            id_demandeur=g.profil["id"],
            rôle_demandeur=g.profil["role"],
        ))
    except model.CommandeIntrouvable as e:
        return jsonify({"error": str(e)}), 404
    except model.AccèsRefusé as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        logger.exception("Erreur /api/commandes/%s/update-status", id_commande)
        return jsonify({"error": "Erreur serveur interne"}), 500

    return jsonify({
        "message": "Statut mis à jour avec succès",
        "commande": views.commande(id_commande, bus.uow),
    }), 200


@app.route("/api/commandes/<id_commande>/delete", methods=["DELETE"])
@exiger_utilisateur
def supprimer_commande_endpoint(id_commande: str):
    try:
        bus.handle(commands.SupprimerCommande(
            id_commande=id_commande,
            id_demandeur=g.profil["id"],
            rôle_demandeur=g.profil["role"],
        ))
    except model.CommandeIntrouvable as e:
        return jsonify({"error": str(e)}), 404
    except model.AccèsRefusé as e:
        return jsonify({"error": str(e)}), 403
    except model.SuppressionImpossible as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        logger.exception("Erreur /api/commandes/%s/delete", id_commande)
        return jsonify({"error": "Erreur serveur interne"}), 500

    return jsonify({
        "message": "Commande supprimée avec succès",
        "commande_id": id_commande,
    }), 200


# --- Lecture ---


@app.route("/api/commandes/user", methods=["GET"])
@exiger_utilisateur
def commandes_utilisateur_endpoint():
    """GET /api/commandes/user?page=&limit=&statut="""
    return jsonify(views.commandes_utilisateur(
        g.profil["id"],
        bus.uow,
        page=_entier("page", 1),
        limit=_entier("limit", 10),
        statut=request.args.get("statut") or None,
    )), 200


@app.route("/api/commandes/boutique", methods=["GET"])
@exiger_utilisateur
def commandes_boutique_endpoint():
    """GET /api/commandes/boutique?page=&limit=&statut="""
    return jsonify(views.commandes_boutique(
        g.profil["id"],
        bus.uow,
        page=_entier("page", 1),
        limit=_entier("limit", 10),
        statut=request.args.get("statut") or None,
    )), 200


@app.route("/api/commandes/<id_commande>", methods=["GET"])
@exiger_utilisateur
def commande_endpoint(id_commande: str):
    commande = views.commande(id_commande, bus.uow)
    if commande is None:
        return jsonify({"error": "Commande introuvable"}), 404
    if not _est_administrateur() and commande["user_id"] != g.profil["id"]:
        return jsonify({"error": "Accès refusé à cette commande"}), 403
    return jsonify({"commande": commande}), 200


@app.route("/api/commandes/<id_commande>/articles", methods=["GET"])
@exiger_utilisateur
def articles_commande_endpoint(id_commande: str):
    résultat = views.articles_commande(id_commande, bus.uow)
    if résultat is None:
        return jsonify({"error": "Commande introuvable"}), 404

    est_boutique = any(
        ligne["articles"]["user_id"] == g.profil["id"] for ligne in résultat["articles"]
    )
    if not (_est_administrateur() or résultat["user_id"] == g.profil["id"] or est_boutique):
        return jsonify({"error": "Accès refusé aux articles de cette commande"}), 403
    return jsonify(résultat), 200
