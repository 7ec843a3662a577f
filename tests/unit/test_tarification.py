"""
Tests unitaires des règles de prix.

Fonctions pures : prix unitaire effectif, frais de service par palier,
frais de livraison, format des numéros, chiffrage d'un panier complet.
"""

import pytest

from marketplace.domain import tarification
from marketplace.domain.model import StockInsuffisant, VariationIntrouvable

from fabriques import créer_article


BOUTIQUE = "boutique-1"


# --- Prix unitaire ---


class TestRésoudrePrixUnitaire:
    def test_prix_de_base_sans_variation(self):
        article = créer_article(BOUTIQUE, prix=10_000)
        prix, variation = tarification.résoudre_prix_unitaire(article, None, 2)
        assert prix == 10_000
        assert variation is None

    def test_prix_promotionnel_sans_variation(self):
        article = créer_article(
            BOUTIQUE, prix=10_000, prix_promotion=8_000, est_en_promotion=True
        )
        prix, _ = tarification.résoudre_prix_unitaire(article, None, 1)
        assert prix == 8_000

    def test_prix_promotion_ignoré_si_article_pas_en_promotion(self):
        article = créer_article(BOUTIQUE, prix=10_000, prix_promotion=8_000)
        prix, _ = tarification.résoudre_prix_unitaire(article, None, 1)
        assert prix == 10_000

    def test_prix_propre_de_la_variation(self):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(5, 12_000)])
        id_variation = article.variations[0].id
        prix, variation = tarification.résoudre_prix_unitaire(article, id_variation, 1)
        assert prix == 12_000
        assert variation is article.variations[0]

    @pytest.mark.parametrize("prix_variation", [0, None])
    def test_variation_sans_prix_propre_prend_le_prix_article(self, prix_variation):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(5, prix_variation)])
        prix, _ = tarification.résoudre_prix_unitaire(article, article.variations[0].id, 1)
        assert prix == 10_000

    def test_la_promotion_l_emporte_sur_le_prix_de_la_variation(self):
        article = créer_article(
            BOUTIQUE,
            prix=10_000,
            prix_promotion=7_000,
            est_en_promotion=True,
            variations=[(5, 12_000)],
        )
        prix, _ = tarification.résoudre_prix_unitaire(article, article.variations[0].id, 1)
        assert prix == 7_000

    def test_promotion_sans_prix_promotionnel_prend_le_prix_de_base(self):
        article = créer_article(BOUTIQUE, prix=10_000, est_en_promotion=True)
        prix, _ = tarification.résoudre_prix_unitaire(article, None, 1)
        assert prix == 10_000

    def test_promotion_sans_prix_promotionnel_garde_le_prix_de_la_variation(self):
        article = créer_article(
            BOUTIQUE, prix=10_000, est_en_promotion=True, variations=[(5, 12_000)]
        )
        prix, _ = tarification.résoudre_prix_unitaire(article, article.variations[0].id, 1)
        assert prix == 12_000

    def test_variation_inconnue(self):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(5, None)])
        with pytest.raises(VariationIntrouvable, match="var-inexistante"):
            tarification.résoudre_prix_unitaire(article, "var-inexistante", 1)

    def test_variation_d_un_autre_article_est_inconnue(self):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(5, None)])
        autre = créer_article(BOUTIQUE, prix=10_000, variations=[(5, None)])
        with pytest.raises(VariationIntrouvable):
            tarification.résoudre_prix_unitaire(article, autre.variations[0].id, 1)

    def test_stock_de_la_variation_insuffisant(self):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(3, None)])
        with pytest.raises(StockInsuffisant):
            tarification.résoudre_prix_unitaire(article, article.variations[0].id, 5)

    def test_stock_égal_à_la_quantité_suffit(self):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(3, None)])
        prix, _ = tarification.résoudre_prix_unitaire(article, article.variations[0].id, 3)
        assert prix == 10_000

    def test_sans_variation_le_stock_cumulé_est_vérifié(self):
        article = créer_article(BOUTIQUE, prix=10_000, variations=[(2, None), (1, None)])
        with pytest.raises(StockInsuffisant):
            tarification.résoudre_prix_unitaire(article, None, 4)
        prix, _ = tarification.résoudre_prix_unitaire(article, None, 3)
        assert prix == 10_000


# --- Frais de service ---


class TestCalculerFrais:
    @pytest.mark.parametrize(
        "prix_unitaire, frais_unitaire",
        [
            (1, 300),
            (14_999, 300),
            (15_000, 500),
            (49_999, 500),
            (50_000, 1_000),
            (250_000, 1_000),
        ],
    )
    def test_paliers(self, prix_unitaire, frais_unitaire):
        assert tarification.frais_par_unité(prix_unitaire) == frais_unitaire

    def test_frais_et_bénéfice_multipliés_par_la_quantité(self):
        frais, bénéfice = tarification.calculer_frais(10_000, 2)
        assert frais == 600
        assert bénéfice == 19_400

    def test_bénéfice_plus_frais_égale_sous_total(self):
        frais, bénéfice = tarification.calculer_frais(55_000, 3)
        assert frais == 3_000
        assert frais + bénéfice == 165_000


# --- Frais de livraison ---


class TestFraisLivraison:
    @pytest.mark.parametrize(
        "adresse, attendu",
        [
            ("Quartier Louis, Libreville", 2_500),
            ("LIBREVILLE centre", 2_500),
            ("Akanda, cité de la démocratie", 2_000),
            ("Owendo port", 3_000),
            ("Port-Gentil", 3_000),
            ("", 3_000),
        ],
    )
    def test_tarif_de_base_par_localité(self, adresse, attendu):
        assert tarification.calculer_frais_livraison(adresse, 1) == attendu

    def test_première_localité_de_la_table_l_emporte(self):
        # "libreville" est testée avant "akanda"
        assert tarification.calculer_frais_livraison("Akanda près de Libreville", 1) == 2_500

    def test_multiplié_par_le_nombre_de_boutiques(self):
        assert tarification.calculer_frais_livraison("Akanda", 3) == 6_000

    @pytest.mark.parametrize("nombre_boutiques", [4, 5, 20])
    def test_plafonné(self, nombre_boutiques):
        assert tarification.calculer_frais_livraison("Libreville", nombre_boutiques) == 8_000


# --- Numéros de commande ---


class TestNuméroCommande:
    def test_format(self):
        assert tarification.formater_numéro_commande(2024, 1) == "CMD-24-00001"
        assert tarification.formater_numéro_commande(2025, 12_345) == "CMD-25-12345"

    def test_année_sur_deux_chiffres(self):
        assert tarification.formater_numéro_commande(2100, 7) == "CMD-00-00007"

    def test_numéro_de_secours_garde_les_cinq_derniers_chiffres(self):
        assert tarification.numéro_de_secours(2024, 1_718_000_012_345) == "CMD-24-12345"


# --- Chiffrage d'un panier ---


class TestChiffrerCommande:
    def test_scénario_une_boutique_à_libreville(self):
        article = créer_article("boutique-a", prix=10_000)

        chiffrage = tarification.chiffrer_commande([(article, None, 2)], "Libreville")

        assert chiffrage.sous_total == 20_000
        assert chiffrage.frais_plateforme == 600
        assert chiffrage.bénéfices_par_boutique == {"boutique-a": 19_400}
        assert chiffrage.frais_livraison == 2_500
        assert chiffrage.total == 22_500

    def test_réconciliation_plusieurs_boutiques(self):
        a = créer_article("boutique-a", prix=10_000)
        b = créer_article("boutique-b", prix=20_000, variations=[(10, 55_000)])
        c = créer_article("boutique-a", prix=5_000, prix_promotion=4_000, est_en_promotion=True)

        chiffrage = tarification.chiffrer_commande(
            [(a, None, 1), (b, b.variations[0].id, 2), (c, None, 3)],
            "Owendo",
        )

        assert chiffrage.ids_boutiques == ["boutique-a", "boutique-b"]
        assert chiffrage.frais_livraison == 6_000
        assert chiffrage.total == sum(l.sous_total for l in chiffrage.lignes) + 6_000
        assert (
            sum(chiffrage.bénéfices_par_boutique.values()) + chiffrage.frais_plateforme
            == chiffrage.total - chiffrage.frais_livraison
        )

    def test_variation_demandée_deux_fois_vérifiée_sur_le_cumul(self):
        article = créer_article("boutique-a", prix=10_000, variations=[(3, None)])
        id_variation = article.variations[0].id

        with pytest.raises(StockInsuffisant):
            tarification.chiffrer_commande(
                [(article, id_variation, 2), (article, id_variation, 2)], "Libreville"
            )

    def test_article_sans_variation_demandé_deux_fois_vérifié_sur_le_cumul(self):
        article = créer_article("boutique-a", prix=10_000, variations=[(2, None), (1, None)])

        with pytest.raises(StockInsuffisant):
            tarification.chiffrer_commande(
                [(article, None, 2), (article, None, 2)], "Libreville"
            )

    def test_article_sans_variation_demandé_deux_fois_dans_la_limite_du_stock(self):
        article = créer_article("boutique-a", prix=10_000, variations=[(2, None), (1, None)])

        chiffrage = tarification.chiffrer_commande(
            [(article, None, 2), (article, None, 1)], "Libreville"
        )

        assert [l.quantité for l in chiffrage.lignes] == [2, 1]

    def test_article_en_promotion_sans_prix_promotionnel(self):
        article = créer_article("boutique-a", prix=10_000, est_en_promotion=True)

        chiffrage = tarification.chiffrer_commande([(article, None, 2)], "Libreville")

        assert chiffrage.total == 22_500
        assert chiffrage.frais_plateforme == 600
