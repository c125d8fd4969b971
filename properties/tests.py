from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse

from .models import Property
from .translations import (
    get_translation,
    html_lang,
    normalize_language,
    property_type_label,
    t,
)
from .utils import format_price, property_card, property_title, whatsapp_link, youtube_video_id


def make_property(**kwargs):
    defaults = {
        "title_pt": "Terreno em Boa Viagem",
        "title_en": "Land in Boa Viagem",
        "description_pt": "Terreno plano perto da praia",
        "size_m2": Decimal("450.00"),
        "location": "Boa Viagem, Recife",
        "type": Property.Type.RESIDENTIAL,
        "documentation": Property.Documentation.REGISTERED,
        "price": Decimal("1250000"),
    }
    defaults.update(kwargs)
    return Property.objects.create(**defaults)


class TranslationTests(TestCase):
    def test_t_falls_back_to_key(self):
        self.assertEqual(t("schedule-visit", "de"), "Besichtigung Vereinbaren")
        self.assertEqual(t("no-such-key", "en"), "no-such-key")

    def test_normalize_language(self):
        self.assertEqual(normalize_language("DE"), "de")
        self.assertEqual(normalize_language("en-US"), "en")
        self.assertEqual(normalize_language("fr"), "pt")
        self.assertEqual(normalize_language(None), "pt")

    def test_html_lang(self):
        self.assertEqual(html_lang("pt"), "pt-BR")
        self.assertEqual(html_lang("de"), "de-DE")
        self.assertEqual(html_lang("en"), "en-US")

    def test_get_translation_fallback_chain(self):
        self.assertEqual(get_translation({"de": "Ecke", "en": "Corner"}, "de"), "Ecke")
        self.assertEqual(get_translation({"en": "Corner", "pt": "Esquina"}, "de"), "Corner")
        self.assertEqual(get_translation({"pt": "Esquina"}, "de"), "Esquina")
        self.assertEqual(get_translation({}, "de"), "")

    def test_option_labels(self):
        self.assertEqual(property_type_label("Commercial", "pt"), "Comercial")
        self.assertEqual(property_type_label("Unknown", "pt"), "Unknown")


class UtilsTests(TestCase):
    def test_format_price(self):
        self.assertEqual(format_price(Decimal("1250000")), "R$ 1.250.000")
        self.assertEqual(format_price(Decimal("999.50")), "R$ 1.000")
        self.assertEqual(format_price(0), "R$ 0")

    def test_youtube_video_id(self):
        self.assertEqual(youtube_video_id("https://www.youtube.com/watch?v=abc123&t=10"), "abc123")
        self.assertEqual(youtube_video_id("https://youtu.be/xyz789?si=foo"), "xyz789")
        self.assertEqual(youtube_video_id("https://vimeo.com/1234"), "")
        self.assertEqual(youtube_video_id(""), "")

    @override_settings(WHATSAPP_NUMBER="5581999999999")
    def test_whatsapp_link(self):
        self.assertEqual(whatsapp_link(), "https://wa.me/5581999999999")
        self.assertEqual(
            whatsapp_link("Olá! Tenho interesse no terreno: Lote 7"),
            "https://wa.me/5581999999999?text=Ol%C3%A1!%20Tenho%20interesse%20no%20terreno%3A%20Lote%207",
        )

    def test_property_title_fallback(self):
        prop = make_property(title_de="")
        self.assertEqual(property_title(prop, "de"), "Terreno em Boa Viagem")
        self.assertEqual(property_title(prop, "en"), "Land in Boa Viagem")
        untitled = make_property(title_pt="", title_en="")
        self.assertEqual(property_title(untitled, "pt"), "Property")

    @override_settings(WHATSAPP_NUMBER="5581999999999")
    def test_property_card(self):
        prop = make_property(
            video_type=Property.VideoType.YOUTUBE,
            youtube_url="https://youtu.be/xyz789",
            position=Property.Position.CORNER,
        )
        card = property_card(prop, "pt")

        self.assertEqual(card["title"], "Terreno em Boa Viagem")
        self.assertEqual(card["price"], "R$ 1.250.000")
        self.assertEqual(card["video"], {"kind": "youtube", "src": "https://www.youtube.com/embed/xyz789"})
        labels = {d["label"]: d["value"] for d in card["details"]}
        self.assertEqual(labels["Metragem"], "450 m²")
        self.assertEqual(labels["Tipo"], "Residencial")
        self.assertEqual(labels["Documentação"], "Escriturado")
        self.assertEqual(labels["Posição"], "Esquina")
        self.assertNotIn("Infraestrutura", labels)
        self.assertTrue(card["whatsapp_url"].startswith("https://wa.me/5581999999999?text=Ol%C3%A1"))
        self.assertIn("Terreno%20em%20Boa%20Viagem", card["whatsapp_url"])


class LandingViewTests(TestCase):
    def test_only_active_properties_newest_first(self):
        older = make_property(title_pt="Lote antigo")
        newer = make_property(title_pt="Lote novo")
        make_property(title_pt="Lote inativo", status=Property.Status.INACTIVE)

        self.assertEqual(list(Property.objects.active()), [newer, older])

        response = self.client.get(reverse("properties:property_cards"))
        titles = [card["title"] for card in response.json()["cards"]]
        self.assertEqual(titles, ["Lote novo", "Lote antigo"])

    def test_landing_renders_cards(self):
        make_property()
        response = self.client.get(reverse("properties:landing"))
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "properties/landing.html")
        self.assertContains(response, "Terreno em Boa Viagem")
        self.assertContains(response, 'lang="pt-BR"')

    def test_language_from_query_is_persisted(self):
        make_property()
        self.client.get(reverse("properties:landing"), {"lang": "de"})
        self.assertEqual(self.client.session["language"], "de")

        response = self.client.get(reverse("properties:landing"))
        self.assertContains(response, "Besichtigung Vereinbaren")
        self.assertContains(response, 'lang="de-DE"')

    def test_set_language(self):
        response = self.client.post(reverse("properties:set_language"), {"language": "en"})
        self.assertRedirects(response, reverse("properties:landing"))
        self.assertEqual(self.client.session["language"], "en")

    def test_set_language_ignores_offsite_next(self):
        response = self.client.post(
            reverse("properties:set_language"),
            {"language": "en", "next": "https://evil.example.com/"},
        )
        self.assertEqual(response.url, reverse("properties:landing"))

    def test_empty_state_is_localized(self):
        response = self.client.get(reverse("properties:landing"), {"lang": "en"})
        self.assertContains(response, "No properties available at the moment.")

        response = self.client.get(reverse("properties:property_cards"), {"lang": "de"})
        self.assertEqual(response.json()["message"], "Derzeit keine Immobilien verfügbar.")

    def test_error_state_is_localized(self):
        with mock.patch.object(Property.objects, "active", side_effect=DatabaseError("down")):
            response = self.client.get(reverse("properties:landing"), {"lang": "pt"})
            self.assertContains(
                response, "Erro ao carregar propriedades. Tente novamente mais tarde."
            )

            response = self.client.get(reverse("properties:property_cards"))
            self.assertEqual(response.status_code, 500)
            self.assertFalse(response.json()["success"])
