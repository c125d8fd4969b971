# properties/views.py
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_GET, require_POST

from .models import Property
from .translations import TRANSLATIONS, html_lang, normalize_language, t
from .utils import property_card, whatsapp_link

logger = logging.getLogger(__name__)


def _current_language(request):
    """?lang= wins and is remembered in the session."""
    requested = request.GET.get("lang")
    if requested:
        request.session["language"] = normalize_language(requested)
    return normalize_language(request.session.get("language"))


def _active_cards(lang):
    return [property_card(prop, lang) for prop in Property.objects.active()]


def landing(request):
    lang = _current_language(request)
    error = None
    try:
        cards = _active_cards(lang)
    except DatabaseError as e:
        logger.error(f"Error loading properties: {str(e)}", exc_info=True)
        cards = []
        error = t("load-error", lang)

    context = {
        "lang": lang,
        "current_language": lang,
        "html_lang": html_lang(lang),
        # Template lookups can't contain hyphens
        "strings": {key.replace("-", "_"): value for key, value in TRANSLATIONS[lang].items()},
        "cards": cards,
        "error": error,
        "empty_message": t("no-properties", lang),
        "contact_whatsapp_url": whatsapp_link(),
    }
    return render(request, "properties/landing.html", context)


@require_POST
def set_language(request):
    lang = normalize_language(request.POST.get("language"))
    request.session["language"] = lang

    next_url = request.POST.get("next")
    if not next_url or not url_has_allowed_host_and_scheme(
        next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        next_url = reverse("properties:landing")
    return redirect(next_url)


@require_GET
def property_cards(request):
    lang = _current_language(request)
    try:
        cards = _active_cards(lang)
    except DatabaseError as e:
        logger.error(f"Error loading properties: {str(e)}", exc_info=True)
        return JsonResponse({"success": False, "error": t("load-error", lang)}, status=500)

    data = {"success": True, "language": lang, "cards": cards}
    if not cards:
        data["message"] = t("no-properties", lang)
    return JsonResponse(data)
