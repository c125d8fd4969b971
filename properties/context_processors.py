from django.conf import settings

from .translations import SUPPORTED_LANGUAGES, html_lang, normalize_language


def site_config(request):
    """
    Expose site name, contact details and the active language to all templates.
    """
    lang = normalize_language(getattr(request, "session", {}).get("language"))
    return {
        "site_name": settings.SITE_NAME,
        "contact_email": settings.CONTACT_EMAIL,
        "whatsapp_number": settings.WHATSAPP_NUMBER,
        "available_languages": [
            code for code in settings.AVAILABLE_LANGUAGES if code in SUPPORTED_LANGUAGES
        ],
        "current_language": lang,
        "html_lang": html_lang(lang),
    }
