from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import parse_qs, quote, urlparse

from django.conf import settings

from .translations import (
    documentation_label,
    infrastructure_label,
    normalize_language,
    position_label,
    property_type_label,
    t,
)


def format_price(price):
    """BRL with pt-BR grouping and no cents, e.g. "R$ 1.250.000"."""
    amount = Decimal(str(price or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}R$ {grouped}"


def format_size(size_m2):
    size = Decimal(str(size_m2 or 0)).normalize()
    # normalize() turns 500 into 5E+2
    return f"{size:f} m²"


def youtube_video_id(url):
    """Video id from a youtube.com/watch?v= or youtu.be/ link, else ""."""
    if not url:
        return ""
    parsed = urlparse(url)
    host = parsed.netloc.lower()
    if host.endswith("youtu.be"):
        return parsed.path.lstrip("/").split("/")[0]
    if "youtube.com" in host:
        if parsed.path == "/watch":
            return parse_qs(parsed.query).get("v", [""])[0]
        if parsed.path.startswith("/embed/"):
            return parsed.path[len("/embed/"):].split("/")[0]
    return ""


def whatsapp_link(message=""):
    number = getattr(settings, "WHATSAPP_NUMBER", "")
    if message:
        # Same escaping as encodeURIComponent
        text = quote(message, safe="!'()*")
        return f"https://wa.me/{number}?text={text}"
    return f"https://wa.me/{number}"


def property_title(prop, lang):
    return (
        getattr(prop, f"title_{lang}", "")
        or prop.title_pt
        or prop.title_en
        or prop.title_de
        or "Property"
    )


def property_description(prop, lang):
    return getattr(prop, f"description_{lang}", "") or prop.description_pt or ""


def property_video(prop):
    """Embed info for the card's video slot, or None."""
    if prop.video_type == prop.VideoType.YOUTUBE and prop.youtube_url:
        video_id = youtube_video_id(prop.youtube_url)
        if video_id:
            return {"kind": "youtube", "src": f"https://www.youtube.com/embed/{video_id}"}
    elif prop.video_type == prop.VideoType.UPLOAD and prop.video:
        return {"kind": "upload", "src": prop.video.url}
    return None


def property_card(prop, lang):
    """Everything the card template needs, already localized."""
    lang = normalize_language(lang)
    title = property_title(prop, lang)

    details = [
        {"label": t("size", lang), "value": format_size(prop.size_m2)},
        {"label": t("location", lang), "value": prop.location},
        {"label": t("type", lang), "value": property_type_label(prop.type, lang)},
    ]
    if prop.documentation:
        details.append(
            {"label": t("documentation", lang), "value": documentation_label(prop.documentation, lang)}
        )
    if prop.position:
        details.append({"label": t("position", lang), "value": position_label(prop.position, lang)})
    if prop.infrastructure:
        details.append(
            {"label": t("infrastructure", lang), "value": infrastructure_label(prop.infrastructure, lang)}
        )

    return {
        "id": prop.id,
        "title": title,
        "description": property_description(prop, lang),
        "details": details,
        "price": format_price(prop.price),
        "video": property_video(prop),
        "cta_label": t("schedule-visit", lang),
        "whatsapp_url": whatsapp_link(t("whatsapp-interest", lang).format(title=title)),
    }
