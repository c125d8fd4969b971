from django.core.management.base import BaseCommand

from marketplace.models import Category

# (slug, English name, German name)
DEFAULT_CATEGORIES = [
    ("motors-automotive", "Motors & Automotive", "Fahrzeuge & Motorräder"),
    ("electronics-technology", "Electronics & Technology", "Elektronik & Technik"),
    ("home-garden-diy", "Home, Garden & DIY", "Haus, Garten & Heimwerken"),
    ("fashion-accessories", "Fashion & Accessories", "Mode & Accessoires"),
    ("jewellery-watches", "Jewellery & Watches", "Schmuck & Uhren"),
    ("health-beauty-personal-care", "Health, Beauty & Personal Care", "Gesundheit, Schönheit & Pflege"),
    ("sports-leisure-outdoor", "Sports, Leisure & Outdoor", "Sport, Freizeit & Outdoor"),
    ("toys-games-baby-kids", "Toys, Games, Baby & Kids", "Spielzeug, Spiele, Baby & Kinder"),
    (
        "books-media-musical-instruments",
        "Books, Media & Musical Instruments",
        "Bücher, Medien & Musikinstrumente",
    ),
    ("collectibles-art-antiques", "Collectibles, Art & Antiques", "Sammlerobjekte, Kunst & Antiquitäten"),
    ("business-office-industrial", "Business, Office & Industrial", "Business, Büro & Industrie"),
    ("pet-supplies", "Pet Supplies", "Tierbedarf"),
    (
        "food-beverage-specialty-consumables",
        "Food, Beverage & Specialty Consumables",
        "Lebensmittel, Getränke & Spezialprodukte",
    ),
    (
        "tickets-travel-real-estate-services",
        "Tickets, Travel, Real Estate & Services",
        "Tickets, Reisen, Immobilien & Dienstleistungen",
    ),
]


class Command(BaseCommand):
    help = "Create the default marketplace categories. Existing slugs are left untouched."

    def handle(self, *args, **options):
        created = 0
        for slug, name, name_de in DEFAULT_CATEGORIES:
            _, was_created = Category.objects.get_or_create(
                slug=slug, defaults={"name": name, "description": name_de}
            )
            created += was_created

        self.stdout.write(
            self.style.SUCCESS(
                f"Seeded {created} new categor{'y' if created == 1 else 'ies'} "
                f"({len(DEFAULT_CATEGORIES)} defaults)."
            )
        )
