from __future__ import annotations

from app.core.catalog import render_catalog
from app.core.language import DEFAULT_LANGUAGE

CONTACT_PHONE = "+261 34 11 815 03"
CONTACT_EMAIL = "contact@tantsahamarket.mg"
CONTACT_WEBSITE = "www.tantsahamarket.mg"

TEXTS: dict[str, dict[str, str]] = {
    "ownership": {
        "fr": (
            "Je suis TantsahaBot, l'assistant de TantsahaMarket. J'ai été créé par l'équipe de TantsahaMarket "
            "pour aider les producteurs et acheteurs agricoles à Madagascar. Mon propriétaire est TantsahaMarket, "
            "la place de marché agricole malgache."
        ),
        "mg": (
            "Izaho no TantsahaBot, mpanampy ao amin'ny TantsahaMarket. Noforonin'ny ekipan'ny TantsahaMarket aho "
            "hanampy ny mpamokatra sy ny mpividy ara-pambolena eto Madagasikara. Ny tompoko dia TantsahaMarket."
        ),
        "en": (
            "I am TantsahaBot, the assistant of TantsahaMarket. I was created by the TantsahaMarket team to help "
            "agricultural producers and buyers in Madagascar. My owner is TantsahaMarket, the Malagasy agricultural "
            "marketplace."
        ),
    },
    "contact": {
        "fr": (
            "Pour contacter TantsahaMarket :\n"
            f"- Téléphone : {CONTACT_PHONE}\n"
            f"- Email : {CONTACT_EMAIL}\n"
            f"- Site web : {CONTACT_WEBSITE}\n"
            "- Adresse : Antananarivo, Madagascar\n\n"
            "Nous sommes disponibles du lundi au vendredi, 8h-17h."
        ),
        "mg": (
            "Mifandray amin'ny TantsahaMarket :\n"
            f"- Telefaonina : {CONTACT_PHONE}\n"
            f"- Mailaka : {CONTACT_EMAIL}\n"
            f"- Tranonkala : {CONTACT_WEBSITE}\n"
            "- Adiresy : Antananarivo, Madagasikara\n\n"
            "Misokatra isan'alatsinainy ka hatramin'ny zoma, 8h-17h."
        ),
        "en": (
            "Contact TantsahaMarket:\n"
            f"- Phone: {CONTACT_PHONE}\n"
            f"- Email: {CONTACT_EMAIL}\n"
            f"- Website: {CONTACT_WEBSITE}\n"
            "- Address: Antananarivo, Madagascar\n\n"
            "We are available Monday to Friday, 8AM-5PM."
        ),
    },
    "fallback": {
        "fr": (
            "Je rencontre des difficultés techniques. En attendant, voici quelques produits populaires :\n"
            "- Fruits de saison : litchis, mangues\n"
            "- Légumes : tomates, carottes\n"
            "- Viandes : zébu, poulet\n"
            "- Exportations : vanille, café\n\n"
            f"Contact : {CONTACT_PHONE}"
        ),
        "mg": (
            "Misy olana teknika aho. Mandritra izany, ireto vokatra malaza :\n"
            "- Voankazo : litchi, manga\n"
            "- Anana : voatabia, karaoty\n"
            "- Hena : omby, akoho\n"
            "- Fanondranana : vanila, kafe\n\n"
            f"Fifandraisana : {CONTACT_PHONE}"
        ),
        "en": (
            "I am experiencing technical issues. Meanwhile, here are some popular products:\n"
            "- Seasonal fruits: litchis, mangoes\n"
            "- Vegetables: tomatoes, carrots\n"
            "- Meats: zebu, chicken\n"
            "- Exports: vanilla, coffee\n\n"
            f"Contact: {CONTACT_PHONE}"
        ),
    },
    "timeout": {
        "fr": "La requête a pris trop de temps. Veuillez réessayer.",
        "mg": "Naharitra loatra ny fangatahana. Andramo indray azafady.",
        "en": "The request took too long. Please try again.",
    },
    "rate_limited": {
        "fr": "Trop de requêtes. Veuillez patienter.",
        "mg": "Be loatra ny fangatahana. Miandrasa kely azafady.",
        "en": "Too many requests. Please wait a moment.",
    },
    "configuration": {
        "fr": "Configuration du service invalide. Veuillez contacter le support.",
        "mg": "Misy olana amin'ny fandrindrana ny tolotra. Mifandraisa amin'ny fanohanana.",
        "en": "Service configuration is invalid. Please contact support.",
    },
    "method_not_allowed": {
        "fr": "Méthode non autorisée.",
        "mg": "Tsy azo ampiasaina io fomba io.",
        "en": "Method not allowed.",
    },
}

_PRODUCTS_HEADER = {
    "fr": "Produits disponibles sur TantsahaMarket :",
    "mg": "Vokatra hita ao amin'ny TantsahaMarket :",
    "en": "Products available on TantsahaMarket:",
}
_PRODUCTS_FOOTER = {
    "fr": "Demandez-moi des détails sur un produit spécifique !",
    "mg": "Anontanio ny momba ny vokatra iray manokana!",
    "en": "Ask me for details about a specific product!",
}


def products_text(language: str) -> str:
    language = language if language in _PRODUCTS_HEADER else DEFAULT_LANGUAGE
    return f"{_PRODUCTS_HEADER[language]}\n\n{render_catalog(language)}\n\n{_PRODUCTS_FOOTER[language]}"


def canned(kind: str, language: str) -> str:
    if kind == "products":
        return products_text(language)
    texts = TEXTS.get(kind, TEXTS["fallback"])
    return texts.get(language) or texts[DEFAULT_LANGUAGE]
