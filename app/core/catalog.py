from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from app.core.sessions import Session


@dataclass(frozen=True)
class ProductEntry:
    name: str
    names: tuple[str, ...]
    categories: tuple[str, ...]


def _p(name: str, names: tuple[str, ...], categories: tuple[str, ...]) -> ProductEntry:
    return ProductEntry(name=name, names=names, categories=categories)


CATALOG: dict[str, tuple[ProductEntry, ...]] = {
    "cereals": (
        _p("riz", ("riz", "vary", "rice"), ("céréale", "base")),
        _p("maïs", ("maïs", "katsaka", "corn"), ("céréale", "fourrage")),
        _p("blé", ("blé", "wheat"), ("céréale",)),
        _p("avoine", ("avoine", "oat"), ("céréale", "fourrage")),
        _p("orge", ("orge", "barley"), ("céréale", "brasserie")),
        _p("millet", ("millet", "petit mil"), ("céréale",)),
        _p("sorgho", ("sorgho", "sorghum"), ("céréale", "fourrage")),
        _p("quinoa", ("quinoa",), ("céréale", "bio")),
    ),
    "vegetables": (
        _p("tomate", ("tomate", "tomato", "voatabia"), ("légume", "frais")),
        _p("oignon", ("oignon", "onion", "tongolo"), ("légume", "condiment")),
        _p("pomme de terre", ("pomme de terre", "patate", "potato", "ovy"), ("légume", "tubercule")),
        _p("carotte", ("carotte", "carrot", "karaoty"), ("légume", "racine")),
        _p("chou", ("chou", "cabbage", "lasary"), ("légume", "feuille")),
        _p("laitue", ("laitue", "salade", "lettuce", "salady"), ("légume", "feuille")),
        _p("aubergine", ("aubergine", "eggplant", "baranjely"), ("légume", "frais")),
        _p("courgette", ("courgette", "zucchini", "kôzety"), ("légume",)),
        _p("concombre", ("concombre", "cucumber", "konkombra"), ("légume",)),
        _p("poivron", ("poivron", "bell pepper", "pilipily maitso"), ("légume", "condiment")),
        _p("piment", ("piment", "chili", "sakay"), ("légume", "condiment")),
        _p("haricot vert", ("haricot vert", "green bean", "tsaramaso maitso"), ("légume", "légumineuse")),
        _p("petits pois", ("petits pois", "pea", "tsaramaso kely"), ("légume", "légumineuse")),
        _p("poireau", ("poireau", "leek"), ("légume",)),
        _p("céleri", ("céleri", "celery"), ("légume", "aromatique")),
        _p("radis", ("radis", "radish"), ("légume", "racine")),
        _p("betterave", ("betterave", "beetroot", "betiravy"), ("légume", "racine")),
        _p("navet", ("navet", "turnip"), ("légume", "racine")),
        _p("épinard", ("épinard", "spinach", "épina"), ("légume", "feuille")),
        _p("brocoli", ("brocoli", "broccoli"), ("légume",)),
        _p("chou-fleur", ("chou-fleur", "cauliflower"), ("légume",)),
    ),
    "tubers": (
        _p("manioc", ("manioc", "cassava", "mangahazo"), ("tubercule", "base")),
        _p("patate douce", ("patate douce", "sweet potato", "ovim-bazaha"), ("tubercule",)),
        _p("igname", ("igname", "yam", "ovy mahery"), ("tubercule",)),
        _p("taro", ("taro", "saonjo"), ("tubercule",)),
        _p("gingembre", ("gingembre", "ginger", "sakamalao"), ("tubercule", "condiment")),
        _p("curcuma", ("curcuma", "turmeric", "tamotamo"), ("tubercule", "condiment")),
    ),
    "fruits": (
        _p("banane", ("banane", "banana", "akondro"), ("fruit", "tropical")),
        _p("mangue", ("mangue", "mango", "manga"), ("fruit", "tropical")),
        _p("litchi", ("litchi", "lychee"), ("fruit", "tropical", "export")),
        _p("ananas", ("ananas", "pineapple", "mananasy"), ("fruit", "tropical")),
        _p("papaye", ("papaye", "papaya", "voapaza"), ("fruit", "tropical")),
        _p("goyave", ("goyave", "guava", "goavy"), ("fruit",)),
        _p("citron", ("citron", "lemon", "limony"), ("fruit", "agrume")),
        _p("orange", ("orange", "voasary"), ("fruit", "agrume")),
        _p("pamplemousse", ("pamplemousse", "grapefruit", "pampla"), ("fruit", "agrume")),
        _p("mandarine", ("mandarine", "tangerine"), ("fruit", "agrume")),
        _p("raisin", ("raisin", "grape", "voaloboka"), ("fruit",)),
        _p("avocat", ("avocat", "avocado", "zavoka"), ("fruit",)),
        _p("noix de coco", ("noix de coco", "coconut", "voaniho"), ("fruit", "tropical")),
        _p("fruit de la passion", ("fruit de la passion", "passion fruit", "grenadille"), ("fruit", "tropical")),
        _p("corossol", ("corossol", "soursop", "voanantsindrana"), ("fruit",)),
        _p("jacquier", ("jacquier", "jackfruit", "voankazo be"), ("fruit",)),
        _p("durian", ("durian",), ("fruit",)),
        _p("ramboutan", ("ramboutan",), ("fruit", "tropical")),
        _p("longane", ("longane",), ("fruit",)),
        _p("mûre", ("mûre", "blackberry"), ("fruit", "baie")),
        _p("framboise", ("framboise", "raspberry"), ("fruit", "baie")),
        _p("fraise", ("fraise", "strawberry", "fresy"), ("fruit", "baie")),
        _p("myrtille", ("myrtille", "blueberry"), ("fruit", "baie")),
    ),
    "spices": (
        _p("vanille", ("vanille", "vanilla"), ("épice", "export")),
        _p("poivre", ("poivre", "pepper", "dipoavatra"), ("épice",)),
        _p("cannelle", ("cannelle", "cinnamon", "kanelina"), ("épice",)),
        _p("clou de girofle", ("clou de girofle", "clove", "girofle"), ("épice", "export")),
        _p("cardamome", ("cardamome", "cardamom"), ("épice",)),
        _p("muscade", ("muscade", "nutmeg"), ("épice",)),
        _p("curry", ("curry",), ("épice", "mélange")),
        _p("thym", ("thym", "thyme"), ("aromate",)),
        _p("romarin", ("romarin", "rosemary"), ("aromate",)),
        _p("basilic", ("basilic", "basil", "bonanitra"), ("aromate",)),
        _p("persil", ("persil", "parsley"), ("aromate",)),
        _p("coriandre", ("coriandre", "coriander"), ("aromate",)),
        _p("menthe", ("menthe", "mint", "menta"), ("aromate",)),
    ),
    "exports": (
        _p("café", ("café", "coffee", "kafe"), ("boisson", "export")),
        _p("cacao", ("cacao", "cocoa"), ("export", "transformation")),
        _p("thé", ("thé", "tea", "dite"), ("boisson", "export")),
        _p("poivre noir", ("poivre noir", "black pepper"), ("épice", "export")),
        _p("poivre blanc", ("poivre blanc", "white pepper"), ("épice", "export")),
        _p("poivre vert", ("poivre vert", "green pepper"), ("épice", "export")),
        _p("huile essentielle", ("huile essentielle", "essential oil"), ("export", "transformation")),
        _p("ylang-ylang", ("ylang-ylang", "ilang-ilang"), ("export", "parfumerie")),
        _p("vétiver", ("vétiver", "vetiver"), ("export", "parfumerie")),
    ),
    "meats": (
        _p("viande de zébu", ("viande de zébu", "zébu", "beef", "hena omby"), ("viande", "bovin")),
        _p("poulet", ("poulet", "chicken", "akoho"), ("viande", "volaille")),
        _p("canard", ("canard", "duck", "gana"), ("viande", "volaille")),
        _p("dinde", ("dinde", "turkey"), ("viande", "volaille")),
        _p("porc", ("porc", "pork", "hena kisoa"), ("viande", "porcin")),
        _p("agneau", ("agneau", "lamb", "zaanimpito"), ("viande", "ovin")),
        _p("chèvre", ("chèvre", "goat", "osy"), ("viande", "caprin")),
        _p("lapin", ("lapin", "rabbit", "bitro"), ("viande",)),
    ),
    "seafood": (
        _p("poisson frais", ("poisson frais", "poisson", "fish", "trondro maitso"), ("mer", "frais")),
        _p("crevette", ("crevette", "shrimp"), ("mer", "crustacé")),
        _p("crabe", ("crabe", "crab"), ("mer", "crustacé")),
        _p("langouste", ("langouste", "lobster"), ("mer", "crustacé", "export")),
        _p("poulpe", ("poulpe", "octopus"), ("mer", "mollusque")),
        _p("calamar", ("calamar", "squid"), ("mer", "mollusque")),
        _p("huître", ("huître", "oyster"), ("mer", "mollusque")),
        _p("moule", ("moule", "mussel"), ("mer", "mollusque")),
    ),
    "dairy": (
        _p("lait", ("lait", "milk", "ronono"), ("laitier",)),
        _p("fromage", ("fromage", "cheese", "fromazy"), ("laitier", "transformation")),
        _p("yaourt", ("yaourt", "yogurt"), ("laitier", "transformation")),
        _p("beurre", ("beurre", "butter", "dibera"), ("laitier", "transformation")),
        _p("crème", ("crème", "cream"), ("laitier", "transformation")),
        _p("œufs", ("œufs", "oeufs", "eggs", "atody"), ("animal",)),
    ),
    "legumes": (
        _p("haricot sec", ("haricot sec", "bean", "tsaramaso maina"), ("légumineuse", "sec")),
        _p("lentille", ("lentille", "lentil"), ("légumineuse",)),
        _p("pois chiche", ("pois chiche", "chickpea"), ("légumineuse",)),
        _p("pois cassé", ("pois cassé", "split pea"), ("légumineuse",)),
        _p("soja", ("soja", "soybean"), ("légumineuse", "transformation")),
        _p("arachide", ("arachide", "peanut", "voanjo"), ("légumineuse", "oléagineux")),
    ),
    "oilseeds": (
        _p("tournesol", ("tournesol", "sunflower"), ("oléagineux",)),
        _p("colza", ("colza", "rapeseed"), ("oléagineux",)),
        _p("sésame", ("sésame", "sesame"), ("oléagineux",)),
        _p("palmier à huile", ("palmier à huile", "oil palm"), ("oléagineux",)),
    ),
    "processed": (
        _p("confiture", ("confiture", "jam", "marmelady"), ("transformé", "fruit")),
        _p("jus de fruit", ("jus de fruit", "fruit juice"), ("transformé", "boisson")),
        _p("conserves", ("conserves", "canned food", "konserba"), ("transformé",)),
        _p("fruits secs", ("fruits secs", "dried fruits"), ("transformé", "fruit")),
        _p("légumes surgelés", ("légumes surgelés", "frozen vegetables"), ("transformé",)),
        _p("viande séchée", ("viande séchée", "dried meat", "kitoza"), ("transformé", "viande")),
        _p("saucisse", ("saucisse", "sausage"), ("transformé", "viande")),
        _p("charcuterie", ("charcuterie",), ("transformé", "viande")),
    ),
    "medicinal": (
        _p("ravintsara", ("ravintsara",), ("médicinal", "huile essentielle")),
        _p("niaouli", ("niaouli",), ("médicinal", "huile essentielle")),
        _p("katrafay", ("katrafay",), ("médicinal",)),
        _p("mandravasarotra", ("mandravasarotra",), ("médicinal",)),
        _p("voandelaka", ("voandelaka",), ("médicinal",)),
    ),
    "flowers": (
        _p("orchidée", ("orchidée", "orchid"), ("ornemental", "export")),
        _p("rose", ("rose",), ("ornemental",)),
        _p("lys", ("lys", "lily"), ("ornemental",)),
        _p("protea", ("protea",), ("ornemental", "export")),
        _p("gerbera", ("gerbera",), ("ornemental",)),
    ),
}

CATEGORY_LABELS: dict[str, dict[str, str]] = {
    "cereals": {"fr": "Céréales", "mg": "Vary sy voamena", "en": "Cereals"},
    "vegetables": {"fr": "Légumes", "mg": "Anana", "en": "Vegetables"},
    "tubers": {"fr": "Tubercules", "mg": "Voamba", "en": "Tubers"},
    "fruits": {"fr": "Fruits", "mg": "Voankazo", "en": "Fruits"},
    "spices": {"fr": "Épices & aromates", "mg": "Zava-manitra", "en": "Spices & herbs"},
    "exports": {"fr": "Produits d'export", "mg": "Fanondranana", "en": "Export products"},
    "meats": {"fr": "Viandes", "mg": "Hena", "en": "Meats"},
    "seafood": {"fr": "Produits de la mer", "mg": "Vokatra an-dranomasina", "en": "Seafood"},
    "dairy": {"fr": "Produits laitiers", "mg": "Vokatra ronono", "en": "Dairy"},
    "legumes": {"fr": "Légumineuses", "mg": "Tsaramaso sy voanjo", "en": "Legumes"},
    "oilseeds": {"fr": "Oléagineux", "mg": "Voamena menaka", "en": "Oilseeds"},
    "processed": {"fr": "Produits transformés", "mg": "Vokatra voaova", "en": "Processed products"},
    "medicinal": {"fr": "Plantes médicinales", "mg": "Zavamaniry fanafody", "en": "Medicinal plants"},
    "flowers": {"fr": "Fleurs", "mg": "Voninkazo", "en": "Flowers"},
}

# Extra alternatives by bucket, appended after same-bucket products.
_SIMILAR_BY_BUCKET: dict[str, tuple[str, ...]] = {
    "cereals": ("maïs", "blé", "quinoa", "sorgho"),
    "vegetables": ("carotte", "chou", "laitue", "courgette"),
    "exports": ("vanille", "café", "cacao", "clou de girofle"),
}
_SIMILAR_BY_PRODUCT: dict[str, tuple[str, ...]] = {
    "mangue": ("papaye", "goyave", "ananas"),
    "litchi": ("ramboutan", "longane", "fruit de la passion"),
    "viande de zébu": ("poulet", "porc", "agneau"),
}
MAX_ALTERNATIVES = 6

SEASONAL_PRODUCTS: dict[int, tuple[tuple[str, tuple[str, ...]], ...]] = {
    1: (
        ("fruits", ("litchi", "mangue verte")),
        ("légumes", ("tomate", "piment", "aubergine")),
        ("céréales", ("riz", "manioc")),
        ("export", ("vanille (récolte)",)),
    ),
    2: (
        ("fruits", ("litchi", "mangue", "avocat")),
        ("légumes", ("haricot vert", "carotte", "chou")),
        ("céréales", ("riz (récolte)",)),
    ),
    3: (
        ("fruits", ("mangue", "ananas", "banane")),
        ("tubercules", ("patate douce", "igname", "tomate")),
        ("export", ("café (récolte)",)),
    ),
    4: (
        ("fruits", ("mangue", "citron", "papaye")),
        ("légumes", ("carotte", "oignon", "ail")),
        ("céréales", ("maïs",)),
    ),
    5: (
        ("agrumes", ("orange", "mandarine", "pamplemousse")),
        ("légumes", ("pomme de terre", "chou", "poireau")),
        ("export", ("vanille (préparation)",)),
    ),
    6: (
        ("fruits", ("litchi d'hiver", "grenadille", "kaki")),
        ("tubercules", ("ail", "gingembre", "curcuma")),
        ("légumes-feuilles", ("laitue", "épinard")),
    ),
    7: (
        ("fruits", ("grenadille", "fruit de la passion", "corossol")),
        ("légumes", ("poireau", "navet", "betterave")),
        ("export", ("clou de girofle",)),
    ),
    8: (
        ("petits fruits", ("fraise", "framboise", "myrtille")),
        ("légumes", ("betterave", "céleri", "radis")),
        ("export", ("cacao",)),
    ),
    9: (
        ("fruits", ("raisin", "figue", "prune")),
        ("légumes", ("aubergine", "courgette", "poivron")),
        ("export", ("thé",)),
    ),
    10: (
        ("fruits tropicaux", ("papaye", "goyave", "noix de coco")),
        ("légumes", ("maïs", "poivron", "concombre")),
        ("épices-export", ("clou de girofle", "vanille", "poivre")),
    ),
    11: (
        ("fruits", ("mangue précoce", "pastèque", "melon")),
        ("légumes", ("concombre", "salade", "tomate cerise")),
        ("export", ("clou de girofle", "café", "cacao")),
    ),
    12: (
        ("fruits", ("litchi", "mangue", "ananas")),
        ("légumes-aromatiques", ("tomate cerise", "herbes aromatiques", "piment")),
        ("export", ("litchi (export)", "vanille", "huiles essentielles")),
    ),
}

MONTH_NAMES: dict[str, tuple[str, ...]] = {
    "fr": (
        "janvier", "février", "mars", "avril", "mai", "juin",
        "juillet", "août", "septembre", "octobre", "novembre", "décembre",
    ),
    "mg": (
        "janoary", "febroary", "martsa", "aprily", "mey", "jona",
        "jolay", "aogositra", "septambra", "oktobra", "novambra", "desambra",
    ),
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
}

# Indicative ranges; keys are matched as substrings of the canonical name, in order.
PRICE_RANGES: dict[str, tuple[tuple[str, str], ...]] = {
    "fr": (
        ("riz", "2 000 - 4 000 MGA/kg"),
        ("maïs", "1 500 - 3 000 MGA/kg"),
        ("tomate", "1 000 - 3 000 MGA/kg"),
        ("oignon", "1 500 - 3 500 MGA/kg"),
        ("pomme de terre", "1 500 - 3 000 MGA/kg"),
        ("carotte", "2 000 - 4 000 MGA/kg"),
        ("mangue", "800 - 2 000 MGA/kg"),
        ("litchi", "3 000 - 6 000 MGA/kg"),
        ("banane", "500 - 1 500 MGA/kg"),
        ("viande de zébu", "15 000 - 25 000 MGA/kg"),
        ("poulet", "8 000 - 15 000 MGA/kg"),
        ("poisson frais", "5 000 - 15 000 MGA/kg"),
        ("vanille", "300 000 - 800 000 MGA/kg"),
        ("café", "10 000 - 30 000 MGA/kg"),
        ("cacao", "8 000 - 20 000 MGA/kg"),
        ("girofle", "15 000 - 30 000 MGA/kg"),
        ("lait", "2 000 - 4 000 MGA/litre"),
        ("fromage", "10 000 - 25 000 MGA/kg"),
        ("œufs", "300 - 500 MGA/pièce"),
    ),
    "mg": (
        ("riz", "2 000 - 4 000 Ar/kg"),
        ("maïs", "1 500 - 3 000 Ar/kg"),
        ("tomate", "1 000 - 3 000 Ar/kg"),
        ("oignon", "1 500 - 3 500 Ar/kg"),
        ("pomme de terre", "1 500 - 3 000 Ar/kg"),
        ("carotte", "2 000 - 4 000 Ar/kg"),
        ("mangue", "800 - 2 000 Ar/kg"),
        ("litchi", "3 000 - 6 000 Ar/kg"),
        ("banane", "500 - 1 500 Ar/kg"),
        ("viande de zébu", "15 000 - 25 000 Ar/kg"),
        ("poulet", "8 000 - 15 000 Ar/kg"),
        ("poisson frais", "5 000 - 15 000 Ar/kg"),
        ("vanille", "300 000 - 800 000 Ar/kg"),
        ("café", "10 000 - 30 000 Ar/kg"),
        ("cacao", "8 000 - 20 000 Ar/kg"),
        ("girofle", "15 000 - 30 000 Ar/kg"),
        ("lait", "2 000 - 4 000 Ar/litre"),
        ("fromage", "10 000 - 25 000 Ar/kg"),
        ("œufs", "300 - 500 Ar/iraiky"),
    ),
    "en": (
        ("riz", "0.5 - 1 USD/kg"),
        ("maïs", "0.4 - 0.8 USD/kg"),
        ("tomate", "0.3 - 0.8 USD/kg"),
        ("oignon", "0.4 - 0.9 USD/kg"),
        ("pomme de terre", "0.4 - 0.8 USD/kg"),
        ("carotte", "0.5 - 1 USD/kg"),
        ("mangue", "0.2 - 0.5 USD/kg"),
        ("litchi", "0.8 - 1.5 USD/kg"),
        ("banane", "0.1 - 0.4 USD/kg"),
        ("viande de zébu", "4 - 6 USD/kg"),
        ("poulet", "2 - 4 USD/kg"),
        ("poisson frais", "1.3 - 4 USD/kg"),
        ("vanille", "80 - 200 USD/kg"),
        ("café", "2.5 - 7.5 USD/kg"),
        ("cacao", "2 - 5 USD/kg"),
        ("girofle", "3.8 - 7.5 USD/kg"),
        ("lait", "0.5 - 1 USD/litre"),
        ("fromage", "2.5 - 6 USD/kg"),
        ("œufs", "0.08 - 0.13 USD/piece"),
    ),
}
PRICE_ON_REQUEST = {"fr": "Prix sur demande", "mg": "Vidiny araka ny fangatahana", "en": "Price on request"}
VARIABLE_PRICE = {
    "fr": "Prix variable selon qualité",
    "mg": "Miovaova arakaraka ny kalitao",
    "en": "Variable price depending on quality",
}

_UNIT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("riz", "maïs", "blé", "haricot", "lentille", "arachide"), "kg"),
    (("viande", "poisson", "lait", "fromage", "beurre"), "kg"),
    (("fruit", "légume", "tomate", "oignon", "carotte"), "kg ou cagette"),
    (("vanille", "café", "cacao", "girofle", "poivre"), "kg"),
    (("huile", "essentielle"), "ml ou litre"),
)

SEASONALITY = {
    "in": {"fr": "De saison", "mg": "Mety amin'izao fotoana izao", "en": "In season"},
    "out": {"fr": "Hors saison", "mg": "Tsy fotoanany", "en": "Out of season"},
    "all_year": {"fr": "Toute l'année", "mg": "Mandavan-taona", "en": "All year round"},
    "specialty": {"fr": "Spécialité", "mg": "Vokatra manokana", "en": "Specialty"},
}

TIPS: dict[str, dict[str, tuple[str, ...]]] = {
    "fr": {
        "default": (
            "Privilégiez les produits de saison pour un meilleur prix et plus de fraîcheur.",
            "Comparez plusieurs producteurs sur la place de marché avant de commander.",
        ),
        "export_inquiry": (
            "Vérifiez les certifications disponibles (bio, commerce équitable) avant l'export.",
            "Prévoyez les délais de préparation et de documentation douanière.",
        ),
        "delivery_inquiry": ("Indiquez votre région pour estimer les délais et frais de livraison.",),
        "price_inquiry": ("Les prix sont indicatifs et varient selon la saison et le volume.",),
    },
    "mg": {
        "default": (
            "Aleo ny vokatra mety amin'izao fotoana izao mba hahazoana vidiny tsara.",
            "Ampitahao ny mpamokatra maromaro alohan'ny handefasana baiko.",
        ),
        "export_inquiry": (
            "Jereo ny fanamarinana azo atao (bio, fair trade) alohan'ny fanondranana.",
            "Omano mialoha ny antontan-taratasy ho an'ny ladoany.",
        ),
        "delivery_inquiry": ("Lazao ny faritra misy anao mba hanombanana ny fotoana sy ny saran'ny fandefasana.",),
        "price_inquiry": ("Vidiny tombana ireo ary miova arakaraka ny vanim-potoana sy ny habetsahana.",),
    },
    "en": {
        "default": (
            "Prefer seasonal products for better prices and freshness.",
            "Compare several producers on the marketplace before ordering.",
        ),
        "export_inquiry": (
            "Check the available certifications (organic, fair trade) before exporting.",
            "Plan for preparation time and customs paperwork.",
        ),
        "delivery_inquiry": ("Tell us your region to estimate delivery times and fees.",),
        "price_inquiry": ("Prices are indicative and vary with season and volume.",),
    },
}

NEXT_STEPS: dict[str, tuple[str, ...]] = {
    "fr": (
        "Parcourez la place de marché pour voir les offres des producteurs.",
        "Créez un compte pour commander et suivre vos livraisons.",
    ),
    "mg": (
        "Jereo ny tsena mba hahitana ny tolotry ny mpamokatra.",
        "Mamorona kaonty mba handefasana baiko sy hanarahana ny fandefasana.",
    ),
    "en": (
        "Browse the marketplace to see producer offers.",
        "Create an account to order and track your deliveries.",
    ),
}

CONTACT_OPTIONS: dict[str, tuple[str, ...]] = {
    "fr": ("Support : +261 34 11 815 03", "Email : contact@tantsahamarket.mg", "Site : www.tantsahamarket.mg"),
    "mg": (
        "Fanohanana : +261 34 11 815 03",
        "Mailaka : contact@tantsahamarket.mg",
        "Tranonkala : www.tantsahamarket.mg",
    ),
    "en": ("Support: +261 34 11 815 03", "Email: contact@tantsahamarket.mg", "Website: www.tantsahamarket.mg"),
}

FOLLOW_UP_QUESTIONS: dict[str, dict[str, str]] = {
    "region": {
        "fr": "Dans quelle région souhaitez-vous recevoir la livraison ?",
        "mg": "Amin'ny faritra aiza no tianao handraisana ny entana ?",
        "en": "In which region would you like to receive delivery?",
    },
    "quantity": {
        "fr": "Quelle quantité approximative recherchez-vous, et pour quel budget ?",
        "mg": "Habetsahana ahoana no tadiavinao, ary ohatrinona ny teti-bola ?",
        "en": "What approximate quantity are you looking for, and what is your budget?",
    },
    "product_type": {
        "fr": "Souhaitez-vous des produits frais ou transformés ?",
        "mg": "Vokatra maitso na efa voaova no tadiavinao ?",
        "en": "Do you want fresh or processed products?",
    },
}


def _bucket_of(name: str) -> str | None:
    for bucket, products in CATALOG.items():
        if any(product.name == name for product in products):
            return bucket
    return None


@lru_cache(maxsize=1)
def _alias_patterns() -> tuple[tuple[ProductEntry, tuple[re.Pattern[str], ...]], ...]:
    compiled = []
    for products in CATALOG.values():
        for product in products:
            patterns = tuple(
                re.compile(rf"(?<!\w){re.escape(alias.lower())}(?:s|x|es)?(?!\w)") for alias in product.names
            )
            compiled.append((product, patterns))
    return tuple(compiled)


def extract_mentioned_products(text: str, session: Session) -> list[str]:
    lowered = (text or "").lower()
    mentioned: list[str] = []
    for product, patterns in _alias_patterns():
        if any(pattern.search(lowered) for pattern in patterns):
            if product.name not in mentioned:
                mentioned.append(product.name)
            session.add_mentioned_product(product.name)
    return mentioned


def get_product_details(name: str) -> ProductEntry | None:
    lowered = (name or "").lower()
    for products in CATALOG.values():
        for product in products:
            if product.name == name or lowered in product.names:
                return product
    return None


def get_products_by_category(bucket: str) -> tuple[ProductEntry, ...]:
    return CATALOG.get(bucket, ())


def get_product_alternatives(name: str) -> list[str]:
    product = get_product_details(name)
    if product is None:
        return []
    bucket = _bucket_of(product.name)
    if bucket is None:
        return []
    alternatives = [other.name for other in CATALOG[bucket] if other.name != product.name]
    alternatives.extend(_SIMILAR_BY_BUCKET.get(bucket, ()))
    alternatives.extend(_SIMILAR_BY_PRODUCT.get(product.name, ()))
    unique = [alt for alt in dict.fromkeys(alternatives) if alt != product.name]
    return unique[:MAX_ALTERNATIVES]


def get_seasonal_products(month: int) -> list[str]:
    groups = SEASONAL_PRODUCTS.get(month) or SEASONAL_PRODUCTS[1]
    return [name for _, names in groups for name in names]


def month_name(month: int, language: str) -> str:
    names = MONTH_NAMES.get(language, MONTH_NAMES["fr"])
    return names[(month - 1) % 12]


def get_unit_for_product(name: str) -> str:
    lowered = (name or "").lower()
    for keywords, unit in _UNIT_RULES:
        if any(keyword in lowered for keyword in keywords):
            return unit
    return "unité"


def get_price_range(name: str, language: str) -> str:
    lowered = (name or "").lower()
    for key, price in PRICE_RANGES.get(language, PRICE_RANGES["fr"]):
        if key in lowered:
            return price
    return PRICE_ON_REQUEST.get(language, PRICE_ON_REQUEST["fr"])


def _suggestion(
    name: str,
    category: str,
    alternatives: list[str],
    seasonality: str,
    available: bool,
    unit: str,
    price_range: str,
) -> dict[str, Any]:
    return {
        "name": name,
        "category": category,
        "alternatives": alternatives,
        "seasonality": seasonality,
        "available": available,
        "region": "Madagascar",
        "unit": unit,
        "priceRange": price_range,
    }


def _intent_suggestions(intent: str, language: str, seasonal: list[str]) -> list[dict[str, Any]]:
    in_season = SEASONALITY["in"][language]
    all_year = SEASONALITY["all_year"][language]
    lead = seasonal[0] if seasonal else "mangue"
    seasonal_lead = _suggestion(
        lead,
        "fruit",
        get_product_alternatives(lead)[:3],
        in_season,
        True,
        "kg",
        get_price_range(lead, language),
    )
    if intent == "purchase_intent":
        return [
            seasonal_lead,
            _suggestion("riz", "céréale", ["maïs", "blé", "quinoa"], all_year, True, "kg", get_price_range("riz", language)),
            _suggestion(
                "viande de zébu",
                "viande",
                ["poulet", "porc", "agneau"],
                all_year,
                True,
                "kg",
                get_price_range("viande de zébu", language),
            ),
        ]
    if intent == "export_inquiry":
        litchi_in_season = "litchi" in seasonal
        return [
            _suggestion(
                "vanille",
                "export",
                ["café", "cacao", "clou de girofle"],
                SEASONALITY["specialty"][language],
                True,
                "kg",
                get_price_range("vanille", language),
            ),
            _suggestion(
                "litchi",
                "fruit-export",
                ["mangue", "ananas", "fruit de la passion"],
                in_season if litchi_in_season else SEASONALITY["out"][language],
                litchi_in_season,
                "kg",
                get_price_range("litchi", language),
            ),
            _suggestion(
                "huile essentielle",
                "export",
                ["ylang-ylang", "vétiver", "ravintsara"],
                all_year,
                True,
                "ml",
                VARIABLE_PRICE[language],
            ),
        ]
    return [
        seasonal_lead,
        _suggestion(
            "tomate", "légume", ["aubergine", "poivron", "courgette"], all_year, True, "kg", get_price_range("tomate", language)
        ),
        _suggestion(
            "poulet", "volaille", ["canard", "dinde", "viande de zébu"], all_year, True, "kg", get_price_range("poulet", language)
        ),
    ]


def product_suggestions(intent: str, mentioned: list[str], language: str, month: int, limit: int = 3) -> list[dict[str, Any]]:
    seasonal = get_seasonal_products(month)
    suggestions: list[dict[str, Any]] = []
    for name in mentioned[:limit]:
        product = get_product_details(name)
        if product is None:
            continue
        season_key = "in" if product.name in seasonal else "out"
        suggestions.append(
            _suggestion(
                product.name,
                product.categories[0] if product.categories else "général",
                get_product_alternatives(product.name)[:3],
                SEASONALITY[season_key][language],
                True,
                get_unit_for_product(product.name),
                get_price_range(product.name, language),
            )
        )
    if len(suggestions) < limit:
        taken = {item["name"] for item in suggestions}
        for item in _intent_suggestions(intent, language, seasonal):
            if len(suggestions) >= limit:
                break
            if item["name"] not in taken:
                suggestions.append(item)
    return suggestions


def build_structured_response(
    intent: str,
    suggestions: list[dict[str, Any]],
    language: str,
    session: Session,
) -> dict[str, Any]:
    tips_by_intent = TIPS.get(language, TIPS["fr"])
    follow_ups: list[str] = []
    if suggestions and not session.preferences.get("region"):
        follow_ups.append(FOLLOW_UP_QUESTIONS["region"][language])
    if session.mentioned_products and not session.preferences.get("budget"):
        follow_ups.append(FOLLOW_UP_QUESTIONS["quantity"][language])
    if any("export" in item["category"] for item in suggestions) and not session.preferences.get("productType"):
        follow_ups.append(FOLLOW_UP_QUESTIONS["product_type"][language])

    response: dict[str, Any] = {
        "tips": list(tips_by_intent.get(intent, tips_by_intent["default"])),
        "suggestedProducts": suggestions,
        "nextSteps": list(NEXT_STEPS.get(language, NEXT_STEPS["fr"])),
        "contactOptions": list(CONTACT_OPTIONS.get(language, CONTACT_OPTIONS["fr"])),
    }
    if follow_ups:
        response["followUpQuestions"] = follow_ups
    return response


def render_catalog(language: str) -> str:
    lines = []
    for bucket, labels in CATEGORY_LABELS.items():
        label = labels.get(language, labels["fr"])
        names = ", ".join(product.name for product in get_products_by_category(bucket))
        lines.append(f"- {label.upper()} : {names}")
    return "\n".join(lines)
