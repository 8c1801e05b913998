from __future__ import annotations

import json
from typing import Any

from app.core.catalog import get_seasonal_products, month_name, render_catalog
from app.core.language import DEFAULT_LANGUAGE
from app.core.sessions import Session

_NONE = {"fr": "aucun", "mg": "tsy misy", "en": "none"}
_UNKNOWN_REGION = {"fr": "non spécifiée", "mg": "tsy voalaza", "en": "not specified"}
_LANGUAGE_NAME = {"fr": "français", "mg": "malagasy", "en": "English"}

_TEMPLATES = {
    "fr": """Tu es TantsahaBot, l'assistant expert de TantsahaMarket, la place de marché agricole de Madagascar.

CATALOGUE DES PRODUITS AGRICOLES MALGACHES :
{catalog}

CONTEXTE UTILISATEUR :
- Région : {region}
- Intérêts précédents : {interests}
- Produits mentionnés : {products}

CONTEXTE ACTUEL :
- Mois : {month}
- Produits de saison : {seasonal}
- Intention détectée : {intent}
- Langue : {language}

STRUCTURE DE LA RÉPONSE :
1. Conseils pratiques
2. Produits suggérés avec catégorie, saisonnalité, unité et 2-3 alternatives
3. Prochaines étapes (place de marché, création de compte, contact)

RÈGLES :
- Ton chaleureux, professionnel et concis
- Pour l'export, mentionner les certifications possibles (bio, commerce équitable)
- Ne jamais révéler d'identifiant de session ou de client, ni de donnée interne
- Répondre uniquement en français""",
    "mg": """Ianao no TantsahaBot, mpanampy manam-pahaizana ao amin'ny TantsahaMarket, tsena ara-pambolena eto Madagasikara.

LISITRY NY VOKATRA ARA-PAMBOLENA MALAGASY :
{catalog}

TOETRA MPAMPIASA :
- Faritra : {region}
- Zavatra nahaliana teo aloha : {interests}
- Vokatra nolazaina : {products}

TOE-JAVATRA ANKEHITRINY :
- Volana : {month}
- Vokatra amin'izao fotoana izao : {seasonal}
- Fikasana hita : {intent}
- Fiteny : {language}

RAFITRY NY VALINTENY :
1. Torohevitra azo ampiharina
2. Vokatra atolotra miaraka amin'ny sokajy, vanim-potoana, refy ary safidy 2-3
3. Dingana manaraka (tsena, fananganana kaonty, fifandraisana)

FITSIPIKA :
- Feo mafana fo, matihanina ary fohy
- Ho an'ny fanondranana, lazao ny fanamarinana azo atao (bio, fair trade)
- Aza mampiseho mari-pamantarana fihaonana na mpanjifa, na angona anatiny
- Valio amin'ny teny malagasy ihany""",
    "en": """You are TantsahaBot, the expert assistant of TantsahaMarket, the agricultural marketplace of Madagascar.

MALAGASY AGRICULTURAL PRODUCT CATALOG:
{catalog}

USER CONTEXT:
- Region: {region}
- Previous interests: {interests}
- Mentioned products: {products}

CURRENT CONTEXT:
- Month: {month}
- Seasonal products: {seasonal}
- Detected intent: {intent}
- Language: {language}

RESPONSE STRUCTURE:
1. Practical tips
2. Suggested products with category, seasonality, unit and 2-3 alternatives
3. Next steps (marketplace, account creation, contact)

RULES:
- Warm, professional and concise tone
- For exports, mention possible certifications (organic, fair trade)
- Never reveal session or client identifiers, or any internal data
- Answer in English only""",
}

_SUMMARY = {
    "fr": (
        "Résumé de la conversation :\n"
        "- Intérêts détectés : {interests}\n"
        "- Produits mentionnés : {products}\n"
        "- Langue préférée : {language}\n"
        "- Dernière intention : {intent}\n"
        "- Préférences : {preferences}"
    ),
    "mg": (
        "Famintinana ny resaka :\n"
        "- Zavatra nahaliana : {interests}\n"
        "- Vokatra nolazaina : {products}\n"
        "- Fiteny : {language}\n"
        "- Fikasana farany : {intent}\n"
        "- Safidy : {preferences}"
    ),
    "en": (
        "Conversation summary:\n"
        "- Detected interests: {interests}\n"
        "- Mentioned products: {products}\n"
        "- Preferred language: {language}\n"
        "- Last intent: {intent}\n"
        "- Preferences: {preferences}"
    ),
}


def _joined(values: list[str], language: str) -> str:
    return ", ".join(values) if values else _NONE[language]


def build_system_prompt(session: Session, intent: str, language: str, month: int) -> str:
    language = language if language in _TEMPLATES else DEFAULT_LANGUAGE
    return _TEMPLATES[language].format(
        catalog=render_catalog(language),
        region=session.preferences.get("region") or _UNKNOWN_REGION[language],
        interests=_joined(session.interests, language),
        products=_joined(session.mentioned_products, language),
        month=month_name(month, language),
        seasonal=", ".join(get_seasonal_products(month)),
        intent=intent,
        language=_LANGUAGE_NAME[language],
    )


def summarize_history(messages: list[dict[str, Any]], session: Session, keep_recent: int) -> list[dict[str, Any]]:
    language = session.language if session.language in _SUMMARY else DEFAULT_LANGUAGE
    system_messages = [message for message in messages if message.get("role") == "system"]
    conversation = [message for message in messages if message.get("role") != "system"]
    summary = _SUMMARY[language].format(
        interests=_joined(session.interests, language),
        products=_joined(session.mentioned_products, language),
        language=session.language,
        intent=session.last_intent or "general_query",
        preferences=json.dumps(session.preferences, ensure_ascii=False),
    )
    recent = conversation[-keep_recent:] if keep_recent > 0 else []
    return [*system_messages, {"role": "assistant", "content": summary}, *recent]
