from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from app.core.sessions import Session

OWNERSHIP_INQUIRY = "ownership_inquiry"
PURCHASE_INTENT = "purchase_intent"
SELLER_INQUIRY = "seller_inquiry"
PRICE_INQUIRY = "price_inquiry"
DELIVERY_INQUIRY = "delivery_inquiry"
PRODUCT_INQUIRY = "product_inquiry"
AVAILABILITY_INQUIRY = "availability_inquiry"
CONTACT_REQUEST = "contact_request"
EXPORT_INQUIRY = "export_inquiry"
PRODUCT_TYPE_INQUIRY = "product_type_inquiry"
FOLLOW_UP_QUALIFICATION = "follow_up_qualification"
GENERAL_QUERY = "general_query"

OWNERSHIP_KEYWORDS = (
    "qui vous a créé",
    "qui est ton propriétaire",
    "qui t'a fait",
    "qui t'as créé",
    "owner",
    "créateur",
    "propriétaire",
    "tantsahamarket est à qui",
    "qui possède tantsahamarket",
    "vous appartenez à qui",
    "à qui êtes-vous",
    "qui est ton boss",
    "qui te dirige",
    "qui t'a programmé",
    "qui t'a développé",
    "votre créateur",
    "ton maker",
    "votre propriétaire",
    "who created you",
    "who made you",
    "iza no namorona anao",
)

# Ordered: the first rule with a matching keyword wins.
INTENT_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (OWNERSHIP_INQUIRY, OWNERSHIP_KEYWORDS),
    (PURCHASE_INTENT, ("commander", "acheter", "order", "mividy", "mila", "besoin")),
    (SELLER_INQUIRY, ("vendre", "vendeur", "seller", "mpamokatra", "manana", "offrir")),
    (PRICE_INQUIRY, ("prix", "tarif", "price", "vidiny", "combien", "coût")),
    (DELIVERY_INQUIRY, ("livraison", "delivery", "handeha", "expédition", "transport", "livrer")),
    (
        PRODUCT_INQUIRY,
        (
            "produit",
            "product",
            "vokatra",
            "article",
            "marchandise",
            "denrée",
            "avez-vous",
            "vous avez",
            "do you have",
            "do you sell",
            "misy ve",
        ),
    ),
    (AVAILABILITY_INQUIRY, ("stock", "disponible", "available", "tsy misy", "manana ve", "en stock")),
    (CONTACT_REQUEST, ("contact", "appeler", "appel", "téléphoner", "mifandray", "adresse")),
    (EXPORT_INQUIRY, ("export", "international", "étranger", "mivoaka", "overseas", "ship abroad")),
    (
        PRODUCT_TYPE_INQUIRY,
        ("frais", "fresh", "maitso", "cru", "transformé", "processed", "conservé", "canned"),
    ),
)

REGION_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Antananarivo", ("antananarivo", "tananarive", "tana")),
    ("Toamasina", ("toamasina", "tamatave")),
    ("Mahajanga", ("mahajanga", "majunga")),
    ("Fianarantsoa", ("fianarantsoa", "fianar")),
    ("Toliara", ("toliara", "tuléar", "tulear")),
    ("Antsiranana", ("antsiranana", "diego-suarez", "diego")),
    ("Antsirabe", ("antsirabe",)),
    ("Morondava", ("morondava",)),
    ("Sambava", ("sambava",)),
    ("Taolagnaro", ("taolagnaro", "fort-dauphin")),
    ("Nosy Be", ("nosy be", "nosy-be")),
)

PRODUCT_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("export", ("export", "fanondranana")),
    ("processed", ("transformé", "processed", "conservé", "canned", "voaova")),
    ("fresh", ("frais", "fresh", "maitso")),
)

FREQUENCY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("weekly", ("chaque semaine", "hebdomadaire", "par semaine", "weekly", "every week", "isan-kerinandro")),
    ("monthly", ("chaque mois", "mensuel", "par mois", "monthly", "every month", "isam-bolana")),
)

_BUDGET_RE = re.compile(r"(\d[\d\s.,]*\d|\d)\s*(ariary|mga|ar)\b", re.IGNORECASE)
_ACCOUNT_HINTS = ("compte", "account", "kaonty")


@dataclass
class ConversionEvent:
    product_interest: str | None
    contact_requested: bool
    account_suggested: bool
    lead_qualified: bool

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contactRequested": self.contact_requested,
            "accountSuggested": self.account_suggested,
            "leadQualified": self.lead_qualified,
        }
        if self.product_interest:
            payload["productInterest"] = self.product_interest
        return payload


def _matches(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_ownership_question(text: str) -> bool:
    return _matches((text or "").lower(), OWNERSHIP_KEYWORDS)


def detect_intent(text: str, session: Session) -> str:
    lowered = (text or "").lower()
    for tag, keywords in INTENT_RULES:
        if _matches(lowered, keywords):
            return tag
    if session.interests and not session.contact_requested:
        return FOLLOW_UP_QUALIFICATION
    return GENERAL_QUERY


def _first_label(text: str, table: tuple[tuple[str, tuple[str, ...]], ...]) -> str | None:
    for label, keywords in table:
        for keyword in keywords:
            if re.search(rf"(?<!\w){re.escape(keyword)}(?!\w)", text):
                return label
    return None


def extract_preferences(text: str, session: Session) -> dict[str, str]:
    lowered = (text or "").lower()
    found: dict[str, str] = {}

    region = _first_label(lowered, REGION_KEYWORDS)
    if region:
        found["region"] = region
    product_type = _first_label(lowered, PRODUCT_TYPE_KEYWORDS)
    if product_type:
        found["productType"] = product_type
    frequency = _first_label(lowered, FREQUENCY_KEYWORDS)
    if frequency:
        found["frequency"] = frequency
    budget = _BUDGET_RE.search(text or "")
    if budget:
        amount = re.sub(r"[\s.,]", "", budget.group(1))
        found["budget"] = f"{amount} MGA"

    session.preferences.update(found)
    return found


def is_lead_qualified(session: Session) -> bool:
    return bool(session.interests) and bool(session.preferences.get("region") or session.preferences.get("budget"))


def conversion_event(session: Session, intent: str) -> ConversionEvent:
    return ConversionEvent(
        product_interest=session.interests[0] if session.interests else None,
        contact_requested=intent == CONTACT_REQUEST,
        account_suggested=False,
        lead_qualified=is_lead_qualified(session),
    )


def suggests_account(content: str | None) -> bool:
    lowered = (content or "").lower()
    return any(hint in lowered for hint in _ACCOUNT_HINTS)
