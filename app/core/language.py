from __future__ import annotations

SUPPORTED_LANGUAGES = ("fr", "mg", "en")
DEFAULT_LANGUAGE = "fr"

FR_KEYWORDS = ("bonjour", "merci", "produit", "commander", "livraison", "prix", "quantité")
MG_KEYWORDS = ("salama", "misaotra", "vokatra", "vidiny", "entana", "habetsahana", "handeha")
EN_KEYWORDS = ("hello", "thank", "product", "order", "delivery", "price", "quantity")


def _hits(text: str, keywords: tuple[str, ...]) -> int:
    return sum(1 for keyword in keywords if keyword in text)


def detect_language(text: str) -> str:
    lowered = (text or "").lower()
    fr_hits = _hits(lowered, FR_KEYWORDS)
    mg_hits = _hits(lowered, MG_KEYWORDS)
    en_hits = _hits(lowered, EN_KEYWORDS)

    # Each of fr/mg starts at 1 only when the other language has no keyword hit.
    fr_score = (0 if mg_hits else 1) + fr_hits
    mg_score = (0 if fr_hits else 1) + mg_hits
    en_score = 1 + en_hits

    if mg_score > fr_score and mg_score > en_score:
        return "mg"
    if fr_score > en_score:
        return "fr"
    return "en"


def normalize_language(value: str | None) -> str | None:
    if not value:
        return None
    candidate = value.strip().lower()
    return candidate if candidate in SUPPORTED_LANGUAGES else None
