class Translator:
    """Translate user-facing labels. French is the source language."""

    def __init__(self) -> None:
        self.language = "fr"
        self.translations = {
            "fr": {},
            "en": {
                "Première Séance": "First Session",
                "Commencer le voyage": "Start the journey",
                "1 séance": "1 session",
                "Streak 7 jours": "7-Day Streak",
                "Une semaine complète": "A full week",
                "7 jours consécutifs": "7 consecutive days",
                "10 000 kg soulevés": "10,000 kg lifted",
                "10 000 kg de volume": "10,000 kg of volume",
                "Diversité": "Variety",
                "10 exercices différents": "10 different exercises",
                "10 exercices": "10 exercises",
                "Mille Répétitions": "Thousand Reps",
                "1 000 répétitions effectuées": "1,000 reps completed",
                "1 000 répétitions": "1,000 reps",
                "Régularité": "Consistency",
                "4 semaines d'affilée": "4 weeks in a row",
                "4 semaines consécutives": "4 consecutive weeks",
                "50 séances complétées": "50 sessions completed",
                "50 séances": "50 sessions",
                "Légende": "Legend",
                "100 000 kg soulevés": "100,000 kg lifted",
                "100 000 kg de volume": "100,000 kg of volume",
                "Équilibré": "Balanced",
            },
        }

    def set_language(self, lang: str) -> None:
        self.language = lang

    def gettext(self, key: str) -> str:
        return self.translations.get(self.language, {}).get(key, key)

    def badge(self, badge: dict) -> dict:
        """Return ``badge`` with its text fields translated."""
        out = dict(badge)
        for field in ("title", "description", "requirement"):
            out[field] = self.gettext(out[field])
        return out
