"""Internationalization support for the scoreboard.

Usage:
    from cuescore.ui.i18n import t, set_language

    set_language("zh")              # Switch to Chinese
    t("log.win", player="P1", loser="P3")  # -> "P1 赢了 P3。"
"""


class I18n:
    """Singleton internationalization manager."""

    _lang: str = "en"
    _translations: dict = {}
    _fallback: dict = {}
    _loaded: bool = False

    @classmethod
    def set_language(cls, lang: str):
        """Set the active language."""
        cls._lang = lang
        cls._load_translations()

    @classmethod
    def _load_translations(cls):
        """Load translations for the current language."""
        from cuescore.ui.locales.en import TRANSLATIONS as EN
        if cls._lang == "zh":
            from cuescore.ui.locales.zh import TRANSLATIONS
        else:
            TRANSLATIONS = EN
        cls._translations = TRANSLATIONS
        cls._fallback = EN
        cls._loaded = True

    @classmethod
    def get(cls, key: str, **kwargs) -> str:
        """Get a translated string by key, with optional format arguments."""
        if not cls._loaded:
            cls._load_translations()
        text = cls._translations.get(key) or cls._fallback.get(key, key)
        if kwargs:
            try:
                return text.format(**kwargs)
            except (KeyError, IndexError):
                return text
        return text


def t(key: str, **kwargs) -> str:
    """Global translation function."""
    return I18n.get(key, **kwargs)


def set_language(lang: str):
    """Set the active language."""
    I18n.set_language(lang)


def error_message(exc) -> str:
    """Localized message for a ScoreboardError."""
    key = getattr(exc, "message_key", "error.generic")
    return t(key, detail=str(exc))
