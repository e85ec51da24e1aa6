"""English/Somali message catalogue for learner-facing client messages."""
from loguru import logger

SUPPORTED_LANGUAGES = ("en", "so")

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "enroll.success.title": "Enrolled Successfully!",
        "enroll.success.body": "You are now enrolled in {course}",
        "enroll.already.title": "Already Enrolled",
        "enroll.already.body": "You are already enrolled in this course.",
        "enroll.insufficient.title": "Insufficient Credits",
        "enroll.insufficient.body": "You need {missing} more credits to enroll.",
        "enroll.failed.body": "Failed to enroll.",
        "error.title": "Error",
        "progress.completed.title": "Video completed",
    },
    "so": {
        "enroll.success.title": "Is-diiwaangelinta waa lagu guuleystay!",
        "enroll.success.body": "Hadda waad ka qeyb qaadatay {course}",
        "enroll.already.title": "Horay u diiwaangashay",
        "enroll.already.body": "Koorsadan horay ayaad uga qeyb qaadatay.",
        "enroll.insufficient.title": "Credit ku filna ma jirto",
        "enroll.insufficient.body": "Waxaad u baahan tahay {missing} credit oo dheeraad ah.",
        "enroll.failed.body": "Is-diiwaangelintii waa fashilantay.",
        "error.title": "Khalad",
        "progress.completed.title": "Muuqaalka waa la dhammeeyey",
    },
}


def normalize_language(language: str | None) -> str:
    language = (language or "").strip().lower()
    if language in SUPPORTED_LANGUAGES:
        return language
    return "en"


def translate(language: str, key: str, **kwargs) -> str:
    catalogue = MESSAGES[normalize_language(language)]
    template = catalogue.get(key) or MESSAGES["en"].get(key)
    if template is None:
        logger.warning(f"[i18n] missing message key {key}")
        return key
    return template.format(**kwargs)


def localized(language: str, value: str, value_so: str | None) -> str:
    """Somali column when the UI is Somali and the column is filled, else English."""
    if normalize_language(language) == "so" and value_so:
        return value_so
    return value
