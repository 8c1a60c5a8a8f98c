from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional

DEFAULT_LANGUAGE = "en"

LANGUAGES: Dict[str, Dict[str, str]] = {
    "en": {"label": "English"},
    "et": {"label": "Eesti"},
    "de": {"label": "Deutsch"},
    "fi": {"label": "Suomi"},
    "ru": {"label": "Русский"},
}

TextMap = Mapping[str, str]


def resolve_text(text_map: Optional[TextMap], language: str, fallback: Optional[str] = None) -> str:
    """Pick the string for `language` from a per-language text map.

    Falls back to the English entry, then to `fallback`, then to "".
    Empty strings count as missing, as they do in the authoring tool.
    """
    if text_map:
        value = text_map.get(language) or text_map.get(DEFAULT_LANGUAGE)
        if value:
            return value
    return fallback if fallback is not None else ""


def resolve_language(value: Optional[str], supported: Iterable[str] = (), primary: str = DEFAULT_LANGUAGE) -> str:
    supported = list(supported) or list(LANGUAGES)
    if not value:
        return primary
    normalized = value.strip().lower()
    return normalized if normalized in supported else primary


def merge_text_maps(base: Optional[TextMap], override: Optional[TextMap]) -> Dict[str, str]:
    """Overlay `override` onto `base` language by language, skipping blanks."""
    merged = dict(base or {})
    for language, text in (override or {}).items():
        if text:
            merged[language] = text
    return merged


COPY: Dict[str, Dict[str, Dict[str, str]]] = {
    "en": {
        "site": {
            "footer": "© 2025 Sparkly. All answers are confidential.",
        },
        "welcome": {
            "start_button": "Start Free Assessment",
            "discover_title": "What you'll discover:",
        },
        "quiz": {
            "question_of": "Question {current} of {total}",
            "complete": "{percent}% complete",
            "back": "Back",
            "next": "Next",
            "see_results": "See My Results",
            "select_all": "Select every option that applies.",
        },
        "hypothesis": {
            "page_of": "Page {current} of {total}",
            "true_label": "True",
            "false_label": "False",
            "submit_page": "Check my answers",
            "next_page": "Next page",
            "truth": "The truth",
            "correct": "Correct",
            "incorrect": "Not quite",
        },
        "email": {
            "title": "Your results are ready",
            "description": "Enter your email to see your results and receive a copy of your report.",
            "placeholder": "you@company.com",
            "submit": "Show My Results",
            "feedback_new_learnings": "What did you learn?",
            "feedback_action_plan": "What will you do differently?",
        },
        "result": {
            "results_for": "Results for",
            "score_line": "{score} out of {max}",
            "insights": "Key insights",
            "openness": "Open-mindedness",
            "average_score": "Average score",
            "level_label": "Level",
            "correct_line": "{correct} of {total} hypotheses correct ({percent}%)",
            "download_pdf": "Download PDF",
            "start_over": "Take the quiz again",
            "default_title": "Your Results",
        },
        "errors": {
            "invalid_email": "Please enter a valid email address.",
            "email_failed": "We could not save your results. Please try again.",
            "not_found": "Quiz not found.",
            "page_incomplete": "Please answer every hypothesis on this page.",
        },
        "pdf": {
            "title": "Your Quiz Report",
            "score": "Score",
            "result": "Result",
            "insights": "Insights",
            "openness": "Open-mindedness",
            "answer_summary": "Answer Summary",
            "answer_line": "Answer: {answer} · Points {points}",
        },
        "emotional_levels": {
            "1": "Apathy",
            "2": "Grief",
            "3": "Fear",
            "4": "Lust",
            "5": "Anger",
            "6": "Pride",
            "7": "Courage",
            "8": "Acceptance",
            "9": "Peace",
        },
    },
    "et": {
        "site": {
            "footer": "© 2025 Sparkly. Kõik vastused on konfidentsiaalsed.",
        },
        "welcome": {
            "start_button": "Alusta tasuta hindamist",
            "discover_title": "Mida sa teada saad:",
        },
        "quiz": {
            "question_of": "Küsimus {current} / {total}",
            "complete": "{percent}% tehtud",
            "back": "Tagasi",
            "next": "Edasi",
            "see_results": "Näita tulemusi",
            "select_all": "Vali kõik sobivad variandid.",
        },
        "hypothesis": {
            "page_of": "Leht {current} / {total}",
            "true_label": "Tõene",
            "false_label": "Väär",
            "submit_page": "Kontrolli vastuseid",
            "next_page": "Järgmine leht",
            "truth": "Tõde",
            "correct": "Õige",
            "incorrect": "Mitte päris",
        },
        "email": {
            "title": "Sinu tulemused on valmis",
            "description": "Sisesta oma e-post, et näha tulemusi ja saada raport.",
            "placeholder": "sina@ettevote.ee",
            "submit": "Näita minu tulemusi",
            "feedback_new_learnings": "Mida uut sa õppisid?",
            "feedback_action_plan": "Mida teed edaspidi teisiti?",
        },
        "result": {
            "results_for": "Tulemused:",
            "score_line": "{score} / {max}",
            "insights": "Peamised tähelepanekud",
            "openness": "Avatud mõtlemine",
            "average_score": "Keskmine skoor",
            "level_label": "Tase",
            "correct_line": "{correct} / {total} hüpoteesi õigesti ({percent}%)",
            "download_pdf": "Laadi PDF",
            "start_over": "Tee test uuesti",
            "default_title": "Sinu tulemused",
        },
        "errors": {
            "invalid_email": "Palun sisesta korrektne e-posti aadress.",
            "email_failed": "Tulemuste salvestamine ebaõnnestus. Palun proovi uuesti.",
            "not_found": "Testi ei leitud.",
            "page_incomplete": "Palun vasta kõigile selle lehe hüpoteesidele.",
        },
        "pdf": {
            "title": "Sinu testi raport",
            "score": "Skoor",
            "result": "Tulemus",
            "insights": "Tähelepanekud",
            "openness": "Avatud mõtlemine",
            "answer_summary": "Vastuste kokkuvõte",
            "answer_line": "Vastus: {answer} · Punktid {points}",
        },
        "emotional_levels": {
            "1": "Apaatia",
            "2": "Lein",
            "3": "Hirm",
            "4": "Iha",
            "5": "Viha",
            "6": "Uhkus",
            "7": "Julgus",
            "8": "Aktsepteerimine",
            "9": "Rahu",
        },
    },
}


def get_copy(language: str) -> Dict[str, Dict[str, str]]:
    return COPY.get(language, COPY[DEFAULT_LANGUAGE])


def emotional_level_name(level: int, language: str) -> str:
    names = get_copy(language)["emotional_levels"]
    return names.get(str(level)) or names["5"]
