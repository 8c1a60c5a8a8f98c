from __future__ import annotations

from io import BytesIO
from pathlib import Path

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from .ledger import AnswerLedger
from .localization import get_copy, resolve_text
from .models import QuizContent
from .scoring import ScoreSummary

FONT_DIR = Path(__file__).resolve().parent.parent / "fonts"
PDF_FONT_FAMILY = "NotoSans"
PDF_FONT_REGULAR_PATH = FONT_DIR / "NotoSans-Regular.ttf"
PDF_FONT_BOLD_PATH = FONT_DIR / "NotoSans-Bold.ttf"

REPLACEMENTS = {
    "’": "'",
    "‘": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
    "…": "...",
    "·": "-",
    "🌟": "",
    "🧠": "",
    "🏆": "",
    "🚀": "",
    "💡": "",
    "✅": "",
    "️": "",
    "™": "TM",
}


def sanitize_for_pdf(text: str, core_font: bool = True) -> str:
    for src, dest in REPLACEMENTS.items():
        text = text.replace(src, dest)
    if core_font:
        # built-in fonts only cover latin-1
        text = text.encode("latin-1", "replace").decode("latin-1")
    return text.strip()


def _answer_lines(content: QuizContent, ledger: AnswerLedger, language: str, pdf_text):
    if content.config.quiz_type == "hypothesis":
        hypothesis_copy = get_copy(language)["hypothesis"]
        for question in content.hypothesis_questions:
            entry = ledger.get(question.id)
            if entry is None:
                continue
            answer = hypothesis_copy["true_label"] if entry.answer_id == "true" else hypothesis_copy["false_label"]
            verdict = hypothesis_copy["correct"] if entry.score else hypothesis_copy["incorrect"]
            yield resolve_text(question.hypothesis, language), f"{answer} - {verdict}"
        return

    for question in content.questions:
        entry = ledger.get(question.id)
        if entry is None:
            continue
        answer = question.answer(entry.answer_id)
        answer_text = resolve_text(answer.text, language, entry.answer_id) if answer else entry.answer_id
        yield resolve_text(question.prompt, language), pdf_text["answer_line"].format(
            answer=answer_text, points=entry.score
        )


def generate_pdf_report(
    content: QuizContent,
    summary: ScoreSummary,
    ledger: AnswerLedger,
    language: str,
) -> BytesIO:
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    base_text_color = (32, 37, 45)
    muted_color = (110, 116, 132)

    regular_family = "Helvetica"
    bold_family = "Helvetica"
    bold_style = "B"
    core_font = True
    try:
        if PDF_FONT_REGULAR_PATH.exists():
            pdf.add_font(PDF_FONT_FAMILY, "", str(PDF_FONT_REGULAR_PATH))
            regular_family = PDF_FONT_FAMILY
            bold_family = PDF_FONT_FAMILY
            bold_style = ""
            core_font = False
        if PDF_FONT_BOLD_PATH.exists() and not core_font:
            pdf.add_font(PDF_FONT_FAMILY, "B", str(PDF_FONT_BOLD_PATH))
            bold_style = "B"
    except RuntimeError:
        regular_family = "Helvetica"
        bold_family = "Helvetica"
        bold_style = "B"
        core_font = True

    def clean(text: str) -> str:
        return sanitize_for_pdf(text, core_font)

    pdf_text = get_copy(language)["pdf"]
    result_copy = get_copy(language)["result"]
    quiz_title = resolve_text(content.config.title, language, pdf_text["title"])
    pdf.set_title(clean(quiz_title))
    pdf.set_author("Sparkly")
    pdf.set_text_color(*base_text_color)

    pdf.set_font(bold_family, bold_style, 16)
    pdf.multi_cell(0, 9, clean(quiz_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    pdf.set_font(regular_family, "", 12)
    if summary.show_score:
        if summary.quiz_type == "hypothesis":
            score_text = result_copy["correct_line"].format(
                correct=summary.correct, total=summary.total_questions, percent=summary.percentage
            )
        elif summary.quiz_type == "emotional":
            score_text = f"{result_copy['average_score']}: {summary.average:.1f} ({result_copy['level_label']} {summary.level})"
        else:
            score_text = result_copy["score_line"].format(score=summary.score, max=summary.max_score)
        pdf.cell(0, 8, clean(f"{pdf_text['score']}: {score_text}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    if summary.tier is not None:
        pdf.ln(2)
        pdf.set_font(bold_family, bold_style, 14)
        title = resolve_text(summary.tier.title, language, result_copy["default_title"])
        pdf.multi_cell(0, 8, clean(f"{pdf_text['result']}: {title}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        description = resolve_text(summary.tier.description, language)
        if description:
            pdf.set_font(regular_family, "", 11)
            pdf.multi_cell(0, 6, clean(description), align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        insights = [resolve_text(item, language) for item in summary.tier.insights]
        insights = [item for item in insights if item]
        if insights:
            pdf.ln(3)
            pdf.set_font(bold_family, bold_style, 13)
            pdf.set_fill_color(244, 245, 251)
            pdf.cell(0, 10, clean(pdf_text["insights"]), fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.ln(2)
            pdf.set_font(regular_family, "", 11)
            for insight in insights:
                x = pdf.get_x()
                pdf.cell(4, 6, "-", align="L")
                pdf.set_x(x + 6)
                pdf.multi_cell(0, 6, clean(insight), align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                pdf.ln(1)

    if summary.openness_tier is not None:
        pdf.ln(3)
        pdf.set_font(bold_family, bold_style, 13)
        pdf.cell(
            0,
            8,
            clean(f"{pdf_text['openness']}: {summary.openness_score} / {summary.openness_max}"),
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
        pdf.set_font(regular_family, "", 11)
        pdf.multi_cell(
            0,
            6,
            clean(resolve_text(summary.openness_tier.title, language)),
            align="L",
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )

    lines = list(_answer_lines(content, ledger, language, pdf_text))
    if lines:
        pdf.ln(4)
        pdf.set_font(bold_family, bold_style, 14)
        pdf.cell(0, 8, clean(pdf_text["answer_summary"]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(2)
        for index, (prompt, answer_line) in enumerate(lines, start=1):
            pdf.set_font(regular_family, "", 11)
            pdf.set_text_color(*base_text_color)
            pdf.multi_cell(0, 6, clean(f"{index}. {prompt}"), align="L", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_text_color(*muted_color)
            pdf.cell(0, 5, clean(answer_line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.ln(2)

    buffer = BytesIO()
    pdf.output(buffer)
    buffer.seek(0)
    return buffer
