from __future__ import annotations  # Styled PDF rendering for completed interview sessions

import os
import textwrap
from datetime import datetime
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from agents.types import DIMENSION_LABELS, DIMENSIONS
from interview_session.errors import InvalidStateError
from interview_session.models import FinalReport, QuestionTurn, Session
from services.scoring import snapshot


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background
ROW_FILL = (247, 250, 255)  # Zebra stripe


def _format_datetime(value: datetime | None) -> str:
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def _score(value: float) -> str:
    return f"{float(value):.1f}/10"


class ReportPDF(FPDF):  # PDF with banner header and paginated footer
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Interview Report"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False

    def use_unicode_font(self) -> None:
        if not (os.path.exists(DEJAVU_SANS) and os.path.exists(DEJAVU_SANS_BOLD)):
            return
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self.font_regular = "DejaVu"
        self.font_bold = "DejaVu"
        self.supports_unicode = True

    @property
    def bullet(self) -> str:
        return "•" if self.supports_unicode else "-"

    def _prepare_text(self, text: Any) -> str:  # Core fonts only cover latin-1
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        return value.replace("•", "-").encode("latin-1", "ignore").decode("latin-1")

    def cell(self, *args, **kwargs):
        args_list = list(args)
        if len(args_list) >= 3:
            args_list[2] = self._prepare_text(args_list[2])
        elif "text" in kwargs:
            kwargs["text"] = self._prepare_text(kwargs["text"])
        return super().cell(*args_list, **kwargs)

    def multi_cell(self, *args, **kwargs):
        args_list = list(args)
        if len(args_list) >= 3:
            args_list[2] = self._prepare_text(args_list[2])
        elif "text" in kwargs:
            kwargs["text"] = self._prepare_text(kwargs["text"])
        return super().multi_cell(*args_list, **kwargs)

    def paragraph(self, text: str, *, size: int = 11, color: Tuple[int, int, int] = TEXT, bold: bool = False) -> None:
        self.set_x(self.l_margin)
        self.set_text_color(*color)
        self.set_font(self.font_bold if bold else self.font_regular, "B" if bold else "", size)
        self.multi_cell(_effective_width(self), 6, text, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_text_color(*TEXT)

    def header(self) -> None:
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_font(self.font_bold, "B", 16)
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, 18, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 5)
            self.cell(usable, 8, self.header_title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.set_text_color(*TEXT)
            self.ln(6)
            return
        self.set_text_color(80, 80, 80)
        self.set_xy(self.l_margin, 8)
        self.set_font(self.font_bold, "B", 12)
        self.cell(usable, 6, self.header_title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        mark = self.get_y()
        self.set_draw_color(*self.accent)
        self.set_line_width(0.4)
        self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
        self.set_text_color(*TEXT)
        self.ln(4)

    def footer(self) -> None:
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: ReportPDF, title: str) -> None:
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: ReportPDF, rows: List[Tuple[str, str]]) -> None:  # Two-column label/value grid
    col = _effective_width(pdf) / 2.0
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.cell(col, 6, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, 6, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, 6, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, 6, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _score_banner(pdf: ReportPDF, report: FinalReport) -> None:
    width = _effective_width(pdf)
    top = pdf.get_y()
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, top, width, 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, top + 5)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(width / 2, 6, f"{report.hire_band} | Recommendation: {report.hire_recommendation}")
    pdf.set_xy(pdf.l_margin, top + 4)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 14)
    pdf.cell(width - 6, 8, _score(report.average_score), align="R")
    pdf.set_y(top + 20)
    pdf.set_text_color(*TEXT)


def _dimension_table(pdf: ReportPDF, session: Session) -> None:
    scores = snapshot(session.aggregates)
    widths = [_effective_width(pdf) * 0.7, _effective_width(pdf) * 0.3]
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.cell(widths[0], 8, "Dimension", fill=True)
    pdf.cell(widths[1], 8, "Average", fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_regular, "", 10)
    for idx, dim in enumerate(DIMENSIONS):
        fill = idx % 2 == 0
        if fill:
            pdf.set_fill_color(*ROW_FILL)
        pdf.set_x(pdf.l_margin)
        pdf.cell(widths[0], 7, DIMENSION_LABELS[dim], fill=fill)
        pdf.cell(widths[1], 7, _score(scores.average(dim)), fill=fill, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _bullets(pdf: ReportPDF, items: Sequence[str], empty: str) -> None:
    if not items:
        pdf.paragraph(empty, size=10, color=MUTED)
    for item in items:
        pdf.paragraph(f"{pdf.bullet} {item}")
    pdf.ln(2)


def _render_turn(pdf: ReportPDF, turn: QuestionTurn) -> None:
    evaluation = turn.evaluation
    pdf.paragraph(
        f"Q{turn.index} [{turn.question.topic}, {turn.question.difficulty}]: {turn.question.question}",
        size=10,
        color=ACCENT,
        bold=True,
    )
    pdf.paragraph("A: " + textwrap.shorten(" ".join(turn.answer_text.split()), width=900, placeholder="..."), size=10)
    pdf.paragraph(
        f"Score {_score(evaluation.overall)} in {turn.time_taken_seconds:.0f}s"
        + (f" | {evaluation.summary}" if evaluation.summary else ""),
        size=9,
        color=MUTED,
    )
    for label, items in (("Strength", evaluation.strengths), ("Weakness", evaluation.weaknesses)):
        for item in items[:3]:
            pdf.paragraph(f"{pdf.bullet} {label}: {item}", size=9)
    y = pdf.get_y() + 1
    pdf.set_draw_color(*RULE)
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(4)


def generate_session_report_pdf(session: Session) -> bytes:
    """Render a completed session and its final report.

    Raises:
        InvalidStateError: if the session has no final report yet.
    """

    report = session.final_report
    if report is None:
        raise InvalidStateError("Report is only available for completed sessions", details={"status": session.status})

    pdf = ReportPDF()
    pdf.use_unicode_font()
    pdf.alias_nb_pages()
    pdf.header_title = f"{session.role} - Interview Report"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    _meta_block(
        pdf,
        [
            ("Role", session.role),
            ("Experience Level", session.experience_level),
            ("Mode", session.mode.title()),
            ("Questions Answered", f"{report.questions_answered}/{session.max_questions}"),
            ("Started", _format_datetime(session.created_at)),
            ("Completed", _format_datetime(session.completed_at)),
            ("Confidence", report.confidence_level),
            ("Session ID", session.session_id),
        ],
    )
    _score_banner(pdf, report)

    _section_title(pdf, "Dimension Scores")
    _dimension_table(pdf, session)

    _section_title(pdf, "Strongest Areas")
    _bullets(pdf, report.strongest_areas, "No answers were scored.")
    _section_title(pdf, "Areas to Improve")
    _bullets(pdf, report.weakest_areas, "No answers were scored.")

    _section_title(pdf, "Improvement Roadmap")
    _bullets(pdf, report.improvement_roadmap, "No roadmap items.")
    _section_title(pdf, "Next Preparation Focus")
    _bullets(pdf, report.next_preparation_focus, "No focus topics.")

    timing = report.time_analysis
    _section_title(pdf, "Time Analysis")
    _meta_block(
        pdf,
        [
            ("Average per Question", f"{timing.average_time_per_question:.1f}s"),
            ("Efficiency", _score(timing.time_efficiency_score)),
            ("Fastest", f"{timing.fastest_answer_time:.1f}s"),
            ("Slowest", f"{timing.slowest_answer_time:.1f}s"),
        ],
    )
    _bullets(pdf, timing.insights, "No pacing insights.")

    _section_title(pdf, "Question & Answer Transcript")
    if not session.turns:
        pdf.paragraph("No questions were answered in this session.", size=10, color=MUTED)
    for turn in session.turns:
        _render_turn(pdf, turn)

    return bytes(pdf.output())


__all__ = ["ReportPDF", "generate_session_report_pdf"]
