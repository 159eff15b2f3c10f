"""
PDF layout backend - turns composer instructions into a reportlab platypus story.

Owns everything the composer does not: font metrics, line wrapping,
alignment (including justified text) and page breaks, all delegated to
SimpleDocTemplate with the same margins on every page.

Sidebar convention: a FillRegion anchored at the top-left page corner with
no height (full page) reserves a sidebar. It is painted on every page and the
text column starts one gutter to the right of it.
"""
import html
import io
import logging
import re
import unicodedata
from typing import Iterable, List, Optional, Union, Mapping, Any

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT, TA_CENTER, TA_RIGHT, TA_JUSTIFY
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, HRFlowable, XPreformatted,
)

from models import ResumeData, TemplateVariant
from services.document_composer import (
    AdvanceVertical, Alignment, DrawInstruction, DrawRule, FillRegion,
    FontWeight, SetStyle, WriteText, compose,
)

logger = logging.getLogger(__name__)

FONT_FAMILY = {
    FontWeight.REGULAR: "Helvetica",
    FontWeight.BOLD: "Helvetica-Bold",
}
TEXT_ALIGNMENT = {
    Alignment.LEFT: TA_LEFT,
    Alignment.CENTER: TA_CENTER,
    Alignment.RIGHT: TA_RIGHT,
    Alignment.JUSTIFY: TA_JUSTIFY,
}
PAGE_MARGIN = 50
SIDEBAR_GUTTER = 20
LINE_HEIGHT_FACTOR = 1.2
DEFAULT_STYLE = SetStyle(FontWeight.REGULAR, 12, "#000000")


def is_sidebar(region: FillRegion) -> bool:
    rect = region.rect
    return rect.x <= 0 and rect.y <= 0 and rect.height is None


class PdfLayoutBackend:
    """One-shot renderer: create, render(instructions), discard."""

    def __init__(self, pagesize=LETTER, margin: float = PAGE_MARGIN, title: Optional[str] = None):
        self.pagesize = pagesize
        self.page_width, self.page_height = pagesize
        self.margin = margin
        self.left_margin = margin
        self.title = title
        self.style = DEFAULT_STYLE
        self.story: List[Any] = []
        self.regions: List[FillRegion] = []
        self.page_count = 0
        self._paragraph_styles = {}
        self._handlers = {
            SetStyle: self._set_style,
            WriteText: self._write_text,
            AdvanceVertical: self._advance,
            DrawRule: self._draw_rule,
            FillRegion: self._fill_region,
        }

    # =========================================================================
    # Public API
    # =========================================================================

    def render(self, instructions: Iterable[DrawInstruction]) -> bytes:
        for instruction in instructions:
            handler = self._handlers.get(type(instruction))
            if handler is None:
                raise TypeError(f"Unknown draw instruction: {instruction!r}")
            handler(instruction)

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.pagesize,
            leftMargin=self.left_margin,
            rightMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=self.title or "",
            author="Currículo em Minutos" if self.title else "",
        )
        doc.build(list(self.story), onFirstPage=self._first_page, onLaterPages=self._later_page)
        logger.debug(f"Rendered PDF with {self.page_count} page(s)")
        return buffer.getvalue()

    # =========================================================================
    # Instruction handlers
    # =========================================================================

    @property
    def font_name(self) -> str:
        return FONT_FAMILY.get(self.style.font_weight, FONT_FAMILY[FontWeight.REGULAR])

    @property
    def line_height(self) -> float:
        return self.style.size * LINE_HEIGHT_FACTOR

    def paragraph_style(self, alignment: Alignment) -> ParagraphStyle:
        key = (self.style, alignment)
        if key not in self._paragraph_styles:
            self._paragraph_styles[key] = ParagraphStyle(
                name=f"Resume{len(self._paragraph_styles)}",
                fontName=self.font_name,
                fontSize=self.style.size,
                leading=self.line_height,
                textColor=colors.HexColor(self.style.color),
                alignment=TEXT_ALIGNMENT.get(alignment, TA_LEFT),
            )
        return self._paragraph_styles[key]

    def _set_style(self, instruction: SetStyle):
        self.style = instruction

    def _advance(self, instruction: AdvanceVertical):
        self.story.append(Spacer(1, instruction.amount * self.line_height))

    def _draw_rule(self, instruction: DrawRule):
        self.story.append(HRFlowable(
            width="100%",
            thickness=instruction.thickness,
            color=colors.HexColor(instruction.color),
            spaceBefore=0,
            spaceAfter=0,
        ))

    def _fill_region(self, instruction: FillRegion):
        self.regions.append(instruction)
        if is_sidebar(instruction):
            self.left_margin = max(self.left_margin, instruction.rect.x + instruction.rect.width + SIDEBAR_GUTTER)

    def _write_text(self, instruction: WriteText):
        if not instruction.content:
            # Blank line keeps its height
            self.story.append(Spacer(1, self.line_height))
            return
        style = self.paragraph_style(instruction.alignment)
        if instruction.wrapped:
            markup = "<br/>".join(html.escape(part, quote=False) for part in instruction.content.split("\n"))
            self.story.append(Paragraph(markup, style))
        else:
            self.story.append(XPreformatted(html.escape(instruction.content, quote=False), style))

    # =========================================================================
    # Page decoration
    # =========================================================================

    def _first_page(self, pdf, doc):
        self._decorate(pdf, self.regions)

    def _later_page(self, pdf, doc):
        self._decorate(pdf, [region for region in self.regions if is_sidebar(region)])

    def _decorate(self, pdf, regions: List[FillRegion]):
        self.page_count += 1
        pdf.saveState()
        for region in regions:
            rect = region.rect
            height = rect.height if rect.height is not None else self.page_height - rect.y
            pdf.setFillColor(colors.HexColor(region.color))
            pdf.rect(rect.x, self.page_height - rect.y - height, rect.width, height, stroke=0, fill=1)
        pdf.restoreState()


def pdf_filename(resume_data: Optional[ResumeData]) -> str:
    """curriculo-<name-slug>.pdf, ASCII only."""
    name = ""
    if resume_data and resume_data.personal_info:
        name = (resume_data.personal_info.name or "").strip()
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"\s+", "-", ascii_name.lower())
    slug = re.sub(r"[^a-z0-9\-]", "", slug).strip("-")
    return f"curriculo-{slug or 'usuario'}.pdf"


def render_resume_pdf(
    resume_data: Union[ResumeData, Mapping[str, Any]],
    variant: Union[TemplateVariant, str],
) -> bytes:
    """Compose the resume and lay it out as PDF bytes."""
    instructions: List[DrawInstruction] = compose(resume_data, variant)
    title = None
    if isinstance(resume_data, ResumeData) and resume_data.personal_info:
        title = resume_data.personal_info.name
    return PdfLayoutBackend(title=title).render(instructions)
