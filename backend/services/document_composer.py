"""
Document Composer - resume data + template variant -> draw instructions.

The composer decides which sections appear, in what order and style, and how
their text is formatted. It never measures text or paginates: the layout
backend (services/pdf_renderer.py) wraps lines and breaks pages on its own.

Both variants share the section builders below. Everything that differs
between them lives in a TemplateStyle table:
- header alignment and colour set
- section order and titles
- rule style and spacing around section titles
- date-range formatting (open-ended token) and entry layout
- the modern sidebar region and subtitle

compose() is pure: same input, same instruction list.
"""
import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from models import ResumeData, TemplateVariant, normalize_template_variant

logger = logging.getLogger(__name__)


class ComposerError(Exception):
    """Template variant outside the closed enumeration (programming error)."""


# =============================================================================
# Draw instructions
# =============================================================================

class FontWeight(str, Enum):
    REGULAR = "regular"
    BOLD = "bold"


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


@dataclass(frozen=True)
class SetStyle:
    font_weight: FontWeight
    size: float
    color: str


@dataclass(frozen=True)
class WriteText:
    content: str
    alignment: Alignment = Alignment.LEFT
    wrapped: bool = True


@dataclass(frozen=True)
class AdvanceVertical:
    """Move the cursor down by `amount` lines of the current style."""
    amount: float


@dataclass(frozen=True)
class DrawRule:
    """Horizontal rule across the text column at the cursor."""
    color: str
    thickness: float


@dataclass(frozen=True)
class Rect:
    """Page-space rectangle from the top-left corner; height None runs to the page bottom."""
    x: float
    y: float
    width: float
    height: Optional[float] = None


@dataclass(frozen=True)
class FillRegion:
    rect: Rect
    color: str


DrawInstruction = Union[SetStyle, WriteText, AdvanceVertical, DrawRule, FillRegion]


# =============================================================================
# Variant style tables
# =============================================================================

class Section(str, Enum):
    CONTACT = "contact"
    OBJECTIVE = "objective"
    EXPERIENCE = "experience"
    EDUCATION = "education"
    SKILLS = "skills"
    COURSES = "courses"
    LANGUAGES = "languages"


@dataclass(frozen=True)
class TemplateStyle:
    header_alignment: Alignment
    primary_color: str
    subtle_color: str
    rule_color: str
    rule_thickness: float
    name_size: float
    name_placeholder: str
    section_order: Tuple[Section, ...]
    section_titles: Dict[Section, str]
    title_suffix: str = ""
    title_lead: float = 0.0
    title_rule_gap: float = 0.2
    title_after: float = 0.4
    body_size: float = 9
    paragraph_alignment: Alignment = Alignment.LEFT
    objective_gap: float = 0.8
    # Literal rendered for an experience that has a start but no end
    open_end_token: Optional[str] = None
    meta_separator: str = " | "
    stacked_entries: bool = False
    contact_in_header: bool = True
    show_subtitle: bool = False
    sidebar: Optional[FillRegion] = None


CLASSIC_STYLE = TemplateStyle(
    header_alignment=Alignment.CENTER,
    primary_color="#000000",
    subtle_color="#4B5563",
    rule_color="#9CA3AF",
    rule_thickness=0.5,
    name_size=16,
    name_placeholder="Nome do Profissional",
    section_order=(
        Section.OBJECTIVE,
        Section.EDUCATION,
        Section.SKILLS,
        Section.EXPERIENCE,
        Section.COURSES,
        Section.LANGUAGES,
    ),
    section_titles={
        Section.OBJECTIVE: "Objetivo",
        Section.EDUCATION: "Formação Acadêmica",
        Section.SKILLS: "Habilidades e Competências",
        Section.EXPERIENCE: "Experiência Profissional",
        Section.COURSES: "Informação Complementar",
        Section.LANGUAGES: "Idiomas",
    },
    title_suffix=":",
    paragraph_alignment=Alignment.JUSTIFY,
)

MODERN_STYLE = TemplateStyle(
    header_alignment=Alignment.LEFT,
    primary_color="#111827",
    subtle_color="#4B5563",
    rule_color="#E5E7EB",
    rule_thickness=0.7,
    name_size=20,
    name_placeholder="Nome Completo",
    section_order=(
        Section.CONTACT,
        Section.OBJECTIVE,
        Section.EXPERIENCE,
        Section.EDUCATION,
        Section.SKILLS,
        Section.COURSES,
        Section.LANGUAGES,
    ),
    section_titles={
        Section.CONTACT: "Contato",
        Section.OBJECTIVE: "Objetivo",
        Section.EXPERIENCE: "Experiência",
        Section.EDUCATION: "Educação",
        Section.SKILLS: "Habilidades",
        Section.COURSES: "Cursos",
        Section.LANGUAGES: "Idiomas",
    },
    title_lead=0.3,
    title_rule_gap=0.15,
    title_after=0.3,
    objective_gap=0.6,
    open_end_token="Atual",
    meta_separator="  ·  ",
    stacked_entries=True,
    contact_in_header=False,
    show_subtitle=True,
    sidebar=FillRegion(Rect(0, 0, 120, None), "#F5F7EB"),
)

TEMPLATE_STYLES: Dict[TemplateVariant, TemplateStyle] = {
    TemplateVariant.CLASSIC: CLASSIC_STYLE,
    TemplateVariant.MODERN: MODERN_STYLE,
}


# =============================================================================
# Text helpers
# =============================================================================

SUBTITLE_MAX_LENGTH = 60
SUBTITLE_TRUNCATED_LENGTH = 57
_SENTENCE_END = re.compile(r"[.!?]")


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _join(parts, separator: str) -> str:
    return separator.join(p for p in (_clean(x) for x in parts) if p)


def format_date_range(start: Any, end: Any, open_end_token: Optional[str] = None) -> str:
    """'2020 - 2022', '2020', '2020 - Atual' (with token), or '' when both are missing."""
    start, end = _clean(start), _clean(end)
    if start and not end and open_end_token:
        end = open_end_token
    return _join((start, end), " - ")


def derive_subtitle(objective_text: Any) -> str:
    """First sentence of the objective, cut to 57 chars + '...' when longer than 60."""
    if not _clean(objective_text):
        return ""
    text = str(objective_text)
    first_sentence = _SENTENCE_END.split(text, maxsplit=1)[0]
    if len(first_sentence) > SUBTITLE_MAX_LENGTH:
        return first_sentence[:SUBTITLE_TRUNCATED_LENGTH].strip() + "..."
    return first_sentence.strip()


def _location(info) -> str:
    return _join((info.city, info.region), " / ")


def _has_experience_identity(exp) -> bool:
    return bool(_clean(exp.role) or _clean(exp.organization))


def _has_education_identity(edu) -> bool:
    return bool(_clean(edu.program) or _clean(edu.institution))


# =============================================================================
# Section builders
# =============================================================================

def _body(style: TemplateStyle, color: Optional[str] = None, size: Optional[float] = None,
          weight: FontWeight = FontWeight.REGULAR) -> SetStyle:
    return SetStyle(weight, size or style.body_size, color or style.primary_color)


def _section_title(style: TemplateStyle, section: Section) -> List[DrawInstruction]:
    title = style.section_titles[section].upper() + style.title_suffix
    out: List[DrawInstruction] = []
    if style.title_lead:
        out.append(AdvanceVertical(style.title_lead))
    out += [
        SetStyle(FontWeight.BOLD, 11, style.primary_color),
        WriteText(title, Alignment.LEFT, wrapped=False),
        AdvanceVertical(style.title_rule_gap),
        DrawRule(style.rule_color, style.rule_thickness),
        AdvanceVertical(style.title_after),
        _body(style),
    ]
    return out


def _bullets(style: TemplateStyle, section: Section, lines: List[str]) -> List[DrawInstruction]:
    if not lines:
        return []
    out = _section_title(style, section)
    out += [WriteText("• " + line, Alignment.LEFT) for line in lines]
    out.append(AdvanceVertical(0.6))
    return out


def _header(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    info = data.personal_info
    align = style.header_alignment
    out: List[DrawInstruction] = []
    if style.sidebar is not None:
        out.append(style.sidebar)

    name = _clean(info.name) if info else ""
    out += [
        SetStyle(FontWeight.BOLD, style.name_size, style.primary_color),
        WriteText(name or style.name_placeholder, align, wrapped=False),
    ]

    if style.show_subtitle:
        subtitle = derive_subtitle(data.objective.text if data.objective else None)
        if subtitle:
            out += [
                AdvanceVertical(0.2),
                SetStyle(FontWeight.REGULAR, 11, style.subtle_color),
                WriteText(subtitle, align),
            ]

    if style.contact_in_header and info:
        first_line = _join((_location(info), info.email, info.phone), " | ")
        second_line = _join((info.linkedin, info.site), " | ")
        out.append(AdvanceVertical(0.3))
        if first_line:
            out += [SetStyle(FontWeight.REGULAR, 9, style.subtle_color), WriteText(first_line, align)]
        if second_line:
            out += [
                AdvanceVertical(0.15),
                SetStyle(FontWeight.REGULAR, 9, style.subtle_color),
                WriteText(second_line, align),
            ]

    out.append(AdvanceVertical(0.8))
    return out


def _contact_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    info = data.personal_info
    if not info:
        return []
    contacts = []
    if _clean(info.email):
        contacts.append(f"Email: {_clean(info.email)}")
    if _clean(info.phone):
        contacts.append(f"Telefone: {_clean(info.phone)}")
    if _location(info):
        contacts.append(f"Endereço: {_location(info)}")
    links = _join((info.linkedin, info.site), "  ·  ")
    if not contacts and not links:
        return []

    out: List[DrawInstruction] = [
        SetStyle(FontWeight.BOLD, 10, style.primary_color),
        WriteText(style.section_titles[Section.CONTACT].upper(), Alignment.LEFT, wrapped=False),
        AdvanceVertical(0.2),
        _body(style, color=style.subtle_color),
    ]
    out += [WriteText(line, Alignment.LEFT) for line in contacts]
    if links:
        if contacts:
            out.append(AdvanceVertical(0.1))
        out.append(WriteText(links, Alignment.LEFT))
    out.append(AdvanceVertical(0.8))
    return out


def _objective_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    text = _clean(data.objective.text) if data.objective else ""
    if not text:
        return []
    out = _section_title(style, Section.OBJECTIVE)
    out += [WriteText(text, style.paragraph_alignment), AdvanceVertical(style.objective_gap)]
    return out


def _experience_entry(exp, style: TemplateStyle) -> List[DrawInstruction]:
    period = format_date_range(exp.start, exp.end, style.open_end_token)
    role, organization = _clean(exp.role), _clean(exp.organization)
    description = _clean(exp.description)
    subtle = style.subtle_color
    out: List[DrawInstruction] = []

    if style.stacked_entries:
        if role:
            out += [_body(style, size=10, weight=FontWeight.BOLD), WriteText(role)]
        if organization:
            out += [AdvanceVertical(0.1), _body(style, color=subtle), WriteText(organization)]
        meta = _join((period, exp.location), style.meta_separator)
        if meta:
            out += [AdvanceVertical(0.05), _body(style, color=subtle, size=8), WriteText(meta)]
    else:
        out += [
            _body(style, weight=FontWeight.BOLD),
            WriteText(_join((role, organization), " - ")),
        ]
        meta = _join((exp.location, period), style.meta_separator)
        if meta:
            out += [AdvanceVertical(0.1), _body(style, color=subtle), WriteText(meta)]

    if description:
        gap = 0.15 if style.stacked_entries else 0.2
        out += [AdvanceVertical(gap), _body(style), WriteText(description, style.paragraph_alignment)]
    out.append(AdvanceVertical(0.6))
    return out


def _experience_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    entries = [e for e in (data.experiences or []) if _has_experience_identity(e)]
    if not entries:
        return []
    out = _section_title(style, Section.EXPERIENCE)
    for exp in entries:
        out += _experience_entry(exp, style)
    return out


def _education_entry(edu, style: TemplateStyle) -> List[DrawInstruction]:
    period = format_date_range(edu.start, edu.end)
    program, institution = _clean(edu.program), _clean(edu.institution)
    subtle = style.subtle_color
    out: List[DrawInstruction] = []

    if style.stacked_entries:
        if program:
            out += [_body(style, size=10, weight=FontWeight.BOLD), WriteText(program)]
        if institution:
            out += [AdvanceVertical(0.1), _body(style, color=subtle), WriteText(institution)]
        if period:
            out += [AdvanceVertical(0.05), _body(style, color=subtle, size=8), WriteText(period)]
        out.append(AdvanceVertical(0.6))
        return out

    if program:
        out += [_body(style, weight=FontWeight.BOLD), WriteText("• " + program)]
    detail = _join((institution, period), " — ")
    if detail:
        if program:
            out.append(AdvanceVertical(0.1))
        out += [_body(style, color=subtle), WriteText(detail)]
    out.append(AdvanceVertical(0.4))
    return out


def _education_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    entries = [e for e in (data.education or []) if _has_education_identity(e)]
    if not entries:
        return []
    out = _section_title(style, Section.EDUCATION)
    for edu in entries:
        out += _education_entry(edu, style)
    return out


def _skills_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    skills = [_clean(s) for s in (data.skills or [])]
    return _bullets(style, Section.SKILLS, [s for s in skills if s])


def _course_line(course) -> str:
    hours = _clean(course.hours)
    if hours and not hours.lower().endswith("h"):
        hours = f"{hours}h"
    return _join((course.name, course.institution, hours), " — ")


def _courses_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    lines = [
        _course_line(c) for c in (data.courses or [])
        if _clean(c.name) or _clean(c.institution)
    ]
    return _bullets(style, Section.COURSES, lines)


def _languages_section(data: ResumeData, style: TemplateStyle) -> List[DrawInstruction]:
    lines = []
    for language in data.languages or []:
        name = _clean(language.name)
        if not name:
            continue
        level = _clean(language.level)
        lines.append(f"{name} ({level})" if level else name)
    return _bullets(style, Section.LANGUAGES, lines)


SECTION_BUILDERS: Dict[Section, Callable[[ResumeData, TemplateStyle], List[DrawInstruction]]] = {
    Section.CONTACT: _contact_section,
    Section.OBJECTIVE: _objective_section,
    Section.EXPERIENCE: _experience_section,
    Section.EDUCATION: _education_section,
    Section.SKILLS: _skills_section,
    Section.COURSES: _courses_section,
    Section.LANGUAGES: _languages_section,
}


# =============================================================================
# Entry point
# =============================================================================

def resolve_style(variant: Any) -> TemplateStyle:
    """Normalize the variant and return its style table. Raises ComposerError."""
    if isinstance(variant, TemplateVariant):
        resolved = variant
    elif isinstance(variant, str):
        resolved = normalize_template_variant(variant)
    else:
        raise ComposerError(f"Unsupported template variant: {variant!r}")

    style = TEMPLATE_STYLES.get(resolved)
    if style is None:
        raise ComposerError(f"No style table for template variant: {resolved!r}")
    return style


def compose(
    resume_data: Union[ResumeData, Mapping[str, Any], None],
    variant: Union[TemplateVariant, str],
) -> List[DrawInstruction]:
    """
    Build the draw instructions for a resume.

    Missing sections and fields are omitted; only an invalid variant raises
    ComposerError.
    """
    style = resolve_style(variant)
    if resume_data is None:
        data = ResumeData()
    elif isinstance(resume_data, ResumeData):
        data = resume_data
    else:
        data = ResumeData.model_validate(dict(resume_data))

    instructions = _header(data, style)
    for section in style.section_order:
        instructions += SECTION_BUILDERS[section](data, style)
    logger.debug("Composed %d draw instructions", len(instructions))
    return instructions
