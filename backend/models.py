from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from decimal import Decimal
from enum import Enum

# ============================================================================
# ENUMS (System Constants)
# ============================================================================

class TemplateVariant(str, Enum):
    CLASSIC = "classic"
    MODERN = "modern"

# Historic names found in stored orders and older frontends
TEMPLATE_ALIASES: Dict[str, TemplateVariant] = {
    "classic": TemplateVariant.CLASSIC,
    "classico": TemplateVariant.CLASSIC,
    "clássico": TemplateVariant.CLASSIC,
    "modern": TemplateVariant.MODERN,
    "moderno": TemplateVariant.MODERN,
    "escuro": TemplateVariant.MODERN,
}


def normalize_template_variant(value: Any) -> TemplateVariant:
    """Map any stored or submitted template name onto the closed enum.

    Unknown, blank and non-string values resolve to CLASSIC.
    """
    if isinstance(value, TemplateVariant):
        return value
    if not isinstance(value, str):
        return TemplateVariant.CLASSIC
    return TEMPLATE_ALIASES.get(value.strip().lower(), TemplateVariant.CLASSIC)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)

# ============================================================================
# RESUME DATA
# ============================================================================

class ResumeModel(BaseModel):
    """Base for resume records: lenient on input, English names on output."""
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class ResumeRecord(ResumeModel):
    """Leaf record of text fields. Wrong-shaped values are dropped, not rejected."""

    @field_validator("*", mode="before")
    @classmethod
    def keep_text(cls, value):
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        return value if isinstance(value, str) else None


class PersonalInfo(ResumeRecord):
    name: Optional[str] = Field(None, validation_alias=_alias("name", "nome"))
    email: Optional[str] = None
    phone: Optional[str] = Field(None, validation_alias=_alias("phone", "telefone"))
    city: Optional[str] = Field(None, validation_alias=_alias("city", "cidade"))
    region: Optional[str] = Field(None, validation_alias=_alias("region", "estado"))
    linkedin: Optional[str] = None
    site: Optional[str] = None


class Objective(ResumeRecord):
    text: Optional[str] = Field(None, validation_alias=_alias("text", "texto"))


class Experience(ResumeRecord):
    role: Optional[str] = Field(None, validation_alias=_alias("role", "cargo"))
    organization: Optional[str] = Field(None, validation_alias=_alias("organization", "empresa"))
    location: Optional[str] = Field(None, validation_alias=_alias("location", "localidade"))
    start: Optional[str] = Field(None, validation_alias=_alias("start", "inicio"))
    end: Optional[str] = Field(None, validation_alias=_alias("end", "fim"))
    description: Optional[str] = Field(None, validation_alias=_alias("description", "descricao"))


class Education(ResumeRecord):
    program: Optional[str] = Field(None, validation_alias=_alias("program", "curso"))
    institution: Optional[str] = Field(None, validation_alias=_alias("institution", "instituicao"))
    start: Optional[str] = Field(None, validation_alias=_alias("start", "inicio"))
    end: Optional[str] = Field(None, validation_alias=_alias("end", "fim"))


class Language(ResumeRecord):
    name: Optional[str] = Field(None, validation_alias=_alias("name", "nome"))
    level: Optional[str] = Field(None, validation_alias=_alias("level", "nivel", "proficiency_level"))


class Course(ResumeRecord):
    name: Optional[str] = Field(None, validation_alias=_alias("name", "nome"))
    institution: Optional[str] = Field(None, validation_alias=_alias("institution", "instituicao"))
    hours: Optional[str] = Field(None, validation_alias=_alias("hours", "cargaHoraria", "carga_horaria"))


class ResumeData(ResumeModel):
    personal_info: Optional[PersonalInfo] = Field(
        None, validation_alias=_alias("personal_info", "personalInfo", "dadosPessoais")
    )
    objective: Optional[Objective] = Field(None, validation_alias=_alias("objective", "objetivo"))
    experiences: Optional[List[Experience]] = Field(
        None, validation_alias=_alias("experiences", "experiencias")
    )
    education: Optional[List[Education]] = Field(
        None, validation_alias=_alias("education", "formacoes", "formacao")
    )
    skills: Optional[List[str]] = Field(None, validation_alias=_alias("skills", "habilidades"))
    languages: Optional[List[Language]] = Field(None, validation_alias=_alias("languages", "idiomas"))
    courses: Optional[List[Course]] = Field(None, validation_alias=_alias("courses", "cursos"))
    social_networks: Optional[List[Any]] = Field(
        None, validation_alias=_alias("social_networks", "socialNetworks", "redesSociais")
    )
    extras: Optional[List[Any]] = None

    @field_validator("personal_info", mode="before")
    @classmethod
    def keep_record(cls, value):
        return value if isinstance(value, (dict, BaseModel)) else None

    @field_validator("objective", mode="before")
    @classmethod
    def accept_plain_objective(cls, value):
        if isinstance(value, str):
            return {"text": value}
        return value if isinstance(value, (dict, BaseModel)) else None

    @field_validator("experiences", "education", "languages", "courses", mode="before")
    @classmethod
    def keep_record_entries(cls, value):
        if not isinstance(value, list):
            return None
        return [item for item in value if isinstance(item, (dict, BaseModel))]

    @field_validator("skills", mode="before")
    @classmethod
    def keep_scalar_skills(cls, value):
        if not isinstance(value, list):
            return None
        return [s for s in value if isinstance(s, (str, int, float)) and not isinstance(s, bool)]

    @field_validator("social_networks", "extras", mode="before")
    @classmethod
    def keep_lists(cls, value):
        return value if isinstance(value, list) else None

# ============================================================================
# REQUEST MODELS
# ============================================================================

class CreateOrderRequest(ResumeData):
    """Order creation payload: resume sections at the top level plus template and price."""
    template: Any = None
    price: Optional[Decimal] = Field(None, gt=0)


class ObjectiveDraftRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_summary: Optional[str] = Field(None, validation_alias=_alias("job_summary", "resumoVaga"))
    role: Optional[str] = Field(None, validation_alias=_alias("role", "cargo"))
    seniority: Optional[str] = Field(None, validation_alias=_alias("seniority", "senioridade"))
    area: Optional[str] = None
    experience: Optional[str] = Field(None, validation_alias=_alias("experience", "experiencia"))
    strengths: Optional[str] = Field(None, validation_alias=_alias("strengths", "pontosFortes"))


class ContactEmail(BaseModel):
    """Used to validate the required e-mail on order creation."""
    email: EmailStr
