"""Portfolio Content Schema - shape and validation of the content document.

The content document is the single structured object an owner edits in the
admin dashboard (meta, about, experience sections, experiences, projects,
skills, contact). It is always validated as a whole; there is no partial
validation mode.

Wire format is camelCase (heroImage, experienceSections, sectionId) so the
document round-trips unchanged between the editor and storage.
"""
import copy
import logging
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, Strict, ValidationError
from pydantic.networks import validate_email

logger = logging.getLogger(__name__)

OrderInt = Annotated[int, Strict()]


def _checked_email(value: str) -> str:
    # Validate only; the address is stored as typed, without domain normalisation
    validate_email(value)
    return value


ContactEmail = Annotated[str, AfterValidator(_checked_email)]

LIST_SECTIONS = ("experienceSections", "experiences", "projects", "skills")
OBJECT_SECTIONS = ("meta", "about", "contact")
ALL_SECTIONS = OBJECT_SECTIONS + LIST_SECTIONS


class _ContentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Meta(_ContentModel):
    name: str
    title: str
    email: ContactEmail
    twitter: Optional[str] = None
    location: Optional[str] = None
    hero_image: Optional[str] = Field(default=None, alias="heroImage")
    summary: Optional[str] = None


class About(_ContentModel):
    paragraph: str
    hobbies: List[str] = Field(default_factory=list)
    image: Optional[str] = None


class ExperienceSection(_ContentModel):
    id: str
    title: str
    order: OrderInt


class Experience(_ContentModel):
    id: str
    role: str
    org: str
    period: str
    bullets: List[str]
    order: OrderInt
    section_id: Optional[str] = Field(default=None, alias="sectionId")


class Project(_ContentModel):
    id: str
    title: str
    description: Optional[str] = None
    link: Optional[str] = None
    tags: List[str]
    order: OrderInt
    image: Optional[str] = None


class Skill(_ContentModel):
    id: str
    name: str
    category: Optional[str] = None
    level: Optional[Annotated[int, Strict(), Field(ge=1, le=5)]] = None
    order: OrderInt


class Contact(_ContentModel):
    note: Optional[str] = None


class PortfolioContent(_ContentModel):
    meta: Meta
    about: About
    experience_sections: List[ExperienceSection] = Field(default_factory=list, alias="experienceSections")
    experiences: List[Experience]
    projects: List[Project]
    skills: List[Skill]
    contact: Contact = Field(default_factory=Contact)


class FieldError(BaseModel):
    path: str
    reason: str


class ContentValidationResult(BaseModel):
    success: bool
    content: Optional[Dict[str, Any]] = None
    errors: List[FieldError] = Field(default_factory=list)


DEFAULT_PORTFOLIO_CONTENT: Dict[str, Any] = {
    "meta": {
        "name": "Your Name",
        "title": "Full Stack Developer",
        "email": "hello@example.com",
        "twitter": "https://twitter.com/",
        "location": "San Francisco, CA",
        "heroImage": None,
        "summary": None,
    },
    "about": {
        "paragraph": "I am a passionate developer...",
        "hobbies": ["Coding", "Reading", "Hiking"],
        "image": None,
    },
    "experienceSections": [],
    "experiences": [
        {
            "id": "exp-1",
            "role": "Senior Developer",
            "org": "Tech Corp",
            "period": "2020 - Present",
            "bullets": ["Led team of 5 developers", "Improved performance by 50%"],
            "order": 0,
            "sectionId": None,
        }
    ],
    "projects": [
        {
            "id": "proj-1",
            "title": "Portfolio Site",
            "description": "A personal portfolio website",
            "link": "https://github.com/",
            "tags": ["Python", "FastAPI", "MongoDB"],
            "order": 0,
            "image": None,
        }
    ],
    "skills": [
        {
            "id": "skill-1",
            "name": "Python",
            "category": "Backend",
            "level": 5,
            "order": 0,
        }
    ],
    "contact": {"note": "I am available for freelance work."},
}


def default_portfolio_content() -> Dict[str, Any]:
    """Fresh copy of the placeholder document shown on the first admin visit."""
    return copy.deepcopy(DEFAULT_PORTFOLIO_CONTENT)


def serialize_portfolio_content(content: PortfolioContent) -> Dict[str, Any]:
    """Canonical JSON-ready form of a validated document."""
    return content.model_dump(by_alias=True, mode="json")


def _format_loc(loc) -> str:
    return ".".join(str(part) for part in loc)


def _uniqueness_errors(content: PortfolioContent) -> List[FieldError]:
    """Ids and order values must be unique within each list."""
    errors = []
    lists = {
        "experienceSections": content.experience_sections,
        "experiences": content.experiences,
        "projects": content.projects,
        "skills": content.skills,
    }
    for name, items in lists.items():
        seen_ids = set()
        seen_orders = set()
        for index, item in enumerate(items):
            if item.id in seen_ids:
                errors.append(FieldError(path=f"{name}.{index}.id", reason=f"Duplicate id '{item.id}'"))
            seen_ids.add(item.id)
            if item.order in seen_orders:
                errors.append(FieldError(path=f"{name}.{index}.order", reason=f"Duplicate order {item.order}"))
            seen_orders.add(item.order)
    return errors


def validate_portfolio_content(data: Any) -> ContentValidationResult:
    """Accept or reject an arbitrary value as a whole content document.

    Never raises for malformed input. On success ``content`` is the canonical
    document (unknown fields stripped, optional fields defaulted); on failure
    ``errors`` lists field-path/reason pairs.
    """
    if not isinstance(data, dict):
        return ContentValidationResult(
            success=False,
            errors=[FieldError(path="", reason="Portfolio content must be an object")],
        )

    try:
        model = PortfolioContent.model_validate(data)
    except ValidationError as e:
        errors = [
            FieldError(path=_format_loc(err.get("loc", ())), reason=err.get("msg", "Invalid value"))
            for err in e.errors()
        ]
        logger.debug("Portfolio content rejected: %s", [(err.path, err.reason) for err in errors])
        return ContentValidationResult(success=False, errors=errors)

    errors = _uniqueness_errors(model)
    if errors:
        return ContentValidationResult(success=False, errors=errors)

    return ContentValidationResult(success=True, content=serialize_portfolio_content(model))
